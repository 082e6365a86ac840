# models/node.py
from models.buffer import MessageBuffer


class Node:
    """
    Représente un nœud mobile du réseau DTN.
    """

    def __init__(self, id, buffer_size: int):
        """
        Constructeur d'un objet Node

        Args:
            id (int): numéro d'identification du nœud (obligatoire)
            buffer_size (int): capacité du buffer de messages (octets)
        """
        self.id = int(id)
        self.buffer = MessageBuffer(buffer_size)
        self.connections = []  # Connexions ouvertes
        self.router = None     # Affecté par la fabrique de routeurs

    def __str__(self):
        """
        Descripteur de l'objet Node

        Returns:
            str: description textuelle du nœud
        """
        nb_conn = self.degree()
        return f"Node ID {self.id} has {nb_conn} connection(s)\tBuffer: {len(self.buffer)} message(s)"

    def __repr__(self):
        return f"Node({self.id})"

    #*************** Opérations courantes ****************
    def add_connection(self, con):
        """
        Ajoute une connexion à la liste si elle n'y est pas déjà.

        Args:
            con (Connection): la connexion à ajouter.
        """
        if con not in self.connections:
            self.connections.append(con)

    def remove_connection(self, con):
        if con in self.connections:
            self.connections.remove(con)

    def degree(self):
        """Nombre de connexions ouvertes."""
        return len(self.connections)

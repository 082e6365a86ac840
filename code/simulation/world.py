# simulation/world.py
import logging
from typing import Dict, Optional

from models.connection import Connection
from models.message import Message
from models.node import Node
from simulation.clock import SimClock

logger = logging.getLogger(__name__)


class World:
    """
    Pilote de simulation à pas discrets.

    À chaque pas de temps t, dans cet ordre :
    1. les transferts en cours progressent, ceux qui sont terminés sont finalisés
       (émetteur puis récepteur) ;
    2. les liens sont mis à jour selon la matrice d'adjacence (les transferts
       sur un lien rompu sont interrompus sans effet) ;
    3. le routeur de chaque nœud exécute son pas de temps.
    """

    def __init__(self, num_nodes: int, factory, buffer_size: int, transmit_speed: float, start: float = 0.0):
        """
        Initialise le monde simulé.

        Args:
            num_nodes (int): Nombre de nœuds
            factory (RouterFactory): Fabrique des routeurs (un par nœud)
            buffer_size (int): Capacité du buffer de chaque nœud (octets)
            transmit_speed (float): Débit des liens (octets par unité de temps)
            start (float): Instant initial de l'horloge
        """
        self.clock = SimClock(start)
        self.transmit_speed = transmit_speed
        self.nodes: Dict[int, Node] = {i: Node(i, buffer_size) for i in range(num_nodes)}
        for node in self.nodes.values():
            factory.create(node, self.clock)
        self.connections: Dict[tuple, Connection] = {}

        self.created_at = {}         # message_id -> instant de création
        self.delivered_at = {}       # message_id -> instant de première livraison
        self.packet_logs = []        # Livraisons (une entrée par message livré)
        self.copy_transmissions = [] # Transferts terminés
        self.copies_history = []     # Copies détenues par nœud à chaque pas
        self.aborted_transfers = 0
        self._message_seq = 0

    def __str__(self):
        return (f"World({len(self.nodes)} nœuds, t={self.clock.time}, "
                f"{len(self.connections)} liens, {len(self.delivered_at)}/{len(self.created_at)} livrés)")

    #*************** Liens ****************
    def connect(self, a: int, b: int) -> Connection:
        """Ouvre un lien entre les nœuds a et b (sans effet s'il existe déjà)."""
        key = tuple(sorted((a, b)))
        if key in self.connections:
            return self.connections[key]
        node_a, node_b = self.nodes[key[0]], self.nodes[key[1]]
        con = Connection(node_a, node_b, self.transmit_speed)
        self.connections[key] = con
        for node in (node_a, node_b):
            node.add_connection(con)
            node.router.changed_connection(con)
        return con

    def disconnect(self, a: int, b: int):
        """Ferme le lien entre a et b ; un transfert en cours est interrompu."""
        key = tuple(sorted((a, b)))
        con = self.connections.pop(key, None)
        if con is None:
            return
        if con.message is not None:
            self.aborted_transfers += 1
            con.abort()
        con.up = False
        for node in (con.node_a, con.node_b):
            node.remove_connection(con)
            node.router.changed_connection(con)

    def apply_adjacency(self, adjacency: dict[int, set[int]]):
        """
        Met les liens en conformité avec une matrice d'adjacence.

        Args:
            adjacency (dict[int, set[int]]): {id_nœud: {id_voisin1, id_voisin2, ...}, ...}
        """
        wanted = {tuple(sorted((i, j))) for i, neigh in adjacency.items() for j in neigh if i != j}
        for key in sorted(set(self.connections) - wanted):
            self.disconnect(*key)
        for key in sorted(wanted - set(self.connections)):
            self.connect(*key)

    #*************** Messages ****************
    def create_message(self, source: int, destination: int, size: int) -> Optional[Message]:
        """
        Crée un nouveau message sur le nœud source.

        Returns:
            Message: le message créé, None si le buffer de la source le refuse
        """
        self._message_seq += 1
        msg = Message(f"M{self._message_seq}", source, destination, size, created_at=self.clock.time)
        if not self.nodes[source].router.create_new_message(msg):
            return None
        self.created_at[msg.id] = self.clock.time
        return msg

    def _complete_transfers(self):
        for key in sorted(self.connections):
            con = self.connections[key]
            if not con.is_message_transferred():
                continue
            sender = con.sender
            receiver = con.other(sender)
            message, copies = con.message, con.sender_copies

            sender.router.transfer_done(con)
            con.finalize()
            delivered = receiver.router.message_transferred(message, sender, copies)

            self.copy_transmissions.append({
                'time': self.clock.time,
                'message_id': message.id,
                'from': sender.id,
                'to': receiver.id,
                'sender_copies': copies,
                'received_copies': (receiver.router.policy.copies(message.id)
                                    if message.id in receiver.router.policy else None),
                'delivered': delivered
            })

            if delivered:
                # Livraison au destinataire final : l'émetteur retire sa copie
                sender.router.delete_message(message.id)
                if message.id not in self.delivered_at:
                    logger.debug("Message %s livré au nœud %s à t=%s", message.id, receiver.id, self.clock.time)
                    self.delivered_at[message.id] = self.clock.time
                    self.packet_logs.append({
                        'protocol': str(sender.router),
                        'packet_id': message.id,
                        'src': message.source,
                        'dst': message.destination,
                        't_emit': message.created_at,
                        't_recv': self.clock.time,
                        'num_hops': message.hop_count
                    })

    #*************** Simulation ****************
    def step(self, t: float, adjacency: Optional[dict[int, set[int]]] = None):
        """
        Exécute un pas de simulation au temps t.

        Args:
            t (float): Temps courant de la simulation
            adjacency (dict[int, set[int]]): Liens présents au temps t (None = inchangés)
        """
        dt = t - self.clock.time
        self.clock.set_time(t)
        for con in self.connections.values():
            con.advance(dt)
        self._complete_transfers()

        if adjacency is not None:
            self.apply_adjacency(adjacency)

        for node_id in sorted(self.nodes):
            self.nodes[node_id].router.update()

        self.copies_history.append({
            't': t,
            'copies': {i: n.router.policy.total_copies() for i, n in self.nodes.items()}
        })

    def replicas(self, message_id: str) -> int:
        """Nombre de nœuds détenant actuellement le message."""
        return sum(1 for n in self.nodes.values() if n.router.has_message(message_id))

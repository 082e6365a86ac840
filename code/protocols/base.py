#!/usr/bin/env python3
# protocols/base.py
"""
Classe de base pour les routeurs DTN (Delay-Tolerant Networking).
Définit l'interface commune entre un routeur, son nœud et le pilote de simulation.
"""
import logging
import random
from typing import List, Optional

from models.message import Message

logger = logging.getLogger(__name__)

QUEUE_MODES = ('fifo', 'random')


class DTNRouter:
    """
    Classe de base des routeurs DTN actifs.

    Le routeur d'un nœud gère ses messages (création, réception, suppression),
    démarre les transferts sur les connexions ouvertes et réagit aux événements
    envoyés par le pilote de simulation :
    - changed_connection : ouverture ou fermeture d'un lien
    - update : pas de temps de la simulation
    - transfer_done / message_transferred : fin d'un transfert, côté émetteur et récepteur
    """

    def __init__(self, node, clock, queue_mode: str = 'fifo', rng: Optional[random.Random] = None):
        """
        Initialise un routeur.

        Args:
            node (Node): Nœud qui porte ce routeur
            clock: Source de temps (appelable retournant l'instant courant)
            queue_mode (str): Ordre d'envoi des messages ('fifo' ou 'random')
            rng (random.Random): Générateur aléatoire pour le mode 'random'
        """
        if queue_mode not in QUEUE_MODES:
            raise ValueError(f"Mode de file inconnu: {queue_mode} (attendu: {QUEUE_MODES})")
        self.node = node
        self.clock = clock
        self.queue_mode = queue_mode
        self.rng = rng if rng is not None else random.Random()
        self.delivered = set()  # Messages dont ce nœud est le destinataire final

    @property
    def buffer(self):
        return self.node.buffer

    @property
    def connections(self):
        return self.node.connections

    #*************** Gestion des messages ****************
    def has_message(self, message_id: str) -> bool:
        return message_id in self.buffer

    def get_message(self, message_id: str) -> Optional[Message]:
        return self.buffer.get(message_id)

    def add_to_messages(self, message: Message):
        self.buffer.add(message)

    def delete_message(self, message_id: str) -> Optional[Message]:
        """Retire un message du buffer (livré, expiré ou évincé)."""
        return self.buffer.remove(message_id)

    def make_room_for(self, size: int) -> bool:
        """
        Libère de la place pour un message de `size` octets.

        Les messages en cours d'envoi ne sont jamais évincés.

        Returns:
            bool: True si la place est disponible
        """
        if self.buffer.free_space() >= size:
            return True
        sending = {con.message.id for con in self.connections
                   if con.message is not None and con.sender is self.node}
        for victim in self.buffer.make_room(size, protected=sending):
            self.delete_message(victim.id)
        return self.buffer.free_space() >= size

    def create_new_message(self, message: Message) -> bool:
        """
        Crée un message à la source.

        Args:
            message (Message): le nouveau message

        Returns:
            bool: True si le message a été stocké
        """
        if not self.make_room_for(message.size):
            logger.warning("Message %s trop volumineux pour le buffer du nœud %s", message.id, self.node.id)
            return False
        message.receive_time = self.clock()
        self.add_to_messages(message)
        return True

    def accepts(self, message: Message) -> bool:
        """Le nœud accepte-t-il de recevoir ce message ?"""
        if message.id in self.delivered or self.has_message(message.id):
            return False
        if self.is_receiving(message.id):
            return False
        if message.destination == self.node.id:
            return True
        return message.size <= self.buffer.capacity

    def message_transferred(self, message: Message, from_node, sender_copies: Optional[int] = None) -> bool:
        """
        Fin d'un transfert, côté récepteur.

        Args:
            message (Message): copie reçue
            from_node (Node): nœud émetteur
            sender_copies (int): copies de l'émetteur au début de l'envoi

        Returns:
            bool: True si ce nœud est le destinataire final
        """
        message.receive_time = self.clock()
        if message.destination == self.node.id:
            self.delivered.add(message.id)
            return True
        if self.has_message(message.id):
            return False
        if not self.make_room_for(message.size):
            logger.info("Nœud %s : pas de place pour %s, message rejeté", self.node.id, message.id)
            return False
        self.add_to_messages(message)
        return False

    def transfer_done(self, con):
        """Fin d'un transfert, côté émetteur (juste avant sa finalisation)."""

    def changed_connection(self, con):
        """Ouverture ou fermeture d'une connexion du nœud."""

    #*************** Transferts ****************
    def outgoing_copies(self, message_id: str) -> Optional[int]:
        """Nombre de copies transmis avec le message (None si non géré)."""
        return None

    def is_transferring(self) -> bool:
        return any(con.message is not None for con in self.connections)

    def is_receiving(self, message_id: str) -> bool:
        """Une copie de ce message est-elle déjà en route vers ce nœud ?"""
        return any(con.message is not None and con.message.id == message_id
                   and con.sender is not self.node for con in self.connections)

    def can_start_transfer(self) -> bool:
        return len(self.connections) > 0 and len(self.buffer) > 0

    def start_transfer(self, message: Message, con) -> bool:
        """
        Démarre l'envoi d'une copie de `message` sur `con` si le pair l'accepte.

        Returns:
            bool: True si le transfert a démarré
        """
        if not con.is_idle():
            return False
        peer = con.other(self.node)
        if not peer.router.accepts(message):
            return False
        con.start_transfer(self.node, message.replicate(), self.outgoing_copies(message.id))
        logger.debug("Transfert de %s : %s -> %s", message.id, self.node.id, peer.id)
        return True

    def try_all_messages(self, con, messages: List[Message]) -> Optional[Message]:
        for m in messages:
            if self.start_transfer(m, con):
                return m
        return None

    def try_messages_to_connections(self, messages: List[Message], connections) -> Optional[object]:
        """
        Propose les messages, dans l'ordre, à chaque connexion ouverte.

        Returns:
            Connection: la connexion sur laquelle un transfert a démarré, None sinon
        """
        for con in list(connections):
            if self.try_all_messages(con, messages) is not None:
                return con
        return None

    def exchange_deliverable_messages(self) -> Optional[object]:
        """
        Tente de livrer directement un message à son destinataire final connecté.

        Returns:
            Connection: la connexion utilisée, None si aucune livraison possible
        """
        for con in list(self.connections):
            peer = con.other(self.node)
            deliverable = [m for m in self.buffer.messages() if m.destination == peer.id]
            if self.try_all_messages(con, deliverable) is not None:
                return con
        return None

    def sort_by_queue_mode(self, messages: List[Message]) -> List[Message]:
        """Ordonne les messages selon le mode de file du nœud."""
        if self.queue_mode == 'random':
            messages = list(messages)
            self.rng.shuffle(messages)
            return messages
        return sorted(messages, key=lambda m: m.receive_time)

    def drop_expired_messages(self):
        now = self.clock()
        for m in self.buffer.messages():
            if m.is_expired(now):
                logger.debug("Message %s expiré sur le nœud %s", m.id, self.node.id)
                self.delete_message(m.id)

    def update(self):
        """
        Exécute un pas de temps du routeur.
        """
        self.drop_expired_messages()

# models/connection.py
import logging
from typing import Optional

from models.message import Message

logger = logging.getLogger(__name__)


class Connection:
    """
    Lien bidirectionnel entre deux nœuds, transportant au plus un message à la fois.
    """

    def __init__(self, node_a, node_b, speed: float):
        """
        Args:
            node_a (Node): premier nœud
            node_b (Node): second nœud
            speed (float): débit du lien (octets par unité de temps)
        """
        self.node_a = node_a
        self.node_b = node_b
        self.speed = speed
        self.up = True
        self.message: Optional[Message] = None  # Copie en transit
        self.sender = None
        self.sender_copies: Optional[int] = None  # Copies de l'émetteur au début de l'envoi
        self.bytes_left = 0.0

    def __str__(self):
        state = "up" if self.up else "down"
        transfer = f", transfert {self.message.id}" if self.message else ""
        return f"Connection {self.node_a.id}<->{self.node_b.id} ({state}{transfer})"

    def key(self):
        return tuple(sorted((self.node_a.id, self.node_b.id)))

    def other(self, node):
        """Retourne le nœud à l'autre extrémité du lien."""
        return self.node_b if node is self.node_a else self.node_a

    def is_idle(self) -> bool:
        return self.up and self.message is None

    def start_transfer(self, sender, message: Message, sender_copies: Optional[int] = None):
        """
        Démarre l'envoi d'une copie du message depuis `sender`.

        Args:
            sender (Node): nœud émetteur
            message (Message): copie à transmettre
            sender_copies (int): copies de l'émetteur avant l'envoi
        """
        if not self.is_idle():
            raise RuntimeError(f"{self} n'est pas disponible")
        self.sender = sender
        self.message = message
        self.sender_copies = sender_copies
        self.bytes_left = float(message.size)

    def advance(self, dt: float):
        """Fait progresser le transfert en cours de `dt` unités de temps."""
        if self.message is not None:
            self.bytes_left = max(0.0, self.bytes_left - self.speed * dt)

    def is_message_transferred(self) -> bool:
        return self.up and self.message is not None and self.bytes_left <= 0

    def abort(self) -> Optional[Message]:
        """Interrompt le transfert en cours, sans autre effet."""
        message = self.message
        if message is not None:
            logger.debug("Transfert de %s interrompu sur %s", message.id, self)
        self.finalize()
        return message

    def finalize(self):
        self.message = None
        self.sender = None
        self.sender_copies = None
        self.bytes_left = 0.0

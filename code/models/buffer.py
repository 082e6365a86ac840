# models/buffer.py
import logging
from typing import Dict, Iterator, List, Optional

from models.message import Message

logger = logging.getLogger(__name__)


class MessageBuffer:
    """
    Buffer de messages d'un nœud, de capacité fixe (en octets).

    Les messages sont conservés dans leur ordre d'arrivée ; lorsqu'il faut
    faire de la place, les plus anciens sont évincés en premier.
    """

    def __init__(self, capacity: int):
        """
        Initialise un buffer vide.

        Args:
            capacity (int): Capacité totale en octets
        """
        if capacity <= 0:
            raise ValueError(f"La capacité du buffer doit être positive (reçu {capacity})")
        self.capacity = capacity
        self._messages: Dict[str, Message] = {}

    def __len__(self):
        return len(self._messages)

    def __contains__(self, message_id):
        return message_id in self._messages

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages.values()))

    def occupied(self) -> int:
        """Espace occupé (octets)."""
        return sum(m.size for m in self._messages.values())

    def free_space(self) -> int:
        """Espace libre (octets)."""
        return self.capacity - self.occupied()

    def get(self, message_id: str) -> Optional[Message]:
        return self._messages.get(message_id)

    def messages(self) -> List[Message]:
        """Liste des messages stockés, du plus ancien au plus récent."""
        return list(self._messages.values())

    def add(self, message: Message):
        """
        Ajoute un message au buffer.

        Args:
            message (Message): le message à stocker

        Raises:
            ValueError: si le message ne tient pas dans l'espace libre
        """
        if message.size > self.free_space():
            raise ValueError(f"Pas assez de place pour {message} ({self.free_space()}o libres)")
        self._messages[message.id] = message

    def remove(self, message_id: str) -> Optional[Message]:
        return self._messages.pop(message_id, None)

    def make_room(self, size: int, protected=()) -> List[Message]:
        """
        Évince les messages les plus anciens jusqu'à libérer `size` octets.

        Args:
            size (int): Espace nécessaire
            protected: IDs de messages à ne pas évincer (en cours d'envoi)

        Returns:
            list(Message): les messages évincés ; si la place ne peut pas être
            libérée, aucun message n'est évincé et la liste est vide.
        """
        if size > self.capacity:
            return []
        candidates = [m for m in self._messages.values() if m.id not in protected]
        freed = self.free_space()
        victims = []
        for m in candidates:
            if freed >= size:
                break
            victims.append(m)
            freed += m.size
        if freed < size:
            return []
        for m in victims:
            del self._messages[m.id]
            logger.debug("Message %s évincé du buffer", m.id)
        return victims

# models/message.py
from dataclasses import dataclass, replace
from typing import Optional


@dataclass
class Message:
    """
    Message transporté de nœud en nœud (store-and-forward).

    Chaque nœud qui détient le message en possède sa propre instance :
    une copie est créée par `replicate()` au début de chaque transfert.

    Attributes:
        id: Identifiant unique du message
        source: ID du nœud émetteur
        destination: ID du nœud destinataire final
        size: Taille du message (octets)
        created_at: Instant de création à la source
        ttl: Durée de vie (en pas de temps), None si infinie
        receive_time: Instant de réception par le nœud qui détient cette instance
        hop_count: Nombre de sauts effectués depuis la source
    """
    id: str
    source: int
    destination: int
    size: int
    created_at: float = 0.0
    ttl: Optional[float] = None
    receive_time: float = 0.0
    hop_count: int = 0

    def is_expired(self, now: float) -> bool:
        """Indique si le message a dépassé sa durée de vie à l'instant `now`."""
        if self.ttl is None:
            return False
        return now - self.created_at >= self.ttl

    def replicate(self) -> "Message":
        """Crée la copie transmise au prochain saut."""
        return replace(self, hop_count=self.hop_count + 1)

    def __str__(self):
        return f"{self.id} ({self.source}->{self.destination}, {self.size}o)"

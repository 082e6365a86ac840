#!/usr/bin/env python3
# protocols/copy_allocation.py
"""
Politique d'allocation des copies pour Spray-and-Wait.

Chaque message détenu par un nœud possède un nombre de copies restantes:
- SPRAY : plus d'une copie, le nœud peut encore en distribuer
- WAIT  : une seule copie (ou aucune), seule la livraison directe reste possible

Transitions:
1. Création : copies = L
2. Réception : le récepteur obtient ceil(n/2) (binaire), 1 (standard) ou une part
   proportionnelle à son utilité (TUON), n étant le nombre de copies de l'émetteur avant l'envoi
3. Fin d'envoi : l'émetteur garde floor(n/2) (binaire) ou n-1 (standard)
4. Transfert interrompu : aucune modification
"""
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

SPLIT_MODES = ('binary', 'standard', 'utility')

# Décompte de l'émetteur imposé par le mode de partage (binary_mode attendu)
SENDER_ACCOUNTING = {'binary': True, 'standard': False}


def check_modes(split_mode: str, binary_mode: bool):
    """
    Vérifie que le décompte de l'émetteur correspond à la part du récepteur.

    En mode 'utility', le décompte suit librement `binary_mode`.

    Raises:
        ValueError: mode inconnu, ou couple (split_mode, binary_mode) qui ne conserve pas les copies
    """
    if split_mode not in SPLIT_MODES:
        raise ValueError(f"Mode de partage inconnu: {split_mode} (attendu: {SPLIT_MODES})")
    expected = SENDER_ACCOUNTING.get(split_mode)
    if expected is not None and binary_mode != expected:
        raise ValueError(f"Le mode '{split_mode}' exige binary_mode={expected} (reçu {binary_mode})")


class MissingCopyCountError(LookupError):
    """Un message géré par la politique n'a pas de nombre de copies."""


class CopyState(Enum):
    SPRAY = 'spray'
    WAIT = 'wait'


@dataclass
class CopyRecord:
    """Nombre de copies restantes d'un message sur un nœud.

    Attributes:
        message_id: ID du message
        copies_left: Nombre de copies encore détenues
        ttl: Durée de vie du message (None si infinie)
    """
    message_id: str
    copies_left: int
    ttl: Optional[float] = None

    @property
    def state(self) -> CopyState:
        return CopyState.SPRAY if self.copies_left > 1 else CopyState.WAIT


def binary_split(n: int) -> int:
    """Part du récepteur en mode binaire : ceil(n/2)."""
    return math.ceil(n / 2)


def utility_split(n: int, u_sender: float, u_receiver: float) -> int:
    """
    Part du récepteur proportionnelle à son utilité.

    Args:
        n (int): Copies de l'émetteur avant l'envoi
        u_sender (float): Utilité combinée de l'émetteur
        u_receiver (float): Utilité combinée du récepteur

    Returns:
        int: floor(U_r * n / (U_s + U_r)) ; ceil(n/2) si la somme des utilités est nulle
    """
    total = u_sender + u_receiver
    if total <= 0:
        logger.debug("Utilités nulles (%s, %s) : partage binaire", u_sender, u_receiver)
        return binary_split(n)
    # U_r * n / (U_s + U_r) plutôt que U_r / (U_s + U_r) * n : même valeur, mais
    # exacte quand U_r * n tombe sur un multiple de la somme (pas de 2.9999... -> 2)
    share = math.floor(u_receiver * n / total)
    return min(n, max(0, share))


class CopyAllocationPolicy:
    """
    Propriétaire des enregistrements de copies des messages détenus par un nœud.
    """

    def __init__(self, initial_copies: int, split_mode: str = 'binary', binary_mode: bool = True,
                 copies_threshold: int = 1):
        """
        Args:
            initial_copies (int): Nombre L de copies à la création (>= 1)
            split_mode (str): Calcul de la part du récepteur ('binary', 'standard', 'utility')
            binary_mode (bool): Décompte de l'émetteur : n//2 si True, n-1 sinon
                (True en mode 'binary', False en mode 'standard')
            copies_threshold (int): Un message est répliqué si copies > seuil
        """
        if initial_copies < 1:
            raise ValueError(f"Le nombre initial de copies doit être >= 1 (reçu {initial_copies})")
        check_modes(split_mode, binary_mode)
        if copies_threshold < 0:
            raise ValueError(f"Le seuil de copies doit être >= 0 (reçu {copies_threshold})")
        self.initial_copies = initial_copies
        self.split_mode = split_mode
        self.binary_mode = binary_mode
        self.copies_threshold = copies_threshold
        self.records: Dict[str, CopyRecord] = {}

    def __contains__(self, message_id):
        return message_id in self.records

    def record(self, message_id: str) -> CopyRecord:
        """
        Enregistrement de copies d'un message.

        Raises:
            MissingCopyCountError: si le message n'est pas géré par la politique
        """
        try:
            return self.records[message_id]
        except KeyError:
            raise MissingCopyCountError(f"Message {message_id} sans nombre de copies") from None

    def copies(self, message_id: str) -> int:
        return self.record(message_id).copies_left

    def state(self, message_id: str) -> CopyState:
        return self.record(message_id).state

    def on_create(self, message_id: str, ttl: Optional[float] = None) -> CopyRecord:
        """Création du message à la source : copies = L."""
        rec = CopyRecord(message_id, self.initial_copies, ttl)
        self.records[message_id] = rec
        return rec

    def receiver_share(self, n: int, u_sender: float = 0.0, u_receiver: float = 0.0) -> int:
        """
        Nombre de copies attribué au récepteur selon le mode de partage.

        Args:
            n (int): Copies de l'émetteur avant l'envoi
            u_sender (float): Utilité de l'émetteur (mode 'utility')
            u_receiver (float): Utilité du récepteur (mode 'utility')
        """
        if self.split_mode == 'binary':
            return binary_split(n)
        if self.split_mode == 'standard':
            return 1
        if n > 1:
            return utility_split(n, u_sender, u_receiver)
        return n

    def on_receive(self, message_id: str, sender_copies: int, u_sender: float = 0.0,
                   u_receiver: float = 0.0, ttl: Optional[float] = None) -> CopyRecord:
        """
        Première arrivée du message sur ce nœud.

        Args:
            message_id (str): ID du message reçu
            sender_copies (int): Copies de l'émetteur avant l'envoi
            u_sender (float): Utilité de l'émetteur
            u_receiver (float): Utilité de ce nœud
            ttl (float): Durée de vie du message

        Returns:
            CopyRecord: l'enregistrement créé
        """
        share = self.receiver_share(sender_copies, u_sender, u_receiver)
        rec = CopyRecord(message_id, share, ttl)
        self.records[message_id] = rec
        logger.debug("Réception de %s : %d copies reçues sur %d", message_id, share, sender_copies)
        return rec

    def on_send_complete(self, message_id: str) -> Optional[CopyRecord]:
        """
        Fin d'un envoi confirmée : réduit les copies de l'émetteur.

        Un message déjà évincé du buffer (plus d'enregistrement) est ignoré.
        """
        rec = self.records.get(message_id)
        if rec is None:
            logger.debug("Message %s évincé avant la fin de l'envoi", message_id)
            return None
        if self.binary_mode:
            rec.copies_left //= 2
        else:
            rec.copies_left -= 1
        return rec

    def is_eligible(self, message_id: str) -> bool:
        """Le message peut-il encore être répliqué (copies > seuil) ?"""
        return self.copies(message_id) > self.copies_threshold

    def eligible(self, message_ids) -> List[str]:
        return [mid for mid in message_ids if self.is_eligible(mid)]

    def discard(self, message_id: str):
        """Supprime l'enregistrement d'un message livré, expiré ou évincé."""
        self.records.pop(message_id, None)

    def total_copies(self) -> int:
        return sum(r.copies_left for r in self.records.values())

    def __str__(self):
        return (f"CopyAllocationPolicy(L={self.initial_copies}, split={self.split_mode}, "
                f"binary={self.binary_mode}, seuil={self.copies_threshold})")

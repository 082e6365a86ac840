#!/usr/bin/env python3
# protocols/spray_and_wait.py
"""
Implémentation du routeur Spray-and-Wait et de sa variante pondérée par l'utilité (TUON)
pour les réseaux tolérants aux délais (DTN).

Principe:
1. Phase Spray: À l'émission, la source initialise L copies.
   Lors d'une rencontre, un nœud avec plus de copies que le seuil en cède une partie à son pair:
   - binaire: le récepteur obtient ceil(n/2), l'émetteur garde floor(n/2)
   - standard: le récepteur obtient 1 copie, l'émetteur en perd 1
   - TUON: le récepteur obtient une part proportionnelle à son utilité
     U = log10(U_space) + log10(U_time), comparée à celle de l'émetteur
2. Phase Wait: Dès qu'un nœud n'a plus qu'une seule copie, il attend de
   rencontrer directement la destination pour transmettre.

Référence: Thrasyvoulos Spyropoulos, Konstantinos Psounis, Cauligi S. Raghavendra,
"Spray and Wait: An Efficient Routing Scheme for Intermittently Connected Mobile Networks"
"""
import logging
import random
from dataclasses import dataclass
from typing import List, Optional

from models.message import Message
from protocols.base import DTNRouter, QUEUE_MODES
from protocols.contact_history import ContactHistoryTracker
from protocols.copy_allocation import CopyAllocationPolicy, check_modes
from protocols.utility import ContactMetricEstimator, TuonUtility, UtilitySnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SprayAndWaitSettings:
    """Paramètres partagés par tous les routeurs Spray-and-Wait d'une simulation.

    Attributes:
        initial_copies: Nombre L de copies à la création
        binary_mode: Décompte de l'émetteur n//2 (True) ou n-1 (False) ;
            imposé par split_mode en 'binary' (True) et 'standard' (False)
        split_mode: Part du récepteur: 'binary', 'standard' ou 'utility'
        smoothing_factor: Facteur R de l'utilité temporelle
        copies_threshold: Un message est répliqué si copies > seuil
        history_window: Taille maximale de l'historique par pair (None = illimité)
        clone_history: Copier l'historique de contacts lors de replicate()
        utility_floor: Plancher de l'utilité combinée
        queue_mode: Ordre d'envoi des messages
        msg_ttl: Durée de vie des messages créés (None = infinie)
    """
    initial_copies: int = 6
    binary_mode: bool = True
    split_mode: str = 'binary'
    smoothing_factor: float = 0.5
    copies_threshold: int = 1
    history_window: Optional[int] = None
    clone_history: bool = False
    utility_floor: float = 0.0
    queue_mode: str = 'fifo'
    msg_ttl: Optional[float] = None

    def __post_init__(self):
        if self.initial_copies < 1:
            raise ValueError(f"initial_copies doit être >= 1 (reçu {self.initial_copies})")
        check_modes(self.split_mode, self.binary_mode)
        if self.queue_mode not in QUEUE_MODES:
            raise ValueError(f"queue_mode inconnu: {self.queue_mode}")
        if self.copies_threshold < 0:
            raise ValueError(f"copies_threshold doit être >= 0 (reçu {self.copies_threshold})")
        if self.history_window is not None and self.history_window < 1:
            raise ValueError(f"history_window doit être >= 1 (reçu {self.history_window})")

    @classmethod
    def from_config(cls, cfg: dict) -> "SprayAndWaitSettings":
        """Construit les paramètres à partir de la section 'spray_and_wait' de CONFIG."""
        known = cls.__dataclass_fields__.keys()
        return cls(**{k: v for k, v in cfg.items() if k in known})

    @property
    def mode_name(self) -> str:
        if self.split_mode == 'utility':
            return "TUON"
        return "Binary" if self.split_mode == 'binary' else "Standard"


class SprayAndWaitRouter(DTNRouter):
    """
    Routeur Spray-and-Wait d'un nœud.

    Le routeur suit l'historique des contacts avec chaque pair, en déduit son
    utilité TUON et applique la politique d'allocation des copies.
    """

    def __init__(self, node, clock, settings: SprayAndWaitSettings, rng: Optional[random.Random] = None):
        """
        Initialise le routeur Spray-and-Wait.

        Args:
            node (Node): Nœud qui porte ce routeur
            clock: Source de temps partagée
            settings (SprayAndWaitSettings): Paramètres de la simulation
            rng (random.Random): Générateur aléatoire (mode de file 'random')
        """
        super().__init__(node, clock, settings.queue_mode, rng)
        self.settings = settings
        self.policy = CopyAllocationPolicy(settings.initial_copies, settings.split_mode,
                                           settings.binary_mode, settings.copies_threshold)
        self.tracker = ContactHistoryTracker(settings.history_window)
        self.estimator = ContactMetricEstimator(self.tracker, clock, settings.smoothing_factor)
        self.utility = TuonUtility(self.estimator, node.buffer, settings.utility_floor)

    def __str__(self):
        s = self.settings
        ttl_info = f", TTL={s.msg_ttl}" if s.msg_ttl is not None else ""
        return f"{s.mode_name} Spray and Wait (L={s.initial_copies}{ttl_info})"

    #*************** Événements de connexion ****************
    def changed_connection(self, con):
        peer = con.other(self.node)
        now = self.clock()
        if con.up:
            self.tracker.on_connection_up(peer.id, now)
        else:
            self.tracker.on_connection_down(peer.id, now)

    #*************** Utilité ****************
    def utility_snapshot(self, peer=None) -> UtilitySnapshot:
        return self.utility.snapshot(peer)

    def tuon(self) -> float:
        """Utilité combinée TUON de ce nœud, à l'instant courant."""
        return self.utility.value()

    #*************** Cycle de vie des messages ****************
    def create_new_message(self, message: Message) -> bool:
        message.ttl = self.settings.msg_ttl
        if not super().create_new_message(message):
            return False
        self.policy.on_create(message.id, message.ttl)
        return True

    def delete_message(self, message_id: str) -> Optional[Message]:
        self.policy.discard(message_id)
        return super().delete_message(message_id)

    def outgoing_copies(self, message_id: str) -> Optional[int]:
        return self.policy.copies(message_id)

    def message_transferred(self, message: Message, from_node, sender_copies: Optional[int] = None) -> bool:
        """
        Réception d'une copie : calcule le nombre de copies attribué à ce nœud.

        Args:
            message (Message): copie reçue
            from_node (Node): nœud émetteur
            sender_copies (int): copies de l'émetteur avant l'envoi

        Returns:
            bool: True si ce nœud est le destinataire final
        """
        if message.destination != self.node.id and self.has_message(message.id):
            logger.debug("Nœud %s : %s déjà détenu, copie de %s ignorée",
                         self.node.id, message.id, from_node.id)
            return False
        if sender_copies is None:
            sender_copies = from_node.router.policy.copies(message.id)

        u_sender = u_receiver = 0.0
        if self.settings.split_mode == 'utility':
            u_sender = from_node.router.tuon()
            u_receiver = self.tuon()

        if super().message_transferred(message, from_node, sender_copies):
            return True
        if self.has_message(message.id):
            self.policy.on_receive(message.id, sender_copies, u_sender, u_receiver, message.ttl)
        return False

    def transfer_done(self, con):
        """
        Fin d'envoi confirmée : l'émetteur garde floor(n/2) copies en mode binaire,
        n-1 en mode standard. Sans effet si le message a été évincé entre-temps.
        """
        message_id = con.message.id
        if self.get_message(message_id) is None:
            return
        self.policy.on_send_complete(message_id)

    def messages_with_copies_left(self) -> List[Message]:
        """
        Messages détenus, hors transfert en cours, ayant encore des copies à distribuer.

        Returns:
            list(Message): les messages dont le nombre de copies dépasse le seuil
        """
        in_transfer = {con.message.id for con in self.connections if con.message is not None}
        return [m for m in self.buffer.messages()
                if m.id not in in_transfer and self.policy.is_eligible(m.id)]

    def update(self):
        """
        Pas de temps : livraison directe d'abord, puis distribution des copies.
        """
        super().update()
        if not self.can_start_transfer() or self.is_transferring():
            return

        if self.exchange_deliverable_messages() is not None:
            return

        copies_left = self.sort_by_queue_mode(self.messages_with_copies_left())
        if copies_left:
            self.try_messages_to_connections(copies_left, self.connections)

    def replicate(self, node, rng: Optional[random.Random] = None) -> "SprayAndWaitRouter":
        """
        Crée un routeur pour un autre nœud avec les mêmes paramètres.

        L'historique de contacts n'est recopié que si `clone_history` est activé ;
        les enregistrements de copies ne le sont jamais.
        """
        router = SprayAndWaitRouter(node, self.clock, self.settings, rng)
        if self.settings.clone_history:
            router.tracker = self.tracker.copy()
            router.estimator.tracker = router.tracker
        return router


class RouterFactory:
    """
    Fabrique des routeurs Spray-and-Wait : un routeur neuf par nœud, à partir
    de paramètres partagés et immuables.
    """

    def __init__(self, settings: SprayAndWaitSettings, seed: Optional[int] = None):
        self.settings = settings
        self.seed = seed

    def create(self, node, clock) -> SprayAndWaitRouter:
        rng = random.Random(None if self.seed is None else self.seed + node.id)
        router = SprayAndWaitRouter(node, clock, self.settings, rng)
        node.router = router
        return router

#!/usr/bin/env python3
# protocols/contact_history.py
"""
Suivi de l'historique des contacts d'un nœud avec chacun de ses pairs.

Pour chaque pair rencontré, le tracker conserve deux séquences chronologiques:
- l'historique des contacts : intervalles "connexion établie -> connexion rompue"
- l'historique des intercontacts : intervalles "connexion rompue -> connexion suivante"

Un horodatage en attente par pair et par séquence mémorise le début de
l'intervalle en cours ; il est consommé à l'événement de fermeture.
"""
import copy
import logging
from collections import deque
from typing import Dict, Hashable, List, Optional

import numpy as np
import pandas as pd

from models.duration import Duration

logger = logging.getLogger(__name__)


class ContactHistoryTracker:
    """
    Historique des durées de contact et d'intercontact par pair.

    Un horodatage en attente absent vaut 0 ("jamais") : le premier intervalle
    d'un pair rencontré loin de t=0 peut donc être anormalement long.
    """

    def __init__(self, history_window: Optional[int] = None):
        """
        Initialise un tracker vide.

        Args:
            history_window (int): Nombre maximal d'intervalles conservés par pair et par
                                  séquence. None pour un historique illimité.
        """
        if history_window is not None and history_window < 1:
            raise ValueError(f"La fenêtre d'historique doit être >= 1 (reçu {history_window})")
        self.history_window = history_window
        self.connect_timestamps: Dict[Hashable, float] = {}     # Début du contact en cours
        self.disconnect_timestamps: Dict[Hashable, float] = {}  # Début de l'intercontact en cours
        self.contacts: Dict[Hashable, deque] = {}
        self.intercontacts: Dict[Hashable, deque] = {}
        self.last_peer = None

    def _history_for(self, table: dict, peer) -> deque:
        if peer not in table:
            table[peer] = deque(maxlen=self.history_window)
        return table[peer]

    def on_connection_up(self, peer, now: float):
        """
        Enregistre l'établissement d'une connexion avec `peer`.

        Ferme l'intercontact en cours (s'il a une durée positive) et mémorise
        `now` comme début du contact.

        Args:
            peer: Identifiant du pair
            now (float): Instant de l'événement
        """
        last_disconnect = self.disconnect_timestamps.pop(peer, 0)
        history = self._history_for(self.intercontacts, peer)
        if now - last_disconnect > 0:
            history.append(Duration(last_disconnect, now))
        self.connect_timestamps[peer] = now
        self.last_peer = peer
        logger.debug("Contact avec %s établi à t=%s", peer, now)

    def on_connection_down(self, peer, now: float):
        """
        Enregistre la rupture de la connexion avec `peer`.

        Ferme le contact en cours (s'il a une durée positive) et mémorise
        `now` comme début de l'intercontact.

        Args:
            peer: Identifiant du pair
            now (float): Instant de l'événement
        """
        last_connect = self.connect_timestamps.pop(peer, 0)
        history = self._history_for(self.contacts, peer)
        if now - last_connect > 0:
            history.append(Duration(last_connect, now))
        self.disconnect_timestamps[peer] = now
        self.last_peer = peer
        logger.debug("Contact avec %s rompu à t=%s", peer, now)

    #*************** Consultation ****************
    def peers(self) -> List:
        """Liste des pairs déjà rencontrés."""
        return list(dict.fromkeys(list(self.contacts) + list(self.intercontacts)
                                  + list(self.connect_timestamps)))

    def contact_history(self, peer) -> List[Duration]:
        return list(self.contacts.get(peer, ()))

    def intercontact_history(self, peer) -> List[Duration]:
        return list(self.intercontacts.get(peer, ()))

    def is_connected(self, peer) -> bool:
        return peer in self.connect_timestamps

    def pending_disconnect(self, peer) -> Optional[float]:
        """Début de l'intercontact encore ouvert avec `peer`, None s'il n'y en a pas."""
        return self.disconnect_timestamps.get(peer)

    #*********** Agrégats ***************
    def total_contact_time(self) -> float:
        """
        Durée cumulée de tous les contacts terminés, tous pairs confondus.

        Returns:
            float: somme des durées de contact
        """
        return float(sum(d.duration for history in self.contacts.values() for d in history))

    def total_intercontact_time(self) -> float:
        """
        Somme, sur l'ensemble des pairs, de la durée moyenne d'intercontact.

        Returns:
            float: somme des moyennes par pair (0.0 sans intercontact)
        """
        means = [np.mean([d.duration for d in history])
                 for history in self.intercontacts.values() if history]
        return float(sum(means))

    def to_frame(self) -> pd.DataFrame:
        """
        Exporte tous les intervalles enregistrés sous forme de DataFrame.

        Returns:
            DataFrame: colonnes peer, kind ('contact' ou 'intercontact'), start, end, duration
        """
        rows = []
        for kind, table in (('contact', self.contacts), ('intercontact', self.intercontacts)):
            for peer, history in table.items():
                for d in history:
                    rows.append({'peer': peer, 'kind': kind, 'start': d.start,
                                 'end': d.end, 'duration': d.duration})
        return pd.DataFrame(rows, columns=['peer', 'kind', 'start', 'end', 'duration'])

    def copy(self) -> "ContactHistoryTracker":
        """Copie indépendante du tracker (historiques et horodatages en attente)."""
        return copy.deepcopy(self)

    def __str__(self):
        n_contacts = sum(len(h) for h in self.contacts.values())
        return f"ContactHistoryTracker({len(self.peers())} pairs, {n_contacts} contacts)"

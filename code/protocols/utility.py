#!/usr/bin/env python3
# protocols/utility.py
"""
Calcul de l'utilité TUON d'un nœud.

Principe:
1. Métriques de contact : à partir de l'historique d'un pair,
   - t1 : durée du dernier contact
   - t2 : durée de l'avant-dernier contact
   - t3 : durée de l'intercontact en cours (ou qui vient de se terminer)
2. Rapport cyclique : mu = t3 / t1 + t2 (précédence littérale : seul t3 est divisé par t1)
3. Utilité temporelle : U_time = exp(R * mu)
4. Utilité du buffer : U_space = capacité - espace libre
5. Utilité combinée : U = log10(U_space) + log10(U_time)

L'utilité combinée est recalculée à chaque requête, sans cache.
"""
import logging
import math
from dataclasses import dataclass

import numpy as np

from protocols.contact_history import ContactHistoryTracker

logger = logging.getLogger(__name__)

LOG10_E = math.log10(math.e)


@dataclass(frozen=True)
class ContactMetrics:
    """Métriques de contact courtes d'un pair.

    Attributes:
        peer: Pair dont l'historique a été utilisé (None si aucun)
        t1: Durée du dernier contact
        t2: Durée de l'avant-dernier contact
        t3: Durée de l'intercontact en cours
    """
    peer: object
    t1: float
    t2: float
    t3: float


@dataclass(frozen=True)
class UtilitySnapshot:
    """Instantané des composantes de l'utilité d'un nœud."""
    peer: object
    t1: float
    t2: float
    t3: float
    mu: float
    time_utility: float
    space_utility: float
    combined_utility: float


class ContactMetricEstimator:
    """
    Réduit l'historique de contacts d'un pair aux grandeurs t1, t2, t3, mu et U_time.
    """

    def __init__(self, tracker: ContactHistoryTracker, clock, smoothing_factor: float = 0.5):
        """
        Args:
            tracker (ContactHistoryTracker): Historique des contacts du nœud
            clock: Source de temps (appelable retournant l'instant courant)
            smoothing_factor (float): Facteur R de l'utilité temporelle
        """
        self.tracker = tracker
        self.clock = clock
        self.smoothing_factor = smoothing_factor

    def metrics(self, peer=None) -> ContactMetrics:
        """
        Calcule t1, t2 et t3 pour un pair.

        Args:
            peer: Pair à considérer. Par défaut, le pair du dernier événement de connexion.

        Returns:
            ContactMetrics: les durées (0.0 si l'historique est insuffisant)
        """
        if peer is None:
            peer = self.tracker.last_peer
        if peer is None:
            return ContactMetrics(None, 0.0, 0.0, 0.0)

        contacts = self.tracker.contact_history(peer)
        t1 = contacts[-1].duration if len(contacts) >= 1 else 0.0
        t2 = contacts[-2].duration if len(contacts) >= 2 else 0.0

        disconnected_at = self.tracker.pending_disconnect(peer)
        if disconnected_at is not None:
            t3 = self.clock() - disconnected_at
        else:
            gaps = self.tracker.intercontact_history(peer)
            t3 = gaps[-1].duration if gaps and self.tracker.is_connected(peer) else 0.0

        return ContactMetrics(peer, float(t1), float(t2), float(t3))

    def mu(self, metrics: ContactMetrics) -> float:
        """
        Rapport cyclique mu = t3 / t1 + t2.

        Sans contact terminé (t1 == 0), le terme t3 / t1 vaut 0.
        """
        ratio = metrics.t3 / metrics.t1 if metrics.t1 > 0 else 0.0
        return ratio + metrics.t2

    def time_utility(self, peer=None) -> float:
        """U_time = exp(R * mu), inf en cas de dépassement."""
        mu = self.mu(self.metrics(peer))
        with np.errstate(over='ignore'):
            return float(np.exp(self.smoothing_factor * mu))


def space_utility(buffer) -> float:
    """
    Utilité du buffer : espace occupé, en valeur absolue.

    Args:
        buffer: Objet exposant `capacity` et `free_space()`

    Returns:
        float: capacité - espace libre
    """
    return float(buffer.capacity - buffer.free_space())


def combined_utility(space: float, log10_time: float, floor: float = 0.0) -> float:
    """
    Utilité combinée TUON : log10(U_space) + log10(U_time).

    Un U_space non strictement positif rend le logarithme indéfini : la
    valeur plancher est alors retournée. Le résultat n'est jamais inférieur
    au plancher.

    Args:
        space (float): U_space
        log10_time (float): log10(U_time), déjà calculé
        floor (float): Valeur plancher

    Returns:
        float: utilité combinée finie
    """
    if not (space > 0 and math.isfinite(space) and math.isfinite(log10_time)):
        logger.debug("Utilité indéfinie (U_space=%s, log10 U_time=%s) : plancher %s",
                     space, log10_time, floor)
        return floor
    return max(floor, math.log10(space) + log10_time)


class TuonUtility:
    """
    Utilité TUON d'un nœud : combine les métriques de contact et l'occupation du buffer.
    """

    def __init__(self, estimator: ContactMetricEstimator, buffer, floor: float = 0.0):
        self.estimator = estimator
        self.buffer = buffer
        self.floor = floor

    def snapshot(self, peer=None) -> UtilitySnapshot:
        """
        Calcule toutes les composantes de l'utilité à l'instant courant.

        Args:
            peer: Pair de référence (par défaut le pair du dernier événement de connexion)

        Returns:
            UtilitySnapshot: t1, t2, t3, mu, U_time, U_space et U combinée
        """
        metrics = self.estimator.metrics(peer)
        mu = self.estimator.mu(metrics)
        exponent = self.estimator.smoothing_factor * mu
        with np.errstate(over='ignore'):
            u_time = float(np.exp(exponent))
        u_space = space_utility(self.buffer)

        if u_time > 0 and math.isfinite(mu):
            # log10(exp(x)) = x * log10(e), sans dépassement pour x grand
            combined = combined_utility(u_space, exponent * LOG10_E, self.floor)
        else:
            combined = self.floor

        return UtilitySnapshot(metrics.peer, metrics.t1, metrics.t2, metrics.t3, mu,
                               u_time, u_space, combined)

    def value(self, peer=None) -> float:
        return self.snapshot(peer).combined_utility

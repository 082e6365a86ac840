#!/usr/bin/env python3
# protocols/__init__.py
"""
Package des protocoles DTN.

Ce package contient le routeur Spray-and-Wait et ses composants pour les
réseaux tolérants aux délais (DTN).

Composants disponibles:
- DTNRouter: Classe de base des routeurs actifs (connexions, transferts, livraison)
- ContactHistoryTracker: Historique des contacts et intercontacts par pair
- ContactMetricEstimator, TuonUtility: Utilité TUON (temps de contact et occupation du buffer)
- CopyAllocationPolicy: Cycle de vie du nombre de copies de chaque message
- SprayAndWaitRouter: Spray-and-Wait binaire, standard ou pondéré par l'utilité (TUON)
"""

from protocols.base import DTNRouter
from protocols.contact_history import ContactHistoryTracker
from protocols.copy_allocation import CopyAllocationPolicy, CopyRecord, MissingCopyCountError
from protocols.utility import ContactMetricEstimator, TuonUtility, UtilitySnapshot
from protocols.spray_and_wait import SprayAndWaitRouter, SprayAndWaitSettings, RouterFactory

__all__ = ['DTNRouter', 'ContactHistoryTracker', 'CopyAllocationPolicy', 'CopyRecord',
           'MissingCopyCountError', 'ContactMetricEstimator', 'TuonUtility', 'UtilitySnapshot',
           'SprayAndWaitRouter', 'SprayAndWaitSettings', 'RouterFactory']

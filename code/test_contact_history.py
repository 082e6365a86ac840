#!/usr/bin/env python3
# test_contact_history.py
"""
Tests de l'historique des contacts et intercontacts par pair.
"""
import os
import random
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from models.duration import Duration
from protocols.contact_history import ContactHistoryTracker


def test_contact_then_intercontact():
    """A et B se connectent à t=10, se séparent à t=40 puis se retrouvent à t=100."""
    tracker = ContactHistoryTracker()
    tracker.on_connection_up('B', 10)
    tracker.on_connection_down('B', 40)

    assert tracker.contact_history('B') == [Duration(10, 40)]
    assert tracker.contact_history('B')[0].duration == 30
    assert tracker.pending_disconnect('B') == 40
    assert not tracker.is_connected('B')

    tracker.on_connection_up('B', 100)
    assert tracker.intercontact_history('B')[-1] == Duration(40, 100)
    assert tracker.intercontact_history('B')[-1].duration == 60
    assert tracker.pending_disconnect('B') is None
    assert tracker.is_connected('B')
    assert tracker.last_peer == 'B'


def test_first_encounter_uses_zero_as_reference():
    tracker = ContactHistoryTracker()
    tracker.on_connection_up('B', 10)
    assert tracker.intercontact_history('B') == [Duration(0, 10)]


def test_non_positive_intervals_are_dropped():
    tracker = ContactHistoryTracker()
    tracker.on_connection_up('B', 0)
    assert tracker.intercontact_history('B') == []

    tracker.on_connection_down('B', 0)
    assert tracker.contact_history('B') == []

    tracker.on_connection_up('B', 0)
    tracker.on_connection_down('B', 5)
    tracker.on_connection_up('B', 5)
    assert tracker.contact_history('B') == [Duration(0, 5)]
    assert tracker.intercontact_history('B') == []


def test_histories_are_ordered_and_disjoint():
    rng = random.Random(7)
    tracker = ContactHistoryTracker()
    t = 0.0
    for _ in range(50):
        t += rng.choice([0, 1, 2.5, 7])
        tracker.on_connection_up('B', t)
        t += rng.choice([0, 1, 3])
        tracker.on_connection_down('B', t)

    for history in (tracker.contact_history('B'), tracker.intercontact_history('B')):
        assert all(d.duration > 0 for d in history)
        for prev, cur in zip(history, history[1:]):
            assert cur.start > prev.start
            assert cur.start >= prev.end


def test_history_window_keeps_most_recent():
    tracker = ContactHistoryTracker(history_window=2)
    for start in (10, 20, 30):
        tracker.on_connection_up('B', start)
        tracker.on_connection_down('B', start + 5)

    assert tracker.contact_history('B') == [Duration(20, 25), Duration(30, 35)]
    assert len(tracker.intercontact_history('B')) == 2


def test_invalid_history_window():
    with pytest.raises(ValueError):
        ContactHistoryTracker(history_window=0)


def test_aggregates():
    tracker = ContactHistoryTracker()
    tracker.on_connection_up('B', 10)
    tracker.on_connection_down('B', 40)
    tracker.on_connection_up('B', 100)
    tracker.on_connection_up('C', 20)
    tracker.on_connection_down('C', 25)

    assert tracker.total_contact_time() == pytest.approx(35)
    # B : (0,10) et (40,100) -> moyenne 35 ; C : (0,20) -> 20
    assert tracker.total_intercontact_time() == pytest.approx(55)
    assert set(tracker.peers()) == {'B', 'C'}


def test_to_frame():
    tracker = ContactHistoryTracker()
    tracker.on_connection_up(1, 10)
    tracker.on_connection_down(1, 40)

    df = tracker.to_frame()
    assert list(df.columns) == ['peer', 'kind', 'start', 'end', 'duration']
    assert len(df) == 2
    assert df[df['kind'] == 'contact']['duration'].iloc[0] == 30


def test_copy_is_independent():
    tracker = ContactHistoryTracker()
    tracker.on_connection_up('B', 10)
    tracker.on_connection_down('B', 40)

    clone = tracker.copy()
    clone.on_connection_up('B', 50)
    clone.on_connection_down('B', 60)

    assert len(tracker.contact_history('B')) == 1
    assert len(clone.contact_history('B')) == 2


def test_duration_rejects_reversed_interval():
    with pytest.raises(ValueError):
        Duration(10, 5)

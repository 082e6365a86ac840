#!/usr/bin/env python3
# test_copy_allocation.py
"""
Tests de la politique d'allocation des copies (création, partage, décompte, éligibilité).
"""
import math
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from protocols.copy_allocation import (CopyAllocationPolicy, CopyState, MissingCopyCountError,
                                       binary_split, utility_split)


@pytest.mark.parametrize("L", [1, 2, 6, 10])
def test_creation_sets_initial_copies(L):
    policy = CopyAllocationPolicy(L)
    policy.on_create('M1')
    assert policy.copies('M1') == L
    assert policy.state('M1') == (CopyState.SPRAY if L > 1 else CopyState.WAIT)


def test_binary_conservation():
    for n in range(2, 65):
        sender = CopyAllocationPolicy(n, 'binary', binary_mode=True)
        receiver = CopyAllocationPolicy(n, 'binary', binary_mode=True)
        sender.on_create('M1')

        receiver.on_receive('M1', sender.copies('M1'))
        sender.on_send_complete('M1')

        assert receiver.copies('M1') == math.ceil(n / 2)
        assert sender.copies('M1') == n // 2
        assert receiver.copies('M1') + sender.copies('M1') == n


def test_standard_conservation():
    sender = CopyAllocationPolicy(5, 'standard', binary_mode=False)
    sender.on_create('M1')
    for expected in (4, 3, 2, 1):
        receiver = CopyAllocationPolicy(5, 'standard', binary_mode=False)
        receiver.on_receive('M1', sender.copies('M1'))
        sender.on_send_complete('M1')
        assert receiver.copies('M1') == 1
        assert sender.copies('M1') == expected


def test_six_copies_first_hop():
    sender = CopyAllocationPolicy(6)
    receiver = CopyAllocationPolicy(6)
    sender.on_create('M1')

    receiver.on_receive('M1', sender.copies('M1'))
    assert receiver.copies('M1') == 3
    sender.on_send_complete('M1')
    assert sender.copies('M1') == 3
    assert sender.total_copies() + receiver.total_copies() <= 6


def test_utility_split_scenario():
    assert utility_split(9, 2.0, 1.0) == 3

    policy = CopyAllocationPolicy(9, 'utility')
    policy.on_receive('M1', 9, u_sender=2.0, u_receiver=1.0)
    assert policy.copies('M1') == 3


def test_utility_split_bounds_and_monotonicity():
    receivers = [0.01, 0.1, 0.5, 1.0, 2.0, 3.7, 10.0, 100.0]
    for n in range(0, 40):
        for u_sender in (0.1, 1.0, 5.0):
            shares = [utility_split(n, u_sender, u_r) for u_r in receivers]
            assert all(0 <= s <= n for s in shares)
            assert shares == sorted(shares)


def test_utility_split_without_utility_falls_back_to_binary():
    assert utility_split(7, 0.0, 0.0) == binary_split(7) == 4


def test_utility_mode_keeps_single_copy():
    policy = CopyAllocationPolicy(4, 'utility')
    policy.on_receive('M1', 1, u_sender=5.0, u_receiver=0.1)
    assert policy.copies('M1') == 1


def test_missing_record_is_fatal():
    policy = CopyAllocationPolicy(4)
    with pytest.raises(MissingCopyCountError):
        policy.copies('unknown')
    with pytest.raises(LookupError):
        policy.is_eligible('unknown')


def test_send_complete_after_eviction_is_noop():
    policy = CopyAllocationPolicy(4)
    policy.on_create('M1')
    policy.discard('M1')
    assert policy.on_send_complete('M1') is None
    assert 'M1' not in policy


def test_eligibility_threshold():
    classic = CopyAllocationPolicy(1, copies_threshold=1)
    last_copy = CopyAllocationPolicy(1, copies_threshold=0)
    classic.on_create('M1')
    last_copy.on_create('M1')

    assert not classic.is_eligible('M1')
    assert last_copy.is_eligible('M1')
    assert last_copy.eligible(['M1']) == ['M1']


@pytest.mark.parametrize("kwargs", [
    {'initial_copies': 0},
    {'initial_copies': 4, 'split_mode': 'half'},
    {'initial_copies': 4, 'split_mode': 'standard'},
    {'initial_copies': 4, 'split_mode': 'binary', 'binary_mode': False},
    {'initial_copies': 4, 'copies_threshold': -1},
])
def test_invalid_configuration(kwargs):
    with pytest.raises(ValueError):
        CopyAllocationPolicy(**kwargs)

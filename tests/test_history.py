"""Tests for the snapshot stack."""

import numpy as np
import pytest

from cfsim.history import ConfigSnapshot, PoseHistory


def _snap(x):
    s = ConfigSnapshot.zeros()
    s.pose[0, 3] = x
    return s


def test_push_pop_lifo():
    h = PoseHistory()
    for x in (1.0, 2.0, 3.0):
        h.push(_snap(x))
    assert [h.pop().pose[0, 3] for _ in range(3)] == [3.0, 2.0, 1.0]
    assert h.pop() is None


def test_push_stores_a_copy():
    h = PoseHistory()
    s = _snap(1.0)
    h.push(s)
    s.pose[0, 3] = 42.0
    assert h.peek().pose[0, 3] == 1.0


def test_iteration_is_oldest_first_and_non_destructive():
    h = PoseHistory()
    for x in (1.0, 2.0):
        h.push(_snap(x))
    assert [s.pose[0, 3] for s in h] == [1.0, 2.0]
    assert len(h) == 2


def test_capacity_evicts_oldest():
    h = PoseHistory(capacity=2)
    for x in (1.0, 2.0, 3.0):
        h.push(_snap(x))
    assert h.capacity == 2
    assert [s.pose[0, 3] for s in h] == [2.0, 3.0]


def test_invalid_capacity():
    with pytest.raises(ValueError):
        PoseHistory(capacity=0)


def test_clear_and_bool():
    h = PoseHistory()
    assert not h
    h.push(ConfigSnapshot.zeros())
    assert h
    h.clear()
    assert not h and h.peek() is None
    assert np.allclose(ConfigSnapshot.zeros().pose, np.eye(4))

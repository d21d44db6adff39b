"""
Configuration snapshots and the undo stack.

A snapshot pairs a pose with the propeller angles that were current at the
same moment. The stack is optionally bounded; when full, the oldest
snapshot is discarded.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, Optional

import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)


@dataclass
class ConfigSnapshot:
    """
    One (pose, prop angles) pair.

    Attributes:
        pose: Body pose in world frame, shape (4, 4)
        prop_angles: Rotor angles [rad], shape (4,)
    """

    pose: NDArray[np.float64]  # (4, 4)
    prop_angles: NDArray[np.float64]  # (4,)

    def copy(self) -> "ConfigSnapshot":
        """Create a deep copy of this snapshot."""
        return ConfigSnapshot(
            pose=self.pose.copy(),
            prop_angles=self.prop_angles.copy(),
        )

    @staticmethod
    def zeros() -> "ConfigSnapshot":
        """Identity pose with all props at zero."""
        return ConfigSnapshot(pose=np.eye(4), prop_angles=np.zeros(4))


class PoseHistory:
    """
    LIFO stack of ConfigSnapshot entries.

    Iteration runs oldest to newest. ``capacity=None`` means unbounded.
    """

    def __init__(self, capacity: Optional[int] = None):
        if capacity is not None and capacity <= 0:
            raise ValueError(f"History capacity must be positive or None, got {capacity}")
        self._capacity = capacity
        self._entries: Deque[ConfigSnapshot] = deque(maxlen=capacity)

    @property
    def capacity(self) -> Optional[int]:
        return self._capacity

    def push(self, snapshot: ConfigSnapshot) -> None:
        """Store a copy of ``snapshot`` as the newest entry."""
        if self._capacity is not None and len(self._entries) == self._capacity:
            logger.debug("History full (%d), dropping oldest snapshot", self._capacity)
        self._entries.append(snapshot.copy())

    def pop(self) -> Optional[ConfigSnapshot]:
        """Remove and return the newest entry, or None when empty."""
        if not self._entries:
            return None
        return self._entries.pop()

    def peek(self) -> Optional[ConfigSnapshot]:
        """Return a copy of the newest entry without removing it."""
        if not self._entries:
            return None
        return self._entries[-1].copy()

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __iter__(self) -> Iterator[ConfigSnapshot]:
        return (entry.copy() for entry in self._entries)

"""
Crazyflie pose and propeller state with undo.

``CrazyflieSim`` holds the body pose (a 4x4 rigid transform) and the four
propeller angles. Roll, pitch and yaw are derived from the pose on every read
using the ZYX decomposition in ``cfsim.math3d``. Writing a single angle reads
the two others back from the pose and rebuilds it:

    Pose = Translate(Position) @ Rz(yaw) @ Ry(pitch) @ Rx(roll)

Every mutator pushes the previous (pose, prop angles) onto the history and
returns that snapshot; ``undo`` pops it back. When a scene is attached, each
change is forwarded to ``scene.update``.
"""

import logging
from typing import List, Optional, Protocol, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from cfsim.config import SimConfig
from cfsim.history import ConfigSnapshot, PoseHistory
from cfsim.math3d import compose_pose, is_rigid_transform, pose_to_rpy, rot_z
from cfsim.params import CrazyflieModel, get_model

logger = logging.getLogger(__name__)


class Scene(Protocol):
    """Anything that can display a Crazyflie configuration."""

    def update(
        self,
        pose: NDArray[np.float64],
        prop_transforms: Sequence[NDArray[np.float64]],
    ) -> None: ...

    def close(self) -> None: ...


def _as_pose(pose) -> NDArray[np.float64]:
    H = np.array(pose, dtype=np.float64)
    if H.shape != (4, 4):
        raise ValueError(f"Pose must be a 4x4 array, got shape {H.shape}")
    return H


def _as_prop_angles(angles) -> NDArray[np.float64]:
    a = np.array(angles, dtype=np.float64).reshape(-1)
    if a.size != 4:
        raise ValueError(f"PropAngles must have 4 elements, got {a.size}")
    return a


class CrazyflieSim:
    """
    Display-state bookkeeping for one Crazyflie.

    Attributes:
        config: Session configuration
        model: Vehicle geometry for the configured model
    """

    def __init__(self, config: Optional[SimConfig] = None, scene: Optional[Scene] = None):
        self.config = config if config is not None else SimConfig()
        self.model: CrazyflieModel = get_model(self.config.model)

        self._pose = np.eye(4)
        self._prop_angles = np.zeros(4)
        self._history = PoseHistory(self.config.history_capacity)
        self._scene: Optional[Scene] = None

        if scene is not None:
            self.attach(scene)

    def __repr__(self) -> str:
        return (
            f"CrazyflieSim(model={self.model.name!r}, "
            f"position={self.position.tolist()}, "
            f"prop_angles={self._prop_angles.tolist()}, "
            f"history={len(self._history)})"
        )

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def pose(self) -> NDArray[np.float64]:
        """4x4 body pose relative to the world frame (copy)."""
        return self._pose.copy()

    @property
    def position(self) -> NDArray[np.float64]:
        """Body origin in world frame, shape (3,)."""
        return self._pose[0:3, 3].copy()

    @property
    def rpy(self) -> Tuple[float, float, float]:
        """(roll, pitch, yaw) in radians."""
        return pose_to_rpy(self._pose, self.config.gimbal_lock)

    @property
    def roll(self) -> float:
        return self.rpy[0]

    @property
    def pitch(self) -> float:
        # Pitch is always defined, even at gimbal lock
        return pose_to_rpy(self._pose, "nan")[1]

    @property
    def yaw(self) -> float:
        return self.rpy[2]

    @property
    def prop_angles(self) -> NDArray[np.float64]:
        """Rotor angles [rad], shape (4,)."""
        return self._prop_angles.copy()

    @property
    def history(self) -> PoseHistory:
        return self._history

    @property
    def scene(self) -> Optional[Scene]:
        return self._scene

    def snapshot(self) -> ConfigSnapshot:
        """Current (pose, prop angles) pair."""
        return ConfigSnapshot(pose=self._pose.copy(), prop_angles=self._prop_angles.copy())

    def prop_transforms(self) -> List[NDArray[np.float64]]:
        """One z-rotation per rotor for the current prop angles."""
        return [rot_z(a) for a in self._prop_angles]

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def _commit(
        self,
        pose: NDArray[np.float64],
        prop_angles: NDArray[np.float64],
    ) -> ConfigSnapshot:
        """Record the current configuration, then replace it."""
        previous = self.snapshot()
        self._history.push(previous)
        self._pose = pose
        self._prop_angles = prop_angles
        self._refresh()
        return previous

    def set_pose(self, pose) -> ConfigSnapshot:
        """
        Replace the body pose.

        Args:
            pose: 4x4 rigid transform

        Returns:
            The snapshot recorded before the change

        Raises:
            ValueError: If pose is not 4x4, has non-finite entries, or is not
                in SE(3) while ``config.validate_pose`` is set
        """
        return self._commit(self._checked(_as_pose(pose)), self._prop_angles.copy())

    def _checked(self, pose: NDArray[np.float64]) -> NDArray[np.float64]:
        """Reject non-finite poses, and non-SE(3) ones when ``validate_pose`` is set."""
        if not np.all(np.isfinite(pose)):
            raise ValueError("Pose must contain only finite values")
        if self.config.validate_pose and not is_rigid_transform(pose):
            raise ValueError("Pose must be a valid rigid body transform (SE(3))")
        return pose

    def _sibling_rpy(self) -> Tuple[float, float, float]:
        # Siblings must be recoverable regardless of the read policy
        return pose_to_rpy(self._pose, "raise")

    def _recompose(self, roll: float, pitch: float, yaw: float) -> ConfigSnapshot:
        if not all(np.isfinite([roll, pitch, yaw])):
            raise ValueError("Roll, pitch and yaw must be finite")
        H = self._checked(compose_pose(self.position, roll, pitch, yaw))
        return self._commit(H, self._prop_angles.copy())

    def set_position(self, position) -> ConfigSnapshot:
        """Move the body origin; orientation is untouched."""
        p = np.array(position, dtype=np.float64).reshape(-1)
        if p.size != 3:
            raise ValueError(f"Position must have 3 elements, got {p.size}")
        if not np.all(np.isfinite(p)):
            raise ValueError("Position must contain only finite values")
        H = self._pose.copy()
        H[0:3, 3] = p
        return self._commit(self._checked(H), self._prop_angles.copy())

    def set_roll(self, roll: float) -> ConfigSnapshot:
        """
        Rotate about body x, keeping the current pitch, yaw and position.

        Raises:
            DegenerateRotationError: If the current pose is gimbal-locked,
                whatever the configured read policy
        """
        _, pitch, yaw = self._sibling_rpy()
        return self._recompose(roll, pitch, yaw)

    def set_pitch(self, pitch: float) -> ConfigSnapshot:
        """Rotate about body y, keeping the current roll, yaw and position."""
        roll, _, yaw = self._sibling_rpy()
        return self._recompose(roll, pitch, yaw)

    def set_yaw(self, yaw: float) -> ConfigSnapshot:
        """Rotate about body z, keeping the current roll, pitch and position."""
        roll, pitch, _ = self._sibling_rpy()
        return self._recompose(roll, pitch, yaw)

    def set_orientation(self, roll: float, pitch: float, yaw: float) -> ConfigSnapshot:
        """Set all three angles at once, keeping the current position."""
        return self._recompose(roll, pitch, yaw)

    def set_prop_angles(self, prop_angles) -> ConfigSnapshot:
        """Replace the four rotor angles [rad]."""
        return self._commit(self._pose.copy(), _as_prop_angles(prop_angles))

    def apply_motion(self, delta_body=None, delta_prop=None) -> ConfigSnapshot:
        """
        Advance the body and props by one increment.

        Args:
            delta_body: Body-frame transform post-multiplied onto the pose,
                shape (4, 4); None leaves the pose unchanged
            delta_prop: Added to the rotor angles, shape (4,); None leaves
                them unchanged

        Returns:
            The snapshot recorded before the change
        """
        H = self._pose.copy()
        if delta_body is not None:
            D = _as_pose(delta_body)
            if self.config.validate_pose and not is_rigid_transform(D):
                raise ValueError("delta_body must be a valid rigid body transform (SE(3))")
            H = H @ D
        angles = self._prop_angles.copy()
        if delta_prop is not None:
            angles = angles + _as_prop_angles(delta_prop)
        return self._commit(self._checked(H), angles)

    def zero(self) -> ConfigSnapshot:
        """Return the body to the origin and all props to zero."""
        return self._commit(np.eye(4), np.zeros(4))

    def undo(self) -> bool:
        """
        Restore the previous configuration.

        Returns:
            True if a snapshot was restored, False if the history was empty
        """
        previous = self._history.pop()
        if previous is None:
            logger.debug("Undo requested with empty history")
            return False
        self._pose = previous.pose
        self._prop_angles = previous.prop_angles
        self._refresh()
        return True

    def clear_history(self) -> None:
        self._history.clear()

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def attach(self, scene: Scene) -> None:
        """Bind a scene and draw the current configuration into it."""
        if not callable(getattr(scene, "update", None)):
            raise TypeError("Specified scene must provide an update(pose, prop_transforms) method.")
        self._scene = scene
        self._refresh()

    def detach(self) -> Optional[Scene]:
        """Unbind the scene without closing it."""
        scene, self._scene = self._scene, None
        return scene

    def close(self) -> None:
        """Release the attached scene, if any."""
        scene = self.detach()
        if scene is not None:
            scene.close()

    def _refresh(self) -> None:
        if self._scene is not None:
            self._scene.update(self._pose.copy(), self.prop_transforms())

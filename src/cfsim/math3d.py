"""
3D math utilities for rigid-body transforms and Euler angles.

Transform convention: 4x4 homogeneous matrices, H maps body-frame points to
the world frame:
    p_world = H @ [p_body, 1]

Euler convention: ZYX (yaw-pitch-roll) with
    H = Translate(p) @ Rz(yaw) @ Ry(pitch) @ Rx(roll)
"""

import math
from typing import Sequence, Tuple

import numpy as np
from numpy.typing import NDArray


# Below this |cos(pitch)| the roll/yaw split is undefined.
GIMBAL_LOCK_TOL = 1e-9

GIMBAL_LOCK_POLICIES = ("raise", "nan")


class DegenerateRotationError(ValueError):
    """Raised when roll and yaw cannot be separated (pitch = +/- pi/2)."""


def rot_x(angle: float) -> NDArray[np.float64]:
    """
    Homogeneous rotation about the x-axis.

    Args:
        angle: Rotation angle [rad]

    Returns:
        Transform, shape (4, 4)
    """
    c, s = math.cos(angle), math.sin(angle)
    return np.array([
        [1.0, 0.0, 0.0, 0.0],
        [0.0,   c,  -s, 0.0],
        [0.0,   s,   c, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ])


def rot_y(angle: float) -> NDArray[np.float64]:
    """
    Homogeneous rotation about the y-axis.

    Args:
        angle: Rotation angle [rad]

    Returns:
        Transform, shape (4, 4)
    """
    c, s = math.cos(angle), math.sin(angle)
    return np.array([
        [  c, 0.0,   s, 0.0],
        [0.0, 1.0, 0.0, 0.0],
        [ -s, 0.0,   c, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ])


def rot_z(angle: float) -> NDArray[np.float64]:
    """
    Homogeneous rotation about the z-axis.

    Args:
        angle: Rotation angle [rad]

    Returns:
        Transform, shape (4, 4)
    """
    c, s = math.cos(angle), math.sin(angle)
    return np.array([
        [  c,  -s, 0.0, 0.0],
        [  s,   c, 0.0, 0.0],
        [0.0, 0.0, 1.0, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ])


def transl(x: float, y: float, z: float) -> NDArray[np.float64]:
    """
    Homogeneous translation.

    Args:
        x, y, z: Translation components

    Returns:
        Transform, shape (4, 4)
    """
    H = np.eye(4)
    H[0:3, 3] = (x, y, z)
    return H


_ELEMENTARY = {
    "xrotate": rot_x,
    "yrotate": rot_y,
    "zrotate": rot_z,
}


def make_transform(*ops: Tuple[str, object]) -> NDArray[np.float64]:
    """
    Compose elementary transforms, post-multiplied in the order given.

    Example:
        make_transform(("translate", [0.1, 0.1, 0.3]),
                       ("zrotate", np.pi / 100),
                       ("xrotate", np.pi / 200))

    Args:
        ops: (name, value) pairs, name one of
             "translate", "xrotate", "yrotate", "zrotate"

    Returns:
        Transform, shape (4, 4)

    Raises:
        ValueError: On an unknown operation name or a malformed translation
    """
    H = np.eye(4)
    for name, value in ops:
        key = name.lower()
        if key == "translate":
            xyz = np.asarray(value, dtype=np.float64).reshape(-1)
            if xyz.size != 3:
                raise ValueError(f"translate expects 3 values, got {xyz.size}")
            H = H @ transl(*xyz)
        elif key in _ELEMENTARY:
            H = H @ _ELEMENTARY[key](float(value))
        else:
            raise ValueError(f'Unexpected transform operation "{name}"')
    return H


def compose_pose(
    position: Sequence[float],
    roll: float,
    pitch: float,
    yaw: float,
) -> NDArray[np.float64]:
    """
    Build a pose from position and ZYX Euler angles.

    Pose = Translate(position) @ Rz(yaw) @ Ry(pitch) @ Rx(roll)

    Args:
        position: Translation, 3 values
        roll: Rotation about body x [rad]
        pitch: Rotation about body y [rad]
        yaw: Rotation about body z [rad]

    Returns:
        Pose, shape (4, 4)
    """
    p = np.asarray(position, dtype=np.float64).reshape(-1)
    if p.size != 3:
        raise ValueError(f"Position must have 3 elements, got {p.size}")
    return transl(*p) @ rot_z(yaw) @ rot_y(pitch) @ rot_x(roll)


def rotation_to_rpy(
    R: NDArray[np.float64],
    on_gimbal_lock: str = "raise",
) -> Tuple[float, float, float]:
    """
    Recover ZYX Euler angles from a rotation matrix.

    Assumes pitch in [-pi/2, pi/2], so cos(pitch) >= 0:
        pitch = asin(-R[2,0])
        yaw   = atan2(R[1,0]/cos(pitch), R[0,0]/cos(pitch))
        roll  = atan2(R[2,1]/cos(pitch), R[2,2]/cos(pitch))

    Args:
        R: Rotation matrix, shape (3, 3) (a 4x4 transform is also accepted)
        on_gimbal_lock: "raise" to raise DegenerateRotationError, "nan" to
            return NaN roll and yaw when cos(pitch) vanishes

    Returns:
        (roll, pitch, yaw) in radians

    Raises:
        DegenerateRotationError: At gimbal lock with on_gimbal_lock="raise"
    """
    if on_gimbal_lock not in GIMBAL_LOCK_POLICIES:
        raise ValueError(f'Unexpected value for "on_gimbal_lock": {on_gimbal_lock!r}')

    R = np.asarray(R, dtype=np.float64)
    # Rounding can push |R[2,0]| just past 1
    pitch = math.asin(float(np.clip(-R[2, 0], -1.0, 1.0)))
    cp = math.cos(pitch)

    if abs(cp) < GIMBAL_LOCK_TOL:
        if on_gimbal_lock == "raise":
            raise DegenerateRotationError(
                f"Gimbal lock: pitch = {pitch:.6f} rad, roll and yaw are undefined"
            )
        return math.nan, pitch, math.nan

    yaw = math.atan2(R[1, 0] / cp, R[0, 0] / cp)
    roll = math.atan2(R[2, 1] / cp, R[2, 2] / cp)
    return roll, pitch, yaw


def pose_to_rpy(
    pose: NDArray[np.float64],
    on_gimbal_lock: str = "raise",
) -> Tuple[float, float, float]:
    """Recover (roll, pitch, yaw) from the rotation block of a 4x4 pose."""
    return rotation_to_rpy(np.asarray(pose)[0:3, 0:3], on_gimbal_lock)


def is_rigid_transform(pose: NDArray[np.float64], tol: float = 1e-6) -> bool:
    """
    Check that a matrix is an element of SE(3).

    Args:
        pose: Candidate transform
        tol: Absolute tolerance

    Returns:
        True if pose is 4x4 with bottom row [0, 0, 0, 1] and an orthonormal
        rotation block of determinant +1
    """
    H = np.asarray(pose, dtype=np.float64)
    if H.shape != (4, 4) or not np.all(np.isfinite(H)):
        return False
    if not np.allclose(H[3], [0.0, 0.0, 0.0, 1.0], atol=tol):
        return False
    R = H[0:3, 0:3]
    if not np.allclose(R @ R.T, np.eye(3), atol=tol):
        return False
    return bool(abs(np.linalg.det(R) - 1.0) < tol)


def wrap_angle_pi(angle: float) -> float:
    """
    Wrap angle to [-pi, pi).

    Args:
        angle: Angle in radians

    Returns:
        Wrapped angle in [-pi, pi)
    """
    return (angle + np.pi) % (2 * np.pi) - np.pi


# ============================================================================
# Self-check (run with: python -m cfsim.math3d)
# ============================================================================

if __name__ == "__main__":
    print("Running math3d checks...")

    H = compose_pose([1.0, 2.0, 3.0], 0.1, -0.2, 0.3)
    assert is_rigid_transform(H), "compose_pose should produce SE(3)"
    assert np.allclose(pose_to_rpy(H), [0.1, -0.2, 0.3]), "RPY roundtrip failed"
    print("  [PASS] compose_pose / pose_to_rpy")

    R = compose_pose([0, 0, 0], -np.pi / 2, -np.pi / 3, -np.pi)
    roll, pitch, yaw = pose_to_rpy(R)
    assert np.isclose(pitch, -np.pi / 3) and np.isclose(roll, -np.pi / 2)
    assert np.isclose(abs(yaw), np.pi)
    print("  [PASS] worked example")

    print("\nAll math3d checks passed!")

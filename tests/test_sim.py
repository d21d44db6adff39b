"""Tests for CrazyflieSim pose accessors, mutators and undo."""

import math

import numpy as np
import pytest

from cfsim.config import SimConfig
from cfsim.math3d import DegenerateRotationError, compose_pose, rot_z, transl
from cfsim.sim import CrazyflieSim


class RecordingScene:
    """Minimal scene that remembers every update."""

    def __init__(self):
        self.updates = []
        self.closed = False

    def update(self, pose, prop_transforms):
        self.updates.append((pose, list(prop_transforms)))

    def close(self):
        self.closed = True


# ---- Construction ------------------------------------------------------------

def test_defaults_are_identity_and_zero():
    sim = CrazyflieSim()
    assert np.allclose(sim.pose, np.eye(4))
    assert np.allclose(sim.prop_angles, np.zeros(4))
    assert sim.rpy == (0.0, 0.0, 0.0)
    assert len(sim.history) == 0


def test_reads_have_no_side_effects():
    sim = CrazyflieSim()
    sim.set_roll(0.3)
    n = len(sim.history)
    _ = sim.roll, sim.pitch, sim.yaw, sim.position, sim.pose, sim.prop_angles
    assert len(sim.history) == n, "Property reads must not record history"


def test_returned_arrays_are_copies():
    sim = CrazyflieSim()
    sim.pose[0, 3] = 99.0
    sim.position[0] = 99.0
    sim.prop_angles[0] = 99.0
    assert np.allclose(sim.pose, np.eye(4))
    assert np.allclose(sim.prop_angles, np.zeros(4))


# ---- Single-field writes -----------------------------------------------------

def test_set_position_keeps_rpy():
    sim = CrazyflieSim()
    sim.set_orientation(0.3, -0.4, 1.2)
    before = sim.rpy
    sim.set_position([10.0, -5.0, 2.5])
    assert np.allclose(sim.position, [10.0, -5.0, 2.5])
    assert np.allclose(sim.rpy, before)


def test_set_roll_keeps_pitch_yaw_position():
    sim = CrazyflieSim()
    sim.set_pose(compose_pose([1.0, 2.0, 3.0], 0.1, 0.5, -2.0))
    sim.set_roll(-1.1)
    roll, pitch, yaw = sim.rpy
    assert roll == pytest.approx(-1.1)
    assert pitch == pytest.approx(0.5)
    assert yaw == pytest.approx(-2.0)
    assert np.allclose(sim.position, [1.0, 2.0, 3.0])


def test_set_pitch_and_yaw():
    sim = CrazyflieSim()
    sim.set_roll(0.2)
    sim.set_pitch(-0.7)
    sim.set_yaw(2.9)
    assert np.allclose(sim.rpy, [0.2, -0.7, 2.9])
    expected = compose_pose([0, 0, 0], 0.2, -0.7, 2.9)
    assert np.allclose(sim.pose, expected)


def test_set_roll_at_gimbal_lock_raises():
    sim = CrazyflieSim()
    sim.set_pitch(np.pi / 2)
    assert sim.pitch == pytest.approx(np.pi / 2)
    with pytest.raises(DegenerateRotationError):
        sim.set_roll(0.1)


def test_gimbal_lock_nan_policy_reads_nan():
    sim = CrazyflieSim(SimConfig(gimbal_lock="nan"))
    sim.set_pitch(-np.pi / 2)
    assert math.isnan(sim.roll) and math.isnan(sim.yaw)
    assert sim.pitch == pytest.approx(-np.pi / 2)


def test_single_angle_write_at_gimbal_lock_raises_under_nan_policy():
    sim = CrazyflieSim(SimConfig(gimbal_lock="nan"))
    sim.set_position([1.0, 2.0, 3.0])
    sim.set_pitch(np.pi / 2)
    locked = sim.pose
    n = len(sim.history)
    for setter in (sim.set_roll, sim.set_pitch, sim.set_yaw):
        with pytest.raises(DegenerateRotationError):
            setter(0.1)
    assert np.all(np.isfinite(sim.pose)), "A NaN pose must never be committed"
    assert np.array_equal(sim.pose, locked)
    assert np.allclose(sim.position, [1.0, 2.0, 3.0])
    assert len(sim.history) == n

    # set_orientation needs no decomposition and leaves the lock
    sim.set_orientation(0.1, 0.2, 0.3)
    assert np.allclose(sim.rpy, [0.1, 0.2, 0.3])


def test_non_finite_angle_rejected():
    sim = CrazyflieSim()
    with pytest.raises(ValueError):
        sim.set_roll(np.nan)
    with pytest.raises(ValueError):
        sim.set_orientation(0.0, np.inf, 0.0)
    assert len(sim.history) == 0



# ---- Validation --------------------------------------------------------------

def test_set_pose_rejects_bad_shape():
    sim = CrazyflieSim()
    with pytest.raises(ValueError):
        sim.set_pose(np.eye(3))
    assert len(sim.history) == 0, "Rejected writes must not record history"


def test_set_pose_rejects_non_rigid():
    sim = CrazyflieSim()
    H = np.eye(4)
    H[0, 0] = 2.0
    with pytest.raises(ValueError):
        sim.set_pose(H)


def test_set_pose_without_validation_accepts_non_rigid():
    sim = CrazyflieSim(SimConfig(validate_pose=False))
    H = np.eye(4)
    H[0, 0] = 2.0
    sim.set_pose(H)
    assert np.allclose(sim.pose, H)


def test_prop_angles_need_four_values():
    sim = CrazyflieSim()
    with pytest.raises(ValueError):
        sim.set_prop_angles([0.0, 1.0, 2.0])
    sim.set_prop_angles([0.1, 0.2, 0.3, 0.4])
    assert np.allclose(sim.prop_angles, [0.1, 0.2, 0.3, 0.4])


def test_position_needs_three_values():
    sim = CrazyflieSim()
    with pytest.raises(ValueError):
        sim.set_position([1.0, 2.0])


def test_non_finite_position_rejected():
    sim = CrazyflieSim()
    with pytest.raises(ValueError):
        sim.set_position([np.nan, 0.0, 0.0])
    assert np.allclose(sim.position, np.zeros(3))
    assert len(sim.history) == 0, "Rejected writes must not record history"


def test_non_finite_pose_rejected_without_validation():
    sim = CrazyflieSim(SimConfig(validate_pose=False))
    H = np.eye(4)
    H[0, 3] = np.inf
    with pytest.raises(ValueError):
        sim.set_pose(H)
    with pytest.raises(ValueError):
        sim.set_position([0.0, np.nan, 0.0])
    assert len(sim.history) == 0



# ---- History / undo ----------------------------------------------------------

def test_mutator_returns_previous_snapshot():
    sim = CrazyflieSim()
    sim.set_position([1.0, 0.0, 0.0])
    prev = sim.set_prop_angles([1.0, 1.0, 1.0, 1.0])
    assert np.allclose(prev.pose[0:3, 3], [1.0, 0.0, 0.0])
    assert np.allclose(prev.prop_angles, np.zeros(4))


def test_undo_restores_each_prior_pose_then_noops():
    sim = CrazyflieSim()
    poses = [sim.pose]
    for i in range(5):
        sim.set_pose(compose_pose([i, 2 * i, 0], 0.1 * i, -0.05 * i, 0.2 * i))
        poses.append(sim.pose)

    for expected in reversed(poses[:-1]):
        assert sim.undo()
        assert np.array_equal(sim.pose, expected), "Undo must restore the exact prior pose"

    assert len(sim.history) == 0
    assert not sim.undo(), "Undo on empty history is a no-op"
    assert np.array_equal(sim.pose, poses[0])


def test_undo_restores_prop_angles_with_pose():
    sim = CrazyflieSim()
    sim.set_prop_angles([1.0, 2.0, 3.0, 4.0])
    sim.set_yaw(0.5)
    sim.set_prop_angles([0.0, 0.0, 0.0, 9.0])

    sim.undo()
    assert np.allclose(sim.prop_angles, [1.0, 2.0, 3.0, 4.0])
    assert sim.yaw == pytest.approx(0.5)
    sim.undo()
    assert sim.yaw == pytest.approx(0.0)
    assert np.allclose(sim.prop_angles, [1.0, 2.0, 3.0, 4.0])


def test_undo_does_not_record_history():
    sim = CrazyflieSim()
    sim.set_roll(0.1)
    sim.set_roll(0.2)
    sim.undo()
    assert len(sim.history) == 1


def test_bounded_history_drops_oldest():
    sim = CrazyflieSim(SimConfig(history_capacity=3))
    for i in range(1, 6):
        sim.set_position([float(i), 0.0, 0.0])
    assert len(sim.history) == 3
    xs = [s.pose[0, 3] for s in sim.history]
    assert xs == [2.0, 3.0, 4.0]


def test_unbounded_history():
    sim = CrazyflieSim(SimConfig(history_capacity=None))
    for i in range(2000):
        sim.set_prop_angles([i, 0, 0, 0])
    assert len(sim.history) == 2000


def test_zero_resets_pose_and_props():
    sim = CrazyflieSim()
    sim.set_pose(compose_pose([5, 5, 5], 0.3, 0.2, 0.1))
    sim.set_prop_angles([1, 2, 3, 4])
    sim.zero()
    assert np.allclose(sim.pose, np.eye(4))
    assert np.allclose(sim.prop_angles, np.zeros(4))
    assert sim.undo()
    assert np.allclose(sim.prop_angles, [1, 2, 3, 4])


def test_clear_history():
    sim = CrazyflieSim()
    sim.set_roll(0.4)
    sim.clear_history()
    assert not sim.undo()
    assert sim.roll == pytest.approx(0.4)


# ---- Motion ------------------------------------------------------------------

def test_apply_motion_post_multiplies_body_delta():
    sim = CrazyflieSim()
    delta = transl(1.0, 0.0, 0.0) @ rot_z(np.pi / 2)
    sim.apply_motion(delta, [0.1, 0.2, 0.3, 0.4])
    sim.apply_motion(delta, [0.1, 0.2, 0.3, 0.4])
    # Second step moves along the rotated body x-axis
    assert np.allclose(sim.position, [1.0, 1.0, 0.0])
    assert abs(sim.yaw) == pytest.approx(np.pi)
    assert np.allclose(sim.prop_angles, [0.2, 0.4, 0.6, 0.8])
    assert len(sim.history) == 2


def test_apply_motion_rejects_non_rigid_delta():
    sim = CrazyflieSim()
    with pytest.raises(ValueError):
        sim.apply_motion(np.diag([2.0, 1.0, 1.0, 1.0]))


# ---- Scene binding -----------------------------------------------------------

def test_attached_scene_receives_updates():
    scene = RecordingScene()
    sim = CrazyflieSim(scene=scene)
    assert len(scene.updates) == 1, "attach draws the current configuration"

    sim.set_prop_angles([np.pi / 2, 0, 0, 0])
    pose, props = scene.updates[-1]
    assert np.allclose(pose, np.eye(4))
    assert len(props) == 4
    assert np.allclose(props[0], rot_z(np.pi / 2))

    sim.undo()
    assert np.allclose(scene.updates[-1][1][0], np.eye(4))


def test_close_releases_scene():
    scene = RecordingScene()
    sim = CrazyflieSim(scene=scene)
    sim.close()
    assert scene.closed
    assert sim.scene is None
    sim.set_roll(0.1)
    assert len(scene.updates) == 1


def test_attach_rejects_invalid_scene():
    sim = CrazyflieSim()
    with pytest.raises(TypeError):
        sim.attach(object())

"""
cfsim: Crazyflie pose bookkeeping and 3D visualization

Rigid-body pose with ZYX Euler accessors, propeller angles, undo history,
and a matplotlib scene for an articulated Crazyflie.
"""

from cfsim.config import SimConfig
from cfsim.history import ConfigSnapshot, PoseHistory
from cfsim.math3d import DegenerateRotationError, compose_pose, pose_to_rpy
from cfsim.params import CrazyflieModel, get_model
from cfsim.sim import CrazyflieSim
from cfsim.version import __version__, toolbox_version

__all__ = [
    "SimConfig",
    "ConfigSnapshot",
    "PoseHistory",
    "DegenerateRotationError",
    "compose_pose",
    "pose_to_rpy",
    "CrazyflieModel",
    "get_model",
    "CrazyflieSim",
    "toolbox_version",
]

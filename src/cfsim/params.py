"""
Crazyflie vehicle geometry.

All lengths in millimetres, body frame: +x forward, +y left, +z up.

Crazyflie Nano (v1.0), "+" configuration:

                    +x (forward)
                         ^
                      [M1]
                        |
      +y <-- [M4] ------+------ [M2]
                        |
                      [M3]

Crazyflie 2.0, "x" configuration:

                    +x (forward)
                         ^
               [M4]             [M1]
                    \\         /
      +y <--          ---+---
                    /         \\
               [M3]             [M2]
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List

import numpy as np
from numpy.typing import NDArray


@dataclass
class CrazyflieModel:
    """
    Geometry of one Crazyflie variant.

    Attributes:
        name: Model identifier
        rotor_offsets: Rotor hub positions in body frame [mm], shape (4, 3)
        spin_dirs: +1 for counter-clockwise, -1 for clockwise, shape (4,)
        prop_radius: Propeller radius [mm]
        hub_size: Half-extents of the central board [mm], shape (3,)
        configuration: "+" or "x"
    """

    name: str
    rotor_offsets: NDArray[np.float64]  # (4, 3)
    spin_dirs: NDArray[np.float64]  # (4,)
    prop_radius: float = 22.5
    hub_size: NDArray[np.float64] = field(
        default_factory=lambda: np.array([14.0, 14.0, 1.0])
    )
    configuration: str = "+"

    def __post_init__(self) -> None:
        self.rotor_offsets = np.asarray(self.rotor_offsets, dtype=np.float64)
        self.spin_dirs = np.asarray(self.spin_dirs, dtype=np.float64)
        self.hub_size = np.asarray(self.hub_size, dtype=np.float64)
        if self.rotor_offsets.shape != (4, 3):
            raise ValueError(
                f"rotor_offsets must have shape (4, 3), got {self.rotor_offsets.shape}"
            )
        if self.spin_dirs.shape != (4,):
            raise ValueError(f"spin_dirs must have shape (4,), got {self.spin_dirs.shape}")

    @property
    def arm_length(self) -> float:
        """Hub-to-rotor distance in the xy-plane [mm]."""
        return float(np.linalg.norm(self.rotor_offsets[0, 0:2]))


def crazyflie_v1() -> CrazyflieModel:
    """Crazyflie Nano (v1.0) quadcopter."""
    return CrazyflieModel(
        name="v1",
        rotor_offsets=np.array([
            [ 43.0,   0.0, 7.9],
            [  0.0, -43.0, 7.9],
            [-43.0,   0.0, 7.9],
            [  0.0,  43.0, 7.9],
        ]),
        spin_dirs=np.array([1.0, -1.0, 1.0, -1.0]),  # CCW, CW, CCW, CW
        configuration="+",
    )


def crazyflie_v2() -> CrazyflieModel:
    """Crazyflie 2.0 quadcopter (92 mm motor-to-motor diagonal)."""
    d = 46.0 / np.sqrt(2.0)
    return CrazyflieModel(
        name="v2",
        rotor_offsets=np.array([
            [ d, -d, 7.9],
            [-d, -d, 7.9],
            [-d,  d, 7.9],
            [ d,  d, 7.9],
        ]),
        spin_dirs=np.array([1.0, -1.0, 1.0, -1.0]),
        hub_size=np.array([15.0, 15.0, 1.0]),
        configuration="x",
    )


# ---------------------------------------------------------------------------
# Model registry
# ---------------------------------------------------------------------------

_MODELS: Dict[str, Callable[[], CrazyflieModel]] = {
    "v1": crazyflie_v1,
    "v2": crazyflie_v2,
}


def get_model(name: str) -> CrazyflieModel:
    """Return a fresh model by name. Raises ``KeyError`` if unknown."""
    return _MODELS[name]()


def list_models() -> List[str]:
    """Return sorted list of registered model names."""
    return sorted(_MODELS)

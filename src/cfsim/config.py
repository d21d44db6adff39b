"""
Reproducible configuration for a Crazyflie visualization session.

Provides a dataclass container, JSON save/load, and an ``argparse`` override
layer so that a session can be reconstructed from a single JSON file.
"""

from __future__ import annotations

import argparse
import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from cfsim.math3d import GIMBAL_LOCK_POLICIES
from cfsim.params import list_models


COMPLEXITIES = ("Simple", "Complex")
RESOLUTIONS = ("Coarse", "Fine")


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:].lower()


@dataclass
class SimConfig:
    """Options for ``CrazyflieSim`` and its scene.

    Undo depth is capped at ``history_capacity`` snapshots (1000 by default);
    older snapshots are discarded. Set it to None for unlimited undo.
    """

    # Vehicle
    model: str = "v1"                  # "v1" | "v2"

    # Display
    complexity: str = "Simple"         # "Simple" | "Complex"
    resolution: str = "Coarse"         # "Coarse" | "Fine"
    prop_alignment: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0, 0.0])
    tag: str = "Crazyflie"

    # State bookkeeping
    history_capacity: Optional[int] = 1000   # None = unbounded
    gimbal_lock: str = "raise"               # "raise" | "nan"
    validate_pose: bool = True

    def __post_init__(self) -> None:
        """Normalize case and validate every field."""
        if self.model not in list_models():
            raise ValueError(f'Unexpected value for "model" parameter: {self.model!r}')

        self.complexity = _capitalize(str(self.complexity))
        if self.complexity not in COMPLEXITIES:
            raise ValueError(f'Unexpected value for "complexity" parameter: {self.complexity!r}')

        self.resolution = _capitalize(str(self.resolution))
        if self.resolution not in RESOLUTIONS:
            raise ValueError(f'Unexpected value for "resolution" parameter: {self.resolution!r}')

        self.prop_alignment = [float(a) for a in self.prop_alignment]
        if len(self.prop_alignment) != 4:
            raise ValueError(
                f'"prop_alignment" must have 4 elements, got {len(self.prop_alignment)}'
            )

        if self.history_capacity is not None:
            self.history_capacity = int(self.history_capacity)
            if self.history_capacity <= 0:
                raise ValueError(
                    f'"history_capacity" must be positive or None, got {self.history_capacity}'
                )

        if self.gimbal_lock not in GIMBAL_LOCK_POLICIES:
            raise ValueError(f'Unexpected value for "gimbal_lock" parameter: {self.gimbal_lock!r}')


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def config_to_dict(cfg: SimConfig) -> Dict[str, Any]:
    return asdict(cfg)


def config_from_dict(data: Dict[str, Any]) -> SimConfig:
    known = {f.name for f in fields(SimConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
    return SimConfig(**data)


def save_config(cfg: SimConfig, path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(config_to_dict(cfg), f, indent=2)


def load_config(path: str | Path) -> SimConfig:
    with open(Path(path)) as f:
        return config_from_dict(json.load(f))


# ---------------------------------------------------------------------------
# Argparse loader
# ---------------------------------------------------------------------------

def add_config_args(parser: argparse.ArgumentParser) -> None:
    g = parser.add_argument_group("Configuration")
    g.add_argument("--config", type=str, default=None, help="JSON config file")
    g.add_argument("--model", type=str, default=None, help=" | ".join(list_models()))
    g.add_argument("--complexity", type=str, default=None, help="Simple | Complex")
    g.add_argument("--resolution", type=str, default=None, help="Coarse | Fine")
    g.add_argument("--prop-alignment", type=float, nargs=4, default=None,
                   metavar=("A1", "A2", "A3", "A4"))
    g.add_argument("--tag", type=str, default=None)
    g.add_argument("--history-capacity", type=int, default=None,
                   help="Maximum undo depth (default: 1000; oldest snapshots are dropped)")
    g.add_argument("--unbounded-history", action="store_true",
                   help="Keep every snapshot (overrides --history-capacity)")
    g.add_argument("--gimbal-lock", type=str, default=None, choices=GIMBAL_LOCK_POLICIES)
    g.add_argument("--no-validate-pose", dest="validate_pose",
                   action="store_false", default=None)


_OVERRIDE_KEYS = [
    "model", "complexity", "resolution", "prop_alignment", "tag",
    "history_capacity", "gimbal_lock", "validate_pose",
]


def config_from_args(args: argparse.Namespace) -> SimConfig:
    """Build a :class:`SimConfig` from defaults (or ``--config``) + CLI overrides.

    Only flags that were explicitly given override the base values.
    """
    base = load_config(args.config) if getattr(args, "config", None) else SimConfig()
    data = config_to_dict(base)
    for key in _OVERRIDE_KEYS:
        val = getattr(args, key, None)
        if val is not None:
            data[key] = val
    if getattr(args, "unbounded_history", False):
        data["history_capacity"] = None
    # Re-run validation on the merged values
    return SimConfig(**data)

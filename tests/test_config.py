"""Tests for configuration validation, JSON round trip and CLI overrides."""

import argparse
import json

import pytest

from cfsim.config import (
    SimConfig,
    add_config_args,
    config_from_args,
    load_config,
    save_config,
)


def _parse(argv):
    parser = argparse.ArgumentParser()
    add_config_args(parser)
    return parser.parse_args(argv)


def test_defaults():
    cfg = SimConfig()
    assert cfg.model == "v1"
    assert cfg.complexity == "Simple"
    assert cfg.resolution == "Coarse"
    assert cfg.history_capacity == 1000
    assert cfg.gimbal_lock == "raise"


def test_case_is_normalized():
    cfg = SimConfig(complexity="complex", resolution="FINE")
    assert cfg.complexity == "Complex"
    assert cfg.resolution == "Fine"


@pytest.mark.parametrize("kwargs", [
    {"model": "v3"},
    {"complexity": "Detailed"},
    {"resolution": "Medium"},
    {"prop_alignment": [0.0, 0.0]},
    {"history_capacity": 0},
    {"gimbal_lock": "clamp"},
])
def test_invalid_values_raise(kwargs):
    with pytest.raises(ValueError):
        SimConfig(**kwargs)


def test_save_load_roundtrip(tmp_path):
    cfg = SimConfig(model="v2", complexity="Complex", history_capacity=None,
                    prop_alignment=[0.1, 0.2, 0.3, 0.4])
    path = tmp_path / "sub" / "cfg.json"
    save_config(cfg, path)
    assert load_config(path) == cfg


def test_load_rejects_unknown_keys(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"model": "v1", "speed": 3}))
    with pytest.raises(ValueError, match="speed"):
        load_config(path)


def test_only_explicit_flags_override(tmp_path):
    path = tmp_path / "cfg.json"
    save_config(SimConfig(model="v2", resolution="Fine", validate_pose=False), path)

    cfg = config_from_args(_parse(["--config", str(path), "--complexity", "complex"]))
    assert cfg.model == "v2"
    assert cfg.resolution == "Fine"
    assert cfg.complexity == "Complex"
    assert cfg.validate_pose is False


def test_flag_overrides():
    cfg = config_from_args(_parse([
        "--model", "v2",
        "--prop-alignment", "0", "0.5", "1", "1.5",
        "--gimbal-lock", "nan",
        "--no-validate-pose",
        "--unbounded-history",
    ]))
    assert cfg.model == "v2"
    assert cfg.prop_alignment == [0.0, 0.5, 1.0, 1.5]
    assert cfg.gimbal_lock == "nan"
    assert cfg.validate_pose is False
    assert cfg.history_capacity is None


def test_invalid_flag_value_raises():
    with pytest.raises(ValueError):
        config_from_args(_parse(["--resolution", "ultra"]))


def test_default_undo_depth_is_capped_and_documented():
    parser = argparse.ArgumentParser()
    add_config_args(parser)
    assert "undo depth" in " ".join(parser.format_help().split())
    assert "1000" in SimConfig.__doc__

    from cfsim.sim import CrazyflieSim

    sim = CrazyflieSim()
    for i in range(1005):
        sim.set_prop_angles([float(i), 0.0, 0.0, 0.0])
    assert len(sim.history) == 1000
    assert next(iter(sim.history)).prop_angles[0] == 4.0

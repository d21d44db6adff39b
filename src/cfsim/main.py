"""
Main entry point for the Crazyflie visualization demo.

Run with: python -m cfsim.main

Examples:
    python -m cfsim.main                        # Animate a v1 Crazyflie
    python -m cfsim.main --model v2 --complexity complex
    python -m cfsim.main --steps 50 --undo 10   # Animate, then step back
    python -m cfsim.main --no-plot              # Print state only
    python -m cfsim.main --version
"""

import argparse
import logging
from typing import Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt

from cfsim.config import SimConfig, add_config_args, config_from_args, save_config
from cfsim.math3d import make_transform
from cfsim.sim import CrazyflieSim
from cfsim.version import toolbox_version


# Per-frame increments: translate [mm], then yaw and roll [rad]
DELTA_BODY = make_transform(
    ("translate", [0.1, 0.1, 0.3]),
    ("zrotate", np.pi / 100),
    ("xrotate", np.pi / 200),
)
DELTA_PROP = np.array([np.pi / 7, np.pi / 8, np.pi / 9, np.pi / 10])


def print_state(sim: CrazyflieSim, label: str) -> None:
    """Print position, Euler angles and prop angles."""
    roll, pitch, yaw = sim.rpy
    print(f"\n{label}:")
    print(f"  Position:    {np.array2string(sim.position, precision=2)}")
    print(f"  Roll/Pitch/Yaw: "
          f"{np.rad2deg(roll):.2f} / {np.rad2deg(pitch):.2f} / {np.rad2deg(yaw):.2f} deg")
    print(f"  Prop angles: {np.array2string(sim.prop_angles, precision=3)} rad")
    print(f"  History:     {len(sim.history)} snapshot(s)")


def run_demo(
    cfg: SimConfig,
    steps: int,
    undo_steps: int = 0,
    show_plots: bool = True,
    pause: float = 0.02,
) -> CrazyflieSim:
    """
    Animate props and body motion, then optionally undo.

    Args:
        cfg: Session configuration
        steps: Number of animation frames
        undo_steps: Number of frames to undo afterwards
        show_plots: Draw the scene and history plots
        pause: Seconds between frames when plotting

    Returns:
        The CrazyflieSim after the run
    """
    sim = CrazyflieSim(cfg)

    scene = None
    if show_plots:
        from cfsim.plots import CrazyflieScene

        scene = CrazyflieScene(
            model=sim.model,
            complexity=cfg.complexity,
            resolution=cfg.resolution,
            prop_alignment=cfg.prop_alignment,
            tag=cfg.tag,
        )
        sim.attach(scene)

    print_state(sim, "Initial")

    for _ in range(steps):
        sim.apply_motion(DELTA_BODY, DELTA_PROP)
        if scene is not None:
            scene.draw(pause)

    print_state(sim, f"After {steps} step(s)")

    if undo_steps > 0:
        undone = 0
        for _ in range(undo_steps):
            if not sim.undo():
                break
            undone += 1
            if scene is not None:
                scene.draw(pause)
        print_state(sim, f"After {undone} undo(s)")

    if show_plots:
        from cfsim.plots import plot_position_history, plot_rpy_history

        snapshots = list(sim.history) + [sim.snapshot()]
        plot_rpy_history(snapshots, f"{cfg.tag}: Euler Angles")
        plot_position_history(snapshots, f"{cfg.tag}: Position History")

    return sim


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Crazyflie pose visualization demo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m cfsim.main                      # Animate a v1 Crazyflie
  python -m cfsim.main --model v2 --no-plot # Print state only
        """,
    )
    add_config_args(parser)

    parser.add_argument(
        "--steps", "-n",
        type=int,
        default=100,
        help="Number of animation frames (default: 100)",
    )
    parser.add_argument(
        "--undo",
        type=int,
        default=0,
        help="Number of frames to undo after the animation (default: 0)",
    )
    parser.add_argument(
        "--no-plot",
        action="store_true",
        help="Disable plot display",
    )
    parser.add_argument(
        "--save-config",
        type=str,
        default=None,
        help="Write the effective configuration to this JSON file",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version information and exit",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    toolbox_version(verbose=True)
    if args.version:
        return 0

    try:
        cfg = config_from_args(args)
    except ValueError as exc:
        parser.error(str(exc))

    if args.save_config:
        save_config(cfg, args.save_config)
        print(f"\nConfig written to {args.save_config}")

    print(f"\nModel: {cfg.model}  Complexity: {cfg.complexity}  Resolution: {cfg.resolution}")

    show_plots = not args.no_plot
    run_demo(cfg, steps=args.steps, undo_steps=args.undo, show_plots=show_plots)

    if show_plots:
        print("\nDisplaying plots... Close plot windows to exit.")
        plt.show()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""
Visualization of a Crazyflie configuration and its history.

``CrazyflieScene`` draws an articulated quadcopter (body triad, arms, hub and
four rotors) into a matplotlib 3D axes and repositions it from a pose and a
set of rotor transforms. The history plots show how the configuration
evolved over the undo stack.
"""

from typing import Iterable, List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

import matplotlib.pyplot as plt
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from mpl_toolkits.mplot3d.axes3d import Axes3D
from mpl_toolkits.mplot3d.art3d import Poly3DCollection

from cfsim.history import ConfigSnapshot
from cfsim.math3d import pose_to_rpy, rot_z, transl
from cfsim.params import CrazyflieModel, crazyflie_v1


def _transform_points(H: NDArray[np.float64], pts: NDArray[np.float64]) -> NDArray[np.float64]:
    """Apply a 4x4 transform to an (N, 3) point array."""
    return pts @ H[0:3, 0:3].T + H[0:3, 3]


def _box_faces(center: Sequence[float], half: Sequence[float]) -> List[NDArray[np.float64]]:
    """Six quadrilateral faces of an axis-aligned box."""
    cx, cy, cz = center
    hx, hy, hz = half
    v = np.array([
        [cx - hx, cy - hy, cz - hz],
        [cx + hx, cy - hy, cz - hz],
        [cx + hx, cy + hy, cz - hz],
        [cx - hx, cy + hy, cz - hz],
        [cx - hx, cy - hy, cz + hz],
        [cx + hx, cy - hy, cz + hz],
        [cx + hx, cy + hy, cz + hz],
        [cx - hx, cy + hy, cz + hz],
    ])
    idx = [
        [0, 1, 2, 3],  # bottom
        [4, 5, 6, 7],  # top
        [0, 1, 5, 4],
        [2, 3, 7, 6],
        [1, 2, 6, 5],
        [4, 7, 3, 0],
    ]
    return [v[i] for i in idx]


def _validate_axes(ax) -> Axes3D:
    if not isinstance(ax, Axes3D):
        raise TypeError("Specified axes handle must be valid.")
    return ax


class CrazyflieScene:
    """
    Articulated Crazyflie drawn in a matplotlib 3D axes.

    Rotor i is mounted at ``transl(offset_i) @ rot_z(alignment_i)`` in the
    body frame and spun by the i-th prop transform passed to ``update``.
    """

    TRIAD_SCALE = 35.0
    TRIAD_COLORS = ("r", "g", "b")
    DISC_SEGMENTS = {"Coarse": 12, "Fine": 48}
    BODY_COLOR = (0.7, 0.7, 0.7)
    BOARD_COLOR = (0.1, 0.1, 0.1)
    BATTERY_COLOR = (0.6, 0.8, 0.8)
    MOTOR_COLOR = (0.6, 0.6, 0.6)
    PROP_COLORS = {1.0: "tab:red", -1.0: "tab:blue"}  # CCW, CW

    def __init__(
        self,
        model: Optional[CrazyflieModel] = None,
        ax: Optional[Axes] = None,
        complexity: str = "Simple",
        resolution: str = "Coarse",
        prop_alignment: Sequence[float] = (0.0, 0.0, 0.0, 0.0),
        tag: str = "Crazyflie",
    ):
        """
        Args:
            model: Vehicle geometry (default: Crazyflie v1)
            ax: Existing 3D axes to draw into; a new figure is created if None
            complexity: "Simple" (hub + arms) or "Complex" (adds board,
                battery and motor pods)
            resolution: "Coarse" or "Fine" rotor disc tessellation
            prop_alignment: Static rotor mounting angles [rad], 4 values
            tag: Label applied to the figure title

        Raises:
            TypeError: If ax is given but is not a matplotlib 3D axes
            ValueError: On unexpected complexity, resolution or alignment
        """
        if complexity not in ("Simple", "Complex"):
            raise ValueError('Unexpected value for "complexity" parameter.')
        if resolution not in self.DISC_SEGMENTS:
            raise ValueError('Unexpected value for "resolution" parameter.')
        alignment = np.asarray(prop_alignment, dtype=np.float64).reshape(-1)
        if alignment.size != 4:
            raise ValueError(f"prop_alignment must have 4 elements, got {alignment.size}")

        self.model = model if model is not None else crazyflie_v1()
        self.complexity = complexity
        self.resolution = resolution
        self.tag = tag
        self.rotor_bases = [
            transl(*offset) @ rot_z(a)
            for offset, a in zip(self.model.rotor_offsets, alignment)
        ]

        self._owns_figure = False
        if ax is None:
            fig = plt.figure(figsize=(9.6, 5.4))
            ax = fig.add_subplot(111, projection="3d")
            self._owns_figure = True
            self._style_axes(ax)
        self.ax = _validate_axes(ax)

        self._pose = np.eye(4)
        self._prop_transforms = [np.eye(4) for _ in range(4)]
        self._build_geometry()
        self._artists: list = []
        self._create_artists()
        self.update(self._pose, self._prop_transforms)

    @property
    def figure(self) -> Figure:
        return self.ax.get_figure()

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def _style_axes(self, ax: Axes3D) -> None:
        lim = 1.5 * (self.model.arm_length + self.model.prop_radius)
        ax.set_xlim(-lim, lim)
        ax.set_ylim(-lim, lim)
        ax.set_zlim(-lim, lim)
        ax.set_xlabel("x")
        ax.set_ylabel("y")
        ax.set_zlabel("z")
        ax.set_box_aspect((1, 1, 1))
        ax.set_title(self.tag)

    def _build_geometry(self) -> None:
        """Body-frame geometry; transformed on every update."""
        m = self.model
        n = self.DISC_SEGMENTS[self.resolution]
        theta = np.linspace(0.0, 2 * np.pi, n, endpoint=False)
        r = m.prop_radius

        self.triad_pts = np.vstack([np.zeros(3), self.TRIAD_SCALE * np.eye(3)])
        self.arm_pts = [np.vstack([np.zeros(3), off]) for off in m.rotor_offsets]

        self.body_faces = _box_faces((0.0, 0.0, 0.0), m.hub_size)
        if self.complexity == "Complex":
            h = m.hub_size
            self.body_faces += _box_faces((0.0, 0.0, 2.0 * h[2]), (0.8 * h[0], 0.8 * h[1], h[2]))
            self.battery_faces = _box_faces((0.0, 0.0, -3.0 * h[2]), (0.8 * h[0], 0.45 * h[1], 2.0 * h[2]))
            self.motor_faces = []
            for off in m.rotor_offsets:
                self.motor_faces += _box_faces((off[0], off[1], off[2] / 2.0),
                                               (3.5, 3.5, off[2] / 2.0))
        else:
            self.battery_faces = []
            self.motor_faces = []

        # Rotor-local geometry
        self.disc_pts = np.column_stack([r * np.cos(theta), r * np.sin(theta), np.zeros(n)])
        self.blade_pts = np.array([[-r, 0.0, 0.0], [r, 0.0, 0.0]])

    def _create_artists(self) -> None:
        ax = self.ax

        self.triad_lines = [
            ax.plot([], [], [], color=c, linewidth=3)[0] for c in self.TRIAD_COLORS
        ]
        self.arm_lines = [
            ax.plot([], [], [], color="k", linewidth=2)[0] for _ in self.arm_pts
        ]

        self.body_poly = Poly3DCollection(self.body_faces, facecolor=self.BODY_COLOR,
                                          edgecolor="k", linewidths=0.3)
        ax.add_collection3d(self.body_poly)

        self.extra_polys = []
        if self.complexity == "Complex":
            battery = Poly3DCollection(self.battery_faces, facecolor=self.BATTERY_COLOR,
                                       edgecolor="k", linewidths=0.3)
            motors = Poly3DCollection(self.motor_faces, facecolor=self.MOTOR_COLOR,
                                      edgecolor="k", linewidths=0.3)
            ax.add_collection3d(battery)
            ax.add_collection3d(motors)
            self.extra_polys = [(battery, self.battery_faces), (motors, self.motor_faces)]

        self.disc_polys = []
        self.blade_lines = []
        for spin in self.model.spin_dirs:
            color = self.PROP_COLORS.get(float(spin), "tab:gray")
            disc = Poly3DCollection([self.disc_pts], facecolor=color, alpha=0.25,
                                    edgecolor=color)
            ax.add_collection3d(disc)
            self.disc_polys.append(disc)
            self.blade_lines.append(ax.plot([], [], [], color=color, linewidth=2)[0])

        self._artists = (
            self.triad_lines + self.arm_lines + [self.body_poly]
            + [p for p, _ in self.extra_polys] + self.disc_polys + self.blade_lines
        )

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(
        self,
        pose: NDArray[np.float64],
        prop_transforms: Sequence[NDArray[np.float64]],
    ) -> None:
        """
        Reposition every artist.

        Args:
            pose: Body pose in world frame, shape (4, 4)
            prop_transforms: Four rotor spin transforms, each shape (4, 4)
        """
        H = np.asarray(pose, dtype=np.float64)
        if H.shape != (4, 4):
            raise ValueError(f"Pose must be a 4x4 array, got shape {H.shape}")
        props = [np.asarray(P, dtype=np.float64) for P in prop_transforms]
        if len(props) != 4:
            raise ValueError(f"Expected 4 prop transforms, got {len(props)}")
        self._pose = H.copy()
        self._prop_transforms = props

        triad = _transform_points(H, self.triad_pts)
        for i, line in enumerate(self.triad_lines):
            seg = triad[[0, i + 1]]
            line.set_data_3d(seg[:, 0], seg[:, 1], seg[:, 2])

        for line, pts in zip(self.arm_lines, self.arm_pts):
            seg = _transform_points(H, pts)
            line.set_data_3d(seg[:, 0], seg[:, 1], seg[:, 2])

        self.body_poly.set_verts([_transform_points(H, f) for f in self.body_faces])
        for poly, faces in self.extra_polys:
            poly.set_verts([_transform_points(H, f) for f in faces])

        for base, spin, disc, blade in zip(self.rotor_bases, props,
                                           self.disc_polys, self.blade_lines):
            G = H @ base @ spin
            disc.set_verts([_transform_points(G, self.disc_pts)])
            seg = _transform_points(G, self.blade_pts)
            blade.set_data_3d(seg[:, 0], seg[:, 1], seg[:, 2])

    def draw(self, pause: float = 0.0) -> None:
        """Flush pending changes to the canvas."""
        self.figure.canvas.draw_idle()
        if pause > 0:
            plt.pause(pause)

    # ------------------------------------------------------------------
    # Axes management / teardown
    # ------------------------------------------------------------------

    def set_axes(self, ax: Axes) -> None:
        """Move the drawing into another 3D axes."""
        ax = _validate_axes(ax)
        if ax is self.ax:
            return
        old_fig = self.figure if self._owns_figure else None
        self._remove_artists()
        self.ax = ax
        self._owns_figure = False
        self._create_artists()
        self.update(self._pose, self._prop_transforms)
        if old_fig is not None and old_fig is not ax.get_figure():
            plt.close(old_fig)

    def set_figure(self, fig: Figure) -> None:
        """Move the drawing into a new 3D axes on another figure."""
        if not isinstance(fig, Figure):
            raise TypeError("Specified figure handle must be valid.")
        if fig is self.figure:
            return
        self.set_axes(fig.add_subplot(111, projection="3d"))
        self._style_axes(self.ax)

    def _remove_artists(self) -> None:
        for artist in self._artists:
            artist.remove()
        self._artists = []

    def close(self) -> None:
        """Remove all artists, and the figure if this scene created it."""
        self._remove_artists()
        if self._owns_figure:
            plt.close(self.figure)
            self._owns_figure = False


# ---------------------------------------------------------------------------
# History plots
# ---------------------------------------------------------------------------

def plot_rpy_history(
    history: Iterable[ConfigSnapshot],
    title: str = "Euler Angles",
    show: bool = False,
) -> Figure:
    """
    Plot roll, pitch and yaw over the snapshot sequence.

    Gimbal-locked snapshots have undefined roll and yaw and appear as gaps.

    Args:
        history: Snapshots, oldest first
        title: Plot title
        show: If True, call plt.show()

    Returns:
        matplotlib Figure
    """
    snapshots = list(history)
    euler = np.array([pose_to_rpy(s.pose, "nan") for s in snapshots]).reshape(-1, 3)
    euler_deg = np.rad2deg(euler)
    idx = np.arange(len(snapshots))

    fig, axes = plt.subplots(3, 1, figsize=(10, 8), sharex=True)

    labels = ['Roll (φ)', 'Pitch (θ)', 'Yaw (ψ)']
    colors = ['r', 'g', 'b']

    for i, (ax, label, color) in enumerate(zip(axes, labels, colors)):
        ax.plot(idx, euler_deg[:, i], color=color, linewidth=1.5, marker='.')
        ax.set_ylabel(f'{label} [deg]')
        ax.grid(True, alpha=0.3)

    axes[-1].set_xlabel('Snapshot')
    axes[0].set_title(title)

    fig.tight_layout()

    if show:
        plt.show()

    return fig


def plot_position_history(
    history: Iterable[ConfigSnapshot],
    title: str = "Position History",
    show: bool = False,
) -> Figure:
    """
    Plot the 3D path of the body origin over the snapshot sequence.

    Args:
        history: Snapshots, oldest first
        title: Plot title
        show: If True, call plt.show()

    Returns:
        matplotlib Figure
    """
    p = np.array([s.pose[0:3, 3] for s in history]).reshape(-1, 3)

    fig = plt.figure(figsize=(10, 8))
    ax = fig.add_subplot(111, projection='3d')

    ax.plot(p[:, 0], p[:, 1], p[:, 2], 'm.-', linewidth=1.0)

    if len(p) > 0:
        ax.scatter(*p[0], c='g', s=100, label='Start', marker='o')
        ax.scatter(*p[-1], c='r', s=100, label='End', marker='x')
        ax.legend()

    ax.set_xlabel('x')
    ax.set_ylabel('y')
    ax.set_zlabel('z')
    ax.set_title(title)

    fig.tight_layout()

    if show:
        plt.show()

    return fig

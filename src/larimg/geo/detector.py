"""Detector components needed to project 3D points onto wire planes.

This currently handles:
- :class:`WirePlane` which maps (y, z) coordinates onto a wire index
- :class:`TPCGeometry` which maps x coordinates and times onto a tick
"""

from dataclasses import dataclass
from typing import List

import numpy as np

__all__ = ["WirePlane", "TPCGeometry"]


@dataclass
class WirePlane:
    """Planar set of parallel, equally spaced readout wires.

    Attributes
    ----------
    wire_pitch : float
        Distance between two consecutive wires in cm
    wire_angle : float
        Angle of the pitch direction with respect to the z axis in the (z, y)
        plane, in radians. An angle of 0 corresponds to vertical wires.
    first_wire_pos : float
        Coordinate of the first wire along the pitch direction in cm
    num_wires : int
        Number of wires in the plane
    """

    wire_pitch: float
    wire_angle: float = 0.0
    first_wire_pos: float = 0.0
    num_wires: int = 0

    def __post_init__(self):
        """Check that the plane is sensible."""
        assert self.wire_pitch > 0.0, "The wire pitch must be positive."
        assert self.num_wires >= 0, "The number of wires cannot be negative."

    @property
    def pitch_dir(self):
        """Unit vector along the pitch direction in (y, z) coordinates.

        Returns
        -------
        np.ndarray
            (2) Pitch direction
        """
        return np.array([np.sin(self.wire_angle), np.cos(self.wire_angle)])

    def wire_coordinate(self, position):
        """Fractional wire index of a point.

        Parameters
        ----------
        position : np.ndarray
            (3) Point coordinates (x, y, z)

        Returns
        -------
        float
            Wire coordinate in units of wire pitch
        """
        pitch_pos = np.dot(np.asarray(position)[1:3], self.pitch_dir)

        return (pitch_pos - self.first_wire_pos) / self.wire_pitch

    def nearest_wire(self, position):
        """Index of the wire closest to a point.

        Parameters
        ----------
        position : np.ndarray
            (3) Point coordinates (x, y, z)

        Returns
        -------
        int
            Wire index, -1 if the point projects outside of the plane
        """
        wire = int(np.floor(self.wire_coordinate(position) + 0.5))
        if wire < 0 or wire >= self.num_wires:
            return -1

        return wire


@dataclass
class TPCGeometry:
    """Box-shaped TPC with a set of wire planes on one anode.

    Attributes
    ----------
    cryo : int
        Cryostat index
    tpc : int
        TPC index within the cryostat
    lower : np.ndarray
        (3) Lower bounds of the active volume in cm
    upper : np.ndarray
        (3) Upper bounds of the active volume in cm
    anode_x : float
        Position of the anode along the drift axis in cm
    drift_dir : int
        Direction in which electrons drift along x (+1 or -1)
    planes : List[WirePlane]
        Wire planes read out in this TPC
    drift_velocity : float
        Electron drift velocity in cm/us
    tick_period : float
        Duration of one TPC tick in us
    trigger_offset : float
        Tick at which a charge produced on the anode at time 0 is recorded
    """

    cryo: int
    tpc: int
    lower: np.ndarray
    upper: np.ndarray
    anode_x: float
    drift_dir: int = 1
    planes: List[WirePlane] = None
    drift_velocity: float = 0.16
    tick_period: float = 0.5
    trigger_offset: float = 0.0

    def __post_init__(self):
        """Cast the boundaries, build the wire planes from dictionaries."""
        self.lower = np.asarray(self.lower, dtype=np.float64)
        self.upper = np.asarray(self.upper, dtype=np.float64)
        assert self.drift_dir in (-1, 1), "The drift direction must be +1 or -1."

        planes = self.planes if self.planes is not None else []
        self.planes = [p if isinstance(p, WirePlane) else WirePlane(**p) for p in planes]

    @property
    def num_planes(self):
        """Number of wire planes in the TPC."""
        return len(self.planes)

    def contains(self, position):
        """Checks whether a point is inside the active volume.

        Parameters
        ----------
        position : np.ndarray
            (3) Point coordinates

        Returns
        -------
        bool
            `True` if the point is inside of the TPC
        """
        position = np.asarray(position)[:3]

        return bool(np.all(position >= self.lower) and np.all(position <= self.upper))

    def x_to_tick(self, x):
        """Tick at which the charge produced at a given x is recorded.

        Parameters
        ----------
        x : float
            Drift coordinate in cm

        Returns
        -------
        float
            Tick
        """
        drift_time = abs(self.anode_x - x) / self.drift_velocity

        return drift_time / self.tick_period + self.trigger_offset

"""Module with a minimal wire readout geometry.

The geometry is a collection of box-shaped TPCs, each of which reads its
charge out on a set of planar wire planes. It only provides what is needed
to project true 3D points onto the (wire, tick) image of one plane.
"""

from dataclasses import dataclass

import numpy as np

from larimg.utils.config import load_config

from .detector import TPCGeometry

__all__ = ["Geometry", "WireDrift"]


@dataclass
class WireDrift:
    """Projection of a 3D point onto a wire plane.

    Attributes
    ----------
    wire : int
        Wire index in the plane
    drift : float
        Drift coordinate in ticks
    tpc : int
        TPC index the point belongs to
    cryo : int
        Cryostat index the point belongs to
    """

    wire: int
    drift: float
    tpc: int
    cryo: int


class Geometry:
    """Collection of TPCs and their wire planes.

    Attributes
    ----------
    tpcs : List[TPCGeometry]
        List of TPCs in the detector
    tdc_offset : int
        TDC count which corresponds to tick 0 of the readout window
    """

    def __init__(self, tpcs, tdc_offset=0):
        """Initialize the geometry.

        Parameters
        ----------
        tpcs : List[Union[TPCGeometry, dict]]
            List of TPCs (or their configuration)
        tdc_offset : int, default 0
            TDC count which corresponds to tick 0 of the readout window
        """
        self.tpcs = [t if isinstance(t, TPCGeometry) else TPCGeometry(**t) for t in tpcs]
        self.tdc_offset = tdc_offset

    @classmethod
    def from_config(cls, cfg):
        """Builds a geometry from a configuration block or file.

        Parameters
        ----------
        cfg : Union[str, dict]
            Path to a YAML geometry file or geometry configuration

        Returns
        -------
        Geometry
            Geometry object
        """
        if isinstance(cfg, str):
            cfg = load_config(cfg)
            cfg = cfg.get("geometry", cfg)

        return cls(**cfg)

    @property
    def num_tpcs(self):
        """Total number of TPCs in the detector."""
        return len(self.tpcs)

    def get_tpc(self, tpc, cryo):
        """Fetches a TPC by its identifiers.

        Parameters
        ----------
        tpc : int
            TPC index
        cryo : int
            Cryostat index

        Returns
        -------
        TPCGeometry
            TPC object, `None` if it does not exist
        """
        for t in self.tpcs:
            if t.tpc == tpc and t.cryo == cryo:
                return t

        return None

    def find_tpc(self, position):
        """Finds the TPC which contains a point.

        Parameters
        ----------
        position : np.ndarray
            (3) Point coordinates

        Returns
        -------
        TPCGeometry
            TPC which contains the point, `None` if there is none
        """
        for t in self.tpcs:
            if t.contains(position):
                return t

        return None

    def project(self, position, time, plane):
        """Projects a 3D point onto a wire plane of the TPC which contains it.

        The charge produced at `time` reaches the anode later than charge
        produced at time 0, which is equivalent to moving the point away
        from the anode by the distance drifted in that time.

        Parameters
        ----------
        position : np.ndarray
            (3) Point coordinates in cm
        time : float
            Time at which the charge is produced in ns
        plane : int
            Plane index within the TPC

        Returns
        -------
        WireDrift
            Projected point, `None` if it is outside of the readout
        """
        position = np.array(position[:3], dtype=np.float64)
        tpc = self.find_tpc(position)
        if tpc is None or plane >= tpc.num_planes:
            return None

        wire = tpc.planes[plane].nearest_wire(position)
        if wire < 0:
            return None

        dx = time * 1e-3 * tpc.drift_velocity
        position[0] -= tpc.drift_dir * dx
        drift = tpc.x_to_tick(position[0])

        return WireDrift(wire, drift, tpc.tpc, tpc.cryo)

    def tdc_to_tick(self, tdc):
        """Converts a TDC count into a readout tick.

        Parameters
        ----------
        tdc : Union[int, np.ndarray]
            TDC count(s)

        Returns
        -------
        Union[int, np.ndarray]
            Tick(s)
        """
        return tdc - self.tdc_offset

"""Module with data class objects which represent reconstructed hits and the
higher-level objects (clusters, tracks) built out of them.
"""

from dataclasses import dataclass

import numpy as np

from .base import DataBase

__all__ = ["Hit", "Cluster", "Track"]


@dataclass(eq=False)
class Hit(DataBase):
    """Reconstructed hit on one wire.

    Attributes
    ----------
    id : int
        Index of the hit in its collection
    channel : int
        Readout channel number
    cryo : int
        Cryostat index
    tpc : int
        TPC index
    plane : int
        Plane index within the TPC
    wire : int
        Wire index within the plane
    peak_time : float
        Time of the hit peak in ticks
    rms : float
        Width of the hit pulse in ticks
    start_tick : int
        First tick of the hit
    end_tick : int
        Last tick of the hit
    integral : float
        Integral of the fitted pulse in ADC x ticks
    summed_adc : float
        Sum of the ADC samples in the hit window
    """

    id: int = -1
    channel: int = -1
    cryo: int = 0
    tpc: int = 0
    plane: int = 0
    wire: int = -1
    peak_time: float = -1.0
    rms: float = -1.0
    start_tick: int = -1
    end_tick: int = -1
    integral: float = -1.0
    summed_adc: float = -1.0

    product_name = "hit"

    @property
    def plane_id(self):
        """(cryostat, TPC, plane) triplet the hit belongs to.

        Returns
        -------
        Tuple[int, int, int]
            Plane identifier
        """
        return (self.cryo, self.tpc, self.plane)


@dataclass(eq=False)
class Cluster(DataBase):
    """2D cluster of hits in one plane.

    Attributes
    ----------
    id : int
        Index of the cluster in its collection
    cryo : int
        Cryostat index
    tpc : int
        TPC index
    plane : int
        Plane index within the TPC
    hit_index : np.ndarray
        (N) Indexes of the hits which make up the cluster
    """

    id: int = -1
    cryo: int = 0
    tpc: int = 0
    plane: int = 0
    hit_index: np.ndarray = None

    product_name = "cluster"

    _var_length_attrs = (("hit_index", np.int64),)

    @property
    def size(self):
        """Number of hits in the cluster."""
        return len(self.hit_index)


@dataclass(eq=False)
class Track(DataBase):
    """Reconstructed track, with the hits associated to it.

    Attributes
    ----------
    id : int
        Index of the track in its collection
    hit_index : np.ndarray
        (N) Indexes of the hits associated with the track (all planes)
    """

    id: int = -1
    hit_index: np.ndarray = None

    product_name = "track"

    _var_length_attrs = (("hit_index", np.int64),)

"""Module with a data class object which represents a deconvolved wire signal.

This copies the internal structure of :class:`recob::Wire`: the signal is
stored as a list of regions of interest (ROIs), each of which is a contiguous
range of ticks with their sample values.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from .base import DataBase

__all__ = ["Wire"]


@dataclass(eq=False)
class Wire(DataBase):
    """Deconvolved signal of one readout channel.

    Attributes
    ----------
    id : int
        Index of the wire in its collection
    channel : int
        Readout channel number
    view : int
        Wire view (orientation) index
    cryo : int
        Cryostat index
    tpc : int
        TPC index
    plane : int
        Plane index within the TPC
    wire : int
        Wire index within the plane
    rois : List[Tuple[int, np.ndarray]]
        Regions of interest, as (first tick, samples) pairs
    num_ticks : int
        Length of the full (dense) waveform in ticks
    """

    id: int = -1
    channel: int = -1
    view: int = -1
    cryo: int = 0
    tpc: int = 0
    plane: int = 0
    wire: int = -1
    rois: List[Tuple[int, np.ndarray]] = field(default_factory=list)
    num_ticks: int = 0

    product_name = "wire"

    def __post_init__(self):
        """Cast the ROI samples to single-precision arrays."""
        super().__post_init__()
        self.rois = [
            (int(start), np.asarray(values, dtype=np.float32))
            for start, values in self.rois
        ]

    @classmethod
    def from_signal(cls, signal, threshold=None, **kwargs):
        """Builds a wire from a dense waveform.

        Parameters
        ----------
        signal : np.ndarray
            (T) Dense waveform
        threshold : float, optional
            If provided, only ticks above threshold are kept in ROIs. Otherwise
            the whole waveform is stored as a single ROI.
        **kwargs : dict, optional
            Other wire attributes

        Returns
        -------
        Wire
            Wire object
        """
        signal = np.asarray(signal, dtype=np.float32)
        if threshold is None:
            rois = [(0, signal)] if len(signal) else []
            return cls(rois=rois, num_ticks=len(signal), **kwargs)

        # Group contiguous ticks above threshold into ROIs
        above = np.flatnonzero(signal > threshold)
        rois = []
        if len(above):
            breaks = np.flatnonzero(np.diff(above) > 1) + 1
            for group in np.split(above, breaks):
                rois.append((int(group[0]), signal[group[0] : group[-1] + 1]))

        return cls(rois=rois, num_ticks=len(signal), **kwargs)

    @property
    def num_rois(self):
        """Number of regions of interest on the wire.

        Returns
        -------
        int
            Number of ROIs
        """
        return len(self.rois)

    @property
    def roi_ranges(self):
        """Tick ranges covered by each region of interest.

        Returns
        -------
        List[Tuple[int, int]]
            (first, last + 1) tick of each ROI
        """
        return [(start, start + len(values)) for start, values in self.rois]

    def signal(self, num_ticks=None):
        """Returns the dense waveform, with zeros outside of the ROIs.

        Parameters
        ----------
        num_ticks : int, optional
            Length of the waveform. Defaults to the stored waveform length.

        Returns
        -------
        np.ndarray
            (T) Dense waveform
        """
        if num_ticks is None:
            num_ticks = self.num_ticks
            for start, end in self.roi_ranges:
                num_ticks = max(num_ticks, end)

        dense = np.zeros(num_ticks, dtype=np.float32)
        for start, values in self.rois:
            end = min(start + len(values), num_ticks)
            if end > start:
                dense[start:end] = values[: end - start]

        return dense

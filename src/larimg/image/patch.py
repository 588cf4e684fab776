"""Extracts 2D patches around (wire, drift) points of a plane image.

The extractor keeps the last patch it built in a single cache slot, keyed by
the cell the query point falls into. Which points share a cell is decided by
a policy object:
- :class:`RawPatchPolicy` when patches are downscaled on the fly, as the
  patch depends on the exact query tick;
- :class:`DownscaledPatchPolicy` when the whole view is downscaled, as all
  ticks of a drift window then produce the same patch.

The wire index is never downscaled.
"""

import numpy as np

from larimg.errors import ConfigError

__all__ = ["PatchExtractor", "RawPatchPolicy", "DownscaledPatchPolicy"]


class RawPatchPolicy:
    """Maps a query point onto its (wire, tick) cell."""

    name = "raw"

    def cell(self, wire, drift):
        """Cell a query point belongs to.

        Parameters
        ----------
        wire : int
            Wire index
        drift : float
            Drift coordinate in ticks

        Returns
        -------
        Tuple[int, int]
            Cell identifier
        """
        return (int(wire), int(drift))


class DownscaledPatchPolicy:
    """Maps a query point onto its (wire, drift window) cell."""

    name = "downscaled"

    def __init__(self, drift_window):
        """Initialize the policy.

        Parameters
        ----------
        drift_window : int
            Number of ticks per downscaled drift bin
        """
        self.drift_window = drift_window

    def cell(self, wire, drift):
        """Cell a query point belongs to.

        Parameters
        ----------
        wire : int
            Wire index
        drift : float
            Drift coordinate in ticks

        Returns
        -------
        Tuple[int, int]
            Cell identifier
        """
        return (int(wire), int(drift // self.drift_window))


class PatchExtractor:
    """Builds patches from the image held by a :class:`DataProvider`.

    Attributes
    ----------
    provider : DataProvider
        Holds the plane image
    patch_size_w : int
        Patch size in wires
    patch_size_d : int
        Patch size in downscaled drift bins
    policy : Union[RawPatchPolicy, DownscaledPatchPolicy]
        Same-patch policy
    """

    def __init__(self, provider, patch_size_w, patch_size_d, margin_w=None, margin_d=None):
        """Initialize the patch extractor.

        Parameters
        ----------
        provider : DataProvider
            Holds the plane image
        patch_size_w : int
            Patch size in wires
        patch_size_d : int
            Patch size in downscaled drift bins
        margin_w : int, optional
            Minimum distance in wires between a point of the fiducial region
            and the plane edges. By default, the region is the set of points
            whose patch fits entirely within the plane.
        margin_d : int, optional
            Minimum distance in drift bins between a point of the fiducial
            region and the readout window edges
        """
        if patch_size_w < 1 or patch_size_d < 1:
            raise ConfigError(
                "The patch size must be positive in both dimensions, got "
                f"({patch_size_w}, {patch_size_d})."
            )

        self.provider = provider
        self.patch_size_w = int(patch_size_w)
        self.patch_size_d = int(patch_size_d)

        # Store the (low, high) fiducial margins
        self._margin_w = self._margins(self.patch_size_w, margin_w)
        self._margin_d = self._margins(self.patch_size_d, margin_d)

        # Pick the same-patch policy and the way patches are filled
        if provider.downscale_full_view:
            self.policy = DownscaledPatchPolicy(provider.drift_window)
            self._fill = provider.patch_by_copy
        else:
            self.policy = RawPatchPolicy()
            self._fill = provider.patch_by_downscaling

        # Initialize the cache slot
        self._patch = np.zeros((self.patch_size_w, self.patch_size_d), dtype=np.float32)
        self._cell = None

    @staticmethod
    def _margins(size, margin):
        """Low and high fiducial margins for one dimension."""
        if margin is None:
            return (size // 2, (size + 1) // 2)

        assert margin >= 0, "Fiducial margins cannot be negative."

        return (int(margin), int(margin))

    @property
    def patch_shape(self):
        """(patch_size_w, patch_size_d) shape of the patches."""
        return (self.patch_size_w, self.patch_size_d)

    @property
    def patch_size(self):
        """Number of values in a flattened patch."""
        return self.patch_size_w * self.patch_size_d

    @property
    def current_patch(self):
        """Read-only view of the cached patch, `None` if there is none."""
        if self._cell is None:
            return None

        view = self._patch.view()
        view.flags.writeable = False

        return view

    def reset(self):
        """Invalidates the cached patch."""
        self._cell = None

    def is_current_patch(self, wire, drift):
        """Checks whether a point maps onto the cached patch.

        Parameters
        ----------
        wire : int
            Wire index
        drift : float
            Drift coordinate in ticks

        Returns
        -------
        bool
            `True` if the cached patch is the patch of this point
        """
        return self._cell is not None and self._cell == self.policy.cell(wire, drift)

    def is_same_patch(self, wire1, drift1, wire2, drift2):
        """Checks whether two points map onto the same patch.

        Parameters
        ----------
        wire1 : int
            Wire index of the first point
        drift1 : float
            Drift coordinate of the first point in ticks
        wire2 : int
            Wire index of the second point
        drift2 : float
            Drift coordinate of the second point in ticks

        Returns
        -------
        bool
            `True` if both points share a patch
        """
        return self.policy.cell(wire1, drift1) == self.policy.cell(wire2, drift2)

    def is_inside_fiducial_region(self, wire, drift):
        """Checks whether a point is far enough from the edges of the view.

        Parameters
        ----------
        wire : int
            Wire index
        drift : float
            Drift coordinate in ticks

        Returns
        -------
        bool
            `True` if the point is inside of the fiducial region
        """
        low_w, high_w = self._margin_w
        if wire < low_w or wire + high_w > self.provider.num_wires:
            return False

        low_d, high_d = self._margin_d
        if self.provider.downscale_full_view:
            scaled = int(drift // self.provider.drift_window)
            return scaled >= low_d and scaled + high_d <= self.provider.num_cached_drifts

        window = self.provider.drift_window
        tick = int(drift)

        return (
            tick >= low_d * window
            and tick + high_d * window <= self.provider.num_cached_drifts
        )

    def fill_patch(self, wire, drift, out):
        """Fills a caller-provided buffer with the patch of a point.

        The cache slot is left untouched.

        Parameters
        ----------
        wire : int
            Wire index
        drift : float
            Drift coordinate in ticks
        out : np.ndarray
            (patch_size_w, patch_size_d) Buffer to fill

        Returns
        -------
        bool
            `True` if the patch was filled
        """
        return self._fill(wire, drift, self.patch_size_w, self.patch_size_d, out)

    def patch_at(self, wire, drift):
        """Returns the patch centered on a point.

        If the point maps onto the cached patch, the cached patch is returned
        as is. Parts of the patch outside of the view are zero-padded.

        Parameters
        ----------
        wire : int
            Wire index
        drift : float
            Drift coordinate in ticks

        Returns
        -------
        np.ndarray
            (patch_size_w, patch_size_d) Read-only patch
        """
        cell = self.policy.cell(wire, drift)
        if self._cell != cell:
            self._fill(wire, drift, self.patch_size_w, self.patch_size_d, self._patch)
            self._cell = cell

        return self.current_patch

    @staticmethod
    def flatten_patch(patch):
        """Flattens a patch, wire-major.

        Parameters
        ----------
        patch : np.ndarray
            (W, D) Patch

        Returns
        -------
        np.ndarray
            (W * D) Flattened copy of the patch
        """
        return np.array(patch, dtype=np.float32).reshape(-1)

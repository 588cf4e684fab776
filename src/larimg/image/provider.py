"""Holds the (wire, drift) ADC image of one wire plane.

The provider converts the deconvolved wire signals of one plane into a dense
2D array of scaled ADC values. The drift dimension can be downscaled either
once for the whole view (`downscale_full_view`), or on the fly when patches
are extracted from a full-resolution view.

ADC values are scaled as follows:
- multiplied by the amplitude calibration constant of the plane, if any;
- clamped to the `[adc_min, adc_max]` range;
- mapped linearly onto the `[out_min, out_max]` range.
"""

import numba as nb
import numpy as np

from larimg.errors import ConfigError
from larimg.utils.logger import logger

__all__ = ["DataProvider", "DOWNSCALE_FUNCS"]


@nb.njit(cache=True)
def downscale_maxpool(
    adc: nb.float32[:], window: nb.int64, dst_size: nb.int64
) -> nb.float32[:]:
    """Keeps the maximum value of each window of ticks.

    Parameters
    ----------
    adc : np.ndarray
        (T) Waveform
    window : int
        Number of ticks per downscaled bin
    dst_size : int
        Number of downscaled bins

    Returns
    -------
    np.ndarray
        (dst_size) Downscaled waveform, zero past the end of the input
    """
    result = np.zeros(dst_size, dtype=np.float32)
    stop = min(dst_size, len(adc) // window)
    for i in range(stop):
        k0 = i * window
        max_adc = adc[k0]
        for k in range(k0 + 1, k0 + window):
            if adc[k] > max_adc:
                max_adc = adc[k]
        result[i] = max_adc

    return result


@nb.njit(cache=True)
def downscale_maxmean(
    adc: nb.float32[:], window: nb.int64, dst_size: nb.int64
) -> nb.float32[:]:
    """Averages the maximum of each window of ticks with its two neighbours.

    The neighbours are taken from the full waveform, so they may belong to the
    adjacent windows.

    Parameters
    ----------
    adc : np.ndarray
        (T) Waveform
    window : int
        Number of ticks per downscaled bin
    dst_size : int
        Number of downscaled bins

    Returns
    -------
    np.ndarray
        (dst_size) Downscaled waveform, zero past the end of the input
    """
    result = np.zeros(dst_size, dtype=np.float32)
    stop = min(dst_size, len(adc) // window)
    for i in range(stop):
        k0 = i * window
        k_max = k0
        for k in range(k0 + 1, k0 + window):
            if adc[k] > adc[k_max]:
                k_max = k

        total = adc[k_max]
        n = 1
        if k_max > 0:
            total += adc[k_max - 1]
            n += 1
        if k_max + 1 < len(adc):
            total += adc[k_max + 1]
            n += 1

        result[i] = total / n

    return result


@nb.njit(cache=True)
def downscale_mean(
    adc: nb.float32[:], window: nb.int64, dst_size: nb.int64
) -> nb.float32[:]:
    """Averages each window of ticks.

    Parameters
    ----------
    adc : np.ndarray
        (T) Waveform
    window : int
        Number of ticks per downscaled bin
    dst_size : int
        Number of downscaled bins

    Returns
    -------
    np.ndarray
        (dst_size) Downscaled waveform, zero past the end of the input
    """
    result = np.zeros(dst_size, dtype=np.float32)
    stop = min(dst_size, len(adc) // window)
    for i in range(stop):
        k0 = i * window
        total = 0.0
        for k in range(k0, k0 + window):
            total += adc[k]
        result[i] = total / window

    return result


DOWNSCALE_FUNCS = {
    "maxpool": downscale_maxpool,
    "maxmean": downscale_maxmean,
    "mean": downscale_mean,
}


class DataProvider:
    """Builds and holds the scaled (wire, drift) image of one plane.

    Attributes
    ----------
    adc_min : float
        Lower bound of the ADC range kept before scaling
    adc_max : float
        Upper bound of the ADC range kept before scaling
    out_min : float
        Scaled value of `adc_min`
    out_max : float
        Scaled value of `adc_max`
    drift_window : int
        Number of ticks per downscaled drift bin
    downscale_full_view : bool
        If `True`, the whole view is stored downscaled
    """

    def __init__(
        self,
        adc_min=-10.0,
        adc_max=250.0,
        out_min=-5.0,
        out_max=15.0,
        drift_window=10,
        downscale_fn="maxpool",
        downscale_full_view=False,
        ampl_calib=None,
        lifetime=None,
        tick_period=0.5,
        noise_sigma=0.0,
        seed=None,
    ):
        """Initialize the data provider.

        Parameters
        ----------
        adc_min : float, default -10.
            Lower bound of the ADC range kept before scaling
        adc_max : float, default 250.
            Upper bound of the ADC range kept before scaling
        out_min : float, default -5.
            Scaled value of `adc_min`
        out_max : float, default 15.
            Scaled value of `adc_max`
        drift_window : int, default 10
            Number of ticks per downscaled drift bin
        downscale_fn : str, default 'maxpool'
            Downscaling function, one of 'maxpool', 'maxmean' or 'mean'
        downscale_full_view : bool, default False
            If `True`, downscale the whole view once when it is set
        ampl_calib : List[float], optional
            Amplitude calibration constant of each plane
        lifetime : float, optional
            Electron lifetime in us. If provided, the signal is corrected for
            the charge lost while drifting.
        tick_period : float, default 0.5
            Duration of one tick in us
        noise_sigma : float, default 0.
            Width of the gaussian noise added to the scaled view
        seed : int, optional
            Seed of the noise random number generator
        """
        # Check and store the scaling parameters
        if adc_max <= adc_min:
            raise ConfigError(
                f"The ADC range is empty: [{adc_min}, {adc_max}]."
            )
        if drift_window < 1:
            raise ConfigError(f"The drift window must be positive, got {drift_window}.")
        if downscale_fn not in DOWNSCALE_FUNCS:
            raise ConfigError(
                f"Downscale function not recognized: {downscale_fn}. Must be one "
                f"of {list(DOWNSCALE_FUNCS.keys())}."
            )

        self.adc_min = adc_min
        self.adc_max = adc_max
        self.out_min = out_min
        self.out_max = out_max
        self.drift_window = int(drift_window)
        self.downscale_fn = downscale_fn
        self.downscale_full_view = downscale_full_view
        self._scale = (out_max - out_min) / (adc_max - adc_min)
        self._downscale = DOWNSCALE_FUNCS[downscale_fn]

        # Store the signal corrections
        self.ampl_calib = ampl_calib
        self.lifetime = lifetime
        self.tick_period = tick_period
        self.noise_sigma = noise_sigma
        self._rng = np.random.default_rng(seed)

        # Initialize an empty view
        self._plane, self._tpc, self._cryo = -1, -1, -1
        self._num_ticks = 0
        self._wire_drift_data = np.empty((0, 0), dtype=np.float32)
        self._wire_channels = np.empty(0, dtype=np.int64)
        self._adc_zero = self.scale_adc(np.zeros(1, dtype=np.float32))[0]

    @property
    def plane(self):
        """Plane index of the current view."""
        return self._plane

    @property
    def tpc(self):
        """TPC index of the current view."""
        return self._tpc

    @property
    def cryo(self):
        """Cryostat index of the current view."""
        return self._cryo

    @property
    def num_wires(self):
        """Number of wires in the current view."""
        return self._wire_drift_data.shape[0]

    @property
    def num_ticks(self):
        """Number of full-resolution ticks in the current view."""
        return self._num_ticks

    @property
    def num_scaled_drifts(self):
        """Number of downscaled drift bins in the current view."""
        return self._num_ticks // self.drift_window

    @property
    def num_cached_drifts(self):
        """Number of drift bins stored in the current view."""
        return self._wire_drift_data.shape[1]

    @property
    def wire_channels(self):
        """Channel of each wire of the view, -1 where no wire was set."""
        return self._wire_channels

    @property
    def wire_drift_data(self):
        """(num_wires, num_cached_drifts) scaled ADC image."""
        return self._wire_drift_data

    @property
    def adc_zero(self):
        """Scaled value of a null ADC sample."""
        return self._adc_zero

    def scale_adc(self, adc, plane=None):
        """Applies the amplitude calibration and the ADC scaling.

        Parameters
        ----------
        adc : np.ndarray
            (T) Raw ADC samples
        plane : int, optional
            Plane index, used to pick the amplitude calibration constant

        Returns
        -------
        np.ndarray
            (T) Scaled samples
        """
        adc = np.asarray(adc, dtype=np.float32)
        if self.ampl_calib is not None and plane is not None and plane >= 0:
            adc = adc * self.ampl_calib[plane]

        adc = np.clip(adc, self.adc_min, self.adc_max)

        return (self.out_min + self._scale * (adc - self.adc_min)).astype(np.float32)

    def lifetime_factors(self, num_ticks):
        """Per-tick correction factors for the charge lost while drifting.

        Parameters
        ----------
        num_ticks : int
            Number of ticks

        Returns
        -------
        np.ndarray
            (num_ticks) Multiplicative correction factors
        """
        if self.lifetime is None or self.lifetime <= 0:
            return np.ones(num_ticks, dtype=np.float32)

        ticks = np.arange(num_ticks, dtype=np.float64)

        return np.exp(ticks * self.tick_period / self.lifetime).astype(np.float32)

    def set_wire_drift_data(
        self, wires, plane, tpc, cryo, num_wires=None, num_ticks=None, bad_channels=None
    ):
        """Builds the scaled image of one plane from its wire signals.

        Parameters
        ----------
        wires : List[Wire]
            Wires of the event (all planes)
        plane : int
            Plane index
        tpc : int
            TPC index
        cryo : int
            Cryostat index
        num_wires : int, optional
            Number of wires in the plane. Inferred from the wires if not given.
        num_ticks : int, optional
            Number of ticks in the readout window. Inferred from the wires if
            not given.
        bad_channels : Set[int], optional
            Channels which should be left empty

        Returns
        -------
        bool
            `True` if at least one wire was set
        """
        # Select the wires which belong to the requested plane
        selected = [
            w for w in wires if w.plane == plane and w.tpc == tpc and w.cryo == cryo
        ]
        if num_wires is None:
            num_wires = max([w.wire + 1 for w in selected], default=0)
        if num_ticks is None:
            num_ticks = max([len(w.signal()) for w in selected], default=0)

        # Reset the view
        self._plane, self._tpc, self._cryo = plane, tpc, cryo
        self._num_ticks = int(num_ticks)
        num_cached = self.num_scaled_drifts if self.downscale_full_view else num_ticks
        self._wire_drift_data = np.full(
            (num_wires, num_cached), self._adc_zero, dtype=np.float32
        )
        self._wire_channels = np.full(num_wires, -1, dtype=np.int64)

        # Fill the view, one wire at a time
        bad_channels = bad_channels if bad_channels is not None else set()
        factors = self.lifetime_factors(num_ticks)
        num_set = 0
        for w in selected:
            if w.wire < 0 or w.wire >= num_wires:
                logger.warning(
                    "Wire %d is outside of the plane (%d wires), skipped.",
                    w.wire,
                    num_wires,
                )
                continue
            if w.channel in bad_channels:
                continue

            adc = w.signal()
            if len(adc) < num_ticks:
                logger.warning(
                    "Wire %d has only %d ticks, %d expected. Skipped.",
                    w.wire,
                    len(adc),
                    num_ticks,
                )
                continue

            self._wire_drift_data[w.wire] = self.process_adc(adc[:num_ticks], factors)
            self._wire_channels[w.wire] = w.channel
            num_set += 1

        if num_set == 0:
            logger.error(
                "No wire set for plane %d, TPC %d, cryostat %d.", plane, tpc, cryo
            )
            return False

        # Add noise to the view, if requested
        if self.noise_sigma > 0.0:
            noise = self._rng.normal(0.0, self.noise_sigma, self._wire_drift_data.shape)
            self._wire_drift_data += noise.astype(np.float32)

        return True

    def process_adc(self, adc, factors=None):
        """Corrects, downscales (if needed) and scales one wire waveform.

        Parameters
        ----------
        adc : np.ndarray
            (T) Raw waveform
        factors : np.ndarray, optional
            (T) Lifetime correction factors

        Returns
        -------
        np.ndarray
            (num_cached_drifts) Scaled waveform
        """
        adc = np.ascontiguousarray(adc, dtype=np.float32)
        if factors is not None:
            adc = adc * factors[: len(adc)]

        if self.downscale_full_view:
            adc = self._downscale(adc, self.drift_window, self.num_scaled_drifts)

        return self.scale_adc(adc, self._plane)

    def patch_by_downscaling(self, wire, drift, size_w, size_d, out):
        """Fills a patch downscaled on the fly from the full-resolution view.

        The patch covers `size_d * drift_window` ticks starting
        `(size_d // 2) * drift_window` ticks before the query tick.

        Parameters
        ----------
        wire : int
            Wire index of the patch center
        drift : float
            Drift tick of the patch center
        size_w : int
            Patch size in wires
        size_d : int
            Patch size in downscaled drift bins
        out : np.ndarray
            (size_w, size_d) Patch buffer to fill

        Returns
        -------
        bool
            `True` if the patch was filled
        """
        window = self.drift_window
        length = size_d * window
        w0 = int(wire) - size_w // 2
        d0 = int(drift) - (size_d // 2) * window
        t0, t1 = max(d0, 0), min(d0 + length, self.num_cached_drifts)

        out.fill(self._adc_zero)
        segment = np.empty(length, dtype=np.float32)
        for i in range(size_w):
            w = w0 + i
            if w < 0 or w >= self.num_wires:
                continue

            segment.fill(self._adc_zero)
            if t1 > t0:
                segment[t0 - d0 : t1 - d0] = self._wire_drift_data[w, t0:t1]
            out[i] = self._downscale(segment, window, size_d)

        return True

    def patch_by_copy(self, wire, drift, size_w, size_d, out):
        """Fills a patch by copying a window of the stored view.

        Parameters
        ----------
        wire : int
            Wire index of the patch center
        drift : float
            Drift tick of the patch center
        size_w : int
            Patch size in wires
        size_d : int
            Patch size in stored drift bins
        out : np.ndarray
            (size_w, size_d) Patch buffer to fill

        Returns
        -------
        bool
            `True` if the patch was filled
        """
        if self.downscale_full_view:
            center = int(drift // self.drift_window)
        else:
            center = int(drift)

        w0 = int(wire) - size_w // 2
        d0 = center - size_d // 2
        ws0, ws1 = max(w0, 0), min(w0 + size_w, self.num_wires)
        ds0, ds1 = max(d0, 0), min(d0 + size_d, self.num_cached_drifts)

        out.fill(self._adc_zero)
        if ws1 > ws0 and ds1 > ds0:
            out[ws0 - w0 : ws1 - w0, ds0 - d0 : ds1 - d0] = self._wire_drift_data[
                ws0:ws1, ds0:ds1
            ]

        return True

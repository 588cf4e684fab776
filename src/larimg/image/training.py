"""Builds labelled (wire, drift) images used to train the point classifiers.

On top of the scaled ADC image of one plane, the training data builder
stores for each cell:
- the true deposited energy (`wire_edep`);
- a packed label (`wire_pdg`, see :mod:`larimg.image.labels`).

Labels are computed per tick first:
- the species comes from the largest single deposit in the tick;
- track-type flags of all the deposits in the tick are OR-ed;
- vertex flags projected onto the tick are OR-ed.

They are then reduced to the stored drift bins: the species of the tick
with the largest energy deposit wins, all flags are OR-ed.
"""

import numba as nb
import numpy as np

from larimg.geo import Geometry
from larimg.utils.logger import logger

from .labels import PDG_MASK, TYPE_MASK, VTX_MASK, LabelFlag
from .provider import DataProvider

__all__ = ["TrainingDataAlg"]

# Species which can produce visible secondary vertices
HADRON_PDGS = (211, 321, 2212)

# Kinetic energy thresholds in MeV
MIN_HADRON_KE = 50.0
MIN_CONV_KE = 40.0
MIN_DECAY_IN_FLIGHT_KE = 200.0

# Squared range thresholds of electron ends in cm^2
MIN_ELECTRON_RANGE2 = 2.5**2
MIN_SECONDARY_ELECTRON_RANGE2 = 0.15**2

# Number of ionization electrons above which EM activity of a track is a delta
MIN_DELTA_ELECTRONS = 10

# Margin added around the crop window, in cells
CROP_MARGIN = 20
MIN_CROP_SIZE = 8


@nb.njit(cache=True)
def reduce_labels(
    edeps: nb.float32[:], labels: nb.int32[:], step: nb.int64, save_vtx: nb.boolean
) -> (nb.float32[:], nb.int32[:]):
    """Reduces per-tick deposits and labels to drift bins.

    Parameters
    ----------
    edeps : np.ndarray
        (T) Energy deposited in each tick
    labels : np.ndarray
        (T) Packed label of each tick
    step : int
        Number of ticks per drift bin
    save_vtx : bool
        Whether to keep the vertex flags

    Returns
    -------
    np.ndarray
        (T // step) Largest tick deposit in each bin
    np.ndarray
        (T // step) Packed label of each bin
    """
    num_bins = len(edeps) // step
    bin_edeps = np.zeros(num_bins, dtype=np.float32)
    bin_labels = np.zeros(num_bins, dtype=np.int32)
    for i in range(num_bins):
        max_e = 0.0
        best = 0
        flags = 0
        for t in range(i * step, (i + 1) * step):
            if edeps[t] > max_e or (max_e == 0.0 and best == 0):
                if edeps[t] > max_e:
                    max_e = edeps[t]
                best = labels[t] & PDG_MASK
            flags |= labels[t] & TYPE_MASK
            if save_vtx:
                flags |= labels[t] & VTX_MASK

        bin_edeps[i] = max_e
        bin_labels[i] = best | flags

    return bin_edeps, bin_labels


class TrainingDataAlg(DataProvider):
    """Builds plane images with their true energy deposits and labels.

    Attributes
    ----------
    geo : Geometry
        Wire readout geometry
    wire_label : str
        Tag of the wires
    hit_label : str
        Tag of the hits
    track_label : str
        Tag of the tracks
    simulation_label : str
        Tag of the true particles
    sim_channel_label : str
        Tag of the true channel deposits
    neutrino_label : str
        Tag of the true neutrino interactions
    save_vtx_flags : bool
        Whether to store the vertex flags in the labels
    adc_delay_ticks : int
        Delay of the ADC pulse peak with respect to the deposit in ticks
    """

    def __init__(
        self,
        geo,
        wire_label,
        hit_label=None,
        track_label=None,
        simulation_label=None,
        sim_channel_label=None,
        neutrino_label=None,
        save_vtx_flags=True,
        adc_delay_ticks=0,
        **provider_cfg,
    ):
        """Initialize the training data builder.

        Parameters
        ----------
        geo : Union[Geometry, dict, str]
            Wire readout geometry, its configuration or a path to it
        wire_label : str
            Tag of the wires
        hit_label : str, optional
            Tag of the hits (real data only)
        track_label : str, optional
            Tag of the tracks (real data only)
        simulation_label : str, optional
            Tag of the true particles
        sim_channel_label : str, optional
            Tag of the true channel deposits
        neutrino_label : str, optional
            Tag of the true neutrino interactions
        save_vtx_flags : bool, default True
            Whether to store the vertex flags in the labels
        adc_delay_ticks : int, default 0
            Delay of the ADC pulse peak with respect to the deposit in ticks
            (non-zero for waveforms which are not deconvolved)
        **provider_cfg : dict, optional
            Configuration of the :class:`DataProvider`
        """
        super().__init__(**provider_cfg)

        self.geo = geo if isinstance(geo, Geometry) else Geometry.from_config(geo)
        self.wire_label = wire_label
        self.hit_label = hit_label
        self.track_label = track_label
        self.simulation_label = simulation_label
        self.sim_channel_label = sim_channel_label
        self.neutrino_label = neutrino_label
        self.save_vtx_flags = save_vtx_flags
        self.adc_delay_ticks = int(adc_delay_ticks)

        self._edep_tot = 0.0
        self._wire_drift_edep = np.empty((0, 0), dtype=np.float32)
        self._wire_drift_pdg = np.empty((0, 0), dtype=np.int32)

    @property
    def save_sim_info(self):
        """Whether the truth needed to label simulated events is configured."""
        return self.simulation_label is not None and self.sim_channel_label is not None

    @property
    def edep_tot(self):
        """Total energy deposited in the current view in GeV."""
        return self._edep_tot

    @property
    def wire_drift_edep(self):
        """(num_wires, num_cached_drifts) true deposited energy in MeV."""
        return self._wire_drift_edep

    @property
    def wire_drift_pdg(self):
        """(num_wires, num_cached_drifts) packed labels."""
        return self._wire_drift_pdg

    def wire_edep(self, widx):
        """True deposited energy of each drift bin of one wire.

        Parameters
        ----------
        widx : int
            Wire index

        Returns
        -------
        np.ndarray
            (num_cached_drifts) Deposited energy in MeV
        """
        return self._wire_drift_edep[widx]

    def wire_pdg(self, widx):
        """Packed label of each drift bin of one wire.

        Parameters
        ----------
        widx : int
            Wire index

        Returns
        -------
        np.ndarray
            (num_cached_drifts) Packed labels
        """
        return self._wire_drift_pdg[widx]

    def set_wire_drift_data(self, wires, plane, tpc, cryo, **kwargs):
        """Sets the ADC image and resets the deposits and labels.

        See :meth:`DataProvider.set_wire_drift_data` for the arguments.
        """
        result = super().set_wire_drift_data(wires, plane, tpc, cryo, **kwargs)

        shape = self.wire_drift_data.shape
        self._edep_tot = 0.0
        self._wire_drift_edep = np.zeros(shape, dtype=np.float32)
        self._wire_drift_pdg = np.zeros(shape, dtype=np.int32)

        return result

    def set_event_data(self, event, plane, tpc, cryo):
        """Sets the ADC image of a plane and labels it using the simulation.

        Parameters
        ----------
        event : Event
            Event record
        plane : int
            Plane index
        tpc : int
            TPC index
        cryo : int
            Cryostat index

        Returns
        -------
        bool
            `True` if the plane image could be set
        """
        wires = event.get(self.wire_label)
        if not self.set_wire_drift_data(wires, plane, tpc, cryo):
            return False

        if event.is_real_data or not self.save_sim_info:
            return True

        # Fetch the truth information
        particle_map = {p.track_id: p for p in event.get(self.simulation_label)}
        sim_channels = {sc.channel: sc for sc in event.get(self.sim_channel_label)}
        neutrinos = []
        if self.neutrino_label is not None:
            neutrinos = event.get_by_label(self.neutrino_label) or []

        # Collect the vertex flags projected onto this plane
        vtx_flags = {}
        if self.save_vtx_flags:
            vtx_flags = self.collect_vtx_flags(particle_map, neutrinos, plane)

        # Label each wire of the view
        total = 0.0
        for widx, channel in enumerate(self.wire_channels):
            if channel < 0:
                continue

            edeps = np.zeros(self.num_ticks, dtype=np.float32)
            labels = np.zeros(self.num_ticks, dtype=np.int32)
            sim_channel = sim_channels.get(channel, None)
            if sim_channel is not None:
                total += self.fill_tick_labels(sim_channel, particle_map, edeps, labels)

            for tick, flags in vtx_flags.get(widx, {}).items():
                if 0 <= tick < self.num_ticks:
                    labels[tick] |= flags

            self.set_wire_edeps_and_labels(edeps, labels, widx)

        self._edep_tot = total / 1000.0

        return True

    def set_data_event_data(self, event, plane, tpc, cryo):
        """Sets the ADC image of a plane and labels it using reconstruction.

        The ticks covered by the hits of reconstructed tracks are labelled as
        track-like (muon PDG code) with a unit deposit.

        Parameters
        ----------
        event : Event
            Event record
        plane : int
            Plane index
        tpc : int
            TPC index
        cryo : int
            Cryostat index

        Returns
        -------
        bool
            `True` if the plane image could be set
        """
        wires = event.get(self.wire_label)
        if not self.set_wire_drift_data(wires, plane, tpc, cryo):
            return False

        hits = event.get(self.hit_label)
        tracks = event.get(self.track_label)

        # Mark the ticks covered by track hits on each wire
        ticks = {}
        for track in tracks:
            for hidx in track.hit_index:
                hit = hits[hidx]
                if (hit.plane, hit.tpc, hit.cryo) != (plane, tpc, cryo):
                    continue
                if hit.wire < 0 or hit.wire >= self.num_wires:
                    continue
                start = max(int(hit.start_tick), 0)
                end = min(int(hit.end_tick), self.num_ticks)
                ticks.setdefault(hit.wire, []).append((start, end))

        for widx, ranges in ticks.items():
            edeps = np.zeros(self.num_ticks, dtype=np.float32)
            labels = np.zeros(self.num_ticks, dtype=np.int32)
            for start, end in ranges:
                edeps[start:end] = 1.0
                labels[start:end] = 13

            self.set_wire_edeps_and_labels(edeps, labels, widx)

        return True

    def fill_tick_labels(self, sim_channel, particle_map, edeps, labels):
        """Accumulates the deposits of one channel into per-tick arrays.

        Parameters
        ----------
        sim_channel : SimChannel
            True deposits of the channel
        particle_map : Dict[int, Particle]
            True particles, indexed by track ID
        edeps : np.ndarray
            (T) Per-tick deposited energy, filled in place
        labels : np.ndarray
            (T) Per-tick packed labels, filled in place

        Returns
        -------
        float
            Total energy of the deposits which landed in the view in MeV
        """
        ticks = self.geo.tdc_to_tick(sim_channel.tdc) + self.adc_delay_ticks
        tick_max = np.zeros(len(edeps), dtype=np.float32)
        total = 0.0
        for tick, track_id, energy, num_electrons in zip(
            ticks, sim_channel.track_id, sim_channel.energy, sim_channel.num_electrons
        ):
            label = self.deposit_label(track_id, num_electrons, particle_map)
            if label is None:
                continue

            tick = int(tick)
            if tick < 0 or tick >= len(edeps):
                continue

            edeps[tick] += energy
            total += energy
            if energy > tick_max[tick]:
                tick_max[tick] = energy
                labels[tick] = (labels[tick] & ~PDG_MASK) | (label & PDG_MASK)
            labels[tick] |= label & TYPE_MASK

        return total

    def deposit_label(self, track_id, num_electrons, particle_map):
        """Packed label of a single deposit.

        Parameters
        ----------
        track_id : int
            Track ID of the deposit. Negative IDs denote EM activity
            attributed to the particle with the opposite ID.
        num_electrons : float
            Number of ionization electrons of the deposit
        particle_map : Dict[int, Particle]
            True particles, indexed by track ID

        Returns
        -------
        int
            Packed label, `None` if the particle is not known
        """
        if track_id < 0:
            mother = particle_map.get(-track_id, None)
            if mother is None:
                logger.warning("Mother particle of EM activity %d not found.", track_id)
                return None

            label = 11
            mother_pdg = abs(mother.pdg_code)
            if mother_pdg in (13, 211, 2212) and num_electrons > MIN_DELTA_ELECTRONS:
                label |= LabelFlag.DELTA

            return int(label)

        particle = particle_map.get(track_id, None)
        if particle is None:
            logger.warning("Particle %d not found.", track_id)
            return None

        pdg = abs(particle.pdg_code)
        label = pdg & PDG_MASK
        if particle.process == "primary":
            if pdg == 11:
                label |= LabelFlag.PRI_EL
            elif pdg == 13:
                label |= LabelFlag.PRI_MU

        mother = particle_map.get(particle.mother, None)
        if pdg == 11 and mother is not None and self.is_muon_decaying(mother, particle_map):
            label |= LabelFlag.MICHEL

        return int(label)

    def set_wire_edeps_and_labels(self, edeps, labels, widx):
        """Reduces the per-tick arrays of one wire to the stored drift bins.

        Parameters
        ----------
        edeps : np.ndarray
            (T) Per-tick deposited energy
        labels : np.ndarray
            (T) Per-tick packed labels
        widx : int
            Wire index

        Returns
        -------
        bool
            `True` if the wire is part of the view
        """
        if widx < 0 or widx >= self.num_wires:
            return False

        step = self.drift_window if self.downscale_full_view else 1
        num_bins = self.num_cached_drifts
        bin_edeps, bin_labels = reduce_labels(
            np.ascontiguousarray(edeps[: num_bins * step], dtype=np.float32),
            np.ascontiguousarray(labels[: num_bins * step], dtype=np.int32),
            step,
            self.save_vtx_flags,
        )
        self._wire_drift_edep[widx, : len(bin_edeps)] = bin_edeps
        self._wire_drift_pdg[widx, : len(bin_labels)] = bin_labels

        return True

    def collect_vtx_flags(self, particle_map, neutrinos, plane):
        """Projects the vertex flags of the true particles onto a plane.

        Parameters
        ----------
        particle_map : Dict[int, Particle]
            True particles, indexed by track ID
        neutrinos : List[Neutrino]
            True neutrino interactions
        plane : int
            Plane index

        Returns
        -------
        Dict[int, Dict[int, int]]
            Vertex flags, indexed by wire then by tick
        """
        vtx_flags = {}

        def add_flags(position, flags):
            if not flags:
                return
            proj = self.geo.project(position[:3], position[3], plane)
            if proj is None or proj.tpc != self.tpc or proj.cryo != self.cryo:
                return
            ticks = vtx_flags.setdefault(proj.wire, {})
            tick = int(proj.drift)
            ticks[tick] = ticks.get(tick, 0) | int(flags)

        for particle in particle_map.values():
            flags_start, flags_end = self.particle_vtx_flags(particle, particle_map)
            add_flags(particle.position, flags_start)
            add_flags(particle.end_position, flags_end)

        for nu in neutrinos:
            flags = LabelFlag.NU_CC if nu.current_type == 0 else LabelFlag.NU_NC
            flavor = {12: LabelFlag.NU_E, 14: LabelFlag.NU_MU, 16: LabelFlag.NU_TAU}
            flags |= flavor.get(abs(nu.pdg_code), LabelFlag.NONE)
            add_flags(nu.position, flags | LabelFlag.NU_PRI)

        return vtx_flags

    def particle_vtx_flags(self, particle, particle_map):
        """Vertex flags at the start and at the end of a true particle.

        Parameters
        ----------
        particle : Particle
            True particle
        particle_map : Dict[int, Particle]
            True particles, indexed by track ID

        Returns
        -------
        int
            Flags of the start point
        int
            Flags of the end point
        """
        flags_start, flags_end = LabelFlag.NONE, LabelFlag.NONE
        pdg = abs(particle.pdg_code)
        if pdg == 22:
            if particle.end_process == "conv" and particle.ke > MIN_CONV_KE:
                flags_end = LabelFlag.CONV

        elif pdg == 11:
            if self.is_electron_end(particle, particle_map):
                flags_end = LabelFlag.ELECTRON_END

        elif pdg == 13:
            if self.is_muon_decaying(particle, particle_map):
                flags_end = LabelFlag.DECAY

        elif pdg == 111:
            flags_start = LabelFlag.PI0

        elif pdg in HADRON_PDGS and particle.ke > MIN_HADRON_KE:
            # Secondary hadron: flag its production point if it is visible
            mother = particle_map.get(particle.mother, None)
            if mother is not None:
                num_visible = self.num_visible_hadrons(mother, particle_map)
                if abs(mother.pdg_code) != pdg or num_visible > 1:
                    flags_start = LabelFlag.HADR

            # Decay at rest or in flight
            daughters = self.daughters(particle, particle_map)
            if particle.end_process == "FastScintillation":
                if pdg in (211, 321) and any(abs(d.pdg_code) == 13 for d in daughters):
                    flags_end = LabelFlag.DECAY | LabelFlag.HADR

            elif particle.end_process == "Decay":
                if particle.end_ke > MIN_DECAY_IN_FLIGHT_KE:
                    flags_end = LabelFlag.DECAY | LabelFlag.HADR

            elif "Inelastic" in particle.end_process:
                if self.num_visible_hadrons(particle, particle_map) > 0:
                    flags_end = LabelFlag.HADR | LabelFlag.INELASTIC

        return flags_start, flags_end

    @staticmethod
    def daughters(particle, particle_map):
        """Known daughters of a particle."""
        return [particle_map[d] for d in particle.daughters if d in particle_map]

    def num_visible_hadrons(self, particle, particle_map):
        """Number of daughter hadrons above the visibility threshold."""
        return sum(
            abs(d.pdg_code) in HADRON_PDGS and d.ke > MIN_HADRON_KE
            for d in self.daughters(particle, particle_map)
        )

    def is_muon_decaying(self, particle, particle_map):
        """Checks whether a particle is a muon which decays into an electron.

        Parameters
        ----------
        particle : Particle
            True particle
        particle_map : Dict[int, Particle]
            True particles, indexed by track ID

        Returns
        -------
        bool
            `True` if the particle is a decaying muon
        """
        if abs(particle.pdg_code) != 13:
            return False
        if particle.end_process not in ("FastScintillation", "Decay", "muMinusCaptureAtRest"):
            return False

        pdgs = {abs(d.pdg_code) for d in self.daughters(particle, particle_map)}

        return {11, 12, 14}.issubset(pdgs)

    def is_electron_end(self, particle, particle_map):
        """Checks whether an electron has a clear end point.

        Parameters
        ----------
        particle : Particle
            True electron
        particle_map : Dict[int, Particle]
            True particles, indexed by track ID

        Returns
        -------
        bool
            `True` if the electron end is visible
        """
        # The electron must not continue into another charged particle
        for daughter in self.daughters(particle, particle_map):
            if abs(daughter.pdg_code) != 22:
                return False

        mother = particle_map.get(particle.mother, None)
        if mother is None:
            return particle.range2 > MIN_ELECTRON_RANGE2

        mother_pdg = abs(mother.pdg_code)
        if mother_pdg in (13, *HADRON_PDGS):
            return particle.range2 > MIN_SECONDARY_ELECTRON_RANGE2
        if mother_pdg in (11, 22):
            return False

        return particle.range2 > MIN_ELECTRON_RANGE2

    def find_crop(self, max_e_cut):
        """Finds the region of the view which contains the deposited energy.

        The energy outside of the region is at most a quarter of `max_e_cut`
        on each side. The region is then extended by a fixed margin.

        Parameters
        ----------
        max_e_cut : float
            Energy cut in MeV

        Returns
        -------
        Tuple[int, int, int, int]
            (w0, w1, d0, d1) boundaries of the region (upper ones excluded),
            `None` if the region is too small
        """
        edep = self._wire_drift_edep
        if edep.size == 0:
            return None

        max_cut = 0.25 * max_e_cut
        w0, w1 = self._crop_range(edep.sum(axis=1), max_cut)
        d0, d1 = self._crop_range(edep[w0:w1].sum(axis=0), max_cut)
        if w1 - w0 <= MIN_CROP_SIZE or d1 - d0 <= MIN_CROP_SIZE:
            return None

        num_wires, num_drifts = edep.shape
        w0, w1 = max(w0 - CROP_MARGIN, 0), min(w1 + CROP_MARGIN, num_wires)
        d0, d1 = max(d0 - CROP_MARGIN, 0), min(d1 + CROP_MARGIN, num_drifts)

        return (int(w0), int(w1), int(d0), int(d1))

    @staticmethod
    def _crop_range(profile, max_cut):
        """Range outside of which the cumulative profile stays below a cut."""
        size = len(profile)
        above = np.flatnonzero(np.cumsum(profile) >= max_cut)
        low = above[0] if len(above) else size

        reverse = np.cumsum(profile[::-1])[::-1]
        above = np.flatnonzero(reverse[low + 1 :] >= max_cut)
        high = low + 1 + above[-1] if len(above) else low

        return low, min(high + 1, size)

"""Test suite for the data product classes."""

import numpy as np
import pytest

from larimg.data import (
    Cluster,
    Hit,
    MVADescription,
    Neutrino,
    Particle,
    SimChannel,
    Wire,
)


class TestWire:
    """Test the wire signal container."""

    def test_from_signal(self):
        """Without threshold, the whole waveform is a single ROI."""
        signal = np.arange(10, dtype=np.float32)
        wire = Wire.from_signal(signal, channel=5)

        assert wire.channel == 5
        assert wire.num_rois == 1
        assert wire.num_ticks == 10
        assert wire.roi_ranges == [(0, 10)]
        np.testing.assert_array_equal(wire.signal(), signal)

    def test_from_signal_threshold(self):
        """Contiguous ticks above threshold are grouped in ROIs."""
        signal = np.array([0, 3, 4, 0, 0, 5, 0, 0], dtype=np.float32)
        wire = Wire.from_signal(signal, threshold=1.0)

        assert wire.num_rois == 2
        assert wire.roi_ranges == [(1, 3), (5, 6)]
        np.testing.assert_array_equal(wire.signal(), signal)

    def test_signal_length(self):
        """The dense waveform can be truncated or padded."""
        wire = Wire(rois=[(2, [1.0, 2.0])], num_ticks=6)

        np.testing.assert_array_equal(wire.signal(), [0, 0, 1, 2, 0, 0])
        np.testing.assert_array_equal(wire.signal(3), [0, 0, 1])

    def test_signal_extends_past_num_ticks(self):
        """ROIs past the nominal length extend the dense waveform."""
        wire = Wire(rois=[(4, [1.0, 2.0])])

        assert len(wire.signal()) == 6

    def test_equality(self):
        """Wires are compared ROI by ROI."""
        wire1 = Wire(channel=1, rois=[(0, [1.0, 2.0])])
        wire2 = Wire(channel=1, rois=[(0, [1.0, 2.0])])
        wire3 = Wire(channel=1, rois=[(0, [1.0, 3.0])])

        assert wire1 == wire2
        assert wire1 != wire3


class TestHits:
    """Test the hit and cluster containers."""

    def test_plane_id(self):
        """Hits know which plane they belong to."""
        hit = Hit(id=0, cryo=1, tpc=2, plane=0, wire=10, peak_time=51.5)

        assert hit.plane_id == (1, 2, 0)

    def test_cluster_defaults(self):
        """Cluster hit indexes default to an empty array."""
        cluster = Cluster(id=0)

        assert cluster.size == 0
        assert cluster.hit_index.dtype == np.int64

        cluster = Cluster(id=1, hit_index=[0, 3, 4])
        assert cluster.size == 3


class TestTruth:
    """Test the simulation truth containers."""

    def test_particle_kinematics(self):
        """Kinetic energies are in MeV, ranges in cm."""
        particle = Particle(
            track_id=1,
            pdg_code=2212,
            energy=1.038272,
            end_energy=0.938272,
            mass=0.938272,
            position=[0.0, 0.0, 0.0, 0.0],
            end_position=[3.0, 4.0, 0.0, 10.0],
        )

        assert particle.ke == pytest.approx(100.0, abs=1e-3)
        assert particle.end_ke == pytest.approx(0.0, abs=1e-3)
        assert particle.range2 == pytest.approx(25.0)
        assert particle.daughters.dtype == np.int64

    def test_particle_default_positions(self):
        """Missing positions are undefined."""
        particle = Particle(track_id=1)

        assert particle.position.shape == (4,)
        assert np.all(np.isinf(particle.position))

    def test_particle_binary_strings(self):
        """Processes stored as bytes are decoded."""
        particle = Particle(process=b"primary", end_process=b"Decay")

        assert particle.process == "primary"
        assert particle.end_process == "Decay"

    def test_sim_channel_casts(self):
        """Deposit arrays are cast to their types."""
        sim_channel = SimChannel(channel=3, tdc=[1, 2], track_id=[1, -1], energy=[0.5, 1.0])

        assert sim_channel.tdc.dtype == np.int64
        assert sim_channel.energy.dtype == np.float32
        assert len(sim_channel.num_electrons) == 0

    def test_neutrino(self):
        """Neutrino vertices have four coordinates."""
        nu = Neutrino(pdg_code=14, current_type=0, position=[1.0, 2.0, 3.0, 0.0])

        assert nu.position.shape == (4,)


class TestMVADescription:
    """Test the description of stored MVA outputs."""

    def test_output_index(self):
        """Output names are looked up by position."""
        desc = MVADescription("gaushit", "emtrackhit", ["track", "em", "none"])

        assert desc.num_outputs == 3
        assert desc.output_index("em") == 1
        assert desc.output_index("michel") == -1

    def test_binary_names(self):
        """Names stored as bytes are decoded."""
        desc = MVADescription("gaushit", "emtrackhit", [b"track", b"em"])

        assert desc.output_names == ["track", "em"]

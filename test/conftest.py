"""Sets up fixtures general to the entire test suite of this package.

This file is read during the collection phase of pytest when running anything
inside this directory.
"""

import os

import numpy as np
import pytest

from larimg.data import Event, Wire
from larimg.geo import Geometry, TPCGeometry, WirePlane
from larimg.image.model import ModelInterface

os.environ["CUDA_VISIBLE_DEVICES"] = ""

# Size of the toy plane images
NUM_WIRES = 32
NUM_TICKS = 200


class StubModel(ModelInterface):
    """Model which returns the same score vector for every patch."""

    name = "stub"

    def __init__(self, values, input_shape=None):
        super().__init__(len(values), input_shape)
        self.values = np.asarray(values, dtype=np.float32)
        self.batch_sizes = []

    @property
    def num_calls(self):
        return len(self.batch_sizes)

    def forward(self, batch):
        self.batch_sizes.append(len(batch))
        return np.tile(self.values, (len(batch), 1))


class PatchStatsModel(ModelInterface):
    """Model which returns the mean and the maximum of each patch."""

    name = "patch_stats"

    def __init__(self):
        super().__init__(2)
        self.batch_sizes = []

    @property
    def num_calls(self):
        return len(self.batch_sizes)

    def forward(self, batch):
        self.batch_sizes.append(len(batch))
        flat = batch.reshape(len(batch), -1)
        return np.stack([flat.mean(axis=1), flat.max(axis=1)], axis=1)


def toy_signal(wire, num_ticks=NUM_TICKS):
    """Positive waveform, distinct on each wire and tick."""
    return (1 + (7 * wire + np.arange(num_ticks)) % 50).astype(np.float32)


def make_wires(num_wires=NUM_WIRES, num_ticks=NUM_TICKS, plane=0, tpc=0, cryo=0):
    """Builds one full-length wire per wire index of a plane."""
    return [
        Wire.from_signal(
            toy_signal(w, num_ticks),
            id=w,
            channel=1000 * plane + w,
            view=plane,
            cryo=cryo,
            tpc=tpc,
            plane=plane,
            wire=w,
        )
        for w in range(num_wires)
    ]


@pytest.fixture(name="wires")
def fixture_wires():
    """Wires of a single plane with a positive signal everywhere."""
    return make_wires()


@pytest.fixture(name="stub_model")
def fixture_stub_model():
    """Model returning a fixed four-class score vector."""
    return StubModel([0.1, 0.2, 0.3, 0.4])


@pytest.fixture(name="stats_model")
def fixture_stats_model():
    """Model whose output depends on the patch content."""
    return PatchStatsModel()


@pytest.fixture(name="geometry")
def fixture_geometry():
    """Single TPC with one plane of vertical wires at a 1 cm pitch.

    Electrons drift towards the anode at x = 0. With the default drift
    velocity and tick period, a point at x is recorded at tick
    `12.5 * x + 0.5`.
    """
    plane = WirePlane(wire_pitch=1.0, wire_angle=0.0, first_wire_pos=0.0, num_wires=NUM_WIRES)
    tpc = TPCGeometry(
        cryo=0,
        tpc=0,
        lower=[0.0, 0.0, 0.0],
        upper=[100.0, 100.0, 100.0],
        anode_x=0.0,
        drift_dir=-1,
        planes=[plane],
        trigger_offset=0.5,
    )

    return Geometry([tpc])


@pytest.fixture(name="event")
def fixture_event(wires):
    """Simulated event which holds the toy wires."""
    event = Event(run=1, subrun=2, event=3)
    event.put(wires, "caldata")

    return event

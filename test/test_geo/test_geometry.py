"""Test suite for the wire readout geometry."""

import numpy as np
import pytest

from larimg.geo import Geometry, TPCGeometry, WirePlane


class TestWirePlane:
    """Test the wire plane projections."""

    def test_vertical_wires(self):
        """Vertical wires measure the z coordinate."""
        plane = WirePlane(wire_pitch=0.3, num_wires=100)

        assert plane.wire_coordinate([0.0, 50.0, 0.9]) == pytest.approx(3.0)
        assert plane.nearest_wire([0.0, 50.0, 0.9]) == 3
        assert plane.nearest_wire([0.0, 50.0, 1.04]) == 3
        assert plane.nearest_wire([0.0, 50.0, 1.06]) == 4

    def test_out_of_plane(self):
        """Points which project outside of the plane have no wire."""
        plane = WirePlane(wire_pitch=1.0, num_wires=10)

        assert plane.nearest_wire([0.0, 0.0, -2.0]) == -1
        assert plane.nearest_wire([0.0, 0.0, 12.0]) == -1

    def test_inclined_wires(self):
        """Inclined wires mix the y and z coordinates."""
        plane = WirePlane(wire_pitch=1.0, wire_angle=np.pi / 2, num_wires=100)

        assert plane.nearest_wire([0.0, 7.0, 50.0]) == 7

    def test_invalid_pitch(self):
        """The wire pitch must be positive."""
        with pytest.raises(AssertionError):
            WirePlane(wire_pitch=0.0)


class TestTPCGeometry:
    """Test the TPC volume and drift conversions."""

    def test_contains(self, geometry):
        """Points on the boundary are inside."""
        tpc = geometry.get_tpc(0, 0)

        assert tpc.contains([0.0, 50.0, 100.0])
        assert not tpc.contains([-1.0, 50.0, 50.0])

    def test_x_to_tick(self, geometry):
        """Ticks grow with the distance to the anode."""
        tpc = geometry.get_tpc(0, 0)

        assert tpc.x_to_tick(0.0) == pytest.approx(0.5)
        assert tpc.x_to_tick(16.0) == pytest.approx(200.5)

    def test_planes_from_dict(self):
        """Wire planes can be configured as dictionaries."""
        tpc = TPCGeometry(
            cryo=0,
            tpc=1,
            lower=[0, 0, 0],
            upper=[1, 1, 1],
            anode_x=0.0,
            planes=[{"wire_pitch": 0.5, "num_wires": 4}],
        )

        assert tpc.num_planes == 1
        assert isinstance(tpc.planes[0], WirePlane)


class TestGeometry:
    """Test the detector geometry."""

    def test_find_tpc(self, geometry):
        """Points are assigned to the TPC which contains them."""
        assert geometry.num_tpcs == 1
        assert geometry.find_tpc([10.0, 10.0, 10.0]) is geometry.tpcs[0]
        assert geometry.find_tpc([200.0, 10.0, 10.0]) is None
        assert geometry.get_tpc(1, 0) is None

    def test_project(self, geometry):
        """Points are projected onto (wire, tick) coordinates."""
        proj = geometry.project([4.0, 50.0, 5.0], 0.0, 0)

        assert proj.wire == 5
        assert proj.drift == pytest.approx(50.5)
        assert (proj.tpc, proj.cryo) == (0, 0)

    def test_project_time(self, geometry):
        """Late charge is recorded later, as if it was further from the anode."""
        proj = geometry.project([4.0, 50.0, 5.0], 1000.0, 0)

        assert proj.drift == pytest.approx(50.5 + 0.16 * 12.5)

    def test_project_outside(self, geometry):
        """Points outside of the readout are not projected."""
        assert geometry.project([200.0, 50.0, 5.0], 0.0, 0) is None
        assert geometry.project([4.0, 50.0, 90.0], 0.0, 0) is None
        assert geometry.project([4.0, 50.0, 5.0], 0.0, 3) is None

    def test_tdc_to_tick(self):
        """TDC counts are shifted by the readout offset."""
        geo = Geometry([], tdc_offset=100)

        assert geo.tdc_to_tick(150) == 50
        np.testing.assert_array_equal(geo.tdc_to_tick(np.array([100, 101])), [0, 1])

    def test_from_config(self, tmp_path):
        """The geometry can be loaded from a YAML file."""
        config_file = tmp_path / "geo.yaml"
        config_file.write_text("""
geometry:
  tdc_offset: 10
  tpcs:
    - cryo: 0
      tpc: 0
      lower: [0, 0, 0]
      upper: [10, 10, 10]
      anode_x: 0
      planes:
        - wire_pitch: 0.5
          num_wires: 20
""")

        geo = Geometry.from_config(str(config_file))

        assert geo.tdc_offset == 10
        assert geo.num_tpcs == 1
        assert geo.tpcs[0].planes[0].num_wires == 20

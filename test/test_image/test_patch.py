"""Test suite for the patch extractor."""

import numpy as np
import pytest

from conftest import NUM_TICKS, NUM_WIRES

from larimg.errors import ConfigError
from larimg.image import (
    DataProvider,
    DownscaledPatchPolicy,
    PatchExtractor,
    RawPatchPolicy,
)
from larimg.image.provider import downscale_maxpool


@pytest.fixture(name="raw_extractor")
def fixture_raw_extractor(wires):
    """Extractor which downscales patches on the fly."""
    provider = DataProvider(drift_window=10)
    provider.set_wire_drift_data(wires, 0, 0, 0)

    return PatchExtractor(provider, 4, 4)


@pytest.fixture(name="scaled_extractor")
def fixture_scaled_extractor(wires):
    """Extractor which copies patches from a downscaled view."""
    provider = DataProvider(drift_window=10, downscale_full_view=True)
    provider.set_wire_drift_data(wires, 0, 0, 0)

    return PatchExtractor(provider, 4, 4)


class TestPolicies:
    """Test the same-patch policies."""

    def test_raw_cell(self):
        """Raw cells are (wire, tick) pairs."""
        assert RawPatchPolicy().cell(3, 17.9) == (3, 17)

    def test_downscaled_cell(self):
        """Downscaled cells group the ticks of a drift window."""
        policy = DownscaledPatchPolicy(10)

        assert policy.cell(3, 17.9) == (3, 1)
        assert policy.cell(3, 12) == policy.cell(3, 19.5)

    def test_wires_never_grouped(self):
        """Neighbouring wires never share a cell, whatever the policy."""
        for policy in (RawPatchPolicy(), DownscaledPatchPolicy(10)):
            assert policy.cell(3, 12) != policy.cell(4, 12)

    def test_policy_choice(self, raw_extractor, scaled_extractor):
        """The policy follows the way the view is stored."""
        assert isinstance(raw_extractor.policy, RawPatchPolicy)
        assert isinstance(scaled_extractor.policy, DownscaledPatchPolicy)

    def test_same_patch(self, raw_extractor, scaled_extractor):
        """Two ticks of a drift window share a patch only in a downscaled view."""
        assert scaled_extractor.is_same_patch(3, 12, 3, 18)
        assert not raw_extractor.is_same_patch(3, 12, 3, 18)
        assert raw_extractor.is_same_patch(3, 12.2, 3, 12.7)
        assert not scaled_extractor.is_same_patch(3, 12, 4, 12)


class TestPatchExtractor:
    """Test building patches."""

    def test_invalid_size(self):
        """Patch sizes must be positive."""
        with pytest.raises(ConfigError):
            PatchExtractor(DataProvider(), 0, 4)

    def test_shape(self, raw_extractor):
        """Patches have the configured shape."""
        patch = raw_extractor.patch_at(10, 100)

        assert patch.shape == (4, 4)
        assert raw_extractor.patch_shape == (4, 4)
        assert raw_extractor.patch_size == 16

    def test_raw_patch_content(self, raw_extractor):
        """On-the-fly patches are downscaled windows of the full view."""
        provider = raw_extractor.provider
        patch = raw_extractor.patch_at(10, 100)

        for i, wire in enumerate(range(8, 12)):
            segment = np.ascontiguousarray(provider.wire_drift_data[wire, 80:120])
            np.testing.assert_array_equal(patch[i], downscale_maxpool(segment, 10, 4))

    def test_scaled_patch_content(self, scaled_extractor):
        """Patches of a downscaled view are copies of the view."""
        provider = scaled_extractor.provider
        patch = scaled_extractor.patch_at(10, 105)

        np.testing.assert_array_equal(patch, provider.wire_drift_data[8:12, 8:12])

    @pytest.mark.parametrize("extractor_name", ["raw_extractor", "scaled_extractor"])
    def test_edge_padding(self, extractor_name, request):
        """Parts of the patch outside of the view are filled with the scaled zero."""
        extractor = request.getfixturevalue(extractor_name)
        patch = extractor.patch_at(0, 0)

        np.testing.assert_array_equal(patch[:2], extractor.provider.adc_zero)
        np.testing.assert_array_equal(patch[:, :2], extractor.provider.adc_zero)
        assert np.all(patch[2:, 2:] > extractor.provider.adc_zero)

    @pytest.mark.parametrize("extractor_name", ["raw_extractor", "scaled_extractor"])
    def test_fiducial_no_padding(self, extractor_name, request):
        """Patches of points in the fiducial region need no padding."""
        extractor = request.getfixturevalue(extractor_name)
        zero = extractor.provider.adc_zero
        num_inside = 0
        for wire in range(NUM_WIRES):
            for drift in range(0, NUM_TICKS, 3):
                if extractor.is_inside_fiducial_region(wire, drift):
                    num_inside += 1
                    assert np.all(extractor.patch_at(wire, drift) > zero)

        assert num_inside > 0

    def test_fiducial_region(self, raw_extractor, scaled_extractor):
        """The default margins are half a patch on each side."""
        for extractor in (raw_extractor, scaled_extractor):
            assert extractor.is_inside_fiducial_region(2, 100)
            assert not extractor.is_inside_fiducial_region(1, 100)
            assert extractor.is_inside_fiducial_region(NUM_WIRES - 2, 100)
            assert not extractor.is_inside_fiducial_region(NUM_WIRES - 1, 100)

        assert raw_extractor.is_inside_fiducial_region(10, 20)
        assert not raw_extractor.is_inside_fiducial_region(10, 19)
        assert raw_extractor.is_inside_fiducial_region(10, 180)
        assert not raw_extractor.is_inside_fiducial_region(10, 181)

        assert scaled_extractor.is_inside_fiducial_region(10, 20)
        assert not scaled_extractor.is_inside_fiducial_region(10, 19)
        assert scaled_extractor.is_inside_fiducial_region(10, 189)
        assert not scaled_extractor.is_inside_fiducial_region(10, 190)

    def test_custom_margins(self, wires):
        """Explicit margins apply to both sides."""
        provider = DataProvider(drift_window=10, downscale_full_view=True)
        provider.set_wire_drift_data(wires, 0, 0, 0)
        extractor = PatchExtractor(provider, 4, 4, margin_w=5, margin_d=0)

        assert not extractor.is_inside_fiducial_region(4, 100)
        assert extractor.is_inside_fiducial_region(5, 0)
        assert not extractor.is_inside_fiducial_region(NUM_WIRES - 4, 100)

    def test_cache_hit(self, scaled_extractor):
        """Queries within the cached cell reuse the cached patch."""
        first = np.array(scaled_extractor.patch_at(10, 100))
        scaled_extractor.provider.wire_drift_data[:] += 1.0

        assert scaled_extractor.is_current_patch(10, 109)
        np.testing.assert_array_equal(scaled_extractor.patch_at(10, 109), first)

        scaled_extractor.reset()
        assert scaled_extractor.current_patch is None
        np.testing.assert_allclose(scaled_extractor.patch_at(10, 109), first + 1.0)

    def test_cache_miss(self, raw_extractor):
        """A query in another cell rebuilds the patch."""
        raw_extractor.patch_at(10, 100)

        assert not raw_extractor.is_current_patch(10, 101)
        raw_extractor.patch_at(10, 101)
        assert raw_extractor.is_current_patch(10, 101)

    def test_read_only(self, raw_extractor):
        """Returned patches cannot be modified."""
        patch = raw_extractor.patch_at(10, 100)

        with pytest.raises(ValueError):
            patch[0, 0] = 0.0

    def test_fill_patch(self, raw_extractor):
        """Filling a buffer leaves the cache untouched."""
        cached = np.array(raw_extractor.patch_at(10, 100))
        buffer = np.empty((4, 4), dtype=np.float32)
        raw_extractor.fill_patch(20, 50, buffer)

        assert raw_extractor.is_current_patch(10, 100)
        np.testing.assert_array_equal(raw_extractor.current_patch, cached)
        np.testing.assert_array_equal(buffer, raw_extractor.patch_at(20, 50))

    @pytest.mark.parametrize("size_w, size_d", [(4, 4), (5, 3), (1, 7)])
    def test_flatten(self, wires, size_w, size_d):
        """Flattened patches are wire-major copies."""
        provider = DataProvider(drift_window=10)
        provider.set_wire_drift_data(wires, 0, 0, 0)
        extractor = PatchExtractor(provider, size_w, size_d)
        patch = extractor.patch_at(10, 100)
        flat = extractor.flatten_patch(patch)

        assert flat.shape == (size_w * size_d,)
        np.testing.assert_array_equal(flat[:size_d], patch[0])
        flat[0] = -100.0
        assert patch[0, 0] != -100.0

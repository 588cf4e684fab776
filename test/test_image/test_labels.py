"""Test suite for the packed cell labels."""

import pytest

from larimg.image import PDG_MASK, TYPE_MASK, VTX_MASK, LabelFlag, LabelMask, flag_factory


class TestLayout:
    """Test the bit layout of the labels."""

    def test_masks(self):
        """The three fields split the 32 bits without overlap."""
        assert PDG_MASK == 0x00000FFF
        assert TYPE_MASK == 0x0000F000
        assert VTX_MASK == 0xFFFF0000
        assert PDG_MASK | TYPE_MASK | VTX_MASK == 0xFFFFFFFF
        assert PDG_MASK & TYPE_MASK == 0 and TYPE_MASK & VTX_MASK == 0

    @pytest.mark.parametrize(
        "flag, mask",
        [
            (LabelFlag.DELTA, TYPE_MASK),
            (LabelFlag.MICHEL, TYPE_MASK),
            (LabelFlag.PRI_EL, TYPE_MASK),
            (LabelFlag.PRI_MU, TYPE_MASK),
            (LabelFlag.NU_CC, VTX_MASK),
            (LabelFlag.NU_MU, VTX_MASK),
            (LabelFlag.HADR, VTX_MASK),
            (LabelFlag.DECAY, VTX_MASK),
            (LabelFlag.ELECTRON_END, VTX_MASK),
            (LabelFlag.INELASTIC, VTX_MASK),
        ],
    )
    def test_flag_fields(self, flag, mask):
        """Each flag lives in its field."""
        assert flag & mask == flag

    def test_stored_values(self):
        """Flag values are part of the stored format."""
        assert LabelFlag.MICHEL == 0x2000
        assert LabelFlag.NU_PRI == 0x40000
        assert LabelFlag.HADR == 0x1000000
        assert LabelFlag.ELECTRON_END == 0x10000000


class TestLabelMask:
    """Test the label accessors and combinators."""

    def test_make_and_split(self):
        """Labels are packed from a PDG code and flags."""
        label = LabelMask.make(-13, LabelFlag.PRI_MU | LabelFlag.DECAY)

        assert LabelMask.pdg(label) == 13
        assert LabelMask.track_type(label) == LabelFlag.PRI_MU
        assert LabelMask.vertex_flags(label) == LabelFlag.DECAY
        assert LabelMask.has(label, LabelFlag.DECAY)
        assert not LabelMask.has(label, LabelFlag.MICHEL)

    def test_combine(self):
        """Flags are OR-ed and the last non-zero PDG code wins."""
        label = LabelMask.combine(
            LabelMask.make(13, LabelFlag.PRI_MU),
            LabelMask.make(11, LabelFlag.MICHEL),
            LabelMask.make(0, LabelFlag.DECAY),
        )

        assert LabelMask.pdg(label) == 11
        assert LabelMask.has(label, LabelFlag.PRI_MU | LabelFlag.MICHEL | LabelFlag.DECAY)

    def test_combine_empty(self):
        """Combining nothing gives an empty label."""
        assert LabelMask.combine() == 0


class TestFlagFactory:
    """Test building flags from their names."""

    def test_names(self):
        """Flag names are case insensitive."""
        assert flag_factory("michel") == LabelFlag.MICHEL
        assert flag_factory(["hadr", "DECAY"]) == LabelFlag.HADR | LabelFlag.DECAY

    def test_unknown(self):
        """Unknown flag names raise."""
        with pytest.raises(ValueError):
            flag_factory("kaon")

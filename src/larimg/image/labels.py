"""Packed training labels of the (wire, drift) cells.

Each cell label is a 32-bit integer with three fields:
- bits 0-11 (`PDG_MASK`): absolute PDG code of the dominant particle;
- bits 12-15 (`TYPE_MASK`): track-type flags (delta ray, Michel electron,
  primary electron, primary muon);
- bits 16-31 (`VTX_MASK`): vertex-type flags.

Flags are additive: several of them can be set on the same cell. This layout
is stored with the training data and must not change.
"""

from enum import IntFlag

__all__ = ["PDG_MASK", "TYPE_MASK", "VTX_MASK", "LabelFlag", "LabelMask", "flag_factory"]

PDG_MASK = 0x00000FFF
TYPE_MASK = 0x0000F000
VTX_MASK = 0xFFFF0000


class LabelFlag(IntFlag):
    """Enumerates the track-type and vertex-type flags."""

    NONE = 0x00000000

    # Track-type flags
    DELTA = 0x00001000
    MICHEL = 0x00002000
    PRI_EL = 0x00004000
    PRI_MU = 0x00008000

    # Neutrino interaction vertex flags
    NU_NC = 0x00010000
    NU_CC = 0x00020000
    NU_PRI = 0x00040000
    NU_E = 0x00100000
    NU_MU = 0x00200000
    NU_TAU = 0x00400000

    # Other vertex flags
    HADR = 0x01000000
    PI0 = 0x02000000
    DECAY = 0x04000000
    CONV = 0x08000000
    ELECTRON_END = 0x10000000
    ELASTIC = 0x20000000
    INELASTIC = 0x40000000


def flag_factory(names):
    """Combines flags from their names (from config).

    Parameters
    ----------
    names : Union[str, List[str]]
        Name or names of the flags

    Returns
    -------
    int
        Combined flag value
    """
    if isinstance(names, str):
        names = [names]

    value = 0
    for name in names:
        if not hasattr(LabelFlag, name.upper()):
            raise ValueError(
                f"Label flag not recognized: {name}. Must be one of "
                f"{[f.name for f in LabelFlag]}."
            )
        value |= getattr(LabelFlag, name.upper()).value

    return value


class LabelMask:
    """Accessors and combinators of the packed cell labels."""

    PDG_MASK = PDG_MASK
    TYPE_MASK = TYPE_MASK
    VTX_MASK = VTX_MASK

    @staticmethod
    def pdg(label):
        """Absolute PDG code stored in a label."""
        return int(label) & PDG_MASK

    @staticmethod
    def track_type(label):
        """Track-type flags stored in a label."""
        return int(label) & TYPE_MASK

    @staticmethod
    def vertex_flags(label):
        """Vertex-type flags stored in a label."""
        return int(label) & VTX_MASK

    @staticmethod
    def has(label, flag):
        """Checks whether all the bits of a flag are set in a label.

        Parameters
        ----------
        label : int
            Packed label
        flag : int
            Flag (or combination of flags)

        Returns
        -------
        bool
            `True` if the flag is set
        """
        return (int(label) & int(flag)) == int(flag)

    @staticmethod
    def combine(*labels):
        """Combines labels: flags are OR-ed, the last non-zero PDG code wins.

        Parameters
        ----------
        *labels : int
            Packed labels

        Returns
        -------
        int
            Combined label
        """
        pdg, flags = 0, 0
        for label in labels:
            label = int(label)
            if label & PDG_MASK:
                pdg = label & PDG_MASK
            flags |= label & (TYPE_MASK | VTX_MASK)

        return pdg | flags

    @staticmethod
    def make(pdg, flags=0):
        """Packs a PDG code and flags into a label.

        Parameters
        ----------
        pdg : int
            PDG code (its absolute value is stored)
        flags : int, default 0
            Track-type and vertex-type flags

        Returns
        -------
        int
            Packed label
        """
        return (abs(int(pdg)) & PDG_MASK) | (int(flags) & (TYPE_MASK | VTX_MASK))

"""Module with data class objects which represent simulation truth.

This covers the true particles (:class:`simb::MCParticle`), the ionization
deposits collected on each channel (:class:`sim::SimChannel`) and the true
neutrino interactions (:class:`simb::MCNeutrino`).
"""

from dataclasses import dataclass

import numpy as np

from .base import DataBase

__all__ = ["Particle", "SimChannel", "Neutrino"]


@dataclass(eq=False)
class Particle(DataBase):
    """True particle information.

    Attributes
    ----------
    track_id : int
        Geant4 track ID of the particle
    pdg_code : int
        PDG code of the particle
    mother : int
        Track ID of the parent particle (0 if primary)
    daughters : np.ndarray
        (D) Track IDs of the daughter particles
    process : str
        Creation process
    end_process : str
        Process which ended the particle
    position : np.ndarray
        (4) Start position (x, y, z in cm, t in ns)
    end_position : np.ndarray
        (4) End position (x, y, z in cm, t in ns)
    energy : float
        Total energy at creation in GeV
    end_energy : float
        Total energy at the end point in GeV
    mass : float
        Mass in GeV
    """

    track_id: int = -1
    pdg_code: int = 0
    mother: int = 0
    daughters: np.ndarray = None
    process: str = "primary"
    end_process: str = ""
    position: np.ndarray = None
    end_position: np.ndarray = None
    energy: float = 0.0
    end_energy: float = 0.0
    mass: float = 0.0

    product_name = "particle"

    _fixed_length_attrs = (("position", 4), ("end_position", 4))

    _var_length_attrs = (("daughters", np.int64),)

    _str_attrs = ("process", "end_process")

    @property
    def ke(self):
        """Kinetic energy at creation in MeV."""
        return 1000.0 * (self.energy - self.mass)

    @property
    def end_ke(self):
        """Kinetic energy at the end point in MeV."""
        return 1000.0 * (self.end_energy - self.mass)

    @property
    def range2(self):
        """Squared distance between the start and end points in cm^2."""
        diff = self.end_position[:3] - self.position[:3]
        return float(np.dot(diff, diff))


@dataclass(eq=False)
class SimChannel(DataBase):
    """True ionization deposits collected on one readout channel.

    Each deposit is stored in parallel arrays.

    Attributes
    ----------
    channel : int
        Readout channel number
    tdc : np.ndarray
        (N) TDC count at which each deposit is collected
    track_id : np.ndarray
        (N) Track ID of the particle responsible for each deposit. A negative
        value indicates EM activity below the tracking threshold, attributed
        to the particle with the opposite track ID.
    energy : np.ndarray
        (N) Deposited energy in MeV
    num_electrons : np.ndarray
        (N) Number of ionization electrons reaching the wire
    """

    channel: int = -1
    tdc: np.ndarray = None
    track_id: np.ndarray = None
    energy: np.ndarray = None
    num_electrons: np.ndarray = None

    product_name = "simchannel"

    _var_length_attrs = (
        ("tdc", np.int64),
        ("track_id", np.int64),
        ("energy", np.float32),
        ("num_electrons", np.float32),
    )


@dataclass(eq=False)
class Neutrino(DataBase):
    """True neutrino interaction.

    Attributes
    ----------
    pdg_code : int
        PDG code of the incoming neutrino
    current_type : int
        0 for charged current, 1 for neutral current
    position : np.ndarray
        (4) Interaction vertex (x, y, z in cm, t in ns)
    """

    pdg_code: int = 0
    current_type: int = -1
    position: np.ndarray = None

    product_name = "neutrino"

    _fixed_length_attrs = (("position", 4),)

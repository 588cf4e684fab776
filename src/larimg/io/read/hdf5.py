"""Module to read labelled training images from file."""

import os

import h5py
import numpy as np
import yaml

from larimg.utils.logger import logger

__all__ = ["TrainingDataReader"]


class TrainingDataReader:
    """Reads training images written by a :class:`TrainingDataWriter`.

    Entries are loaded one at a time as dictionaries of arrays and
    attributes.
    """

    name = "hdf5"

    def __init__(self, file_name):
        """Open the file and count its entries.

        Parameters
        ----------
        file_name : str
            Name of the input HDF5 file
        """
        if not os.path.isfile(file_name):
            raise FileNotFoundError(f"File with name {file_name} does not exist.")

        self.file_name = file_name
        with h5py.File(file_name, "r") as in_file:
            self.num_entries = len(in_file["entries"])
            self.version = in_file["info"].attrs["version"]
            cfg = in_file["info"].attrs.get("cfg", None)
            self.cfg = yaml.safe_load(cfg) if cfg is not None else None

        logger.info("Found %d entries in %s", self.num_entries, file_name)

    def __len__(self):
        return self.num_entries

    def __getitem__(self, idx):
        """Loads one entry.

        Parameters
        ----------
        idx : int
            Index of the entry

        Returns
        -------
        dict
            Arrays and attributes of the entry
        """
        if idx < 0:
            idx += self.num_entries
        if idx < 0 or idx >= self.num_entries:
            raise IndexError(f"Entry {idx} out of range ({self.num_entries} entries).")

        with h5py.File(self.file_name, "r") as in_file:
            group = in_file["entries"][str(idx)]
            entry = {key: np.asarray(group[key]) for key in group.keys()}
            for key, value in group.attrs.items():
                entry[key] = value.item() if isinstance(value, np.generic) else value

        return entry

    def __iter__(self):
        for idx in range(self.num_entries):
            yield self[idx]

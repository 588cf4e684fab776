"""Module to write labelled training images to file."""

import os

import h5py
import numpy as np
import yaml

from larimg.version import __version__

__all__ = ["TrainingDataWriter"]


class TrainingDataWriter:
    """Writes cropped training images to an HDF5 file.

    Each entry is stored in its own group, named after its index, with three
    datasets:
    - `adc`: scaled ADC image;
    - `edep`: true deposited energy;
    - `pdg`: packed labels.

    The group attributes record the event identifiers, the plane and the
    crop window in the full view.

    Typical configuration should look like:

    .. code-block:: yaml

        writer:
          file_name: training.h5
          overwrite: true
    """

    name = "hdf5"

    def __init__(self, file_name, overwrite=False, compression="gzip", cfg=None):
        """Initializes the output file.

        Parameters
        ----------
        file_name : str
            Name of the output HDF5 file
        overwrite : bool, default False
            If `True`, overwrite the output file if it already exists
        compression : str, default 'gzip'
            Compression filter of the datasets
        cfg : dict, optional
            Configuration to store in the file
        """
        # Check that the output file does not already exist, if requested
        if not overwrite and os.path.isfile(file_name):
            raise FileExistsError(f"File with name {file_name} already exists.")

        self.file_name = file_name
        self.compression = compression
        self.num_entries = 0

        # Create the file and store the information about its production
        with h5py.File(file_name, "w") as out_file:
            info = out_file.create_group("info")
            info.attrs["version"] = __version__
            if cfg is not None:
                info.attrs["cfg"] = yaml.dump(cfg)
            out_file.create_group("entries")

    def __len__(self):
        return self.num_entries

    def append(self, alg, event, crop):
        """Stores the crop of the current view of a training data builder.

        Parameters
        ----------
        alg : TrainingDataAlg
            Training data builder, with its view set
        event : Event
            Event the view was built from
        crop : Tuple[int, int, int, int]
            (w0, w1, d0, d1) crop window, upper boundaries excluded

        Returns
        -------
        int
            Index of the stored entry
        """
        w0, w1, d0, d1 = crop
        data = {
            "adc": alg.wire_drift_data[w0:w1, d0:d1],
            "edep": alg.wire_drift_edep[w0:w1, d0:d1],
            "pdg": alg.wire_drift_pdg[w0:w1, d0:d1],
        }
        attrs = {
            "run": event.run,
            "subrun": event.subrun,
            "event": event.event,
            "cryo": alg.cryo,
            "tpc": alg.tpc,
            "plane": alg.plane,
            "crop": np.array(crop, dtype=np.int64),
        }

        return self.store(data, attrs)

    def store(self, data, attrs):
        """Stores one entry.

        Parameters
        ----------
        data : Dict[str, np.ndarray]
            Arrays to store
        attrs : dict
            Attributes of the entry

        Returns
        -------
        int
            Index of the stored entry
        """
        entry = self.num_entries
        with h5py.File(self.file_name, "a") as out_file:
            group = out_file["entries"].create_group(str(entry))
            for key, array in data.items():
                group.create_dataset(
                    key, data=np.ascontiguousarray(array), compression=self.compression
                )
            for key, value in attrs.items():
                group.attrs[key] = value

        self.num_entries += 1

        return entry

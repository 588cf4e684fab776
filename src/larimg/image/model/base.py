"""Base class of all the model interfaces.

A model interface turns a batch of 2D patches into a batch of score vectors.
Each backend only needs to implement the :meth:`ModelInterface.forward`
method; the base class takes care of the input reshaping, sub-sampling and
output validation.
"""

import os
from abc import ABC, abstractmethod

import numpy as np

from larimg.errors import ConfigError, ModelError, ModelLoadError

__all__ = ["ModelInterface", "find_file"]


def find_file(file_name, search_path_env="FW_SEARCH_PATH"):
    """Resolves the path to a model file.

    The file is first looked for as is, then in each of the directories listed
    in the colon-separated search path environment variable.

    Parameters
    ----------
    file_name : str
        Path to the file, absolute or relative to the search path
    search_path_env : str, default 'FW_SEARCH_PATH'
        Name of the environment variable which holds the search path

    Returns
    -------
    str
        Absolute path to the file
    """
    if os.path.isfile(file_name):
        return os.path.abspath(file_name)

    search_path = os.environ.get(search_path_env, "")
    for directory in search_path.split(":"):
        if not directory:
            continue
        path = os.path.join(directory, file_name)
        if os.path.isfile(path):
            return os.path.abspath(path)

    raise ModelLoadError(
        f"Model file not found: {file_name} (search path ${search_path_env}: "
        f"'{search_path}')."
    )


class ModelInterface(ABC):
    """Common interface of the inference backends.

    Attributes
    ----------
    name : str
        Name of the backend, used to fetch it from the configuration
    num_outputs : int
        Width of the score vectors
    input_shape : Tuple[int, int]
        (W, D) Shape of the input patches
    """

    name = ""

    def __init__(self, num_outputs=None, input_shape=None):
        """Initialize the model interface.

        Parameters
        ----------
        num_outputs : int, optional
            Width of the score vectors. If not specified, it is set by the
            first call to the model or by :meth:`bind`.
        input_shape : Tuple[int, int], optional
            (W, D) Shape of the input patches
        """
        self.num_outputs = num_outputs
        self.input_shape = tuple(input_shape) if input_shape is not None else None

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(num_outputs={self.num_outputs}, "
            f"input_shape={self.input_shape})"
        )

    def bind(self, num_outputs, input_shape):
        """Checks that the model is compatible with the algorithm using it.

        Parameters
        ----------
        num_outputs : int
            Expected width of the score vectors
        input_shape : Tuple[int, int]
            (W, D) Shape of the patches the algorithm builds
        """
        if self.num_outputs is None:
            self.num_outputs = num_outputs
        elif self.num_outputs != num_outputs:
            raise ConfigError(
                f"The model produces {self.num_outputs} outputs but "
                f"{num_outputs} output labels are configured."
            )

        input_shape = tuple(input_shape)
        if self.input_shape is None:
            self.input_shape = input_shape
        elif self.input_shape != input_shape:
            raise ConfigError(
                f"The model expects patches of shape {self.input_shape}, "
                f"got {input_shape}."
            )

    @abstractmethod
    def forward(self, batch):
        """Runs the backend on a batch of patches.

        Parameters
        ----------
        batch : np.ndarray
            (B, W, D) Batch of patches

        Returns
        -------
        np.ndarray
            (B, N) Batch of score vectors
        """
        raise NotImplementedError

    def run(self, inputs):
        """Runs the model on a list of flattened patches.

        Parameters
        ----------
        inputs : Union[List[np.ndarray], np.ndarray]
            (B, W * D) Flattened patches

        Returns
        -------
        np.ndarray
            (B, N) Batch of score vectors
        """
        inputs = np.asarray(inputs, dtype=np.float32)
        if inputs.size == 0:
            return self._empty()

        if self.input_shape is None:
            raise ModelError("Cannot reshape flat inputs without an input shape.")

        return self.run_batch(inputs.reshape(-1, *self.input_shape))

    def run_batch(self, patches, samples=-1):
        """Runs the model on a batch of patches.

        Parameters
        ----------
        patches : np.ndarray
            (B, W, D) Batch of patches
        samples : int, default -1
            Number of patches of the batch to process. If negative or larger
            than the batch size, the whole batch is processed.

        Returns
        -------
        np.ndarray
            (min(B, samples), N) Batch of score vectors
        """
        patches = np.asarray(patches, dtype=np.float32)
        if 0 <= samples < len(patches):
            patches = patches[:samples]
        if len(patches) == 0:
            return self._empty()

        assert patches.ndim == 3, "The patches must be provided as a (B, W, D) tensor."
        output = np.asarray(self.forward(np.ascontiguousarray(patches)), dtype=np.float32)
        output = output.reshape(len(patches), -1)

        # Check the width of the output vectors
        if self.num_outputs is None:
            self.num_outputs = output.shape[1]
        elif output.shape[1] != self.num_outputs:
            raise ModelError(
                f"The model returned vectors of width {output.shape[1]}, "
                f"expected {self.num_outputs}."
            )

        return output

    def _empty(self):
        """Empty batch of score vectors."""
        num_outputs = self.num_outputs if self.num_outputs is not None else 0

        return np.empty((0, num_outputs), dtype=np.float32)

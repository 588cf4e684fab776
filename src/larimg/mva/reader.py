"""Reads MVA output vectors written by an :class:`MVAWriter`."""

import numpy as np

from larimg.data import InputTag
from larimg.errors import MVAConsistencyError, MVALookupError

from .wrapper import MVAWrapperBase, kind_name

__all__ = ["MVAReader"]


class MVAReader(MVAWrapperBase):
    """Gives access to the MVA outputs of one product kind in an event.

    Attributes
    ----------
    description : MVADescription
        Description of the outputs
    """

    def __init__(self, event, tag, kind, num_outputs=None):
        """Fetch the description and the outputs from the event.

        Parameters
        ----------
        event : Event
            Event record
        tag : Union[str, InputTag]
            Tag of the writer outputs (`producer[:name]`)
        kind : Union[type, str]
            Data product class or product name
        num_outputs : int, optional
            Expected width of the output vectors
        """
        tag = InputTag.parse(tag)
        instance = tag.instance + kind_name(kind)

        # Find the description of the requested outputs
        self.description = None
        for desc in event.get(tag):
            if desc.output_instance == instance:
                self.description = desc
                break

        if self.description is None:
            raise MVALookupError(
                f"MVA description of outputs '{instance}' not found under {tag}."
            )

        # Fetch the outputs themselves
        outputs = event.get(InputTag(tag.label, instance, tag.process))
        self._outputs = np.asarray(outputs, dtype=np.float32)
        self._outputs.flags.writeable = False

        if num_outputs is not None and self._outputs.shape[1] != num_outputs:
            raise MVAConsistencyError(
                f"Stored output vectors have width {self._outputs.shape[1]}, "
                f"expected {num_outputs}."
            )

    @classmethod
    def create(cls, event, tag, kind, num_outputs=None):
        """Builds a reader if the outputs exist in the event.

        Parameters
        ----------
        event : Event
            Event record
        tag : Union[str, InputTag]
            Tag of the writer outputs
        kind : Union[type, str]
            Data product class or product name
        num_outputs : int, optional
            Expected width of the output vectors

        Returns
        -------
        MVAReader
            Reader, `None` if the outputs are not in the event
        """
        descriptions = event.get_by_label(tag)
        if descriptions is None:
            return None

        instance = InputTag.parse(tag).instance + kind_name(kind)
        if not any(d.output_instance == instance for d in descriptions):
            return None

        return cls(event, tag, kind, num_outputs)

    def __len__(self):
        return self.size

    @property
    def size(self):
        """Number of stored output vectors."""
        return len(self._outputs)

    @property
    def num_outputs(self):
        """Width of the output vectors."""
        return self._outputs.shape[1]

    @property
    def outputs(self):
        """(M, N) Read-only array of all the output vectors."""
        return self._outputs

    @property
    def output_names(self):
        """Name of each entry of the output vectors."""
        return self.description.output_names

    @property
    def data_tag(self):
        """Tag of the source collection."""
        return InputTag.parse(self.description.data_tag)

    def get_index(self, name):
        """Index of a named output in the vectors.

        Parameters
        ----------
        name : str
            Output name

        Returns
        -------
        int
            Output index
        """
        index = self.description.output_index(name)
        if index < 0:
            raise KeyError(
                f"Output name not found: {name}. Available names: "
                f"{self.output_names}"
            )

        return index

    def get_output(self, key, weights=None, weight_fn=None, mode="arithmetic"):
        """Fetches output vectors.

        Parameters
        ----------
        key : Union[int, List[object]]
            Index of one item, or list of items to accumulate
        weights : List[float], optional
            Weight of each item (accumulation only)
        weight_fn : callable, optional
            Function which computes the weight of an item (accumulation only)
        mode : str, default 'arithmetic'
            Accumulation mode

        Returns
        -------
        np.ndarray
            (N) Output vector
        """
        if isinstance(key, (int, np.integer)):
            if key < 0 or key >= self.size:
                raise MVALookupError(
                    f"Output index {key} out of range (size {self.size})."
                )
            return self._outputs[key].copy()

        return self.accumulate(
            self._outputs, key, weights=weights, weight_fn=weight_fn, mode=mode
        )

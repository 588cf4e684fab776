"""Writes MVA output vectors for collections of data products.

For each product kind (e.g. hits, clusters), the writer stores one output
vector per item of a source collection and an :class:`MVADescription` which
ties the outputs to the source collection. Per event, the writer goes
through the following states:

1. `produces_using(kind)` declares the kinds the writer outputs (once);
2. `init_outputs(kind, ...)` allocates the outputs of a kind, either
   pre-sized (filled with `set_output`) or empty (extended with
   `add_output`);
3. `save_outputs(event)` puts the outputs and the descriptions in the
   event and resets the writer for the next event.

An event in which the outputs of a kind were initialized twice cannot be
saved; `clear_event_data` discards it.
"""

import numpy as np

from larimg.data import InputTag, MVADescription
from larimg.errors import MVAConsistencyError, MVADuplicateError, MVALookupError
from larimg.utils.logger import logger

from .wrapper import MVAWrapperBase, kind_name

__all__ = ["MVAWriter"]


class MVAWriter(MVAWrapperBase):
    """Stores the MVA output vectors of an event.

    Attributes
    ----------
    num_outputs : int
        Width of the output vectors
    producer : str
        Label of the module which puts the outputs in the event
    name : str
        Prefix of the instance names of the stored collections
    """

    def __init__(self, num_outputs, producer, name=""):
        """Initialize the writer.

        Parameters
        ----------
        num_outputs : int
            Width of the output vectors
        producer : str
            Label of the module which puts the outputs in the event
        name : str, default ''
            Prefix of the instance names of the stored collections
        """
        assert num_outputs > 0, "The output vectors must have at least one entry."

        self.num_outputs = num_outputs
        self.producer = producer
        self.name = name

        self._registered = []
        self.clear_event_data()

    def __str__(self):
        """Lists the registered product kinds and their outputs."""
        lines = [
            f"MVAWriter '{self.name}' (producer: {self.producer}, "
            f"{self.num_outputs} outputs)"
        ]
        for kind in self._registered:
            if kind in self._index:
                size = len(self._outputs[self._index[kind]])
                lines.append(f"  - {kind}: {size} output(s)")
            else:
                lines.append(f"  - {kind}: not initialized")

        return "\n".join(lines)

    @property
    def registered_kinds(self):
        """Names of the product kinds the writer outputs."""
        return list(self._registered)

    def clear_event_data(self):
        """Resets the outputs and the descriptions of the current event."""
        self._index = {}
        self._outputs = []
        self._descriptions = None
        self._duplicates = []

    def produces_using(self, kind):
        """Declares that the writer outputs vectors for a product kind.

        Parameters
        ----------
        kind : Union[type, str]
            Data product class or product name
        """
        name = kind_name(kind)
        if name not in self._registered:
            self._registered.append(name)

    def init_outputs(self, kind, data_tag, data_size=0, names=None):
        """Allocates the outputs of a product kind for the current event.

        Parameters
        ----------
        kind : Union[type, str]
            Data product class or product name
        data_tag : Union[str, InputTag]
            Tag of the source collection
        data_size : int, default 0
            Size of the source collection. If positive, the outputs are
            pre-sized with null vectors to be filled with `set_output`.
            Otherwise they are extended with `add_output`.
        names : List[str], optional
            Name of each entry of the output vectors

        Returns
        -------
        int
            Identifier of the outputs
        """
        name = kind_name(kind)
        if name not in self._registered:
            raise MVALookupError(
                f"Product kind '{name}' was not registered with `produces_using`."
            )
        if name in self._index:
            self._duplicates.append(name)
            raise MVADuplicateError(
                f"Outputs of product kind '{name}' already initialized in this event."
            )

        names = list(names) if names is not None else []
        if names and len(names) != self.num_outputs:
            raise MVAConsistencyError(
                f"Got {len(names)} output names for {self.num_outputs} outputs."
            )

        # Create the description container on first use
        if self._descriptions is None:
            self._descriptions = []

        self._descriptions.append(
            MVADescription(
                data_tag=InputTag.parse(data_tag).encode(),
                output_instance=self.name + name,
                output_names=names,
            )
        )

        output_id = len(self._outputs)
        self._outputs.append(
            [np.zeros(self.num_outputs, dtype=np.float32) for _ in range(data_size)]
        )
        self._index[name] = output_id

        return output_id

    def get_output_id(self, kind):
        """Identifier of the outputs of a product kind.

        Parameters
        ----------
        kind : Union[type, str]
            Data product class or product name

        Returns
        -------
        int
            Identifier of the outputs
        """
        name = kind_name(kind)
        if name not in self._index:
            raise MVALookupError(
                f"Outputs of product kind '{name}' not initialized in this event."
            )

        return self._index[name]

    def _check(self, output_id, values):
        """Validates an output identifier and an output vector."""
        if output_id < 0 or output_id >= len(self._outputs):
            raise MVALookupError(f"Output identifier not found: {output_id}.")

        values = np.asarray(values, dtype=np.float32).reshape(-1)
        if len(values) != self.num_outputs:
            raise MVAConsistencyError(
                f"Output vector of width {len(values)}, expected {self.num_outputs}."
            )

        return values

    def set_output(self, output_id, key, values):
        """Sets the output vector of one item.

        Parameters
        ----------
        output_id : int
            Identifier of the outputs
        key : int
            Index of the item in the source collection
        values : np.ndarray
            (N) Output vector
        """
        values = self._check(output_id, values)
        outputs = self._outputs[output_id]
        if key < 0 or key >= len(outputs):
            raise MVALookupError(
                f"Output index {key} out of range (size {len(outputs)})."
            )

        outputs[key] = values.copy()

    def add_output(self, output_id, values):
        """Appends the output vector of the next item.

        Parameters
        ----------
        output_id : int
            Identifier of the outputs
        values : np.ndarray
            (N) Output vector
        """
        values = self._check(output_id, values)
        self._outputs[output_id].append(values.copy())

    def get_output(self, kind, key, weights=None, weight_fn=None, mode="arithmetic"):
        """Fetches already written output vectors.

        Parameters
        ----------
        kind : Union[type, str]
            Data product class or product name
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
        outputs = self._outputs[self.get_output_id(kind)]
        if isinstance(key, (int, np.integer)):
            if key < 0 or key >= len(outputs):
                raise MVALookupError(
                    f"Output index {key} out of range (size {len(outputs)})."
                )
            return outputs[key].copy()

        return self.accumulate(
            self._stack(outputs),
            key,
            weights=weights,
            weight_fn=weight_fn,
            mode=mode,
            num_outputs=self.num_outputs,
        )

    def _stack(self, outputs):
        """Stacks a list of output vectors into a (M, N) array."""
        if len(outputs) == 0:
            return np.empty((0, self.num_outputs), dtype=np.float32)

        return np.vstack(outputs).astype(np.float32)

    def save_outputs(self, event):
        """Puts the outputs and their descriptions in the event.

        Parameters
        ----------
        event : Event
            Event record
        """
        if self._duplicates:
            raise MVAConsistencyError(
                f"Outputs of product kind(s) {self._duplicates} were initialized "
                "more than once in this event."
            )

        for name in self._registered:
            if name not in self._index:
                raise MVAConsistencyError(
                    f"Product kind '{name}' is registered but its outputs were "
                    "not initialized in this event."
                )

        if self._descriptions is not None:
            if len(self._descriptions) != len(self._outputs):
                raise MVAConsistencyError(
                    f"{len(self._descriptions)} descriptions for "
                    f"{len(self._outputs)} output collections."
                )

            for desc, outputs in zip(self._descriptions, self._outputs):
                event.put(self._stack(outputs), self.producer, desc.output_instance)
                logger.debug(
                    "Saved %d output vectors under %s:%s",
                    len(outputs),
                    self.producer,
                    desc.output_instance,
                )

            event.put(list(self._descriptions), self.producer, self.name)

        self.clear_event_data()

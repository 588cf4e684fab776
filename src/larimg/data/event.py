"""In-memory event record store.

Algorithms read their input collections from an :class:`Event` using an
:class:`InputTag` and put their output collections back under their module
label and an instance name. This mirrors the contract of an art event:
collections are written once and read back in order.
"""

from dataclasses import dataclass

from larimg.errors import ProductExistsError, ProductNotFoundError

__all__ = ["InputTag", "Event"]


@dataclass(frozen=True)
class InputTag:
    """Identifies a collection of data products in an event.

    Attributes
    ----------
    label : str
        Label of the module which produced the collection
    instance : str
        Instance name of the collection within the module
    process : str
        Name of the process which produced the collection
    """

    label: str
    instance: str = ""
    process: str = ""

    @classmethod
    def parse(cls, tag):
        """Builds a tag from its `label[:instance[:process]]` encoding.

        Parameters
        ----------
        tag : Union[str, InputTag]
            Encoded tag or tag object

        Returns
        -------
        InputTag
            Tag object
        """
        if isinstance(tag, InputTag):
            return tag

        assert isinstance(tag, str), f"Cannot build an input tag from {type(tag)}"
        parts = tag.split(":")
        if len(parts) > 3:
            raise ValueError(f"Malformed input tag: {tag}")

        return cls(*parts)

    def encode(self):
        """Encodes the tag as a `label[:instance[:process]]` string.

        Returns
        -------
        str
            Encoded tag
        """
        if self.process:
            return f"{self.label}:{self.instance}:{self.process}"
        if self.instance:
            return f"{self.label}:{self.instance}"

        return self.label

    def __str__(self):
        return self.encode()

    @property
    def empty(self):
        """Whether the tag points to nothing."""
        return not self.label and not self.instance and not self.process


class Event:
    """Collection of data products for one event.

    Attributes
    ----------
    run : int
        Run number
    subrun : int
        Subrun number
    event : int
        Event number
    is_real_data : bool
        Whether the event comes from the detector or from simulation
    """

    def __init__(self, run=0, subrun=0, event=0, is_real_data=False):
        """Initialize an empty event.

        Parameters
        ----------
        run : int, default 0
            Run number
        subrun : int, default 0
            Subrun number
        event : int, default 0
            Event number
        is_real_data : bool, default False
            Whether the event comes from the detector or from simulation
        """
        self.run = run
        self.subrun = subrun
        self.event = event
        self.is_real_data = is_real_data
        self._products = {}

    def __repr__(self):
        return (
            f"Event(run={self.run}, subrun={self.subrun}, event={self.event}, "
            f"num_products={len(self._products)})"
        )

    @staticmethod
    def _key(tag):
        """Maps a tag onto the (label, instance) storage key."""
        tag = InputTag.parse(tag)

        return (tag.label, tag.instance)

    def put(self, product, label, instance=""):
        """Stores a collection in the event.

        Parameters
        ----------
        product : object
            Collection to store
        label : str
            Label of the producing module
        instance : str, default ''
            Instance name of the collection
        """
        key = (label, instance)
        if key in self._products:
            raise ProductExistsError(
                f"A product is already stored under {InputTag(label, instance)}."
            )

        self._products[key] = product

    def get(self, tag):
        """Fetches a collection from the event.

        Parameters
        ----------
        tag : Union[str, InputTag]
            Tag of the collection

        Returns
        -------
        object
            Stored collection
        """
        key = self._key(tag)
        if key not in self._products:
            raise ProductNotFoundError(
                f"No product found under {InputTag.parse(tag)}. Available "
                f"products: {[InputTag(*k).encode() for k in self._products]}"
            )

        return self._products[key]

    def get_by_label(self, tag):
        """Fetches a collection from the event if it exists.

        Parameters
        ----------
        tag : Union[str, InputTag]
            Tag of the collection

        Returns
        -------
        object
            Stored collection, `None` if it does not exist
        """
        return self._products.get(self._key(tag), None)

    def __contains__(self, tag):
        return self._key(tag) in self._products

    def keys(self):
        """List of tags of the stored collections.

        Returns
        -------
        List[InputTag]
            Tags
        """
        return [InputTag(*k) for k in self._products]

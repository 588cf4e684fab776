"""Module with the parent class of all data products."""

from dataclasses import dataclass

import numpy as np


@dataclass(eq=False)
class DataBase:
    """Base class of all data products.

    Subclasses declare their array and string attributes in three class-level
    tuples, which are used to normalize the values given to the constructor.
    """

    # Name under which MVA results made for this product kind are stored
    product_name = ""

    # Fixed-length attributes as (key, size) or (key, (size, dtype)) pairs
    _fixed_length_attrs = ()

    # Variable-length attributes as (key, dtype) or (key, (width, dtype)) pairs
    _var_length_attrs = ()

    # String attributes
    _str_attrs = ()

    def __post_init__(self):
        """Normalizes the array and string attributes.

        - Array attributes left to `None` get their own empty (variable-length)
          or `-inf`-filled (fixed-length) array, others are cast to their dtype.
        - Strings given as bytes (as read from HDF5) are decoded.
        """
        for attr, dtype in self._var_length_attrs:
            value = getattr(self, attr)
            if value is None:
                shape = (0, dtype[0]) if isinstance(dtype, tuple) else 0
                value = np.empty(shape)
            if isinstance(dtype, tuple):
                dtype = dtype[1]
            setattr(self, attr, np.asarray(value, dtype=dtype))

        for attr, size in self._fixed_length_attrs:
            size, dtype = size if isinstance(size, tuple) else (size, np.float32)
            value = getattr(self, attr)
            if value is None:
                value = np.full(size, -np.inf)
            setattr(self, attr, np.asarray(value, dtype=dtype))

        for attr in self._str_attrs:
            value = getattr(self, attr)
            if isinstance(value, bytes):
                setattr(self, attr, value.decode())

    def __eq__(self, other):
        """Checks that all attributes of two products are the same.

        Array attributes, and sequences of arrays, are compared element-wise.

        Parameters
        ----------
        other : obj
            Other instance of the same product class

        Returns
        -------
        bool
            `True` if all attributes of both objects are identical
        """
        if self.__class__ != other.__class__:
            return False

        return all(_equal(v, getattr(other, k)) for k, v in self.__dict__.items())


def _equal(a, b):
    """Compares two attribute values, recursing into sequences of arrays."""
    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        a, b = np.asarray(a), np.asarray(b)
        return a.shape == b.shape and bool((a == b).all())

    if isinstance(a, (list, tuple)):
        if not isinstance(b, (list, tuple)) or len(a) != len(b):
            return False
        return all(_equal(x, y) for x, y in zip(a, b))

    return a == b

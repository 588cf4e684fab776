"""Module with a data class object which describes a stored MVA output."""

from dataclasses import dataclass, field
from typing import List

from .base import DataBase

__all__ = ["MVADescription"]


@dataclass(eq=False)
class MVADescription(DataBase):
    """Description of one collection of MVA output vectors.

    Attributes
    ----------
    data_tag : str
        Encoded input tag of the products the outputs were computed for
    output_instance : str
        Instance name under which the output vectors are stored
    output_names : List[str]
        Name of each entry of the output vectors
    """

    data_tag: str = ""
    output_instance: str = ""
    output_names: List[str] = field(default_factory=list)

    product_name = "mvadescription"

    _str_attrs = ("data_tag", "output_instance")

    def __post_init__(self):
        """Cast the output names to regular strings."""
        super().__post_init__()
        self.output_names = [
            n.decode() if isinstance(n, bytes) else str(n) for n in self.output_names
        ]

    @property
    def num_outputs(self):
        """Width of the described output vectors."""
        return len(self.output_names)

    def output_index(self, name):
        """Index of a named output, -1 if the name is not known.

        Parameters
        ----------
        name : str
            Output name

        Returns
        -------
        int
            Index of the output in the vectors
        """
        if name in self.output_names:
            return self.output_names.index(name)

        return -1

"""Training data readers."""

from .hdf5 import *

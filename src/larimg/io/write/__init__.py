"""Training data writers."""

from .hdf5 import *

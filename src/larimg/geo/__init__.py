"""Minimal wire readout geometry used to project truth onto wire planes."""

from .base import *
from .detector import *

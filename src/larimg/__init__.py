"""Top-level module of the larimg source code."""

from .version import __version__

# Import the main algorithms
from .image import PointIdAlg, TrainingDataAlg
from .mva import MVAReader, MVAWriter

"""Patch-based image pattern algorithms on (wire, drift) plane images.

**Image Building:**
- `DataProvider`: scaled, optionally downscaled, image of one plane
- `PatchExtractor`: patches around (wire, drift) points, with a one-slot cache

**Classification:**
- `PointIdAlg`: scores points with a model interface (see `model`)

**Training Data:**
- `TrainingDataAlg`: plane images with true deposits and packed labels
- `LabelMask`, `LabelFlag`: packed label layout
"""

from .labels import *
from .patch import *
from .pointid import *
from .provider import *
from .training import *

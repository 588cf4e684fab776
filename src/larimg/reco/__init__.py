"""Event-level reconstruction modules built on the image algorithms.

- `HitClassifier`: scores hits and clusters with a point ID algorithm
- `WireClusterFinder`: keeps the wires which belong to signal clusters
"""

from .factories import *
from .hit_classifier import *
from .wire_cluster import *

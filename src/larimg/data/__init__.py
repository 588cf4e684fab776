"""Data products and the in-memory event record store.

**Reconstructed Products:**
- `Wire`: deconvolved signal of one channel, stored as regions of interest
- `Hit`, `Cluster`, `Track`: hit-level reconstruction

**Simulation Truth:**
- `Particle`: true particle trajectory summary
- `SimChannel`: ionization deposits collected on one channel
- `Neutrino`: true neutrino interaction

**MVA Bookkeeping:**
- `MVADescription`: describes a stored collection of classifier outputs

**Event Store:**
- `InputTag`: `label[:instance[:process]]` product identifier
- `Event`: write-once collection store for one event

Each product class carries a `product_name` class attribute which is used to
name the MVA output collections made for it.
"""

from .event import *
from .hit import *
from .mva import *
from .particle import *
from .wire import *

"""Multi-output MVA result bookkeeping.

- `MVAWriter`: stores one output vector per item of a source collection and
  the description of those outputs in the event
- `MVAReader`: reads them back, item by item or accumulated over a list of
  items
"""

from .reader import *
from .wrapper import *
from .writer import *

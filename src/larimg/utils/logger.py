"""Defines the package logger and the style of its messages."""

import logging
import sys
import warnings

# Plain messages, written to the standard output
logging.basicConfig(format="%(message)s", stream=sys.stdout)

# Route the warnings (e.g. missing optional dependencies) through the logger
logging.captureWarnings(True)

# Package logger
logger = logging.getLogger("larimg")

# Keep the numba compiler quiet when the root level is lowered
logging.getLogger("numba").setLevel(logging.WARNING)

# Only issue each warning once
warnings.simplefilter("once")

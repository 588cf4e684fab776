"""Storage of labelled training images."""

from .read import *
from .write import *

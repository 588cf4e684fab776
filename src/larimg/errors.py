"""Typed exceptions raised across the package.

Fatal conditions are reported through these exception types so that the
calling pipeline can tell configuration problems, inference backend failures
and result bookkeeping errors apart. Soft conditions (points outside of the
fiducial region, empty collections) never raise, they return sentinels.
"""

from typing import List

__all__ = [
    "LArImgError",
    "ConfigError",
    "ConfigIncludeError",
    "ConfigCycleError",
    "ModelError",
    "ModelLoadError",
    "InferenceServerError",
    "MVAError",
    "MVADuplicateError",
    "MVALookupError",
    "MVAConsistencyError",
    "ProductNotFoundError",
    "ProductExistsError",
]


class LArImgError(Exception):
    """Base exception for all errors raised by this package."""


class ConfigError(LArImgError):
    """Raised when a component is given an invalid configuration."""


class ConfigIncludeError(ConfigError):
    """Raised when an included file cannot be found or loaded."""


class ConfigCycleError(ConfigError):
    """Raised when a circular include dependency is detected."""

    def __init__(self, cycle_path: List[str]):
        """Initialize with the cycle path.

        Parameters
        ----------
        cycle_path : List[str]
            List of file paths showing the include cycle
        """
        self.cycle_path = cycle_path
        cycle_str = " -> ".join(cycle_path)
        super().__init__(f"Circular include detected: {cycle_str}")


class ModelError(LArImgError):
    """Raised when a model fails to produce a valid output."""


class ModelLoadError(ModelError):
    """Raised when a model cannot be loaded (missing file, missing library)."""


class InferenceServerError(ModelError):
    """Raised when the remote inference server reports a failure."""


class MVAError(LArImgError):
    """Base exception for the MVA result bookkeeping."""


class MVADuplicateError(MVAError):
    """Raised when the outputs of a product kind are initialized twice."""


class MVALookupError(MVAError):
    """Raised when the outputs of a product kind were never initialized."""


class MVAConsistencyError(MVAError):
    """Raised when the descriptions and outputs do not match at save time."""


class ProductNotFoundError(LArImgError, KeyError):
    """Raised when a data product is missing from the event."""

    def __str__(self):
        """Do not let `KeyError` quote the message."""
        return str(self.args[0]) if self.args else ""


class ProductExistsError(LArImgError):
    """Raised when a data product is written twice under the same tag."""

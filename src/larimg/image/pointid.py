"""Classifies (wire, drift) points of a plane image with a patch-based model.

The algorithm combines three pieces:
- a :class:`DataProvider` which holds the scaled image of one plane;
- a :class:`PatchExtractor` which builds the patch around a point;
- a :class:`ModelInterface` which turns patches into score vectors.

Single-point queries reuse the patch and the model output cached for the
last point as long as the query maps onto the same patch. Batched queries
never touch that cache.
"""

import numpy as np

from larimg.errors import ConfigError
from larimg.utils.logger import logger

from .model import model_factory
from .patch import PatchExtractor
from .provider import DataProvider

__all__ = ["PointIdAlg"]


class PointIdAlg:
    """Patch-based point identification algorithm.

    Attributes
    ----------
    provider : DataProvider
        Holds the plane image
    extractor : PatchExtractor
        Builds the patches
    model : ModelInterface
        Inference backend
    """

    def __init__(
        self,
        model,
        outputs,
        patch_size_w,
        patch_size_d,
        margin_w=None,
        margin_d=None,
        **provider_cfg,
    ):
        """Initialize the algorithm.

        Parameters
        ----------
        model : Union[str, dict, ModelInterface]
            Path to a model file, model interface configuration or model
            interface instance
        outputs : List[str]
            Ordered names of the model outputs
        patch_size_w : int
            Patch size in wires
        patch_size_d : int
            Patch size in downscaled drift bins
        margin_w : int, optional
            Fiducial margin in wires
        margin_d : int, optional
            Fiducial margin in drift bins
        **provider_cfg : dict, optional
            Configuration of the :class:`DataProvider`
        """
        # Check and store the output labels
        if not outputs:
            raise ConfigError("At least one output label must be provided.")
        if len(set(outputs)) != len(outputs):
            raise ConfigError(f"Output labels must be unique, got {outputs}.")

        self._output_labels = list(outputs)

        # Build the image provider and the patch extractor
        self.provider = DataProvider(**provider_cfg)
        self.extractor = PatchExtractor(
            self.provider, patch_size_w, patch_size_d, margin_w, margin_d
        )

        # Build the model and check its compatibility
        self.model = model_factory(model)
        self.model.bind(len(self._output_labels), self.extractor.patch_shape)

        # Initialize the cached (cell, model output) pair
        self._output = None

        logger.info(
            "Point ID algorithm with %d outputs (%s), patches of %d x %d, "
            "model: %s",
            self.num_outputs,
            ", ".join(self._output_labels),
            patch_size_w,
            patch_size_d,
            self.model,
        )

    @property
    def output_labels(self):
        """Ordered names of the model outputs."""
        return self._output_labels

    @property
    def num_outputs(self):
        """Width of the score vectors."""
        return len(self._output_labels)

    @property
    def patch_size_w(self):
        """Patch size in wires."""
        return self.extractor.patch_size_w

    @property
    def patch_size_d(self):
        """Patch size in downscaled drift bins."""
        return self.extractor.patch_size_d

    def output_index(self, name):
        """Index of a named output in the score vectors.

        Parameters
        ----------
        name : str
            Output label

        Returns
        -------
        int
            Output index
        """
        if name not in self._output_labels:
            raise KeyError(
                f"Output label not found: {name}. Available labels: "
                f"{self._output_labels}"
            )

        return self._output_labels.index(name)

    def set_wire_drift_data(self, wires, plane, tpc, cryo, **kwargs):
        """Sets the plane image, invalidating the cached patch and output.

        Parameters
        ----------
        wires : List[Wire]
            Wires of the event
        plane : int
            Plane index
        tpc : int
            TPC index
        cryo : int
            Cryostat index
        **kwargs : dict, optional
            Additional arguments of :meth:`DataProvider.set_wire_drift_data`

        Returns
        -------
        bool
            `True` if at least one wire was set
        """
        self.extractor.reset()
        self._output = None

        return self.provider.set_wire_drift_data(wires, plane, tpc, cryo, **kwargs)

    def predict_at(self, wire, drift):
        """Score vector of a single point.

        Parameters
        ----------
        wire : int
            Wire index
        drift : float
            Drift coordinate in ticks

        Returns
        -------
        np.ndarray
            (N) Score vector
        """
        cell = self.extractor.policy.cell(wire, drift)
        if self._output is not None and self._output[0] == cell:
            return self._output[1].copy()

        patch = self.extractor.patch_at(wire, drift)
        self._output = (cell, self.model.run_batch(patch[None, ...])[0])

        return self._output[1].copy()

    def predict_scalar(self, wire, drift, out_idx=0):
        """Single score of a single point.

        Parameters
        ----------
        wire : int
            Wire index
        drift : float
            Drift coordinate in ticks
        out_idx : int, default 0
            Index of the output to return

        Returns
        -------
        float
            Score
        """
        return float(self.predict_at(wire, drift)[out_idx])

    def predict_batch(self, points):
        """Score vectors of a list of points, computed in one model call.

        Parameters
        ----------
        points : List[Tuple[int, float]]
            (wire, drift) coordinates of the points

        Returns
        -------
        np.ndarray
            (B, N) Score vectors
        """
        if len(points) == 0:
            return np.empty((0, self.num_outputs), dtype=np.float32)

        batch = np.empty((len(points), *self.extractor.patch_shape), dtype=np.float32)
        for i, (wire, drift) in enumerate(points):
            self.extractor.fill_patch(wire, drift, batch[i])

        return self.model.run_batch(batch)

    def patch_data_2d(self):
        """Read-only view of the current patch, `None` if there is none."""
        return self.extractor.current_patch

    def patch_data_1d(self):
        """Flattened copy of the current patch, `None` if there is none."""
        patch = self.extractor.current_patch
        if patch is None:
            return None

        return self.extractor.flatten_patch(patch)

    def patch_at(self, wire, drift):
        """Read-only patch centered on a point (see :meth:`PatchExtractor.patch_at`)."""
        return self.extractor.patch_at(wire, drift)

    def flatten_patch(self, patch):
        """Flattens a patch, wire-major."""
        return self.extractor.flatten_patch(patch)

    def is_inside_fiducial_region(self, wire, drift):
        """Checks whether a point is inside of the fiducial region."""
        return self.extractor.is_inside_fiducial_region(wire, drift)

    def is_current_patch(self, wire, drift):
        """Checks whether a point maps onto the cached patch."""
        return self.extractor.is_current_patch(wire, drift)

    def is_same_patch(self, wire1, drift1, wire2, drift2):
        """Checks whether two points map onto the same patch."""
        return self.extractor.is_same_patch(wire1, drift1, wire2, drift2)

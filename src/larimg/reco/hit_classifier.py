"""Classifies the hits (and clusters) of an event with a point ID algorithm."""

import numpy as np

from larimg.data import Cluster, Hit
from larimg.image import PointIdAlg
from larimg.mva import MVAWriter
from larimg.utils.logger import logger

__all__ = ["HitClassifier"]


class HitClassifier:
    """Runs a :class:`PointIdAlg` on each hit of an event.

    For each (cryostat, TPC, plane) which contains hits, the plane image is
    built from the wires and one score vector is computed per hit, at the
    (wire, peak time) of the hit. Hits which share a patch share a score
    vector. If a cluster collection is provided, each cluster gets the
    average of the scores of its hits, weighted by their integral.

    Typical configuration should look like:

    .. code-block:: yaml

        hit_classifier:
          wire_label: caldata
          hit_label: gaushit
          cluster_label: linecluster
          point_id:
            model: emtrack.pt
            outputs: [track, em, none, michel]
            patch_size_w: 44
            patch_size_d: 48
    """

    name = "hit_classifier"

    def __init__(
        self,
        point_id,
        wire_label,
        hit_label,
        cluster_label=None,
        name="emtrack",
        producer="emtrack",
        batch_size=256,
        views=None,
    ):
        """Initialize the hit classifier.

        Parameters
        ----------
        point_id : Union[PointIdAlg, dict]
            Point ID algorithm or its configuration
        wire_label : str
            Tag of the wires
        hit_label : str
            Tag of the hits
        cluster_label : str, optional
            Tag of the clusters
        name : str, default 'emtrack'
            Prefix of the instance names of the stored outputs
        producer : str, default 'emtrack'
            Label under which the outputs are stored
        batch_size : int, default 256
            Maximum number of patches per model call
        views : List[int], optional
            Planes to process. If not specified, all planes are processed.
        """
        if not isinstance(point_id, PointIdAlg):
            point_id = PointIdAlg(**point_id)

        assert batch_size > 0, "The batch size must be positive."

        self.point_id = point_id
        self.wire_label = wire_label
        self.hit_label = hit_label
        self.cluster_label = cluster_label
        self.batch_size = batch_size
        self.views = set(views) if views is not None else None

        # Declare the outputs
        self.writer = MVAWriter(point_id.num_outputs, producer, name)
        self.writer.produces_using(Hit)
        if cluster_label is not None:
            self.writer.produces_using(Cluster)

    def __call__(self, event):
        """Alias of :meth:`process`."""
        return self.process(event)

    def process(self, event):
        """Classifies the hits and clusters of one event.

        Parameters
        ----------
        event : Event
            Event record, the outputs are added to it
        """
        wires = event.get(self.wire_label)
        hits = event.get(self.hit_label)
        try:
            self._process(event, wires, hits)
        except Exception:
            # Do not carry the outputs of a failed event over to the next one
            self.writer.clear_event_data()
            raise

    def _process(self, event, wires, hits):
        """Fills and saves the outputs of one event."""
        hit_id = self.writer.init_outputs(
            Hit, self.hit_label, len(hits), self.point_id.output_labels
        )

        # Group the hits by plane
        groups = {}
        for idx, hit in enumerate(hits):
            if self.views is None or hit.plane in self.views:
                groups.setdefault(hit.plane_id, []).append(idx)

        # Classify the hits of each plane
        for (cryo, tpc, plane), indexes in sorted(groups.items()):
            if not self.point_id.set_wire_drift_data(wires, plane, tpc, cryo):
                logger.warning(
                    "No wire data for plane %d, TPC %d, cryostat %d: %d hits "
                    "left unclassified.",
                    plane,
                    tpc,
                    cryo,
                    len(indexes),
                )
                continue

            outputs, point_index = self.classify([hits[i] for i in indexes])
            for idx, point in zip(indexes, point_index):
                self.writer.set_output(hit_id, idx, outputs[point])

        # Classify the clusters
        if self.cluster_label is not None:
            clusters = event.get(self.cluster_label)
            cluster_id = self.writer.init_outputs(
                Cluster, self.cluster_label, names=self.point_id.output_labels
            )
            for cluster in clusters:
                weights = [hits[h].integral for h in cluster.hit_index]
                output = self.writer.get_output(Hit, list(cluster.hit_index), weights)
                self.writer.add_output(cluster_id, output)

        self.writer.save_outputs(event)

    def classify(self, hits):
        """Computes the score vectors of hits in the current plane.

        Parameters
        ----------
        hits : List[Hit]
            Hits of the current plane

        Returns
        -------
        np.ndarray
            (P, N) Score vector of each unique patch
        List[int]
            Index of the patch of each hit
        """
        # Only keep one point per patch
        policy = self.point_id.extractor.policy
        points, cells, point_index = [], {}, []
        for hit in hits:
            cell = policy.cell(hit.wire, hit.peak_time)
            if cell not in cells:
                cells[cell] = len(points)
                points.append((hit.wire, hit.peak_time))
            point_index.append(cells[cell])

        # Run the model in batches
        outputs = [
            self.point_id.predict_batch(points[i : i + self.batch_size])
            for i in range(0, len(points), self.batch_size)
        ]
        if len(outputs) == 0:
            return np.empty((0, self.point_id.num_outputs), dtype=np.float32), []

        logger.debug("Classified %d hits using %d patches.", len(hits), len(points))

        return np.vstack(outputs), point_index

"""Selects the wires which belong to clusters of neighbouring signals."""

from larimg.utils.logger import logger

__all__ = ["WireClusterFinder"]


class WireClusterFinder:
    """Clusters wires with signal in neighbouring channels and ticks.

    Wires with at least one region of interest (ROI) are grouped by
    (APA, view) and sorted by channel. Two wires are neighbours if their
    channels are at most `channel_distance` apart and two of their ROIs are at
    most `tick_distance` ticks apart. Clusters are the connected sets of
    neighbours; the wires of clusters with at least `min_cluster_size` wires
    are written out, sorted by channel.
    """

    name = "wire_cluster_finder"

    def __init__(
        self,
        wire_label,
        channels_per_apa=2560,
        channel_distance=1,
        tick_distance=10,
        min_cluster_size=1,
        log_level=0,
        producer="wirecluster",
    ):
        """Initialize the wire cluster finder.

        Parameters
        ----------
        wire_label : str
            Tag of the wires
        channels_per_apa : int, default 2560
            Number of readout channels per APA
        channel_distance : int, default 1
            Maximum channel distance between two neighbouring wires
        tick_distance : int, default 10
            Maximum tick gap between two neighbouring ROIs
        min_cluster_size : int, default 1
            Minimum number of wires in a cluster
        log_level : int, default 0
            Verbosity, the wire groups are logged from level 3
        producer : str, default 'wirecluster'
            Label under which the selected wires are stored
        """
        if not wire_label:
            raise ValueError("The wire label must not be empty.")

        self.wire_label = wire_label
        self.channels_per_apa = channels_per_apa
        self.channel_distance = channel_distance
        self.tick_distance = tick_distance
        self.min_cluster_size = min_cluster_size
        self.log_level = log_level
        self.producer = producer

    def __call__(self, event):
        """Alias of :meth:`process`."""
        return self.process(event)

    def apa_view(self, wire):
        """(APA, view) pair a wire belongs to."""
        return (wire.channel // self.channels_per_apa, wire.view)

    def process(self, event):
        """Selects the clustered wires of one event.

        Parameters
        ----------
        event : Event
            Event record, the selected wires are added to it

        Returns
        -------
        List[Wire]
            Selected wires
        """
        wires = event.get(self.wire_label)

        # Group the wires with signal by (APA, view)
        groups = {}
        for wire in wires:
            if wire.num_rois == 0:
                continue
            groups.setdefault(self.apa_view(wire), []).append(wire)

        # Cluster each group, keep the wires of large enough clusters
        out_wires = []
        for key in sorted(groups):
            group = sorted(groups[key], key=lambda w: w.channel)
            if self.log_level >= 3:
                logger.info(
                    "APA %d, view %d channels: %s",
                    key[0],
                    key[1],
                    ", ".join(str(w.channel) for w in group),
                )

            selected = []
            for cluster in self.find_clusters(group):
                if len(cluster) >= self.min_cluster_size:
                    selected.extend(cluster)

            out_wires.extend(group[i] for i in sorted(selected))

        if self.log_level >= 1:
            logger.info("Selected %d of %d wires.", len(out_wires), len(wires))

        event.put(out_wires, self.producer)

        return out_wires

    def find_clusters(self, wires):
        """Finds clusters of neighbouring wires.

        Parameters
        ----------
        wires : List[Wire]
            Wires sorted by channel

        Returns
        -------
        List[List[int]]
            Indexes of the wires of each cluster
        """
        ranges = [w.roi_ranges for w in wires]
        labels = [-1] * len(wires)
        clusters = []
        for seed in range(len(wires)):
            if labels[seed] > -1:
                continue

            # Grow the cluster from the seed
            labels[seed] = len(clusters)
            cluster, queue = [seed], [seed]
            while queue:
                i = queue.pop()
                for j in self.neighbours(wires, ranges, i):
                    if labels[j] < 0:
                        labels[j] = labels[seed]
                        cluster.append(j)
                        queue.append(j)

            clusters.append(sorted(cluster))

        return clusters

    def neighbours(self, wires, ranges, i):
        """Indexes of the neighbours of one wire in a channel-sorted list."""
        result = []
        for step in (-1, 1):
            j = i + step
            while 0 <= j < len(wires):
                if abs(wires[j].channel - wires[i].channel) > self.channel_distance:
                    break
                if self.rois_touch(ranges[i], ranges[j]):
                    result.append(j)
                j += step

        return result

    def rois_touch(self, ranges1, ranges2):
        """Checks whether two sets of ROIs are within the tick distance."""
        for start1, end1 in ranges1:
            for start2, end2 in ranges2:
                if start1 <= end2 + self.tick_distance and start2 <= end1 + self.tick_distance:
                    return True

        return False

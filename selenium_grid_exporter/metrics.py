"""
Published Prometheus state for the grid and its nodes.
"""
from typing import Optional

from prometheus_client import CollectorRegistry, Gauge

from .snapshot import StatusSnapshot

NAMESPACE = "selenium"
GRID_SUBSYSTEM = "grid"
NODE_SUBSYSTEM = "node"

NODE_ID_LABEL = "node_id"
NODE_URI_LABEL = "node_uri"
STATUS_LABEL = "status"
VERSION_LABEL = "version"


class GridMetrics:
    """
    Gauges republishing one grid status snapshot.

    The metrics live in a private registry owned by this instance. Callers are
    responsible for serialising ``publish``/``mark_down`` against reads.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry(auto_describe=True)
        self._setup_metrics()

    def _grid_gauge(self, name, documentation, labelnames=()):
        return Gauge(name, documentation, labelnames=labelnames,
                     namespace=NAMESPACE, subsystem=GRID_SUBSYSTEM, registry=self.registry)

    def _node_gauge(self, name, documentation, extra_labels=()):
        return Gauge(name, documentation,
                     labelnames=[NODE_ID_LABEL, NODE_URI_LABEL, *extra_labels],
                     namespace=NAMESPACE, subsystem=NODE_SUBSYSTEM, registry=self.registry)

    def _setup_metrics(self):
        """Setup Prometheus metrics."""
        self.up = self._grid_gauge("up", "Was the last scrape of Selenium Grid successful.")
        self.total_slots = self._grid_gauge("total_slots", "Total number of slots.")
        self.max_session = self._grid_gauge("max_session", "Maximum number of sessions.")
        self.session_count = self._grid_gauge("session_count", "Number of active sessions.")
        self.session_queue_size = self._grid_gauge("session_queue_size", "Number of queued sessions.")
        self.node_count = self._grid_gauge("node_count", "Number of nodes.")
        self.version = self._grid_gauge("version", "Hub/Router version.", [VERSION_LABEL])

        self.node_status = self._node_gauge("status", "Node status.", [STATUS_LABEL])
        self.node_max_session = self._node_gauge("max_session", "Maximum number of sessions on node.")
        self.node_slot_count = self._node_gauge("slot_count", "Number of slots on node.")
        self.node_session_count = self._node_gauge("session_count", "Number of active sessions on node.")
        self.node_version = self._node_gauge("version", "Node version.", [VERSION_LABEL])

    @property
    def node_gauges(self):
        return (
            self.node_status,
            self.node_max_session,
            self.node_slot_count,
            self.node_session_count,
            self.node_version,
        )

    def clear_nodes(self):
        """Drop every per-node series."""
        for gauge in self.node_gauges:
            gauge.clear()

    def mark_down(self):
        """
        Record a failed refresh: ``up`` goes to 0 and the version and node
        series are dropped. Grid scalars keep their last successful values.
        """
        self.up.set(0)
        self.version.clear()
        self.clear_nodes()

    def publish(self, snapshot: StatusSnapshot):
        """Replace the published state with ``snapshot``."""
        self.up.set(1)
        self.total_slots.set(snapshot.total_slots)
        self.max_session.set(snapshot.max_session)
        self.session_count.set(snapshot.session_count)
        self.session_queue_size.set(snapshot.session_queue_size)
        self.node_count.set(snapshot.node_count)

        self.version.clear()
        self.version.labels(snapshot.version).set(1)

        self.clear_nodes()
        for node in snapshot.nodes:
            self.node_status.labels(node.id, node.uri, node.status).set(1)
            self.node_max_session.labels(node.id, node.uri).set(node.max_session)
            self.node_slot_count.labels(node.id, node.uri).set(node.slot_count)
            self.node_session_count.labels(node.id, node.uri).set(node.session_count)
            self.node_version.labels(node.id, node.uri, node.version).set(1)

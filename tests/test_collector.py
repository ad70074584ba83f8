import threading
import time

from prometheus_client import CollectorRegistry, generate_latest
from structlog.testing import capture_logs

from selenium_grid_exporter.collector import GridCollector
from selenium_grid_exporter.errors import BadStatus, FetchTimeout, TransportError
from tests.helpers import FakeFetcher, grid_payload, node_payload

NODE_FAMILIES = (
    "selenium_node_status",
    "selenium_node_max_session",
    "selenium_node_slot_count",
    "selenium_node_session_count",
    "selenium_node_version",
)


def sample(collector, name, labels=None):
    return collector.metrics.registry.get_sample_value(name, labels or {})


def published(collector):
    """All published samples as ``{(name, sorted labels): value}``."""
    return {
        (s.name, tuple(sorted(s.labels.items()))): s.value
        for family in collector.metrics.registry.collect()
        for s in family.samples
    }


def node_ids(collector):
    return {
        s.labels["node_id"]
        for family in collector.metrics.registry.collect()
        if family.name in NODE_FAMILIES
        for s in family.samples
    }


def version_labels(collector):
    family = next(f for f in collector.metrics.registry.collect() if f.name == "selenium_grid_version")
    return {s.labels["version"]: s.value for s in family.samples}


def three_nodes():
    return [
        node_payload("a", "http://10.0.1.1:5555"),
        node_payload("b", "http://10.0.1.2:5555"),
        node_payload("c", "http://10.0.1.3:5555", status="DRAINING"),
    ]


def test_refresh_publishes_grid_and_node_metrics(sample_payload):
    collector = GridCollector(FakeFetcher(sample_payload))

    collector.refresh()

    node = {"node_id": "n1", "node_uri": "http://10.0.1.1:5555"}
    assert sample(collector, "selenium_grid_up") == 1
    assert sample(collector, "selenium_grid_total_slots") == 72
    assert sample(collector, "selenium_grid_max_session") == 24
    assert sample(collector, "selenium_grid_session_count") == 0
    assert sample(collector, "selenium_grid_session_queue_size") == 0
    assert sample(collector, "selenium_grid_node_count") == 1
    assert sample(collector, "selenium_grid_version", {"version": "4.1.0"}) == 1
    assert sample(collector, "selenium_node_status", dict(node, status="UP")) == 1
    assert sample(collector, "selenium_node_max_session", node) == 8
    assert sample(collector, "selenium_node_slot_count", node) == 24
    assert sample(collector, "selenium_node_session_count", node) == 0
    assert sample(collector, "selenium_node_version", dict(node, version="4.1.0")) == 1


def test_refresh_is_idempotent(sample_payload):
    collector = GridCollector(FakeFetcher(sample_payload))

    collector.refresh()
    first = published(collector)
    collector.refresh()

    assert published(collector) == first


def test_refresh_replaces_node_set():
    fetcher = FakeFetcher(
        grid_payload(nodes=[node_payload("a", "http://a:5555"), node_payload("b", "http://b:5555")]),
        grid_payload(nodes=[node_payload("b", "http://b:5555"), node_payload("c", "http://c:5555")]),
    )
    collector = GridCollector(fetcher)

    collector.refresh()
    assert node_ids(collector) == {"a", "b"}

    collector.refresh()
    assert node_ids(collector) == {"b", "c"}
    assert sample(collector, "selenium_node_max_session", {"node_id": "a", "node_uri": "http://a:5555"}) is None


def test_node_status_change_drops_old_status_series():
    fetcher = FakeFetcher(
        grid_payload(nodes=[node_payload("a", "http://a:5555", status="UP")]),
        grid_payload(nodes=[node_payload("a", "http://a:5555", status="DOWN")]),
    )
    collector = GridCollector(fetcher)
    labels = {"node_id": "a", "node_uri": "http://a:5555"}

    collector.refresh()
    collector.refresh()

    assert sample(collector, "selenium_node_status", dict(labels, status="UP")) is None
    assert sample(collector, "selenium_node_status", dict(labels, status="DOWN")) == 1


def test_refresh_replaces_version_label():
    collector = GridCollector(FakeFetcher(grid_payload(version="4.1.0"), grid_payload(version="4.2.0")))

    collector.refresh()
    collector.refresh()

    assert version_labels(collector) == {"4.2.0": 1}


def test_empty_node_list_keeps_reported_node_count():
    collector = GridCollector(FakeFetcher(grid_payload(nodes=[], nodeCount=2)))

    collector.refresh()

    assert node_ids(collector) == set()
    assert sample(collector, "selenium_grid_node_count") == 2
    assert sample(collector, "selenium_grid_up") == 1


def test_duplicate_node_keeps_last_values():
    nodes = [
        node_payload("a", "http://a:5555", session_count=1),
        node_payload("a", "http://a:5555", session_count=5),
    ]
    collector = GridCollector(FakeFetcher(grid_payload(nodes=nodes)))

    collector.refresh()

    assert sample(collector, "selenium_node_session_count", {"node_id": "a", "node_uri": "http://a:5555"}) == 5


def test_fetch_failure_clears_node_state_and_keeps_grid_scalars():
    fetcher = FakeFetcher(grid_payload(nodes=three_nodes(), nodeCount=3), BadStatus(503))
    collector = GridCollector(fetcher)

    collector.refresh()
    assert len(node_ids(collector)) == 3

    collector.refresh()

    assert sample(collector, "selenium_grid_up") == 0
    assert node_ids(collector) == set()
    assert version_labels(collector) == {}
    assert sample(collector, "selenium_grid_total_slots") == 72
    assert sample(collector, "selenium_grid_node_count") == 3


def test_decode_failure_clears_node_state_and_leaves_scalars_untouched():
    fetcher = FakeFetcher(grid_payload(nodes=three_nodes(), totalSlots=10), b"not json")
    collector = GridCollector(fetcher)
    collector.refresh()

    with capture_logs() as logs:
        collector.refresh()

    assert sample(collector, "selenium_grid_up") == 0
    assert node_ids(collector) == set()
    assert sample(collector, "selenium_grid_total_slots") == 10
    errors = [entry for entry in logs if entry["log_level"] == "error"]
    assert len(errors) == 1
    assert errors[0]["error_type"] == "DecodeError"


def test_malformed_json_on_first_refresh_sets_nothing():
    collector = GridCollector(FakeFetcher(b"not json"))

    collector.refresh()

    assert sample(collector, "selenium_grid_up") == 0
    assert sample(collector, "selenium_grid_total_slots") == 0
    assert node_ids(collector) == set()


def test_each_fetch_error_is_logged_and_swallowed():
    for error in (TransportError(ConnectionError("refused")), FetchTimeout(5.0), BadStatus(503)):
        collector = GridCollector(FakeFetcher(error))
        with capture_logs() as logs:
            collector.refresh()

        assert sample(collector, "selenium_grid_up") == 0
        assert [entry["error_type"] for entry in logs] == [type(error).__name__]
        assert logs[0]["event"] == "Error scraping Selenium Grid"


def test_recovery_after_failure(sample_payload):
    collector = GridCollector(FakeFetcher(BadStatus(500), sample_payload))

    collector.refresh()
    assert sample(collector, "selenium_grid_up") == 0

    collector.refresh()
    assert sample(collector, "selenium_grid_up") == 1
    assert node_ids(collector) == {"n1"}


def test_registry_collection_triggers_refresh(sample_payload):
    fetcher = FakeFetcher(sample_payload)
    registry = CollectorRegistry()
    registry.register(GridCollector(fetcher))
    assert fetcher.calls == 0

    output = generate_latest(registry).decode()

    assert fetcher.calls == 1
    assert "selenium_grid_up 1.0" in output
    assert 'selenium_grid_version{version="4.1.0"} 1.0' in output
    assert 'selenium_node_status{node_id="n1",node_uri="http://10.0.1.1:5555",status="UP"} 1.0' in output
    assert 'selenium_node_slot_count{node_id="n1",node_uri="http://10.0.1.1:5555"} 24.0' in output


class SlowFetcher:
    url = "http://grid.test/graphql"

    def __init__(self, body):
        self.body = body
        self.active = 0
        self.max_active = 0
        self._guard = threading.Lock()

    def fetch(self):
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(0.05)
        with self._guard:
            self.active -= 1
        return self.body


def test_concurrent_refreshes_are_serialised(sample_payload):
    fetcher = SlowFetcher(sample_payload)
    collector = GridCollector(fetcher)

    threads = [threading.Thread(target=collector.collect) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert fetcher.max_active == 1
    assert sample(collector, "selenium_grid_up") == 1


def test_deeply_nested_body_marks_grid_down(sample_payload):
    collector = GridCollector(FakeFetcher(sample_payload, b"[" * 200000))
    collector.refresh()

    with capture_logs() as logs:
        collector.refresh()

    assert sample(collector, "selenium_grid_up") == 0
    assert node_ids(collector) == set()
    assert version_labels(collector) == {}
    assert [entry["error_type"] for entry in logs] == ["DecodeError"]


def test_non_finite_counter_marks_grid_down(sample_payload):
    nan_body = grid_payload(totalSlots=float("nan"))
    collector = GridCollector(FakeFetcher(sample_payload, nan_body))

    collector.refresh()
    collector.refresh()

    assert sample(collector, "selenium_grid_up") == 0
    assert sample(collector, "selenium_grid_total_slots") == 72
    assert node_ids(collector) == set()


def test_unexpected_fetcher_error_is_logged_and_swallowed(sample_payload):
    collector = GridCollector(FakeFetcher(sample_payload, RuntimeError("boom")))
    collector.refresh()

    with capture_logs() as logs:
        families = collector.collect()

    assert {f.name for f in families} >= {"selenium_grid_up", "selenium_node_status"}
    assert sample(collector, "selenium_grid_up") == 0
    assert node_ids(collector) == set()
    assert [entry["error_type"] for entry in logs] == ["RuntimeError"]

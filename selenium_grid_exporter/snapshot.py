"""
Typed view of the grid's GraphQL status document.
"""
import json
import math
from dataclasses import dataclass
from typing import Any, Dict, Tuple, Union

from .errors import DecodeError


@dataclass(frozen=True)
class NodeStatus:
    """State of one worker node as reported by the grid."""

    id: str
    uri: str
    status: str
    max_session: float
    slot_count: float
    session_count: float
    version: str


@dataclass(frozen=True)
class StatusSnapshot:
    """Grid-level counters plus the nodes registered at fetch time."""

    total_slots: float
    max_session: float
    session_count: float
    session_queue_size: float
    node_count: float
    version: str
    nodes: Tuple[NodeStatus, ...] = ()


def _object(value: Any, where: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise DecodeError(f"{where}: expected an object, got {type(value).__name__}")
    return value


def _number(obj: Dict[str, Any], key: str, where: str) -> float:
    if key not in obj:
        raise DecodeError(f"{where}.{key}: missing required field")
    value = obj[key]
    # bool is an int subclass but never a valid counter
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(f"{where}.{key}: expected a number, got {value!r}")
    if not math.isfinite(value):
        raise DecodeError(f"{where}.{key}: expected a finite number, got {value!r}")
    if value < 0:
        raise DecodeError(f"{where}.{key}: expected a non-negative number, got {value!r}")
    return float(value)


def _string(obj: Dict[str, Any], key: str, where: str) -> str:
    value = obj.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DecodeError(f"{where}.{key}: expected a string, got {value!r}")
    return value


def _decode_node(raw: Any, index: int) -> NodeStatus:
    where = f"nodes[{index}]"
    node = _object(raw, where)
    return NodeStatus(
        id=_string(node, "id", where),
        uri=_string(node, "uri", where),
        status=_string(node, "status", where),
        max_session=_number(node, "maxSession", where),
        slot_count=_number(node, "slotCount", where),
        session_count=_number(node, "sessionCount", where),
        version=_string(node, "version", where),
    )


def decode_snapshot(payload: Union[bytes, str]) -> StatusSnapshot:
    """
    Decode a ``{data: {grid: {...}, nodesInfo: {nodes: [...]}}}`` document.

    Raises:
        DecodeError: the body is not JSON, or a required object or numeric
            field is missing or has the wrong type.
    """
    try:
        document = json.loads(payload)
    except (ValueError, RecursionError) as e:
        raise DecodeError(f"invalid JSON: {e}") from e

    data = _object(_object(document, "response").get("data"), "data")
    grid = _object(data.get("grid"), "grid")

    nodes_info = data.get("nodesInfo")
    raw_nodes = []
    if nodes_info is not None:
        raw_nodes = _object(nodes_info, "nodesInfo").get("nodes") or []
    if not isinstance(raw_nodes, list):
        raise DecodeError(f"nodesInfo.nodes: expected a list, got {type(raw_nodes).__name__}")

    return StatusSnapshot(
        total_slots=_number(grid, "totalSlots", "grid"),
        max_session=_number(grid, "maxSession", "grid"),
        session_count=_number(grid, "sessionCount", "grid"),
        session_queue_size=_number(grid, "sessionQueueSize", "grid"),
        node_count=_number(grid, "nodeCount", "grid"),
        version=_string(grid, "version", "grid"),
        nodes=tuple(_decode_node(raw, i) for i, raw in enumerate(raw_nodes)),
    )

import json


def grid_payload(version="4.1.0", nodes=None, **grid):
    body = {
        "totalSlots": 72,
        "maxSession": 24,
        "sessionCount": 0,
        "sessionQueueSize": 0,
        "nodeCount": 1,
        "version": version,
    }
    body.update(grid)
    if nodes is None:
        nodes = [node_payload("n1", "http://10.0.1.1:5555")]
    return json.dumps({"data": {"grid": body, "nodesInfo": {"nodes": nodes}}}).encode()


def node_payload(node_id, uri, status="UP", max_session=8, slot_count=24,
                 session_count=0, version="4.1.0"):
    return {
        "id": node_id,
        "uri": uri,
        "status": status,
        "maxSession": max_session,
        "slotCount": slot_count,
        "sessionCount": session_count,
        "version": version,
    }


class FakeFetcher:
    """Returns queued bodies, or raises queued exceptions, one per fetch."""

    url = "http://grid.test/graphql"

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0

    def push(self, response):
        self.responses.append(response)

    def fetch(self):
        self.calls += 1
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


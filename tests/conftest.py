"""
Pytest configuration and shared fixtures for client tests.

FakeBroker answers management API requests in-process through
httpx.MockTransport, so unit tests need no running RabbitMQ.
"""
import base64
import copy
from urllib.parse import unquote

import httpx
import pytest
from click.testing import CliRunner

from hop_client.client import Client

BASE_URL = "http://127.0.0.1:15672/api/"
USERNAME = "guest"
PASSWORD = "guest"

CONNECTION_NAME = "127.0.0.1:50123 -> 127.0.0.1:5672"

OVERVIEW = {
    "management_version": "3.12.4",
    "rabbitmq_version": "3.12.4",
    "cluster_name": "rabbit@broker-1",
    "erlang_version": "25.3.2.6",
    "node": "rabbit@broker-1",
    "statistics_db_node": "rabbit@broker-1",
    "message_stats": {
        "publish": 1000,
        "publish_details": {"rate": 12.5},
        "confirm": 0,
        "confirm_details": {"rate": 0.0},
        "deliver": 250,
        "deliver_details": {"rate": 3.0},
        "deliver_get": 250,
        "deliver_get_details": {"rate": 3.0},
        "return_unroutable": 1000,
        "return_unroutable_details": {"rate": 12.5},
    },
    "queue_totals": {
        "messages": 7,
        "messages_details": {"rate": 0.0},
        "messages_ready": 5,
        "messages_ready_details": {"rate": 0.0},
        "messages_unacknowledged": 2,
        "messages_unacknowledged_details": {"rate": 0.0},
    },
    "object_totals": {"connections": 1, "channels": 1, "exchanges": 7, "queues": 2, "consumers": 0},
    "listeners": [
        {"node": "rabbit@broker-1", "protocol": "amqp", "ip_address": "::", "port": 5672},
        {"node": "rabbit@broker-1", "protocol": "http", "ip_address": "::", "port": 15672},
    ],
    "contexts": [
        {"node": "rabbit@broker-1", "description": "RabbitMQ Management", "path": "/", "port": "15672"},
    ],
    "exchange_types": [
        {"name": "direct", "description": "AMQP direct exchange", "enabled": True},
        {"name": "fanout", "description": "AMQP fanout exchange", "enabled": True},
        {"name": "headers", "description": "AMQP headers exchange", "enabled": True},
        {"name": "topic", "description": "AMQP topic exchange", "enabled": True},
    ],
}

NODE = {
    "name": "rabbit@broker-1",
    "type": "disc",
    "running": True,
    "uptime": 3600000,
    "processors": 4,
    "sockets_used": 1,
    "sockets_total": 943,
    "fd_used": 35,
    "fd_total": 1048576,
    "proc_used": 410,
    "proc_total": 1048576,
    "run_queue": 0,
    "mem_used": 141000000,
    "mem_limit": 3290000000,
    "mem_alarm": False,
    "disk_free": 52000000000,
    "disk_free_limit": 50000000,
    "disk_free_alarm": False,
    "auth_mechanisms": [
        {"name": "PLAIN", "description": "SASL PLAIN authentication mechanism", "enabled": True},
        {"name": "AMQPLAIN", "description": "QPid AMQPLAIN mechanism", "enabled": True},
    ],
    "applications": [
        {"name": "rabbit", "description": "RabbitMQ", "version": "3.12.4"},
        {"name": "rabbitmq_management", "description": "RabbitMQ Management Console", "version": "3.12.4"},
    ],
}

CONNECTION = {
    "name": CONNECTION_NAME,
    "node": "rabbit@broker-1",
    "state": "running",
    "type": "network",
    "host": "127.0.0.1",
    "port": 5672,
    "peer_host": "127.0.0.1",
    "peer_port": 50123,
    "ssl": False,
    "protocol": "AMQP 0-9-1",
    "auth_mechanism": "PLAIN",
    "user": "guest",
    "vhost": "/",
    "channels": 1,
    "recv_oct": 1024,
    "send_oct": 512,
}

CHANNEL = {
    "name": f"{CONNECTION_NAME} (1)",
    "number": 1,
    "node": "rabbit@broker-1",
    "state": "running",
    "user": "guest",
    "vhost": "/",
    "connection_details": {"name": CONNECTION_NAME, "peer_host": "127.0.0.1", "peer_port": 50123},
    "consumer_count": 0,
    "prefetch_count": 0,
    "messages_unacknowledged": 0,
    "messages_unconfirmed": 0,
    "transactional": False,
    "confirm": False,
}

WHOAMI = {"name": "guest", "tags": ["administrator"]}


def _json(status: int, body) -> httpx.Response:
    return httpx.Response(status, json=body)


def _not_found() -> httpx.Response:
    return _json(404, {"error": "Object Not Found", "reason": "Not Found"})


class FakeBroker:
    """In-memory management API with Basic auth and asynchronous connection close.

    A closed connection is reported once more with state "closing" before
    it disappears from listings.
    """

    def __init__(self):
        self.overview = copy.deepcopy(OVERVIEW)
        self.nodes = [copy.deepcopy(NODE)]
        self.connections = [copy.deepcopy(CONNECTION)]
        self.channels = [copy.deepcopy(CHANNEL)]
        self.whoami = copy.deepcopy(WHOAMI)
        self.aliveness = (200, {"status": "ok"})
        self.closing = set()
        self.requests = []
        self.forced = None

    def force(self, response: httpx.Response) -> None:
        """Answer every following request with `response`"""
        self.forced = response

    def _authorized(self, request: httpx.Request) -> bool:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Basic "):
            return False
        expected = base64.b64encode(f"{USERNAME}:{PASSWORD}".encode()).decode()
        return header[len("Basic "):] == expected

    def _list_connections(self) -> list:
        listed = []
        for conn in self.connections:
            if conn["name"] in self.closing:
                listed.append({**conn, "state": "closing"})
            else:
                listed.append(conn)
        # connections requested to close are gone from the next snapshot
        self.connections = [c for c in self.connections if c["name"] not in self.closing]
        self.channels = [c for c in self.channels if c["connection_details"]["name"] not in self.closing]
        self.closing.clear()
        return listed

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._authorized(request):
            return _json(401, {"error": "not_authorised", "reason": "Login failed"})
        if self.forced is not None:
            return self.forced

        raw_path = request.url.raw_path.decode().split("?")[0]
        segments = [unquote(s) for s in raw_path[len("/api/"):].split("/")]
        method = request.method

        if segments == ["overview"]:
            return _json(200, self.overview)
        if segments == ["whoami"]:
            return _json(200, self.whoami)
        if segments[0] == "aliveness-test" and len(segments) == 2:
            return _json(*self.aliveness)
        if segments == ["nodes"]:
            return _json(200, self.nodes)
        if segments[0] == "nodes" and len(segments) == 2:
            for node in self.nodes:
                if node["name"] == segments[1]:
                    return _json(200, node)
            return _not_found()
        if segments == ["connections"]:
            return _json(200, self._list_connections())
        if segments[0] == "connections" and len(segments) >= 2:
            conn = next((c for c in self.connections if c["name"] == segments[1]), None)
            if conn is None:
                return _not_found()
            if len(segments) == 3 and segments[2] == "channels":
                return _json(200, [c for c in self.channels if c["connection_details"]["name"] == conn["name"]])
            if method == "DELETE":
                self.closing.add(conn["name"])
                return httpx.Response(204)
            return _json(200, conn)
        if segments == ["channels"]:
            return _json(200, self.channels)
        if segments[0] == "channels" and len(segments) == 2:
            for ch in self.channels:
                if ch["name"] == segments[1]:
                    return _json(200, ch)
            return _not_found()
        return _not_found()


@pytest.fixture
def cli_runner():
    """Fixture providing CliRunner for all CLI tests."""
    return CliRunner()


@pytest.fixture
def broker():
    return FakeBroker()


@pytest.fixture
def make_client(broker):
    """Factory for clients wired to the fake broker.

    Use as `async with make_client() as client:` so the transport is closed.
    """
    def _make(password: str = PASSWORD, **kwargs) -> Client:
        return Client(BASE_URL, USERNAME, password, transport=httpx.MockTransport(broker.handle), **kwargs)
    return _make

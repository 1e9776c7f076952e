"""Typed client for the RabbitMQ HTTP management API."""
import httpx
import structlog

from hop_client.config import DEFAULT_TIMEOUT_SECONDS, ClientConfig
from hop_client.decoders import decode, decode_list
from hop_client.executor import RequestExecutor, classify, resource_path
from hop_client.models import ChannelInfo, ConnectionInfo, NodeInfo, Overview, WhoAmI

log = structlog.get_logger()


class Client:
    """One coroutine per management resource.

    Each call performs exactly one HTTP round trip and returns a fresh
    snapshot; nothing is cached between calls. Use as an async context
    manager, or call close() when done.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = ClientConfig(base_url=base_url, username=username, password=password, timeout=timeout)
        self._executor = RequestExecutor(self.config, transport=transport)

    @classmethod
    def from_config(cls, config: ClientConfig, transport: httpx.AsyncBaseTransport | None = None) -> "Client":
        return cls(config.base_url, config.username, config.password, timeout=config.timeout, transport=transport)

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._executor.close()

    async def get_overview(self) -> Overview:
        data = await self._executor.request("GET", "overview")
        return decode(Overview, data)

    async def aliveness_test(self, vhost: str = "/") -> bool:
        """Ask the broker to publish and consume a test message on `vhost`.

        Returns False for any answer other than a 2xx carrying status "ok",
        including a 2xx whose body is not JSON. Only transport and
        authentication failures raise.
        """
        response = await self._executor.send("GET", resource_path("aliveness-test", vhost))
        if response.status_code in (401, 403):
            classify(response)
        if not response.is_success:
            log.info("aliveness test failed", vhost=vhost, status=response.status_code)
            return False
        try:
            payload = response.json()
        except ValueError:
            return False
        return isinstance(payload, dict) and payload.get("status") == "ok"

    async def who_am_i(self) -> WhoAmI:
        data = await self._executor.request("GET", "whoami")
        return decode(WhoAmI, data)

    async def get_nodes(self) -> list[NodeInfo]:
        data = await self._executor.request("GET", "nodes")
        return decode_list(NodeInfo, data)

    async def get_node(self, name: str) -> NodeInfo:
        data = await self._executor.request("GET", resource_path("nodes", name))
        return decode(NodeInfo, data)

    async def get_connections(self) -> list[ConnectionInfo]:
        data = await self._executor.request("GET", "connections")
        return decode_list(ConnectionInfo, data)

    async def get_connection(self, name: str) -> ConnectionInfo:
        data = await self._executor.request("GET", resource_path("connections", name))
        return decode(ConnectionInfo, data)

    async def close_connection(self, name: str, reason: str | None = None) -> None:
        """Ask the broker to close connection `name`.

        Returns once the broker has accepted the request. The connection is
        torn down asynchronously afterwards; only its peer observes the actual
        closure. If this call times out the close may or may not have been
        applied.
        """
        headers = {"X-Reason": reason} if reason else None
        log.info("closing connection", connection=name)
        data = await self._executor.request("DELETE", resource_path("connections", name), headers=headers)
        if data is not None:
            log.debug("unexpected body on connection close", connection=name)

    async def get_connection_channels(self, name: str) -> list[ChannelInfo]:
        data = await self._executor.request("GET", resource_path("connections", name, "channels"))
        return decode_list(ChannelInfo, data)

    async def get_channels(self) -> list[ChannelInfo]:
        data = await self._executor.request("GET", "channels")
        return decode_list(ChannelInfo, data)

    async def get_channel(self, name: str) -> ChannelInfo:
        data = await self._executor.request("GET", resource_path("channels", name))
        return decode(ChannelInfo, data)

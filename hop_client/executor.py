"""Authenticated round trips against the management API.

Every call is a single HTTP request: nothing is retried here, since a
management call such as closing a connection must not be repeated blindly.
"""
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from hop_client.config import ClientConfig
from hop_client.errors import AuthenticationFailed, BrokerUnavailable, MalformedResponse, RequestRejected

log = structlog.get_logger()


def resource_path(*segments: str) -> str:
    """Join path segments, percent-encoding each one.

    Names such as the default vhost "/" or a connection name
    "127.0.0.1:50123 -> 127.0.0.1:5672" contain reserved characters.
    """
    return "/".join(quote(str(segment), safe="") for segment in segments)


def _reason(response: httpx.Response) -> tuple[str | None, Any]:
    try:
        payload = response.json()
    except ValueError:
        return (response.text or None), None
    if isinstance(payload, dict):
        return (payload.get("reason") or payload.get("error") or response.text), payload
    return response.text, payload


def classify(response: httpx.Response) -> Any:
    """Map a response to its decoded JSON body, None, or an error.

    Returns:
        The parsed JSON body for a 2xx response with content, None for an
        empty 2xx body

    Raises:
        AuthenticationFailed: HTTP 401 or 403
        RequestRejected: any other 4xx
        BrokerUnavailable: 5xx
        MalformedResponse: 2xx whose body is not JSON
    """
    status = response.status_code
    if status in (401, 403):
        reason, payload = _reason(response)
        raise AuthenticationFailed(status, reason, payload)
    if 400 <= status < 500:
        reason, payload = _reason(response)
        raise RequestRejected(status, reason, payload)
    if status >= 500:
        reason, _ = _reason(response)
        raise BrokerUnavailable(f"Broker returned HTTP {status}: {reason}", status=status)
    if status < 200 or status >= 300:
        raise MalformedResponse("response", detail=f"unexpected HTTP status {status}")

    if not response.content.strip():
        return None
    try:
        return response.json()
    except ValueError as exc:
        raise MalformedResponse("response", detail="body is not valid JSON") from exc


class RequestExecutor:
    """Sends requests to one management endpoint with fixed credentials.

    Holds no mutable state besides the httpx client, so concurrent calls from
    several tasks are safe.
    """

    def __init__(self, config: ClientConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            auth=httpx.BasicAuth(config.username, config.password),
            headers={"Accept": "application/json"},
            timeout=httpx.Timeout(config.timeout),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def send(
        self,
        method: str,
        path: str,
        json: Any = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Perform the round trip without classifying the status code.

        Raises:
            BrokerUnavailable: on timeouts and transport failures
        """
        kwargs: dict[str, Any] = {}
        if json is not None:
            kwargs["json"] = json
        if headers:
            kwargs["headers"] = headers
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            log.warning("management request timed out", method=method, path=path, error_type=type(exc).__name__)
            raise BrokerUnavailable(f"{method} {path} timed out", cause=exc) from exc
        except httpx.RequestError as exc:
            log.warning("management request failed", method=method, path=path, error_type=type(exc).__name__)
            raise BrokerUnavailable(f"{method} {path} failed: {exc}", cause=exc) from exc

        log.debug("management request", method=method, path=path, status=response.status_code)
        return response

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Send a request and return its JSON body (None when empty)"""
        response = await self.send(method, path, json=json, headers=headers, timeout=timeout)
        try:
            return classify(response)
        except (RequestRejected, BrokerUnavailable) as exc:
            log.warning(
                "management request rejected",
                method=method,
                path=path,
                status=response.status_code,
                error_type=type(exc).__name__,
            )
            raise

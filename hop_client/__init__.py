from hop_client.client import Client
from hop_client.config import ClientConfig
from hop_client.errors import (
    AuthenticationFailed,
    BrokerUnavailable,
    HopError,
    MalformedResponse,
    RequestRejected,
)

__all__ = [
    "Client",
    "ClientConfig",
    "HopError",
    "AuthenticationFailed",
    "RequestRejected",
    "BrokerUnavailable",
    "MalformedResponse",
]

import math
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _count(value: Any) -> Any:
    # counters may arrive as floats; truncate like a long field would
    if value is None:
        return 0
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return value


def _rate(value: Any) -> Any:
    return 0.0 if value is None else value


def _flag(value: Any) -> Any:
    return False if value is None else value


def _text(value: Any) -> Any:
    return "" if value is None else value


def _nested(value: Any) -> Any:
    # empty stats objects are serialised as [] by older brokers
    if value is None or value == []:
        return {}
    return value


def _sequence(value: Any) -> Any:
    return [] if value is None else value


def _tags(value: Any) -> Any:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(tag.strip() for tag in value.split(",") if tag.strip())
    return value


Count = Annotated[int, BeforeValidator(_count), Field(ge=0)]
# signed: queue depth rates go negative while queues drain
Rate = Annotated[float, BeforeValidator(_rate)]
Flag = Annotated[bool, BeforeValidator(_flag)]
Text = Annotated[str, BeforeValidator(_text)]
Identity = Annotated[str, Field(min_length=1)]


class Snapshot(BaseModel):
    """Read-only record decoded from one management API response"""
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class RateDetails(Snapshot):
    rate: Rate = 0.0


Details = Annotated[RateDetails, BeforeValidator(_nested)]


class MessageStats(Snapshot):
    """Cluster-wide message counters, each paired with its current rate"""
    basic_publish: Count = Field(default=0, alias="publish", description="Messages published")
    basic_publish_details: Details = Field(default_factory=RateDetails, alias="publish_details")
    publisher_confirm: Count = Field(default=0, alias="confirm", description="Publishes confirmed to publishers")
    publisher_confirm_details: Details = Field(default_factory=RateDetails, alias="confirm_details")
    basic_deliver: Count = Field(default=0, alias="deliver", description="Messages delivered to consumers")
    basic_deliver_details: Details = Field(default_factory=RateDetails, alias="deliver_details")
    basic_return: Count = Field(default=0, alias="return_unroutable", description="Unroutable messages returned")
    basic_return_details: Details = Field(default_factory=RateDetails, alias="return_unroutable_details")
    deliver_get: Count = Field(default=0, description="Deliveries plus basic.get responses")
    deliver_get_details: Details = Field(default_factory=RateDetails)
    redeliver: Count = 0
    redeliver_details: Details = Field(default_factory=RateDetails)
    ack: Count = 0
    ack_details: Details = Field(default_factory=RateDetails)


class QueueTotals(Snapshot):
    """Message counts summed over every queue"""
    messages: Count = Field(default=0, description="Ready plus unacknowledged messages")
    messages_details: Details = Field(default_factory=RateDetails)
    messages_ready: Count = Field(default=0, description="Messages ready for delivery")
    messages_ready_details: Details = Field(default_factory=RateDetails)
    messages_unacknowledged: Count = Field(default=0, description="Messages delivered but not yet acknowledged")
    messages_unacknowledged_details: Details = Field(default_factory=RateDetails)


class ObjectTotals(Snapshot):
    """Counts of cluster objects"""
    connections: Count = 0
    channels: Count = 0
    exchanges: Count = 0
    queues: Count = 0
    consumers: Count = 0


class Listener(Snapshot):
    """A protocol listener bound on one node"""
    node: Text = ""
    protocol: Text = ""
    ip_address: Text = ""
    port: Count = 0


class Context(Snapshot):
    """A web context (management UI, prometheus, ...) served by one node"""
    node: Text = ""
    description: Text = ""
    path: Text = ""
    port: Count = 0


class ExchangeType(Snapshot):
    name: Identity
    description: Text = ""
    enabled: Flag = True


class AuthMechanism(Snapshot):
    name: Identity
    description: Text = ""
    enabled: Flag = False


class ErlangApp(Snapshot):
    name: Identity
    description: Text = ""
    version: Text = ""


class Overview(Snapshot):
    """Cluster identity and aggregate statistics from /overview"""
    node: Identity = Field(description="Node that served the request")
    management_version: Text = ""
    rabbitmq_version: Text = ""
    erlang_version: Text = ""
    cluster_name: Text = ""
    statistics_db_node: Text = Field(default="", description="Node hosting the statistics database")
    message_stats: Annotated[MessageStats, BeforeValidator(_nested)] = Field(default_factory=MessageStats)
    queue_totals: Annotated[QueueTotals, BeforeValidator(_nested)] = Field(default_factory=QueueTotals)
    object_totals: Annotated[ObjectTotals, BeforeValidator(_nested)] = Field(default_factory=ObjectTotals)
    listeners: Annotated[tuple[Listener, ...], BeforeValidator(_sequence)] = ()
    contexts: Annotated[tuple[Context, ...], BeforeValidator(_sequence)] = ()
    exchange_types: Annotated[tuple[ExchangeType, ...], BeforeValidator(_sequence)] = ()

    @property
    def exchange_type_names(self) -> list[str]:
        return [xt.name for xt in self.exchange_types]


class NodeInfo(Snapshot):
    """Resource gauges and runtime details of one cluster node"""
    name: Identity
    type: Text = Field(default="", description="Node type: 'disc' or 'ram'")
    running: Flag = False
    uptime: Count = Field(default=0, description="Milliseconds since the node started")
    processors: Count = 0
    sockets_used: Count = 0
    sockets_total: Count = 0
    fd_used: Count = 0
    fd_total: Count = 0
    erlang_processes_used: Count = Field(default=0, alias="proc_used")
    erlang_processes_total: Count = Field(default=0, alias="proc_total")
    erlang_run_queue_length: Count = Field(default=0, alias="run_queue")
    memory_used: Count = Field(default=0, alias="mem_used", description="Memory used in bytes")
    memory_limit: Count = Field(default=0, alias="mem_limit", description="Memory high watermark in bytes")
    memory_alarm_active: Flag = Field(default=False, alias="mem_alarm")
    disk_free: Count = Field(default=0, description="Free disk space in bytes")
    disk_free_limit: Count = Field(default=0, description="Free disk space low watermark in bytes")
    disk_alarm_active: Flag = Field(default=False, alias="disk_free_alarm")
    auth_mechanisms: Annotated[tuple[AuthMechanism, ...], BeforeValidator(_sequence)] = ()
    erlang_apps: Annotated[tuple[ErlangApp, ...], BeforeValidator(_sequence)] = Field(default=(), alias="applications")

    @property
    def is_disc_node(self) -> bool:
        return self.type == "disc"

    @property
    def memory_utilization(self) -> float:
        """Fraction of the memory watermark in use, 0.0 when no limit is reported"""
        if not self.memory_limit:
            return 0.0
        return self.memory_used / self.memory_limit

    @property
    def sockets_utilization(self) -> float:
        if not self.sockets_total:
            return 0.0
        return self.sockets_used / self.sockets_total


class ConnectionInfo(Snapshot):
    """A client connection; `name` is the handle for lookups and closing"""
    name: Identity
    node: Text = ""
    state: Text = ""
    type: Text = ""
    host: Text = ""
    port: Count = 0
    peer_host: Text = ""
    peer_port: Count = 0
    uses_tls: Flag = Field(default=False, alias="ssl")
    protocol: Text = ""
    auth_mechanism: Text = ""
    user: Text = ""
    vhost: Text = ""
    channels: Count = 0
    recv_oct: Count = Field(default=0, description="Bytes received")
    send_oct: Count = Field(default=0, description="Bytes sent")


class ConnectionDetails(Snapshot):
    name: Identity
    peer_host: Text = ""
    peer_port: Count = 0


class ChannelInfo(Snapshot):
    """A channel, identified by its number within the owning connection"""
    number: int = Field(ge=0)
    connection_details: ConnectionDetails
    name: Text = ""
    node: Text = ""
    state: Text = ""
    user: Text = ""
    vhost: Text = ""
    consumer_count: Count = 0
    prefetch_count: Count = 0
    messages_unacknowledged: Count = 0
    messages_unconfirmed: Count = 0
    transactional: Flag = False
    publisher_confirms: Flag = Field(default=False, alias="confirm")

    @property
    def connection_name(self) -> str:
        return self.connection_details.name

    @property
    def uses_publisher_confirms(self) -> bool:
        return self.publisher_confirms


class WhoAmI(Snapshot):
    """Identity the broker resolved for the client's credentials"""
    name: Identity
    tags: Annotated[tuple[str, ...], BeforeValidator(_tags)] = ()

    @property
    def is_administrator(self) -> bool:
        return "administrator" in self.tags

import pandas as pd

from hop_client.models import ConnectionInfo, NodeInfo

# Node gauge pairs - (used, limit) columns summed across the cluster
NODE_GAUGE_PAIRS = [
    ('sockets_used', 'sockets_total'),
    ('fd_used', 'fd_total'),
    ('erlang_processes_used', 'erlang_processes_total'),
    ('memory_used', 'memory_limit'),
]
NODE_ALARM_FLAGS = ['memory_alarm_active', 'disk_alarm_active']

# Connection columns reported as value counts
CONNECTION_GROUP_COLUMNS = ['state', 'protocol', 'vhost']


def nodes_frame(nodes: list[NodeInfo]) -> pd.DataFrame:
    """One row per node with its scalar fields (descriptor lists dropped)"""
    rows = [node.model_dump(exclude={'auth_mechanisms', 'erlang_apps'}) for node in nodes]
    return pd.DataFrame(rows)


def connections_frame(connections: list[ConnectionInfo]) -> pd.DataFrame:
    return pd.DataFrame([conn.model_dump() for conn in connections])


def summarize_nodes(df: pd.DataFrame) -> dict:
    """
    Summarize node gauges for the whole cluster.

    Args:
        df: DataFrame from nodes_frame()

    Returns:
        Dictionary with:
        - node_count, disc_node_count
        - For each gauge pair: {used}_total, {limit}_total and {used}_utilization
          (0.0 when the summed limit is 0)
        - For each alarm flag: {flag}_count
        - min_disk_free_headroom: smallest disk_free - disk_free_limit

    Raises:
        ValueError: If DataFrame is empty
    """
    if df.empty:
        raise ValueError("DataFrame cannot be empty")

    result = {
        'node_count': len(df),
        'disc_node_count': int((df['type'] == 'disc').sum()),
    }
    for used, limit in NODE_GAUGE_PAIRS:
        used_total = int(df[used].sum())
        limit_total = int(df[limit].sum())
        result[f'{used}_total'] = used_total
        result[f'{limit}_total'] = limit_total
        result[f'{used}_utilization'] = used_total / limit_total if limit_total else 0.0

    for flag in NODE_ALARM_FLAGS:
        result[f'{flag}_count'] = int(df[flag].sum())

    result['min_disk_free_headroom'] = int((df['disk_free'] - df['disk_free_limit']).min())
    return result


def summarize_connections(df: pd.DataFrame) -> dict:
    """
    Count connections by state, protocol and vhost.

    Returns:
        Dictionary with connection_count, tls_connection_count and one
        {column}:{value} key per distinct value of each grouped column

    Raises:
        ValueError: If DataFrame is empty
    """
    if df.empty:
        raise ValueError("DataFrame cannot be empty")

    result = {
        'connection_count': len(df),
        'tls_connection_count': int(df['uses_tls'].sum()),
    }
    for column in CONNECTION_GROUP_COLUMNS:
        for value, count in df[column].value_counts().sort_index().items():
            result[f'{column}:{value}'] = int(count)
    return result

"""
Long-poll URL assembly for the notifications/v2 endpoint.

The query carries the full notifications table so the server can compare
every subscribed namespace against its latest release in one request.
"""

from __future__ import annotations

from collections.abc import Mapping
from urllib.parse import quote_plus

from ..datastructures.type_aliases import (
    AppId,
    ClusterName,
    DataCenterName,
    IpAddress,
    NamespaceName,
    NotificationId,
    UrlString,
)
from ..serialization import NotificationCodec

LONG_POLL_PATH = "notifications/v2"

_codec = NotificationCodec()


def assemble_notifications(
    notifications: Mapping[NamespaceName, NotificationId],
) -> str:
    """Serialize a table snapshot as a JSON array for the query string."""
    return _codec.encode_table(notifications)


def assemble_long_poll_url(
    base_url: UrlString,
    app_id: AppId,
    cluster: ClusterName,
    data_center: DataCenterName | None,
    local_ip: IpAddress | None,
    notifications: Mapping[NamespaceName, NotificationId],
) -> UrlString:
    # callers pass a snapshot; copy again so serialization sees one stable view
    snapshot = dict(notifications)

    query_params: dict[str, str] = {
        "appId": app_id,
        "cluster": cluster,
        "notifications": assemble_notifications(snapshot),
    }
    if data_center:
        query_params["dataCenter"] = data_center
    if local_ip:
        query_params["ip"] = local_ip

    query = "&".join(
        f"{key}={quote_plus(value)}" for key, value in query_params.items()
    )
    if not base_url.endswith("/"):
        base_url += "/"

    return f"{base_url}{LONG_POLL_PATH}?{query}"

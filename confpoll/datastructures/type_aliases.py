"""
Semantic type aliases for confpoll.

Named aliases for the raw str/int/float values that flow between the long-poll
components, so signatures say what a value means rather than what it is.
"""

from typing import TypeAlias

# Time and duration types
Timestamp: TypeAlias = float
DurationSeconds: TypeAlias = float

# Configuration identity types
AppId: TypeAlias = str
ClusterName: TypeAlias = str
DataCenterName: TypeAlias = str
IpAddress: TypeAlias = str

# Namespace and notification types
NamespaceName: TypeAlias = str
NotificationId: TypeAlias = int

# Network types
UrlString: TypeAlias = str
HttpStatusCode: TypeAlias = int

# Rate limiting types
RequestsPerSecond: TypeAlias = float
TokenCount: TypeAlias = float

"""
Prometheus metrics for the notification gateway.

Exposed by the API under /metrics:
- Bound sockets
- Socket authentication outcomes
- Notifications created and push outcomes
"""

from prometheus_client import Counter, Gauge

# Gateway
gateway_connections_active = Gauge(
    "gateway_connections_active",
    "Number of sockets currently bound to a user",
)

gateway_auth_attempts_total = Counter(
    "gateway_auth_attempts_total",
    "Socket authentication attempts",
    labelnames=["result"],  # "success" or an auth error code
)

# Notification delivery
notifications_created_total = Counter(
    "notifications_created_total",
    "Notifications persisted",
    labelnames=["notification_type"],
)

notification_pushes_total = Counter(
    "notification_pushes_total",
    "Live push outcomes",
    labelnames=["outcome"],  # delivered, offline, filtered
)

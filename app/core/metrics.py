"""
Prometheus metrics shared by the HTTP layer, the match service and the broadcaster
"""

from prometheus_client import Counter, Histogram, Gauge

REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration', ['method', 'endpoint'])
ACTIVE_CONNECTIONS = Gauge('http_active_connections', 'Number of active HTTP connections')
MATCH_UPDATE_COUNT = Counter('match_updates_total', 'Total match update actions', ['sport', 'outcome'])
MATCH_CREATE_COUNT = Counter('matches_created_total', 'Total matches created', ['sport'])
BROADCAST_COUNT = Counter('broadcast_messages_total', 'Total broadcast messages', ['topic'])
BROADCAST_DROPPED_COUNT = Counter('broadcast_subscribers_dropped_total', 'Slow subscribers dropped')
WEBSOCKET_CONNECTIONS = Gauge('websocket_connections', 'Open viewer WebSocket connections')

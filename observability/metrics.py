"""
Prometheus Metrics

Exposes metrics for monitoring:
- Tool execution counts and latencies
- Stream event and outcome counts
- Curl parse outcomes
- Backend client calls
"""

from prometheus_client import Counter, Histogram, Info

# Application info
APP_INFO = Info("panel_app", "Automation panel core information")

# Tool registry metrics
TOOL_EXECUTIONS = Counter(
    "panel_tool_executions_total",
    "Total number of tool executions",
    ["tool", "status"],  # success, error
)

TOOL_LATENCY = Histogram(
    "panel_tool_latency_seconds",
    "Tool execution latency in seconds",
    ["tool"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

TOOL_REGISTRATIONS = Counter(
    "panel_tool_registrations_total",
    "Tool registrations",
    ["overwrite"],
)

# Stream metrics
STREAM_EVENTS = Counter(
    "panel_stream_events_total",
    "Stream events processed",
    ["type"],
)

STREAM_OUTCOMES = Counter(
    "panel_stream_outcomes_total",
    "Terminal stream outcomes",
    ["outcome"],  # completed, failed, cancelled, fallback
)

# Parser metrics
CURL_PARSES = Counter(
    "panel_curl_parses_total",
    "Curl command parse attempts",
    ["outcome", "body_type"],
)

# Backend client metrics
BACKEND_REQUESTS = Counter(
    "panel_backend_requests_total",
    "Backend requests",
    ["endpoint", "status"],
)

BACKEND_LATENCY = Histogram(
    "panel_backend_latency_seconds",
    "Backend request latency in seconds",
    ["endpoint"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)


class MetricsHelper:
    """Helper class for recording metrics."""

    def __init__(self):
        self.tool_executions_total = TOOL_EXECUTIONS
        self.tool_latency = TOOL_LATENCY
        self.stream_events_total = STREAM_EVENTS
        self.stream_outcomes_total = STREAM_OUTCOMES
        self.backend_requests_total = BACKEND_REQUESTS
        self.backend_latency = BACKEND_LATENCY

    def set_app_info(self, version: str, tools: int):
        APP_INFO.info({"version": version, "tools": str(tools)})

    def record_tool_execution(self, tool: str, latency: float, success: bool = True):
        """Record a tool execution."""
        status = "success" if success else "error"
        self.tool_executions_total.labels(tool=tool, status=status).inc()
        self.tool_latency.labels(tool=tool).observe(latency)

    def record_registration(self, overwrite: bool):
        """Record a tool registration."""
        TOOL_REGISTRATIONS.labels(overwrite=str(overwrite).lower()).inc()

    def record_stream_event(self, event_type: str):
        """Record a decoded stream event."""
        self.stream_events_total.labels(type=event_type).inc()

    def record_stream_outcome(self, outcome: str):
        """Record how a stream ended."""
        self.stream_outcomes_total.labels(outcome=outcome).inc()

    def record_curl_parse(self, success: bool, body_type: str = "none"):
        """Record a curl parse attempt."""
        outcome = "success" if success else "error"
        CURL_PARSES.labels(outcome=outcome, body_type=body_type).inc()

    def record_backend_call(self, endpoint: str, latency: float, status: str):
        """Record a backend HTTP call."""
        self.backend_requests_total.labels(endpoint=endpoint, status=status).inc()
        self.backend_latency.labels(endpoint=endpoint).observe(latency)


# Singleton
metrics = MetricsHelper()

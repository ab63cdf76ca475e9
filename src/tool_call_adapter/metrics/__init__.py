"""Prometheus metrics exposition."""

from prometheus_client import Counter, Histogram, Info, start_http_server

from tool_call_adapter import __version__

# Application info
APP_INFO = Info("tool_call_adapter", "Application information")
APP_INFO.info({"version": __version__})

# Interception outcomes
INTERCEPTIONS_TOTAL = Counter(
    "tool_call_adapter_interceptions_total",
    "POST bodies inspected by the interceptor",
    ["outcome"]
)

GRAMMAR_LOADS_TOTAL = Counter(
    "tool_call_adapter_grammar_loads_total",
    "Grammar loads by source",
    ["source"]
)

# Proxy-generated error responses
REJECTED_TOTAL = Counter(
    "tool_call_adapter_rejected_requests_total",
    "Requests answered by the proxy with an error status",
    ["status_code"]
)

UPSTREAM_FAILURES_TOTAL = Counter(
    "tool_call_adapter_upstream_failures_total",
    "Transport failures talking to the upstream",
    ["error"]
)

# Request bodies
BODY_SIZE = Histogram(
    "tool_call_adapter_request_body_bytes",
    "Size of outbound POST bodies after interception",
    ["modified"],
    buckets=[1024, 4096, 16384, 65536, 262144, 1048576, 4194304, 16777216]
)


class MetricsExporter:
    """Exports metrics in Prometheus format."""

    @staticmethod
    def serve(port: int, host: str = "0.0.0.0") -> None:
        """Start the exposition server on its own port.

        Args:
            port: Port to listen on
            host: Address to bind
        """
        start_http_server(port, addr=host)

    @staticmethod
    def record_interception(outcome: str) -> None:
        """Record an interceptor outcome."""
        INTERCEPTIONS_TOTAL.labels(outcome=outcome).inc()

    @staticmethod
    def record_grammar_load(source: str) -> None:
        """Record where a grammar came from ("file" or "fallback")."""
        GRAMMAR_LOADS_TOTAL.labels(source=source).inc()

    @staticmethod
    def record_body(size: int, modified: bool) -> None:
        """Record an outbound POST body.

        Args:
            size: Body size in bytes
            modified: Whether the interceptor rewrote the body
        """
        BODY_SIZE.labels(modified="true" if modified else "false").observe(size)

    @staticmethod
    def record_rejection(status_code: int) -> None:
        """Record a proxy-generated error response."""
        REJECTED_TOTAL.labels(status_code=str(status_code)).inc()

    @staticmethod
    def record_upstream_failure(error: str) -> None:
        """Record an upstream transport failure by exception type name."""
        UPSTREAM_FAILURES_TOTAL.labels(error=error).inc()

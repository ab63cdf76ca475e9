"""Diagnostics hooks for interception and proxying events."""

from pathlib import Path

from tool_call_adapter.metrics import MetricsExporter
from tool_call_adapter.utils import get_logger

logger = get_logger(__name__)


class Diagnostics:
    """Receives events the proxy recovers from or reports.

    Every hook is a no-op here. Subclass and override what you need;
    hooks must not raise.
    """

    def decode_failed(self, error: Exception) -> None:
        pass

    def encode_failed(self, error: Exception) -> None:
        pass

    def grammar_injected(self, path: Path) -> None:
        pass

    def grammar_present(self) -> None:
        pass

    def grammar_loaded(self, path: Path) -> None:
        pass

    def grammar_fallback(self, path: Path, error: Exception) -> None:
        pass

    def body_forwarded(self, size: int, modified: bool) -> None:
        pass

    def request_rejected(self, status_code: int, reason: str) -> None:
        pass

    def upstream_failed(self, url: str, error: Exception) -> None:
        pass


class StructlogDiagnostics(Diagnostics):
    """Logs events with structlog and counts them in Prometheus."""

    def decode_failed(self, error: Exception) -> None:
        # Expected for non-JSON POSTs, so stays at debug
        logger.debug("interceptor.decode_failed", error=str(error))
        MetricsExporter.record_interception("decode_failed")

    def encode_failed(self, error: Exception) -> None:
        logger.error("interceptor.encode_failed", error=str(error))
        MetricsExporter.record_interception("encode_failed")

    def grammar_injected(self, path: Path) -> None:
        logger.debug("interceptor.injected", grammar_path=str(path))
        MetricsExporter.record_interception("injected")

    def grammar_present(self) -> None:
        logger.debug("interceptor.grammar_present")
        MetricsExporter.record_interception("grammar_present")

    def grammar_loaded(self, path: Path) -> None:
        MetricsExporter.record_grammar_load("file")

    def grammar_fallback(self, path: Path, error: Exception) -> None:
        logger.warning(
            "grammar.fallback",
            path=str(path),
            error=str(error),
            message="could not read grammar file, using embedded grammar",
        )
        MetricsExporter.record_grammar_load("fallback")

    def body_forwarded(self, size: int, modified: bool) -> None:
        MetricsExporter.record_body(size, modified)

    def request_rejected(self, status_code: int, reason: str) -> None:
        logger.warning("proxy.rejected", status_code=status_code, reason=reason)
        MetricsExporter.record_rejection(status_code)

    def upstream_failed(self, url: str, error: Exception) -> None:
        logger.error(
            "proxy.upstream_failed",
            url=url,
            error=str(error),
            error_type=type(error).__name__,
        )
        MetricsExporter.record_upstream_failure(type(error).__name__)

"""Core processing modules."""

from tool_call_adapter.core.diagnostics import Diagnostics, StructlogDiagnostics
from tool_call_adapter.core.grammar import (
    DEFAULT_GRAMMAR_PATH,
    FALLBACK_GRAMMAR,
    GrammarProvider,
    create_grammar_provider,
    resolve_grammar_path,
)
from tool_call_adapter.core.interceptor import (
    GRAMMAR_KEY,
    InterceptResult,
    Outcome,
    RequestInterceptor,
    create_interceptor,
)
from tool_call_adapter.core.proxy_client import UpstreamProxy, create_proxy

__all__ = [
    "Diagnostics",
    "StructlogDiagnostics",
    "DEFAULT_GRAMMAR_PATH",
    "FALLBACK_GRAMMAR",
    "GrammarProvider",
    "create_grammar_provider",
    "resolve_grammar_path",
    "GRAMMAR_KEY",
    "InterceptResult",
    "Outcome",
    "RequestInterceptor",
    "create_interceptor",
    "UpstreamProxy",
    "create_proxy",
]

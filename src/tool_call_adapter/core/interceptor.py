"""Request interceptor - injects the grammar into chat completion bodies."""

from dataclasses import dataclass
from enum import Enum

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from tool_call_adapter.core.diagnostics import Diagnostics, StructlogDiagnostics
from tool_call_adapter.core.grammar import GrammarProvider
from tool_call_adapter.models import ChatCompletionRequest

GRAMMAR_KEY = "grammar"


class Outcome(str, Enum):
    """What the interceptor did with a body."""

    SKIPPED_METHOD = "skipped_method"
    DECODE_FAILED = "decode_failed"
    GRAMMAR_PRESENT = "grammar_present"
    INJECTED = "injected"
    ENCODE_FAILED = "encode_failed"


@dataclass(frozen=True)
class InterceptResult:
    """Outbound body and how it was produced."""

    body: bytes
    outcome: Outcome

    @property
    def modified(self) -> bool:
        return self.outcome is Outcome.INJECTED


class RequestInterceptor:
    """Ensures chat completion requests carry a grammar constraint.

    Only POST bodies are inspected. A body that does not decode as a
    chat completion request, or that already has ``options.grammar``,
    is returned byte-for-byte. Running a body through twice gives the
    same result as running it once.
    """

    def __init__(
        self,
        grammar_provider: GrammarProvider,
        diagnostics: Diagnostics | None = None,
    ) -> None:
        """Initialize interceptor.

        Args:
            grammar_provider: Source of the grammar string
            diagnostics: Receives recovered decode/encode failures
        """
        self.grammar_provider = grammar_provider
        self.diagnostics = diagnostics or StructlogDiagnostics()

    def intercept(self, method: str, body: bytes) -> InterceptResult:
        """Rewrite a request body if it needs a grammar.

        Args:
            method: HTTP method of the inbound request
            body: Complete inbound body

        Returns:
            Body to forward and the outcome
        """
        if method.upper() != "POST":
            return InterceptResult(body, Outcome.SKIPPED_METHOD)

        try:
            request = ChatCompletionRequest.model_validate_json(body)
        except ValidationError as e:
            self.diagnostics.decode_failed(e)
            return InterceptResult(body, Outcome.DECODE_FAILED)

        if request.options is None:
            request.options = {}

        if GRAMMAR_KEY in request.options:
            self.diagnostics.grammar_present()
            return InterceptResult(body, Outcome.GRAMMAR_PRESENT)

        request.options[GRAMMAR_KEY] = self.grammar_provider.load()

        try:
            new_body = request.model_dump_json(exclude_unset=True).encode("utf-8")
        except (PydanticSerializationError, ValueError) as e:
            self.diagnostics.encode_failed(e)
            return InterceptResult(body, Outcome.ENCODE_FAILED)

        self.diagnostics.grammar_injected(self.grammar_provider.path)
        return InterceptResult(new_body, Outcome.INJECTED)


def create_interceptor(
    grammar_provider: GrammarProvider,
    diagnostics: Diagnostics | None = None,
) -> RequestInterceptor:
    """Factory function for interceptor.

    Returns:
        Configured interceptor instance
    """
    return RequestInterceptor(grammar_provider, diagnostics)

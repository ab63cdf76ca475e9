"""GBNF grammar loading for constrained tool-call output."""

from pathlib import Path

from tool_call_adapter.core.diagnostics import Diagnostics, StructlogDiagnostics

DEFAULT_GRAMMAR_PATH = Path("/app/cline.gbnf")

# Optional analysis channel, then the assistant start marker, then the final
# channel followed by free text.
FALLBACK_GRAMMAR = """root ::= analysis? start final .+
analysis ::= "<|channel|>analysis<|message|>" ( [^<] | "<" [^|] | "<|" [^e] )* "<|end|>"
start ::= "<|start|>assistant"
final ::= "<|channel|>final<|message|>\""""


def resolve_grammar_path(
    config_path: str | Path | None = None,
    env_path: str | Path | None = None,
) -> Path:
    """Pick the grammar file location.

    Resolution order:
    1. config_path (from CLI --config)
    2. env_path (GRAMMAR_FILE_PATH setting)
    3. /app/cline.gbnf

    Args:
        config_path: Explicit path from the command line
        env_path: Path from the environment

    Returns:
        Path to the grammar file (may not exist)
    """
    if config_path:
        return Path(config_path)
    if env_path:
        return Path(env_path)
    return DEFAULT_GRAMMAR_PATH


class GrammarProvider:
    """Supplies the grammar string, read fresh on every call.

    Nothing is cached, so editing the grammar file takes effect on the
    next request without a restart. A file that cannot be read is never
    fatal: the embedded grammar is returned instead.
    """

    def __init__(
        self,
        config_path: str | Path | None = None,
        env_path: str | Path | None = None,
        diagnostics: Diagnostics | None = None,
    ) -> None:
        """Initialize provider.

        Args:
            config_path: Explicit grammar path, wins over env_path
            env_path: Grammar path from settings
            diagnostics: Receives load and fallback events
        """
        self._path = resolve_grammar_path(config_path, env_path)
        self.diagnostics = diagnostics or StructlogDiagnostics()

    @property
    def path(self) -> Path:
        """Resolved grammar file path."""
        return self._path

    def load(self) -> str:
        """Read the grammar file.

        Returns:
            Raw file contents, or FALLBACK_GRAMMAR if the file is unreadable
        """
        try:
            grammar = self._path.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self.diagnostics.grammar_fallback(self._path, e)
            return FALLBACK_GRAMMAR

        self.diagnostics.grammar_loaded(self._path)
        return grammar


def create_grammar_provider(
    config_path: str | Path | None = None,
    env_path: str | Path | None = None,
    diagnostics: Diagnostics | None = None,
) -> GrammarProvider:
    """Factory for grammar provider.

    Args:
        config_path: Explicit grammar path (CLI flag)
        env_path: Grammar path from settings
        diagnostics: Diagnostics collaborator

    Returns:
        Configured provider
    """
    return GrammarProvider(config_path, env_path, diagnostics)

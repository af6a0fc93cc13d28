"""ContextVar-based lex configuration for Pincel.

Provides thread-local configuration using Python's ContextVars (PEP 567).
Every lex run reads the active LexConfig once at its start.

Thread Safety:
    ContextVars are thread-local. Each thread has independent storage,
    so no locks are needed.

Usage:
    from pincel import lex
    from pincel.config import LexConfig, lex_config_context

    with lex_config_context(LexConfig(max_depth=50, error_kind="invalid")):
        tokens = lex(source, MyLexer)

"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pincel.tokens import ERROR

if TYPE_CHECKING:
    from pincel.registry import LexerRegistry


@dataclass(frozen=True, slots=True)
class LexConfig:
    """Immutable lex configuration.

    Frozen dataclass ensures thread-safety (immutable after creation).

    Attributes:
        max_depth: Maximum nesting of pushed states and delegations before
            RecursionLimitError is raised
        max_stall: Maximum consecutive iterations of one state that leave the
            cursor unmoved before StallError is raised
        error_kind: Kind of the one-character tokens emitted where no rule matches
        coalesce: Merge contiguous same-kind tokens emitted by the same rule
        registry: Registry used to resolve lexers passed by name

    """

    max_depth: int = 100
    max_stall: int = 1000
    error_kind: str = ERROR
    coalesce: bool = True
    registry: "LexerRegistry | None" = None

    def __post_init__(self) -> None:
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {self.max_depth}")
        if self.max_stall < 1:
            raise ValueError(f"max_stall must be >= 1, got {self.max_stall}")

    @classmethod
    def from_dict(cls, config_dict: dict) -> "LexConfig":
        """Create LexConfig from dictionary.

        Only includes keys that are valid LexConfig fields; unknown keys
        are silently ignored.

        Args:
            config_dict: Dictionary with config values. Keys should match
                LexConfig attribute names.

        Returns:
            New LexConfig instance with values from dict.

        Example:
            >>> config = LexConfig.from_dict({"max_depth": 32, "unknown_key": 1})
            >>> config.max_depth
            32

        """
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in config_dict.items() if k in valid_fields}
        return cls(**filtered)


# Module-level default config (reused, never recreated)
_DEFAULT_CONFIG: LexConfig = LexConfig()

_lex_config: ContextVar[LexConfig] = ContextVar(
    "lex_config",
    default=_DEFAULT_CONFIG,
)


def get_lex_config() -> LexConfig:
    """Get current lex configuration (thread-local).

    Returns:
        The active LexConfig for this thread/context.

    """
    return _lex_config.get()


def set_lex_config(config: LexConfig) -> None:
    """Set lex configuration for current context.

    Args:
        config: LexConfig instance to use for this context.

    """
    _lex_config.set(config)


def reset_lex_config() -> None:
    """Reset to default configuration."""
    _lex_config.set(_DEFAULT_CONFIG)


@contextmanager
def lex_config_context(config: LexConfig) -> Iterator[None]:
    """Context manager for temporary config changes.

    Args:
        config: LexConfig to use within the context.

    Yields:
        None

    Example:
        >>> with lex_config_context(LexConfig(coalesce=False)):
        ...     tokens = lex("   ", WhitespaceLexer)
        >>> # Automatically reset to previous config

    Thread Safety:
        Only affects the current thread's context. Properly restores previous
        config even if an exception is raised.

    """
    previous = _lex_config.get()
    _lex_config.set(config)
    try:
        yield
    finally:
        _lex_config.set(previous)


__all__ = [
    "LexConfig",
    "get_lex_config",
    "lex_config_context",
    "reset_lex_config",
    "set_lex_config",
]

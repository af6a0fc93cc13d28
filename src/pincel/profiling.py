"""Pincel LexAccumulator: opt-in profiling for lex runs.

This module provides accumulated metrics while lexing:
- Total time
- Source length
- Token and error-token counts

Zero overhead when disabled (get_lex_accumulator() returns None).

Example:
    from pincel import lex
    from pincel.profiling import profiled_lex

    with profiled_lex() as metrics:
        tokens = lex(source, MyLexer)

    print(metrics.summary())
    # {"total_ms": 0.4, "lex_calls": 1, "source_length": 18, ...}

"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any


@dataclass
class LexAccumulator:
    """Accumulated metrics during lexing.

    Attributes:
        start_time: Profiling start timestamp.
        source_length: Total characters lexed.
        token_count: Total tokens produced.
        error_count: Tokens of the error kind among them.
        lex_calls: Number of lex() calls recorded.

    """

    start_time: float = field(default_factory=perf_counter)
    source_length: int = 0
    token_count: int = 0
    error_count: int = 0
    lex_calls: int = 0

    def record_lex(self, source_length: int, token_count: int, error_count: int) -> None:
        """Record a lex call.

        Args:
            source_length: Length of the source string lexed.
            token_count: Number of tokens in the result.
            error_count: Number of error tokens in the result.

        """
        self.lex_calls += 1
        self.source_length += source_length
        self.token_count += token_count
        self.error_count += error_count

    @property
    def total_duration_ms(self) -> float:
        """Total profiling duration in milliseconds."""
        return (perf_counter() - self.start_time) * 1000

    def summary(self) -> dict[str, Any]:
        """Get summary of lex metrics.

        Returns:
            Dict with total_ms, lex_calls, source_length, token_count, error_count.

        """
        return {
            "total_ms": round(self.total_duration_ms, 2),
            "lex_calls": self.lex_calls,
            "source_length": self.source_length,
            "token_count": self.token_count,
            "error_count": self.error_count,
        }


_accumulator: ContextVar[LexAccumulator | None] = ContextVar(
    "lex_accumulator",
    default=None,
)


def get_lex_accumulator() -> LexAccumulator | None:
    """Get current accumulator (None if profiling disabled)."""
    return _accumulator.get()


@contextmanager
def profiled_lex() -> Iterator[LexAccumulator]:
    """Context manager for profiled lexing.

    Creates a LexAccumulator and makes it available via
    get_lex_accumulator() for the duration of the with block.

    Yields:
        LexAccumulator that will be populated during lex calls.

    """
    acc = LexAccumulator()
    token: Token[LexAccumulator | None] = _accumulator.set(acc)
    try:
        yield acc
    finally:
        _accumulator.reset(token)

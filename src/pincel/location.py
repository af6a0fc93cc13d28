"""Source location tracking for tokens.

Tokens only carry character indices. SourceLocation translates those into
line/column pairs for error messages, editors and debugging.

All positions are 1-indexed (lineno and col_offset start at 1).

Thread Safety:
SourceLocation is frozen (immutable) and safe to share across threads.

"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pincel.tokens import Token


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """Line/column location of a token.

    Attributes:
        lineno: Starting line number (1-indexed)
        col_offset: Starting column (1-indexed)
        offset: Absolute 0-based start offset in source
        end_offset: Absolute 0-based exclusive end offset in source
        end_lineno: Ending line number
        end_col_offset: Column of the last covered character

    Example:
        >>> loc = SourceLocation(lineno=2, col_offset=3)
        >>> str(loc)
        '2:3'

    """

    lineno: int
    col_offset: int
    offset: int = 0
    end_offset: int = 0
    end_lineno: int | None = None
    end_col_offset: int | None = None

    def __str__(self) -> str:
        """Format location as "line:col"."""
        return f"{self.lineno}:{self.col_offset}"


def _line_col(source: str, offset: int) -> tuple[int, int]:
    lineno = source.count("\n", 0, offset) + 1
    last_nl = source.rfind("\n", 0, offset)
    return lineno, offset - last_nl


def locate(source: str, token: Token) -> SourceLocation:
    """Compute the line/column location of token within source.

    Args:
        source: Source text the token was produced from
        token: Token to locate

    Returns:
        SourceLocation of the token's first and last characters
    """
    start, stop = token.span
    lineno, col = _line_col(source, start)
    end_lineno, end_col = _line_col(source, stop - 1)
    return SourceLocation(
        lineno=lineno,
        col_offset=col,
        offset=start,
        end_offset=stop,
        end_lineno=end_lineno,
        end_col_offset=end_col,
    )


__all__ = ["SourceLocation", "locate"]

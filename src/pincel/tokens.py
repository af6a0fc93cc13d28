"""Token definitions for the Pincel tokenizer engine.

A lex run produces a flat list of Token objects. Each Token carries an
opaque kind assigned by the lexer definition plus the 1-based, inclusive
character range it covers in the source.

Thread Safety:
Token is frozen (immutable) and safe to share across threads.

"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pincel.location import SourceLocation

# Token kinds are plain strings chosen by lexer definitions.
# The compiler interns every kind it sees.
TokenKind = str

# Kind emitted when no rule matches at the cursor (configurable via LexConfig)
ERROR: TokenKind = "error"


@dataclass(frozen=True, slots=True)
class Token:
    """A token produced by the engine.

    Attributes:
        kind: Token kind (opaque to the engine)
        start: First covered character (1-indexed, inclusive)
        end: Last covered character (1-indexed, inclusive)

    Invariant:
        start <= end. Zero-width tokens are never produced.

    """

    kind: TokenKind
    start: int
    end: int

    def __repr__(self) -> str:
        """Compact repr for debugging."""
        return f"Token({self.kind}, {self.start}..{self.end})"

    def __len__(self) -> int:
        """Number of characters covered."""
        return self.end - self.start + 1

    @property
    def span(self) -> tuple[int, int]:
        """0-based half-open (start, stop) pair, suitable for slicing."""
        return self.start - 1, self.end

    def text(self, source: str) -> str:
        """Return the slice of source covered by this token.

        Args:
            source: The source text the token was produced from

        Returns:
            Covered substring
        """
        return source[self.start - 1 : self.end]

    def location(self, source: str) -> SourceLocation:
        """Line/column location of this token within source."""
        from pincel.location import locate

        return locate(source, self)


__all__ = ["ERROR", "Token", "TokenKind"]

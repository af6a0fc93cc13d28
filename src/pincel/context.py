"""Per-run lexing context.

A Context holds everything a lex run mutates: the cursor, the output token
list and the capture scratch buffer. Bounded sub-contexts share all three
with their parent and only narrow the length bound, which is how a matched
range is handed to an embedded lexer without allocating a second token sink.

Positions:
    The cursor is a 0-based offset into source. Tokens are recorded with
    1-based inclusive ranges. A 0-based exclusive end equals the 1-based
    inclusive end of the same character, so `length` reads the same way in
    both conventions.

Thread Safety:
Contexts are single-use. Create one per lex run; never share across threads.

"""

from __future__ import annotations

from dataclasses import dataclass

from pincel.tokens import Token, TokenKind

# A capture span is a 0-based half-open (start, end) pair.
# None marks a group that did not participate in the match.
Span = tuple[int, int]


@dataclass(slots=True)
class Cursor:
    """Mutable cell shared by a context and its bounded sub-contexts.

    Attributes:
        value: 0-based cursor offset
        last_rule: Rule that emitted the most recent token (None after an
            error token or a direct push)

    """

    value: int = 0
    last_rule: object | None = None


class Context:
    """Mutable state of a single lex run.

    Attributes:
        source: Source text being tokenized
        length: Exclusive 0-based end bound for this (sub-)context
        tokens: Output tokens, shared with parent/child contexts
        captures: Spans of the last pattern match's groups (group 1 first)

    """

    __slots__ = ("source", "length", "tokens", "captures", "_cursor")

    def __init__(self, source: str) -> None:
        """Create a root context covering the whole of source.

        Args:
            source: Source text to tokenize
        """
        self.source = source
        self.length = len(source)
        self.tokens: list[Token] = []
        self.captures: list[Span | None] = []
        self._cursor = Cursor()

    def bounded(self, length: int) -> Context:
        """Create a sub-context sharing cursor and output but ending at length.

        Args:
            length: Exclusive end offset; clamped to this context's length

        Returns:
            New Context view over the same run
        """
        sub = Context.__new__(Context)
        sub.source = self.source
        sub.length = min(length, self.length)
        sub.tokens = self.tokens
        sub.captures = self.captures
        sub._cursor = self._cursor
        return sub

    @property
    def pos(self) -> int:
        """Current 0-based cursor offset."""
        return self._cursor.value

    @pos.setter
    def pos(self, value: int) -> None:
        self._cursor.value = value

    @property
    def done(self) -> bool:
        """True once the cursor has reached this context's length bound."""
        return self._cursor.value >= self.length

    def __repr__(self) -> str:
        return f"Context(pos={self.pos}, length={self.length}, tokens={len(self.tokens)})"

    # =========================================================================
    # Token emission
    # =========================================================================

    def push(
        self,
        kind: TokenKind,
        start: int,
        end: int,
        *,
        rule: object | None = None,
        coalesce: bool = True,
    ) -> None:
        """Record a token covering the 0-based half-open range [start, end).

        Empty ranges are ignored. When coalesce is set and the previous token
        was emitted by the same rule, has the same kind and ends right where
        this one starts, the previous token is extended instead.

        Predicates may call this directly to emit irregular tokens; such
        tokens carry no rule and never coalesce.

        Args:
            kind: Token kind
            start: 0-based start offset
            end: 0-based exclusive end offset
            rule: Emitting rule, used for coalescing
            coalesce: Allow merging into the previous token
        """
        if end <= start:
            return
        tokens = self.tokens
        cursor = self._cursor
        if coalesce and rule is not None and tokens and cursor.last_rule is rule:
            last = tokens[-1]
            if last.kind == kind and last.end == start:
                tokens[-1] = Token(kind, last.start, end)
                return
        tokens.append(Token(kind, start + 1, end))
        cursor.last_rule = rule

    def push_error(self, kind: TokenKind) -> None:
        """Emit a one-character error token at the cursor and step past it."""
        cursor = self._cursor
        pos = cursor.value
        self.tokens.append(Token(kind, pos + 1, pos + 1))
        cursor.last_rule = None
        cursor.value = pos + 1


__all__ = ["Context", "Cursor", "Span"]

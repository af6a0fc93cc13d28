"""Declarative rule-table vocabulary for lexer definitions.

A lexer definition maps state names to ordered lists of entries. Each entry
is one of:

    (pattern, binding)              # stay in the current state
    (pattern, binding, target)      # then apply a state transition
    "other_state"  / include(...)   # splice another state's rules here
    SomeLexer      / inherit(...)   # splice SomeLexer's same-named state

pattern:
    A regular expression (str or compiled re.Pattern) anchored at the
    cursor, or a predicate ``f(ctx) -> (start, end) | None`` returning a
    0-based half-open span that starts at ``ctx.pos``.

binding:
    A token kind, a tuple of kinds applied to capture groups 1..N
    (``groups(...)`` spells the same thing), or ``using(Lexer, state)`` to
    re-lex the whole match with another lexer.

target:
    None, POP, PUSH, a state name, or a tuple of state names. The first name
    in a tuple becomes the innermost frame and runs first.

Example:
    >>> tokens = {
    ...     "root": [
    ...         (r"\\s+", "whitespace"),
    ...         (r'"', "string", "string"),
    ...         "numbers",
    ...     ],
    ...     "numbers": [(r"[0-9]+", "number")],
    ...     "string": [(r'"', "string", POP), (r'[^"]+', "string")],
    ... }

"""

from __future__ import annotations

from typing import Any, NamedTuple

# Transition targets with special meaning
POP = "#pop"
PUSH = "#push"


class Include(NamedTuple):
    """Splice the rules of another state of the same lexer."""

    state: str


class Inherit(NamedTuple):
    """Splice the same-named state of another lexer definition."""

    lexer: Any


class Using(NamedTuple):
    """Delegate a matched range to another lexer, starting at state."""

    lexer: Any
    state: str = "root"


def include(state: str) -> Include:
    """Rule-table entry splicing in the rules of state.

    Args:
        state: Name of a state in the same lexer definition

    Returns:
        Include marker
    """
    return Include(state)


def inherit(lexer: Any) -> Inherit:
    """Rule-table entry splicing in lexer's rules for the state being resolved."""
    return Inherit(lexer)


def using(lexer: Any, state: str = "root") -> Using:
    """Binding that re-lexes the whole match with lexer, starting in state.

    Args:
        lexer: Lexer definition to delegate to
        state: Starting state of the delegated run

    Returns:
        Using binding
    """
    return Using(lexer, state)


def groups(*kinds: str) -> tuple[str, ...]:
    """Binding assigning kinds positionally to capture groups 1..N."""
    return kinds


__all__ = [
    "POP",
    "PUSH",
    "Include",
    "Inherit",
    "Using",
    "groups",
    "include",
    "inherit",
    "using",
]

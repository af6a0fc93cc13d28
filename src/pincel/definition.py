"""Lexer definition interface.

The engine only needs one capability from a lexer: given a state name,
return that state's ordered rule declarations. LexerDefinition is the
convenient base class; any class with a ``tokens`` mapping satisfies the
LexerLike protocol and can be lexed or inherited from.

Example:
    >>> from pincel import LexerDefinition, POP
    >>> class IniLexer(LexerDefinition):
    ...     name = "INI"
    ...     aliases = ("ini", "cfg")
    ...     filenames = ("*.ini",)
    ...     tokens = {
    ...         "root": [
    ...             (r"\\s+", "whitespace"),
    ...             (r"[;#].*", "comment"),
    ...             (r"\\[", "punctuation", "section"),
    ...             (r"([^=\\s]+)(\\s*=\\s*)(.*)", ("key", "operator", "value")),
    ...         ],
    ...         "section": [(r"[^\\]\\n]+", "section"), (r"\\]", "punctuation", POP)],
    ...     }
    >>> IniLexer.lex("[core]")
    [Token(punctuation, 1..1), Token(section, 2..5), Token(punctuation, 6..6)]

"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, ClassVar, Protocol

if TYPE_CHECKING:
    from pincel.tokens import Token

# State every lex run starts in
ROOT = "root"


class LexerLike(Protocol):
    """Anything exposing per-state rule declarations."""

    tokens: Mapping[str, Sequence[Any]]


class LexerDefinition:
    """Base class for declarative lexer definitions.

    Subclasses describe a language with class attributes only; they are
    never instantiated. The class object itself is the lexer's identity.

    Attributes:
        name: Human-readable language name
        aliases: Short names used for registry lookup
        filenames: Glob patterns of files this lexer handles
        description: One-line description
        flags: ``re`` flags applied when compiling this lexer's patterns
        tokens: Mapping of state name to ordered rule declarations

    """

    name: ClassVar[str] = ""
    aliases: ClassVar[tuple[str, ...]] = ()
    filenames: ClassVar[tuple[str, ...]] = ()
    description: ClassVar[str] = ""
    flags: ClassVar[int] = 0
    tokens: ClassVar[dict[str, list[Any]]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if not cls.name:
            cls.name = cls.__name__

    @classmethod
    def rules(cls, state: str) -> Sequence[Any]:
        """Return the declared entries of state, or an empty list."""
        return get_rules(cls, state)

    @classmethod
    def lex(cls, source: str) -> list[Token]:
        """Tokenize source with this lexer, starting in the root state."""
        from pincel.engine import lex

        return lex(source, cls)


def is_lexer(obj: Any) -> bool:
    """Check whether obj can serve as a lexer definition.

    Any class exposing a ``tokens`` mapping qualifies.
    """
    return isinstance(obj, type) and isinstance(getattr(obj, "tokens", None), Mapping)


def get_rules(lexer: LexerLike, state: str) -> Sequence[Any]:
    """Look up the declared entries of (lexer, state).

    Missing states resolve to an empty sequence, never an error.
    """
    tokens = getattr(lexer, "tokens", None)
    if not isinstance(tokens, Mapping):
        return ()
    return tokens.get(state, ())


def lexer_name(lexer: Any) -> str:
    """Display name of a lexer definition, for logs and errors."""
    return getattr(lexer, "__name__", None) or type(lexer).__name__


__all__ = ["ROOT", "LexerDefinition", "LexerLike", "get_rules", "is_lexer", "lexer_name"]

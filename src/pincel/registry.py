"""Lexer registry for lookup by name, alias or filename.

Thread Safety:
LexerRegistry is immutable after creation. Safe to share.
Use LexerRegistryBuilder for mutable construction.

Example:
    >>> builder = LexerRegistryBuilder()
    >>> builder.register(IniLexer).register(JsonLexer)
    >>> registry = builder.build()
    >>> registry.lookup("ini")
    <class 'IniLexer'>
    >>> registry.for_filename("setup.cfg")
    <class 'IniLexer'>
"""

from __future__ import annotations

from collections.abc import Iterator
from fnmatch import fnmatchcase
from pathlib import PurePath
from typing import Any

from pincel.definition import is_lexer, lexer_name
from pincel.errors import UnknownLexerError


class LexerRegistry:
    """Immutable registry of lexer definitions.

    Names and aliases are matched case-insensitively. Filename globs are
    tried in registration order against the path's final component.
    """

    __slots__ = ("_lexers", "_by_name", "_globs")

    def __init__(
        self,
        lexers: tuple[Any, ...],
        by_name: dict[str, Any],
        globs: tuple[tuple[str, Any], ...],
    ) -> None:
        """Initialize registry with pre-built mappings.

        Use LexerRegistryBuilder to create instances.
        """
        self._lexers = lexers
        self._by_name = by_name
        self._globs = globs

    def get(self, name: str) -> Any | None:
        """Get lexer registered under name or alias.

        Args:
            name: Lexer name or alias (e.g., "python", "py")

        Returns:
            Lexer definition if registered, None otherwise
        """
        return self._by_name.get(name.lower())

    def lookup(self, name: str) -> Any:
        """Get lexer registered under name or alias.

        Raises:
            UnknownLexerError: If nothing is registered under name
        """
        lexer = self.get(name)
        if lexer is None:
            raise UnknownLexerError(name)
        return lexer

    def for_filename(self, filename: str) -> Any | None:
        """Get the first lexer whose filename globs match filename."""
        basename = PurePath(filename).name
        for pattern, lexer in self._globs:
            if fnmatchcase(basename, pattern):
                return lexer
        return None

    @property
    def names(self) -> frozenset[str]:
        """All registered names and aliases (lowercased)."""
        return frozenset(self._by_name)

    @property
    def lexers(self) -> tuple[Any, ...]:
        """All registered lexer definitions."""
        return self._lexers

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._by_name

    def __iter__(self) -> Iterator[Any]:
        return iter(self._lexers)

    def __len__(self) -> int:
        """Number of registered lexers."""
        return len(self._lexers)


class LexerRegistryBuilder:
    """Mutable builder for LexerRegistry."""

    __slots__ = ("_lexers", "_by_name", "_globs")

    def __init__(self) -> None:
        """Initialize empty builder."""
        self._lexers: list[Any] = []
        self._by_name: dict[str, Any] = {}
        self._globs: list[tuple[str, Any]] = []

    def register(self, lexer: Any) -> LexerRegistryBuilder:
        """Register a lexer definition under its name and aliases.

        Args:
            lexer: Lexer definition class

        Returns:
            Self for chaining

        Raises:
            TypeError: If lexer has no ``tokens`` mapping
            ValueError: If a name or alias is already taken
        """
        if not is_lexer(lexer):
            msg = f"{lexer!r} is not a lexer definition (missing 'tokens' mapping)"
            raise TypeError(msg)
        if lexer in self._lexers:
            return self

        keys = [getattr(lexer, "name", "") or lexer_name(lexer), *getattr(lexer, "aliases", ())]
        names = list(dict.fromkeys(k.lower() for k in keys if k))
        for key in names:
            if key in self._by_name:
                existing = lexer_name(self._by_name[key])
                msg = f"Lexer name '{key}' already registered by {existing}"
                raise ValueError(msg)
        for key in names:
            self._by_name[key] = lexer

        for pattern in getattr(lexer, "filenames", ()):
            self._globs.append((pattern, lexer))

        self._lexers.append(lexer)
        return self

    def register_all(self, lexers: list[Any]) -> LexerRegistryBuilder:
        """Register multiple lexers."""
        for lexer in lexers:
            self.register(lexer)
        return self

    def build(self) -> LexerRegistry:
        """Build immutable registry from registered lexers."""
        return LexerRegistry(
            lexers=tuple(self._lexers),
            by_name=dict(self._by_name),
            globs=tuple(self._globs),
        )

    def __len__(self) -> int:
        """Number of registered lexers."""
        return len(self._lexers)


__all__ = ["LexerRegistry", "LexerRegistryBuilder"]

"""
Pincel: rule-driven tokenizer engine for syntax highlighting.

A lexer definition maps named states to ordered rule lists. Pincel runs
those tables over source text and returns a flat list of typed tokens,
handling state pushes and pops, capture-group bindings and embedded
languages (re-lexing a matched range with another lexer).

Quick Start:
    >>> from pincel import LexerDefinition, POP, lex
    >>> class StringLexer(LexerDefinition):
    ...     tokens = {
    ...         "root": [(r"[0-9]+", "number"), (r'"', "string", "string")],
    ...         "string": [(r'"', "string", POP), (r'[^"]+', "string")],
    ...     }
    >>> lex('42"hi"', StringLexer)
    [Token(number, 1..2), Token(string, 3..3), Token(string, 4..5), Token(string, 6..6)]

Token positions are 1-based and inclusive. Every character of the source
is covered by exactly one token; characters no rule matches become
one-character "error" tokens.
"""

from pincel.compiler import CompiledRule, clear_rule_cache, compile_state
from pincel.config import (
    LexConfig,
    get_lex_config,
    lex_config_context,
    reset_lex_config,
    set_lex_config,
)
from pincel.context import Context
from pincel.definition import ROOT, LexerDefinition, LexerLike
from pincel.engine import lex, lex_state
from pincel.errors import (
    BindingArityError,
    CyclicIncludeError,
    LexerDefinitionError,
    PincelError,
    RecursionLimitError,
    StallError,
    UnknownLexerError,
)
from pincel.location import SourceLocation, locate
from pincel.profiling import LexAccumulator, get_lex_accumulator, profiled_lex
from pincel.registry import LexerRegistry, LexerRegistryBuilder
from pincel.rules import POP, PUSH, groups, include, inherit, using
from pincel.tokens import ERROR, Token, TokenKind

__version__ = "0.1.0"

__all__ = [
    # Entry points
    "lex",
    "lex_state",
    # Tokens
    "ERROR",
    "Token",
    "TokenKind",
    "SourceLocation",
    "locate",
    # Definitions
    "ROOT",
    "POP",
    "PUSH",
    "LexerDefinition",
    "LexerLike",
    "groups",
    "include",
    "inherit",
    "using",
    # Engine internals
    "CompiledRule",
    "Context",
    "clear_rule_cache",
    "compile_state",
    # Registry
    "LexerRegistry",
    "LexerRegistryBuilder",
    # Configuration
    "LexConfig",
    "get_lex_config",
    "lex_config_context",
    "reset_lex_config",
    "set_lex_config",
    # Profiling
    "LexAccumulator",
    "get_lex_accumulator",
    "profiled_lex",
    # Errors
    "BindingArityError",
    "CyclicIncludeError",
    "LexerDefinitionError",
    "PincelError",
    "RecursionLimitError",
    "StallError",
    "UnknownLexerError",
    # Metadata
    "__version__",
]

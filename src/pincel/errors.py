"""Exception classes for Pincel.

Running a lexer never fails on input text: unmatched positions become error
tokens. Exceptions are reserved for defects in lexer definitions and for
lookups of lexers that do not exist.
"""

from __future__ import annotations

from typing import Any

from pincel.definition import lexer_name


class PincelError(Exception):
    """Base exception for all Pincel errors.

    Subclass this for specific error categories.
    """

    pass


class LexerDefinitionError(PincelError):
    """A lexer definition is malformed.

    Raised while resolving a state's rule table, or while running a
    definition that recurses or stalls without bound.
    """

    def __init__(
        self,
        lexer: Any,
        state: str | None,
        message: str,
    ) -> None:
        """Initialize definition error with the offending lexer and state.

        Args:
            lexer: Lexer definition (class) at fault
            state: State name being resolved or run (optional)
            message: Error description
        """
        self.lexer = lexer
        self.state = state
        self.message = message

        location = lexer_name(lexer)
        if state is not None:
            location += f":{state}"
        super().__init__(f"{location}: {message}")


class BindingArityError(LexerDefinitionError):
    """A capture-group binding lists a different number of kinds than
    the pattern has groups."""


class CyclicIncludeError(LexerDefinitionError):
    """State includes (or lexer inherits) form a cycle."""


class RecursionLimitError(LexerDefinitionError):
    """Nested states or delegations exceeded LexConfig.max_depth."""


class StallError(LexerDefinitionError):
    """A state kept matching without moving the cursor.

    Usually caused by a rule that can match zero characters and has no
    transition target.
    """


class UnknownLexerError(PincelError, LookupError):
    """No lexer is registered under the requested name."""

    def __init__(self, name: str) -> None:
        """Initialize with the name that failed to resolve.

        Args:
            name: Lexer name, alias or filename that was looked up
        """
        self.name = name
        super().__init__(f"No lexer registered for {name!r}")

"""Rule-table resolution.

Turns the declarative rule table of a (lexer, state) pair into a flat tuple
of CompiledRule objects, ready for the engine's sequential-try loop:

- ``include``/bare state names splice another state's rules in place
- ``inherit``/bare lexer classes splice another lexer's rules for the state
  being resolved
- patterns are compiled once with the lexer's regex flags
- bindings and targets are validated and normalized into tagged variants

Earlier entries keep match priority. Resolution is pure, so results are
memoized per (lexer, state) in a process-wide RuleCache.

Thread Safety:
The cache is filled under a lock and entries are immutable tuples, never
mutated after first computation. Safe to share across concurrent runs.

"""

from __future__ import annotations

import re
import sys
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from pincel.definition import get_rules, is_lexer, lexer_name
from pincel.errors import BindingArityError, CyclicIncludeError, LexerDefinitionError
from pincel.rules import POP, PUSH, Include, Inherit, Using
from pincel.utils.logger import get_logger

if TYPE_CHECKING:
    from pincel.context import Context, Span

logger = get_logger(__name__)

Predicate = Callable[["Context"], "Span | None"]


class BindingKind(Enum):
    """How a successful match is turned into tokens."""

    TOKEN = auto()  # Whole match -> one kind
    GROUPS = auto()  # Capture groups 1..N -> kinds[0..N-1]
    DELEGATE = auto()  # Whole match -> nested lexer run


class TargetKind(Enum):
    """State transition applied after a successful match."""

    NONE = auto()  # Stay in the current state
    POP = auto()  # Return to the caller
    PUSH = auto()  # Re-enter the current state
    STATES = auto()  # Enter named states, first listed innermost


@dataclass(frozen=True, slots=True, eq=False)
class CompiledRule:
    """A resolved, runtime-ready rule.

    Compared by identity: the engine uses rule identity to decide whether
    consecutive tokens may coalesce.

    Attributes:
        matcher: Compiled pattern or predicate
        binding: Binding variant
        kinds: TOKEN: (kind,); GROUPS: per-group kinds or Using; DELEGATE: (Using,)
        target: Target variant
        states: States entered in order (PUSH and STATES targets)
        lexer: Lexer whose states the target names
        origin: "Lexer:state[index]" of the declaring entry, for diagnostics

    """

    matcher: re.Pattern[str] | Predicate
    binding: BindingKind
    kinds: tuple[Any, ...]
    target: TargetKind
    states: tuple[str, ...]
    lexer: Any
    origin: str

    @property
    def is_pattern(self) -> bool:
        """True when the matcher is a compiled regular expression."""
        return isinstance(self.matcher, re.Pattern)

    def __repr__(self) -> str:
        matcher = self.matcher.pattern if isinstance(self.matcher, re.Pattern) else self.matcher
        return f"CompiledRule({self.origin}, {matcher!r}, {self.binding.name}, {self.target.name})"


# =========================================================================
# Cache
# =========================================================================


class RuleCache:
    """Memo of resolved rule tuples keyed by (lexer, state).

    Entries are written once and never mutated afterwards.
    """

    __slots__ = ("_data", "_lock")

    def __init__(self) -> None:
        self._data: dict[tuple[Any, str], tuple[CompiledRule, ...]] = {}
        self._lock = threading.Lock()

    def get(self, lexer: Any, state: str) -> tuple[CompiledRule, ...] | None:
        """Return resolved rules if present, else None."""
        return self._data.get((lexer, state))

    def get_or_resolve(self, lexer: Any, state: str) -> tuple[CompiledRule, ...]:
        """Return resolved rules, resolving and storing them on first use."""
        key = (lexer, state)
        rules = self._data.get(key)
        if rules is not None:
            return rules
        with self._lock:
            rules = self._data.get(key)
            if rules is None:
                rules = resolve_state(lexer, state)
                self._data[key] = rules
        return rules

    def clear(self) -> None:
        """Drop every cached resolution."""
        with self._lock:
            self._data.clear()

    def __contains__(self, key: tuple[Any, str]) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


_RULE_CACHE = RuleCache()


def compile_state(lexer: Any, state: str) -> tuple[CompiledRule, ...]:
    """Resolved rules for (lexer, state), memoized.

    Args:
        lexer: Lexer definition
        state: State name

    Returns:
        Ordered tuple of CompiledRule; empty for unknown states

    Raises:
        LexerDefinitionError: If the rule table is malformed
    """
    return _RULE_CACHE.get_or_resolve(lexer, state)


def get_rule_cache() -> RuleCache:
    """Return the process-wide rule cache."""
    return _RULE_CACHE


def clear_rule_cache() -> None:
    """Forget all resolved rule tables (e.g. after redefining a lexer's tokens).

    The cache holds strong references to every lexer class it has resolved,
    so lexer classes created at runtime stay alive until this is called.
    """
    _RULE_CACHE.clear()


# =========================================================================
# Resolution
# =========================================================================


def resolve_state(lexer: Any, state: str) -> tuple[CompiledRule, ...]:
    """Resolve (lexer, state) without consulting the cache.

    Args:
        lexer: Lexer definition
        state: State name

    Returns:
        Ordered tuple of CompiledRule

    Raises:
        LexerDefinitionError: If the rule table is malformed
    """
    rules = tuple(_expand(lexer, state, state, ()))
    logger.debug("Resolved %s:%s into %d rules", lexer_name(lexer), state, len(rules))
    return rules


def _expand(
    lexer: Any,
    table: str,
    state: str,
    chain: tuple[tuple[Any, str], ...],
) -> list[CompiledRule]:
    """Expand the entries of lexer's `table` state for resolution of `state`.

    `state` is the state being resolved at the top level. It is what PUSH
    re-enters and what an inherited lexer is asked for, even when the
    entry sits in an included table.
    """
    key = (lexer, table)
    if key in chain:
        cycle = " -> ".join(f"{lexer_name(lx)}:{st}" for lx, st in (*chain, key))
        raise CyclicIncludeError(lexer, table, f"include cycle: {cycle}")
    chain = (*chain, key)

    tokens = getattr(lexer, "tokens", None)
    if tokens is None or table not in tokens:
        logger.debug("Unknown state %s:%s resolves to no rules", lexer_name(lexer), table)

    out: list[CompiledRule] = []
    for index, entry in enumerate(get_rules(lexer, table)):
        if isinstance(entry, Include):
            out.extend(_expand(lexer, entry.state, state, chain))
        elif isinstance(entry, str):
            out.extend(_expand(lexer, entry, state, chain))
        elif isinstance(entry, Inherit) or is_lexer(entry):
            other = entry.lexer if isinstance(entry, Inherit) else entry
            if not is_lexer(other):
                raise LexerDefinitionError(lexer, table, f"cannot inherit from {other!r}")
            out.extend(_expand(other, state, state, chain))
        elif isinstance(entry, tuple):
            origin = f"{lexer_name(lexer)}:{table}[{index}]"
            out.append(_compile_rule(lexer, table, state, entry, origin))
        else:
            raise LexerDefinitionError(lexer, table, f"unsupported rule entry {entry!r}")
    return out


def _compile_rule(
    lexer: Any,
    table: str,
    state: str,
    entry: tuple[Any, ...],
    origin: str,
) -> CompiledRule:
    if len(entry) == 2:
        pattern, binding = entry
        target = None
    elif len(entry) == 3:
        pattern, binding, target = entry
    else:
        raise LexerDefinitionError(
            lexer, table, f"rule must be (pattern, binding[, target]), got {entry!r}"
        )

    matcher = _compile_matcher(lexer, table, pattern)
    binding_kind, kinds = _compile_binding(lexer, table, matcher, binding)
    target_kind, states = _compile_target(lexer, table, state, target)
    return CompiledRule(
        matcher=matcher,
        binding=binding_kind,
        kinds=kinds,
        target=target_kind,
        states=states,
        lexer=lexer,
        origin=origin,
    )


def _compile_matcher(lexer: Any, table: str, pattern: Any) -> re.Pattern[str] | Predicate:
    if isinstance(pattern, re.Pattern):
        return pattern
    if isinstance(pattern, str):
        try:
            return re.compile(pattern, getattr(lexer, "flags", 0))
        except re.error as e:
            msg = f"invalid pattern {pattern!r}: {e}"
            raise LexerDefinitionError(lexer, table, msg) from e
    if callable(pattern):
        return pattern
    msg = f"matcher must be a pattern or callable, got {pattern!r}"
    raise LexerDefinitionError(lexer, table, msg)


def _compile_using(lexer: Any, table: str, using: Using) -> Using:
    if not is_lexer(using.lexer):
        raise LexerDefinitionError(lexer, table, f"cannot delegate to {using.lexer!r}")
    if not isinstance(using.state, str):
        msg = f"delegation state must be a name, got {using.state!r}"
        raise LexerDefinitionError(lexer, table, msg)
    return using


def _compile_binding(
    lexer: Any,
    table: str,
    matcher: re.Pattern[str] | Predicate,
    binding: Any,
) -> tuple[BindingKind, tuple[Any, ...]]:
    if isinstance(binding, str):
        return BindingKind.TOKEN, (sys.intern(binding),)
    if isinstance(binding, Using):
        return BindingKind.DELEGATE, (_compile_using(lexer, table, binding),)
    if not isinstance(binding, tuple) or not binding:
        raise LexerDefinitionError(lexer, table, f"unsupported binding {binding!r}")

    # (Lexer, "state") pairs are delegations, not group bindings
    if len(binding) == 2 and is_lexer(binding[0]) and isinstance(binding[1], str):
        return BindingKind.DELEGATE, (_compile_using(lexer, table, Using(*binding)),)

    kinds: list[Any] = []
    for kind in binding:
        if isinstance(kind, str):
            kinds.append(sys.intern(kind))
        elif isinstance(kind, Using):
            kinds.append(_compile_using(lexer, table, kind))
        else:
            raise LexerDefinitionError(lexer, table, f"unsupported group binding {kind!r}")

    if isinstance(matcher, re.Pattern) and matcher.groups != len(kinds):
        msg = (
            f"pattern {matcher.pattern!r} has {matcher.groups} groups "
            f"but binding lists {len(kinds)} kinds"
        )
        raise BindingArityError(lexer, table, msg)
    return BindingKind.GROUPS, tuple(kinds)


def _compile_target(
    lexer: Any,
    table: str,
    state: str,
    target: Any,
) -> tuple[TargetKind, tuple[str, ...]]:
    if target is None:
        return TargetKind.NONE, ()
    if target == POP:
        return TargetKind.POP, ()
    if target == PUSH:
        return TargetKind.PUSH, (state,)
    if isinstance(target, str):
        return TargetKind.STATES, (target,)
    if isinstance(target, tuple) and target and all(isinstance(t, str) for t in target):
        if POP in target:
            raise LexerDefinitionError(lexer, table, f"{POP!r} cannot appear in a state tuple")
        return TargetKind.STATES, tuple(state if t == PUSH else t for t in target)
    raise LexerDefinitionError(lexer, table, f"unsupported target {target!r}")


__all__ = [
    "BindingKind",
    "CompiledRule",
    "RuleCache",
    "TargetKind",
    "clear_rule_cache",
    "compile_state",
    "get_rule_cache",
    "resolve_state",
]

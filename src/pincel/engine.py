"""Rule-execution engine.

Drives resolved rule tables over a Context:

1. Try each rule of the current state in order, anchored at the cursor
2. On the first match, bind tokens (or delegate to an embedded lexer)
3. Apply the rule's target: stay, pop, or recurse into pushed states
4. If nothing matches, emit a one-character error token and move on

The outermost frame of a run, and of every delegated range, is re-entered
whenever it pops early, so tokens always cover the whole input.

Each pushed state is one Python call frame, so nesting depth equals the
depth of the state stack. LexConfig.max_depth bounds it; LexConfig.max_stall
bounds rules that keep matching without consuming input.

Thread Safety:
Every run allocates its own Context. Resolved rule tables are shared but
never mutated, so concurrent runs do not interfere.

"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pincel.compiler import BindingKind, CompiledRule, TargetKind, compile_state
from pincel.config import LexConfig, get_lex_config
from pincel.context import Context, Span
from pincel.definition import ROOT, lexer_name
from pincel.errors import RecursionLimitError, StallError, UnknownLexerError
from pincel.profiling import get_lex_accumulator
from pincel.utils.logger import get_logger

if TYPE_CHECKING:
    from pincel.rules import Using
    from pincel.tokens import Token

logger = get_logger(__name__)


def lex(source: str, lexer: Any) -> list[Token]:
    """Tokenize source with lexer, starting in the root state.

    Args:
        source: Source text
        lexer: Lexer definition, or a name/alias resolved through the
            active LexConfig's registry

    Returns:
        Tokens covering every character of source, in order

    Raises:
        UnknownLexerError: If lexer is a name nobody registered
        LexerDefinitionError: If the lexer definition is malformed or runs away

    Example:
        >>> lex("12ab34", NumberLexer)
        [Token(number, 1..2), Token(error, 3..3), Token(error, 4..4), Token(number, 5..6)]
    """
    config = get_lex_config()
    if isinstance(lexer, str):
        lexer = resolve_lexer(lexer, config)

    ctx = Context(source)
    try:
        run(ctx, lexer, ROOT, config=config)
    except RecursionError as e:
        logger.warning(
            "Lexer %s hit the interpreter recursion limit at offset %d (max_depth=%d)",
            lexer_name(lexer),
            ctx.pos,
            config.max_depth,
        )
        msg = f"interpreter recursion limit reached at offset {ctx.pos}; lower max_depth"
        raise RecursionLimitError(lexer, ROOT, msg) from e

    acc = get_lex_accumulator()
    if acc is not None:
        error_kind = config.error_kind
        acc.record_lex(
            source_length=len(source),
            token_count=len(ctx.tokens),
            error_count=sum(1 for t in ctx.tokens if t.kind == error_kind),
        )
    return ctx.tokens


def resolve_lexer(name: str, config: LexConfig | None = None) -> Any:
    """Resolve a lexer name or alias through the configured registry.

    Raises:
        UnknownLexerError: If no registry is configured or name is unknown
    """
    registry = (config or get_lex_config()).registry
    if registry is None:
        raise UnknownLexerError(name)
    return registry.lookup(name)


def run(
    ctx: Context,
    lexer: Any,
    state: str = ROOT,
    *,
    depth: int = 0,
    config: LexConfig | None = None,
) -> Context:
    """Drive state until ctx is exhausted, re-entering it after every pop.

    This is the outermost frame of a lex run and of every delegated range,
    so a state that pops early never leaves the rest of the range uncovered.

    Raises:
        StallError: If state keeps popping without consuming input
    """
    if config is None:
        config = get_lex_config()
    stalled = 0
    while True:
        start = ctx.pos
        lex_state(ctx, lexer, state, depth=depth, config=config)
        if ctx.done:
            return ctx
        stalled = stalled + 1 if ctx.pos == start else 0
        if stalled >= config.max_stall:
            logger.warning(
                "Lexer %s keeps popping %r at offset %d", lexer_name(lexer), state, start
            )
            raise StallError(lexer, state, f"{state} pops without progress at offset {start}")


def lex_state(
    ctx: Context,
    lexer: Any,
    state: str = ROOT,
    *,
    depth: int = 0,
    config: LexConfig | None = None,
) -> Context:
    """Run one invocation of state until it pops or the context is exhausted.

    Args:
        ctx: Context to advance; tokens are appended to ctx.tokens
        lexer: Lexer definition
        state: State to run
        depth: Current nesting depth (pushed states plus delegations)
        config: Configuration; defaults to the active LexConfig

    Returns:
        ctx, for chaining

    Raises:
        RecursionLimitError: If depth exceeds config.max_depth
        StallError: If the state stops consuming input
    """
    if config is None:
        config = get_lex_config()
    if depth > config.max_depth:
        logger.warning(
            "Lexer %s exceeded max_depth=%d entering state %r at offset %d",
            lexer_name(lexer),
            config.max_depth,
            state,
            ctx.pos,
        )
        raise RecursionLimitError(
            lexer, state, f"nesting deeper than max_depth={config.max_depth} at offset {ctx.pos}"
        )

    rules = compile_state(lexer, state)
    stalled = 0

    while not ctx.done:
        start = ctx.pos
        for rule in rules:
            span = match_rule(rule, ctx)
            if span is None:
                continue
            bind(ctx, rule, span, depth=depth, config=config)
            if rule.target is TargetKind.POP:
                return ctx
            for name in rule.states:
                lex_state(ctx, rule.lexer, name, depth=depth + 1, config=config)
            break
        else:
            ctx.push_error(config.error_kind)
            continue

        if ctx.pos != start:
            stalled = 0
            continue
        stalled += 1
        if stalled >= config.max_stall:
            logger.warning(
                "Lexer %s stalled in state %r at offset %d (rule %s)",
                lexer_name(lexer),
                state,
                start,
                rule.origin,
            )
            raise StallError(
                lexer,
                state,
                f"no progress after {stalled} matches at offset {start}; last rule {rule.origin}",
            )
    return ctx


# =========================================================================
# Matching
# =========================================================================


def match_rule(rule: CompiledRule, ctx: Context) -> Span | None:
    """Try rule at the cursor.

    Patterns only match starting exactly at ctx.pos and never past
    ctx.length. On success their group spans replace ctx.captures.
    Predicate spans are clamped to ctx.length.

    Returns:
        0-based half-open span of the whole match, or None
    """
    matcher = rule.matcher
    if rule.is_pattern:
        m = matcher.match(ctx.source, ctx.pos, ctx.length)  # type: ignore[union-attr]
        if m is None:
            return None
        captures = ctx.captures
        captures.clear()
        for i in range(1, matcher.groups + 1):  # type: ignore[union-attr]
            group_start, group_end = m.span(i)
            captures.append(None if group_start < 0 else (group_start, group_end))
        return m.span()

    ctx.captures.clear()
    result = matcher(ctx)  # type: ignore[operator]
    if result is None:
        return None
    span_start, span_end = result
    return span_start, min(span_end, ctx.length)


# =========================================================================
# Binding
# =========================================================================


def bind(
    ctx: Context,
    rule: CompiledRule,
    span: Span,
    *,
    depth: int = 0,
    config: LexConfig | None = None,
) -> None:
    """Emit tokens for a successful match and move the cursor to its end.

    Zero-width matches emit nothing and leave the cursor in place.
    """
    if config is None:
        config = get_lex_config()
    end = span[1]
    if end <= ctx.pos:
        return

    binding = rule.binding
    if binding is BindingKind.TOKEN:
        ctx.push(rule.kinds[0], ctx.pos, end, rule=rule, coalesce=config.coalesce)
        ctx.pos = end
    elif binding is BindingKind.GROUPS:
        _bind_groups(ctx, rule, end, depth, config)
    else:
        delegate(ctx, rule.kinds[0], end, depth=depth, config=config)


def _bind_groups(
    ctx: Context,
    rule: CompiledRule,
    end: int,
    depth: int,
    config: LexConfig,
) -> None:
    # Each group claims the text from the cursor to its own end, so text
    # between groups goes to the following group. Snapshot the captures:
    # a delegated group lexes with the same scratch buffer.
    captures = list(ctx.captures)
    last_kind: str | None = None
    for kind, capture in zip(rule.kinds, captures):
        if capture is None or capture[1] <= ctx.pos:
            continue
        group_end = min(capture[1], end)
        if isinstance(kind, str):
            ctx.push(kind, ctx.pos, group_end, rule=rule, coalesce=config.coalesce)
            ctx.pos = group_end
            last_kind = kind
        else:
            delegate(ctx, kind, group_end, depth=depth, config=config)

    if end > ctx.pos:
        if last_kind is None:
            last_kind = next((k for k in reversed(rule.kinds) if isinstance(k, str)), None)
        if last_kind is None:
            delegate(ctx, rule.kinds[-1], end, depth=depth, config=config)
        else:
            ctx.push(last_kind, ctx.pos, end, rule=rule, coalesce=config.coalesce)
    ctx.pos = end


def delegate(
    ctx: Context,
    using: Using,
    end: int,
    *,
    depth: int = 0,
    config: LexConfig | None = None,
) -> None:
    """Re-lex [ctx.pos, end) with another lexer, then land the cursor on end.

    The nested run shares ctx's token list and cursor but cannot read past
    end. It is restarted in its starting state whenever it pops before end,
    and the cursor is forced to end afterwards.
    """
    sub = ctx.bounded(end)
    run(sub, using.lexer, using.state, depth=depth + 1, config=config)
    ctx.pos = end


__all__ = ["bind", "delegate", "lex", "lex_state", "match_rule", "resolve_lexer", "run"]

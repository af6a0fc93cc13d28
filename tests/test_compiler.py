"""Tests for rule-table resolution: splicing, validation and caching."""

import re

import pytest

from pincel import (
    POP,
    PUSH,
    BindingArityError,
    CyclicIncludeError,
    LexerDefinition,
    LexerDefinitionError,
    compile_state,
    groups,
    include,
    inherit,
    using,
)
from pincel.compiler import BindingKind, RuleCache, TargetKind, get_rule_cache, resolve_state


def patterns(rules) -> list[str]:
    return [rule.matcher.pattern for rule in rules]


class Base(LexerDefinition):
    tokens = {
        "root": [
            (r"[0-9]+", "number"),
            (r'"', "string", "string"),
        ],
        "string": [
            (r'"', "string", POP),
            (r'[^"]+', "string"),
        ],
        "comment": [
            (r"#.*", "comment"),
        ],
    }


class TestSplicing:
    def test_plain_rules_keep_order(self) -> None:
        assert patterns(resolve_state(Base, "root")) == [r"[0-9]+", r'"']

    def test_bare_state_name_splices_in_place(self) -> None:
        class Lexer(LexerDefinition):
            tokens = {
                "root": [(r"a", "a"), "extra", (r"c", "c")],
                "extra": [(r"b", "b")],
            }

        assert patterns(resolve_state(Lexer, "root")) == ["a", "b", "c"]

    def test_include_marker_splices_in_place(self) -> None:
        class Lexer(LexerDefinition):
            tokens = {
                "root": [include("extra"), (r"c", "c")],
                "extra": [(r"b", "b")],
            }

        assert patterns(resolve_state(Lexer, "root")) == ["b", "c"]

    def test_include_is_transitive(self) -> None:
        class Lexer(LexerDefinition):
            tokens = {
                "root": ["one"],
                "one": [(r"1", "one"), "two"],
                "two": [(r"2", "two")],
            }

        assert patterns(resolve_state(Lexer, "root")) == ["1", "2"]

    def test_same_state_included_twice_is_not_a_cycle(self) -> None:
        class Lexer(LexerDefinition):
            tokens = {
                "root": ["ws", (r"a", "a"), "ws"],
                "ws": [(r"\s+", "whitespace")],
            }

        assert patterns(resolve_state(Lexer, "root")) == [r"\s+", "a", r"\s+"]

    def test_inherit_splices_same_named_state(self) -> None:
        class Child(LexerDefinition):
            tokens = {
                "root": [(r"[a-z]+", "name"), inherit(Base)],
            }

        assert patterns(resolve_state(Child, "root")) == [r"[a-z]+", r"[0-9]+", r'"']

    def test_bare_lexer_class_inherits(self) -> None:
        class Child(LexerDefinition):
            tokens = {"root": [Base, (r"[a-z]+", "name")]}

        assert patterns(resolve_state(Child, "root")) == [r"[0-9]+", r'"', r"[a-z]+"]

    def test_inherit_inside_included_table_uses_resolved_state(self) -> None:
        class Child(LexerDefinition):
            tokens = {
                "root": ["common"],
                "common": [inherit(Base)],
            }

        # Base has no "common" state; the state being resolved is "root"
        assert patterns(resolve_state(Child, "root")) == [r"[0-9]+", r'"']

    def test_inherited_targets_refer_to_inherited_lexer(self) -> None:
        class Child(LexerDefinition):
            tokens = {"root": [inherit(Base)]}

        quote = resolve_state(Child, "root")[1]
        assert quote.lexer is Base
        assert quote.states == ("string",)

    def test_push_in_included_state_reenters_including_state(self) -> None:
        class Lexer(LexerDefinition):
            tokens = {
                "root": ["parens"],
                "parens": [(r"\(", "punctuation", PUSH)],
            }

        (rule,) = resolve_state(Lexer, "root")
        assert rule.target is TargetKind.PUSH
        assert rule.states == ("root",)


class TestUnknownStates:
    def test_unknown_state_resolves_to_empty(self) -> None:
        assert resolve_state(Base, "nope") == ()

    def test_unknown_include_contributes_nothing(self) -> None:
        class Lexer(LexerDefinition):
            tokens = {"root": [(r"a", "a"), "missing", (r"b", "b")]}

        assert patterns(resolve_state(Lexer, "root")) == ["a", "b"]

    def test_lexer_without_tokens_resolves_to_empty(self) -> None:
        class Empty(LexerDefinition):
            pass

        assert resolve_state(Empty, "root") == ()

    def test_unknown_state_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("DEBUG", logger="pincel"):
            resolve_state(Base, "nope")
        assert any("Unknown state" in r.getMessage() for r in caplog.records)


class TestCycles:
    def test_self_include(self) -> None:
        class Lexer(LexerDefinition):
            tokens = {"root": ["root"]}

        with pytest.raises(CyclicIncludeError, match="include cycle"):
            resolve_state(Lexer, "root")

    def test_mutual_include(self) -> None:
        class Lexer(LexerDefinition):
            tokens = {"root": ["a"], "a": ["b"], "b": ["a"]}

        with pytest.raises(CyclicIncludeError) as excinfo:
            resolve_state(Lexer, "root")
        assert "a -> " in str(excinfo.value)

    def test_mutual_inherit(self) -> None:
        class Left(LexerDefinition):
            tokens: dict = {"root": []}

        class Right(LexerDefinition):
            tokens = {"root": [inherit(Left)]}

        Left.tokens = {"root": [inherit(Right)]}
        with pytest.raises(CyclicIncludeError):
            resolve_state(Left, "root")


class TestBindings:
    def test_single_kind(self) -> None:
        rule = resolve_state(Base, "root")[0]
        assert rule.binding is BindingKind.TOKEN
        assert rule.kinds == ("number",)

    def test_group_kinds(self) -> None:
        class Lexer(LexerDefinition):
            tokens = {"root": [(r"(\w+)(=)", ("key", "operator"))]}

        (rule,) = resolve_state(Lexer, "root")
        assert rule.binding is BindingKind.GROUPS
        assert rule.kinds == ("key", "operator")

    def test_groups_helper(self) -> None:
        class Lexer(LexerDefinition):
            tokens = {"root": [(r"(\w+)(=)", groups("key", "operator"))]}

        assert resolve_state(Lexer, "root")[0].kinds == ("key", "operator")

    @pytest.mark.parametrize(
        "binding",
        [("a",), ("a", "b", "c")],
    )
    def test_arity_mismatch_rejected(self, binding: tuple[str, ...]) -> None:
        class Lexer(LexerDefinition):
            tokens = {"root": [(r"(x)(y)", binding)]}

        with pytest.raises(BindingArityError, match="2 groups"):
            resolve_state(Lexer, "root")

    def test_arity_not_checked_for_predicates(self) -> None:
        class Lexer(LexerDefinition):
            tokens = {"root": [(lambda ctx: None, ("a", "b"))]}

        (rule,) = resolve_state(Lexer, "root")
        assert rule.binding is BindingKind.GROUPS

    def test_using_binding(self) -> None:
        class Lexer(LexerDefinition):
            tokens = {"root": [(r".+", using(Base, "string"))]}

        (rule,) = resolve_state(Lexer, "root")
        assert rule.binding is BindingKind.DELEGATE
        assert rule.kinds[0].lexer is Base
        assert rule.kinds[0].state == "string"

    def test_lexer_state_pair_is_delegation(self) -> None:
        class Lexer(LexerDefinition):
            tokens = {"root": [(r".+", (Base, "root"))]}

        assert resolve_state(Lexer, "root")[0].binding is BindingKind.DELEGATE

    def test_using_inside_groups(self) -> None:
        class Lexer(LexerDefinition):
            tokens = {"root": [(r"(<)(.*)(>)", ("tag", using(Base), "tag"))]}

        (rule,) = resolve_state(Lexer, "root")
        assert rule.binding is BindingKind.GROUPS
        assert rule.kinds[1].lexer is Base

    def test_kinds_are_interned(self) -> None:
        kind = "".join(["num", "ber"])

        class Lexer(LexerDefinition):
            tokens = {"root": [(r"1", kind)]}

        assert resolve_state(Lexer, "root")[0].kinds[0] is resolve_state(Base, "root")[0].kinds[0]

    @pytest.mark.parametrize("binding", [42, (), (1, 2), using("not a lexer")])
    def test_bad_binding_rejected(self, binding: object) -> None:
        class Lexer(LexerDefinition):
            tokens = {"root": [(r"x", binding)]}

        with pytest.raises(LexerDefinitionError):
            resolve_state(Lexer, "root")


class TestTargets:
    @pytest.mark.parametrize(
        ("target", "kind", "states"),
        [
            (None, TargetKind.NONE, ()),
            (POP, TargetKind.POP, ()),
            (PUSH, TargetKind.PUSH, ("root",)),
            ("string", TargetKind.STATES, ("string",)),
            (("a", "b"), TargetKind.STATES, ("a", "b")),
            (("a", PUSH), TargetKind.STATES, ("a", "root")),
        ],
    )
    def test_target_forms(self, target: object, kind: TargetKind, states: tuple) -> None:
        class Lexer(LexerDefinition):
            tokens = {"root": [(r"x", "x", target)]}

        (rule,) = resolve_state(Lexer, "root")
        assert rule.target is kind
        assert rule.states == states

    @pytest.mark.parametrize("target", [42, (), ("a", POP), ("a", 1)])
    def test_bad_target_rejected(self, target: object) -> None:
        class Lexer(LexerDefinition):
            tokens = {"root": [(r"x", "x", target)]}

        with pytest.raises(LexerDefinitionError):
            resolve_state(Lexer, "root")


class TestMatchers:
    def test_string_compiled_with_lexer_flags(self) -> None:
        class Lexer(LexerDefinition):
            flags = re.IGNORECASE | re.MULTILINE
            tokens = {"root": [(r"select", "keyword")]}

        (rule,) = resolve_state(Lexer, "root")
        assert rule.matcher.flags & re.IGNORECASE
        assert rule.matcher.flags & re.MULTILINE

    def test_precompiled_pattern_kept(self) -> None:
        pattern = re.compile(r"\d+")

        class Lexer(LexerDefinition):
            tokens = {"root": [(pattern, "number")]}

        assert resolve_state(Lexer, "root")[0].matcher is pattern

    def test_predicate_kept(self) -> None:
        def predicate(ctx):
            return None

        class Lexer(LexerDefinition):
            tokens = {"root": [(predicate, "x")]}

        (rule,) = resolve_state(Lexer, "root")
        assert rule.matcher is predicate
        assert not rule.is_pattern

    def test_invalid_regex(self) -> None:
        class Lexer(LexerDefinition):
            tokens = {"root": [(r"(unclosed", "x")]}

        with pytest.raises(LexerDefinitionError, match="invalid pattern") as excinfo:
            resolve_state(Lexer, "root")
        assert isinstance(excinfo.value.__cause__, re.error)

    @pytest.mark.parametrize("entry", [(r"x",), (r"x", "x", None, "extra"), (42, "x"), 42])
    def test_malformed_entries(self, entry: object) -> None:
        class Lexer(LexerDefinition):
            tokens = {"root": [entry]}

        with pytest.raises(LexerDefinitionError):
            resolve_state(Lexer, "root")

    def test_error_names_lexer_and_state(self) -> None:
        class Broken(LexerDefinition):
            tokens = {"root": ["inner"], "inner": [(r"(", "x")]}

        with pytest.raises(LexerDefinitionError) as excinfo:
            resolve_state(Broken, "root")
        assert str(excinfo.value).startswith("Broken:inner: ")
        assert excinfo.value.lexer is Broken
        assert excinfo.value.state == "inner"


class TestCache:
    def test_compile_state_memoized(self) -> None:
        first = compile_state(Base, "root")
        assert compile_state(Base, "root") is first
        assert (Base, "root") in get_rule_cache()

    def test_resolved_rules_are_immutable(self) -> None:
        rules = compile_state(Base, "root")
        assert isinstance(rules, tuple)
        with pytest.raises(AttributeError):
            rules[0].kinds = ("other",)  # type: ignore[misc]

    def test_rules_compare_by_identity(self) -> None:
        first = resolve_state(Base, "root")
        second = resolve_state(Base, "root")
        assert first[0] != second[0]

    def test_fresh_cache(self) -> None:
        cache = RuleCache()
        assert cache.get(Base, "root") is None
        rules = cache.get_or_resolve(Base, "root")
        assert cache.get(Base, "root") is rules
        assert len(cache) == 1
        cache.clear()
        assert len(cache) == 0

    def test_definition_errors_are_not_cached(self) -> None:
        class Lexer(LexerDefinition):
            tokens = {"root": [(r"(", "x")]}

        cache = RuleCache()
        with pytest.raises(LexerDefinitionError):
            cache.get_or_resolve(Lexer, "root")
        assert (Lexer, "root") not in cache

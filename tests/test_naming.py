"""
tests/test_naming.py
Unit tests for dalgen.naming: inflection, casing, quoting, reserved words
and the identifier cache.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import List

import pytest

from dalgen.errors import ProgrammingError
from dalgen.naming import (
    IdentifierCache,
    NamingEngine,
    Ruleset,
    camel_case,
    contains_any,
    join_lists,
    make_string_map,
    pluralize,
    prefix_string_list,
    quote_character,
    quote_identifier,
    quote_identifiers,
    replace_reserved_word,
    schema_model,
    singularize,
    string_list_match,
    string_map,
    title_case,
    title_case_identifier,
)


# ===========================================================================
# Inflection
# ===========================================================================


class TestInflection:
    @pytest.mark.parametrize(
        "word, expected",
        [
            ("user", "users"),
            ("category", "categories"),
            ("status", "statuses"),
            ("box", "boxes"),
            ("person", "people"),
            ("user_address", "user_addresses"),
            ("blog_post", "blog_posts"),
        ],
    )
    def test_pluralize(self, word: str, expected: str) -> None:
        assert pluralize(word) == expected

    @pytest.mark.parametrize(
        "word, expected",
        [
            ("users", "user"),
            ("categories", "category"),
            ("statuses", "status"),
            ("people", "person"),
            ("user_addresses", "user_address"),
        ],
    )
    def test_singularize(self, word: str, expected: str) -> None:
        assert singularize(word) == expected

    def test_only_last_segment_is_inflected(self) -> None:
        assert pluralize("person_category") == "person_categories"
        assert singularize("people_groups") == "people_group"

    def test_uncountables_are_not_special_by_default(self) -> None:
        assert pluralize("sheep") == "sheeps"

    def test_empty_name(self) -> None:
        assert pluralize("") == ""
        assert singularize("") == ""

    def test_custom_irregular_keeps_case(self) -> None:
        rules = Ruleset()
        rules.add_irregular("octopus", "octopodes")
        assert rules.pluralize("octopus") == "octopodes"
        assert rules.pluralize("Octopus") == "Octopodes"
        assert rules.singularize("octopodes") == "octopus"

    def test_custom_uncountable(self) -> None:
        rules = Ruleset()
        assert rules.pluralize("fish") == "fishes"
        rules.add_uncountable("fish")
        assert pluralize("big_fish", rules) == "big_fish"

    def test_later_rules_take_precedence(self) -> None:
        rules = Ruleset()
        rules.add_plural(r"(?i)^user$", "members")
        assert rules.pluralize("user") == "members"
        assert rules.pluralize("admin_user") == "admin_users"


# ===========================================================================
# Casing
# ===========================================================================


class TestTitleCase:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("field_name_id", "FieldNameID"),
            ("ip_address", "IPAddress"),
            ("user", "User"),
            ("api_key", "APIKey"),
            ("uuid", "UUID"),
            ("ip4_addr", "IP4Addr"),
            ("utf8", "Utf8"),
            ("str", "STR"),
            ("__double__under__", "DoubleUnder"),
            ("already_Title", "AlreadyTitle"),
            ("", ""),
            ("___", ""),
        ],
    )
    def test_title_case(self, name: str, expected: str) -> None:
        assert title_case(name) == expected

    def test_cached_and_uncached_agree(self, cache: IdentifierCache) -> None:
        for name in ("field_name_id", "ip_address", "json_body", "x"):
            assert title_case(name, cache) == title_case(name)

    def test_result_is_memoized(self, cache: IdentifierCache) -> None:
        title_case("user_id", cache)
        assert "user_id" in cache
        assert cache.get("user_id") == "UserID"
        assert len(cache) == 1

    def test_cache_hit_is_returned(self, cache: IdentifierCache) -> None:
        cache.put("odd_name", "Overridden")
        assert title_case("odd_name", cache) == "Overridden"

    def test_first_insert_wins(self, cache: IdentifierCache) -> None:
        assert cache.put("a", "First") == "First"
        assert cache.put("a", "Second") == "First"

    def test_concurrent_use(self, cache: IdentifierCache) -> None:
        names: List[str] = [f"column_{i % 50}_id" for i in range(2000)]
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda n: title_case(n, cache), names))
        assert results == [title_case(n) for n in names]
        assert len(cache) == 50


class TestCamelCase:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("var_name_id", "varNameID"),
            ("_private_name", "privateName"),
            ("single", "single"),
            ("Foo_bar", "FooBar"),
            ("user_ip_address", "userIPAddress"),
            ("___", ""),
            ("", ""),
        ],
    )
    def test_camel_case(self, name: str, expected: str) -> None:
        assert camel_case(name) == expected


class TestTitleCaseIdentifier:
    @pytest.mark.parametrize(
        "identifier, expected",
        [
            ("user__home_address", "User.HomeAddress"),
            ("a__b__c", "A.B.C"),
            ("plain_name", "PlainName"),
            ("post__author__id", "Post.Author.ID"),
        ],
    )
    def test_title_case_identifier(self, identifier: str, expected: str) -> None:
        assert title_case_identifier(identifier) == expected


# ===========================================================================
# Quoting
# ===========================================================================


class TestQuoteIdentifier:
    @pytest.mark.parametrize(
        "token, expected",
        [
            ("id", '"id"'),
            ("users.id", '"users"."id"'),
            ("users.*", '"users".*'),
            ('"users".id', '"users"."id"'),
            ('"users"."id"', '"users"."id"'),
            ("public.users.id", '"public"."users"."id"'),
            ("null", "null"),
            ("NULL", "NULL"),
            ("?", "?"),
            ("count(*)", "count(*)"),
            ("a + b", "a + b"),
            ("", ""),
        ],
    )
    def test_double_quotes(self, token: str, expected: str) -> None:
        assert quote_identifier('"', '"', token) == expected

    def test_backticks(self) -> None:
        assert quote_identifier("`", "`", "users.id") == "`users`.`id`"

    def test_brackets(self) -> None:
        assert quote_identifier("[", "]", "dbo.users") == "[dbo].[users]"

    def test_quote_identifiers(self) -> None:
        assert quote_identifiers('"', '"', ["a", "b.c"]) == ['"a"', '"b"."c"']

    def test_schema_model(self) -> None:
        assert schema_model('"', '"', "users", "public") == '"public"."users"'
        assert schema_model('"', '"', "users") == '"users"'
        assert schema_model("[", "]", "users", "dbo") == "[dbo].[users]"

    def test_quote_character(self) -> None:
        assert quote_character('"') == '\\"'
        assert quote_character("`") == "`"


class TestReservedWords:
    @pytest.mark.parametrize(
        "word, expected",
        [("class", "class_"), ("None", "None_"), ("import", "import_"), ("name", "name"), ("", "")],
    )
    def test_replace_reserved_word(self, word: str, expected: str) -> None:
        assert replace_reserved_word(word) == expected


# ===========================================================================
# Template list helpers
# ===========================================================================


class TestListHelpers:
    def test_make_string_map_is_sorted(self) -> None:
        assert make_string_map({"b": "2", "a": "1"}) == '"a": "1", "b": "2"'

    def test_make_string_map_escapes(self) -> None:
        assert make_string_map({"k": 'say "hi"'}) == '"k": "say \\"hi\\""'

    def test_join_lists(self) -> None:
        assert join_lists("=", ["a", "b"], ["1", "2"]) == ["a=1", "b=2"]
        assert join_lists("=", [], []) == []

    def test_join_lists_length_mismatch(self) -> None:
        with pytest.raises(ProgrammingError):
            join_lists("=", ["a"], ["1", "2"])

    def test_string_list_match(self) -> None:
        assert string_list_match(["a", "b"], ["b", "a"])
        assert not string_list_match(["a"], ["a", "b"])
        assert not string_list_match(["a", "c"], ["a", "b"])

    def test_contains_any(self) -> None:
        assert contains_any(["a", "b"], "c", "b")
        assert not contains_any(["a"], "c")

    def test_prefix_and_map(self) -> None:
        assert prefix_string_list("t.", ["a", "b"]) == ["t.a", "t.b"]
        assert string_map(str.upper, ["a", "b"]) == ["A", "B"]


# ===========================================================================
# Facade
# ===========================================================================


class TestNamingEngine:
    def test_model_name(self) -> None:
        engine = NamingEngine()
        assert engine.model_name("user_addresses") == "UserAddress"
        assert engine.model_name("people") == "Person"

    def test_shares_cache(self, cache: IdentifierCache) -> None:
        engine = NamingEngine(cache)
        assert engine.title_case("ip_address") == "IPAddress"
        assert engine.camel_case("ip_address") == "ipAddress"
        assert "ip_address" in cache
        assert "address" in cache

    def test_field_name(self) -> None:
        assert NamingEngine().field_name("class") == "class_"

    def test_custom_ruleset(self) -> None:
        rules = Ruleset()
        rules.add_irregular("cactus", "cacti")
        engine = NamingEngine(ruleset=rules)
        assert engine.pluralize("green_cactus") == "green_cacti"
        assert engine.singularize("green_cacti") == "green_cactus"

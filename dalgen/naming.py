# File: dalgen/naming.py
"""
dalgen - Identifier Naming Engine
=================================
String transforms that turn raw schema names into identifiers for the
generated data-access layer:

- inflection (``pluralize`` / ``singularize``) of the last ``_`` segment,
- casing (``title_case``, ``camel_case``, ``title_case_identifier``) with
  acronym and no-vowel rules,
- SQL identifier quoting (``quote_identifier``),
- reserved-word avoidance (``replace_reserved_word``).

Title-casing is the hot path of a generation run: every column of every
table goes through it several times from templates.  Results are memoized
in an ``IdentifierCache`` that the caller constructs once per process and
passes to every call site.  The cache is append-only and guarded by a
reader/writer lock, so concurrent generation workers share it safely.

None of these functions raise on odd input; empty or malformed strings
come back empty or unchanged.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

import inflection

from dalgen.errors import ProgrammingError
from dalgen.utils import ReadWriteLock

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dalgen.naming")

# ---------------------------------------------------------------------------
# Fixed word sets
# ---------------------------------------------------------------------------

# Words rendered fully uppercase by title_case ("ip_address" -> "IPAddress")
ACRONYMS: FrozenSet[str] = frozenset({
    "acl", "api", "ascii", "cpu", "eof", "guid", "id", "ip", "json", "ram",
    "sla", "udp", "ui", "uid", "uuid", "uri", "url", "utf8", "iban",
})

# Python keywords that cannot be used as identifiers in generated code
RESERVED_WORDS: FrozenSet[str] = frozenset({
    "False", "None", "True", "and", "as", "assert", "async", "await",
    "break", "class", "continue", "def", "del", "elif", "else",
    "except", "finally", "for", "from", "global", "if", "import",
    "in", "is", "lambda", "nonlocal", "not", "or", "pass", "raise",
    "return", "try", "while", "with", "yield",
})

_VOWELS: FrozenSet[str] = frozenset("aeiouy")

_IDENTIFIER_TOKEN_RE: re.Pattern[str] = re.compile(
    r'"?[a-z_][_a-z0-9]*"?(\."?[_a-z][_a-z0-9]*"?)*(\.\*)?',
    re.IGNORECASE,
)

Replacement = Union[str, Callable[["re.Match[str]"], str]]


# ---------------------------------------------------------------------------
# Identifier cache
# ---------------------------------------------------------------------------


class IdentifierCache:
    """
    Process-wide memo of raw name -> title-cased identifier.

    Create one per process and hand the same instance to every naming call.
    Lookups take the shared side of the lock and never block each other;
    a miss takes the exclusive side only for the insert.  Entries are never
    evicted: the key space is bounded by the distinct identifiers of the
    schema being generated.
    """

    __slots__ = ("_entries", "_lock")

    def __init__(self) -> None:
        self._entries: Dict[str, str] = {}
        self._lock: ReadWriteLock = ReadWriteLock()

    def get(self, key: str) -> Optional[str]:
        with self._lock.read():
            return self._entries.get(key)

    def put(self, key: str, value: str) -> str:
        """Insert *value* unless another writer got there first; return the stored value."""
        with self._lock.write():
            return self._entries.setdefault(key, value)

    def __contains__(self, key: object) -> bool:
        with self._lock.read():
            return key in self._entries

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)

    def __repr__(self) -> str:
        return f"<IdentifierCache {len(self)} entries>"


# ---------------------------------------------------------------------------
# Inflection ruleset
# ---------------------------------------------------------------------------


def _match_case(matched_first: str, word: str) -> str:
    first: str = word[0].upper() if matched_first.isupper() else word[0].lower()
    return first + word[1:]


class Ruleset:
    """
    Ordered plural/singular rules; the first matching rule wins and rules
    added later take precedence.

    The default instance starts from the rule tables of the ``inflection``
    library but leaves out its uncountable words.  A table named ``sheep``
    therefore gets a ``sheeps`` accessor instead of one that collides with
    the model name.
    """

    def __init__(
        self,
        plurals: Optional[Iterable[Tuple[str, Replacement]]] = None,
        singulars: Optional[Iterable[Tuple[str, Replacement]]] = None,
        uncountables: Iterable[str] = (),
    ) -> None:
        self._plurals: List[Tuple[str, Replacement]] = list(
            inflection.PLURALS if plurals is None else plurals
        )
        self._singulars: List[Tuple[str, Replacement]] = list(
            inflection.SINGULARS if singulars is None else singulars
        )
        self._uncountables: Set[str] = {w.lower() for w in uncountables}

    def add_plural(self, rule: str, replacement: Replacement) -> None:
        self._plurals.insert(0, (rule, replacement))

    def add_singular(self, rule: str, replacement: Replacement) -> None:
        self._singulars.insert(0, (rule, replacement))

    def add_uncountable(self, word: str) -> None:
        self._uncountables.add(word.lower())

    def add_irregular(self, singular: str, plural: str) -> None:
        """Register a word pair such as ``person`` / ``people`` (suffix match, case kept)."""
        self._uncountables.discard(singular.lower())
        self._uncountables.discard(plural.lower())

        s_rule: str = f"(?i)({re.escape(singular[0])}){re.escape(singular[1:])}$"
        p_rule: str = f"(?i)({re.escape(plural[0])}){re.escape(plural[1:])}$"
        self.add_plural(s_rule, lambda m: _match_case(m.group(1), plural))
        self.add_plural(p_rule, lambda m: _match_case(m.group(1), plural))
        self.add_singular(p_rule, lambda m: _match_case(m.group(1), singular))
        self.add_singular(s_rule, lambda m: _match_case(m.group(1), singular))

    @staticmethod
    def _apply(rules: Sequence[Tuple[str, Replacement]], word: str) -> str:
        for rule, replacement in rules:
            if re.search(rule, word):
                return re.sub(rule, replacement, word)
        return word

    def pluralize(self, word: str) -> str:
        if not word or word.lower() in self._uncountables:
            return word
        return self._apply(self._plurals, word)

    def singularize(self, word: str) -> str:
        if not word or word.lower() in self._uncountables:
            return word
        return self._apply(self._singulars, word)

    def __repr__(self) -> str:
        return (
            f"<Ruleset {len(self._plurals)} plural rules, "
            f"{len(self._singulars)} singular rules, "
            f"{len(self._uncountables)} uncountables>"
        )


DEFAULT_RULESET: Ruleset = Ruleset()


def pluralize(name: str, ruleset: Ruleset = DEFAULT_RULESET) -> str:
    """
    Pluralize the last ``_`` segment of *name*, leaving the others untouched.

    Examples:
        >>> pluralize("user_person")
        'user_people'
        >>> pluralize("sheep")
        'sheeps'
    """
    head, sep, last = name.rpartition("_")
    return f"{head}{sep}{ruleset.pluralize(last)}"


def singularize(name: str, ruleset: Ruleset = DEFAULT_RULESET) -> str:
    """Singularize the last ``_`` segment of *name* (``user_people`` -> ``user_person``)."""
    head, sep, last = name.rpartition("_")
    return f"{head}{sep}{ruleset.singularize(last)}"


# ---------------------------------------------------------------------------
# Casing
# ---------------------------------------------------------------------------


def _upper_ascii(word: str) -> str:
    return "".join(chr(ord(c) - 32) if "a" <= c <= "z" else c for c in word)


def _title_word(word: str) -> str:
    num_start: int = len(word)
    has_vowel: bool = False
    for i, c in enumerate(word):
        has_vowel = has_vowel or c in _VOWELS
        if num_start == len(word) and "0" <= c <= "9":
            num_start = i

    if word[:num_start] in ACRONYMS or not has_vowel:
        return _upper_ascii(word)
    return _upper_ascii(word[0]) + word[1:]


def title_case(name: str, cache: Optional[IdentifierCache] = None) -> str:
    """
    Turn a snake_case schema name into an identifier like ``ColumnName``.

    Each ``_``-separated word is capitalized.  Known acronyms (judged on the
    letters before the first digit) and words without a vowel are uppercased
    entirely, so ``field_name_id`` becomes ``FieldNameID`` and ``ip4_addr``
    becomes ``IP4Addr``.  Runs of underscores count as one separator.

    When *cache* is given the result is memoized there under *name*.
    """
    if cache is not None:
        hit: Optional[str] = cache.get(name)
        if hit is not None:
            return hit

    parts: List[str] = [_title_word(word) for word in name.split("_") if word]
    result: str = "".join(parts)

    if cache is not None:
        result = cache.put(name, result)
    return result


def camel_case(name: str, cache: Optional[IdentifierCache] = None) -> str:
    """
    Like ``title_case`` but the first word keeps its original case:
    ``var_name_id`` -> ``varNameID``.  Leading underscores are dropped and a
    name made only of underscores yields ``""``.
    """
    stripped: str = name.lstrip("_")
    if not stripped:
        return ""

    first, sep, rest = stripped.partition("_")
    if not sep:
        return first
    return first + title_case(rest, cache)


def title_case_identifier(identifier: str, cache: Optional[IdentifierCache] = None) -> str:
    """
    Title-case each ``__``-separated fragment and join them with dots:
    ``user__home_address`` -> ``User.HomeAddress``.
    """
    return ".".join(title_case(fragment, cache) for fragment in identifier.split("__"))


# ---------------------------------------------------------------------------
# Quoting
# ---------------------------------------------------------------------------


def quote_identifier(lq: str, rq: str, token: str) -> str:
    """
    Quote each dot-separated segment of a simple SQL identifier.

    ``null``, ``?``, ``*`` segments and segments already wrapped in the quote
    characters are left alone.  Anything that does not look like a plain
    (optionally dotted) identifier, e.g. ``count(*)`` or ``a + b``, is
    returned unchanged.

    Examples:
        >>> quote_identifier('"', '"', "users.id")
        '"users"."id"'
        >>> quote_identifier('"', '"', "users.*")
        '"users".*'
    """
    if token.lower() == "null" or token == "?":
        return token

    if _IDENTIFIER_TOKEN_RE.fullmatch(token) is None:
        return token

    segments: List[str] = []
    for segment in token.split("."):
        if segment == "*" or segment.startswith(lq) or segment.endswith(rq):
            segments.append(segment)
        else:
            segments.append(f"{lq}{segment}{rq}")
    return ".".join(segments)


def quote_identifiers(lq: str, rq: str, tokens: Sequence[str]) -> List[str]:
    """Apply ``quote_identifier`` to every token."""
    return [quote_identifier(lq, rq, token) for token in tokens]


def schema_model(lq: str, rq: str, model: str, schema: Optional[str] = None) -> str:
    """
    Quoted model (table) name, prefixed with its schema when the database
    supports real schemas: ``"public"."users"`` or ``[dbo].[users]``.
    """
    if schema:
        return f"{lq}{schema}{rq}.{lq}{model}{rq}"
    return f"{lq}{model}{rq}"


def quote_character(q: str) -> str:
    """Escape a quote character for use inside a double-quoted string literal."""
    if q == '"':
        return '\\"'
    return q


# ---------------------------------------------------------------------------
# Reserved words
# ---------------------------------------------------------------------------


def replace_reserved_word(word: str) -> str:
    """Append ``_`` to *word* if it is a reserved word (``class`` -> ``class_``)."""
    if word in RESERVED_WORDS:
        return word + "_"
    return word


# ---------------------------------------------------------------------------
# List helpers for templates
# ---------------------------------------------------------------------------


def make_string_map(mapping: Mapping[str, str]) -> str:
    """Render ``"k": "v", ...`` sorted by key, for dict literals in templates."""

    def _quote(value: str) -> str:
        return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'

    return ", ".join(f"{_quote(k)}: {_quote(mapping[k])}" for k in sorted(mapping))


def string_map(modifier: Callable[[str], str], items: Sequence[str]) -> List[str]:
    return [modifier(item) for item in items]


def prefix_string_list(prefix: str, items: Sequence[str]) -> List[str]:
    return [f"{prefix}{item}" for item in items]


def join_lists(sep: str, a: Sequence[str], b: Sequence[str]) -> List[str]:
    """Pair up two equal-length lists: ``join_lists("=", ["a"], ["b"]) == ["a=b"]``."""
    if len(a) != len(b):
        raise ProgrammingError(
            f"join_lists: can only merge lists of same length ({len(a)} != {len(b)})"
        )
    return [f"{x}{sep}{y}" for x, y in zip(a, b)]


def string_list_match(a: Sequence[str], b: Sequence[str]) -> bool:
    """True when both lists have the same length and the same members, in any order."""
    if len(a) != len(b):
        return False
    return all(item in b for item in a)


def contains_any(items: Sequence[str], *finds: str) -> bool:
    return any(item in finds for item in items)


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------


class NamingEngine:
    """
    Naming functions bound to one cache and one ruleset.

    Handy for registering template helpers from a single object::

        engine = NamingEngine(IdentifierCache())
        helpers = {"titleCase": engine.title_case, "plural": engine.pluralize}
    """

    __slots__ = ("cache", "ruleset")

    def __init__(
        self,
        cache: Optional[IdentifierCache] = None,
        ruleset: Ruleset = DEFAULT_RULESET,
    ) -> None:
        self.cache: IdentifierCache = cache if cache is not None else IdentifierCache()
        self.ruleset: Ruleset = ruleset

    def title_case(self, name: str) -> str:
        return title_case(name, self.cache)

    def camel_case(self, name: str) -> str:
        return camel_case(name, self.cache)

    def title_case_identifier(self, identifier: str) -> str:
        return title_case_identifier(identifier, self.cache)

    def pluralize(self, name: str) -> str:
        return pluralize(name, self.ruleset)

    def singularize(self, name: str) -> str:
        return singularize(name, self.ruleset)

    def model_name(self, table_name: str) -> str:
        """Class name for a table: singular, title-cased (``user_addresses`` -> ``UserAddress``)."""
        return self.title_case(self.singularize(table_name))

    def field_name(self, column_name: str) -> str:
        """Attribute name for a column, safe against reserved words."""
        return replace_reserved_word(column_name)

    def __repr__(self) -> str:
        return f"<NamingEngine cache={self.cache!r} ruleset={self.ruleset!r}>"


__all__: List[str] = [
    "ACRONYMS",
    "RESERVED_WORDS",
    "IdentifierCache",
    "Ruleset",
    "DEFAULT_RULESET",
    "pluralize",
    "singularize",
    "title_case",
    "camel_case",
    "title_case_identifier",
    "quote_identifier",
    "quote_identifiers",
    "schema_model",
    "quote_character",
    "replace_reserved_word",
    "make_string_map",
    "string_map",
    "prefix_string_list",
    "join_lists",
    "string_list_match",
    "contains_any",
    "NamingEngine",
]

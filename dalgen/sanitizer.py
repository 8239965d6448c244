# File: dalgen/sanitizer.py
"""
dalgen - Generated Source Sanitizer
===================================
Finalizes one generated Python file before it is written:

1. **Parse** the raw template output with ``ast``.  A syntax error stops
   the file and yields a ``Diagnostic`` pointing at the failing line with
   five lines of context either side.
2. **Collect references**: record the names bound by top-level imports
   and every name the module reads.
3. **Prune** imports whose bound name is never read.  Templates import
   generously and let this pass clean up.
4. **Render**: splice the pruned import statements back into the source
   text and reflow the whole file through ``black``.

The stages are exposed individually on ``SourceSanitizer`` so callers can
inspect the intermediate ``SyntaxTree``; ``sanitize()`` runs them all.

Usage::

    result = sanitize(raw_source)
    if result.diagnostic:
        print(result.diagnostic)
    else:
        path.write_bytes(result.output)
"""

from __future__ import annotations

import ast
import copy
import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional, Sequence, Set, Tuple, Union

import black

from dalgen.errors import ProgrammingError, SanitizeError
from dalgen.models import SanitizeConfig

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dalgen.sanitizer")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CONTEXT_LINES: int = 5

_BLACK_POSITION_RE: re.Pattern[str] = re.compile(r"(\d+):(\d+): ")
_LINE_RE: re.Pattern[str] = re.compile(r"[^\n]*\n|[^\n]+\Z")
_NEWLINE_RE: re.Pattern[str] = re.compile(r"\r\n?")

ImportNode = Union[ast.Import, ast.ImportFrom]
_FUNCTION_NODES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda)
_COMPREHENSION_NODES = (ast.ListComp, ast.SetComp, ast.GeneratorExp, ast.DictComp)


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Diagnostic:
    """Why a generated file could not be finalized, with the offending lines."""

    line: int
    message: str
    context: str

    def __str__(self) -> str:
        return f"failed to format generated source: line {self.line}: {self.message}\n\n{self.context}"


def build_diagnostic(source: str, line: int, message: str) -> Diagnostic:
    """
    Build a ``Diagnostic`` for *line* (1-based) of *source*.

    The context holds the lines within ``CONTEXT_LINES`` of the failing one.
    The failing line is marked ``>>>>``; the others carry their line number
    right-aligned in four columns::

           3 class UserQuery:
           4     def one(self):
        >>>>         return self.execute(
           6
    """
    out: List[str] = []
    for number, text in enumerate(source.splitlines(), start=1):
        if abs(number - line) > CONTEXT_LINES:
            continue
        prefix: str = ">>>> " if number == line else f"{number:4d} "
        out.append(f"{prefix}{text}\n")
    return Diagnostic(line=line, message=message, context="".join(out))


# ---------------------------------------------------------------------------
# Syntax tree state
# ---------------------------------------------------------------------------


class SanitizeState(enum.Enum):
    PARSED = "parsed"
    REFERENCES_COLLECTED = "references_collected"
    PRUNED = "pruned"
    RENDERED = "rendered"
    PARSE_FAILED = "parse_failed"


@dataclass(frozen=True)
class ImportBinding:
    """
    One local name bound by a top-level import statement.  ``used`` is set
    when the reference walk found the name outside shadowing scopes.
    """

    name: str
    module: str
    statement: ImportNode = field(compare=False, repr=False)
    alias: ast.alias = field(compare=False, repr=False)
    used: bool = False

    @property
    def lineno(self) -> int:
        return self.statement.lineno


@dataclass
class SyntaxTree:
    """Parsed form of one generated file, threaded through the sanitizer stages."""

    source: str
    module: Optional[ast.Module] = None
    state: SanitizeState = SanitizeState.PARSED
    diagnostic: Optional[Diagnostic] = None
    bindings: List[ImportBinding] = field(default_factory=list)
    references: Set[str] = field(default_factory=set)
    edits: List[Tuple[ImportNode, Optional[ImportNode]]] = field(default_factory=list)
    pruned: List[ImportBinding] = field(default_factory=list)

    def __repr__(self) -> str:
        return (
            f"<SyntaxTree {self.state.value} bindings={len(self.bindings)} "
            f"references={len(self.references)} pruned={len(self.pruned)}>"
        )


class SanitizeResult(NamedTuple):
    """Outcome of sanitizing one file: exactly one of ``output`` / ``diagnostic`` is set."""

    output: Optional[bytes]
    diagnostic: Optional[Diagnostic]
    pruned: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.diagnostic is None

    def unwrap(self, path: Optional[str] = None) -> bytes:
        if self.diagnostic is not None or self.output is None:
            raise SanitizeError(self.diagnostic or Diagnostic(0, "no output", ""), path)
        return self.output


# ---------------------------------------------------------------------------
# Reference collection
# ---------------------------------------------------------------------------


def _binding_name(node: ImportNode, alias: ast.alias) -> str:
    if alias.asname:
        return alias.asname
    if isinstance(node, ast.Import):
        return alias.name.split(".", 1)[0]
    return alias.name


def _import_module(node: ImportNode, alias: ast.alias) -> str:
    if isinstance(node, ast.Import):
        return alias.name
    return "." * node.level + (node.module or "")


def _target_names(target: ast.AST) -> Set[str]:
    return {n.id for n in ast.walk(target) if isinstance(n, ast.Name)}


def _argument_names(args: ast.arguments) -> Set[str]:
    names: Set[str] = {a.arg for a in (*args.posonlyargs, *args.args, *args.kwonlyargs)}
    if args.vararg:
        names.add(args.vararg.arg)
    if args.kwarg:
        names.add(args.kwarg.arg)
    return names


def _scope_bindings(body: Sequence[ast.AST]) -> Set[str]:
    """
    Names bound directly in a function body, without descending into
    nested functions, classes or comprehensions (which get their own
    scope), minus names declared ``global`` or ``nonlocal``.
    """
    bound: Set[str] = set()
    escaped: Set[str] = set()
    stack: List[ast.AST] = list(body)

    while stack:
        node: ast.AST = stack.pop()
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            bound.add(node.name)
            continue
        if isinstance(node, (ast.Lambda, *_COMPREHENSION_NODES)):
            continue
        if isinstance(node, ast.Name) and isinstance(node.ctx, (ast.Store, ast.Del)):
            bound.add(node.id)
        elif isinstance(node, (ast.Import, ast.ImportFrom)):
            bound.update(_binding_name(node, a) for a in node.names if a.name != "*")
        elif isinstance(node, ast.ExceptHandler) and node.name:
            bound.add(node.name)
        elif isinstance(node, (ast.Global, ast.Nonlocal)):
            escaped.update(node.names)
        elif isinstance(node, (ast.MatchAs, ast.MatchStar)) and node.name:
            bound.add(node.name)
        elif isinstance(node, ast.MatchMapping) and node.rest:
            bound.add(node.rest)
        stack.extend(ast.iter_child_nodes(node))

    return bound - escaped


class ReferenceCollector(ast.NodeVisitor):
    """
    Collect every module-level name a module reads.

    A name read inside a function, lambda or comprehension that binds the
    same name locally is not a module-level reference and is skipped.
    Class bodies are not treated as scopes, so a class attribute that
    shadows an import still keeps the import.

    Besides plain loads, names listed in a module-level ``__all__`` and
    names inside string annotations count as references.
    """

    def __init__(self) -> None:
        self.references: Set[str] = set()
        self._scopes: List[Set[str]] = []

    # -- helpers ----------------------------------------------------------

    def _add(self, name: str) -> None:
        for scope in self._scopes:
            if name in scope:
                return
        self.references.add(name)

    def _visit_all(self, nodes: Sequence[Optional[ast.AST]]) -> None:
        for node in nodes:
            if node is not None:
                self.visit(node)

    def _visit_annotation(self, node: Optional[ast.expr]) -> None:
        if node is None:
            return
        for sub in ast.walk(node):
            if isinstance(sub, ast.Constant) and isinstance(sub.value, str):
                self._visit_string_annotation(sub.value)
        self.visit(node)

    def _visit_string_annotation(self, text: str) -> None:
        try:
            expr: ast.Expression = ast.parse(text.strip(), mode="eval")
        except SyntaxError:
            # plain string, not a forward reference
            return
        self._visit_annotation(expr.body)

    def _visit_arguments(self, args: ast.arguments) -> None:
        self._visit_all(args.defaults)
        self._visit_all(args.kw_defaults)
        for arg in (*args.posonlyargs, *args.args, *args.kwonlyargs, args.vararg, args.kwarg):
            if arg is not None:
                self._visit_annotation(arg.annotation)

    # -- names ------------------------------------------------------------

    def visit_Name(self, node: ast.Name) -> None:
        if isinstance(node.ctx, (ast.Load, ast.Del)):
            self._add(node.id)

    def visit_Assign(self, node: ast.Assign) -> None:
        if not self._scopes and any(
            isinstance(t, ast.Name) and t.id == "__all__" for t in node.targets
        ):
            self._add_exports(node.value)
        self.generic_visit(node)

    def visit_AugAssign(self, node: ast.AugAssign) -> None:
        if not self._scopes and isinstance(node.target, ast.Name) and node.target.id == "__all__":
            self._add_exports(node.value)
        self.generic_visit(node)

    def visit_AnnAssign(self, node: ast.AnnAssign) -> None:
        self._visit_annotation(node.annotation)
        self._visit_all([node.target, node.value])

    def _add_exports(self, value: ast.expr) -> None:
        if isinstance(value, (ast.List, ast.Tuple)):
            for element in value.elts:
                if isinstance(element, ast.Constant) and isinstance(element.value, str):
                    self._add(element.value)

    # -- scopes -----------------------------------------------------------

    def _visit_function(self, node: Union[ast.FunctionDef, ast.AsyncFunctionDef]) -> None:
        self._visit_all(node.decorator_list)
        self._visit_arguments(node.args)
        self._visit_annotation(node.returns)

        self._scopes.append(_argument_names(node.args) | _scope_bindings(node.body))
        try:
            self._visit_all(node.body)
        finally:
            self._scopes.pop()

    visit_FunctionDef = _visit_function
    visit_AsyncFunctionDef = _visit_function

    def visit_Lambda(self, node: ast.Lambda) -> None:
        self._visit_arguments(node.args)
        self._scopes.append(_argument_names(node.args))
        try:
            self.visit(node.body)
        finally:
            self._scopes.pop()

    def _visit_comprehension(self, node: ast.AST) -> None:
        generators: List[ast.comprehension] = node.generators  # type: ignore[attr-defined]
        # the first iterable is evaluated in the enclosing scope
        self.visit(generators[0].iter)

        bound: Set[str] = set()
        for gen in generators:
            bound |= _target_names(gen.target)
        self._scopes.append(bound)
        try:
            for i, gen in enumerate(generators):
                if i:
                    self.visit(gen.iter)
                self._visit_all(gen.ifs)
            if isinstance(node, ast.DictComp):
                self._visit_all([node.key, node.value])
            else:
                self.visit(node.elt)  # type: ignore[attr-defined]
        finally:
            self._scopes.pop()

    visit_ListComp = _visit_comprehension
    visit_SetComp = _visit_comprehension
    visit_GeneratorExp = _visit_comprehension
    visit_DictComp = _visit_comprehension


# ---------------------------------------------------------------------------
# Text splicing
# ---------------------------------------------------------------------------


def _line_offsets(text: str) -> List[int]:
    offsets: List[int] = [0]
    for match in _LINE_RE.finditer(text):
        offsets.append(match.end())
    return offsets


def _char_col(line_text: str, byte_col: int) -> int:
    # ast column offsets count UTF-8 bytes
    return len(line_text.encode("utf-8")[:byte_col].decode("utf-8", errors="ignore"))


def _remove_span(chunk: str, start: int, end: int) -> str:
    """Drop ``chunk[start:end]`` along with the ``;`` that joins it to a neighbour."""
    after: str = chunk[end:]
    before: str = chunk[:start]
    semicolon_after: Optional[re.Match[str]] = re.match(r"[ \t]*;[ \t]*", after)
    semicolon_before: Optional[re.Match[str]] = re.search(r";[ \t]*\Z", before)

    if semicolon_after is not None:
        return before + after[semicolon_after.end():]
    if semicolon_before is not None:
        return before[:semicolon_before.start()] + after
    if not before.strip() and (not after.strip() or after.strip().startswith("#")):
        return before + after
    return before + "pass" + after


def _splice(source: str, edits: Sequence[Tuple[ImportNode, Optional[ImportNode]]]) -> str:
    """
    Apply import edits to *source*.  ``None`` as replacement removes the
    statement, together with its line when nothing but a comment is left.

    Edits whose statements share a physical line are applied to that line
    together, right to left, so each one sees the text left by the others.
    """
    offsets: List[int] = _line_offsets(source)

    def line_start(lineno: int) -> int:
        return offsets[lineno - 1] if lineno - 1 < len(offsets) else len(source)

    ordered = sorted(edits, key=lambda e: (e[0].lineno, e[0].col_offset))
    clusters: List[List[Tuple[ImportNode, Optional[ImportNode]]]] = []
    last_line: int = 0
    for edit in ordered:
        node: ImportNode = edit[0]
        if clusters and node.lineno <= last_line:
            clusters[-1].append(edit)
        else:
            clusters.append([edit])
        last_line = max(last_line, node.end_lineno or node.lineno)

    out: List[str] = []
    cursor: int = 0
    for cluster in clusters:
        first: int = cluster[0][0].lineno
        last: int = max(n.end_lineno or n.lineno for n, _ in cluster)
        chunk_begin: int = line_start(first)
        chunk_end: int = line_start(last + 1)
        chunk: str = source[chunk_begin:chunk_end]

        for node, replacement in reversed(cluster):
            begin: int = line_start(node.lineno)
            end_begin: int = line_start(node.end_lineno or node.lineno)
            start: int = begin - chunk_begin + _char_col(
                source[begin:line_start(node.lineno + 1)], node.col_offset
            )
            end: int = end_begin - chunk_begin + _char_col(
                source[end_begin:line_start((node.end_lineno or node.lineno) + 1)],
                node.end_col_offset or 0,
            )
            if replacement is not None:
                chunk = chunk[:start] + ast.unparse(replacement) + chunk[end:]
            else:
                chunk = _remove_span(chunk, start, end)

        stripped: str = chunk.strip()
        out.append(source[cursor:chunk_begin])
        if stripped and not stripped.startswith("#"):
            out.append(chunk)
        cursor = chunk_end

    out.append(source[cursor:])
    return "".join(out)


# ---------------------------------------------------------------------------
# Sanitizer
# ---------------------------------------------------------------------------


class SourceSanitizer:
    """
    Staged import pruner and formatter.

    Each stage takes the ``SyntaxTree`` returned by the previous one and
    advances its ``state``.  Running a stage out of order raises
    ``ProgrammingError``.
    """

    def __init__(self, config: Optional[SanitizeConfig] = None) -> None:
        self.config: SanitizeConfig = config or SanitizeConfig()
        self._mode: black.Mode = self.config.black_mode()

    # -- stages -----------------------------------------------------------

    def parse(self, raw: Union[str, bytes]) -> SyntaxTree:
        if isinstance(raw, bytes):
            try:
                source: str = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                text: str = raw.decode("utf-8", errors="replace")
                line: int = raw[: exc.start].count(b"\n") + 1
                return self._failed(text, line, f"invalid UTF-8: {exc.reason}")
        else:
            source = raw

        # the parser treats \r and \r\n as line breaks; make offsets agree
        source = _NEWLINE_RE.sub("\n", source)

        try:
            module: ast.Module = ast.parse(source)
        except SyntaxError as exc:
            return self._failed(source, exc.lineno or 1, exc.msg)
        except ValueError as exc:
            # null bytes on older interpreters
            return self._failed(source, 1, str(exc))

        return SyntaxTree(source=source, module=module, state=SanitizeState.PARSED)

    def collect_references(self, tree: SyntaxTree) -> SyntaxTree:
        self._require(tree, SanitizeState.PARSED)
        if tree.module is None:
            raise ProgrammingError("sanitizer stage expects a tree with a parsed module")

        collector: ReferenceCollector = ReferenceCollector()
        collector.visit(tree.module)

        bindings: List[ImportBinding] = []
        for node in tree.module.body:
            if isinstance(node, (ast.Import, ast.ImportFrom)):
                for alias in node.names:
                    name: str = _binding_name(node, alias)
                    bindings.append(
                        ImportBinding(
                            name=name,
                            module=_import_module(node, alias),
                            statement=node,
                            alias=alias,
                            used=name in collector.references,
                        )
                    )

        tree.bindings = bindings
        tree.references = collector.references
        tree.state = SanitizeState.REFERENCES_COLLECTED
        return tree

    def unused_bindings(self, tree: SyntaxTree) -> List[ImportBinding]:
        """Bindings never referenced, excluding star imports and the configured keep-lists."""
        self._require(tree, SanitizeState.REFERENCES_COLLECTED)
        return [
            b for b in tree.bindings
            if b.alias.name != "*"
            and not b.used
            and b.name not in self.config.keep_aliases
            and b.module not in self.config.keep_modules
        ]

    def prune(self, tree: SyntaxTree) -> SyntaxTree:
        unused: List[ImportBinding] = self.unused_bindings(tree)

        by_statement: Dict[int, List[ImportBinding]] = {}
        for binding in unused:
            by_statement.setdefault(id(binding.statement), []).append(binding)

        edits: List[Tuple[ImportNode, Optional[ImportNode]]] = []
        for group in by_statement.values():
            node: ImportNode = group[0].statement
            dropped: Set[int] = {id(b.alias) for b in group}
            kept: List[ast.alias] = [a for a in node.names if id(a) not in dropped]

            replacement: Optional[ImportNode] = None
            if kept:
                replacement = copy.copy(node)
                replacement.names = kept
            edits.append((node, replacement))

        for binding in unused:
            logger.debug("Pruning unused import %r (line %d)", binding.name, binding.lineno)

        tree.edits = edits
        tree.pruned = unused
        tree.state = SanitizeState.PRUNED
        return tree

    def render(self, tree: SyntaxTree) -> SanitizeResult:
        self._require(tree, SanitizeState.PRUNED)

        spliced: str = _splice(tree.source, tree.edits) if tree.edits else tree.source
        try:
            formatted: str = black.format_str(spliced, mode=self._mode)
        except black.InvalidInput as exc:
            message: str = str(exc)
            match: Optional[re.Match[str]] = _BLACK_POSITION_RE.search(message)
            line: int = int(match.group(1)) if match else 1
            failed: SyntaxTree = self._failed(spliced, line, message)
            return SanitizeResult(output=None, diagnostic=failed.diagnostic)

        tree.state = SanitizeState.RENDERED
        return SanitizeResult(
            output=formatted.encode("utf-8"),
            diagnostic=None,
            pruned=tuple(b.name for b in tree.pruned),
        )

    def sanitize(self, raw: Union[str, bytes]) -> SanitizeResult:
        tree: SyntaxTree = self.parse(raw)
        if tree.state is SanitizeState.PARSE_FAILED:
            return SanitizeResult(output=None, diagnostic=tree.diagnostic)

        self.collect_references(tree)
        self.prune(tree)
        return self.render(tree)

    # -- internals --------------------------------------------------------

    def _failed(self, source: str, line: int, message: str) -> SyntaxTree:
        diagnostic: Diagnostic = build_diagnostic(source, line, message)
        logger.error("%s", diagnostic)
        return SyntaxTree(
            source=source,
            state=SanitizeState.PARSE_FAILED,
            diagnostic=diagnostic,
        )

    @staticmethod
    def _require(tree: SyntaxTree, state: SanitizeState) -> None:
        if tree.state is not state:
            raise ProgrammingError(
                f"sanitizer stage expects a {state.value} tree, got {tree.state.value}"
            )

    def __repr__(self) -> str:
        return f"<SourceSanitizer line_length={self.config.line_length}>"


def sanitize(raw: Union[str, bytes], config: Optional[SanitizeConfig] = None) -> SanitizeResult:
    """Prune unused imports from generated source and format it with black."""
    return SourceSanitizer(config).sanitize(raw)


__all__: List[str] = [
    "CONTEXT_LINES",
    "Diagnostic",
    "build_diagnostic",
    "SanitizeState",
    "ImportBinding",
    "SyntaxTree",
    "SanitizeResult",
    "ReferenceCollector",
    "SourceSanitizer",
    "sanitize",
]

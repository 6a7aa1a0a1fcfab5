"""
Line-oriented search over a GraphQL SDL document.

The schema is treated as plain text: each line is matched against a
case-insensitive regex, optionally narrowed to one kind of SDL definition.
For `query`/`mutation` the search is confined to the body of the root
`type Query` / `type Mutation` block, found with a single running brace
counter. This is intentionally not a GraphQL parser; braces inside
descriptions or comments are counted like any other brace.

Used by the proxy to answer `search_schema` tool calls and by the
`graphql-schema-search` CLI for ad-hoc lookups.
"""
from __future__ import annotations

import argparse
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from config import DEFAULT_SCHEMA_PATH

DEFINITION_KINDS = ("type", "input", "enum", "interface", "union", "scalar")
ROOT_KINDS = ("query", "mutation")
SEARCH_KINDS = ("any",) + DEFINITION_KINDS + ROOT_KINDS
DEFAULT_CONTEXT_LINES = 5
MAX_RENDERED_MATCHES = 20
_DEFINITION_HEADER = re.compile(r"^(type|input|enum|interface|union|scalar)\s+", re.IGNORECASE)


class SearchError(ValueError):
    """A search request that cannot be executed."""


class InvalidPatternError(SearchError):
    pass


@dataclass(frozen=True)
class SchemaDocument:
    lines: tuple[str, ...]

    @classmethod
    def from_text(cls, text: str) -> "SchemaDocument":
        return cls(lines=tuple(text.split("\n")))

    @classmethod
    def from_path(cls, path: Path) -> "SchemaDocument":
        return cls.from_text(path.read_text(encoding="utf-8"))

    def __len__(self) -> int:
        return len(self.lines)


@dataclass(frozen=True)
class MatchRecord:
    line_number: int
    text: str
    context: str


def compile_query(query: str) -> re.Pattern:
    if not isinstance(query, str) or not query:
        raise SearchError("query must be a non-empty string")
    try:
        return re.compile(query, re.IGNORECASE)
    except re.error as exc:
        raise InvalidPatternError(f"Invalid regular expression {query!r}: {exc}") from exc


def validate_kind(kind: str) -> str:
    if kind not in SEARCH_KINDS:
        raise SearchError(f"type must be one of: {', '.join(SEARCH_KINDS)}")
    return kind


def validate_context_lines(value: object) -> int:
    # JSON clients may send 3.0 for 3.
    if isinstance(value, bool):
        raise SearchError("context_lines must be a non-negative integer")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value < 0:
        raise SearchError("context_lines must be a non-negative integer")
    return value


def render_context(lines: tuple[str, ...], index: int, context_lines: int) -> str:
    start = max(0, index - context_lines)
    end = min(len(lines) - 1, index + context_lines)
    rendered = []
    for pos in range(start, end + 1):
        marker = ">>> " if pos == index else "    "
        rendered.append(f"{pos + 1}:{marker}{lines[pos]}")
    return "\n".join(rendered)


def _record(lines: tuple[str, ...], index: int, context_lines: int) -> MatchRecord:
    return MatchRecord(
        line_number=index + 1,
        text=lines[index].strip(),
        context=render_context(lines, index, context_lines),
    )


def _is_eligible(line: str, kind: str) -> bool:
    if kind == "any":
        return True
    stripped = line.strip()
    if not _DEFINITION_HEADER.match(stripped):
        return True
    return stripped.split()[0].lower() == kind


def _scan_lines(
    document: SchemaDocument, pattern: re.Pattern, kind: str, context_lines: int
) -> Iterable[MatchRecord]:
    lines = document.lines
    for index, line in enumerate(lines):
        if _is_eligible(line, kind) and pattern.search(line):
            yield _record(lines, index, context_lines)


def _scan_root_blocks(
    document: SchemaDocument, pattern: re.Pattern, kind: str, context_lines: int
) -> Iterable[MatchRecord]:
    lines = document.lines
    header = f"type {kind.title()}"
    in_block = False
    depth = 0
    for index, line in enumerate(lines):
        stripped = line.strip()
        if not in_block:
            if stripped.startswith(header):
                depth = line.count("{") - line.count("}")
                # a one-line `type Query { ... }` has an empty body
                in_block = not (depth == 0 and "}" in line)
            continue

        depth += line.count("{") - line.count("}")
        if depth == 0 and "}" in line:
            in_block = False
            continue

        if stripped and not stripped.startswith("#") and pattern.search(line):
            yield _record(lines, index, context_lines)


def find_matches(
    document: SchemaDocument,
    query: str,
    kind: str = "any",
    context_lines: int = DEFAULT_CONTEXT_LINES,
) -> list[MatchRecord]:
    pattern = compile_query(query)
    kind = validate_kind(kind)
    context_lines = validate_context_lines(context_lines)
    if kind in ROOT_KINDS:
        return list(_scan_root_blocks(document, pattern, kind, context_lines))
    return list(_scan_lines(document, pattern, kind, context_lines))


def format_report(query: str, kind: str, matches: list[MatchRecord]) -> str:
    scope = f" in {kind} definitions" if kind != "any" else ""
    if not matches:
        return f'No matches found for "{query}"{scope}'

    parts = [f'Found {len(matches)} matches for "{query}"{scope}:\n\n']
    for match in matches[:MAX_RENDERED_MATCHES]:
        parts.append(f"Line {match.line_number}: {match.text}\n")
        parts.append(f"Context:\n{match.context}\n\n")
        parts.append("---\n\n")
    hidden = len(matches) - MAX_RENDERED_MATCHES
    if hidden > 0:
        parts.append(
            f"\n... and {hidden} more matches. Refine your search for more specific results."
        )
    return "".join(parts)


def search_schema(
    document: SchemaDocument,
    query: str,
    kind: str = "any",
    context_lines: int = DEFAULT_CONTEXT_LINES,
) -> str:
    matches = find_matches(document, query, kind=kind, context_lines=context_lines)
    return format_report(query, kind, matches)


def cli(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Search a GraphQL SDL schema file line by line.")
    parser.add_argument("query", help="Search pattern (case-insensitive regex)")
    parser.add_argument("--type", dest="kind", choices=SEARCH_KINDS, default="any", help="Schema element kind to search")
    parser.add_argument("--context-lines", type=int, default=DEFAULT_CONTEXT_LINES, help="Lines of context around each match")
    parser.add_argument("--schema", type=Path, default=DEFAULT_SCHEMA_PATH, help="Path to the GraphQL schema file")
    args = parser.parse_args(argv)

    try:
        document = SchemaDocument.from_path(args.schema)
    except OSError as exc:
        parser.exit(1, f"Cannot read schema {args.schema}: {exc}\n")
    try:
        print(search_schema(document, args.query, kind=args.kind, context_lines=args.context_lines))
    except SearchError as exc:
        parser.exit(2, f"{exc}\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(cli())

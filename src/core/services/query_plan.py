"""GraphQL query plan builder.

Merges the field needs of every selected domain into one query:
- field trees sharing a root are merged, a field path is never repeated;
- roots and fields are emitted in lexicographic order, so the same set of
  definitions always yields byte-identical text.
"""

from __future__ import annotations

from typing import Iterable

from core.domain.models import DomainDefinition, FieldSpec, RootSelection

QUERY_NAME = "UnraidSyncFetch"

_ROOT_INDENT = 4
_FIELD_INDENT = 8
_INDENT_STEP = 4

FieldTree = dict[str, "FieldTree"]


class QueryPlanBuilder:
    """Accumulates root selections and renders them as one query."""

    def __init__(self) -> None:
        self._roots: dict[str, FieldTree] = {}

    def add_selections(self, selections: Iterable[RootSelection]) -> None:
        for selection in selections:
            if not selection.fields:
                continue
            root = self._roots.setdefault(selection.root, {})
            self._merge(root, selection.fields)

    def add_definitions(self, definitions: Iterable[DomainDefinition]) -> None:
        for definition in definitions:
            self.add_selections(definition.selection)

    def _merge(self, target: FieldTree, fields: Iterable[FieldSpec]) -> None:
        for field in fields:
            child = target.setdefault(field.name, {})
            if field.selection:
                self._merge(child, field.selection)

    def build(self) -> str | None:
        """Query text, or None when nothing was selected."""

        if not self._roots:
            return None

        sections: list[str] = []
        pad = " " * _ROOT_INDENT
        for root in sorted(self._roots):
            body = self._render(self._roots[root], _FIELD_INDENT)
            sections.append(f"{pad}{root} {{\n{body}\n{pad}}}" if body else f"{pad}{root}")

        body = "\n".join(sections)
        return f"query {QUERY_NAME} {{\n{body}\n}}"

    def _render(self, node: FieldTree, indent: int) -> str:
        pad = " " * indent
        lines: list[str] = []
        for name in sorted(node):
            child = node[name]
            if not child:
                lines.append(f"{pad}{name}")
                continue
            body = self._render(child, indent + _INDENT_STEP)
            lines.append(f"{pad}{name} {{\n{body}\n{pad}}}")
        return "\n".join(lines)


def build_query(definitions: Iterable[DomainDefinition]) -> str | None:
    builder = QueryPlanBuilder()
    builder.add_definitions(definitions)
    return builder.build()

"""Componentes de UI para CLI (Rich).

Por qué componentes separados:
- Mantiene la lógica de comandos separada de los detalles de presentación.
- Tablas y árboles se reutilizan en varios comandos (`run`, `show`, `plan`).
"""

from __future__ import annotations

from typing import Any, Iterable

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from core.domain.catalog import DOMAIN_DEFINITION_BY_ID, DOMAIN_TREE
from core.domain.models import DomainNode
from core.services.sync_engine import EngineStatistics


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida.

    Vive aquí para que `main` y `doctor` lo compartan sin importarse
    entre sí.
    """

    title = Text("UNRAID-SYNC", style="bold cyan")
    subtitle = Text("GraphQL mirror • Domain selection • Dynamic resources", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def _add_node(parent: Tree, node: DomainNode, selection: frozenset[str]) -> None:
    queryable = node.id in DOMAIN_DEFINITION_BY_ID
    if node.id in selection:
        style = "bold green"
    elif queryable:
        style = "white"
    else:
        style = "dim"

    label = Text(node.id, style=style)
    if node.default_selected:
        label.append(" (default)", style="dim")
    branch = parent.add(label)
    for child in node.children:
        _add_node(branch, child, selection)


def build_domain_tree(selection: Iterable[str] = ()) -> Tree:
    """Árbol del catálogo; los ids de `selection` se resaltan."""

    selected = frozenset(selection)
    tree = Tree(Text("domains", style="bold cyan"))
    for node in DOMAIN_TREE:
        _add_node(tree, node, selected)
    return tree


def _format_value(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def build_state_table(rows: Iterable[tuple[str, Any, str | None]], *, title: str = "State tree") -> Table:
    """Tabla de filas (id, valor, unidad)."""

    table = Table(title=title)
    table.add_column("State", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    table.add_column("Unit", style="dim")
    for object_id, value, unit in rows:
        table.add_row(object_id, _format_value(value), unit or "")
    return table


def build_statistics_table(stats: EngineStatistics) -> Table:
    table = Table(title="Session")
    table.add_column("Metric", style="bright_green", no_wrap=True)
    table.add_column("Value", style="white")

    table.add_row("Cycles", str(stats.cycles))
    table.add_row("Failures", str(stats.failures))
    table.add_row("Last success", stats.last_success.isoformat() if stats.last_success else "-")
    if stats.last_error:
        table.add_row("Last error", Text(stats.last_error, style="red"))
    table.add_row("Objects", str(stats.tree.total))
    table.add_row("Static", str(stats.tree.static))
    table.add_row("Dynamic", str(stats.tree.dynamic))
    for category, count in stats.tree.by_category.items():
        table.add_row(f"  {category}", str(count))
    return table


def build_query_panel(query: str | None) -> Panel:
    body = Text(query) if query else Text("No domain selected: nothing to query.", style="yellow")
    return Panel(body, title="Query plan", border_style="magenta")

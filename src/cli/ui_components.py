"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from typing import Sequence

from rich.align import Align
from rich.console import Console, Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from core.domain.chat import ChatMessage
from core.domain.models import PublicHoliday, SoftwareAsset
from core.domain.proposals import HiringProposal, InitialStructureProposal, Proposal
from core.domain.tools import CodeSnippet, KanbanBoard, MermaidDiagram, Tool
from core.services.rich_text import blocks_to_markdown


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida.

    Por qué aquí:
    - Evita dependencias circulares (main <-> doctor).
    - Permite desactivar banner en modos no interactivos.
    """

    title = Text("WORKFORCE AI", style="bold cyan")
    subtitle = Text("AI employees • Tools • Approvals", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def _tool_body(message: ChatMessage) -> object | None:
    output = message.tool_output
    if output is None:
        return None
    data = output.data
    if isinstance(data, CodeSnippet):
        return Syntax(data.code, data.language or "text", word_wrap=True)
    if isinstance(data, MermaidDiagram):
        return Syntax(data.source, "text", word_wrap=True)
    if isinstance(data, KanbanBoard):
        table = Table(show_header=True)
        for column in data.columns:
            table.add_column(column.title)
        depth = max((len(c.tasks) for c in data.columns), default=0)
        for i in range(depth):
            table.add_row(*(c.tasks[i].content if i < len(c.tasks) else "" for c in data.columns))
        return table
    if output.tool is Tool.DOCUMENT:
        return Markdown(blocks_to_markdown(data.content))
    return Text(f"[{output.tool.value}]", style="dim")


def build_message_panel(message: ChatMessage) -> Panel:
    """Panel para un mensaje del modelo (texto + herramienta)."""

    author = message.employee_name or ("You" if message.role == "user" else "AI")
    parts: list[object] = [Markdown(message.text or "")]
    body = _tool_body(message)
    if body is not None:
        parts.append(body)
    if message.generated_image_base64:
        parts.append(Text("(image generated; use --export-dir to save it)", style="dim"))
    style = "green" if message.role == "user" else "cyan"
    return Panel(Group(*parts), title=Text(author, style=f"bold {style}"), border_style=style)


def build_proposal_panel(proposal: Proposal) -> Panel:
    output = proposal.tool_output
    body = Text()
    body.append(output.text.strip() + "\n\n")
    for key, value in output.data.model_dump(exclude_none=True, by_alias=True).items():
        body.append(f"{key}: ", style="bold")
        body.append(f"{value}\n")
    title = Text(f"Proposed change • {output.tool.value}", style="bold yellow")
    return Panel(body, title=title, border_style="yellow")


def build_hiring_table(proposals: Sequence[HiringProposal]) -> Table:
    table = Table(title="Hiring Proposals")
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Job Profile", style="white")
    table.add_column("Team", style="magenta")
    table.add_column("Reasoning", style="dim")
    for i, p in enumerate(proposals, start=1):
        team = p.team_name + (" (new)" if p.team_description else "")
        table.add_row(str(i), p.employee_name, p.job_profile, team, p.reasoning)
    return table


def build_structure_table(structure: InitialStructureProposal) -> Table:
    table = Table(title="Proposed Structure")
    table.add_column("Team", style="magenta")
    table.add_column("Employee", style="cyan")
    table.add_column("Job Profile", style="white")
    for team in structure.teams:
        if not team.employees:
            table.add_row(team.name, "-", "-")
        for i, employee in enumerate(team.employees):
            table.add_row(team.name if i == 0 else "", employee.name, employee.job_profile)
    return table


def build_assets_table(assets: Sequence[SoftwareAsset]) -> Table:
    table = Table(title="Software Assets")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Type", style="white")
    table.add_column("Seats", justify="right")
    table.add_column("Cost", justify="right", style="green")
    table.add_column("Renewal", style="magenta")
    table.add_column("Assigned To", style="dim")
    for a in assets:
        table.add_row(
            a.name,
            a.type,
            str(a.seats),
            f"{a.cost:,.2f}/{a.cost_frequency}",
            a.renewal_date.isoformat() if a.renewal_date else "-",
            a.assigned_to,
        )
    return table


def build_holidays_table(holidays: Sequence[PublicHoliday], *, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Date", style="magenta", no_wrap=True)
    table.add_column("Local Name", style="cyan")
    table.add_column("Name", style="white")
    for h in holidays:
        table.add_row(h.date.isoformat(), h.local_name, h.name)
    return table

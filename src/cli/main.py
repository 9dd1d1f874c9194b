"""CLI principal (Typer).

Driver delgado sobre los servicios: carga un snapshot JSON del workspace,
invoca `AIService` y muestra el resultado con Rich. Las propuestas de cambio
se confirman de forma interactiva antes de tocar el workspace.
"""

from __future__ import annotations

import asyncio
import base64
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

import httpx
import typer
from rich.console import Console

from adapters.ai_client import OpenAICompatibleChatModel
from adapters.document_exporter import export_blocks, export_tool_output, find_unique_file_name
from adapters.holiday_client import HolidayClient
from adapters.profile_store import ProfileStore
from adapters.rest_store import RestDataStore
from adapters.workspace_loader import (
    WorkspaceFormatError,
    is_app_export,
    load_workspace,
    load_workspace_from_store,
    save_workspace,
    save_workspace_to_store,
)
from cli import doctor
from cli.ui_components import (
    build_assets_table,
    build_hiring_table,
    build_holidays_table,
    build_message_panel,
    build_proposal_panel,
    build_structure_table,
    print_banner,
)
from core.config import ENV_PREFIX, AppSettings
from core.domain.chat import ChatMessage
from core.domain.models import Employee, MeetingMinute, Workspace, utcnow
from core.domain.tools import FILE_TOOLS, PROPOSAL_TOOLS
from core.errors import ServiceError
from core.log_setup import configure_logging
from core.services.ai_service import AIService, BrainstormReply, ChatTurn
from core.services.asset_manager import apply_asset_action
from core.services.context_builder import build_chat_system_prompt
from core.services.proposal_workflow import approve_and_commit
from core.services.tool_grammar import tools_for_job_profile
from core.services.usage import UsageTracker

app = typer.Typer(no_args_is_help=True, help="Run a company staffed by AI employees from the terminal.")
app.add_typer(doctor.app, name="doctor")

_console = Console()

WorkspaceOption = typer.Option(
    None, "--workspace", "-w", exists=True, dir_okay=False, help="Workspace JSON snapshot or app export."
)
CompanyOption = typer.Option(
    None, "--company", "-c", help="Company id or name, picked from an export file or from the configured store."
)


@app.callback()
def _main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    no_banner: bool = typer.Option(False, "--no-banner", help="Do not print the banner."),
) -> None:
    settings = AppSettings()
    configure_logging("DEBUG" if verbose else settings.log_level)
    if not no_banner:
        print_banner(_console)


# -- Helpers ------------------------------------------------------------------


def _service(settings: AppSettings) -> AIService:
    try:
        return AIService(OpenAICompatibleChatModel.from_settings(settings))
    except RuntimeError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _employee(workspace: Workspace, name_or_id: str) -> Employee:
    employee = workspace.find_employee(name_or_id)
    if employee is None:
        raise typer.BadParameter(f"Employee {name_or_id!r} not found in workspace {workspace.company.name!r}")
    return employee


@dataclass
class _WorkspaceSource:
    """Destino de escritura del workspace al terminar un comando."""

    path: Optional[Path] = None
    store: Optional[RestDataStore] = None
    loaded: Optional[Workspace] = None

    def save(self, workspace: Workspace) -> None:
        if self.store is None:
            if self.path is not None:
                save_workspace(workspace, self.path)
            return
        try:
            asyncio.run(save_workspace_to_store(self.store, workspace, self.loaded))
        except httpx.HTTPError as exc:
            _console.print(f"[red]Could not save the workspace to the store: {exc}[/red]")
            raise typer.Exit(code=1) from exc


def _open_workspace(
    settings: AppSettings,
    path: Optional[Path],
    company: Optional[str],
) -> tuple[Workspace, _WorkspaceSource]:
    """Lee el workspace de `--workspace` o, si no se pasa, del store configurado."""

    try:
        if path is not None:
            workspace = load_workspace(path, company)
            target = path
            if is_app_export(path):
                # La exportación multiempresa nunca se sobrescribe con una sola empresa.
                target = path.with_name(f"{path.stem}.{workspace.company.id}.json")
            return workspace, _WorkspaceSource(path=target)
        if settings.store_url:
            store = RestDataStore(settings)
            workspace = asyncio.run(load_workspace_from_store(store, company))
            return workspace, _WorkspaceSource(store=store, loaded=workspace.model_copy(deep=True))
    except (WorkspaceFormatError, httpx.HTTPError) as exc:
        _console.print(f"[red]Could not load the workspace: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    raise typer.BadParameter(f"Pass --workspace or configure {ENV_PREFIX}STORE_URL.")


def _currency(settings: AppSettings) -> str:
    profile = ProfileStore().load_or_create_guest()
    return profile.settings.currency or settings.default_currency


def _tracker(settings: AppSettings) -> UsageTracker:
    return UsageTracker(settings.default_daily_request_limit, settings.global_request_limit)


def _track(tracker: UsageTracker, workspace: Workspace, calls: int = 1) -> None:
    company = workspace.company
    if not tracker.is_available(company):
        _console.print(f"[yellow]{company.name} is over its daily AI request budget; requests are not blocked.[/yellow]")
    for _ in range(calls):
        company = tracker.record(company)
    workspace.company = company


def _run(coro):
    try:
        return asyncio.run(coro)
    except ServiceError as exc:
        _console.print(f"[red]{exc.user_message}[/red]")
        raise typer.Exit(code=1) from exc


def _save_image(b64: str, export_dir: Path, stem: str) -> Path:
    export_dir.mkdir(parents=True, exist_ok=True)
    name = find_unique_file_name(f"{stem}.png", (p.name for p in export_dir.iterdir()))
    path = export_dir / name
    path.write_bytes(base64.b64decode(b64))
    return path


def _handle_turn(
    turn: ChatTurn,
    workspace: Workspace,
    *,
    currency: str,
    export_dir: Optional[Path],
) -> None:
    """Muestra el turno y aplica los efectos que el usuario confirme."""

    for message in turn.messages:
        _console.print(build_message_panel(message))
        if message.generated_image_base64 and export_dir:
            path = _save_image(message.generated_image_base64, export_dir, "generated_image")
            _console.print(f"[green]Image saved:[/green] {path}")
        output = message.tool_output
        if output and export_dir and output.tool in FILE_TOOLS:
            path = export_tool_output(output, export_dir)
            _console.print(f"[green]File saved:[/green] {path}")

    if turn.document is not None:
        if typer.confirm(f"Save draft document {turn.document.name!r} to the project?", default=True):
            workspace.files.append(turn.document)

    proposal = turn.proposal
    if proposal is not None:
        _console.print(build_proposal_panel(proposal))
        if typer.confirm("Approve this change?", default=False):
            result = approve_and_commit(proposal, workspace, currency=currency)
            if result.confirmation:
                _console.print(f"[green]{result.confirmation}[/green]")
        else:
            proposal.reject()
            _console.print("[dim]Proposal rejected.[/dim]")


# -- Commands -------------------------------------------------------------------


@app.command()
def chat(
    employee: str = typer.Argument(..., help="Employee name or id."),
    workspace_path: Optional[Path] = WorkspaceOption,
    company: Optional[str] = CompanyOption,
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project id for project chats."),
    include_plan: bool = typer.Option(False, "--include-plan", help="Include phases and budget in the context."),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Send one message and exit."),
    export_dir: Optional[Path] = typer.Option(None, "--export-dir", help="Where to save generated files/images."),
    save: bool = typer.Option(True, "--save/--no-save", help="Write changes back to the workspace source."),
) -> None:
    """Chat with one AI employee (tools and approvals included)."""

    settings = AppSettings()
    workspace, source = _open_workspace(settings, workspace_path, company)
    persona = _employee(workspace, employee)
    service = _service(settings)
    tracker = _tracker(settings)
    currency = _currency(settings)

    async def loop() -> None:
        history: list[ChatMessage] = []
        while True:
            if message is not None:
                text = message
            else:
                text = typer.prompt(f"You → {persona.name} (empty to quit)", default="", show_default=False)
            if not text.strip():
                return
            history.append(ChatMessage.from_user(text))
            try:
                turn = await service.chat_with_employee(
                    workspace,
                    persona,
                    history,
                    project_id=project,
                    include_plan=include_plan,
                    currency=currency,
                )
            except ServiceError as exc:
                _console.print(f"[red]{exc.user_message}[/red]")
                history.pop()
            else:
                _track(tracker, workspace, calls=turn.model_calls)
                history.extend(m for m in turn.messages if m.generated_image_base64 is None)
                _handle_turn(turn, workspace, currency=currency, export_dir=export_dir)
            if message is not None:
                return

    asyncio.run(loop())
    if save:
        source.save(workspace)


@app.command()
def brainstorm(
    workspace_path: Optional[Path] = WorkspaceOption,
    company: Optional[str] = CompanyOption,
    participants: list[str] = typer.Option(..., "--participant", "-e", help="Employee name or id (repeatable)."),
    topic: str = typer.Option(..., "--topic", "-t", help="Meeting topic."),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project id for context."),
    minutes: bool = typer.Option(True, "--minutes/--no-minutes", help="Save meeting minutes to the project."),
) -> None:
    """Group session: every participant answers each message concurrently."""

    settings = AppSettings()
    workspace, source = _open_workspace(settings, workspace_path, company)
    members = [_employee(workspace, p) for p in participants]
    service = _service(settings)
    tracker = _tracker(settings)
    project_obj = workspace.get_project(project)

    def show(reply: BrainstormReply) -> None:
        _console.print(build_message_panel(reply.to_message()))

    async def session() -> None:
        history: list[ChatMessage] = [ChatMessage.from_user(f"Let's brainstorm about: {topic}")]
        while True:
            replies = await service.get_brainstorm_responses(
                history,
                members,
                workspace.company,
                show,
                project=project_obj,
                client=workspace.get_client(project_obj.client_id) if project_obj else None,
                minutes=workspace.minutes_for(project_obj.id) if project_obj else (),
                files=workspace.files_for(project_obj.id) if project_obj else (),
            )
            _track(tracker, workspace, calls=len(replies))
            history.extend(r.to_message() for r in replies if r.status == "fulfilled")
            text = typer.prompt("You (empty to end the session)", default="", show_default=False)
            if not text.strip():
                break
            history.append(ChatMessage.from_user(text))

        if not minutes or project_obj is None:
            return
        try:
            summary = await service.summarize_brainstorm_session(history, topic, members, workspace.company.profile)
        except ServiceError as exc:
            _console.print(f"[red]{exc.user_message}[/red]")
            return
        _track(tracker, workspace)
        now = utcnow()
        workspace.meeting_minutes.append(
            MeetingMinute(
                id=f"min_{now.strftime('%Y%m%d%H%M%S%f')}",
                project_id=project_obj.id,
                title=summary.title,
                content=summary.content,
                timestamp=now,
            )
        )
        _console.print(build_message_panel(ChatMessage.from_model(summary.content, employee_name=summary.title)))

    asyncio.run(session())
    source.save(workspace)


@app.command()
def hire(
    need: str = typer.Argument(..., help="Hiring need in plain words."),
    workspace_path: Optional[Path] = WorkspaceOption,
    company: Optional[str] = CompanyOption,
) -> None:
    """Ask the HR specialist for up to three candidate proposals."""

    settings = AppSettings()
    workspace, source = _open_workspace(settings, workspace_path, company)
    service = _service(settings)
    proposals = _run(
        service.get_hiring_proposals(
            workspace.company.profile,
            workspace.teams,
            workspace.employees,
            workspace.clients,
            need,
        )
    )
    _track(_tracker(settings), workspace)
    source.save(workspace)
    _console.print(build_hiring_table(proposals))


@app.command()
def structure(profile: str = typer.Argument(..., help="Company profile text.")) -> None:
    """Propose the initial teams and employees for a new company."""

    service = _service(AppSettings())
    result = _run(service.get_initial_structure_proposal(profile))
    _console.print(build_structure_table(result))


@app.command()
def assets(
    command: str = typer.Argument(..., help="Instruction for the asset manager."),
    workspace_path: Optional[Path] = WorkspaceOption,
    company: Optional[str] = CompanyOption,
) -> None:
    """Talk to the asset manager; add/update/remove are applied to the workspace."""

    settings = AppSettings()
    workspace, source = _open_workspace(settings, workspace_path, company)
    service = _service(settings)
    action = _run(service.get_asset_manager_response(command, workspace.assets))
    _track(_tracker(settings), workspace)
    result = apply_asset_action(action, workspace.assets, workspace.company.id)
    _console.print(build_message_panel(ChatMessage.from_model(result.response_text, employee_name="Asset Manager")))
    if result.changed:
        workspace.assets = result.assets
        _console.print(build_assets_table(workspace.assets))
    source.save(workspace)


@app.command()
def report(
    project: str = typer.Argument(..., help="Project id."),
    workspace_path: Optional[Path] = WorkspaceOption,
    company: Optional[str] = CompanyOption,
    output: Path = typer.Option(Path("reports/project_report.pdf"), "--output", "-o", help=".pdf or .html"),
) -> None:
    """Generate and export a project completion report."""

    settings = AppSettings()
    workspace, source = _open_workspace(settings, workspace_path, company)
    project_obj = workspace.get_project(project)
    if project_obj is None:
        raise typer.BadParameter(f"Project {project!r} not found")
    service = _service(settings)
    blocks = _run(
        service.generate_project_completion_report(
            project_obj,
            workspace.phases_for(project_obj.id),
            workspace.get_budget(project_obj.id),
            workspace.expenses_for(project_obj.id),
            [t for t in workspace.tasks if t.project_id == project_obj.id],
            workspace.minutes_for(project_obj.id),
        )
    )
    _track(_tracker(settings), workspace)
    source.save(workspace)
    title = f"Project Completion Report: {project_obj.name}"
    try:
        path = export_blocks(title=title, blocks=blocks, output_path=output)
    except OSError as exc:
        fallback = output.with_suffix(".html")
        _console.print(f"[yellow]PDF export failed ({exc}); writing HTML instead.[/yellow]")
        path = export_blocks(title=title, blocks=blocks, output_path=fallback)
    _console.print(f"[green]Report saved:[/green] {path}")


@app.command()
def holidays(
    year: int = typer.Argument(..., help="Year, e.g. 2025."),
    country: Optional[str] = typer.Argument(None, help="ISO 3166-1 alpha-2 code; defaults to the profile's country."),
) -> None:
    """List public holidays for a country."""

    settings = AppSettings()
    country = country or ProfileStore().load_or_create_guest().settings.country
    result = asyncio.run(HolidayClient(settings).get_public_holidays(year, country))
    if not result:
        _console.print("[dim]No holidays found (or no country configured).[/dim]")
        return
    _console.print(build_holidays_table(result, title=f"Public holidays {year} • {country.upper()}"))


@app.command()
def prompt(
    employee: str = typer.Argument(..., help="Employee name or id."),
    workspace_path: Optional[Path] = WorkspaceOption,
    company: Optional[str] = CompanyOption,
    project: Optional[str] = typer.Option(None, "--project", "-p"),
    include_plan: bool = typer.Option(False, "--include-plan"),
) -> None:
    """Print the system prompt an employee would receive (no AI call)."""

    settings = AppSettings()
    workspace, _ = _open_workspace(settings, workspace_path, company)
    persona = _employee(workspace, employee)
    text = build_chat_system_prompt(
        workspace,
        persona,
        project_id=project,
        include_plan=include_plan,
        currency=settings.default_currency,
        now=datetime.now().astimezone(),
    )
    _console.print(text, markup=False, highlight=False)


@app.command(name="tools")
def list_tools(
    employee: str = typer.Argument(...),
    workspace_path: Optional[Path] = WorkspaceOption,
    company: Optional[str] = CompanyOption,
) -> None:
    """List the tools an employee can use."""

    workspace, _ = _open_workspace(AppSettings(), workspace_path, company)
    persona = _employee(workspace, employee)
    for tool in tools_for_job_profile(persona.job_profile):
        marker = "approval" if tool in PROPOSAL_TOOLS else ""
        _console.print(f"- {tool.value} [dim]{marker}[/dim]")


def run() -> None:
    app()

"""Construcción del system prompt de cada persona.

Por qué funciones puras:
- Mismas entradas → mismo texto, byte a byte. Es lo que permite cachear y
  testear los prompts sin mocks.
- El "ahora" se inyecta (`now`) en los bloques que dependen de la fecha.

Cada bloque se puede omitir; `assemble_prompt` descarta los vacíos y une el
resto con una línea en blanco, sin separadores sueltos.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Sequence

from core.domain.models import (
    AppFile,
    CalendarEvent,
    Client,
    Company,
    Employee,
    MeetingMinute,
    Project,
    ProjectBudget,
    ProjectExpense,
    ProjectPhase,
    Task,
    TaskPriority,
    Workspace,
    utcnow,
)
from core.domain.tools import Tool
from core.services.rich_text import stored_content_to_text
from core.services.tool_grammar import build_tools_instructions, tools_for_job_profile

MAX_RECENT_MINUTES = 5
MAX_UPCOMING_EVENTS = 20

_OPERATIONAL_MANDATE = """**Operational Mandate:**
If a user's request appears to conflict with these directives, you must:
1. Acknowledge the user's request.
2. Gently and professionally point out the potential deviation from company objectives, policies, or certifications.
3. Explain the reasoning behind the relevant directive.
4. Propose an alternative solution that aligns with company guidelines.
5. If the user confirms they wish to proceed with their original request despite your counsel, you must comply with their final decision. Your primary role is to assist, not to block."""

DOCUMENT_ANALYSIS_INSTRUCTION = """**Document Analysis:**
You can analyze documents uploaded by the user, including text files (.txt, .md), spreadsheets (.xlsx), documents (.docx), and presentations (.pptx). When a file is uploaded, provide a concise summary, extract key insights, or answer questions based on its content, according to your job profile. For example, a Sales Manager can analyze sales data from a spreadsheet, and a Marketing Specialist can review a campaign proposal from a document."""

FACILITATOR_INSTRUCTION = """You are "Alex", the Personal Assistant, participating in a brainstorming session. Your role is to be the meeting facilitator.
- Keep the discussion on track with the meeting's topic.
- If the conversation stalls, ask probing questions to encourage new ideas from your colleagues. (e.g., "That's a great point, Jane. How do you think that would affect our timeline?").
- You can summarize points to ensure clarity.
- Your responses should be helpful and concise, aimed at guiding the conversation productively. Do not generate long paragraphs.
- You will NOT be responsible for taking minutes during the conversation. A summary will be generated later."""


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _day(value: datetime) -> str:
    return _as_utc(value).strftime("%Y-%m-%d")


def _amount(value: float) -> str:
    """Número con separador de miles y sin ceros decimales sobrantes."""

    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}".rstrip("0").rstrip(".")


def assemble_prompt(blocks: Iterable[str]) -> str:
    return "\n\n".join(block.strip() for block in blocks if block and block.strip())


# -- Empresa y proyecto -------------------------------------------------------


def build_company_context(company: Company) -> str:
    if not company.has_directives:
        return f'**Company Context:**\nCompany Profile: "{company.profile}"'

    parts = [f"- **Company Profile:** {company.profile}"]
    if company.objectives:
        parts.append(f"- **Objectives:**\n{company.objectives}")
    if company.policies:
        parts.append(f"- **Policies:**\n{company.policies}")
    if company.certifications:
        parts.append(f"- **Certifications:**\n{company.certifications}")

    return (
        "**Company-Wide Directives:**\n"
        "You must operate within the following company framework.\n"
        + "\n\n".join(parts)
        + "\n\n"
        + _OPERATIONAL_MANDATE
    )


def build_project_context(project: Project, client: Client | None = None) -> str:
    client_line = f'\n**Client:** This project is for "{client.name}".' if client else ""
    return (
        "---\n"
        "**CURRENT PROJECT CONTEXT:**\n"
        f'You are currently working on the "{project.name}" project.{client_line}\n'
        f'**Project Description:** "{project.description}"\n'
        "All your responses should be within the context of this project.\n"
        "---"
    )


def build_project_phases_context(phases: Sequence[ProjectPhase]) -> str:
    if not phases:
        return "---\n**PROJECT TIMELINE:**\nThis project currently has no planned phases.\n---"
    phase_list = "\n".join(
        f"- **{p.name}** (ID: `{p.id}`) ({p.status}): From {_day(p.start_date)} to {_day(p.end_date)}"
        for p in phases
    )
    return (
        "---\n"
        "**PROJECT TIMELINE & PHASE IDs:**\n"
        "This is the current timeline for the project. **You MUST use the provided ID when targeting a "
        "specific phase for an update or deletion.**\n"
        f"{phase_list}\n"
        "---"
    )


def build_project_budget_context(
    budget: ProjectBudget | None,
    expenses: Sequence[ProjectExpense],
    currency: str,
) -> str:
    total_spent = sum(e.amount for e in expenses)
    lines = [
        "---",
        f"**PROJECT BUDGET (in {currency}):**",
    ]
    if budget:
        lines.append(f"- Total Budget: {_amount(budget.total_budget)} {currency}")
    else:
        lines.append("- No budget has been set for this project yet.")
    lines.append(f"- Total Spent So Far: {_amount(total_spent)} {currency}")
    if budget:
        lines.append(f"- Remaining Budget: {_amount(budget.total_budget - total_spent)} {currency}")
    lines.append("---")
    return "\n".join(lines)


def build_meeting_minutes_context(minutes: Sequence[MeetingMinute]) -> str:
    """Las cinco actas más recientes, de la más nueva a la más antigua."""

    if not minutes:
        return ""
    recent = sorted(minutes, key=lambda m: _as_utc(m.timestamp), reverse=True)[:MAX_RECENT_MINUTES]
    body = "\n\n---\n\n".join(
        f"### Meeting on {_day(m.timestamp)}: {m.title}\n{m.content}".strip() for m in recent
    )
    return (
        "---\n"
        "**RECENT MEETING MINUTES SUMMARY:**\n"
        "You have access to the minutes from recent meetings for this project. Use this information to "
        "inform your responses, maintain continuity, and understand past decisions.\n"
        f"{body}\n"
        "---"
    )


# -- Plantilla de personas ------------------------------------------------------


def build_employee_roster(employees: Sequence[Employee]) -> str:
    others = [e for e in employees if not e.is_personal_assistant]
    if not others:
        return "**Company Employee Roster:**\nThere are currently no other employees in the company."
    employee_list = "\n".join(f"- **{e.name}** ({e.job_profile}) | ID: `{e.id}`" for e in others)
    return (
        "**Company Employee Roster:**\n"
        "This is the current list of employees in the company, along with their unique IDs. You can "
        "collaborate with them on tasks outside your expertise using the Collaboration tool.\n"
        f"{employee_list}"
    )


def build_brainstorm_roster(employees: Sequence[Employee], self_employee: Employee) -> str:
    others = [e for e in employees if e.id != self_employee.id]
    if others:
        employee_list = "\n".join(f"- {e.name} ({e.job_profile})" for e in others)
    else:
        employee_list = "You are in this brainstorming session alone."
    return (
        "---\n"
        "**GROUP BRAINSTORMING SESSION**\n"
        "You are part of a group chat with your colleagues. The user can see messages from everyone.\n"
        f"You are **{self_employee.name}**.\n"
        "Your colleagues in this chat are:\n"
        f"{employee_list}\n"
        "---"
    )


# -- Visión global del asistente personal ------------------------------------


def build_all_clients_context(clients: Sequence[Client]) -> str:
    if not clients:
        return (
            "---\n**ALL COMPANY CLIENTS:**\n"
            "There are currently no clients registered with the company.\n---"
        )
    client_list = "\n".join(f"- **{c.name}**: Status: {c.status} (ID: `{c.id}`)" for c in clients)
    return f"---\n**ALL COMPANY CLIENTS:**\nThis is a list of all company clients.\n{client_list}\n---"


def build_all_projects_context(projects: Sequence[Project], clients: Sequence[Client]) -> str:
    if not projects:
        return (
            "---\n**ALL COMPANY PROJECTS:**\n"
            "There are currently no active projects in the company.\n---"
        )
    client_names = {c.id: c.name for c in clients}
    lines = []
    for p in projects:
        client_name = client_names.get(p.client_id) if p.client_id else None
        owner = f"for {client_name}" if client_name else "Internal Project"
        lines.append(f"- **{p.name} ({owner}) (ID: `{p.id}`)**: {p.description}")
    return (
        "---\n**ALL COMPANY PROJECTS:**\n"
        "This is a list of all projects within the company. You have full awareness of them.\n"
        + "\n".join(lines)
        + "\n---"
    )


def build_all_meeting_minutes_context(minutes: Sequence[MeetingMinute], projects: Sequence[Project]) -> str:
    if not minutes:
        return (
            "---\n**ALL MEETING MINUTES:**\n"
            "There are no meeting minutes recorded for any project yet.\n---"
        )
    by_project: dict[str, list[MeetingMinute]] = defaultdict(list)
    for minute in minutes:
        by_project[minute.project_id].append(minute)

    project_names = {p.id: p.name for p in projects}
    sections = []
    for project_id, project_minutes in by_project.items():
        name = project_names.get(project_id, f"Unknown Project (ID: {project_id})")
        recent = sorted(project_minutes, key=lambda m: _as_utc(m.timestamp), reverse=True)[:MAX_RECENT_MINUTES]
        titles = "\n".join(f'  - "{m.title}" on {_day(m.timestamp)}' for m in recent)
        sections.append(f"- **Project: {name}**\n{titles}")

    return (
        "---\n**ALL MEETING MINUTES:**\n"
        "This is a summary of the most recent meeting minutes across all projects. You have full awareness "
        "of all of them, including their full content.\n"
        + "\n\n".join(sections)
        + "\n---"
    )


def build_all_events_context(events: Sequence[CalendarEvent], now: datetime) -> str:
    """Próximos eventos (hasta 20) cuyo fin no ha pasado respecto a `now`."""

    now = _as_utc(now)
    upcoming = sorted(
        (e for e in events if _as_utc(e.end) >= now),
        key=lambda e: _as_utc(e.start),
    )[:MAX_UPCOMING_EVENTS]
    if not upcoming:
        return (
            "---\n**COMPANY CALENDAR:**\n"
            "The company calendar has no upcoming events. You are still aware of all past events.\n---"
        )
    event_list = "\n".join(
        f"- **{e.title}** ({e.type}) on {_day(e.start)} at {_as_utc(e.start).strftime('%I:%M %p')}"
        for e in upcoming
    )
    return (
        "---\n**COMPANY CALENDAR:**\n"
        "You have access to the entire company calendar. Here is a summary of upcoming events.\n"
        f"{event_list}\n---"
    )


def calculate_task_priority(task: Task, now: datetime) -> TaskPriority:
    if task.due_date is None:
        return "Low"
    hours_until_due = (_as_utc(task.due_date) - _as_utc(now)).total_seconds() / 3600
    if hours_until_due <= 0:
        return "Urgent"
    if hours_until_due <= 48:
        return "High"
    if hours_until_due <= 14 * 24:
        return "Medium"
    return "Low"


def build_all_tasks_context(
    tasks: Sequence[Task],
    employees: Sequence[Employee],
    projects: Sequence[Project],
    now: datetime,
) -> str:
    if not tasks:
        return (
            "---\n**ALL COMPANY TASKS:**\n"
            "There are currently no tasks on the company task board.\n---"
        )
    employee_names = {e.id: e.name for e in employees}
    project_names = {p.id: p.name for p in projects}
    task_list = "\n".join(
        f"- **{t.title}** (ID: `{t.id}`): Status: '{t.status}', "
        f"Priority: '{calculate_task_priority(t, now)}', "
        f"Project: '{project_names.get(t.project_id, 'N/A')}', "
        f"Assignee: '{employee_names.get(t.assignee_id, 'Unassigned')}'"
        for t in tasks
    )
    return (
        "---\n**ALL COMPANY TASKS:**\n"
        "This is a list of all tasks on the company task board. You have full awareness of them.\n"
        f"{task_list}\n---"
    )


# -- Ficheros y tono -------------------------------------------------------------


def _file_text(file: AppFile) -> str:
    if file.type == "folder":
        return f'[This is a folder named "{file.name}".]'
    mime = file.mime_type
    if not mime or mime == "application/json" or mime.startswith("text/"):
        return stored_content_to_text(file.content, mime)
    if mime.startswith("image/"):
        return f'[This is an image file named "{file.name}". Its content cannot be displayed here.]'
    return f'[Content for file "{file.name}" is not available in a readable format.]'


def build_files_context(files: Sequence[AppFile]) -> str:
    active = [f for f in files if not f.is_archived]
    if not active:
        return ""
    contents = "\n\n".join(
        f"--- FILE START: {f.name} ---\n{_file_text(f)}\n--- FILE END: {f.name} ---" for f in active
    )
    return (
        "---\n**RELEVANT FILES:**\n"
        "The following files and their contents are associated with the current project or client. You "
        "MUST use this information as context for your responses.\n\n"
        f"{contents}\n---"
    )


def build_morale_instruction(morale: int) -> str:
    return (
        "**Morale-Based Interaction Style:**\n"
        f"Your current morale is {morale}/100. This affects your communication style but NOT your competence.\n"
        "- High Morale (75-100): You are proactive, enthusiastic, and offer creative suggestions.\n"
        "- Standard Morale (25-74): You are professional and direct in your responses.\n"
        "- Low Morale (0-24): You are brief, more literal, and less conversational. You get the job done "
        "without extra flair."
    )


def build_current_focus(project: Project) -> str:
    return (
        "---\n**CURRENT FOCUS:**\n"
        f'The current conversation is specifically about the "{project.name}" project. Please prioritize this '
        "context in your immediate response, but use your knowledge of all other company data for broader "
        "insights and connections.\n---"
    )


# -- Ensamblado --------------------------------------------------------------------


@dataclass(frozen=True)
class PersonaContext:
    """Todo lo que ve una persona en una conversación.

    `phases`/`budget` solo se incluyen cuando `include_plan` está activo
    (chat dentro de la vista de planificación del proyecto).
    """

    employee: Employee
    company: Company
    project: Project | None = None
    client: Client | None = None
    include_plan: bool = False
    phases: Sequence[ProjectPhase] = ()
    budget: ProjectBudget | None = None
    expenses: Sequence[ProjectExpense] = ()
    currency: str = "USD"
    minutes: Sequence[MeetingMinute] = ()
    files: Sequence[AppFile] = ()
    roster: Sequence[Employee] = ()
    brainstorm: bool = False
    tools: Sequence[Tool] | None = field(default=None)

    @classmethod
    def from_workspace(
        cls,
        workspace: Workspace,
        employee: Employee,
        *,
        project_id: str | None = None,
        include_plan: bool = False,
        currency: str = "USD",
        **extra: object,
    ) -> "PersonaContext":
        project = workspace.get_project(project_id)
        return cls(
            employee=employee,
            company=workspace.company,
            project=project,
            client=workspace.get_client(project.client_id) if project else None,
            include_plan=include_plan and project is not None,
            phases=workspace.phases_for(project.id) if project else (),
            budget=workspace.get_budget(project.id) if project else None,
            expenses=workspace.expenses_for(project.id) if project else (),
            currency=currency,
            minutes=workspace.minutes_for(project.id) if project else (),
            files=workspace.files_for(project.id) if project else (),
            roster=workspace.employees,
            **extra,
        )

    def resolved_tools(self) -> list[Tool]:
        if self.tools is not None:
            return list(self.tools)
        return tools_for_job_profile(self.employee.job_profile)

    def roster_block(self) -> str:
        if self.brainstorm:
            return build_brainstorm_roster(self.roster, self.employee)
        return build_employee_roster(self.roster) if self.roster else ""


def build_persona_prompt(ctx: PersonaContext) -> str:
    """Prompt genérico en orden estable.

    persona → empresa → proyecto → presupuesto → actas → ficheros → plantilla
    → gramática de herramientas.
    """

    project_block = ""
    if ctx.project:
        project_block = build_project_context(ctx.project, ctx.client)
    plan_blocks = ("", "")
    if ctx.include_plan:
        plan_blocks = (
            build_project_phases_context(ctx.phases),
            build_project_budget_context(ctx.budget, ctx.expenses, ctx.currency),
        )
    return assemble_prompt(
        [
            ctx.employee.system_instruction,
            build_company_context(ctx.company),
            project_block,
            plan_blocks[0],
            plan_blocks[1],
            build_meeting_minutes_context(ctx.minutes),
            build_files_context(ctx.files),
            ctx.roster_block(),
            build_tools_instructions(ctx.resolved_tools()),
        ]
    )


def build_chat_system_prompt(
    workspace: Workspace,
    employee: Employee,
    *,
    project_id: str | None = None,
    include_plan: bool = False,
    currency: str = "USD",
    now: datetime | None = None,
) -> str:
    """Variante del chat uno-a-uno.

    Añade el tono según la moral y la nota de análisis de documentos. El
    asistente personal recibe además la visión global de la empresa y, si la
    conversación ocurre dentro de un proyecto, un bloque "CURRENT FOCUS".
    """

    now = now or utcnow()
    ctx = PersonaContext.from_workspace(
        workspace,
        employee,
        project_id=project_id,
        include_plan=include_plan,
        currency=currency,
    )
    blocks = [
        employee.system_instruction,
        build_morale_instruction(employee.morale),
        build_company_context(workspace.company),
        DOCUMENT_ANALYSIS_INSTRUCTION,
    ]
    if employee.is_personal_assistant:
        blocks += [
            build_employee_roster(workspace.employees),
            build_all_clients_context(workspace.clients),
            build_all_projects_context(workspace.projects, workspace.clients),
            build_all_tasks_context(workspace.tasks, workspace.employees, workspace.projects, now),
            build_all_meeting_minutes_context(workspace.meeting_minutes, workspace.projects),
            build_all_events_context(workspace.events, now),
            build_current_focus(ctx.project) if ctx.project else "",
        ]
    elif ctx.project:
        blocks += [
            build_project_context(ctx.project, ctx.client),
            build_meeting_minutes_context(ctx.minutes),
        ]
    if ctx.include_plan:
        blocks += [
            build_project_phases_context(ctx.phases),
            build_project_budget_context(ctx.budget, ctx.expenses, ctx.currency),
        ]
    blocks += [
        build_files_context(ctx.files),
        build_tools_instructions(ctx.resolved_tools()),
    ]
    return assemble_prompt(blocks)


def build_brainstorm_system_prompt(
    employee: Employee,
    participants: Sequence[Employee],
    company: Company,
    *,
    project: Project | None = None,
    client: Client | None = None,
    minutes: Sequence[MeetingMinute] = (),
    files: Sequence[AppFile] = (),
) -> str:
    """El asistente personal modera sin herramientas; el resto aporta ideas."""

    if employee.is_personal_assistant:
        return assemble_prompt(
            [
                FACILITATOR_INSTRUCTION,
                build_company_context(company),
                build_brainstorm_roster(participants, employee),
            ]
        )
    return build_persona_prompt(
        PersonaContext(
            employee=employee,
            company=company,
            project=project,
            client=client,
            minutes=minutes,
            files=files,
            roster=participants,
            brainstorm=True,
        )
    )

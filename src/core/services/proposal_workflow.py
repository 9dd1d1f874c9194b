"""Commit en dos fases de los cambios propuestos por una persona.

Ciclo de vida (ver `core.domain.proposals.Proposal`):
- `propose()` crea la propuesta a partir de un `ToolOutput` de Calendar,
  Create Task o Project Management.
- Solo una propuesta aprobada puede confirmarse; `commit()` aplica el cambio
  al `Workspace` y devuelve la frase de confirmación para el chat.

Por qué aquí y no en la UI:
- La salida del modelo nunca muta estado compartido directamente; este
  módulo es el único punto donde una propuesta toca el workspace.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from core.domain.models import CalendarEvent, ProjectBudget, ProjectExpense, ProjectPhase, Task, Workspace, utcnow
from core.domain.proposals import Proposal, ProposalStateError, ProposalStatus
from core.domain.tools import CalendarProposal, ProjectPlanChange, TaskProposal, Tool, ToolOutput

logger = logging.getLogger(__name__)

REMINDER_COLOR = "bg-yellow-500"
DEFAULT_EVENT_COLOR = "bg-purple-500"

_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "JPY": "¥", "INR": "₹"}
_PHASE_UPDATE_FIELDS = {"name", "description", "startDate", "endDate", "status"}


@dataclass(frozen=True)
class CommitResult:
    confirmation: str
    changed: bool


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def format_currency(amount: float, currency: str = "USD") -> str:
    symbol = _CURRENCY_SYMBOLS.get(currency.upper())
    body = f"{amount:,.2f}"
    return f"{symbol}{body}" if symbol else f"{currency.upper()} {body}"


def _parse_when(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def propose(
    tool_output: ToolOutput,
    *,
    proposed_by: str | None = None,
    project_id: str | None = None,
) -> Proposal:
    if not tool_output.is_proposal:
        raise ValueError(f"{tool_output.tool.value} does not propose a state change")
    return Proposal(tool_output=tool_output, proposed_by=proposed_by, project_id=project_id)


def needs_approval(tool_output: ToolOutput) -> bool:
    """Las consultas de Project Management no cambian nada y no se proponen."""

    if not tool_output.is_proposal:
        return False
    data = tool_output.data
    return not (isinstance(data, ProjectPlanChange) and data.action == "query")


# -- Aplicación por herramienta ---------------------------------------------


def _commit_calendar(data: CalendarProposal, workspace: Workspace, now: datetime) -> CommitResult:
    start, end = data.start, data.end
    if start is None or end is None:
        start = end = now
    event = CalendarEvent(
        id=_new_id("evt"),
        title=data.title,
        description=data.description or "",
        start=start,
        end=end,
        participant_ids=list(data.participant_ids),
        color=REMINDER_COLOR if data.type == "reminder" else DEFAULT_EVENT_COLOR,
        type=data.type,
    )
    workspace.events.append(event)
    return CommitResult(f'OK. I\'ve added "{data.title}" to the company calendar.', True)


def _commit_task(data: TaskProposal, workspace: Workspace) -> CommitResult:
    task = Task(
        id=_new_id("task"),
        project_id=data.project_id,
        assignee_id=data.assignee_id,
        title=data.title,
        description=data.description,
        priority=data.priority,
        due_date=data.due_date,
    )
    workspace.tasks.append(task)
    assignee = workspace.get_employee(data.assignee_id)
    assignee_name = assignee.name if assignee else "the designated employee"
    return CommitResult(f'Task "{data.title}" created and assigned to {assignee_name}.', True)


def _build_phase(raw: Any, project_id: str, now: datetime) -> ProjectPhase | None:
    if not isinstance(raw, dict):
        return None
    start = _parse_when(raw.get("startDate"))
    end = _parse_when(raw.get("endDate"))
    if not raw.get("name") or start is None or end is None:
        return None
    return ProjectPhase(
        id=_new_id("phase"),
        project_id=project_id,
        name=raw["name"],
        description=raw.get("description") or f"Phase created on {now.date().isoformat()}",
        start_date=start,
        end_date=end,
        status="Not Started",
    )


def _update_phase(workspace: Workspace, phase: ProjectPhase, updates: dict[str, Any]) -> bool:
    normalized = {to_camel(k): v for k, v in updates.items() if to_camel(k) in _PHASE_UPDATE_FIELDS}
    if not normalized:
        return False
    for key in ("startDate", "endDate"):
        if key in normalized:
            normalized[key] = _parse_when(normalized[key])
    try:
        updated = ProjectPhase.model_validate({**phase.model_dump(by_alias=True), **normalized})
    except ValidationError as exc:
        logger.info("Rejected phase update for %s: %s", phase.id, exc)
        return False
    index = workspace.phases.index(phase)
    workspace.phases[index] = updated
    return True


def _commit_project_plan(
    data: ProjectPlanChange,
    workspace: Workspace,
    project_id: str | None,
    currency: str,
    now: datetime,
) -> CommitResult:
    if project_id is None or workspace.get_project(project_id) is None:
        return CommitResult(
            "I can only manage project plans from within a project's dedicated chat. "
            "Please navigate to the specific project to make these changes.",
            False,
        )

    payload = data.payload
    action = data.action

    if action == "add_phase":
        phase = _build_phase(payload, project_id, now)
        if phase is None:
            return CommitResult(
                "I can't add a phase without a name, start date, and end date. Please provide more details.",
                False,
            )
        workspace.phases.append(phase)
        return CommitResult(f'New phase "{phase.name}" has been added to the project plan.', True)

    if action == "add_multiple_phases":
        if not isinstance(payload, list) or not payload:
            return CommitResult(
                "I couldn't add the new phases. The data seems to be missing or in the wrong format.",
                False,
            )
        phases = [p for p in (_build_phase(raw, project_id, now) for raw in payload) if p is not None]
        workspace.phases.extend(phases)
        return CommitResult(f"Successfully added {len(phases)} new phase(s) to the project plan.", bool(phases))

    if action in ("update_phase", "delete_phase"):
        phase_id = payload.get("phaseId") if isinstance(payload, dict) else None
        updates = payload.get("updates") if isinstance(payload, dict) else None
        if action == "update_phase" and (not phase_id or not isinstance(updates, dict)):
            return CommitResult(
                "I need to know which phase to update and what to change. Please be more specific.",
                False,
            )
        if action == "delete_phase" and not phase_id:
            return CommitResult("I need to know which phase to delete. Please specify the ID.", False)

        phase = next(
            (p for p in workspace.phases if p.id == phase_id and p.project_id == project_id),
            None,
        )
        verb = "update" if action == "update_phase" else "delete"
        if phase is None:
            return CommitResult(f'I\'m sorry, I couldn\'t find a phase with ID "{phase_id}" to {verb}.', False)
        if action == "delete_phase":
            workspace.phases.remove(phase)
            return CommitResult(f'Phase "{phase.name}" has been deleted from the project plan.', True)
        if not _update_phase(workspace, phase, updates):
            return CommitResult(
                "I need to know which phase to update and what to change. Please be more specific.",
                False,
            )
        return CommitResult(f'Phase "{phase.name}" has been successfully updated.', True)

    if action == "set_budget":
        total = payload.get("totalBudget") if isinstance(payload, dict) else None
        if not _is_number(total) or total < 0:
            return CommitResult("To set the budget, please provide a valid number.", False)
        budget = workspace.get_budget(project_id)
        if budget is None:
            workspace.budgets.append(
                ProjectBudget(project_id=project_id, total_budget=total, currency=currency)
            )
        else:
            budget.total_budget = float(total)
        return CommitResult(f"Project budget has been set to {format_currency(total, currency)}.", True)

    if action == "add_expense":
        amount = payload.get("amount") if isinstance(payload, dict) else None
        description = payload.get("description") if isinstance(payload, dict) else None
        if not _is_number(amount) or not description:
            return CommitResult(
                "To log an expense, please provide at least a description and an amount.",
                False,
            )
        workspace.expenses.append(
            ProjectExpense(
                id=_new_id("exp"),
                project_id=project_id,
                description=description,
                amount=amount,
                category=payload.get("category") or "Uncategorized",
                date=_parse_when(payload.get("date")) or now,
            )
        )
        return CommitResult(
            f'Expense of {format_currency(amount, currency)} for "{description}" has been logged.',
            True,
        )

    # "query" solo responde; no hay nada que confirmar.
    return CommitResult("", False)


def commit(
    proposal: Proposal,
    workspace: Workspace,
    *,
    currency: str = "USD",
    now: datetime | None = None,
) -> CommitResult:
    """Aplica una propuesta aprobada y la marca como confirmada."""

    if proposal.status is not ProposalStatus.APPROVED:
        raise ProposalStateError(f"cannot commit a proposal in state {proposal.status.value}")
    now = now or utcnow()
    output = proposal.tool_output
    data = output.data

    if output.tool is Tool.CALENDAR and isinstance(data, CalendarProposal):
        result = _commit_calendar(data, workspace, now)
    elif output.tool is Tool.CREATE_TASK and isinstance(data, TaskProposal):
        result = _commit_task(data, workspace)
    elif output.tool is Tool.PROJECT_MANAGEMENT and isinstance(data, ProjectPlanChange):
        result = _commit_project_plan(data, workspace, proposal.project_id, currency, now)
    else:
        raise ValueError(f"{output.tool.value} is not a committable tool")

    proposal.mark_committed(result.confirmation)
    logger.info("Committed proposal %s (%s): changed=%s", proposal.id, output.tool.value, result.changed)
    return result


def approve_and_commit(
    proposal: Proposal,
    workspace: Workspace,
    *,
    currency: str = "USD",
    now: datetime | None = None,
) -> CommitResult:
    proposal.approve()
    return commit(proposal, workspace, currency=currency, now=now)

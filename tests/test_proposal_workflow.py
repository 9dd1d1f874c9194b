"""Commit en dos fases de cambios propuestos por las personas."""

from __future__ import annotations

import pytest

from core.domain.proposals import ProposalStateError, ProposalStatus
from core.domain.tools import ToolOutput
from core.services.proposal_workflow import approve_and_commit, commit, format_currency, needs_approval, propose


def _output(tool: str, data) -> ToolOutput:
    return ToolOutput.model_validate({"tool": tool, "data": data, "text": "Please review."})


def _plan(action: str, payload=None) -> ToolOutput:
    return _output("Project Management", {"action": action, "payload": payload})


def test_proposal_lifecycle_calendar(workspace, now):
    proposal = propose(
        _output("Calendar", {"title": "Standup", "type": "reminder"}),
        proposed_by="emp_pa",
    )
    assert proposal.status is ProposalStatus.PROPOSED
    assert len(workspace.events) == 2

    result = approve_and_commit(proposal, workspace, now=now)

    assert proposal.status is ProposalStatus.COMMITTED
    assert result.confirmation == 'OK. I\'ve added "Standup" to the company calendar.'
    event = workspace.events[-1]
    assert event.start == now and event.end == now
    assert event.color == "bg-yellow-500"


def test_commit_requires_approval(workspace):
    proposal = propose(_output("Create Task", {"title": "Write tests"}))
    with pytest.raises(ProposalStateError):
        commit(proposal, workspace)
    assert all(t.title != "Write tests" for t in workspace.tasks)


def test_rejected_proposal_cannot_be_approved(workspace):
    proposal = propose(_output("Create Task", {"title": "Write tests"}))
    proposal.reject()
    with pytest.raises(ProposalStateError):
        proposal.approve()
    assert proposal.status is ProposalStatus.REJECTED


def test_task_confirmation_names_assignee(workspace):
    proposal = propose(_output("Create Task", {"title": "Fix login", "assigneeId": "emp_eng", "priority": "High"}))
    result = approve_and_commit(proposal, workspace)
    assert result.confirmation == 'Task "Fix login" created and assigned to Sam Lee.'
    assert workspace.tasks[-1].priority == "High"


def test_task_without_assignee(workspace):
    result = approve_and_commit(propose(_output("Create Task", {"title": "Triage"})), workspace)
    assert result.confirmation.endswith("assigned to the designated employee.")


def test_non_proposal_tool_cannot_be_proposed():
    with pytest.raises(ValueError):
        propose(_output("Code", {"language": "python", "code": "print(1)"}))


def test_project_query_needs_no_approval():
    assert needs_approval(_plan("query", {})) is False
    assert needs_approval(_plan("set_budget", {"totalBudget": 5})) is True


def test_plan_change_outside_project_is_refused(workspace):
    proposal = propose(_plan("set_budget", {"totalBudget": 5000}))
    result = approve_and_commit(proposal, workspace)
    assert result.changed is False
    assert result.confirmation.startswith("I can only manage project plans")


def test_set_budget_updates_existing(workspace):
    proposal = propose(_plan("set_budget", {"totalBudget": 15000}), project_id="proj_1")
    result = approve_and_commit(proposal, workspace, currency="USD")
    assert result.confirmation == "Project budget has been set to $15,000.00."
    assert workspace.get_budget("proj_1").total_budget == 15000


def test_set_budget_rejects_non_number(workspace):
    proposal = propose(_plan("set_budget", {"totalBudget": "lots"}), project_id="proj_1")
    result = approve_and_commit(proposal, workspace)
    assert result.changed is False
    assert result.confirmation == "To set the budget, please provide a valid number."


def test_add_multiple_phases_skips_invalid(workspace, now):
    payload = [
        {"name": "Design", "startDate": "2025-03-15", "endDate": "2025-03-30"},
        {"name": "Build", "startDate": "2025-04-01T00:00:00Z", "endDate": "2025-05-01T00:00:00Z"},
        {"name": "Broken"},
    ]
    proposal = propose(_plan("add_multiple_phases", payload), project_id="proj_1")
    result = approve_and_commit(proposal, workspace, now=now)
    assert result.confirmation == "Successfully added 2 new phase(s) to the project plan."
    assert [p.name for p in workspace.phases_for("proj_1")] == ["Discovery", "Design", "Build"]


def test_update_phase(workspace):
    proposal = propose(
        _plan("update_phase", {"phaseId": "phase_1", "updates": {"status": "Completed", "endDate": "2025-03-20"}}),
        project_id="proj_1",
    )
    result = approve_and_commit(proposal, workspace)
    assert result.confirmation == 'Phase "Discovery" has been successfully updated.'
    phase = workspace.phases_for("proj_1")[0]
    assert phase.status == "Completed"
    assert phase.end_date.day == 20


def test_delete_unknown_phase(workspace):
    proposal = propose(_plan("delete_phase", {"phaseId": "phase_x"}), project_id="proj_1")
    result = approve_and_commit(proposal, workspace)
    assert result.confirmation == 'I\'m sorry, I couldn\'t find a phase with ID "phase_x" to delete.'
    assert len(workspace.phases) == 1


def test_add_expense(workspace, now):
    proposal = propose(
        _plan("add_expense", {"description": "Hosting", "amount": 120.5, "category": "Software"}),
        project_id="proj_1",
    )
    result = approve_and_commit(proposal, workspace, currency="EUR", now=now)
    assert result.confirmation == 'Expense of €120.50 for "Hosting" has been logged.'
    assert workspace.expenses[-1].date == now


def test_format_currency_unknown_code():
    assert format_currency(10, "CHF") == "CHF 10.00"

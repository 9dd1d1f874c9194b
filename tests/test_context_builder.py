"""Tests del ensamblado de prompts por persona."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from core.domain.models import AppFile, Company, Task
from core.services.context_builder import (
    PersonaContext,
    assemble_prompt,
    build_all_events_context,
    build_all_tasks_context,
    build_brainstorm_system_prompt,
    build_chat_system_prompt,
    build_company_context,
    build_employee_roster,
    build_files_context,
    build_meeting_minutes_context,
    build_persona_prompt,
    build_project_budget_context,
    calculate_task_priority,
)


def test_assemble_prompt_drops_empty_blocks():
    assert assemble_prompt(["a", "", "  ", "b\n"]) == "a\n\nb"


def test_company_context_without_directives():
    company = Company(id="c", name="X", profile="We sell tea.")
    assert build_company_context(company) == '**Company Context:**\nCompany Profile: "We sell tea."'


def test_company_context_with_directives_includes_mandate():
    company = Company(id="c", name="X", profile="We sell tea.", policies="No overtime.")
    text = build_company_context(company)
    assert text.startswith("**Company-Wide Directives:**")
    assert "- **Policies:**\nNo overtime." in text
    assert "Objectives" not in text
    assert "**Operational Mandate:**" in text


def test_roster_excludes_personal_assistant(workspace):
    text = build_employee_roster(workspace.employees)
    assert "Alex" not in text
    assert "- **Sam Lee** (Software Engineer) | ID: `emp_eng`" in text


def test_roster_when_alone(assistant):
    assert "no other employees" in build_employee_roster([assistant])


def test_meeting_minutes_keeps_five_most_recent(workspace):
    text = build_meeting_minutes_context(workspace.meeting_minutes)
    assert "Sync 7" in text
    assert "Sync 3" in text
    assert "Sync 2" not in text
    assert text.index("Sync 7") < text.index("Sync 3")


def test_meeting_minutes_empty_is_omitted():
    assert build_meeting_minutes_context([]) == ""


def test_budget_context_remaining(workspace):
    text = build_project_budget_context(workspace.budgets[0], workspace.expenses, "USD")
    assert "- Total Budget: 10,000 USD" in text
    assert "- Total Spent So Far: 2,500 USD" in text
    assert "- Remaining Budget: 7,500 USD" in text


def test_budget_context_without_budget():
    text = build_project_budget_context(None, [], "EUR")
    assert "No budget has been set" in text
    assert "Remaining" not in text


def test_task_priority_thresholds(now):
    def task(hours):
        due = now + timedelta(hours=hours) if hours is not None else None
        return Task(id="t", title="t", due_date=due)

    assert calculate_task_priority(task(None), now) == "Low"
    assert calculate_task_priority(task(-1), now) == "Urgent"
    assert calculate_task_priority(task(24), now) == "High"
    assert calculate_task_priority(task(24 * 7), now) == "Medium"
    assert calculate_task_priority(task(24 * 30), now) == "Low"


def test_tasks_context_lists_tasks(workspace, now):
    text = build_all_tasks_context(workspace.tasks, workspace.employees, workspace.projects, now)
    assert "**Build landing page** (ID: `task_1`)" in text
    assert "Priority: 'High'" in text
    assert "Assignee: 'Sam Lee'" in text


def test_events_context_only_upcoming(workspace, now):
    text = build_all_events_context(workspace.events, now)
    assert "Design review" in text
    assert "Kickoff" not in text
    assert "03:30 PM" in text


def test_events_context_empty(now):
    assert "no upcoming events" in build_all_events_context([], now)


def test_files_context_renders_blocks_and_placeholders(workspace):
    files = workspace.files + [
        AppFile(id="f3", parent_id="proj_1", type="folder", name="Assets"),
        AppFile(id="f4", parent_id="proj_1", name="old.txt", content="old", mime_type="text/plain", is_archived=True),
    ]
    text = build_files_context(files)
    assert "--- FILE START: brief.json ---\n# Brief\n\nScope.\n--- FILE END: brief.json ---" in text
    assert '[This is an image file named "logo.png".' in text
    assert '[This is a folder named "Assets".]' in text
    assert "old.txt" not in text


def test_persona_prompt_order(workspace, engineer):
    ctx = PersonaContext.from_workspace(workspace, engineer, project_id="proj_1", include_plan=True)
    text = build_persona_prompt(ctx)
    markers = [
        "You are Sam",
        "**Company Context:**",
        "**CURRENT PROJECT CONTEXT:**",
        "**PROJECT TIMELINE & PHASE IDs:**",
        "**PROJECT BUDGET (in USD):**",
        "**RECENT MEETING MINUTES SUMMARY:**",
        "**RELEVANT FILES:**",
        "**Company Employee Roster:**",
        "**PRIMARY DIRECTIVE: HOW TO RESPOND**",
    ]
    positions = [text.index(m) for m in markers]
    assert positions == sorted(positions)
    assert "\n\n\n" not in text


def test_persona_prompt_is_deterministic(workspace, engineer):
    ctx = PersonaContext.from_workspace(workspace, engineer, project_id="proj_1")
    assert build_persona_prompt(ctx) == build_persona_prompt(ctx)


def test_persona_prompt_without_tools_has_no_directive(workspace, engineer):
    ctx = PersonaContext.from_workspace(workspace, engineer, tools=[])
    assert "PRIMARY DIRECTIVE" not in build_persona_prompt(ctx)


def test_include_plan_requires_project(workspace, engineer):
    ctx = PersonaContext.from_workspace(workspace, engineer, include_plan=True)
    assert ctx.include_plan is False


def test_chat_prompt_for_assistant_has_company_wide_view(workspace, assistant, now):
    text = build_chat_system_prompt(workspace, assistant, project_id="proj_1", now=now)
    assert "**ALL COMPANY CLIENTS:**" in text
    assert "**ALL COMPANY TASKS:**" in text
    assert "**COMPANY CALENDAR:**" in text
    assert "**CURRENT FOCUS:**" in text
    assert "**CURRENT PROJECT CONTEXT:**" not in text
    assert "- **Calendar**" in text


def test_chat_prompt_for_employee_uses_project_and_morale(workspace, manager, now):
    text = build_chat_system_prompt(workspace, manager, project_id="proj_1", include_plan=True, now=now)
    assert "Your current morale is 20/100." in text
    assert '**Client:** This project is for "Globex".' in text
    assert "(ID: `phase_1`)" in text
    assert "- **Project Management**" in text
    assert "ALL COMPANY CLIENTS" not in text


def test_brainstorm_prompt_for_facilitator(assistant, engineer, company):
    text = build_brainstorm_system_prompt(assistant, [assistant, engineer], company)
    assert text.startswith('You are "Alex", the Personal Assistant')
    assert "- Sam Lee (Software Engineer)" in text
    assert "PRIMARY DIRECTIVE" not in text


def test_brainstorm_prompt_for_participant(assistant, engineer, company):
    text = build_brainstorm_system_prompt(engineer, [assistant, engineer], company)
    assert "You are **Sam Lee**." in text
    assert "- Alex (Personal Assistant)" in text
    assert "**PRIMARY DIRECTIVE: HOW TO RESPOND**" in text


def test_naive_datetimes_are_treated_as_utc(workspace):
    naive_now = datetime(2025, 3, 10, 9, 0)
    aware_now = naive_now.replace(tzinfo=timezone.utc)
    assert build_all_events_context(workspace.events, naive_now) == build_all_events_context(
        workspace.events, aware_now
    )

from __future__ import annotations

from core.domain.tools import DEFAULT_TOOLS, Tool
from core.services.tool_grammar import TOOL_TEMPLATES, build_tools_instructions, tools_for_job_profile


def test_every_tool_has_a_template():
    assert set(TOOL_TEMPLATES) == set(Tool)


def test_baseline_plus_profile_tools_without_duplicates():
    tools = tools_for_job_profile("Software Engineer")
    assert tools[: len(DEFAULT_TOOLS)] == list(DEFAULT_TOOLS)
    assert tools.count(Tool.WHITEBOARD) == 1
    assert Tool.CODE in tools


def test_personal_assistant_gets_data_tools():
    tools = tools_for_job_profile("Personal Assistant")
    assert {Tool.CALENDAR, Tool.CREATE_TASK, Tool.DOCUMENT} <= set(tools)


def test_custom_job_title_gets_baseline_only():
    assert tools_for_job_profile("Chief Vibes Officer") == list(DEFAULT_TOOLS)


def test_instructions_list_only_given_tools():
    text = build_tools_instructions([Tool.CODE, Tool.IMAGE])
    assert "**PRIMARY DIRECTIVE: HOW TO RESPOND**" in text
    assert "- **Code**" in text
    assert "- **Image**" in text
    assert "- **Kanban**" not in text
    assert '"tool": "TOOL_NAME"' in text
    assert "(`Create Task`, `Calendar`, `Project Management`)" in text


def test_instructions_empty_for_no_tools():
    assert build_tools_instructions([]) == ""

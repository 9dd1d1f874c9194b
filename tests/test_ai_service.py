"""Operaciones de `AIService` contra un `ChatModel` falso."""

from __future__ import annotations

import asyncio
import json
from datetime import date

import httpx
import pytest

from conftest import FakeChatModel
from core.domain.chat import ChatMessage
from core.domain.proposals import ProposalStatus
from core.domain.tools import AssetAction, Tool
from core.errors import ErrorKind, ServiceError
from core.services.ai_service import COLLABORATOR_UNAVAILABLE, AIService


def _envelope(tool: str, data, text: str) -> str:
    return json.dumps({"tool": tool, "data": data, "text": text})


def _hello() -> list[ChatMessage]:
    return [ChatMessage.from_user("Hello")]


async def test_continue_conversation_passes_history():
    model = FakeChatModel(["Hi there!"])
    service = AIService(model)
    assert await service.continue_conversation(_hello(), "Be nice.") == "Hi there!"
    assert model.calls[0]["system_instruction"] == "Be nice."
    assert model.calls[0]["history"][0].text == "Hello"


async def test_chat_plain_reply(workspace, engineer, now):
    model = FakeChatModel(["Sure, the API is ready."])
    turn = await AIService(model).chat_with_employee(workspace, engineer, _hello(), now=now)
    assert [m.text for m in turn.messages] == ["Sure, the API is ready."]
    assert turn.messages[0].employee_id == "emp_eng"
    assert turn.proposal is None
    assert "You are Sam" in model.calls[0]["system_instruction"]
    assert turn.model_calls == 1


async def test_chat_collaboration_makes_follow_up_call(workspace, manager, now):
    model = FakeChatModel(
        [
            _envelope("Collaboration", {"employeeId": "emp_eng", "question": "Is the API done?"}, "Let me ask Sam."),
            "Yes, shipped yesterday.",
            "Good news: the API shipped yesterday.",
        ]
    )
    history = [ChatMessage.from_user("What's the API status?")]
    turn = await AIService(model).chat_with_employee(workspace, manager, history, now=now)

    assert [m.text for m in turn.messages] == ["Let me ask Sam.", "Good news: the API shipped yesterday."]
    assert turn.messages[0].tool_output is None
    assert len(model.calls) == 3
    assert turn.model_calls == 3
    collaborator_call = model.calls[1]
    assert "You are Sam, a pragmatic backend engineer." in collaborator_call["system_instruction"]
    follow_up = model.calls[2]["history"][-1].text
    assert 'They responded with: "Yes, shipped yesterday."' in follow_up
    assert 'The user\'s original request was: "What\'s the API status?"' in follow_up


async def test_chat_collaboration_with_unknown_colleague(workspace, manager, now):
    model = FakeChatModel([_envelope("Collaboration", {"employeeId": "emp_ghost", "question": "?"}, "Asking.")])
    turn = await AIService(model).chat_with_employee(workspace, manager, _hello(), now=now)
    assert [m.text for m in turn.messages] == [COLLABORATOR_UNAVAILABLE]
    assert len(model.calls) == 1
    assert turn.model_calls == 1


async def test_chat_image_generation(workspace, engineer, now):
    model = FakeChatModel([_envelope("Image", {"prompt": "a robot"}, "Generating.")], image="Zm9v")
    turn = await AIService(model).chat_with_employee(workspace, engineer, _hello(), now=now)
    assert turn.messages[-1].text == 'Here is the image I generated for: "a robot"'
    assert turn.messages[-1].generated_image_base64 == "Zm9v"
    assert model.image_prompts == ["a robot"]
    assert turn.model_calls == 2


async def test_chat_image_failure_becomes_message(workspace, engineer, now):
    model = FakeChatModel([_envelope("Image", {"prompt": "a robot"}, "Generating.")], image=RuntimeError("boom"))
    turn = await AIService(model).chat_with_employee(workspace, engineer, _hello(), now=now)
    assert "generating an image" in turn.messages[-1].text
    assert turn.messages[-1].generated_image_base64 is None


async def test_chat_calendar_tool_becomes_pending_proposal(workspace, assistant, now):
    model = FakeChatModel([_envelope("Calendar", {"title": "Board meeting"}, "Shall I add it?")])
    turn = await AIService(model).chat_with_employee(workspace, assistant, _hello(), now=now)
    assert turn.proposal is not None
    assert turn.proposal.status is ProposalStatus.PROPOSED
    assert turn.proposal.proposed_by == "emp_pa"
    assert len(workspace.events) == 2


async def test_chat_project_query_is_not_a_proposal(workspace, manager, now):
    model = FakeChatModel([_envelope("Project Management", {"action": "query", "payload": {}}, "Two phases.")])
    turn = await AIService(model).chat_with_employee(workspace, manager, _hello(), project_id="proj_1", now=now)
    assert turn.proposal is None
    assert turn.messages[0].tool_output.tool is Tool.PROJECT_MANAGEMENT


async def test_chat_document_tool_produces_draft(workspace, assistant, now):
    content = [{"type": "heading1", "content": "Brief"}]
    model = FakeChatModel([_envelope("Document", {"fileName": "Brief", "content": content}, "Drafted.")])
    turn = await AIService(model).chat_with_employee(workspace, assistant, _hello(), project_id="proj_1", now=now)
    assert turn.document is not None
    assert turn.document.status == "Draft"
    assert turn.document.parent_id == "proj_1"
    assert json.loads(turn.document.content) == content


async def test_chat_network_error_is_service_error(workspace, engineer, now):
    model = FakeChatModel([httpx.ConnectError("connection refused")])
    with pytest.raises(ServiceError) as info:
        await AIService(model).chat_with_employee(workspace, engineer, _hello(), now=now)
    assert info.value.kind is ErrorKind.NETWORK
    assert "(Context: chatting with Sam Lee)" in info.value.user_message


async def test_safety_block_is_classified():
    model = FakeChatModel([ValueError("Response blocked by safety filters.")])
    with pytest.raises(ServiceError) as info:
        await AIService(model).continue_conversation(_hello(), "x")
    assert info.value.kind is ErrorKind.SAFETY_BLOCKED


async def test_brainstorm_collects_partial_failures(company, assistant, engineer, manager):
    def reply(system_instruction, history):
        if "You are **Dana Cruz**." in system_instruction:
            raise httpx.ReadTimeout("slow")
        if system_instruction.startswith('You are "Alex"'):
            return "Let's stay on topic."
        return "We could automate restocking."

    model = FakeChatModel([reply, reply, reply])
    delivered = []

    async def on_response(result):
        delivered.append(result.employee.id)

    results = await AIService(model).get_brainstorm_responses(
        _hello(), [assistant, engineer, manager], company, on_response
    )

    assert [r.employee.id for r in results] == ["emp_pa", "emp_eng", "emp_pm"]
    assert [r.status for r in results] == ["fulfilled", "fulfilled", "rejected"]
    assert results[0].text == "Let's stay on topic."
    assert results[2].error.kind is ErrorKind.NETWORK
    assert "brainstorming with Dana Cruz" in results[2].error_message
    assert sorted(delivered) == ["emp_eng", "emp_pa", "emp_pm"]


class _DelayedModel:
    """Responde a cada participante tras una espera propia."""

    def __init__(self, delays: dict[str, float]) -> None:
        self.delays = delays

    async def generate(self, *, system_instruction, history, response_schema=None, schema_name=None):
        for name, delay in self.delays.items():
            if f"You are **{name}**." in system_instruction:
                await asyncio.sleep(delay)
                return f"{name} here."
        raise AssertionError("unexpected participant")

    async def generate_image(self, prompt):
        raise AssertionError("no images in brainstorms")


async def test_brainstorm_delivers_replies_as_they_finish(company, engineer, manager):
    delivered = []
    model = _DelayedModel({"Sam Lee": 0.05, "Dana Cruz": 0.0})

    results = await AIService(model).get_brainstorm_responses(
        _hello(), [engineer, manager], company, lambda reply: delivered.append(reply.employee.name)
    )

    assert delivered == ["Dana Cruz", "Sam Lee"]
    assert [r.employee.name for r in results] == ["Sam Lee", "Dana Cruz"]
    assert results[0].text == "Sam Lee here."


async def test_brainstorm_callback_errors_do_not_fail_the_session(company, engineer):
    def boom(result):
        raise RuntimeError("ui crashed")

    results = await AIService(FakeChatModel(["Idea!"])).get_brainstorm_responses(_hello(), [engineer], company, boom)
    assert results[0].status == "fulfilled"


async def test_hiring_proposals_use_structured_output(workspace):
    payload = {
        "proposals": [
            {
                "teamName": "Growth",
                "teamDescription": "Acquires customers.",
                "jobProfile": "Growth Marketer",
                "employeeName": "Riley Park",
                "gender": "Female",
                "systemInstruction": "You are Riley.",
                "reasoning": "Vague marketing need.",
                "oceanProfile": {
                    "openness": 80,
                    "conscientiousness": 70,
                    "extraversion": 75,
                    "agreeableness": 60,
                    "neuroticism": 20,
                },
            }
        ]
    }
    model = FakeChatModel([json.dumps(payload)])
    proposals = await AIService(model).get_hiring_proposals(
        workspace.company.profile, workspace.teams, workspace.employees, workspace.clients, "more customers"
    )
    assert proposals[0].employee_name == "Riley Park"
    assert model.calls[0]["schema_name"] == "HiringProposals"
    assert model.calls[0]["response_schema"]["type"] == "object"
    assert "Existing Teams: [Engineering, Operations]" in model.calls[0]["system_instruction"]


async def test_hiring_proposals_malformed():
    model = FakeChatModel(['{"proposals": []}'])
    with pytest.raises(ServiceError) as info:
        await AIService(model).get_hiring_proposals("p", [], [], [], "need")
    assert info.value.kind is ErrorKind.MALFORMED_RESPONSE
    assert "creating a hiring proposal" in info.value.user_message


async def test_initial_structure_accepts_legacy_key():
    payload = {"departments": [{"name": "Sales", "description": "Sells.", "employees": []}]}
    result = await AIService(FakeChatModel([json.dumps(payload)])).get_initial_structure_proposal("We sell tea.")
    assert [t.name for t in result.teams] == ["Sales"]


async def test_move_analysis_missing_team(workspace, engineer):
    model = FakeChatModel()
    with pytest.raises(ServiceError) as info:
        await AIService(model).get_employee_move_analysis(
            workspace.company, workspace.teams, workspace.employees, engineer, "team_missing"
        )
    assert info.value.kind is ErrorKind.NOT_FOUND
    assert info.value.user_message == "Source or destination team not found."
    assert model.calls == []


async def test_move_analysis(workspace, engineer):
    model = FakeChatModel(['{"impactAnalysis": "Ops gains a builder.", "destinationTeamSuggestions": {}}'])
    result = await AIService(model).get_employee_move_analysis(
        workspace.company, workspace.teams, workspace.employees, engineer, "team_ops"
    )
    assert result.impact_analysis == "Ops gains a builder."
    prompt = model.calls[0]["history"][0].text
    assert "**Employee to Move:** Sam Lee (Software Engineer)" in prompt
    assert "- Dana Cruz (Project Manager)" in prompt


async def test_asset_manager_plain_reply_is_query(workspace):
    model = FakeChatModel(["You pay $75 a month."])
    action = await AIService(model).get_asset_manager_response(
        "How much for Figma?", workspace.assets, today=date(2025, 3, 10)
    )
    assert action == AssetAction(action="query", response_text="You pay $75 a month.")
    assert "**Current Date:** 2025-03-10" in model.calls[0]["system_instruction"]
    assert '"name": "Figma"' in model.calls[0]["history"][0].text


async def test_text_action_invalid():
    with pytest.raises(ServiceError) as info:
        await AIService(FakeChatModel()).perform_text_action("hi", "shout")
    assert info.value.user_message == "Invalid text action provided."


async def test_text_action_translate():
    model = FakeChatModel(["  Hola  "])
    assert await AIService(model).perform_text_action("Hello", "translate", "Spanish") == "Hola"
    assert "into Spanish" in model.calls[0]["system_instruction"]


async def test_generate_image_empty_is_error():
    with pytest.raises(ServiceError):
        await AIService(FakeChatModel(image="")).generate_image("a cat")


async def test_project_report_accepts_blocks(workspace):
    blocks = [{"type": "heading1", "content": "Executive Summary"}, {"type": "paragraph", "content": "Done."}]
    model = FakeChatModel([json.dumps({"blocks": blocks})])
    project = workspace.get_project("proj_1")
    result = await AIService(model).generate_project_completion_report(
        project,
        workspace.phases_for("proj_1"),
        workspace.get_budget("proj_1"),
        workspace.expenses_for("proj_1"),
        workspace.tasks,
        workspace.minutes_for("proj_1"),
    )
    assert [b.content for b in result] == ["Executive Summary", "Done."]
    assert "Website Redesign" in model.calls[0]["history"][0].text


async def test_summarize_brainstorm_session(engineer, manager):
    history = [
        ChatMessage.from_user("Topic: pricing"),
        ChatMessage.from_model("Raise prices.", employee_id="emp_eng", employee_name="Sam Lee"),
        ChatMessage.from_model("...", employee_id="emp_pm", employee_name="Dana Cruz", is_typing=True),
        ChatMessage.from_model("Session started.", employee_id="facilitator", employee_name="System"),
    ]
    model = FakeChatModel(["## Attendees\n- Sam\n"])
    summary = await AIService(model).summarize_brainstorm_session(
        history, "Pricing", [engineer, manager], "We sell tea.", today=date(2025, 3, 10)
    )
    assert summary.title == "Meeting Minutes: Pricing - 2025-03-10"
    assert summary.content == "## Attendees\n- Sam"
    transcript = model.calls[0]["history"][0].text
    assert "User: Topic: pricing\nSam Lee: Raise prices." in transcript
    assert "Session started." not in transcript
    assert "..." not in transcript


async def test_generate_team_description(company):
    model = FakeChatModel(["  Builds things.\n"])
    text = await AIService(model).generate_team_description(company.profile, "Platform")
    assert text == "Builds things."
    assert 'Team Name: "Platform"' in model.calls[0]["history"][0].text

"""Extracción de tool calls en texto libre del modelo."""

from __future__ import annotations

import json

import pytest

from core.domain.models import RichTextBlock
from core.domain.proposals import MoveAnalysis, ProjectReport
from core.domain.tools import CalendarProposal, KanbanBoard, MermaidDiagram, Tool
from core.errors import ErrorKind, ServiceError
from core.services.tool_dispatch import (
    extract_json_candidate,
    extract_tool_output,
    interpret_response,
    parse_asset_action,
    parse_structured,
)


def _envelope(tool: str, data, text: str = "Here you go.") -> str:
    return json.dumps({"tool": tool, "data": data, "text": text})


def test_fenced_block_wins_over_braces():
    text = 'Sure {not json}\n```json\n{"a": 1}\n```'
    assert extract_json_candidate(text) == '{"a": 1}'


def test_plain_text_is_not_a_tool_call():
    reply = interpret_response("Happy to help with that.")
    assert reply.is_plain
    assert reply.text == "Happy to help with that."


def test_envelope_missing_text_is_plain_text():
    raw = json.dumps({"tool": "Code", "data": {"code": "x"}})
    assert extract_tool_output(raw) is None
    assert interpret_response(raw).text == raw


def test_kanban_inside_prose():
    data = {"columns": [{"title": "To Do", "tasks": [{"id": "1", "content": "Write brief"}]}]}
    text = f"Here is the board:\n```json\n{_envelope('Kanban', data, 'Board ready.')}\n```\nEnjoy!"
    reply = interpret_response(text)
    assert reply.tool_output is not None
    assert reply.tool_output.tool is Tool.KANBAN
    assert isinstance(reply.tool_output.data, KanbanBoard)
    assert reply.text == "Board ready."


def test_whiteboard_string_data():
    reply = interpret_response(_envelope("Whiteboard", 'graph TD; A["a"] --> B["b"];'))
    assert isinstance(reply.tool_output.data, MermaidDiagram)
    assert reply.tool_output.raw_data.startswith("graph TD")


def test_empty_object_data_counts_as_present():
    raw = json.dumps({"tool": "Project Management", "data": {}, "text": "Checking."})
    assert extract_tool_output(raw) is not None


def test_balanced_scan_recovers_from_stray_braces():
    envelope = _envelope("Calendar", {"title": "Standup", "type": "meeting"}, "Shall I add it?")
    text = f"Note {{draft}} first. {envelope} Let me know {{ok}}."
    reply = interpret_response(text)
    assert isinstance(reply.tool_output.data, CalendarProposal)
    assert reply.tool_output.data.title == "Standup"


def test_unknown_tool_raises_invalid_payload():
    with pytest.raises(ServiceError) as info:
        interpret_response(_envelope("Teleporter", {"x": 1}), context="chatting with Sam")
    assert info.value.kind is ErrorKind.INVALID_TOOL_PAYLOAD
    assert "chatting with Sam" in info.value.user_message


def test_invalid_variant_payload_raises():
    with pytest.raises(ServiceError) as info:
        interpret_response(_envelope("Code", {"language": "python"}))
    assert info.value.kind is ErrorKind.INVALID_TOOL_PAYLOAD


def test_asset_action_envelope():
    raw = json.dumps(
        {"action": "update", "assetName": " Figma ", "payload": {"seats": 10}, "responseText": "Updated."}
    )
    action = parse_asset_action(raw)
    assert action.action == "update"
    assert action.asset_name == "Figma"
    assert action.payload.seats == 10


def test_asset_reply_without_envelope_is_query():
    action = parse_asset_action("You spend $75 per month on Figma.")
    assert action.action == "query"
    assert action.response_text == "You spend $75 per month on Figma."


def test_asset_empty_reply_is_malformed():
    with pytest.raises(ServiceError) as info:
        parse_asset_action("   ")
    assert info.value.kind is ErrorKind.MALFORMED_RESPONSE


def test_parse_structured_strips_fence():
    text = '```json\n{"impactAnalysis": "Fine."}\n```'
    result = parse_structured(text, MoveAnalysis, context="analyzing employee move")
    assert result.impact_analysis == "Fine."


def test_parse_structured_accepts_bare_report_array():
    text = json.dumps([{"type": "heading1", "content": "Summary"}])
    report = parse_structured(text, ProjectReport, context="generating project completion report")
    assert report.blocks == [RichTextBlock(type="heading1", content="Summary")]


def test_parse_structured_malformed():
    with pytest.raises(ServiceError) as info:
        parse_structured("not json", MoveAnalysis, context="analyzing employee move")
    assert info.value.kind is ErrorKind.MALFORMED_RESPONSE
    assert "analyzing employee move" in info.value.user_message

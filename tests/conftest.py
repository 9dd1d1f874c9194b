"""Fixtures compartidas: un workspace pequeño y un `ChatModel` falso."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Sequence, Union

import pytest

from core.domain.chat import ChatMessage
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
    SoftwareAsset,
    Task,
    Team,
    Workspace,
)

NOW = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)

Reply = Union[str, BaseException, Callable[[str | None, Sequence[ChatMessage]], str]]


class FakeChatModel:
    """Doble de `ChatModel`: devuelve respuestas en cola y registra llamadas."""

    def __init__(self, replies: Sequence[Reply] = (), *, image: str | BaseException = "aW1hZ2U=") -> None:
        self.replies = list(replies)
        self.image = image
        self.calls: list[dict[str, Any]] = []
        self.image_prompts: list[str] = []

    async def generate(
        self,
        *,
        system_instruction: str | None,
        history: Sequence[ChatMessage],
        response_schema: dict[str, Any] | None = None,
        schema_name: str | None = None,
    ) -> str:
        self.calls.append(
            {
                "system_instruction": system_instruction,
                "history": list(history),
                "response_schema": response_schema,
                "schema_name": schema_name,
            }
        )
        if not self.replies:
            raise AssertionError("FakeChatModel ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(system_instruction, history)
        return reply

    async def generate_image(self, prompt: str) -> str:
        self.image_prompts.append(prompt)
        if isinstance(self.image, BaseException):
            raise self.image
        return self.image


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def company() -> Company:
    return Company(id="co_1", name="Acme Robotics", profile="Acme builds warehouse robots for SMEs.")


@pytest.fixture
def assistant() -> Employee:
    return Employee(
        id="emp_pa",
        name="Alex",
        job_profile="Personal Assistant",
        system_instruction="You are Alex, the personal assistant.",
    )


@pytest.fixture
def engineer() -> Employee:
    return Employee(
        id="emp_eng",
        name="Sam Lee",
        job_profile="Software Engineer",
        team_id="team_eng",
        system_instruction="You are Sam, a pragmatic backend engineer.",
        morale=90,
    )


@pytest.fixture
def manager() -> Employee:
    return Employee(
        id="emp_pm",
        name="Dana Cruz",
        job_profile="Project Manager",
        team_id="team_ops",
        system_instruction="You are Dana, a meticulous project manager.",
        morale=20,
    )


@pytest.fixture
def workspace(company, assistant, engineer, manager) -> Workspace:
    return Workspace(
        company=company,
        teams=[
            Team(id="team_eng", name="Engineering", description="Builds the robots' software."),
            Team(id="team_ops", name="Operations", description="Runs delivery."),
        ],
        employees=[assistant, engineer, manager],
        clients=[Client(id="cli_1", name="Globex", status="Active")],
        projects=[
            Project(
                id="proj_1",
                name="Website Redesign",
                description="New marketing site.",
                client_id="cli_1",
                employee_ids=["emp_eng", "emp_pm"],
            ),
            Project(id="proj_2", name="Internal Tools", description="Back-office tooling."),
        ],
        tasks=[
            Task(
                id="task_1",
                project_id="proj_1",
                assignee_id="emp_eng",
                title="Build landing page",
                due_date=datetime(2025, 3, 11, 9, 0, tzinfo=timezone.utc),
            ),
        ],
        phases=[
            ProjectPhase(
                id="phase_1",
                project_id="proj_1",
                name="Discovery",
                start_date=datetime(2025, 3, 1, tzinfo=timezone.utc),
                end_date=datetime(2025, 3, 14, tzinfo=timezone.utc),
                status="In Progress",
            ),
        ],
        budgets=[ProjectBudget(project_id="proj_1", total_budget=10000)],
        expenses=[
            ProjectExpense(
                id="exp_1",
                project_id="proj_1",
                description="Stock photos",
                amount=2500,
                date=datetime(2025, 3, 5, tzinfo=timezone.utc),
            ),
        ],
        meeting_minutes=[
            MeetingMinute(
                id=f"min_{i}",
                project_id="proj_1",
                title=f"Sync {i}",
                content=f"Notes {i}",
                timestamp=datetime(2025, 2, i, tzinfo=timezone.utc),
            )
            for i in range(1, 8)
        ],
        events=[
            CalendarEvent(
                id="evt_past",
                title="Kickoff",
                start=datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc),
                end=datetime(2025, 3, 1, 11, 0, tzinfo=timezone.utc),
            ),
            CalendarEvent(
                id="evt_next",
                title="Design review",
                start=datetime(2025, 3, 12, 15, 30, tzinfo=timezone.utc),
                end=datetime(2025, 3, 12, 16, 30, tzinfo=timezone.utc),
            ),
        ],
        files=[
            AppFile(
                id="file_1",
                parent_id="proj_1",
                name="brief.json",
                content='[{"type": "heading1", "content": "Brief"}, {"type": "paragraph", "content": "Scope."}]',
                mime_type="application/json",
            ),
            AppFile(id="file_2", parent_id="proj_1", name="logo.png", mime_type="image/png"),
        ],
        assets=[
            SoftwareAsset(id="asset_1", name="Figma", seats=5, cost=75, cost_frequency="monthly"),
        ],
    )


@pytest.fixture
def fake_model() -> FakeChatModel:
    return FakeChatModel()

"""Resultados de generación estructurada y propuestas pendientes de aprobación.

Por qué un módulo separado:
- Son artefactos producidos por la IA, con semántica distinta a las entidades
  persistidas de la empresa.
- La propuesta (`Proposal`) modela explícitamente el commit en dos fases:
  ninguna salida del modelo muta estado compartido sin aprobación humana.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field, model_validator

from core.domain.models import DomainModel, Gender, OceanProfile, RichTextBlock, utcnow
from core.domain.tools import ToolOutput


class HiringProposal(DomainModel):
    team_name: str = Field(..., min_length=1)
    team_description: str | None = Field(
        default=None,
        description="Solo presente cuando la propuesta crea un equipo nuevo.",
    )
    job_profile: str = Field(..., min_length=1)
    employee_name: str = Field(..., min_length=1)
    gender: Gender
    system_instruction: str = Field(..., min_length=1)
    reasoning: str = ""
    ocean_profile: OceanProfile


class HiringProposals(DomainModel):
    proposals: list[HiringProposal] = Field(..., min_length=1, max_length=3)


class EmployeeProposal(DomainModel):
    name: str = Field(..., min_length=1)
    job_profile: str = Field(..., min_length=1)
    gender: Gender
    system_instruction: str = Field(..., min_length=1)
    ocean_profile: OceanProfile


class TeamProposal(DomainModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    employees: list[EmployeeProposal] = Field(default_factory=list)


class InitialStructureProposal(DomainModel):
    teams: list[TeamProposal] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _legacy_departments(cls, values: Any) -> Any:
        # Respuestas antiguas usaban "departments" en lugar de "teams".
        if isinstance(values, dict) and "departments" in values and "teams" not in values:
            values = dict(values)
            values["teams"] = values.pop("departments")
        return values


class TeamSuggestion(DomainModel):
    new_name: str | None = None
    new_description: str | None = None


class MoveAnalysis(DomainModel):
    impact_analysis: str = Field(..., min_length=1)
    source_team_suggestions: TeamSuggestion = Field(default_factory=TeamSuggestion)
    destination_team_suggestions: TeamSuggestion = Field(default_factory=TeamSuggestion)


class ProjectReport(DomainModel):
    blocks: list[RichTextBlock] = Field(..., min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _bare_array(cls, values: Any) -> Any:
        if isinstance(values, list):
            return {"blocks": values}
        return values


class MeetingSummary(DomainModel):
    title: str
    content: str


class ProposalStatus(str, Enum):
    PROPOSED = "proposed"
    APPROVED = "approved"
    COMMITTED = "committed"
    REJECTED = "rejected"


class ProposalStateError(RuntimeError):
    """Transición no permitida en el ciclo de vida de una propuesta."""


class Proposal(DomainModel):
    """Cambio de estado solicitado por una persona y aún no confirmado.

    Ciclo de vida:
    - `Proposed → Approved → Committed`
    - `Proposed → Rejected`
    """

    id: str = Field(default_factory=lambda: f"prop_{uuid.uuid4().hex[:12]}")
    tool_output: ToolOutput
    proposed_by: str | None = Field(default=None, description="ID del empleado que propone.")
    project_id: str | None = None
    status: ProposalStatus = ProposalStatus.PROPOSED
    created_at: datetime = Field(default_factory=utcnow)
    decided_at: datetime | None = None
    confirmation: str | None = None

    def approve(self) -> None:
        if self.status is not ProposalStatus.PROPOSED:
            raise ProposalStateError(f"cannot approve a proposal in state {self.status.value}")
        self.status = ProposalStatus.APPROVED
        self.decided_at = utcnow()

    def reject(self) -> None:
        if self.status is not ProposalStatus.PROPOSED:
            raise ProposalStateError(f"cannot reject a proposal in state {self.status.value}")
        self.status = ProposalStatus.REJECTED
        self.decided_at = utcnow()

    def mark_committed(self, confirmation: str) -> None:
        if self.status is not ProposalStatus.APPROVED:
            raise ProposalStateError(f"cannot commit a proposal in state {self.status.value}")
        self.status = ProposalStatus.COMMITTED
        self.confirmation = confirmation

"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- Los datos llegan del store/snapshots en camelCase; el alias generator
  permite leerlos tal cual y seguir usando snake_case en Python.

Nota:
- Estos modelos describen *qué* es la información de la empresa, no *cómo*
  se persiste.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DomainModel(BaseModel):
    """Base común: camelCase en el borde, extra ignorado."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )


Gender = Literal["Male", "Female"]
ClientStatus = Literal["Active", "Inactive", "Prospect"]
ProjectStatus = Literal["Active", "Completed"]
PhaseStatus = Literal["Not Started", "In Progress", "Completed"]
TaskStatus = Literal["To Do", "In Progress", "Done"]
TaskPriority = Literal["Low", "Medium", "High", "Urgent"]
EventType = Literal["meeting", "note", "reminder", "task"]
AssetType = Literal["SaaS Subscription", "Software License", "Other"]
CostFrequency = Literal["monthly", "annually"]
DateFormat = Literal["DD/MM/YYYY", "MM/DD/YYYY", "YYYY-MM-DD"]

PERSONAL_ASSISTANT = "Personal Assistant"


class OceanProfile(DomainModel):
    openness: int = Field(default=50, ge=0, le=100)
    conscientiousness: int = Field(default=50, ge=0, le=100)
    extraversion: int = Field(default=50, ge=0, le=100)
    agreeableness: int = Field(default=50, ge=0, le=100)
    neuroticism: int = Field(default=50, ge=0, le=100)


class Company(DomainModel):
    id: str
    name: str = Field(..., min_length=1)
    profile: str = Field(
        default="",
        description="Perfil libre de la empresa (sector, servicios, misión).",
    )
    objectives: str | None = None
    policies: str | None = None
    certifications: str | None = None
    daily_api_request_limit: int | None = Field(default=None, ge=0)
    api_request_count: int = Field(default=0, ge=0)
    last_api_request_at: datetime | None = None

    @property
    def has_directives(self) -> bool:
        return bool(self.objectives or self.policies or self.certifications)


class Team(DomainModel):
    id: str
    name: str
    description: str | None = None


class Client(DomainModel):
    id: str
    name: str
    status: ClientStatus = "Active"
    contact_person: str | None = None
    contact_email: str | None = None


class Project(DomainModel):
    id: str
    name: str
    description: str = ""
    client_id: str | None = None
    employee_ids: list[str] = Field(default_factory=list)
    status: ProjectStatus = "Active"
    completion_timestamp: datetime | None = None


class Employee(DomainModel):
    """Un empleado IA: persona (system instruction) + perfil."""

    id: str
    name: str = Field(..., min_length=1)
    job_profile: str = Field(
        ...,
        min_length=1,
        description="Puesto; puede ser uno estándar o un título libre.",
    )
    team_id: str | None = None
    system_instruction: str = ""
    gender: Gender | None = None
    ocean_profile: OceanProfile = Field(default_factory=OceanProfile)
    morale: int = Field(default=75, ge=0, le=100)

    @property
    def is_personal_assistant(self) -> bool:
        return self.job_profile == PERSONAL_ASSISTANT


class ProjectPhase(DomainModel):
    id: str
    project_id: str
    name: str
    description: str = ""
    start_date: datetime
    end_date: datetime
    status: PhaseStatus = "Not Started"


class ProjectBudget(DomainModel):
    project_id: str
    total_budget: float = Field(..., ge=0)
    currency: str = "USD"


class ProjectExpense(DomainModel):
    id: str
    project_id: str
    description: str
    amount: float
    category: str = "Uncategorized"
    date: datetime


class Task(DomainModel):
    id: str
    project_id: str | None = None
    assignee_id: str | None = None
    title: str
    description: str = ""
    status: TaskStatus = "To Do"
    priority: TaskPriority = "Medium"
    due_date: datetime | None = None
    completion_timestamp: datetime | None = None
    closure_comment: str | None = None


class MeetingMinute(DomainModel):
    id: str
    project_id: str
    title: str
    content: str = ""
    timestamp: datetime


class CalendarEvent(DomainModel):
    id: str
    title: str
    description: str = ""
    start: datetime
    end: datetime
    participant_ids: list[str] = Field(default_factory=list)
    color: str = "bg-purple-500"
    type: EventType = "meeting"
    project_id: str | None = None
    client_id: str | None = None


class AppFile(DomainModel):
    """Fichero o carpeta asociado a un proyecto/cliente.

    `content` guarda JSON de RichTextBlocks cuando `mime_type` es
    `application/json`, o texto plano.
    """

    id: str
    parent_id: str | None = None
    parent_type: Literal["project", "client"] = "project"
    type: Literal["file", "folder"] = "file"
    name: str
    content: str | None = None
    mime_type: str | None = None
    is_archived: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    author_id: str | None = None
    author_name: str | None = None
    status: Literal["Draft", "In Review", "Approved"] | None = None


class SoftwareAsset(DomainModel):
    id: str
    company_id: str | None = None
    name: str
    description: str | None = None
    version: str | None = None
    website: str | None = None
    type: AssetType = "SaaS Subscription"
    seats: int = Field(default=1, ge=0)
    cost: float = Field(default=0.0, ge=0)
    cost_frequency: CostFrequency = "monthly"
    renewal_date: date | None = None
    assigned_to: str = "Company-Wide"


class PublicHoliday(DomainModel):
    date: date
    local_name: str
    name: str
    country_code: str
    fixed: bool = False
    is_global: bool = Field(default=True, alias="global")
    counties: list[str] | None = None
    launch_year: int | None = None
    types: list[str] = Field(default_factory=list)


class RichTableContent(DomainModel):
    rows: list[list[str]] = Field(default_factory=list)


RichBlockType = Literal[
    "heading1",
    "heading2",
    "paragraph",
    "bulletList",
    "numberedList",
    "checkList",
    "codeBlock",
    "blockQuote",
    "horizontalRule",
    "table",
]


class RichTextBlock(DomainModel):
    """Bloque del formato de texto enriquecido interno.

    Para listas el contenido va separado por saltos de línea; los checklists
    llevan prefijo `[ ]` o `[x]`.
    """

    type: RichBlockType
    content: str | RichTableContent = ""

    @model_validator(mode="after")
    def _table_shape(self) -> "RichTextBlock":
        if self.type == "table" and not isinstance(self.content, RichTableContent):
            raise ValueError("table blocks require a {'rows': [[...]]} content object")
        if self.type != "table" and isinstance(self.content, RichTableContent):
            raise ValueError(f"{self.type} blocks require string content")
        return self


class UserSettings(DomainModel):
    date_format: DateFormat = "YYYY-MM-DD"
    timezone: str = "UTC"
    country: str | None = Field(default=None, description="Código ISO de 2 letras.")
    currency: str = "USD"
    global_api_request_limit: int | None = Field(default=None, ge=0)


class UserProfile(DomainModel):
    id: str
    name: str
    email: str = ""
    picture: str = ""
    settings: UserSettings = Field(default_factory=UserSettings)


class Workspace(DomainModel):
    """Agregado principal: el estado de una empresa visible para sus personas.

    Por qué un agregado:
    - Las funciones de contexto y el workflow de propuestas trabajan sobre un
      único objeto en lugar de una docena de listas sueltas.
    """

    company: Company
    teams: list[Team] = Field(default_factory=list)
    employees: list[Employee] = Field(default_factory=list)
    clients: list[Client] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    phases: list[ProjectPhase] = Field(default_factory=list)
    budgets: list[ProjectBudget] = Field(default_factory=list)
    expenses: list[ProjectExpense] = Field(default_factory=list)
    meeting_minutes: list[MeetingMinute] = Field(default_factory=list)
    events: list[CalendarEvent] = Field(default_factory=list)
    files: list[AppFile] = Field(default_factory=list)
    assets: list[SoftwareAsset] = Field(default_factory=list)

    def get_employee(self, employee_id: str | None) -> Employee | None:
        return next((e for e in self.employees if e.id == employee_id), None)

    def find_employee(self, id_or_name: str) -> Employee | None:
        found = self.get_employee(id_or_name)
        if found:
            return found
        needle = id_or_name.strip().lower()
        return next((e for e in self.employees if e.name.lower() == needle), None)

    def get_project(self, project_id: str | None) -> Project | None:
        return next((p for p in self.projects if p.id == project_id), None)

    def get_client(self, client_id: str | None) -> Client | None:
        return next((c for c in self.clients if c.id == client_id), None)

    def get_team(self, team_id: str | None) -> Team | None:
        return next((t for t in self.teams if t.id == team_id), None)

    def get_budget(self, project_id: str) -> ProjectBudget | None:
        return next((b for b in self.budgets if b.project_id == project_id), None)

    def phases_for(self, project_id: str) -> list[ProjectPhase]:
        return [p for p in self.phases if p.project_id == project_id]

    def expenses_for(self, project_id: str) -> list[ProjectExpense]:
        return [e for e in self.expenses if e.project_id == project_id]

    def minutes_for(self, project_id: str) -> list[MeetingMinute]:
        return [m for m in self.meeting_minutes if m.project_id == project_id]

    def files_for(self, parent_id: str) -> list[AppFile]:
        return [f for f in self.files if f.parent_id == parent_id]

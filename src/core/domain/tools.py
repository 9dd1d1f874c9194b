"""Herramientas que una persona puede invocar y la forma de sus datos.

Por qué una unión etiquetada:
- El contrato tool-call vive en la gramática del prompt, pero al recibirlo se
  valida contra el modelo de cada variante antes de despacharlo.
- La UI recibe objetos tipados en lugar de dicts que tiene que revisar campo
  a campo.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Union

from pydantic import Field, field_validator, model_validator

from core.domain.models import AssetType, CostFrequency, DomainModel, RichTextBlock, TaskPriority


class JobProfile(str, Enum):
    PERSONAL_ASSISTANT = "Personal Assistant"
    SALES_MANAGER = "Sales Manager"
    SOFTWARE_ENGINEER = "Software Engineer"
    MARKETING_SPECIALIST = "Marketing Specialist"
    CUSTOMER_SUPPORT = "Customer Support Representative"
    HR_MANAGER = "Human Resources Manager"
    PROJECT_MANAGER = "Project Manager"
    ASSET_MANAGER = "Asset Manager"
    DATA_ANALYST = "Data Analyst"


class Tool(str, Enum):
    WHITEBOARD = "Whiteboard"
    KANBAN = "Kanban"
    CODE = "Code"
    COLLABORATION = "Collaboration"
    DOCUMENT = "Document"
    WORD_DOCUMENT = "Word Document"
    POWERPOINT = "PowerPoint Presentation"
    EXCEL_SHEET = "Excel Sheet"
    CALENDAR = "Calendar"
    CREATE_TASK = "Create Task"
    PROJECT_MANAGEMENT = "Project Management"
    IMAGE = "Image"
    CHART = "Chart"


DEFAULT_TOOLS: tuple[Tool, ...] = (
    Tool.WHITEBOARD,
    Tool.COLLABORATION,
    Tool.WORD_DOCUMENT,
    Tool.POWERPOINT,
    Tool.EXCEL_SHEET,
)

JOB_PROFILE_TOOLS: dict[JobProfile, tuple[Tool, ...]] = {
    JobProfile.SOFTWARE_ENGINEER: (Tool.WHITEBOARD, Tool.CODE),
    JobProfile.PROJECT_MANAGER: (
        Tool.WHITEBOARD,
        Tool.KANBAN,
        Tool.PROJECT_MANAGEMENT,
        Tool.CHART,
        Tool.DOCUMENT,
    ),
    JobProfile.PERSONAL_ASSISTANT: (Tool.CALENDAR, Tool.CREATE_TASK, Tool.DOCUMENT),
    JobProfile.MARKETING_SPECIALIST: (Tool.IMAGE, Tool.CHART),
    JobProfile.SALES_MANAGER: (Tool.CHART,),
    JobProfile.HR_MANAGER: (Tool.CHART,),
    JobProfile.DATA_ANALYST: (Tool.CHART, Tool.EXCEL_SHEET),
}

# Herramientas que proponen cambios de estado compartido (requieren aprobación).
PROPOSAL_TOOLS: frozenset[Tool] = frozenset({Tool.CALENDAR, Tool.CREATE_TASK, Tool.PROJECT_MANAGEMENT})

# Herramientas que producen un fichero descargable.
FILE_TOOLS: frozenset[Tool] = frozenset({Tool.WORD_DOCUMENT, Tool.POWERPOINT, Tool.EXCEL_SHEET})


# -- Payloads por herramienta -------------------------------------------------


class MermaidDiagram(DomainModel):
    source: str = Field(..., min_length=1, description="Sintaxis Mermaid.js.")


class KanbanCard(DomainModel):
    id: str
    content: str
    priority: TaskPriority | None = None


class KanbanColumn(DomainModel):
    title: str
    tasks: list[KanbanCard] = Field(default_factory=list)


class KanbanBoard(DomainModel):
    columns: list[KanbanColumn] = Field(..., min_length=1)


class CodeSnippet(DomainModel):
    language: str = "text"
    code: str


class CollaborationRequest(DomainModel):
    employee_id: str = Field(..., min_length=1)
    question: str = Field(..., min_length=1)


class RichDocument(DomainModel):
    file_name: str = Field(..., min_length=1)
    content: list[RichTextBlock] = Field(..., min_length=1)


class WordBlock(DomainModel):
    type: str = "paragraph"
    text: str = ""


class WordDocument(DomainModel):
    file_name: str = "document.docx"
    content: list[WordBlock] = Field(..., min_length=1)


class Slide(DomainModel):
    title: str
    content: str = ""


class Presentation(DomainModel):
    file_name: str = "presentation.pptx"
    slides: list[Slide] = Field(..., min_length=1)


Cell = Union[str, int, float, bool, None]


class Sheet(DomainModel):
    name: str = "Sheet1"
    data: list[list[Cell]] = Field(default_factory=list)


class Spreadsheet(DomainModel):
    file_name: str = "spreadsheet.xlsx"
    sheets: list[Sheet] = Field(..., min_length=1)


class CalendarProposal(DomainModel):
    type: Literal["meeting", "task", "reminder"] = "meeting"
    title: str = Field(..., min_length=1)
    description: str = ""
    start: datetime | None = None
    end: datetime | None = None
    participant_ids: list[str] = Field(default_factory=list)


class TaskProposal(DomainModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    project_id: str | None = None
    assignee_id: str | None = None
    priority: TaskPriority = "Medium"
    due_date: datetime | None = None


ProjectPlanActionName = Literal[
    "add_phase",
    "add_multiple_phases",
    "update_phase",
    "delete_phase",
    "set_budget",
    "add_expense",
    "query",
]


class ProjectPlanChange(DomainModel):
    """Cambio propuesto al plan/presupuesto de un proyecto.

    El nombre de la acción se valida aquí; el contenido del payload se revisa
    al confirmar, donde cada acción tiene su propio mensaje de rechazo.
    """

    action: ProjectPlanActionName
    payload: dict[str, Any] | list[Any] | None = None


class ImageRequest(DomainModel):
    prompt: str = Field(..., min_length=1)


class ChartDataset(DomainModel):
    label: str = ""
    data: list[float] = Field(default_factory=list)


class ChartSpec(DomainModel):
    chart_type: Literal["pie", "bar", "line"]
    title: str = ""
    labels: list[str] = Field(default_factory=list)
    datasets: list[ChartDataset] = Field(..., min_length=1)


ToolPayload = Union[
    MermaidDiagram,
    KanbanBoard,
    CodeSnippet,
    CollaborationRequest,
    RichDocument,
    WordDocument,
    Presentation,
    Spreadsheet,
    CalendarProposal,
    TaskProposal,
    ProjectPlanChange,
    ImageRequest,
    ChartSpec,
]

TOOL_PAYLOAD_MODELS: dict[Tool, type[DomainModel]] = {
    Tool.WHITEBOARD: MermaidDiagram,
    Tool.KANBAN: KanbanBoard,
    Tool.CODE: CodeSnippet,
    Tool.COLLABORATION: CollaborationRequest,
    Tool.DOCUMENT: RichDocument,
    Tool.WORD_DOCUMENT: WordDocument,
    Tool.POWERPOINT: Presentation,
    Tool.EXCEL_SHEET: Spreadsheet,
    Tool.CALENDAR: CalendarProposal,
    Tool.CREATE_TASK: TaskProposal,
    Tool.PROJECT_MANAGEMENT: ProjectPlanChange,
    Tool.IMAGE: ImageRequest,
    Tool.CHART: ChartSpec,
}


class ToolOutput(DomainModel):
    """Resultado parseado y validado de una respuesta del modelo.

    `data` es la variante tipada de `tool`; `raw_data` conserva el JSON tal
    cual llegó (útil para auditoría y para regenerar ficheros).
    """

    tool: Tool
    data: ToolPayload
    text: str
    raw_data: Any = None

    @model_validator(mode="before")
    @classmethod
    def _resolve_variant(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        values = dict(values)
        tool = Tool(values.get("tool"))
        data = values.get("data")
        values.setdefault("raw_data", data)
        if isinstance(data, DomainModel):
            return values
        # El Whiteboard recibe la sintaxis Mermaid como string plano.
        if tool is Tool.WHITEBOARD and isinstance(data, str):
            data = {"source": data}
        values["data"] = TOOL_PAYLOAD_MODELS[tool].model_validate(data)
        return values

    @property
    def is_proposal(self) -> bool:
        return self.tool in PROPOSAL_TOOLS


# -- Asset manager -------------------------------------------------------------


AssetActionType = Literal["add", "update", "remove", "query", "error"]


class AssetPayload(DomainModel):
    name: str | None = None
    description: str | None = None
    version: str | None = None
    website: str | None = None
    type: AssetType | None = None
    seats: int | None = Field(default=None, ge=0)
    cost: float | None = Field(default=None, ge=0)
    cost_frequency: CostFrequency | None = None
    renewal_date: str | None = Field(default=None, description="YYYY-MM-DD")
    assigned_to: str | None = None


class AssetAction(DomainModel):
    action: AssetActionType
    payload: AssetPayload | None = None
    asset_name: str | None = None
    response_text: str = Field(..., min_length=1)

    @field_validator("asset_name")
    @classmethod
    def _strip_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

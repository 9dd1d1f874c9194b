"""Operaciones de IA de la plantilla de empleados.

Responsabilidad:
- Construir el prompt de cada operación y llamar al `ChatModel`.
- Interpretar la respuesta (tool calls, JSON estructurado o texto libre).
- Traducir cualquier fallo a `ServiceError` con un contexto legible.

Por qué una clase:
- El backend (`ChatModel`) se inyecta una vez; los tests usan un doble en
  memoria y la CLI el adaptador OpenAI-compatible.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Literal, Sequence, TypeVar

from pydantic import BaseModel

from core.domain.chat import ChatMessage
from core.domain.models import (
    AppFile,
    Client,
    Company,
    Employee,
    MeetingMinute,
    Project,
    ProjectBudget,
    ProjectExpense,
    ProjectPhase,
    RichTextBlock,
    SoftwareAsset,
    Task,
    Team,
    Workspace,
    utcnow,
)
from core.domain.proposals import (
    HiringProposal,
    HiringProposals,
    InitialStructureProposal,
    MeetingSummary,
    MoveAnalysis,
    ProjectReport,
    Proposal,
)
from core.domain.tools import AssetAction, CollaborationRequest, ImageRequest, JobProfile, RichDocument, Tool, ToolOutput
from core.errors import ErrorKind, ServiceError, handle_service_error, to_service_error
from core.interfaces.llm import ChatModel
from core.services.context_builder import build_brainstorm_system_prompt, build_chat_system_prompt, build_company_context
from core.services.proposal_workflow import needs_approval, propose
from core.services.tool_dispatch import ChatReply, interpret_response, parse_asset_action, parse_structured

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

TextAction = Literal["improve", "summarize", "formal", "casual", "translate"]

SYSTEM_SPEAKER_ID = "facilitator"
COLLABORATOR_UNAVAILABLE = "I tried to find a colleague to help, but they seem to be unavailable right now."

COMPANY_INTERVIEW_INSTRUCTION = """You are an AI business consultant. Your goal is to help a user create a profile for their new company.
Ask one question at a time to gather the necessary information. Start by asking for the company name.
Then, ask about its industry, core products/services, target audience, and finally, its mission or core values.
After gathering all information, say "Thank you! I have everything I need to create the company profile." and nothing else.
Keep your questions concise and professional."""

_TEXT_ACTION_INSTRUCTIONS: dict[str, str] = {
    "improve": (
        "You are an expert copy editor. Your task is to revise the following text to improve its clarity, "
        "grammar, and flow. Retain the original meaning and tone. Respond with only the improved text, without "
        "any additional comments or explanations."
    ),
    "summarize": (
        "You are a text summarization engine. Condense the following text into its most essential points. The "
        "summary should be concise and capture the core message. Respond with only the summarized text, without "
        "any introductory phrases."
    ),
    "formal": (
        "You are a professional writing assistant. Rewrite the following text to adopt a more formal and "
        "professional tone, suitable for a business or academic context. Respond with only the rewritten text."
    ),
    "casual": (
        "You are a writing assistant who specializes in a friendly, conversational style. Rewrite the following "
        "text to sound more casual, approachable, and relaxed. Respond with only the rewritten text."
    ),
    "translate": (
        "You are a language translator. Translate the following text into {language}. Respond with only the "
        "translated text."
    ),
}


@dataclass(frozen=True)
class BrainstormReply:
    """Resultado de un participante; nunca lanza, se reporta por separado."""

    employee: Employee
    status: Literal["fulfilled", "rejected"]
    text: str | None = None
    tool_output: ToolOutput | None = None
    error: ServiceError | None = None

    @property
    def error_message(self) -> str | None:
        if self.error is None:
            return None
        return self.error.user_message

    def to_message(self) -> ChatMessage:
        text = self.text if self.status == "fulfilled" else (self.error_message or "An error occurred.")
        return ChatMessage.from_model(
            text or "",
            tool_output=self.tool_output,
            employee_id=self.employee.id,
            employee_name=self.employee.name,
        )


BrainstormCallback = Callable[[BrainstormReply], "Awaitable[None] | None"]


@dataclass
class ChatTurn:
    """Mensajes nuevos de un turno de chat y los efectos pendientes.

    - `proposal`: cambio de estado a la espera de aprobación humana.
    - `document`: borrador generado con la herramienta Document, listo para
      guardarse en el proyecto.
    - `model_calls`: llamadas al backend hechas en el turno (consulta al
      colega e imagen incluidas), para el contador de uso.
    """

    messages: list[ChatMessage] = field(default_factory=list)
    proposal: Proposal | None = None
    document: AppFile | None = None
    model_calls: int = 0

    @property
    def final_message(self) -> ChatMessage | None:
        return self.messages[-1] if self.messages else None


def _json_dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def _dump_models(models: Sequence[BaseModel] | BaseModel | None) -> str:
    if models is None:
        return "null"
    if isinstance(models, BaseModel):
        return _json_dump(models.model_dump(mode="json", by_alias=True))
    return _json_dump([m.model_dump(mode="json", by_alias=True) for m in models])


class AIService:
    def __init__(self, model: ChatModel) -> None:
        self._model = model

    # -- Primitivas -------------------------------------------------------------

    async def _generate(
        self,
        *,
        context: str,
        system_instruction: str | None,
        history: Sequence[ChatMessage],
        response_schema: dict[str, Any] | None = None,
        schema_name: str | None = None,
    ) -> str:
        try:
            return await self._model.generate(
                system_instruction=system_instruction,
                history=history,
                response_schema=response_schema,
                schema_name=schema_name,
            )
        except Exception as exc:
            handle_service_error(exc, context)

    async def _structured(
        self,
        model: type[ModelT],
        *,
        context: str,
        system_instruction: str,
        prompt: str,
    ) -> ModelT:
        text = await self._generate(
            context=context,
            system_instruction=system_instruction,
            history=[ChatMessage.from_user(prompt)],
            response_schema=model.model_json_schema(by_alias=True),
            schema_name=model.__name__,
        )
        return parse_structured(text, model, context=context)

    async def _complete(self, *, context: str, system_instruction: str | None, prompt: str) -> str:
        return await self._generate(
            context=context,
            system_instruction=system_instruction,
            history=[ChatMessage.from_user(prompt)],
        )

    # -- Conversación -------------------------------------------------------------

    async def continue_conversation(self, history: Sequence[ChatMessage], system_instruction: str) -> str:
        if not history:
            raise ValueError("history must contain at least the message to answer")
        return await self._generate(
            context="continuing the conversation",
            system_instruction=system_instruction,
            history=history,
        )

    async def interview_company(self, history: Sequence[ChatMessage]) -> str:
        """Entrevista guiada para crear el perfil de una empresa nueva."""

        return await self.continue_conversation(history, COMPANY_INTERVIEW_INSTRUCTION)

    async def summarize_conversation_for_profile(self, history: Sequence[ChatMessage]) -> str:
        conversation = "\n".join(f"{m.role}: {m.text}" for m in history)
        prompt = (
            "Based on the following conversation, generate a concise company profile. Include the company name, "
            "industry, services, audience, and mission.\n"
            f"Conversation:\n{conversation}"
        )
        return await self._complete(
            context="summarizing the conversation for a company profile",
            system_instruction=None,
            prompt=prompt,
        )

    async def chat_with_employee(
        self,
        workspace: Workspace,
        employee: Employee,
        history: Sequence[ChatMessage],
        *,
        project_id: str | None = None,
        include_plan: bool = False,
        currency: str = "USD",
        now: datetime | None = None,
    ) -> ChatTurn:
        """Un turno completo de chat uno-a-uno.

        `history` termina con el mensaje del usuario. Las herramientas con
        efectos se resuelven aquí: Collaboration consulta al colega y hace una
        segunda llamada; Image genera la imagen; Calendar/Create Task/Project
        Management se devuelven como `Proposal` pendiente.
        """

        now = now or utcnow()
        context = f"chatting with {employee.name}"
        system_instruction = build_chat_system_prompt(
            workspace,
            employee,
            project_id=project_id,
            include_plan=include_plan,
            currency=currency,
            now=now,
        )
        raw = await self.continue_conversation(history, system_instruction)
        reply = interpret_response(raw, context=context)
        turn = ChatTurn(messages=[self._model_message(reply, employee)], model_calls=1)

        tool_output = reply.tool_output
        if tool_output is None:
            return turn

        if tool_output.tool is Tool.COLLABORATION and isinstance(tool_output.data, CollaborationRequest):
            reply = await self._collaborate(
                workspace,
                employee,
                history,
                tool_output.data,
                system_instruction,
                turn,
                context=context,
            )
            tool_output = reply.tool_output if reply else None
        elif tool_output.tool is Tool.IMAGE and isinstance(tool_output.data, ImageRequest):
            turn.model_calls += 1
            turn.messages.append(await self._image_message(tool_output.data.prompt, employee))

        if tool_output is not None:
            self._attach_effects(turn, tool_output, employee, workspace, project_id, now)
        return turn

    def _model_message(self, reply: ChatReply, employee: Employee) -> ChatMessage:
        return ChatMessage.from_model(
            reply.text,
            tool_output=reply.tool_output,
            employee_id=employee.id,
            employee_name=employee.name,
        )

    async def _collaborate(
        self,
        workspace: Workspace,
        employee: Employee,
        history: Sequence[ChatMessage],
        request: CollaborationRequest,
        system_instruction: str,
        turn: ChatTurn,
        *,
        context: str,
    ) -> ChatReply | None:
        collaborator = workspace.find_employee(request.employee_id)
        if collaborator is None:
            logger.info("Collaborator %s not found for %s", request.employee_id, employee.name)
            turn.messages = [ChatMessage.from_model(COLLABORATOR_UNAVAILABLE, employee_id=employee.id, employee_name=employee.name)]
            return None

        # El aviso "voy a consultar a..." se conserva sin la herramienta.
        turn.messages[0] = turn.messages[0].model_copy(update={"tool_output": None})
        answer = await self.get_collaborator_response(collaborator, request.question, workspace.company)
        turn.model_calls += 1

        original_request = next((m.text for m in reversed(history) if m.role == "user"), "")
        follow_up = ChatMessage.from_user(
            f'You asked your colleague, {collaborator.name}, the following question: "{request.question}".\n\n'
            f'They responded with: "{answer}".\n\n'
            "Now, use this new information to construct your final, synthesized response to the user's "
            f'original request. The user\'s original request was: "{original_request}". Address the user directly.'
        )
        raw = await self.continue_conversation([*history, follow_up], system_instruction)
        turn.model_calls += 1
        final = interpret_response(raw, context=context)
        turn.messages.append(self._model_message(final, employee))
        return final

    async def _image_message(self, prompt: str, employee: Employee) -> ChatMessage:
        try:
            image = await self.generate_image(prompt)
        except ServiceError as exc:
            return ChatMessage.from_model(exc.user_message, employee_id=employee.id, employee_name=employee.name)
        return ChatMessage.from_model(
            f'Here is the image I generated for: "{prompt}"',
            employee_id=employee.id,
            employee_name=employee.name,
            generated_image_base64=image,
        )

    @staticmethod
    def _attach_effects(
        turn: ChatTurn,
        tool_output: ToolOutput,
        employee: Employee,
        workspace: Workspace,
        project_id: str | None,
        now: datetime,
    ) -> None:
        if needs_approval(tool_output):
            turn.proposal = propose(tool_output, proposed_by=employee.id, project_id=project_id)
            return
        if tool_output.tool is Tool.DOCUMENT and isinstance(tool_output.data, RichDocument):
            project = workspace.get_project(project_id)
            if project is None:
                return
            turn.document = AppFile(
                id=f"file_{now.strftime('%Y%m%d%H%M%S%f')}",
                parent_id=project.id,
                parent_type="project",
                type="file",
                name=tool_output.data.file_name,
                content=json.dumps([b.model_dump(mode="json", by_alias=True) for b in tool_output.data.content]),
                mime_type="application/json",
                created_at=now,
                updated_at=now,
                author_id=employee.id,
                author_name=employee.name,
                status="Draft",
            )

    # -- Brainstorm ---------------------------------------------------------------

    async def get_brainstorm_responses(
        self,
        history: Sequence[ChatMessage],
        participants: Sequence[Employee],
        company: Company,
        on_response: BrainstormCallback | None = None,
        *,
        project: Project | None = None,
        client: Client | None = None,
        minutes: Sequence[MeetingMinute] = (),
        files: Sequence[AppFile] = (),
    ) -> list[BrainstormReply]:
        """Fan-out concurrente: una llamada por participante.

        Cada resultado (éxito o fallo) se entrega a `on_response` en cuanto
        se resuelve. El conjunto nunca falla: la lista final conserva el
        orden de `participants`.
        """

        async def ask(employee: Employee) -> BrainstormReply:
            context = f"brainstorming with {employee.name}"
            system_instruction = build_brainstorm_system_prompt(
                employee,
                participants,
                company,
                project=project,
                client=client,
                minutes=minutes,
                files=files,
            )
            try:
                raw = await self.continue_conversation(history, system_instruction)
                reply = interpret_response(raw, context=context)
                result = BrainstormReply(employee, "fulfilled", text=reply.text, tool_output=reply.tool_output)
            except Exception as exc:
                result = BrainstormReply(employee, "rejected", error=to_service_error(exc, context))
            if on_response is not None:
                await _deliver(on_response, result)
            return result

        return list(await asyncio.gather(*(ask(e) for e in participants)))

    async def summarize_brainstorm_session(
        self,
        history: Sequence[ChatMessage],
        topic: str,
        participants: Sequence[Employee],
        company_profile: str,
        *,
        today: date | None = None,
    ) -> MeetingSummary:
        transcript = "\n".join(
            f"User: {m.text}" if m.role == "user" else f"{m.employee_name}: {m.text}"
            for m in history
            if not m.is_typing and m.employee_id != SYSTEM_SPEAKER_ID
        )
        participant_list = ", ".join(f"{p.name} ({p.job_profile})" for p in participants)
        system_instruction = f"""You are an expert AI assistant specializing in summarizing meeting transcripts into formal meeting minutes.
Analyze the provided meeting transcript and company profile.
Your output must be a single, structured markdown document.

The meeting minutes should include the following sections:
1.  **Attendees**: List all participants.
2.  **Objective**: A brief, one-sentence summary of the meeting's goal based on the topic and discussion.
3.  **Key Discussion Points**: A bulleted list summarizing the main topics and ideas discussed.
4.  **Decisions Made**: A bulleted list of any concrete decisions that were reached. If no decisions were made, state that clearly.
5.  **Action Items**: A bulleted list of all tasks or follow-ups assigned during the meeting. Each item should clearly state WHO is responsible and WHAT the task is.

Company Profile for context: "{company_profile}"
Meeting Topic: "{topic}"
Attendees: {participant_list}

Transcript is provided in the user prompt.

Generate the meeting minutes now. Your response should ONLY be the markdown content of the minutes."""
        content = await self._complete(
            context="summarizing a brainstorm session",
            system_instruction=system_instruction,
            prompt=f"Here is the transcript of the meeting:\n\n{transcript}",
        )
        day = (today or utcnow().date()).isoformat()
        return MeetingSummary(title=f"Meeting Minutes: {topic} - {day}", content=content.strip())

    # -- Colaboración y utilidades de texto ------------------------------------------

    async def get_collaborator_response(self, collaborator: Employee, question: str, company: Company) -> str:
        system_instruction = (
            "You are being consulted by a colleague. Please provide a concise and direct answer to their question.\n"
            f'Your persona is defined by your system instruction: "{collaborator.system_instruction}"\n\n'
            f"{build_company_context(company)}\n\n"
            "Provide a direct answer to the following question from your colleague:"
        )
        return await self._complete(
            context=f"getting a response from collaborator {collaborator.name}",
            system_instruction=system_instruction,
            prompt=question,
        )

    async def generate_team_description(self, company_profile: str, team_name: str) -> str:
        system_instruction = (
            "You are an expert business consultant. Your task is to generate a concise, one-sentence description "
            "for a company team based on the company's profile and the team's name. The description should "
            "clearly state the team's primary function and goals."
        )
        prompt = (
            f'Company Profile: "{company_profile}"\n'
            f'Team Name: "{team_name}"\n\n'
            "Generate the team description now."
        )
        text = await self._complete(
            context="generating a team description",
            system_instruction=system_instruction,
            prompt=prompt,
        )
        return text.strip()

    async def perform_text_action(
        self,
        text: str,
        action: TextAction,
        target_language: str = "English",
    ) -> str:
        template = _TEXT_ACTION_INSTRUCTIONS.get(action)
        if template is None:
            raise ServiceError("Invalid text action provided.", kind=ErrorKind.BAD_REQUEST)
        result = await self._complete(
            context=f"performing text action: {action}",
            system_instruction=template.format(language=target_language),
            prompt=text,
        )
        return result.strip()

    async def generate_image(self, prompt: str) -> str:
        context = "generating an image"
        try:
            image = await self._model.generate_image(prompt)
            if not image:
                raise ValueError("Image generation returned no images.")
            return image
        except Exception as exc:
            handle_service_error(exc, context)

    # -- Generadores estructurados ---------------------------------------------------

    async def get_hiring_proposals(
        self,
        company_profile: str,
        teams: Sequence[Team],
        employees: Sequence[Employee],
        clients: Sequence[Client],
        user_need: str,
    ) -> list[HiringProposal]:
        existing_employees = "\n".join(f"- {e.name} ({e.job_profile})" for e in employees) or "None"
        existing_clients = "\n".join(f"- {c.name} ({c.status})" for c in clients) or "None"
        job_profiles = ", ".join(p.value for p in JobProfile)
        system_instruction = f"""You are an expert AI HR Specialist for a company.
Company Profile: "{company_profile}"
Existing Teams: [{", ".join(t.name for t in teams)}]
Existing Clients:
{existing_clients}
Existing Employees:
{existing_employees}
Available Standard Job Profiles for inspiration: [{job_profiles}]

**Note on special roles:**
- **Asset Manager:** This is a crucial role responsible for managing the company's software licenses and SaaS subscriptions. Their primary interface for this will be conversational. If the user's need involves tracking software, licenses, subscriptions, or digital assets, this is the perfect role to propose.
- **Data Analyst:** A specialist role for analyzing data and creating visual reports (charts). If the user's need involves data visualization, analysis of trends (financial, sales, marketing, etc.), propose this role.

Your task is to analyze the user's hiring need and propose one or more candidates.

**Analysis of User Request:**
1.  **Specificity Check:** First, determine if the user's request is specific (e.g., "hire a senior backend developer") or vague (e.g., "we need help with marketing and getting new customers").
2.  **Specific Requests:** If the request is specific, generate a single, perfectly tailored employee proposal.
3.  **Vague Requests:** If the request is vague, generate up to three distinct and relevant job profile proposals that could address the user's need. Each proposal must be a complete, hireable candidate.

**Proposal Requirements (for each candidate):**
-   **Team:** Determine the best team. If an existing one fits, use it. If not, create a new team name.
-   **New Team Description:** If you create a new team, you MUST provide a concise, one-sentence description for it in the `teamDescription` field. Omit this field if using an existing team.
-   **Job Profile:** Invent a specific and descriptive job title.
-   **Candidate Details:** Suggest a plausible name and gender ('Male' or 'Female').
-   **System Instruction:** Generate a detailed system instruction for the AI's persona, responsibilities, and how it should interact within the company context.
-   **Reasoning:** Provide a brief explanation for your choices, highlighting how this role addresses the user's need.
-   **OCEAN Profile:** Assign a psychological OCEAN personality profile with scores from 0-100 for each trait.
-   **Existing Employee Check:** You MUST check if a similar employee already exists. If so, mention this in your reasoning and justify the new hire.

You MUST respond with ONLY a valid JSON object matching the provided schema. The response must be an object with a "proposals" key, which contains an array of 1 to 3 candidate proposal objects."""
        result = await self._structured(
            HiringProposals,
            context="creating a hiring proposal",
            system_instruction=system_instruction,
            prompt=f'Here is the hiring need: "{user_need}"',
        )
        return result.proposals

    async def get_initial_structure_proposal(self, company_profile: str) -> InitialStructureProposal:
        system_instruction = f"""You are "Alex", a highly efficient Personal Assistant AI for a new company.
Your first task is to analyze the company's profile and propose an initial organizational structure.
This includes suggesting key teams and essential employee roles within them.
The proposed roles should be operational and foundational. Avoid creating high-level executive positions like CEO, CTO, or "Head of" roles for this initial setup. Focus on the doers who perform the core tasks.
For each team, provide a name and a brief description of its function.
For each employee, provide a plausible name, a gender ('Male' or 'Female') that aligns with the name, a specific job title, a detailed system instruction for their AI persona, and a unique OCEAN personality profile with scores from 0-100 for each of the five traits. The system instruction should define their role, responsibilities, and personality, written from the perspective of the AI employee.
The goal is to create a foundational team that can hit the ground running.
Company Profile: "{company_profile}"

You MUST respond with ONLY a valid JSON object matching the provided schema. Do not include any other text, comments, or markdown formatting."""
        return await self._structured(
            InitialStructureProposal,
            context="proposing an initial company structure",
            system_instruction=system_instruction,
            prompt="Please generate the initial organizational structure proposal.",
        )

    async def get_employee_move_analysis(
        self,
        company: Company,
        teams: Sequence[Team],
        employees: Sequence[Employee],
        employee_to_move: Employee,
        destination_team_id: str,
    ) -> MoveAnalysis:
        source = next((t for t in teams if t.id == employee_to_move.team_id), None)
        destination = next((t for t in teams if t.id == destination_team_id), None)
        if source is None or destination is None:
            raise ServiceError("Source or destination team not found.", kind=ErrorKind.NOT_FOUND)

        def describe(team: Team) -> str:
            members = [e for e in employees if e.team_id == team.id and e.id != employee_to_move.id]
            member_list = "\n".join(f"- {e.name} ({e.job_profile})" for e in members) or "None"
            return f"- **Name:** {team.name}\n- **Description:** {team.description}\n- **Current Members:**\n{member_list}"

        move_context = (
            f"**Company Profile:** {company.profile}\n"
            f"**Employee to Move:** {employee_to_move.name} ({employee_to_move.job_profile})\n\n"
            f"**Source Team (before move):**\n{describe(source)}\n\n"
            f"**Destination Team (before move):**\n{describe(destination)}"
        )
        system_instruction = """You are an expert organizational consultant AI. Your task is to analyze the strategic impact of moving an employee from one team to another.
Based on the provided context, you must:
1.  **Analyze the Impact:** Write a concise, one-paragraph analysis explaining the consequences, both positive and negative, of this move. Consider skill distribution, team focus, potential bottlenecks, and synergies.
2.  **Suggest Source Team Changes:** Based on its new composition (without the moved employee), suggest an OPTIONAL new name and description for the source team. If the original name and description are still perfectly suitable, omit these fields.
3.  **Suggest Destination Team Changes:** Based on its new composition (with the new employee), suggest an OPTIONAL new name and description for the destination team. If the original name and description are still perfectly suitable, omit these fields.

You MUST respond with ONLY a valid JSON object matching the provided schema. Do not include any other text or comments."""
        return await self._structured(
            MoveAnalysis,
            context="analyzing employee move",
            system_instruction=system_instruction,
            prompt=f"Analyze the following employee move:\n{move_context}",
        )

    async def get_asset_manager_response(
        self,
        prompt: str,
        assets: Sequence[SoftwareAsset],
        *,
        today: date | None = None,
    ) -> AssetAction:
        context = "getting asset manager response"
        assets_text = _dump_models(assets) if assets else "No assets are currently being tracked."
        day = (today or utcnow().date()).isoformat()
        system_instruction = f"""You are an expert AI Software Asset Manager. Your sole responsibility is to manage the company's software and SaaS assets based on user commands. You will be provided with the current list of assets in JSON format. Your responses MUST be a JSON object that dictates the action to be taken.

**Current Date:** {day}

**Actions & Response Schema:**
You have four primary actions: `add`, `update`, `remove`, and `query`.

1.  **add**: When the user wants to add a new asset.
    -   You MUST infer all required fields for a new asset from the user's prompt: `name`, `type`, `seats`, `cost`, `costFrequency`, `renewalDate`, and `assignedTo`. The `description`, `version`, and `website` fields are optional.
    -   If a required field is missing, you MUST ask the user for it in your `responseText` and set the action to `query`.
    -   For renewal dates, if the user says "next year", calculate the date one year from today.
    -   The `payload` should contain the complete new asset object.

2.  **update**: When the user wants to change an existing asset.
    -   You MUST identify the asset to update by its name from the user's prompt (use the `assetName` field for this).
    -   The `payload` should contain ONLY the fields that need to be changed.
    -   If you cannot uniquely identify the asset, ask for clarification.

3.  **remove**: When the user wants to delete an asset.
    -   You MUST identify the asset to remove by its name (use the `assetName` field).
    -   The `payload` is not needed for this action.

4.  **query**: For questions, greetings, or when you need more information from the user.
    -   Use this for answering questions about the asset list (e.g., "How much do we spend monthly?", "When is the Figma renewal?").
    -   Use this if the user's command is ambiguous or incomplete.

**Error Handling:**
-   If you cannot fulfill a request, set the action to `error` and explain why in the `responseText`.

You MUST ALWAYS respond with ONLY a valid JSON object matching the provided schema. Do not include any other text, comments, or markdown formatting."""
        text = await self._generate(
            context=context,
            system_instruction=system_instruction,
            history=[ChatMessage.from_user(f'Current Assets:\n{assets_text}\n\nUser Command: "{prompt}"')],
            response_schema=AssetAction.model_json_schema(by_alias=True),
            schema_name="AssetAction",
        )
        return parse_asset_action(text, context=context)

    async def generate_project_completion_report(
        self,
        project: Project,
        phases: Sequence[ProjectPhase],
        budget: ProjectBudget | None,
        expenses: Sequence[ProjectExpense],
        tasks: Sequence[Task],
        meeting_minutes: Sequence[MeetingMinute],
    ) -> list[RichTextBlock]:
        system_instruction = """You are an expert AI Project Manager tasked with writing a final, comprehensive project completion report.
Analyze all the provided data for the project and generate a structured, professional report.
The report should be clear, concise, and suitable for executive review. It should include sections for:
1.  Executive Summary: A brief overview of the project and its outcome.
2.  Project Objectives: A restatement of the project's goals.
3.  Timeline Summary: A comparison of the planned phases versus actual completion.
4.  Financial Summary: A breakdown of the budget, actual spending, and variance.
5.  Key Outcomes & Deliverables: A bulleted list of major achievements and completed items.

You MUST respond with ONLY a valid JSON object whose "blocks" key holds an array matching the RichTextBlock schema. Do not include any other text, comments, or markdown formatting."""
        task_summary = [{"id": t.id, "title": t.title, "status": t.status} for t in tasks]
        minutes_summary = [{"title": m.title, "timestamp": m.timestamp.isoformat()} for m in meeting_minutes]
        project_data = (
            f"Project Data: {_dump_models(project)}\n"
            f"Phases: {_dump_models(phases)}\n"
            f"Budget: {_dump_models(budget)}\n"
            f"Expenses: {_dump_models(expenses)}\n"
            f"Tasks: {_json_dump(task_summary)}\n"
            f"Meeting Minutes (summary): {_json_dump(minutes_summary)}"
        )
        report = await self._structured(
            ProjectReport,
            context="generating project completion report",
            system_instruction=system_instruction,
            prompt=f"Please generate the final project report based on this data:\n{project_data}",
        )
        return report.blocks


async def _deliver(callback: BrainstormCallback, reply: BrainstormReply) -> None:
    try:
        outcome = callback(reply)
        if inspect.isawaitable(outcome):
            await outcome
    except Exception:
        logger.exception("Brainstorm callback failed for %s", reply.employee.name)

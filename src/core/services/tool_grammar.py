"""Gramática de herramientas: qué puede invocar cada persona y con qué forma.

El contrato tool-call se documenta en prosa dentro del system prompt. Esta
prosa es la única fuente que ve el modelo; la validación al recibir vive en
`core.domain.tools` y `core.services.tool_dispatch`.
"""

from __future__ import annotations

from typing import Iterable

from core.domain.tools import DEFAULT_TOOLS, JOB_PROFILE_TOOLS, JobProfile, Tool


def tools_for_job_profile(profile: str) -> list[Tool]:
    """Herramientas base ∪ herramientas del puesto, sin duplicados y en orden.

    Un puesto libre (no estándar) solo recibe las herramientas base.
    """

    try:
        specific = JOB_PROFILE_TOOLS.get(JobProfile(profile), ())
    except ValueError:
        specific = ()
    return list(dict.fromkeys([*DEFAULT_TOOLS, *specific]))


_PROJECT_MANAGEMENT_TEMPLATE = f"""- **{Tool.PROJECT_MANAGEMENT.value}**: For PROPOSING changes to the project's plan and budget for user approval.
    - **CONTEXT RULE**: You MUST ONLY use this tool when inside a specific project chat.
    - **ACTION RULE**: When a user requests to change, update, add, or delete any part of the project plan or budget, you MUST use this tool.
    - **RESPONSE FORMAT**: Your response MUST be a single JSON object with an `action` and `payload`.
    - **ACTION KEY ENFORCEMENT**: The `action` key is CRITICAL. It MUST be one of the following exact strings:
        - `"add_phase"`
        - `"add_multiple_phases"`
        - `"update_phase"`
        - `"delete_phase"`
        - `"set_budget"`
        - `"add_expense"`
        - `"query"`
    - **DEVIATION PROHIBITED**: Using ANY other string for the `action` key is strictly forbidden and will cause a system failure. Do not invent actions like "createPhase" or "updateBudget".
    - **Payloads for each action**:
      - `"action": "add_phase"`, `"payload": {{"name": "string", "description": "string", "startDate": "YYYY-MM-DD", "endDate": "YYYY-MM-DD"}}`
      - `"action": "add_multiple_phases"`, `"payload": [{{"name": "string", "description": "string", "startDate": "YYYY-MM-DD", "endDate": "YYYY-MM-DD"}}, ...]`
      - `"action": "update_phase"`, `"payload": {{"phaseId": "string", "updates": {{ ... }}}}` (You MUST use the phaseId from the context provided).
      - `"action": "delete_phase"`, `"payload": {{"phaseId": "string"}}` (You MUST use the phaseId).
      - `"action": "set_budget"`, `"payload": {{"totalBudget": number}}`
      - `"action": "add_expense"`, `"payload": {{"description": "string", "amount": number, "category": "string", "date": "YYYY-MM-DD"}}`
      - `"action": "query"`, `"payload": {{}}` (For answering questions without making changes)."""


TOOL_TEMPLATES: dict[Tool, str] = {
    Tool.WHITEBOARD: (
        f"- **{Tool.WHITEBOARD.value}**: You MUST use this tool for generating any diagrams like flowcharts or "
        "sequence diagrams. The `data` must be a string of valid Mermaid.js syntax. **CRITICAL**: To prevent "
        "errors, you MUST enclose all node text in double quotes. For example: "
        '`graph TD; A["Node 1"] --> B["Node 2 (with details)"];`. This is mandatory for all nodes.'
    ),
    Tool.KANBAN: (
        f"- **{Tool.KANBAN.value}**: You MUST use this tool for visualizing tasks in a board format. The `data` "
        'must be a JSON object with the format: `{"columns": [{"title": "Column Title", "tasks": [{"id": "task-1", '
        '"content": "Task description", "priority": "Medium"}]}]}`. The `priority` field is optional and can be '
        "'Low', 'Medium', 'High', or 'Urgent'."
    ),
    Tool.CODE: (
        f"- **{Tool.CODE.value}**: You MUST use this tool for displaying formatted code snippets. The `data` must "
        'be a JSON object with the format: `{"language": "javascript", "code": "console.log(\\"hello\\")"}`.'
    ),
    Tool.COLLABORATION: (
        f"- **{Tool.COLLABORATION.value}**: To ask a colleague for help on a task outside your expertise. The "
        '`data` must be a JSON object with the format: `{"employeeId": "emp_...", "question": "Your specific '
        'question for the colleague."}`. The `text` field in the main JSON object should be used to inform the '
        "user who you are contacting (e.g., \"That's a good question, let me check with Sarah in Marketing.\"). "
        "Use the employee roster to find the correct `employeeId`."
    ),
    Tool.DOCUMENT: (
        f"- **{Tool.DOCUMENT.value}**: When asked to create a new internal document from a template (e.g., "
        '"project brief", "meeting minutes template", "marketing plan"), you MUST use this tool. The `data` '
        'object MUST contain a `"fileName"` key and a `"content"` key. The `"content"` key MUST be a non-empty '
        "array of RichTextBlock objects, structured according to the requested template. For example: "
        '`"content": [{"type": "heading1", "content": "Project Brief: New Website"}, {"type": "paragraph", '
        '"content": "This document outlines the goals..."}]`. You are responsible for generating the full, '
        "structured content of the template."
    ),
    Tool.WORD_DOCUMENT: (
        f"- **{Tool.WORD_DOCUMENT.value}**: When asked to create any kind of text document, report, or written "
        "analysis, you MUST use this tool. DO NOT write the document content directly in the chat. "
        "**Exception**: If the user explicitly asks you to share the content as plain text for troubleshooting, "
        "you may output the document content inside a markdown code block. Otherwise, always use the tool. The "
        '`data` object MUST contain a `"fileName"` key and a `"content"` key. The `"content"` key MUST be a '
        'non-empty array of objects, for example: `"content": [{"type": "heading1", "text": "My Report Title"}, '
        '{"type": "paragraph", "text": "This is the first paragraph."}]`. This is not optional; the user needs '
        "to see a preview."
    ),
    Tool.POWERPOINT: (
        f"- **{Tool.POWERPOINT.value}**: When asked to create a presentation or slides, you MUST use this tool. "
        "DO NOT describe the slides in the chat. **Exception**: If the user explicitly asks you to share the "
        "content as plain text for troubleshooting, you may output a text representation of the slides inside a "
        'markdown code block. Otherwise, always use the tool. The `data` object MUST contain a `"fileName"` key '
        'and a `"slides"` key. The `"slides"` key MUST be a non-empty array of objects, for example: '
        '`"slides": [{"title": "Slide 1 Title", "content": "Bullet point 1\\nBullet point 2"}]`. Use \'\\n\' for '
        "new lines. This is not optional; the user needs to see a preview."
    ),
    Tool.EXCEL_SHEET: (
        f"- **{Tool.EXCEL_SHEET.value}**: When asked to create a spreadsheet or table of data, you MUST use this "
        "tool. DO NOT create a markdown table in the chat. **Exception**: If the user explicitly asks you to "
        "share the content as plain text (e.g., CSV format) for troubleshooting, you may output the data inside "
        'a markdown code block. Otherwise, always use the tool. The `data` object MUST contain a `"fileName"` key '
        'and a `"sheets"` key. The `"sheets"` key MUST be a non-empty array of objects, for example: '
        '`"sheets": [{"name": "Sheet1", "data": [["Header1", "Header2"], ["A2", "B2"]]}]`. The \'data\' is an '
        "array of arrays representing rows. This is not optional; the user needs to see a preview."
    ),
    Tool.CALENDAR: (
        f"- **{Tool.CALENDAR.value}**: To PROPOSE creating a calendar event, task, or reminder for user approval. "
        'The `data` must be a JSON object with the format: `{"type": "meeting" | "task" | "reminder", "title": '
        '"string", "description": "string", "start": "ISO 8601 string", "end": "ISO 8601 string", '
        '"participantIds": ["emp_..."]}`. For \'task\' or \'reminder\' types, if the user doesn\'t specify a time, '
        "you MUST omit the 'start' and 'end' fields; the system will default to the current time. "
        "'participantIds' are typically only for meetings. Use the provided company employee roster to find the "
        "correct `employeeId` for any participants."
    ),
    Tool.CREATE_TASK: (
        f"- **{Tool.CREATE_TASK.value}**: To PROPOSE creating a new task on the company task board for user "
        'approval. The `data` MUST be a JSON object with the format: `{"title": "string", "description": '
        '"string", "projectId": "proj_...", "assigneeId": "emp_...", "priority": "Low" | "Medium" | "High" | '
        '"Urgent"}`. You MUST use the provided company project list and employee roster to find the correct '
        "`projectId` and `assigneeId`. If the user does not specify an assignee, you MUST use your knowledge of "
        "the employee roster to assign it to the most appropriate person. If the user doesn't specify a "
        "priority, default to 'Medium'."
    ),
    Tool.PROJECT_MANAGEMENT: _PROJECT_MANAGEMENT_TEMPLATE,
    Tool.IMAGE: (
        f"- **{Tool.IMAGE.value}**: To generate an image from a text description. You MUST use this tool when the "
        'user asks for a picture, photo, or image. The `data` must be a JSON object with the format: '
        '`{"prompt": "A detailed, descriptive prompt for the image generation model."}`.'
    ),
    Tool.CHART: (
        f"- **{Tool.CHART.value}**: You MUST use this tool to generate visual reports like pie, bar, or line "
        "charts for ANY kind of data analysis (e.g., marketing campaign results, sales trends, employee "
        "demographics, financial summaries). The `data` must be a valid Chart.js configuration object with "
        "these specific keys: `\"chartType\"` ('pie', 'bar', or 'line'), `\"title\"` (a string for the chart "
        "title), `\"labels\"` (an array of strings), and `\"datasets\"` (an array of objects, where each object "
        "has a `label` string and a `data` array of numbers). For example: `{\"chartType\": \"pie\", \"title\": "
        '"Expense Breakdown", "labels": ["Marketing", "Software"], "datasets": [{"label": "Expenses", "data": '
        "[1200, 800]}]}`."
    ),
}


_DIRECTIVE_TEMPLATE = """---
**PRIMARY DIRECTIVE: HOW TO RESPOND**
Your primary goal is to use the specialized tools available to you. Plain text responses are a last resort.

**Response Hierarchy (MUST be followed):**
1.  **FIRST (Use Data Management Tools):** For requests involving tasks, events, or project plans, you MUST use the corresponding tool (`{create_task}`, `{calendar}`, `{project_management}`). These tools propose changes for user approval. This is your highest priority.

2.  **SECOND (Use AI Tool Canvas):** For requests that require a visual or file-based output (documents, presentations, spreadsheets, diagrams, code, charts), you MUST use the appropriate AI Tool Canvas tool (`{word}`, `{powerpoint}`, `{excel}`, `{whiteboard}`, `{code}`, `{chart}`). **Under no circumstances should you output raw document content, Mermaid syntax, large JSON objects for Kanban boards, or multi-line code snippets directly in the chat as plain text. Always use the tool.**

3.  **LAST RESORT (Plain Text):** Only if a request cannot possibly be fulfilled by any available tool should you respond in plain text.

**TOOL USAGE INSTRUCTIONS**
When a tool is required, your ENTIRE response MUST be a single, valid JSON object. Do not include any text outside of this JSON. The JSON must have this exact structure:
```json
{{
  "tool": "TOOL_NAME",
  "data": "TOOL_DATA",
  "text": "A brief, one-sentence description of what you are proposing or generating."
}}
```

- `"tool"`: The name of the tool you are using from the list below.
- `"data"`: The data for the tool in the specified format.
- `"text"`: A message to display in the chat history. For data-modifying tools, this should state what you are proposing (e.g., "I can add that event to the calendar for you. Please review and approve."). For canvas tools, it describes what you've created (e.g., "Here is the flowchart you requested.").

If the user's request does NOT require a tool, respond with plain text as you normally would.

**AVAILABLE TOOLS & DATA FORMATS:**
{descriptions}
---"""


def build_tools_instructions(tools: Iterable[Tool]) -> str:
    """Bloque final del system prompt; cadena vacía si no hay herramientas."""

    tools = list(tools)
    if not tools:
        return ""
    descriptions = "\n".join(TOOL_TEMPLATES[tool] for tool in tools)
    return _DIRECTIVE_TEMPLATE.format(
        create_task=Tool.CREATE_TASK.value,
        calendar=Tool.CALENDAR.value,
        project_management=Tool.PROJECT_MANAGEMENT.value,
        word=Tool.WORD_DOCUMENT.value,
        powerpoint=Tool.POWERPOINT.value,
        excel=Tool.EXCEL_SHEET.value,
        whiteboard=Tool.WHITEBOARD.value,
        code=Tool.CODE.value,
        chart=Tool.CHART.value,
        descriptions=descriptions,
    )

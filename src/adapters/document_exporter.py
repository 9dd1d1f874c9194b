"""Exportación de documentos generados por las personas.

Por qué está en adapters:
- HTML/PDF/XLSX son detalles de infraestructura (Jinja2/WeasyPrint/openpyxl).
- El Core solo conoce `RichTextBlock` y los payloads de herramientas.

Salidas:
- Document / Word Document / informe de cierre → HTML o PDF.
- PowerPoint → HTML o PDF (una sección por diapositiva).
- Excel Sheet → XLSX.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape
from openpyxl import Workbook

from core.domain.models import RichTextBlock
from core.domain.tools import FILE_TOOLS, Presentation, RichDocument, Spreadsheet, Tool, ToolOutput, WordDocument

logger = logging.getLogger(__name__)

_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

_INVALID_SHEET_CHARS = re.compile(r"[\[\]\*\?/\\:]")
_FILE_NAME_RE = re.compile(r"(.*?)(\.[^.]*)?$")


def _get_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def fix_extension(file_name: str, expected_extension: str) -> str:
    """Fuerza `expected_extension` sustituyendo una extensión corta existente."""

    if file_name.lower().endswith(expected_extension.lower()):
        return file_name
    last_dot = file_name.rfind(".")
    # Un punto cerca del final se considera extensión; si no, es parte del nombre.
    if last_dot > 0 and last_dot > len(file_name) - 6:
        return f"{file_name[:last_dot]}{expected_extension}"
    return f"{file_name}{expected_extension}"


def find_unique_file_name(file_name: str, existing_file_names: Iterable[str]) -> str:
    """`name.ext` → `name (1).ext`, `name (2).ext`… hasta no colisionar."""

    taken = set(existing_file_names)
    if file_name not in taken:
        return file_name
    match = _FILE_NAME_RE.match(file_name)
    base = (match.group(1) if match else "") or file_name
    extension = (match.group(2) if match else "") or ""
    counter = 1
    candidate = f"{base} ({counter}){extension}"
    while candidate in taken:
        counter += 1
        candidate = f"{base} ({counter}){extension}"
    return candidate


def _list_items(block: RichTextBlock) -> list[str]:
    return [line for line in str(block.content).split("\n") if line.strip()]


def _check_items(block: RichTextBlock) -> list[tuple[bool, str]]:
    items = []
    for line in _list_items(block):
        stripped = line.strip()
        checked = stripped.lower().startswith("[x]")
        text = stripped[3:].strip() if stripped.startswith(("[x]", "[X]", "[ ]")) else stripped
        items.append((checked, text))
    return items


def render_blocks_html(*, title: str, blocks: Sequence[RichTextBlock], subtitle: str | None = None) -> str:
    """Renderiza un HTML autocontenido para un documento de bloques."""

    generated_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
    template = _get_env().get_template("document.html")
    return template.render(
        title=title,
        subtitle=subtitle,
        blocks=blocks,
        slides=None,
        generated_at=generated_at,
        list_items=_list_items,
        check_items=_check_items,
    )


def render_presentation_html(presentation: Presentation) -> str:
    generated_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
    slides = [
        {
            "title": slide.title,
            "points": [p.strip() for p in slide.content.split("\n") if p.strip()],
        }
        for slide in presentation.slides
    ]
    template = _get_env().get_template("document.html")
    return template.render(
        title=presentation.file_name,
        subtitle=None,
        blocks=[],
        slides=slides,
        generated_at=generated_at,
        list_items=_list_items,
        check_items=_check_items,
    )


def word_to_blocks(document: WordDocument) -> list[RichTextBlock]:
    blocks = []
    for item in document.content:
        block_type = item.type if item.type in ("heading1", "heading2") else "paragraph"
        blocks.append(RichTextBlock(type=block_type, content=item.text))
    return blocks


def _write_html(html: str, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(html, encoding="utf-8")
    return output_path


def _write_pdf(html: str, output_path: Path) -> Path:
    """PDF vía WeasyPrint.

    Diseño:
    - Sincrónico: WeasyPrint es CPU/IO local.
    - Import diferido: WeasyPrint necesita pango/cairo al importarse y solo
      la salida PDF depende de ello.
    """

    from weasyprint import HTML

    output_path.parent.mkdir(parents=True, exist_ok=True)
    HTML(string=html, base_url=str(_TEMPLATES_DIR)).write_pdf(str(output_path))
    return output_path


def export_blocks(
    *,
    title: str,
    blocks: Sequence[RichTextBlock],
    output_path: Path,
    subtitle: str | None = None,
) -> Path:
    """Exporta bloques a HTML o PDF según la extensión de `output_path`."""

    html = render_blocks_html(title=title, blocks=blocks, subtitle=subtitle)
    if output_path.suffix.lower() == ".pdf":
        return _write_pdf(html, output_path)
    return _write_html(html, output_path)


def _sheet_title(name: str, used: set[str]) -> str:
    title = _INVALID_SHEET_CHARS.sub(" ", name).strip()[:31] or "Sheet"
    return find_unique_file_name(title, used)[:31]


def export_spreadsheet(spreadsheet: Spreadsheet, output_path: Path) -> Path:
    workbook = Workbook()
    workbook.remove(workbook.active)
    used: set[str] = set()
    for sheet in spreadsheet.sheets:
        title = _sheet_title(sheet.name, used)
        used.add(title)
        worksheet = workbook.create_sheet(title=title)
        for row in sheet.data:
            worksheet.append(list(row))
    output_path.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(str(output_path))
    return output_path


def export_tool_output(
    tool_output: ToolOutput,
    output_dir: Path,
    *,
    existing_file_names: Iterable[str] = (),
    pdf: bool = True,
) -> Path:
    """Materializa el fichero de una herramienta de documentos.

    El nombre se corrige a la extensión real y se desambigua frente a
    `existing_file_names` (y a lo que ya exista en `output_dir`).
    """

    data = tool_output.data
    if tool_output.tool not in FILE_TOOLS and tool_output.tool is not Tool.DOCUMENT:
        raise ValueError(f"{tool_output.tool.value} does not produce a file")

    taken = set(existing_file_names)
    if output_dir.is_dir():
        taken.update(p.name for p in output_dir.iterdir())
    page_ext = ".pdf" if pdf else ".html"

    if isinstance(data, Spreadsheet):
        name = find_unique_file_name(fix_extension(data.file_name or "spreadsheet.xlsx", ".xlsx"), taken)
        return export_spreadsheet(data, output_dir / name)

    if isinstance(data, Presentation):
        name = find_unique_file_name(fix_extension(data.file_name or "presentation", page_ext), taken)
        html = render_presentation_html(data)
        return _write_pdf(html, output_dir / name) if pdf else _write_html(html, output_dir / name)

    if isinstance(data, WordDocument):
        title, blocks = data.file_name, word_to_blocks(data)
    elif isinstance(data, RichDocument):
        title, blocks = data.file_name, list(data.content)
    else:
        raise ValueError(f"Unexpected payload for {tool_output.tool.value}")

    name = find_unique_file_name(fix_extension(title or "document", page_ext), taken)
    logger.info("Exporting %s to %s", tool_output.tool.value, output_dir / name)
    return export_blocks(title=Path(title).stem or title, blocks=blocks, output_path=output_dir / name)

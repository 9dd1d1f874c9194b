"""Conversión del formato de texto enriquecido interno (RichTextBlock)."""

from __future__ import annotations

import json
import re
from typing import Any, Iterable

from pydantic import TypeAdapter, ValidationError

from core.domain.models import RichTableContent, RichTextBlock

_BLOCKS = TypeAdapter(list[RichTextBlock])
_CHECK_PREFIX_RE = re.compile(r"^\[[xX ]\]\s*")


def parse_blocks(raw: Any) -> list[RichTextBlock] | None:
    """Valida una lista de bloques; `None` si `raw` no tiene esa forma."""

    try:
        return _BLOCKS.validate_python(raw)
    except ValidationError:
        return None


def _table_text(table: RichTableContent) -> str:
    return "\n".join(" | ".join(row) for row in table.rows)


def blocks_to_text(blocks: Iterable[RichTextBlock]) -> str:
    """Texto legible para incluir un documento en un prompt."""

    out: list[str] = []
    for block in blocks:
        if isinstance(block.content, RichTableContent):
            out.append(_table_text(block.content))
            continue
        content = block.content
        if block.type == "heading1":
            out.append(f"# {content}")
        elif block.type == "heading2":
            out.append(f"## {content}")
        elif block.type in ("bulletList", "checkList"):
            out.append("\n".join(f"- {item}" for item in content.split("\n")))
        elif block.type == "numberedList":
            out.append("\n".join(f"{i}. {item}" for i, item in enumerate(content.split("\n"), start=1)))
        elif block.type == "codeBlock":
            out.append(f"```\n{content}\n```")
        elif block.type == "blockQuote":
            out.append("> " + content.replace("\n", "\n> "))
        elif block.type == "horizontalRule":
            out.append("---")
        else:
            out.append(content)
    return "\n\n".join(out)


def blocks_to_markdown(blocks: Iterable[RichTextBlock]) -> str:
    """Markdown con checklists reales (`- [x]`) y tablas GFM."""

    out: list[str] = []
    for block in blocks:
        if isinstance(block.content, RichTableContent):
            rows = block.content.rows
            if not rows:
                continue
            width = max(len(r) for r in rows)
            padded = [r + [""] * (width - len(r)) for r in rows]
            lines = ["| " + " | ".join(padded[0]) + " |", "|" + " --- |" * width]
            lines.extend("| " + " | ".join(r) + " |" for r in padded[1:])
            out.append("\n".join(lines))
            continue
        if block.type == "checkList":
            items = []
            for item in block.content.split("\n"):
                checked = item.lower().startswith("[x]")
                items.append(("- [x] " if checked else "- [ ] ") + _CHECK_PREFIX_RE.sub("", item))
            out.append("\n".join(items))
            continue
        out.append(blocks_to_text([block]))
    return "\n\n".join(out)


def stored_content_to_text(content: str | None, mime_type: str | None) -> str:
    """Texto de un fichero almacenado (JSON de bloques o texto plano).

    Un JSON inválido con mime `application/json` se trata como texto plano.
    """

    if not content:
        return ""
    if mime_type == "application/json":
        try:
            raw = json.loads(content)
        except json.JSONDecodeError:
            return content
        blocks = parse_blocks(raw)
        if blocks is not None:
            return blocks_to_text(blocks)
        return str(raw)
    return content

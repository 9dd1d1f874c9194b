"""Extracción y validación de tool calls en texto libre del modelo.

Flujo:
1) Buscar un candidato JSON (bloque ```json primero, luego primer `{` …
   último `}`; si ese tramo no parsea, un escaneo de llaves balanceadas).
2) Parsear y comprobar el sobre (`tool`/`data`/`text`, o
   `action`/`responseText` para el gestor de activos).
3) Validar el payload contra la variante tipada de su herramienta.

Regla de errores:
- Sin candidato, JSON inválido o sobre incompleto → texto plano (degradación
  silenciosa, el texto original se conserva tal cual).
- Sobre completo pero herramienta desconocida o payload inválido →
  `ServiceError(kind=INVALID_TOOL_PAYLOAD)`.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterator, TypeVar

from pydantic import BaseModel, ValidationError

from core.domain.tools import AssetAction, ToolOutput
from core.errors import ErrorKind, ServiceError, to_service_error, user_message_for

logger = logging.getLogger(__name__)

_FENCED_JSON_RE = re.compile(r"```json\s*([\s\S]*?)\s*```")

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class ChatReply:
    """Respuesta interpretada: texto a mostrar y, opcionalmente, la herramienta."""

    text: str
    tool_output: ToolOutput | None = None

    @property
    def is_plain(self) -> bool:
        return self.tool_output is None


def extract_json_candidate(text: str) -> str | None:
    match = _FENCED_JSON_RE.search(text)
    if match and match.group(1):
        return match.group(1)
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return None


def _balanced_objects(text: str) -> Iterator[str]:
    """Tramos `{...}` con llaves balanceadas, ignorando llaves dentro de strings."""

    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        end = -1
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    end = i
                    break
        if end == -1:
            return
        yield text[start : end + 1]
        start = text.find("{", start + 1)


def _loads_object(candidate: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _present(value: Any) -> bool:
    # Objetos y listas vacíos cuentan como presentes; "", 0, false y null no.
    if isinstance(value, (dict, list)):
        return True
    return bool(value)


def _has_keys(parsed: dict[str, Any], required: tuple[str, ...]) -> bool:
    return all(_present(parsed.get(key)) for key in required)


def _find_envelope(text: str, required: tuple[str, ...]) -> dict[str, Any] | None:
    candidate = extract_json_candidate(text)
    if candidate is None:
        return None
    parsed = _loads_object(candidate)
    if parsed is not None:
        return parsed if _has_keys(parsed, required) else None

    # Prosa con llaves sueltas alrededor del JSON: probar tramos balanceados.
    for span in _balanced_objects(text):
        parsed = _loads_object(span)
        if parsed is not None and _has_keys(parsed, required):
            return parsed
    return None


def extract_tool_output(text: str) -> dict[str, Any] | None:
    """Sobre `{"tool","data","text"}` sin validar, o `None` si no hay tool call."""

    envelope = _find_envelope(text, ("tool", "data", "text"))
    if envelope is None:
        logger.debug("No tool call found in model response; treating it as plain text")
    return envelope


def validate_tool_output(raw: dict[str, Any], *, context: str = "preparing a tool result") -> ToolOutput:
    try:
        return ToolOutput.model_validate(raw)
    except (ValidationError, ValueError) as exc:
        logger.warning("Invalid payload for tool %r: %s", raw.get("tool"), exc)
        raise ServiceError(
            user_message_for(ErrorKind.INVALID_TOOL_PAYLOAD, context),
            kind=ErrorKind.INVALID_TOOL_PAYLOAD,
            original_error=exc,
            context=context,
        ) from exc


def interpret_response(text: str, *, context: str = "preparing a tool result") -> ChatReply:
    envelope = extract_tool_output(text)
    if envelope is None:
        return ChatReply(text=text)
    tool_output = validate_tool_output(envelope, context=context)
    return ChatReply(text=tool_output.text, tool_output=tool_output)


def parse_asset_action(text: str, *, context: str = "getting asset manager response") -> AssetAction:
    """Ruta estrecha del gestor de activos.

    Sin sobre reconocible la respuesta se trata como consulta conversacional
    (`action="query"`) con el texto original.
    """

    envelope = _find_envelope(text, ("action", "responseText"))
    if envelope is None:
        if not text.strip():
            raise ServiceError(
                user_message_for(ErrorKind.MALFORMED_RESPONSE, context),
                kind=ErrorKind.MALFORMED_RESPONSE,
                context=context,
            )
        logger.debug("Asset manager reply has no action envelope; treating it as plain text")
        return AssetAction(action="query", response_text=text)
    try:
        return AssetAction.model_validate(envelope)
    except ValidationError as exc:
        logger.warning("Invalid asset action payload: %s", exc)
        raise ServiceError(
            user_message_for(ErrorKind.INVALID_TOOL_PAYLOAD, context),
            kind=ErrorKind.INVALID_TOOL_PAYLOAD,
            original_error=exc,
            context=context,
        ) from exc


def strip_json_fence(text: str) -> str:
    text = text.strip()
    match = _FENCED_JSON_RE.search(text)
    if match and match.group(1):
        return match.group(1)
    return text


def parse_structured(text: str, model: type[ModelT], *, context: str) -> ModelT:
    """Resultado de un generador one-shot, validado con Pydantic.

    Cualquier fallo de parseo o validación es `MALFORMED_RESPONSE`.
    """

    json_text = strip_json_fence(text)
    try:
        return model.model_validate(json.loads(json_text))
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.error("Failed to parse %s JSON for %s: %r", model.__name__, context, json_text[:500])
        raise to_service_error(exc, context) from exc

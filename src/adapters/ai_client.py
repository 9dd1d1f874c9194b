"""Adaptador del backend de IA (Gemini vía SDK OpenAI compatible).

Responsabilidad:
- Traducir `ChatMessage` al formato `messages` de chat completions.
- Pedir JSON con esquema cuando el servicio lo solicita.
- Generar imágenes y devolverlas en base64.

Por qué el SDK de OpenAI:
- Gemini expone un endpoint compatible; el mismo cliente sirve para cualquier
  proveedor compatible cambiando `ai_base_url`.

Reglas:
- Sin reintentos automáticos (`max_retries=0`): los errores suben tal cual y
  el servicio los traduce a `ServiceError`.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from openai import AsyncOpenAI

from core.config import AppSettings
from core.domain.chat import ChatMessage

logger = logging.getLogger(__name__)

_MAX_TOKENS = 8192


def build_ai_client(settings: AppSettings) -> AsyncOpenAI:
    if not settings.ai_api_key:
        raise RuntimeError(
            "Missing AI API key. Configure WORKFORCE_AI_AI_API_KEY or run 'workforce doctor setup-ai'."
        )
    return AsyncOpenAI(
        api_key=settings.ai_api_key,
        base_url=settings.ai_base_url,
        timeout=settings.ai_timeout_seconds,
        max_retries=0,
    )


def _message_content(message: ChatMessage) -> str | list[dict[str, Any]]:
    """Texto plano, o partes multimodales cuando hay un adjunto."""

    attachment = message.file
    if attachment is None:
        return message.text
    if attachment.mime_type.startswith("image/"):
        return [
            {"type": "text", "text": message.text},
            {
                "type": "image_url",
                "image_url": {"url": f"data:{attachment.mime_type};base64,{attachment.data}"},
            },
        ]
    # Otros adjuntos viajan como referencia textual; el contenido legible ya
    # forma parte del contexto de ficheros.
    return f"{message.text}\n\n[Attached file: {attachment.name} ({attachment.mime_type})]"


def to_openai_messages(
    system_instruction: str | None,
    history: Sequence[ChatMessage],
) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []
    if system_instruction:
        messages.append({"role": "system", "content": system_instruction})
    for message in history:
        if message.is_typing:
            continue
        role = "user" if message.role == "user" else "assistant"
        messages.append({"role": role, "content": _message_content(message)})
    return messages


def _response_format(schema: dict[str, Any], name: str | None) -> dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {"name": name or "response", "schema": schema},
    }


class OpenAICompatibleChatModel:
    """Implementación de `ChatModel` sobre `AsyncOpenAI`."""

    def __init__(self, client: AsyncOpenAI, *, settings: AppSettings | None = None) -> None:
        self._client = client
        self._settings = settings or AppSettings()

    @classmethod
    def from_settings(cls, settings: AppSettings | None = None) -> "OpenAICompatibleChatModel":
        settings = settings or AppSettings()
        return cls(build_ai_client(settings), settings=settings)

    async def generate(
        self,
        *,
        system_instruction: str | None,
        history: Sequence[ChatMessage],
        response_schema: dict[str, Any] | None = None,
        schema_name: str | None = None,
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": self._settings.ai_model,
            "messages": to_openai_messages(system_instruction, history),
            "temperature": self._settings.ai_temperature,
            "max_tokens": _MAX_TOKENS,
        }
        if response_schema is not None:
            kwargs["response_format"] = _response_format(response_schema, schema_name)
            kwargs["temperature"] = 0.2

        response = await self._client.chat.completions.create(**kwargs)
        choice = response.choices[0] if response.choices else None
        if choice is not None and choice.finish_reason == "content_filter":
            raise ValueError("Response blocked by safety filters.")
        content = (choice.message.content if choice else None) or ""
        logger.debug("Model %s returned %d chars", self._settings.ai_model, len(content))
        return content.strip()

    async def generate_image(self, prompt: str) -> str:
        response = await self._client.images.generate(
            model=self._settings.ai_image_model,
            prompt=prompt,
            n=1,
            response_format="b64_json",
        )
        if not response.data or not response.data[0].b64_json:
            raise ValueError("Image generation returned no images.")
        return response.data[0].b64_json

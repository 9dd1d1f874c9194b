"""Contrato del backend de IA generativa.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- Los servicios dependen de esta abstracción; el adaptador OpenAI-compatible
  y los dobles de test son intercambiables.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from core.domain.chat import ChatMessage


@runtime_checkable
class ChatModel(Protocol):
    """Contrato mínimo para generar texto, JSON e imágenes.

    Reglas de diseño:
    - Todas las operaciones son asíncronas (I/O de red).
    - `history` termina con el mensaje a responder.
    - Si `response_schema` está presente, la respuesta debe ser JSON acorde
      (el servicio la vuelve a validar de todos modos).
    - Los errores se lanzan tal cual; la traducción a `ServiceError` es
      responsabilidad del servicio.
    """

    async def generate(
        self,
        *,
        system_instruction: str | None,
        history: Sequence[ChatMessage],
        response_schema: dict[str, Any] | None = None,
        schema_name: str | None = None,
    ) -> str:
        ...

    async def generate_image(self, prompt: str) -> str:
        """Devuelve la imagen PNG codificada en base64."""

        ...

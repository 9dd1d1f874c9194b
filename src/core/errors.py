"""Taxonomía de errores de servicio.

Por qué un enum tipado:
- La detección (tipos de excepción del SDK/transporte) queda separada del texto
  que ve el usuario.
- Solo `user_message_for` conoce las frases; el resto del código razona con
  `ErrorKind`.

Regla de propagación:
- Las funciones de servicio nunca silencian errores, salvo la extracción de
  tool calls (que degrada a texto plano).
- Todo lo demás llega a la capa de presentación como un único `ServiceError`.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import NoReturn

import httpx
import openai
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    SAFETY_BLOCKED = "safety_blocked"
    MALFORMED_RESPONSE = "malformed_response"
    RATE_LIMITED = "rate_limited"
    BAD_REQUEST = "bad_request"
    SERVER_ERROR = "server_error"
    NETWORK = "network"
    INVALID_TOOL_PAYLOAD = "invalid_tool_payload"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


class ServiceError(Exception):
    """Error único que cruza la frontera servicio → UI.

    `user_message` es lo único que se muestra; `original_error` se conserva
    para depuración.
    """

    def __init__(
        self,
        user_message: str,
        *,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        original_error: BaseException | None = None,
        context: str | None = None,
    ) -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.kind = kind
        self.original_error = original_error
        self.context = context

    def __repr__(self) -> str:
        return f"ServiceError(kind={self.kind.value!r}, user_message={self.user_message!r})"


def user_message_for(kind: ErrorKind, context: str) -> str:
    if kind is ErrorKind.SAFETY_BLOCKED:
        return (
            "I'm unable to process that request as it seems to go against my safety guidelines. "
            "Could you please try rephrasing your request more clearly and professionally?"
        )
    if kind is ErrorKind.MALFORMED_RESPONSE:
        return (
            f"I received a response for {context}, but it was in a format I couldn't understand. "
            "This might be a temporary issue with my response generation. Please try again."
        )
    if kind is ErrorKind.RATE_LIMITED:
        return "I'm currently handling a lot of requests. Please wait a moment and try again."
    if kind is ErrorKind.BAD_REQUEST:
        return (
            f"I'm having a little trouble understanding the request for {context}. "
            "Could you please be more specific or phrase it differently?"
        )
    if kind is ErrorKind.SERVER_ERROR:
        return (
            "It seems I'm having trouble connecting to my core systems right now. "
            "This is likely a temporary issue on my end. Please try again shortly. "
            f"(Context: {context})"
        )
    if kind is ErrorKind.NETWORK:
        return (
            "I'm having trouble with the connection. Please check your network and try again. "
            f"(Context: {context})"
        )
    if kind is ErrorKind.INVALID_TOOL_PAYLOAD:
        return (
            f"I tried to prepare a structured result while {context}, but its contents were incomplete. "
            "Please try again or rephrase your request."
        )
    if kind is ErrorKind.NOT_FOUND:
        return f"I couldn't find what I needed while {context}."
    return f"I encountered an unexpected issue while {context}. Please try again in a moment."


def _kind_from_status(status: int | None) -> ErrorKind | None:
    if status is None:
        return None
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status in (400, 422):
        return ErrorKind.BAD_REQUEST
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status >= 500:
        return ErrorKind.SERVER_ERROR
    return None


def _kind_from_message(message: str) -> ErrorKind:
    # Último recurso para excepciones sin tipo reconocible.
    msg = message.lower()
    if "safety" in msg:
        return ErrorKind.SAFETY_BLOCKED
    if "json" in msg:
        return ErrorKind.MALFORMED_RESPONSE
    if "429" in msg:
        return ErrorKind.RATE_LIMITED
    if "400" in msg:
        return ErrorKind.BAD_REQUEST
    if "500" in msg or "503" in msg:
        return ErrorKind.SERVER_ERROR
    if "rpc" in msg or "xhr" in msg or "network" in msg:
        return ErrorKind.NETWORK
    return ErrorKind.UNKNOWN


def classify_error(exc: BaseException) -> ErrorKind:
    """Traduce una excepción del transporte/SDK a un `ErrorKind`."""

    if isinstance(exc, ServiceError):
        return exc.kind

    if isinstance(exc, openai.RateLimitError):
        return ErrorKind.RATE_LIMITED
    if isinstance(exc, openai.APIConnectionError):
        # Incluye APITimeoutError.
        return ErrorKind.NETWORK
    if isinstance(exc, openai.APIStatusError):
        if "safety" in str(exc).lower():
            return ErrorKind.SAFETY_BLOCKED
        return _kind_from_status(exc.status_code) or ErrorKind.UNKNOWN

    if isinstance(exc, httpx.HTTPStatusError):
        return _kind_from_status(exc.response.status_code) or ErrorKind.UNKNOWN
    if isinstance(exc, httpx.TransportError):
        return ErrorKind.NETWORK

    if isinstance(exc, (json.JSONDecodeError, ValidationError)):
        return ErrorKind.MALFORMED_RESPONSE

    return _kind_from_message(str(exc))


def to_service_error(exc: BaseException, context: str) -> ServiceError:
    if isinstance(exc, ServiceError):
        return exc
    kind = classify_error(exc)
    return ServiceError(user_message_for(kind, context), kind=kind, original_error=exc, context=context)


def handle_service_error(exc: BaseException, context: str) -> NoReturn:
    """Registra y relanza `exc` como `ServiceError`.

    Un `ServiceError` ya construido se relanza tal cual.
    """

    if isinstance(exc, ServiceError):
        raise exc
    logger.error("AI service error during %s: %r", context, exc)
    raise to_service_error(exc, context) from exc

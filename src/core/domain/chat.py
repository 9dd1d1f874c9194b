"""Mensajes de chat entre el usuario y las personas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from core.domain.models import DomainModel, utcnow
from core.domain.tools import ToolOutput


class ChatFile(DomainModel):
    name: str
    data: str = Field(..., description="Contenido en base64.")
    mime_type: str


class ChatMessage(DomainModel):
    role: Literal["user", "model"]
    text: str = ""
    timestamp: datetime = Field(default_factory=utcnow)
    file: ChatFile | None = None
    tool_output: ToolOutput | None = Field(default=None, alias="toolTriggered")
    employee_id: str | None = None
    employee_name: str | None = None
    is_typing: bool = False
    generated_image_base64: str | None = None

    @classmethod
    def from_user(cls, text: str, **extra: object) -> "ChatMessage":
        return cls(role="user", text=text, **extra)

    @classmethod
    def from_model(cls, text: str, **extra: object) -> "ChatMessage":
        return cls(role="model", text=text, **extra)

"""Request / response schemas for the HTTP surface."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ragette.agent.state import ChatMessage


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class EmbedRequest(_CamelModel):
    """Ingestion request sent after the upload finished."""

    file_url: str = Field(alias="fileUrl", min_length=1)
    file_id: str = Field(alias="fileId", min_length=1)


class ChatRequest(_CamelModel):
    """Chat turn: the whole conversation plus the file it is about."""

    messages: list[ChatMessage] = Field(min_length=1)
    file_id: str = Field(alias="fileId", min_length=1)

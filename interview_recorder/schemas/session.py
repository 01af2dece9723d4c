"""Persisted session state: the ``metadata.json`` document of a session folder.

Keys are camelCase on disk so metadata written by earlier recorder versions
keeps loading.
"""
from pydantic import BaseModel, ConfigDict, Field


class UploadRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: int
    saved_as: str = Field(alias="savedAs")
    uploaded_at: str = Field(alias="uploadedAt")


class SessionMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: str | None = None
    folder: str
    started_at: str = Field(alias="startedAt")
    uploads: list[UploadRecord] = Field(default_factory=list)
    finished_at: str | None = Field(default=None, alias="finishedAt")
    questions_count: int | None = Field(default=None, alias="questionsCount")

    def to_document(self) -> dict:
        """JSON-ready dict with on-disk key names; unset finish fields are omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)

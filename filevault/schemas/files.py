"""
@file: files.py
@description:
Pydantic schemas for file records, caller identities and the JSON envelopes
returned by the API.

Schemas:
- Role: ordered permission level
- Identity: the (username, role) pair a token resolves to
- FileRecord: catalog metadata for one file
- MessageResponse / UploadResponse / ListResponse: response envelopes

@notes:
- Every envelope carries a "message" string; success bodies add "id" or "files".
- FileRecord serializes its timestamp as "uploadedAt".
"""

from datetime import datetime
from enum import IntEnum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class Role(IntEnum):
    """
    Permission levels, totally ordered.

    A role satisfies a requirement iff it compares greater than or equal to it.
    """
    NONE = 0
    READ_WRITE_SELF = 1
    READ_WRITE_ALL = 2
    ADMINISTRATOR = 3

    def satisfies(self, required: "Role") -> bool:
        return self >= required

    @classmethod
    def parse(cls, value: str) -> "Role":
        """Accept either a role name (any case, dashes allowed) or its number."""
        text = value.strip()
        if text.isdigit():
            return cls(int(text))
        return cls[text.upper().replace("-", "_")]


class Identity(BaseModel):
    """The caller a bearer token resolves to."""
    username: str
    role: Role


class FileRecord(BaseModel):
    """Catalog metadata for a stored file."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=8, max_length=8, description="Opaque 8-character file id.")
    name: str = Field(..., description="Original filename as supplied by the uploader.")
    uploaded_at: datetime = Field(..., alias="uploadedAt", description="Upload timestamp (UTC).")
    creator: str = Field(..., description="Username of the uploader.")


class MessageResponse(BaseModel):
    message: str


class UploadResponse(MessageResponse):
    id: str


class ListResponse(MessageResponse):
    files: List[FileRecord]

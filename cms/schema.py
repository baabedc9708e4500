"""
cms/schema.py
-----------------------------------------------------------------------------
Pydantic v2 models for every request / response object in the CMS API.

Design principles
-----------------
• Keep models thin – no business logic here.  Name and content validation
  belongs to :mod:`cms.paths` and :mod:`cms.repository`, which report
  diagnostics rather than raising validation errors, so string fields default
  to "" instead of being required.
• Every field has a `description` so FastAPI's OpenAPI UI is immediately
  useful.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# -----------------------------------------------------------------------------
# File requests
# -----------------------------------------------------------------------------


class FileRequest(BaseModel):
    """Body for operations that only need a logical file name."""

    name: str = Field(
        "",
        description="Logical file name relative to the storage root.",
        examples=["about.md", "history.txt"],
    )


class CreateFileRequest(FileRequest):
    """Body for POST /file/new."""

    content: str = Field("", description="Initial file content.")


class UpdateFileRequest(FileRequest):
    """Body for POST /file/edit."""

    content: str = Field(..., description="Replacement file content.")


class DuplicateFileRequest(FileRequest):
    """
    Body for POST /file/duplicate.

    ``original`` is copied by value into a new file called ``name``.
    """

    original: str = Field("", description="Logical name of the file to copy.")


# -----------------------------------------------------------------------------
# User requests
# -----------------------------------------------------------------------------


class CredentialsRequest(BaseModel):
    """Body for POST /users/signin and POST /users/signup."""

    username: str = Field("", description="Account name.")
    password: str = Field("", description="Raw password; never stored or echoed.")


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------


class IndexResponse(BaseModel):
    """Response for GET /."""

    files: list[str] = Field(..., description="Sorted logical names of stored files.")
    username: str | None = Field(None, description="Signed-in user, if any.")
    message: str | None = Field(None, description="Pending success notice.")
    error: str | None = Field(None, description="Pending error message.")


class FileContentResponse(BaseModel):
    """Response for GET /file/edit."""

    name: str
    content: str


class MessageResponse(BaseModel):
    """Generic success response carrying a user-facing notice."""

    message: str

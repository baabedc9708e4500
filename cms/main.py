"""
cms/main.py
-----------------------------------------------------------------------------
FastAPI application entrypoint for the CMS.

This module is a **thin routing layer** — each route handler reads what it
needs from the request, calls into the core, and turns the result (or the
returned diagnostic) into an HTTP response.  All file and credential logic
lives in dedicated modules:

Domain modules
~~~~~~~~~~~~~~
- ``cms.paths``        – Logical-name resolution and file classification.
- ``cms.error_mapper`` – OS error → diagnostic translation.
- ``cms.repository``   – File create / load / update / delete / duplicate.
- ``cms.auth``         – YAML credential registry with bcrypt hashes.
- ``cms.renderer``     – Markdown / plain-text rendering.
- ``cms.access``       – Which routes need a signed-in session.
- ``cms.diagnostics``  – Diagnostic codes and the message catalogue.
- ``cms.schema``       – Pydantic v2 request / response models.
- ``cms.config``       – Environment-driven settings.

Run with:
    uvicorn cms.main:app --reload --host 127.0.0.1 --port 4567

Endpoints
---------
GET  /                 → file list, signed-in user and pending notices
GET  /file?name=       → rendered file (markdown as HTML, text as text/plain)
GET  /file/edit?name=  → raw file content for editing
POST /file/edit        → overwrite an existing file
POST /file/new         → create a new file
POST /file/delete      → delete a file
POST /file/duplicate   → copy a file into a new one
POST /users/signin     → verify credentials and start a session
POST /users/signout    → end the session
POST /users/signup     → register a new account

Architecture notes
------------------
- All blocking I/O lives in regular ``def`` route handlers, which FastAPI
  runs in a threadpool.
- Sessions are Starlette signed cookies.  The core only ever receives the
  session's username, never the session object itself.
- An HTTP middleware applies :func:`cms.access.check_access` before any
  route runs; denied requests are redirected to ``/`` with a pending error.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import NoReturn

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from cms import access
from cms.auth import AuthStore, CredentialRegistryError
from cms.config import Settings, load_settings
from cms.diagnostics import (
    Diagnostic,
    DiagnosticCode,
    Notice,
    format_all,
    format_message,
    format_notice,
)
from cms.renderer import render
from cms.repository import FileRepository
from cms.schema import (
    CreateFileRequest,
    CredentialsRequest,
    DuplicateFileRequest,
    FileContentResponse,
    FileRequest,
    IndexResponse,
    MessageResponse,
    UpdateFileRequest,
)

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Bootstrap
# -----------------------------------------------------------------------------

_HERE = Path(__file__).parent
_TEMPLATES_DIR = _HERE / "templates"

# Read version from pyproject.toml (single source of truth).
_PYPROJECT = _HERE.parent / "pyproject.toml"
with open(_PYPROJECT, "rb") as _f:
    _APP_VERSION: str = tomllib.load(_f)["project"]["version"]

templates = Jinja2Templates(directory=str(_TEMPLATES_DIR))

# Diagnostic code → HTTP status for file operations.
_STATUS_FOR: dict[DiagnosticCode, int] = {
    DiagnosticCode.MISSING_FILE_NAME: 400,
    DiagnosticCode.UNKNOWN_FILE_TYPE: 400,
    DiagnosticCode.INVALID_FILE_NAME: 400,
    DiagnosticCode.DOES_NOT_EXIST: 404,
    DiagnosticCode.FILE_EXISTS: 409,
    DiagnosticCode.COULD_NOT_CREATE: 500,
    DiagnosticCode.OS_ERROR: 500,
}

# Session keys.
_USERNAME = "username"
_MESSAGE = "message"
_ERROR = "error"

router = APIRouter()


def _repository(request: Request) -> FileRepository:
    return request.app.state.repository


def _auth(request: Request) -> AuthStore:
    return request.app.state.auth


def _raise_for(diagnostic: Diagnostic) -> NoReturn:
    raise HTTPException(
        status_code=_STATUS_FOR.get(diagnostic.code, 400),
        detail=format_message(diagnostic),
    )


def _flash(request: Request, notice: str) -> MessageResponse:
    """Return *notice* now and also leave it pending for the next ``GET /``."""
    request.session[_MESSAGE] = notice
    return MessageResponse(message=notice)


# -----------------------------------------------------------------------------
# Index + viewing
# -----------------------------------------------------------------------------


@router.get(access.INDEX, response_model=IndexResponse, summary="List stored files")
def index(request: Request) -> IndexResponse:
    """
    Return the sorted file list plus the current user.

    Any notice or error left in the session by a previous request (a
    successful mutation, or the access-gate redirect) is returned once and
    then cleared.
    """
    return IndexResponse(
        files=_repository(request).list_files(),
        username=request.session.get(_USERNAME),
        message=request.session.pop(_MESSAGE, None),
        error=request.session.pop(_ERROR, None),
    )


@router.get(access.FILE_VIEW, summary="Render a stored file")
def view_file(request: Request, name: str = "") -> Response:
    """
    Render a file according to its kind.

    Markdown is converted to HTML and embedded in ``file.html``; plain text
    is returned verbatim as ``text/plain``.
    """
    document = _repository(request).load_document(name)
    if isinstance(document, Diagnostic):
        _raise_for(document)

    output = render(document.content, document.kind)
    if output.is_fragment:
        return templates.TemplateResponse(
            request,
            "file.html",
            {"name": document.name, "body": output.body, "app_version": _APP_VERSION},
        )
    return PlainTextResponse(output.body, media_type=output.media_type)


# -----------------------------------------------------------------------------
# File mutations (signed-in only)
# -----------------------------------------------------------------------------


@router.get(access.FILE_EDIT, response_model=FileContentResponse, summary="Fetch raw content")
def edit_file_form(request: Request, name: str = "") -> FileContentResponse:
    content = _repository(request).load(name)
    if isinstance(content, Diagnostic):
        _raise_for(content)
    return FileContentResponse(name=name, content=content)


@router.post(access.FILE_EDIT, response_model=MessageResponse, summary="Overwrite a file")
def edit_file(request: Request, req: UpdateFileRequest) -> MessageResponse:
    error = _repository(request).update(req.name, req.content)
    if error is not None:
        _raise_for(error)
    return _flash(request, format_notice(Notice.FILE_UPDATED, file_name=req.name))


@router.post(
    access.FILE_NEW,
    response_model=MessageResponse,
    status_code=201,
    summary="Create a new file",
)
def new_file(request: Request, req: CreateFileRequest) -> MessageResponse:
    """
    Create a file, refusing to overwrite an existing one.

    Raises
    ------
    HTTPException(400) for a missing, unsafe or wrongly-typed name.
    HTTPException(409) if the file already exists.
    HTTPException(500) if the filesystem refuses the write.
    """
    error = _repository(request).create(req.name, content=req.content)
    if error is not None:
        _raise_for(error)
    return _flash(request, format_notice(Notice.CREATED_FILE, file_name=req.name))


@router.post(access.FILE_DELETE, response_model=MessageResponse, summary="Delete a file")
def delete_file(request: Request, req: FileRequest) -> MessageResponse:
    error = _repository(request).delete(req.name)
    if error is not None:
        _raise_for(error)
    return _flash(request, format_notice(Notice.FILE_DELETED, file_name=req.name))


@router.post(
    access.FILE_DUPLICATE,
    response_model=MessageResponse,
    status_code=201,
    summary="Copy a file into a new one",
)
def duplicate_file(request: Request, req: DuplicateFileRequest) -> MessageResponse:
    error = _repository(request).duplicate(req.original, req.name)
    if error is not None:
        _raise_for(error)
    return _flash(request, format_notice(Notice.DUPLICATE_CREATED, file_name=req.name))


# -----------------------------------------------------------------------------
# Users
# -----------------------------------------------------------------------------


@router.post(access.USERS_SIGNIN, response_model=MessageResponse, summary="Sign in")
def signin(request: Request, req: CredentialsRequest) -> MessageResponse:
    if not _auth(request).verify(req.username, req.password):
        raise HTTPException(
            status_code=422,
            detail=format_message(Diagnostic(DiagnosticCode.INVALID_CREDENTIALS)),
        )
    request.session[_USERNAME] = req.username
    return _flash(request, format_notice(Notice.WELCOME, username=req.username))


@router.post(access.USERS_SIGNOUT, response_model=MessageResponse, summary="Sign out")
def signout(request: Request) -> MessageResponse:
    request.session.pop(_USERNAME, None)
    return _flash(request, format_notice(Notice.SIGNED_OUT))


@router.post(
    access.USERS_SIGNUP,
    response_model=MessageResponse,
    status_code=201,
    summary="Register a new account",
)
def signup(request: Request, req: CredentialsRequest) -> MessageResponse:
    """
    Register an account.

    Every violated rule is reported at once: the 422 ``detail`` is a list of
    messages, one per diagnostic.
    """
    try:
        errors = _auth(request).register(req.username, req.password)
    except CredentialRegistryError as exc:
        logger.error("Signup failed: %s", exc)
        raise HTTPException(status_code=500, detail="The account registry is unavailable.") from exc
    if errors:
        raise HTTPException(status_code=422, detail=format_all(errors))
    return _flash(request, format_notice(Notice.ACCOUNT_CREATED))


# -----------------------------------------------------------------------------
# App factory
# -----------------------------------------------------------------------------


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the application.

    Parameters
    ----------
    settings : Optional explicit settings (tests pass temp directories);
               defaults to :func:`cms.config.load_settings`.
    """
    settings = settings or load_settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)

    application = FastAPI(
        title="CMS",
        description="Minimal document-management service for markdown and text files.",
        version=_APP_VERSION,
    )
    application.state.settings = settings
    application.state.repository = FileRepository(settings.data_dir)
    application.state.auth = AuthStore(settings.auth_file, rounds=settings.bcrypt_rounds)

    @application.middleware("http")
    async def _require_signin(request: Request, call_next):
        decision = access.check_access(
            bool(request.session.get(_USERNAME)), request.url.path
        )
        if not decision.allowed:
            request.session[_ERROR] = format_message(Diagnostic(decision.diagnostic))
            return RedirectResponse(decision.redirect_to, status_code=303)
        return await call_next(request)

    # Must wrap the access middleware, which reads the session.
    application.add_middleware(SessionMiddleware, secret_key=settings.secret_key)

    application.include_router(router)
    return application


app = create_app()

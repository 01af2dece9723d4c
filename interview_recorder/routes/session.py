"""
Interview session endpoints.

  POST /api/verify-token     check the shared token before starting
  POST /api/session/start    create a session folder, returns { ok, folder }
  POST /api/upload-one       multipart answer upload, returns { ok, savedAs }
                               without waiting for transcription
  POST /api/session/finish   write the ordered transcript, notify the webhook
"""
import asyncio
import logging

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile

from interview_recorder.schemas.response import (
    FinishSessionRequest,
    OkResponse,
    StartSessionRequest,
    StartSessionResponse,
    UploadResponse,
    VerifyTokenRequest,
)
from interview_recorder.services.coordinator import SessionCoordinator
from interview_recorder.services.errors import InterviewError, StorageError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["session"])


def _coordinator(request: Request) -> SessionCoordinator:
    return request.app.state.coordinator


def _to_http(exc: InterviewError) -> HTTPException:
    if isinstance(exc, StorageError):
        logger.error("Storage failure: %s", exc)
    return HTTPException(status_code=exc.status_code, detail=str(exc))


@router.post("/api/verify-token", response_model=OkResponse)
async def verify_token(body: VerifyTokenRequest, request: Request) -> OkResponse:
    try:
        _coordinator(request).authorize(body.token)
    except InterviewError as exc:
        raise _to_http(exc)
    return OkResponse()


@router.post("/api/session/start", response_model=StartSessionResponse)
async def start_session(body: StartSessionRequest, request: Request) -> StartSessionResponse:
    coordinator = _coordinator(request)
    try:
        loop = asyncio.get_running_loop()
        metadata = await loop.run_in_executor(
            None, coordinator.start_session, body.token, body.user_name
        )
    except InterviewError as exc:
        raise _to_http(exc)
    return StartSessionResponse(folder=metadata.folder)


@router.post("/api/upload-one", response_model=UploadResponse)
async def upload_one(
    request: Request,
    token: str | None = Form(None),
    folder: str = Form(""),
    question_index: str | None = Form(None, alias="questionIndex"),
    file: UploadFile | None = File(None),
) -> UploadResponse:
    """Store one recorded answer; transcription runs in the background."""
    coordinator = _coordinator(request)

    contents = await file.read() if file is not None else None
    mime_type = file.content_type if file is not None else None

    try:
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(
            None,
            coordinator.accept_upload,
            token,
            folder,
            question_index,
            contents,
            mime_type,
        )
    except InterviewError as exc:
        raise _to_http(exc)
    return UploadResponse(saved_as=result.saved_as)


@router.post("/api/session/finish", response_model=OkResponse)
async def finish_session(body: FinishSessionRequest, request: Request) -> OkResponse:
    coordinator = _coordinator(request)
    try:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None, coordinator.finish_session, body.token, body.folder, body.questions_count
        )
    except InterviewError as exc:
        raise _to_http(exc)
    return OkResponse()

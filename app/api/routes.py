import asyncio
import logging
from typing import Literal
from uuid import uuid4

from fastapi import APIRouter
from fastapi import Depends
from fastapi import File
from fastapi import Form
from fastapi import HTTPException
from fastapi import Request
from fastapi import Response
from fastapi import UploadFile
from fastapi import status

from app.core.exceptions import IntakeDisabledError
from app.core.validation import sniff_media_type
from app.intake.controller import IntakeController
from app.models.intake_models import CandidateFile
from app.models.intake_models import IntakeSnapshot
from app.models.intake_models import Notice
from app.models.intake_models import SubmitResult

# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/intake", tags=["Intake"])


def get_intake_controller(request: Request) -> IntakeController:
    """Returns the controller of the current rendering session (one per process)."""
    controller: IntakeController | None = getattr(request.app.state, "intake_controller", None)
    if controller is None:
        raise HTTPException(status_code=503, detail="Intake is not initialised yet.")
    return controller


async def _read_candidate(upload: UploadFile, request_id: str) -> CandidateFile:
    """Turns one multipart part into a CandidateFile, sniffing its type when the client sent none."""
    filename = upload.filename or "unknown_file"
    try:
        await upload.seek(0)
        contents = await upload.read()
    except Exception as read_err:
        logger.error(
            "[%s] Failed to read uploaded part %s: %s",
            request_id,
            filename,
            str(read_err),
            exc_info=True,
        )
        raise HTTPException(
            status_code=400,
            detail=f"Could not read '{filename}'.",
        ) from read_err

    media_type = await asyncio.to_thread(sniff_media_type, contents, upload.content_type)
    logger.debug(
        "[%s] Read %s (%d bytes, declared=%s, effective=%s)",
        request_id,
        filename,
        len(contents),
        upload.content_type,
        media_type,
    )
    return CandidateFile.from_bytes(filename, contents, media_type)


@router.get("", response_model=IntakeSnapshot)
async def get_snapshot(controller: IntakeController = Depends(get_intake_controller)) -> IntakeSnapshot:
    """Returns the staging list and drop-zone state at the current version."""
    return controller.snapshot()


@router.post("/files", response_model=SubmitResult)
async def submit_files(
    files: list[UploadFile] = File(...),
    source: Literal["drop", "picker"] = Form(default="picker"),
    controller: IntakeController = Depends(get_intake_controller),
) -> SubmitResult:
    """Submits a batch of files coming from a drop event or the file picker.

    Validation failures are not HTTP errors: they come back as ``rejections``
    and ``notices`` in the body, next to the files that were staged.

    Raises:
        HTTPException:
            - 400: A multipart part could not be read.
            - 409: The intake is disabled.
    """
    request_id = str(uuid4())
    logger.info("[%s] Intake submission from %s: %d file(s)", request_id, source, len(files))

    if controller.disabled:
        raise IntakeDisabledError("The intake is disabled and does not accept files.")

    candidates = await asyncio.gather(*(_read_candidate(f, request_id) for f in files))

    if source == "drop":
        return controller.drop(candidates)
    return controller.select(candidates)


@router.delete("/files/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_file(
    file_id: str,
    controller: IntakeController = Depends(get_intake_controller),
) -> Response:
    """Removes a staged file.

    Raises:
        HTTPException:
            - 404: No staged file has this id.
            - 409: The file is still uploading (strict removal) or the intake is disabled.
    """
    if controller.get(file_id) is None:
        raise HTTPException(status_code=404, detail=f"No staged file with id '{file_id}'.")
    if controller.disabled:
        raise HTTPException(status_code=409, detail="The intake is disabled and files cannot be removed.")
    if not controller.remove(file_id):
        raise HTTPException(status_code=409, detail="This file cannot be removed until its upload completes.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/drag/enter", response_model=IntakeSnapshot)
async def drag_enter(controller: IntakeController = Depends(get_intake_controller)) -> IntakeSnapshot:
    controller.drag_enter()
    return controller.snapshot()


@router.post("/drag/leave", response_model=IntakeSnapshot)
async def drag_leave(controller: IntakeController = Depends(get_intake_controller)) -> IntakeSnapshot:
    controller.drag_leave()
    return controller.snapshot()


@router.get("/notices", response_model=list[Notice])
async def list_notices(
    limit: int | None = None,
    controller: IntakeController = Depends(get_intake_controller),
) -> list[Notice]:
    """Most recent notices, oldest first."""
    return controller.notices.recent(limit)

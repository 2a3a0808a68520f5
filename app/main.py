import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi import Request
from fastapi import status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import get_intake_controller
from app.api.routes import router
from app.core.config import settings
from app.core.exceptions import ConfigurationError
from app.core.exceptions import IntakeDisabledError
from app.core.exceptions import IntakeError
from app.core.logging import setup_logging
from app.core.validation import PICKER_ACCEPT_ATTRIBUTE
from app.intake.controller import IntakeController
from app.models.intake_models import CandidateFile

setup_logging()

app = FastAPI(title="File Intake")

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


def log_files_handoff(files: tuple[CandidateFile, ...]) -> None:
    """Default consumer of newly staged files: records the hand-off."""
    logger.info(
        "Handing off %d file(s): %s",
        len(files),
        ", ".join(f"{f.name} ({f.media_type}, {f.size} bytes)" for f in files),
    )


@app.on_event("startup")
async def startup_event() -> None:
    app.state.intake_controller = IntakeController(on_files_added=log_files_handoff)
    logger.info(
        "Intake ready: max_files=%d, max_file_size=%d bytes, accepted=%s",
        settings.max_files,
        settings.max_file_size_bytes,
        ", ".join(settings.accepted_media_types),
    )


@app.on_event("shutdown")
async def shutdown_event() -> None:
    controller: IntakeController | None = getattr(app.state, "intake_controller", None)
    if controller is not None:
        await controller.aclose()


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.error(f"HTTP exception: {exc.detail} (status: {exc.status_code})")
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    # Log the detailed Pydantic validation errors to the server console
    logger.error("Request validation failed: %s", exc.errors(), exc_info=False)
    return JSONResponse(
        {"error": "Input validation failed", "details": exc.errors()},
        status_code=422,
    )


@app.exception_handler(IntakeDisabledError)
async def intake_disabled_exception_handler(_request: Request, exc: IntakeDisabledError) -> JSONResponse:
    logger.warning(f"Intake disabled: {str(exc)}")
    return JSONResponse({"error": str(exc)}, status_code=409)


@app.exception_handler(ConfigurationError)
async def configuration_exception_handler(_request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error(f"Configuration error: {str(exc)}")
    return JSONResponse({"error": str(exc)}, status_code=500)


@app.exception_handler(IntakeError)
async def intake_exception_handler(_request: Request, exc: IntakeError) -> JSONResponse:
    logger.error(f"Intake error: {str(exc)}")
    return JSONResponse({"error": str(exc)}, status_code=500)


@app.get("/health", status_code=status.HTTP_200_OK, tags=["Health"])
async def health_check() -> dict[str, str]:
    logger.info("Health check endpoint called")
    return {"status": "ok"}


@app.get("/", response_class=HTMLResponse, include_in_schema=False)
async def dropzone_page(request: Request) -> HTMLResponse:
    """Renders the drop zone and the current staging list."""
    controller = get_intake_controller(request)
    return templates.TemplateResponse(
        request,
        "dropzone.html",
        {
            "snapshot": controller.snapshot(),
            "picker_accept": PICKER_ACCEPT_ATTRIBUTE,
            "notices": controller.notices.recent(5),
        },
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_methods=["POST", "GET", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
app.include_router(router)

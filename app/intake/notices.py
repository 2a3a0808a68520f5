"""User-facing diagnostics raised by the intake.

Rejections are aggregated into one notice per reason, naming every offending
file; the NoticeBoard keeps the most recent notices for the page to display.
"""

import logging
from collections import deque
from collections.abc import Iterable

from app.models.intake_models import Notice
from app.models.intake_models import Rejection
from app.models.intake_models import RejectionReason

logger = logging.getLogger(__name__)


def _format_mb(size_bytes: int) -> str:
    mb = size_bytes / (1024 * 1024)
    return f"{mb:g}MB"


def build_rejection_notices(
    rejections: Iterable[Rejection],
    max_file_size: int,
    max_files: int,
) -> list[Notice]:
    """Collapses per-file rejections into one error notice per reason.

    Notices are ordered invalid type, too large, too many files.
    """
    by_reason: dict[RejectionReason, list[str]] = {}
    for rejection in rejections:
        by_reason.setdefault(rejection.reason, []).append(rejection.file_name)

    notices: list[Notice] = []

    names = by_reason.get(RejectionReason.INVALID_TYPE)
    if names:
        verb = "is" if len(names) == 1 else "are"
        notices.append(
            Notice(
                level="error",
                title="Invalid file type",
                description=f"{', '.join(names)} {verb} not a PDF or image file.",
                reason=RejectionReason.INVALID_TYPE,
                file_names=names,
            )
        )

    names = by_reason.get(RejectionReason.TOO_LARGE)
    if names:
        verb = "exceeds" if len(names) == 1 else "exceed"
        notices.append(
            Notice(
                level="error",
                title="File too large",
                description=f"{', '.join(names)} {verb} the maximum size of {_format_mb(max_file_size)}.",
                reason=RejectionReason.TOO_LARGE,
                file_names=names,
            )
        )

    names = by_reason.get(RejectionReason.TOO_MANY_FILES)
    if names:
        notices.append(
            Notice(
                level="error",
                title="Too many files",
                description=f"You can only upload a maximum of {max_files} files.",
                reason=RejectionReason.TOO_MANY_FILES,
                file_names=names,
            )
        )

    return notices


def upload_complete_notice(file_name: str) -> Notice:
    return Notice(
        level="success",
        title="Upload complete",
        description="Your file has been successfully uploaded.",
        file_names=[file_name],
    )


class NoticeBoard:
    """Bounded, in-memory history of notices, oldest first."""

    def __init__(self, max_size: int = 50) -> None:
        self._notices: deque[Notice] = deque(maxlen=max_size)

    def post(self, notice: Notice) -> Notice:
        log = logger.warning if notice.level == "error" else logger.info
        log("NOTICE [%s] %s: %s", notice.level, notice.title, notice.description)
        self._notices.append(notice)
        return notice

    def recent(self, limit: int | None = None) -> list[Notice]:
        notices = list(self._notices)
        if limit is not None:
            notices = notices[-limit:] if limit > 0 else []
        return notices

    def clear(self) -> None:
        self._notices.clear()

    def __len__(self) -> int:
        return len(self._notices)

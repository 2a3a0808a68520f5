"""Owns the staging list of admitted files and its transient display state.

The controller runs entirely on one asyncio event loop. The staging list is an
immutable tuple swapped in one step by ``_commit``, so any reader holding a
reference sees a complete list at a single ``version``. Preview and progress
tasks never touch the list directly: they report values keyed by file id and
the controller applies them, dropping updates for ids that are gone.
"""

import asyncio
import logging
import random
from collections.abc import Callable
from collections.abc import Iterable
from dataclasses import replace
from uuid import uuid4

from app.core.config import settings
from app.core.exceptions import ConfigurationError
from app.core.validation import AcceptOption
from app.core.validation import build_accept_predicate
from app.core.validation import check_candidate
from app.intake.notices import NoticeBoard
from app.intake.notices import build_rejection_notices
from app.intake.notices import upload_complete_notice
from app.intake.preview import generate_preview
from app.intake.progress import PROGRESS_COMPLETE
from app.intake.progress import simulate_progress
from app.intake.progress import validate_step_range
from app.models.intake_models import CandidateFile
from app.models.intake_models import IntakeSnapshot
from app.models.intake_models import Notice
from app.models.intake_models import Rejection
from app.models.intake_models import RejectionReason
from app.models.intake_models import StagedFile
from app.models.intake_models import StagedFileView
from app.models.intake_models import SubmitResult

__all__ = ["FilesAddedCallback", "IntakeController"]

logger = logging.getLogger(__name__)

FilesAddedCallback = Callable[[tuple[CandidateFile, ...]], None]


class IntakeController:
    """Admission, preview, progress and removal for one rendering session."""

    def __init__(
        self,
        on_files_added: FilesAddedCallback | None = None,
        max_files: int | None = None,
        max_file_size: int | None = None,
        accept: AcceptOption = None,
        strict_removal: bool | None = None,
        disabled: bool | None = None,
        progress_interval: float | None = None,
        progress_step_min: int | None = None,
        progress_step_max: int | None = None,
        thumbnail_size: tuple[int, int] | None = None,
        jpeg_quality: int | None = None,
        notice_board: NoticeBoard | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.on_files_added = on_files_added
        self.max_files = settings.max_files if max_files is None else max_files
        self.max_file_size = settings.max_file_size_bytes if max_file_size is None else max_file_size
        if self.max_files <= 0:
            raise ConfigurationError(f"max_files must be positive, got {self.max_files}")
        if self.max_file_size <= 0:
            raise ConfigurationError(f"max_file_size must be positive, got {self.max_file_size}")

        self._accepts = build_accept_predicate(settings.accepted_media_types if accept is None else accept)
        self.strict_removal = settings.strict_removal if strict_removal is None else strict_removal
        self.disabled = settings.intake_disabled if disabled is None else disabled

        self.progress_interval = settings.progress_interval_seconds if progress_interval is None else progress_interval
        self.progress_step_min = settings.progress_step_min if progress_step_min is None else progress_step_min
        self.progress_step_max = settings.progress_step_max if progress_step_max is None else progress_step_max
        validate_step_range(self.progress_step_min, self.progress_step_max)

        self.thumbnail_size = thumbnail_size or (settings.image_thumbnail_width, settings.image_thumbnail_height)
        self.jpeg_quality = settings.image_jpeg_quality if jpeg_quality is None else jpeg_quality

        self.notices = notice_board or NoticeBoard(settings.notice_history_size)
        self._rng = rng or random.Random()

        self._files: tuple[StagedFile, ...] = ()
        self._version = 0
        self.drag_active = False

        # Cancellable handles stored alongside the entries, keyed by file id
        self._progress_tasks: dict[str, asyncio.Task] = {}
        self._preview_tasks: dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def files(self) -> tuple[StagedFile, ...]:
        return self._files

    @property
    def version(self) -> int:
        return self._version

    def get(self, file_id: str) -> StagedFile | None:
        for staged in self._files:
            if staged.id == file_id:
                return staged
        return None

    def is_removable(self, file_id: str) -> bool:
        staged = self.get(file_id)
        if staged is None or self.disabled:
            return False
        return staged.is_complete or not self.strict_removal

    def snapshot(self) -> IntakeSnapshot:
        files = self._files
        return IntakeSnapshot(
            version=self._version,
            files=[StagedFileView.from_staged(f, self.is_removable(f.id)) for f in files],
            max_files=self.max_files,
            max_file_size_bytes=self.max_file_size,
            max_file_size_mb=round(self.max_file_size / (1024 * 1024), 2),
            drag_active=self.drag_active,
            disabled=self.disabled,
        )

    # ------------------------------------------------------------------
    # Input surface events
    # ------------------------------------------------------------------

    def drag_enter(self) -> None:
        if self.disabled:
            return
        self.drag_active = True

    def drag_leave(self) -> None:
        self.drag_active = False

    def drop(self, candidates: Iterable[CandidateFile]) -> SubmitResult:
        self.drag_active = False
        return self.submit(candidates)

    def select(self, candidates: Iterable[CandidateFile]) -> SubmitResult:
        return self.submit(candidates)

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def submit(self, candidates: Iterable[CandidateFile]) -> SubmitResult:
        """Validates a batch and stages the files that pass.

        Type and size are checked per file; the count limit applies to the
        batch as a whole and rejects all of it when exceeded. The
        ``on_files_added`` callback runs once, and only if at least one file
        was staged. Must be called with a running event loop.
        """
        batch_id = uuid4().hex[:8]
        batch = list(candidates)
        result = SubmitResult(batch_id=batch_id)

        if self.disabled:
            logger.info("[%s] Intake disabled, ignoring %d file(s)", batch_id, len(batch))
            return result
        if not batch:
            logger.debug("[%s] Empty batch, nothing to do", batch_id)
            return result

        logger.info("[%s] Admission started: %d candidate(s), %d already staged", batch_id, len(batch), len(self._files))

        accepted: list[CandidateFile] = []
        for candidate in batch:
            reason = check_candidate(candidate, self._accepts, self.max_file_size)
            if reason is None:
                accepted.append(candidate)
                continue
            logger.warning(
                "[%s] Rejected %s (%s, %d bytes): %s",
                batch_id,
                candidate.name,
                candidate.media_type or "no type",
                candidate.size,
                reason.value,
            )
            result.rejections.append(Rejection(file_name=candidate.name, reason=reason))

        if len(self._files) + len(accepted) > self.max_files:
            logger.warning(
                "[%s] Batch rejected: %d staged + %d new > %d",
                batch_id,
                len(self._files),
                len(accepted),
                self.max_files,
            )
            result.batch_rejected = True
            result.rejections.extend(Rejection(file_name=c.name, reason=RejectionReason.TOO_MANY_FILES) for c in accepted)
            accepted = []

        staged = [StagedFile(file=candidate, id=self._new_id()) for candidate in accepted]
        if staged:
            self._commit(self._files + tuple(staged))
            for entry in staged:
                self._start_side_processes(entry)
            result.accepted = [StagedFileView.from_staged(f, self.is_removable(f.id)) for f in staged]

        for notice in build_rejection_notices(result.rejections, self.max_file_size, self.max_files):
            result.notices.append(self.notices.post(notice))

        if accepted:
            logger.info("[%s] Staged %d file(s): %s", batch_id, len(accepted), ", ".join(c.name for c in accepted))
            self._notify(batch_id, tuple(accepted), result)

        return result

    def _notify(self, batch_id: str, accepted: tuple[CandidateFile, ...], result: SubmitResult) -> None:
        if self.on_files_added is None:
            return
        try:
            self.on_files_added(accepted)
        except Exception as e:
            # The staging list is already committed; a failing consumer must not undo it
            logger.error("[%s] on_files_added callback failed: %s", batch_id, str(e), exc_info=True)
            notice = Notice(
                level="error",
                title="Could not hand off files",
                description=f"The files were staged but could not be forwarded: {e}",
                file_names=[c.name for c in accepted],
            )
            result.notices.append(self.notices.post(notice))

    def _new_id(self) -> str:
        while True:
            file_id = uuid4().hex[:12]
            if self.get(file_id) is None and file_id not in self._progress_tasks:
                return file_id

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def remove(self, file_id: str) -> bool:
        """Drops a staged file. Returns False when the id is unknown or not removable yet."""
        staged = self.get(file_id)
        if staged is None:
            logger.debug("Remove ignored, unknown id %s", file_id)
            return False
        if not self.is_removable(file_id):
            logger.info("Remove refused for %s (%s) at %d%%", file_id, staged.file.name, staged.progress)
            return False

        self._commit(tuple(f for f in self._files if f.id != file_id))
        task = self._progress_tasks.pop(file_id, None)
        if task is not None and not task.done():
            task.cancel()
        logger.info("Removed %s (%s)", file_id, staged.file.name)
        return True

    # ------------------------------------------------------------------
    # Side processes
    # ------------------------------------------------------------------

    def _start_side_processes(self, staged: StagedFile) -> None:
        loop = asyncio.get_running_loop()
        progress_task = loop.create_task(
            simulate_progress(
                staged.id,
                self._apply_progress,
                self.progress_interval,
                self.progress_step_min,
                self.progress_step_max,
                self._rng,
            ),
            name=f"progress-{staged.id}",
        )
        self._progress_tasks[staged.id] = progress_task
        progress_task.add_done_callback(lambda _t, file_id=staged.id: self._progress_tasks.pop(file_id, None))

        if staged.is_image:
            preview_task = loop.create_task(self._run_preview(staged), name=f"preview-{staged.id}")
            self._preview_tasks[staged.id] = preview_task
            preview_task.add_done_callback(lambda _t, file_id=staged.id: self._preview_tasks.pop(file_id, None))

    async def _run_preview(self, staged: StagedFile) -> None:
        try:
            preview = await generate_preview(staged.file, self.thumbnail_size, self.jpeg_quality)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Preview generation failed for %s: %s", staged.file.name, str(e), exc_info=True)
            return
        self._apply_preview(staged.id, preview)

    def _apply_preview(self, file_id: str, preview: str) -> bool:
        current = self.get(file_id)
        if current is None:
            logger.debug("Discarding preview for removed file %s", file_id)
            return False
        if current.preview:
            return True
        self._apply(file_id, preview=preview)
        return True

    def _apply_progress(self, file_id: str, progress: int) -> bool:
        current = self.get(file_id)
        if current is None:
            return False
        if progress <= current.progress:
            return True
        progress = min(progress, PROGRESS_COMPLETE)
        self._apply(file_id, progress=progress)
        if progress == PROGRESS_COMPLETE:
            logger.info("Upload of %s (%s) complete", file_id, current.file.name)
            self.notices.post(upload_complete_notice(current.file.name))
        return True

    # ------------------------------------------------------------------
    # Single mutation entry point
    # ------------------------------------------------------------------

    def _apply(self, file_id: str, **changes: object) -> None:
        self._commit(tuple(replace(f, **changes) if f.id == file_id else f for f in self._files))

    def _commit(self, files: tuple[StagedFile, ...]) -> None:
        self._files = files
        self._version += 1

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def wait_settled(self) -> None:
        """Waits until every running preview and progress task has finished."""
        while True:
            pending = [t for t in (*self._progress_tasks.values(), *self._preview_tasks.values()) if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancels every outstanding side process."""
        tasks = [*self._progress_tasks.values(), *self._preview_tasks.values()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._progress_tasks.clear()
        self._preview_tasks.clear()
        logger.info("Intake controller closed, %d task(s) cancelled", len(tasks))

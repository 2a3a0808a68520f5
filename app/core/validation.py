"""Admission checks applied to every candidate file before it is staged."""

import fnmatch
import logging
from collections.abc import Callable
from collections.abc import Iterable
from pathlib import PurePath

import magic

from app.core.exceptions import ConfigurationError
from app.models.intake_models import CandidateFile
from app.models.intake_models import RejectionReason

logger = logging.getLogger(__name__)

AcceptPredicate = Callable[[CandidateFile], bool]
AcceptOption = Iterable[str] | AcceptPredicate | None

# Declared types that carry no information and are worth sniffing from the payload
GENERIC_MEDIA_TYPES: set[str] = {"", "application/octet-stream", "binary/octet-stream"}

# Bytes handed to libmagic; file signatures live in the first few hundred bytes
SNIFF_BUFFER_SIZE: int = 2048

# File picker filter, mirrors the default allow-list
PICKER_ACCEPT_ATTRIBUTE: str = ".pdf,image/*"


def _allow_all(_candidate: CandidateFile) -> bool:
    return True


def build_accept_predicate(accept: AcceptOption) -> AcceptPredicate:
    """Normalises the ``accept`` option into a single predicate.

    ``accept`` follows the HTML ``accept`` attribute conventions:

    - ``None`` or ``"*"`` / ``"*/*"`` admits everything.
    - ``"image/png"`` matches the declared media type exactly.
    - ``"image/*"`` matches any subtype of the given type.
    - ``".pdf"`` matches the file name extension, case-insensitively.

    A callable is used as-is and receives the whole CandidateFile.
    """
    if accept is None:
        return _allow_all
    if callable(accept):
        return accept
    if isinstance(accept, str):
        accept = accept.split(",")

    patterns = [p.strip().lower() for p in accept if p and p.strip()]
    if not patterns:
        raise ConfigurationError("The accept option must list at least one media type or pattern.")
    if any(p in ("*", "*/*") for p in patterns):
        return _allow_all

    extensions = {p for p in patterns if p.startswith(".")}
    media_patterns = [p for p in patterns if not p.startswith(".")]

    def _predicate(candidate: CandidateFile) -> bool:
        media_type = candidate.media_type.lower()
        if media_type and any(fnmatch.fnmatchcase(media_type, p) for p in media_patterns):
            return True
        return PurePath(candidate.name).suffix.lower() in extensions

    return _predicate


def check_candidate(
    candidate: CandidateFile,
    accepts: AcceptPredicate,
    max_file_size: int,
) -> RejectionReason | None:
    """Returns the reason a single candidate fails admission, or None when it passes.

    The type check runs first so a file carries exactly one reason.
    """
    if not accepts(candidate):
        return RejectionReason.INVALID_TYPE
    if candidate.size > max_file_size:
        return RejectionReason.TOO_LARGE
    return None


def sniff_media_type(data: bytes, declared: str | None = None) -> str:
    """Fills in a missing or generic declared media type from the payload signature.

    Specific declared types are trusted as-is; the intake validates what the
    client declares.
    """
    declared = (declared or "").lower()
    if declared not in GENERIC_MEDIA_TYPES:
        return declared
    if not data:
        return declared
    try:
        detected = magic.from_buffer(data[:SNIFF_BUFFER_SIZE], mime=True)
    except Exception as mime_err:
        logger.warning("Failed to detect MIME type from payload: %s", str(mime_err))
        return declared
    logger.debug("Sniffed media type %s (declared: %r)", detected, declared)
    return detected or declared

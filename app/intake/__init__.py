"""Intake package.

This package groups the staging-list controller and the helpers it delegates
to (preview generation, progress simulation, rejection notices). Keeping them
here allows `app/api/routes.py` to stay minimal and focused on HTTP routing.
"""

from .controller import IntakeController  # noqa: F401
from .notices import NoticeBoard  # noqa: F401
from .preview import generate_preview  # noqa: F401
from .progress import simulate_progress  # noqa: F401

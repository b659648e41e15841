"""Subject context for permission checks.

Usage:
    from permitto.auth import SubjectHeaderMiddleware, get_current_subject

    app.add_middleware(SubjectHeaderMiddleware)
"""

from permitto.auth.models import Subject
from permitto.auth.middleware import SubjectHeaderMiddleware, get_current_subject

__all__ = [
    "Subject",
    "SubjectHeaderMiddleware",
    "get_current_subject",
]

"""FastAPI subject middleware.

Reads the caller's role and membership from request headers, set by an
upstream identity proxy, and injects a `Subject` into request.state.
"""

import logging
from typing import Callable

from fastapi import HTTPException, Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from permitto.auth.models import Subject
from permitto.authz.messages import SUBJECT_REQUIRED

logger = logging.getLogger(__name__)

DEFAULT_ROLE_HEADER = "X-User-Role"
DEFAULT_MEMBERSHIP_HEADER = "X-User-Membership"
DEFAULT_USER_HEADER = "X-User-ID"


class SubjectHeaderMiddleware(BaseHTTPMiddleware):
    """Attach the caller's Subject to request.state.subject.

    Requests without a role header pass through with no subject; routes
    that need one depend on `get_current_subject`, which rejects them.

    Usage:
        app.add_middleware(SubjectHeaderMiddleware, exclude_paths=["/docs"])

    Then in endpoints:
        @app.get("/reports", dependencies=[Depends(permit_to("admin"))])
        async def reports(): ...
    """

    def __init__(
        self,
        app,
        role_header: str = DEFAULT_ROLE_HEADER,
        membership_header: str = DEFAULT_MEMBERSHIP_HEADER,
        user_header: str = DEFAULT_USER_HEADER,
        exclude_paths: list[str] | None = None,
    ):
        """Initialize subject middleware.

        Args:
            app: FastAPI application
            role_header: Header carrying the subject role
            membership_header: Header carrying the subject membership
            user_header: Header carrying the caller id (logging only)
            exclude_paths: Exact paths the middleware leaves untouched
        """
        super().__init__(app)
        self.role_header = role_header
        self.membership_header = membership_header
        self.user_header = user_header
        self.exclude_paths = set(exclude_paths or [])
        self.exclude_paths.add("/health")

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        """Process request, attaching the subject when headers are present."""
        path = request.url.path
        if path in self.exclude_paths:
            return await call_next(request)

        role = request.headers.get(self.role_header, "").strip()
        if role:
            subject = Subject(
                role=role,
                membership=request.headers.get(self.membership_header),
                user_id=request.headers.get(self.user_header),
            )
            request.state.subject = subject
            logger.debug(
                "Subject attached: user=%s role=%s membership=%s path=%s",
                subject.user_id, subject.role, subject.membership, path
            )

        return await call_next(request)


def get_current_subject(request: Request) -> Subject:
    """FastAPI dependency to get the current subject.

    Usage:
        @app.get("/me")
        async def me(subject: Subject = Depends(get_current_subject)):
            return {"role": subject.role}
    """
    subject = getattr(request.state, "subject", None)
    if subject is None:
        logger.warning("No subject in request context for path: %s", request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": SUBJECT_REQUIRED.code,
                "message": SUBJECT_REQUIRED.message,
            },
        )
    return subject

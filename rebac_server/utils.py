# (c) Copyright Datacraft, 2026
from typing import Annotated

from fastapi import Depends, Request

from .service import AuthorizationService


def get_service(request: Request) -> AuthorizationService:
    """FastAPI dependency for the process-wide authorization service."""
    return request.app.state.service


ServiceDep = Annotated[AuthorizationService, Depends(get_service)]

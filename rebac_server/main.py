# (c) Copyright Datacraft, 2026
"""FastAPI application factory."""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .config import Settings, get_settings, setup_logging
from .db import create_db_engine, create_session_factory, init_db
from .errors import (
	CheckCancelledError, DeadlineExceededError, NotFoundError,
	RebacError, SchemaError, ValidationError,
)
from .routers import models_router, relationships_router, stores_router
from .schema import ErrorResponse
from .service import AuthorizationService

logger = logging.getLogger(__name__)

ERROR_STATUS = {
	ValidationError: status.HTTP_400_BAD_REQUEST,
	NotFoundError: status.HTTP_404_NOT_FOUND,
	SchemaError: status.HTTP_500_INTERNAL_SERVER_ERROR,
	DeadlineExceededError: status.HTTP_504_GATEWAY_TIMEOUT,
	CheckCancelledError: status.HTTP_408_REQUEST_TIMEOUT,
}


def register_exception_handlers(app: FastAPI) -> None:
	@app.exception_handler(RebacError)
	async def rebac_exception_handler(request: Request, exc: RebacError) -> JSONResponse:
		status_code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
		if status_code >= 500:
			logger.error(f"{request.method} {request.url.path}: {exc.code}: {exc.message}")
		else:
			logger.info(f"{request.method} {request.url.path}: {exc.code}: {exc.message}")
		payload = ErrorResponse(code=exc.code, message=exc.message)
		return JSONResponse(payload.model_dump(), status_code=status_code)


def create_app(settings: Settings | None = None) -> FastAPI:
	"""
	Build the application with its own database and service.

	Run with `uvicorn --factory rebac_server.main:create_app`.
	"""
	settings = settings or get_settings()
	setup_logging(settings.log_level)

	engine = create_db_engine(settings.db_url)
	init_db(engine)

	app = FastAPI(title="rebac-server")
	app.state.service = AuthorizationService(
		session_factory=create_session_factory(engine),
		settings=settings,
	)
	app.include_router(stores_router)
	app.include_router(models_router)
	app.include_router(relationships_router)
	register_exception_handlers(app)
	return app

# (c) Copyright Datacraft, 2026
"""Authorization model endpoints."""
from fastapi import APIRouter, status

from rebac_server.schema import (
	AuthorizationModel,
	AuthorizationModelRequest,
	ReadAuthorizationModelsResponse,
	WriteAuthorizationModelResponse,
)
from rebac_server.utils import ServiceDep

router = APIRouter(prefix="/stores/{store_id}/authorization-models", tags=["Authorization Models"])


@router.post(
	"",
	response_model=WriteAuthorizationModelResponse,
	status_code=status.HTTP_201_CREATED,
)
async def write_authorization_model(
	store_id: str,
	model: AuthorizationModelRequest,
	service: ServiceDep,
):
	"""Publish a new immutable authorization model."""
	model_id = await service.write_authorization_model(store_id, model)
	return WriteAuthorizationModelResponse(authorization_model_id=model_id)


@router.get(
	"",
	response_model=ReadAuthorizationModelsResponse,
	response_model_exclude_none=True,
)
async def read_authorization_models(store_id: str, service: ServiceDep):
	"""List the store's models, newest first."""
	models = await service.read_authorization_models(store_id)
	return ReadAuthorizationModelsResponse(authorization_models=models)


@router.get(
	"/{model_id}",
	response_model=AuthorizationModel,
	response_model_by_alias=True,
	response_model_exclude_none=True,
)
async def read_authorization_model(store_id: str, model_id: str, service: ServiceDep):
	return await service.read_authorization_model(store_id, model_id)

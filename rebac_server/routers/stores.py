# (c) Copyright Datacraft, 2026
"""Store lifecycle endpoints."""
from fastapi import APIRouter, status

from rebac_server.schema import CreateStoreRequest, ListStoresResponse, Store
from rebac_server.utils import ServiceDep

router = APIRouter(prefix="/stores", tags=["Stores"])


@router.post("", response_model=Store, status_code=status.HTTP_201_CREATED)
async def create_store(request: CreateStoreRequest, service: ServiceDep):
	"""Create a new store."""
	return await service.create_store(request.name)


@router.get("", response_model=ListStoresResponse)
async def list_stores(service: ServiceDep):
	"""List all stores."""
	return ListStoresResponse(stores=await service.list_stores())


@router.get("/{store_id}", response_model=Store)
async def get_store(store_id: str, service: ServiceDep):
	return await service.get_store(store_id)


@router.delete("/{store_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_store(store_id: str, service: ServiceDep):
	"""Delete a store together with its models and tuples."""
	await service.delete_store(store_id)

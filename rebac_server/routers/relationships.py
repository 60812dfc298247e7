# (c) Copyright Datacraft, 2026
"""Tuple write/read and query endpoints."""
from fastapi import APIRouter

from rebac_server.schema import (
	CheckRequest, CheckResponse,
	ListObjectsRequest, ListObjectsResponse,
	ReadRequest, ReadResponse,
	WriteRequest,
)
from rebac_server.utils import ServiceDep

router = APIRouter(prefix="/stores/{store_id}", tags=["Relationships"])


@router.post("/write", response_model=dict)
async def write(store_id: str, request: WriteRequest, service: ServiceDep):
	"""Write and delete tuples in one atomic batch."""
	await service.write(
		store_id,
		writes=request.writes,
		deletes=request.deletes,
		model_id=request.authorization_model_id,
	)
	return {}


@router.post("/read", response_model=ReadResponse)
async def read(store_id: str, request: ReadRequest, service: ServiceDep):
	tuples = await service.read(
		store_id,
		user=request.user,
		relation=request.relation,
		object=request.object,
	)
	return ReadResponse(tuples=tuples)


@router.post("/check", response_model=CheckResponse)
async def check(store_id: str, request: CheckRequest, service: ServiceDep):
	"""Check whether a user has a relation to an object."""
	result = await service.check(
		store_id,
		user=request.tuple_key.user,
		relation=request.tuple_key.relation,
		object=request.tuple_key.object,
		model_id=request.authorization_model_id,
	)
	return CheckResponse(allowed=result.allowed, resolution_count=result.resolution_count)


@router.post("/list-objects", response_model=ListObjectsResponse)
async def list_objects(store_id: str, request: ListObjectsRequest, service: ServiceDep):
	"""List objects of a type the user has a relation to."""
	objects = await service.list_objects(
		store_id,
		user=request.user,
		relation=request.relation,
		object_type=request.type,
		model_id=request.authorization_model_id,
	)
	return ListObjectsResponse(objects=objects)

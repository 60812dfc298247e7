# (c) Copyright Datacraft, 2026
"""Request and response schemas, including the authorization model JSON."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


# Authorization model JSON


class ObjectRelation(BaseModel):
	relation: str
	object: str | None = None


class TupleToUsersetDefinition(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	tupleset: ObjectRelation
	computed_userset: ObjectRelation = Field(alias='computedUserset')


class Usersets(BaseModel):
	child: list['Userset']


class DifferenceDefinition(BaseModel):
	base: 'Userset'
	subtract: 'Userset'


class Userset(BaseModel):
	"""
	One relation rewrite. Exactly one of the fields must be set.

	`{"this": {}}` is direct assignment; the other keys follow the
	OpenFGA JSON syntax.
	"""
	model_config = ConfigDict(populate_by_name=True)

	this: dict | None = None
	computed_userset: ObjectRelation | None = Field(default=None, alias='computedUserset')
	tuple_to_userset: TupleToUsersetDefinition | None = Field(default=None, alias='tupleToUserset')
	union: Usersets | None = None
	intersection: Usersets | None = None
	difference: DifferenceDefinition | None = None

	@model_validator(mode='after')
	def _exactly_one_rewrite(self):
		present = [
			name for name in (
				'this', 'computed_userset', 'tuple_to_userset',
				'union', 'intersection', 'difference',
			)
			if getattr(self, name) is not None
		]
		if len(present) != 1:
			raise ValueError(
				f"a userset must define exactly one rewrite, got {present or 'none'}"
			)
		return self


Usersets.model_rebuild()
Userset.model_rebuild()
DifferenceDefinition.model_rebuild()


class RelationReference(BaseModel):
	type: str
	relation: str | None = None


class RelationMetadata(BaseModel):
	directly_related_user_types: list[RelationReference] = []


class Metadata(BaseModel):
	relations: dict[str, RelationMetadata] | None = None


class TypeDefinition(BaseModel):
	type: str
	relations: dict[str, Userset] | None = None
	metadata: Metadata | None = None


class AuthorizationModelRequest(BaseModel):
	schema_version: str
	type_definitions: list[TypeDefinition]

	def to_json(self) -> dict:
		return self.model_dump(mode='json', by_alias=True, exclude_none=True)


class AuthorizationModel(AuthorizationModelRequest):
	id: str
	version: int
	created_at: datetime


class WriteAuthorizationModelResponse(BaseModel):
	authorization_model_id: str


class ReadAuthorizationModelsResponse(BaseModel):
	authorization_models: list[AuthorizationModel]


# Stores


class CreateStoreRequest(BaseModel):
	name: str


class Store(BaseModel):
	id: str
	name: str
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)


class ListStoresResponse(BaseModel):
	stores: list[Store]


# Tuples and queries


class TupleKeySchema(BaseModel):
	"""Tuple key in string form: `user`, `relation`, `object`."""
	user: str  # type:id or type:id#relation
	relation: str
	object: str  # type:id


class Tuple(BaseModel):
	key: TupleKeySchema
	timestamp: datetime


class WriteRequest(BaseModel):
	authorization_model_id: str | None = None
	writes: list[TupleKeySchema] = []
	deletes: list[TupleKeySchema] = []


class ReadRequest(BaseModel):
	user: str | None = None
	relation: str | None = None
	object: str | None = None  # type:id, or type: for every object of a type


class ReadResponse(BaseModel):
	tuples: list[Tuple]


class CheckRequest(BaseModel):
	authorization_model_id: str | None = None
	tuple_key: TupleKeySchema


class CheckResponse(BaseModel):
	allowed: bool
	resolution_count: int = 0


class ListObjectsRequest(BaseModel):
	authorization_model_id: str | None = None
	user: str
	relation: str
	type: str


class ListObjectsResponse(BaseModel):
	objects: list[str]


class ErrorResponse(BaseModel):
	code: str
	message: str

# (c) Copyright Datacraft, 2026
"""Authorization service: stores, models, tuples and checks."""
import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import sessionmaker

from rebac_server.config import Settings
from rebac_server.errors import ValidationError
from rebac_server.locks import ReadWriteLock
from rebac_server.rebac.checker import CheckResult, RelationshipChecker
from rebac_server.rebac.graph import RelationshipGraph
from rebac_server.rebac.models import ModelStore
from rebac_server.rebac.stores import StoreRegistry
from rebac_server.rebac.tuples import RelationshipStore, TupleKey, parse_object
from rebac_server.schema import (
	AuthorizationModel, AuthorizationModelRequest, Store, Tuple, TupleKeySchema
)

logger = logging.getLogger(__name__)


@dataclass
class AuthorizationService:
	"""
	Entry point for every authorization operation.

	Holds one reader-writer lock per store: checks and reads share it,
	tuple writes and model publishes take it exclusively.
	"""

	session_factory: sessionmaker
	settings: Settings = field(default_factory=Settings)

	def __post_init__(self):
		self.registry = StoreRegistry(self.session_factory)
		self.models = ModelStore(self.session_factory)
		self.tuples = RelationshipStore(self.session_factory)
		self._locks: dict[str, ReadWriteLock] = {}

	def _lock(self, store_id: str) -> ReadWriteLock:
		return self._locks.setdefault(store_id, ReadWriteLock())

	@property
	def check_timeout(self) -> float | None:
		if not self.settings.check_timeout_ms:
			return None
		return self.settings.check_timeout_ms / 1000

	# Stores

	async def create_store(self, name: str) -> Store:
		record = await self.registry.create(name)
		return Store.model_validate(record)

	async def get_store(self, store_id: str) -> Store:
		return Store.model_validate(await self.registry.get(store_id))

	async def list_stores(self) -> list[Store]:
		return [Store.model_validate(r) for r in await self.registry.list()]

	async def delete_store(self, store_id: str) -> None:
		await self.registry.get(store_id)
		async with self._lock(store_id).write():
			removed = await self.tuples.purge(store_id)
			await self.models.purge(store_id)
			await self.registry.delete(store_id)
		self._locks.pop(store_id, None)
		logger.info(f"Store {store_id} removed with {removed} tuples")

	# Authorization models

	async def write_authorization_model(
		self,
		store_id: str,
		model: AuthorizationModelRequest,
	) -> str:
		"""Publish a model; it becomes the store's active model."""
		await self.registry.get(store_id)
		async with self._lock(store_id).write():
			return await self.models.publish(store_id, model)

	async def read_authorization_model(self, store_id: str, model_id: str) -> AuthorizationModel:
		await self.registry.get(store_id)
		return await self.models.get(store_id, model_id)

	async def read_authorization_models(self, store_id: str) -> list[AuthorizationModel]:
		await self.registry.get(store_id)
		return await self.models.list(store_id)

	async def _graph(self, store_id: str, model_id: str | None) -> RelationshipGraph:
		await self.registry.get(store_id)
		return await self.models.get_graph(store_id, model_id)

	# Tuples

	def _validate_write(self, graph: RelationshipGraph, key: TupleKey):
		if not graph.has_type(key.object_type):
			raise ValidationError(f"type '{key.object_type}' is not defined in the authorization model")
		definition = graph.get_definition(key.object_type, key.relation)
		if definition is None:
			raise ValidationError(f"relation '{key.object_type}#{key.relation}' is not defined")
		if not definition.direct_users:
			raise ValidationError(
				f"relation '{key.object_type}#{key.relation}' is not directly assignable, cannot write {key}"
			)
		if not definition.allows(key.user_type, key.user_relation):
			shape = f"{key.user_type}#{key.user_relation}" if key.user_relation else key.user_type
			raise ValidationError(
				f"'{shape}' is not an allowed type restriction for '{key.object_type}#{key.relation}'"
			)

	async def write(
		self,
		store_id: str,
		writes: list[TupleKeySchema] | None = None,
		deletes: list[TupleKeySchema] | None = None,
		model_id: str | None = None,
	) -> None:
		"""
		Apply a batch of tuple writes and deletes atomically.

		Writes are validated against the model's type restrictions;
		deletes only need to be well formed. Nothing is applied if any
		tuple in the batch is rejected.
		"""
		writes = writes or []
		deletes = deletes or []
		if len(writes) + len(deletes) > self.settings.max_tuples_per_write:
			raise ValidationError(
				f"batch of {len(writes) + len(deletes)} tuples exceeds the limit of "
				f"{self.settings.max_tuples_per_write}"
			)

		graph = await self._graph(store_id, model_id)
		write_keys = [TupleKey.from_strings(t.user, t.relation, t.object) for t in writes]
		delete_keys = [TupleKey.from_strings(t.user, t.relation, t.object) for t in deletes]
		for key in write_keys:
			self._validate_write(graph, key)

		both = set(write_keys) & set(delete_keys)
		if both:
			raise ValidationError(f"tuple {next(iter(both))} is both written and deleted in one batch")

		async with self._lock(store_id).write():
			inserted, removed = await self.tuples.write_batch(store_id, write_keys, delete_keys)
		logger.info(f"Store {store_id}: wrote {inserted} and deleted {removed} tuples")

	async def read(
		self,
		store_id: str,
		user: str | None = None,
		relation: str | None = None,
		object: str | None = None,
	) -> list[Tuple]:
		"""
		Read tuples by any combination of user, relation and object.

		`object` may be `type:id` or `type:` for every object of a type.
		"""
		await self.registry.get(store_id)
		object_type = object_id = None
		if object:
			if object.endswith(':'):
				object_type = object[:-1]
			else:
				object_type, object_id = parse_object(object)

		async with self._lock(store_id).read():
			records = await self.tuples.read(
				store_id,
				user=user,
				relation=relation,
				object_type=object_type,
				object_id=object_id,
			)
		return [
			Tuple(
				key=TupleKeySchema(
					user=TupleKey.from_record(r).user,
					relation=r.relation,
					object=f"{r.object_type}:{r.object_id}",
				),
				timestamp=r.created_at,
			)
			for r in records
		]

	# Queries

	async def check(
		self,
		store_id: str,
		user: str,
		relation: str,
		object: str,
		model_id: str | None = None,
		timeout: float | None = None,
		cancel_event: asyncio.Event | None = None,
	) -> CheckResult:
		"""Is `user` related to `object` via `relation` under the given model."""
		graph = await self._graph(store_id, model_id)
		checker = RelationshipChecker(
			self.tuples, graph, store_id, max_depth=self.settings.resolve_max_depth
		)
		async with self._lock(store_id).read():
			return await checker.check(
				user,
				relation,
				object,
				timeout=timeout if timeout is not None else self.check_timeout,
				cancel_event=cancel_event,
			)

	async def list_objects(
		self,
		store_id: str,
		user: str,
		relation: str,
		object_type: str,
		model_id: str | None = None,
	) -> list[str]:
		"""Objects of `object_type` on which `user` has `relation`."""
		graph = await self._graph(store_id, model_id)
		checker = RelationshipChecker(
			self.tuples, graph, store_id, max_depth=self.settings.resolve_max_depth
		)
		async with self._lock(store_id).read():
			return await checker.list_objects(
				user,
				relation,
				object_type,
				max_results=self.settings.list_objects_max_results,
				timeout=self.check_timeout,
			)

# (c) Copyright Datacraft, 2026
"""Immutable authorization model storage."""
import logging

from sqlalchemy import select, func
from sqlalchemy.orm import sessionmaker

from rebac_server.db.orm import AuthorizationModelRecord, new_id
from rebac_server.errors import NotFoundError
from rebac_server.schema import AuthorizationModel, AuthorizationModelRequest
from .graph import RelationshipGraph, build_graph

logger = logging.getLogger(__name__)


class ModelStore:
	"""
	Publish and load authorization models.

	Models are never updated once written, so compiled graphs are cached
	by (store_id, model_id) and served without locking.
	"""

	def __init__(self, session_factory: sessionmaker):
		self._session_factory = session_factory
		self._graphs: dict[tuple[str, str], RelationshipGraph] = {}

	async def publish(self, store_id: str, model: AuthorizationModelRequest) -> str:
		"""
		Validate and persist a model.

		Returns:
			The generated model id

		Raises:
			ValidationError: if the model is malformed
		"""
		model_id = new_id()
		graph = build_graph(model, model_id=model_id)

		with self._session_factory.begin() as db:
			latest = db.scalar(
				select(func.max(AuthorizationModelRecord.version))
				.where(AuthorizationModelRecord.store_id == store_id)
			)
			record = AuthorizationModelRecord(
				id=model_id,
				store_id=store_id,
				version=(latest or 0) + 1,
				schema_version=model.schema_version,
				model_json=model.to_json(),
			)
			db.add(record)

		self._graphs[(store_id, model_id)] = graph
		logger.info(f"Published authorization model {model_id} v{record.version} in store {store_id}")
		return model_id

	def _load(self, store_id: str, model_id: str | None) -> AuthorizationModelRecord:
		stmt = select(AuthorizationModelRecord).where(
			AuthorizationModelRecord.store_id == store_id
		)
		if model_id:
			stmt = stmt.where(AuthorizationModelRecord.id == model_id)
		else:
			stmt = stmt.order_by(AuthorizationModelRecord.version.desc()).limit(1)

		with self._session_factory() as db:
			record = db.scalar(stmt)
		if record is None:
			if model_id:
				raise NotFoundError('authorization model', model_id)
			raise NotFoundError('latest authorization model of store', store_id)
		return record

	@staticmethod
	def _to_schema(record: AuthorizationModelRecord) -> AuthorizationModel:
		return AuthorizationModel(
			id=record.id,
			version=record.version,
			created_at=record.created_at,
			**record.model_json,
		)

	async def get(self, store_id: str, model_id: str) -> AuthorizationModel:
		"""Get a published model, NotFoundError if absent."""
		return self._to_schema(self._load(store_id, model_id))

	async def latest(self, store_id: str) -> AuthorizationModel:
		"""Get the store's most recently published model."""
		return self._to_schema(self._load(store_id, None))

	async def list(self, store_id: str) -> list[AuthorizationModel]:
		"""All models of a store, newest first."""
		stmt = (
			select(AuthorizationModelRecord)
			.where(AuthorizationModelRecord.store_id == store_id)
			.order_by(AuthorizationModelRecord.version.desc())
		)
		with self._session_factory() as db:
			return [self._to_schema(r) for r in db.scalars(stmt)]

	async def get_graph(self, store_id: str, model_id: str | None = None) -> RelationshipGraph:
		"""Compiled model by id, or the latest one when no id is given."""
		if model_id and (store_id, model_id) in self._graphs:
			return self._graphs[(store_id, model_id)]

		record = self._load(store_id, model_id)
		graph = self._graphs.get((store_id, record.id))
		if graph is None:
			model = AuthorizationModelRequest.model_validate(record.model_json)
			graph = build_graph(model, model_id=record.id)
			self._graphs[(store_id, record.id)] = graph
		return graph

	async def purge(self, store_id: str) -> int:
		"""Drop every model of a store, used when the store is deleted."""
		with self._session_factory.begin() as db:
			records = list(db.scalars(
				select(AuthorizationModelRecord)
				.where(AuthorizationModelRecord.store_id == store_id)
			))
			for record in records:
				db.delete(record)

		for key in [k for k in self._graphs if k[0] == store_id]:
			del self._graphs[key]
		return len(records)

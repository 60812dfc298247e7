# (c) Copyright Datacraft, 2026
"""Store registry."""
import logging

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from rebac_server.db.orm import StoreRecord
from rebac_server.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class StoreRegistry:
	"""Create, look up and remove stores."""

	def __init__(self, session_factory: sessionmaker):
		self._session_factory = session_factory

	async def create(self, name: str) -> StoreRecord:
		name = (name or '').strip()
		if not name:
			raise ValidationError("store name must not be empty")

		with self._session_factory.begin() as db:
			store = StoreRecord(name=name)
			db.add(store)
		logger.info(f"Created store {store.id} ({name})")
		return store

	async def get(self, store_id: str) -> StoreRecord:
		with self._session_factory() as db:
			store = db.get(StoreRecord, store_id)
		if store is None:
			raise NotFoundError('store', store_id)
		return store

	async def list(self) -> list[StoreRecord]:
		with self._session_factory() as db:
			return list(db.scalars(select(StoreRecord).order_by(StoreRecord.created_at)))

	async def delete(self, store_id: str) -> None:
		with self._session_factory.begin() as db:
			store = db.get(StoreRecord, store_id)
			if store is None:
				raise NotFoundError('store', store_id)
			db.delete(store)
		logger.info(f"Deleted store {store_id}")

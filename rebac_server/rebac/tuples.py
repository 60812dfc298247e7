# (c) Copyright Datacraft, 2026
"""Relationship tuples storage and management."""
import logging
import re
from typing import Iterable

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select, delete
from sqlalchemy.orm import sessionmaker

from rebac_server.db.orm import ID_MAX_LENGTH, NAME_MAX_LENGTH, RelationTuple
from rebac_server.errors import ValidationError

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(rf'^[^:#@\s]{{1,{NAME_MAX_LENGTH}}}$')
_ID_RE = re.compile(rf'^[^#@\s]{{1,{ID_MAX_LENGTH}}}$')


def is_valid_name(value: str) -> bool:
	"""Type and relation names: no separators, no whitespace."""
	return bool(_NAME_RE.match(value or ''))


def parse_object(value: str) -> tuple[str, str]:
	"""Split `type:id` into its parts."""
	object_type, sep, object_id = (value or '').partition(':')
	if not sep or not is_valid_name(object_type) or not _ID_RE.match(object_id):
		raise ValidationError(f"invalid object '{value}', expected 'type:id'")
	return object_type, object_id


def parse_user(value: str) -> tuple[str, str, str | None]:
	"""Split `type:id` or `type:id#relation` into its parts."""
	main, sep, relation = (value or '').partition('#')
	if sep and not is_valid_name(relation):
		raise ValidationError(f"invalid user '{value}', expected 'type:id#relation'")
	try:
		user_type, user_id = parse_object(main)
	except ValidationError:
		raise ValidationError(
			f"invalid user '{value}', expected 'type:id' or 'type:id#relation'"
		) from None
	return user_type, user_id, relation or None


class TupleKey(BaseModel):
	"""Parsed relationship tuple used by the store and the resolver."""
	model_config = ConfigDict(frozen=True)

	object_type: str
	object_id: str
	relation: str
	user_type: str
	user_id: str
	user_relation: str | None = None

	@property
	def object(self) -> str:
		return f"{self.object_type}:{self.object_id}"

	@property
	def user(self) -> str:
		user = f"{self.user_type}:{self.user_id}"
		if self.user_relation:
			user += f"#{self.user_relation}"
		return user

	def __str__(self):
		return f"{self.object}#{self.relation}@{self.user}"

	@classmethod
	def from_strings(cls, user: str, relation: str, object: str) -> "TupleKey":
		"""Build a key from the `user`, `relation`, `object` string form."""
		if not is_valid_name(relation):
			raise ValidationError(f"invalid relation '{relation}'")
		object_type, object_id = parse_object(object)
		user_type, user_id, user_relation = parse_user(user)
		return cls(
			object_type=object_type,
			object_id=object_id,
			relation=relation,
			user_type=user_type,
			user_id=user_id,
			user_relation=user_relation,
		)

	@classmethod
	def from_record(cls, record: RelationTuple) -> "TupleKey":
		return cls(
			object_type=record.object_type,
			object_id=record.object_id,
			relation=record.relation,
			user_type=record.user_type,
			user_id=record.user_id,
			user_relation=record.user_relation or None,
		)


class RelationshipStore:
	"""
	Store and query relationship tuples.

	Every batch runs in a single transaction so readers never observe
	half of it. Lookups go through the object-side and user-side indexes.
	"""

	def __init__(self, session_factory: sessionmaker):
		self._session_factory = session_factory

	@staticmethod
	def _match(store_id: str, key: TupleKey) -> list:
		return [
			RelationTuple.store_id == store_id,
			RelationTuple.object_type == key.object_type,
			RelationTuple.object_id == key.object_id,
			RelationTuple.relation == key.relation,
			RelationTuple.user_type == key.user_type,
			RelationTuple.user_id == key.user_id,
			RelationTuple.user_relation == (key.user_relation or ''),
		]

	async def write_batch(
		self,
		store_id: str,
		writes: Iterable[TupleKey] = (),
		deletes: Iterable[TupleKey] = (),
	) -> tuple[int, int]:
		"""
		Apply deletes then writes atomically.

		Writing an existing tuple and deleting an absent one are no-ops.

		Returns:
			Number of tuples inserted and number removed
		"""
		inserted = 0
		removed = 0
		with self._session_factory.begin() as db:
			for key in dict.fromkeys(deletes):
				result = db.execute(delete(RelationTuple).where(*self._match(store_id, key)))
				removed += result.rowcount

			for key in dict.fromkeys(writes):
				existing = db.scalar(select(RelationTuple.id).where(*self._match(store_id, key)))
				if existing is not None:
					continue
				db.add(RelationTuple(
					store_id=store_id,
					object_type=key.object_type,
					object_id=key.object_id,
					relation=key.relation,
					user_type=key.user_type,
					user_id=key.user_id,
					user_relation=key.user_relation or '',
				))
				inserted += 1

		logger.debug(f"Store {store_id}: {inserted} tuples written, {removed} deleted")
		return inserted, removed

	async def write(self, store_id: str, tuples: Iterable[TupleKey]) -> int:
		"""Write tuples, skipping those already present."""
		inserted, _ = await self.write_batch(store_id, writes=tuples)
		return inserted

	async def delete(self, store_id: str, tuples: Iterable[TupleKey]) -> int:
		"""Delete tuples, ignoring those not present."""
		_, removed = await self.write_batch(store_id, deletes=tuples)
		return removed

	async def purge(self, store_id: str) -> int:
		"""Delete all tuples of a store."""
		with self._session_factory.begin() as db:
			result = db.execute(
				delete(RelationTuple).where(RelationTuple.store_id == store_id)
			)
			return result.rowcount

	async def read_by_object(
		self,
		store_id: str,
		object_type: str,
		object_id: str,
		relation: str | None = None,
	) -> list[TupleKey]:
		"""Get tuples on an object, optionally for one relation."""
		stmt = select(RelationTuple).where(
			RelationTuple.store_id == store_id,
			RelationTuple.object_type == object_type,
			RelationTuple.object_id == object_id,
		)
		if relation:
			stmt = stmt.where(RelationTuple.relation == relation)
		with self._session_factory() as db:
			return [TupleKey.from_record(r) for r in db.scalars(stmt.order_by(RelationTuple.id))]

	async def read_by_subject(
		self,
		store_id: str,
		user_type: str,
		user_id: str,
		user_relation: str | None = None,
		relation: str | None = None,
	) -> list[TupleKey]:
		"""Get tuples whose user is the given subject or userset."""
		stmt = select(RelationTuple).where(
			RelationTuple.store_id == store_id,
			RelationTuple.user_type == user_type,
			RelationTuple.user_id == user_id,
			RelationTuple.user_relation == (user_relation or ''),
		)
		if relation:
			stmt = stmt.where(RelationTuple.relation == relation)
		with self._session_factory() as db:
			return [TupleKey.from_record(r) for r in db.scalars(stmt.order_by(RelationTuple.id))]

	async def read(
		self,
		store_id: str,
		user: str | None = None,
		relation: str | None = None,
		object_type: str | None = None,
		object_id: str | None = None,
		limit: int = 1000,
	) -> list[RelationTuple]:
		"""Read tuples matching the filters."""
		stmt = select(RelationTuple).where(RelationTuple.store_id == store_id)

		if user:
			user_type, user_id, user_relation = parse_user(user)
			stmt = stmt.where(
				RelationTuple.user_type == user_type,
				RelationTuple.user_id == user_id,
				RelationTuple.user_relation == (user_relation or ''),
			)
		if relation:
			stmt = stmt.where(RelationTuple.relation == relation)
		if object_type:
			stmt = stmt.where(RelationTuple.object_type == object_type)
		if object_id:
			stmt = stmt.where(RelationTuple.object_id == object_id)

		stmt = stmt.order_by(RelationTuple.id).limit(limit)
		with self._session_factory() as db:
			return list(db.scalars(stmt))

	async def list_object_ids(
		self,
		store_id: str,
		object_type: str,
		limit: int | None = None,
	) -> list[str]:
		"""Distinct ids of objects of a type that appear in any tuple."""
		stmt = (
			select(RelationTuple.object_id)
			.where(
				RelationTuple.store_id == store_id,
				RelationTuple.object_type == object_type,
			)
			.distinct()
			.order_by(RelationTuple.object_id)
		)
		if limit:
			stmt = stmt.limit(limit)
		with self._session_factory() as db:
			return list(db.scalars(stmt))

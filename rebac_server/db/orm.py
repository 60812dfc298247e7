# (c) Copyright Datacraft, 2026
"""Tables for stores, authorization models and relationship tuples."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
	String, ForeignKey, Index, UniqueConstraint, Integer, JSON, DateTime
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base

# Limits shared with tuple parsing
NAME_MAX_LENGTH = 254
ID_MAX_LENGTH = 256


def utc_now() -> datetime:
	return datetime.now(timezone.utc)


def new_id() -> str:
	return str(uuid.uuid4())


class StoreRecord(Base):
	"""Namespace holding models and tuples."""

	__tablename__ = "stores"

	id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
	name: Mapped[str] = mapped_column(String(256), nullable=False)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now
	)
	updated_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, onupdate=utc_now
	)

	def __repr__(self):
		return f"Store({self.id}: {self.name})"


class AuthorizationModelRecord(Base):
	"""
	Published authorization model.

	Rows are inserted once and never updated. `version` increases by one
	with every publish inside a store; the highest version is the store's
	active model.
	"""

	__tablename__ = "authorization_models"

	id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
	store_id: Mapped[str] = mapped_column(
		ForeignKey("stores.id", ondelete="CASCADE"),
		nullable=False,
	)
	version: Mapped[int] = mapped_column(Integer, nullable=False)
	schema_version: Mapped[str] = mapped_column(String(10), nullable=False)
	model_json: Mapped[dict] = mapped_column(JSON, nullable=False)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now
	)

	__table_args__ = (
		UniqueConstraint("store_id", "version", name="uq_model_version"),
		Index("idx_model_store", "store_id", "version"),
	)

	def __repr__(self):
		return f"AuthorizationModel({self.id} v{self.version})"


class RelationTuple(Base):
	"""
	Zanzibar-style relation tuple.

	Format: object#relation@user
	Example: document:doc-001#owner@user:alice

	Supports userset users like:
	document:doc-001#editor@team:engineering#member

	`user_relation` is stored as an empty string for plain users so the
	unique constraint also covers them.
	"""

	__tablename__ = "relation_tuples"

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	store_id: Mapped[str] = mapped_column(
		ForeignKey("stores.id", ondelete="CASCADE"),
		nullable=False,
	)

	# Object (resource being accessed)
	object_type: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)
	object_id: Mapped[str] = mapped_column(String(ID_MAX_LENGTH), nullable=False)

	relation: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)

	# User (who has the relation)
	user_type: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)
	user_id: Mapped[str] = mapped_column(String(ID_MAX_LENGTH), nullable=False)
	user_relation: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False, default='')

	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now
	)

	__table_args__ = (
		UniqueConstraint(
			"store_id", "object_type", "object_id", "relation",
			"user_type", "user_id", "user_relation",
			name="uq_relation_tuple"
		),
		Index(
			"idx_tuple_object_relation",
			"store_id", "object_type", "object_id", "relation"
		),
		Index(
			"idx_tuple_user_relation",
			"store_id", "user_type", "user_id", "user_relation", "relation"
		),
	)

	def __repr__(self):
		user = f"{self.user_type}:{self.user_id}"
		if self.user_relation:
			user += f"#{self.user_relation}"
		return f"{self.object_type}:{self.object_id}#{self.relation}@{user}"

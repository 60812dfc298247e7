# (c) Copyright Datacraft, 2026
"""Database module for rebac-server."""
from .orm import StoreRecord, AuthorizationModelRecord, RelationTuple
from .base import Base
from .engine import create_db_engine, create_session_factory, init_db

__all__ = [
	'Base',
	'StoreRecord',
	'AuthorizationModelRecord',
	'RelationTuple',
	'create_db_engine',
	'create_session_factory',
	'init_db',
]

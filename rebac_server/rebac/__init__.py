# (c) Copyright Datacraft, 2026
"""Relationship-Based Access Control (ReBAC) - Zanzibar-style module."""
from .tuples import TupleKey, RelationshipStore
from .graph import RelationshipGraph, RelationDefinition, build_graph
from .checker import RelationshipChecker, CheckResult
from .models import ModelStore
from .stores import StoreRegistry

__all__ = [
	'TupleKey',
	'RelationshipStore',
	'RelationshipGraph',
	'RelationDefinition',
	'build_graph',
	'RelationshipChecker',
	'CheckResult',
	'ModelStore',
	'StoreRegistry',
]

# (c) Copyright Datacraft, 2026
"""Compiled authorization models: relation expressions and type definitions."""
import logging
from dataclasses import dataclass, field

from rebac_server.errors import ValidationError
from rebac_server.schema import AuthorizationModelRequest, Userset
from .tuples import is_valid_name

logger = logging.getLogger(__name__)

SCHEMA_VERSION = '1.1'


@dataclass(frozen=True)
class Direct:
	"""Relation holds when a matching tuple exists."""


@dataclass(frozen=True)
class ComputedUserset:
	"""Relation holds when another relation on the same object holds."""
	relation: str


@dataclass(frozen=True)
class TupleToUserset:
	"""
	Indirection through a related object.

	For every tuple `object#tupleset@O`, the relation holds when
	`O#computed_relation` holds.
	"""
	tupleset: str
	computed_relation: str


@dataclass(frozen=True)
class Union:
	children: tuple = ()


@dataclass(frozen=True)
class Intersection:
	children: tuple = ()


@dataclass(frozen=True)
class Difference:
	base: object
	subtract: object


Expression = Direct | ComputedUserset | TupleToUserset | Union | Intersection | Difference


@dataclass(frozen=True)
class RelationReference:
	"""Allowed user shape for direct assignment: `type` or `type#relation`."""
	type: str
	relation: str | None = None

	def __str__(self):
		return f"{self.type}#{self.relation}" if self.relation else self.type


@dataclass(frozen=True)
class RelationDefinition:
	"""
	Definition of a relation with its rewrite expression.

	Supports:
	- Direct relations: user has relation to object
	- Computed usersets: relation follows another relation of the object
	- Unions, intersections and differences of the above
	- Tuple to userset: inherit from a related object
	"""
	name: str
	object_type: str
	expression: Expression
	directly_related_user_types: tuple[RelationReference, ...] = ()

	@property
	def direct_users(self) -> bool:
		return contains_direct(self.expression)

	def allows(self, user_type: str, user_relation: str | None) -> bool:
		"""Whether a tuple with this user shape may be assigned directly."""
		return any(
			ref.type == user_type and ref.relation == user_relation
			for ref in self.directly_related_user_types
		)


def contains_direct(expression: Expression) -> bool:
	if isinstance(expression, Direct):
		return True
	if isinstance(expression, (Union, Intersection)):
		return any(contains_direct(child) for child in expression.children)
	if isinstance(expression, Difference):
		return contains_direct(expression.base) or contains_direct(expression.subtract)
	return False


def iter_expressions(expression: Expression):
	"""Yield the expression and all nested ones, depth first."""
	yield expression
	if isinstance(expression, (Union, Intersection)):
		for child in expression.children:
			yield from iter_expressions(child)
	elif isinstance(expression, Difference):
		yield from iter_expressions(expression.base)
		yield from iter_expressions(expression.subtract)


class RelationshipGraph:
	"""
	Defines the relationship model for the authorization system.

	This is the schema/type definition, not the data. Instances are built
	once per published model and never change afterwards.
	"""

	def __init__(self, model_id: str | None = None, schema_version: str = SCHEMA_VERSION):
		self.model_id = model_id
		self.schema_version = schema_version
		self._definitions: dict[str, dict[str, RelationDefinition]] = {}

	def define_type(
		self,
		object_type: str,
		relations: dict[str, RelationDefinition],
	):
		"""Define relations for an object type."""
		self._definitions[object_type] = relations

	def has_type(self, object_type: str) -> bool:
		return object_type in self._definitions

	def get_definition(
		self,
		object_type: str,
		relation: str,
	) -> RelationDefinition | None:
		"""Get relation definition."""
		type_defs = self._definitions.get(object_type, {})
		return type_defs.get(relation)

	@property
	def types(self) -> list[str]:
		return list(self._definitions)

	def definitions(self):
		for relations in self._definitions.values():
			yield from relations.values()


def _compile(userset: Userset) -> Expression:
	if userset.this is not None:
		return Direct()
	if userset.computed_userset is not None:
		return ComputedUserset(relation=userset.computed_userset.relation)
	if userset.tuple_to_userset is not None:
		ttu = userset.tuple_to_userset
		return TupleToUserset(
			tupleset=ttu.tupleset.relation,
			computed_relation=ttu.computed_userset.relation,
		)
	if userset.union is not None:
		return Union(children=tuple(_compile(c) for c in userset.union.child))
	if userset.intersection is not None:
		return Intersection(children=tuple(_compile(c) for c in userset.intersection.child))
	return Difference(
		base=_compile(userset.difference.base),
		subtract=_compile(userset.difference.subtract),
	)


def build_graph(
	model: AuthorizationModelRequest,
	model_id: str | None = None,
) -> RelationshipGraph:
	"""
	Compile and validate an authorization model.

	Raises:
		ValidationError: if the model references undefined types or
			relations, or its metadata disagrees with the expressions
	"""
	if model.schema_version != SCHEMA_VERSION:
		raise ValidationError(
			f"unsupported schema version '{model.schema_version}', expected '{SCHEMA_VERSION}'"
		)
	if not model.type_definitions:
		raise ValidationError("authorization model must define at least one type")

	graph = RelationshipGraph(model_id=model_id, schema_version=model.schema_version)

	for type_def in model.type_definitions:
		if not is_valid_name(type_def.type):
			raise ValidationError(f"invalid type name '{type_def.type}'")
		if graph.has_type(type_def.type):
			raise ValidationError(f"type '{type_def.type}' is defined more than once")

		relations = type_def.relations or {}
		metadata = {}
		if type_def.metadata and type_def.metadata.relations:
			metadata = type_def.metadata.relations

		for name in metadata:
			if name not in relations:
				raise ValidationError(
					f"metadata lists relation '{name}' which type '{type_def.type}' does not define"
				)

		definitions = {}
		for name, userset in relations.items():
			if not is_valid_name(name):
				raise ValidationError(f"invalid relation name '{name}' on type '{type_def.type}'")
			refs = ()
			if name in metadata:
				refs = tuple(
					RelationReference(type=ref.type, relation=ref.relation)
					for ref in metadata[name].directly_related_user_types
				)
			definitions[name] = RelationDefinition(
				name=name,
				object_type=type_def.type,
				expression=_compile(userset),
				directly_related_user_types=refs,
			)
		graph.define_type(type_def.type, definitions)

	for definition in graph.definitions():
		_validate_definition(graph, definition)

	logger.debug(f"Compiled model {model_id} with types {graph.types}")
	return graph


def _validate_definition(graph: RelationshipGraph, definition: RelationDefinition):
	where = f"{definition.object_type}#{definition.name}"

	for ref in definition.directly_related_user_types:
		if not graph.has_type(ref.type):
			raise ValidationError(f"{where}: undefined type '{ref.type}' in directly related user types")
		if ref.relation and graph.get_definition(ref.type, ref.relation) is None:
			raise ValidationError(f"{where}: undefined relation '{ref}' in directly related user types")

	if definition.direct_users and not definition.directly_related_user_types:
		raise ValidationError(f"{where}: directly assignable relation lists no directly related user types")
	if not definition.direct_users and definition.directly_related_user_types:
		raise ValidationError(f"{where}: directly related user types set on a relation without 'this'")

	for expression in iter_expressions(definition.expression):
		if isinstance(expression, ComputedUserset):
			if graph.get_definition(definition.object_type, expression.relation) is None:
				raise ValidationError(f"{where}: computed relation '{expression.relation}' is undefined")

		elif isinstance(expression, TupleToUserset):
			tupleset = graph.get_definition(definition.object_type, expression.tupleset)
			if tupleset is None:
				raise ValidationError(f"{where}: tupleset relation '{expression.tupleset}' is undefined")
			if not tupleset.direct_users:
				raise ValidationError(
					f"{where}: tupleset relation '{expression.tupleset}' must be directly assignable"
				)
			if any(ref.relation for ref in tupleset.directly_related_user_types):
				raise ValidationError(
					f"{where}: tupleset relation '{expression.tupleset}' may not allow usersets"
				)
			if not any(
				graph.get_definition(ref.type, expression.computed_relation)
				for ref in tupleset.directly_related_user_types
			):
				raise ValidationError(
					f"{where}: computed relation '{expression.computed_relation}' is not defined "
					f"on any type related through '{expression.tupleset}'"
				)

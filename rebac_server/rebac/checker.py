# (c) Copyright Datacraft, 2026
"""Relationship graph traversal and permission checking."""
import asyncio
import logging
import time
from dataclasses import dataclass, field

from rebac_server.errors import (
	CheckCancelledError, DeadlineExceededError, SchemaError, ValidationError
)
from .graph import (
	ComputedUserset, Difference, Direct, Expression, Intersection,
	RelationDefinition, RelationshipGraph, TupleToUserset, Union,
)
from .tuples import RelationshipStore, is_valid_name, parse_object, parse_user

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
	"""Result of a permission check."""
	allowed: bool
	resolution_count: int = 0
	evaluation_time_ms: float = 0


@dataclass
class ResolutionContext:
	"""
	State of one top-level check.

	`visited` holds the (user, relation, object) triples on the current
	resolution path; a triple met again on the same path is a cycle.
	`resolved` remembers triples already answered during this check. Only
	answers reached without cutting a cycle or hitting the depth limit are
	kept, since those do not depend on the path that led to them.
	"""
	visited: set[tuple[str, str, str]] = field(default_factory=set)
	resolved: dict[tuple[str, str, str], bool] = field(default_factory=dict)
	cuts: int = 0
	resolution_count: int = 0
	deadline: float | None = None  # time.monotonic() value
	cancel_event: asyncio.Event | None = None

	def ensure_active(self):
		if self.cancel_event is not None and self.cancel_event.is_set():
			raise CheckCancelledError("check cancelled by caller")
		if self.deadline is not None and time.monotonic() > self.deadline:
			raise DeadlineExceededError(
				f"check exceeded its deadline after {self.resolution_count} resolution steps"
			)


class RelationshipChecker:
	"""
	Check permissions using relationship graph traversal.

	Implements Zanzibar-style check algorithm with:
	- Direct tuple lookup
	- Userset expansion
	- Computed relation expansion (union/intersection/difference)
	- Tuple to userset traversal
	"""

	def __init__(
		self,
		store: RelationshipStore,
		graph: RelationshipGraph,
		store_id: str,
		max_depth: int = 25,
	):
		self.store = store
		self.graph = graph
		self.store_id = store_id
		self.max_depth = max_depth

	def validate_request(self, user: str, relation: str, object: str) -> tuple[str, str]:
		"""
		Check that the request names types and relations of the model.

		Returns:
			The object's type and id
		"""
		object_type, object_id = parse_object(object)
		user_type, _, user_relation = parse_user(user)

		if not self.graph.has_type(object_type):
			raise ValidationError(f"type '{object_type}' is not defined in the authorization model")
		if self.graph.get_definition(object_type, relation) is None:
			raise ValidationError(f"relation '{object_type}#{relation}' is not defined")
		if not self.graph.has_type(user_type):
			raise ValidationError(f"type '{user_type}' is not defined in the authorization model")
		if user_relation and self.graph.get_definition(user_type, user_relation) is None:
			raise ValidationError(f"relation '{user_type}#{user_relation}' is not defined")
		return object_type, object_id

	async def check(
		self,
		user: str,
		relation: str,
		object: str,
		timeout: float | None = None,
		cancel_event: asyncio.Event | None = None,
	) -> CheckResult:
		"""
		Check if user has relation to object.

		Args:
			user: Subject as type:id or userset as type:id#relation
			relation: Relation to check (editor, member, etc.)
			object: Object as type:id
			timeout: Seconds before DeadlineExceededError, None for no deadline
			cancel_event: Set by the caller to abort the check

		Returns:
			CheckResult with allowed status
		"""
		start_time = time.monotonic()
		object_type, object_id = self.validate_request(user, relation, object)

		context = ResolutionContext(
			deadline=start_time + timeout if timeout else None,
			cancel_event=cancel_event,
		)
		allowed = await self.resolve(user, relation, object_type, object_id, context)

		result = CheckResult(
			allowed=allowed,
			resolution_count=context.resolution_count,
			evaluation_time_ms=(time.monotonic() - start_time) * 1000,
		)
		logger.debug(
			f"Check {object}#{relation}@{user}: {allowed} "
			f"({result.resolution_count} steps, {result.evaluation_time_ms:.2f} ms)"
		)
		return result

	async def resolve(
		self,
		user: str,
		relation: str,
		object_type: str,
		object_id: str,
		context: ResolutionContext,
		depth: int = 0,
	) -> bool:
		"""Recursive check with cycle detection."""
		# Store reads do not suspend, so give a caller the chance to cancel
		await asyncio.sleep(0)
		context.ensure_active()

		triple = (user, relation, f"{object_type}:{object_id}")
		if triple in context.resolved:
			return context.resolved[triple]

		if depth > self.max_depth:
			logger.warning(
				f"Max depth reached checking {object_type}:{object_id}#{relation}@{user}"
			)
			context.cuts += 1
			return False

		if triple in context.visited:
			logger.debug(f"Cycle at {triple[2]}#{relation}@{user}")
			context.cuts += 1
			return False

		definition = self.graph.get_definition(object_type, relation)
		if definition is None:
			raise SchemaError(f"relation '{object_type}#{relation}' is not defined")

		cuts = context.cuts
		context.visited.add(triple)
		context.resolution_count += 1
		try:
			allowed = await self._evaluate(
				definition.expression, definition, user, object_type, object_id, context, depth
			)
		finally:
			context.visited.discard(triple)

		if context.cuts == cuts:
			context.resolved[triple] = allowed
		return allowed

	async def _evaluate(
		self,
		expression: Expression,
		definition: RelationDefinition,
		user: str,
		object_type: str,
		object_id: str,
		context: ResolutionContext,
		depth: int,
	) -> bool:
		if isinstance(expression, Direct):
			return await self._check_direct(definition, user, object_type, object_id, context, depth)

		if isinstance(expression, ComputedUserset):
			return await self.resolve(
				user, expression.relation, object_type, object_id, context, depth + 1
			)

		if isinstance(expression, TupleToUserset):
			return await self._check_tuple_to_userset(
				expression, user, object_type, object_id, context, depth
			)

		if isinstance(expression, Union):
			for child in expression.children:
				if await self._evaluate(child, definition, user, object_type, object_id, context, depth):
					return True
			return False

		if isinstance(expression, Intersection):
			for child in expression.children:
				if not await self._evaluate(child, definition, user, object_type, object_id, context, depth):
					return False
			return bool(expression.children)

		if isinstance(expression, Difference):
			if not await self._evaluate(expression.base, definition, user, object_type, object_id, context, depth):
				return False
			return not await self._evaluate(
				expression.subtract, definition, user, object_type, object_id, context, depth
			)

		raise SchemaError(f"unsupported expression {expression!r}")

	async def _check_direct(
		self,
		definition: RelationDefinition,
		user: str,
		object_type: str,
		object_id: str,
		context: ResolutionContext,
		depth: int,
	) -> bool:
		tuples = await self.store.read_by_object(
			self.store_id, object_type, object_id, definition.name
		)

		usersets = []
		for key in tuples:
			# Tuples written under an older model may not fit this one
			if not definition.allows(key.user_type, key.user_relation):
				continue
			if key.user == user:
				return True
			if key.user_relation:
				usersets.append(key)

		# e.g. document:doc-001#editor@team:engineering#member
		# holds for the user when the user is a member of the team
		for key in usersets:
			if await self.resolve(
				user, key.user_relation, key.user_type, key.user_id, context, depth + 1
			):
				return True
		return False

	async def _check_tuple_to_userset(
		self,
		expression: TupleToUserset,
		user: str,
		object_type: str,
		object_id: str,
		context: ResolutionContext,
		depth: int,
	) -> bool:
		tupleset = self.graph.get_definition(object_type, expression.tupleset)
		if tupleset is None:
			raise SchemaError(f"tupleset relation '{object_type}#{expression.tupleset}' is not defined")

		parents = await self.store.read_by_object(
			self.store_id, object_type, object_id, expression.tupleset
		)
		for key in parents:
			if key.user_relation or not tupleset.allows(key.user_type, None):
				continue
			if self.graph.get_definition(key.user_type, expression.computed_relation) is None:
				continue
			if await self.resolve(
				user, expression.computed_relation, key.user_type, key.user_id, context, depth + 1
			):
				return True
		return False

	async def list_objects(
		self,
		user: str,
		relation: str,
		object_type: str,
		max_results: int = 1000,
		timeout: float | None = None,
	) -> list[str]:
		"""List objects of a type where user has the specified relation."""
		if not is_valid_name(object_type):
			raise ValidationError(f"invalid type '{object_type}'")
		self.validate_request(user, relation, f"{object_type}:*")

		deadline = time.monotonic() + timeout if timeout else None
		candidates = await self.store.list_object_ids(self.store_id, object_type)

		# Candidates share answers for common sub-paths such as team membership
		resolved = {}
		objects = []
		for object_id in candidates:
			context = ResolutionContext(deadline=deadline, resolved=resolved)
			if await self.resolve(user, relation, object_type, object_id, context):
				objects.append(f"{object_type}:{object_id}")
				if len(objects) >= max_results:
					break
		return objects

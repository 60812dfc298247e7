# (c) Copyright Datacraft, 2026
"""Exception classes raised by the authorization engine."""


class RebacError(Exception):
	"""Base class for all errors reported to callers."""

	code = 'internal_error'

	def __init__(self, message: str):
		self.message = message
		super().__init__(message)


class ValidationError(RebacError):
	"""
	Raised when an authorization model or a tuple write is malformed.

	Covers undefined type/relation references, inconsistent
	`directly_related_user_types` metadata and tuples whose user shape
	is not allowed for the relation.
	"""

	code = 'validation_error'


class NotFoundError(RebacError):
	"""Raised for an unknown store or authorization model id."""

	code = 'not_found'

	def __init__(self, kind: str, identifier: str):
		self.kind = kind
		self.identifier = identifier
		super().__init__(f"{kind} '{identifier}' not found")


class SchemaError(RebacError):
	"""Raised when resolution meets a relation the model does not define."""

	code = 'schema_error'


class DeadlineExceededError(RebacError):
	"""Raised when a check runs past its deadline."""

	code = 'deadline_exceeded'


class CheckCancelledError(RebacError):
	"""Raised when the caller cancels an in-flight check."""

	code = 'cancelled'

# (c) Copyright Datacraft, 2026
"""
Document management walkthrough.

Creates a store, publishes the team/department/document model, writes
the scenario tuples and asks who may edit which document:

	python -m rebac_server.demo
"""
import asyncio
import logging

from .config import get_settings, setup_logging
from .db import create_db_engine, create_session_factory, init_db
from .schema import AuthorizationModelRequest, TupleKeySchema
from .service import AuthorizationService

logger = logging.getLogger(__name__)

DOCUMENT_MODEL = {
	"schema_version": "1.1",
	"type_definitions": [
		{
			"type": "user",
			"relations": {},
			"metadata": None,
		},
		{
			"type": "team",
			"relations": {
				"member": {"this": {}},
				"department": {"this": {}},
			},
			"metadata": {
				"relations": {
					"member": {"directly_related_user_types": [{"type": "user"}]},
					"department": {"directly_related_user_types": [{"type": "department"}]},
				},
			},
		},
		{
			"type": "department",
			"relations": {
				"member": {
					"tupleToUserset": {
						"computedUserset": {"relation": "member"},
						"tupleset": {"relation": "team"},
					},
				},
				"team": {"this": {}},
			},
			"metadata": {
				"relations": {
					"member": {"directly_related_user_types": []},
					"team": {"directly_related_user_types": [{"type": "team"}]},
				},
			},
		},
		{
			"type": "document",
			"relations": {
				"owner": {"this": {}},
				"editor": {
					"union": {
						"child": [
							{"this": {}},
							{"computedUserset": {"relation": "owner"}},
						],
					},
				},
			},
			"metadata": {
				"relations": {
					"owner": {"directly_related_user_types": [{"type": "user"}]},
					"editor": {
						"directly_related_user_types": [
							{"type": "user"},
							{"type": "team", "relation": "member"},
							{"type": "department", "relation": "member"},
						],
					},
				},
			},
		},
	],
}

SCENARIO_TUPLES = [
	("user:alice", "owner", "document:doc-001"),
	("team:engineering#member", "editor", "document:doc-001"),
	("user:bob", "member", "team:engineering"),
	("team:engineering", "team", "department:product"),
	("department:product#member", "editor", "document:doc-002"),
	("team:technical-support#member", "editor", "document:doc-003"),
]

QUESTIONS = [
	("Bob", "user:bob", "document:doc-001"),
	("Bob", "user:bob", "document:doc-002"),
	("Bob", "user:bob", "document:doc-003"),
	("Alice", "user:alice", "document:doc-001"),
]


def scenario_writes() -> list[TupleKeySchema]:
	return [
		TupleKeySchema(user=user, relation=relation, object=object)
		for user, relation, object in SCENARIO_TUPLES
	]


async def run_demo(service: AuthorizationService) -> tuple[list[tuple[str, bool]], list[str]]:
	"""
	Run the walkthrough.

	Returns:
		Each question with its answer, and the documents Bob can edit
	"""
	store = await service.create_store("Document Management System")
	model_id = await service.write_authorization_model(
		store.id, AuthorizationModelRequest.model_validate(DOCUMENT_MODEL)
	)
	logger.info(f"Demo store {store.id} uses model {model_id}")
	await service.write(store.id, writes=scenario_writes(), model_id=model_id)

	answers = []
	for name, user, document in QUESTIONS:
		result = await service.check(store.id, user, "editor", document, model_id=model_id)
		question = f"Can {name} edit {document.split(':', 1)[1]}?"
		answers.append((question, result.allowed))

	editable = await service.list_objects(store.id, "user:bob", "editor", "document", model_id=model_id)
	return answers, editable


def main():
	settings = get_settings()
	setup_logging(settings.log_level)

	engine = create_db_engine(settings.db_url)
	init_db(engine)
	service = AuthorizationService(create_session_factory(engine), settings)

	answers, editable = asyncio.run(run_demo(service))
	for question, allowed in answers:
		print(f"{question} {allowed}")
	print(f"Documents Bob can edit: {', '.join(editable)}")


if __name__ == '__main__':
	main()

"""Shared fixtures: an in-memory database and the document scenario."""

from __future__ import annotations

import pytest
import pytest_asyncio

from rebac_server.config import Settings
from rebac_server.db import create_db_engine, create_session_factory, init_db
from rebac_server.demo import DOCUMENT_MODEL, scenario_writes
from rebac_server.rebac.tuples import RelationshipStore
from rebac_server.schema import AuthorizationModelRequest
from rebac_server.service import AuthorizationService


def model_from(type_definitions: list[dict]) -> AuthorizationModelRequest:
    return AuthorizationModelRequest.model_validate(
        {"schema_version": "1.1", "type_definitions": type_definitions}
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(db_url="sqlite+pysqlite:///:memory:", max_tuples_per_write=10)


@pytest.fixture
def session_factory(settings):
    engine = create_db_engine(settings.db_url)
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def service(session_factory, settings) -> AuthorizationService:
    return AuthorizationService(session_factory, settings)


@pytest.fixture
def tuple_store(session_factory) -> RelationshipStore:
    return RelationshipStore(session_factory)


@pytest.fixture
def document_model() -> AuthorizationModelRequest:
    return AuthorizationModelRequest.model_validate(DOCUMENT_MODEL)


@pytest_asyncio.fixture
async def scenario(service, document_model) -> tuple[str, str]:
    """Store id and model id with the document scenario tuples written."""
    store = await service.create_store("Document Management System")
    model_id = await service.write_authorization_model(store.id, document_model)
    await service.write(store.id, writes=scenario_writes(), model_id=model_id)
    return store.id, model_id

"""Tests for model compilation, validation and the model store."""

from __future__ import annotations

import copy

import pydantic
import pytest

from rebac_server.demo import DOCUMENT_MODEL
from rebac_server.errors import NotFoundError, ValidationError
from rebac_server.rebac.graph import (
    ComputedUserset, Direct, TupleToUserset, Union, build_graph,
)
from rebac_server.rebac.models import ModelStore
from rebac_server.schema import AuthorizationModelRequest

from .conftest import model_from

USER = {"type": "user"}


def direct(*refs: dict) -> tuple[dict, dict]:
    return {"this": {}}, {"directly_related_user_types": list(refs)}


def doc_with(relations: dict, metadata: dict, extra_types: list[dict] | None = None) -> AuthorizationModelRequest:
    return model_from([
        USER,
        *(extra_types or []),
        {"type": "document", "relations": relations, "metadata": {"relations": metadata}},
    ])


# ── Compilation ──────────────────────────────────────────────────────────


class TestBuildGraph:
    def test_document_model_compiles(self, document_model) -> None:
        graph = build_graph(document_model, model_id="m1")
        assert graph.model_id == "m1"
        assert graph.types == ["user", "team", "department", "document"]
        assert [d.name for d in graph.definitions() if d.object_type == "document"] == ["owner", "editor"]

        editor = graph.get_definition("document", "editor")
        assert editor.expression == Union(children=(Direct(), ComputedUserset(relation="owner")))
        assert editor.direct_users
        assert editor.allows("team", "member")
        assert not editor.allows("team", None)

        member = graph.get_definition("department", "member")
        assert member.expression == TupleToUserset(tupleset="team", computed_relation="member")
        assert not member.direct_users

    def test_unknown_relation_lookup(self, document_model) -> None:
        graph = build_graph(document_model)
        assert graph.get_definition("document", "viewer") is None
        assert graph.get_definition("folder", "owner") is None
        assert not graph.has_type("folder")

    def test_intersection_and_difference(self) -> None:
        owner, owner_meta = direct(USER)
        blocked, blocked_meta = direct(USER)
        model = doc_with(
            {
                "owner": owner,
                "blocked": blocked,
                "active_owner": {
                    "difference": {
                        "base": {"computedUserset": {"relation": "owner"}},
                        "subtract": {"computedUserset": {"relation": "blocked"}},
                    },
                },
                "both": {
                    "intersection": {
                        "child": [
                            {"computedUserset": {"relation": "owner"}},
                            {"computedUserset": {"relation": "blocked"}},
                        ],
                    },
                },
            },
            {"owner": owner_meta, "blocked": blocked_meta},
        )
        graph = build_graph(model)
        assert not graph.get_definition("document", "active_owner").direct_users
        assert not graph.get_definition("document", "both").direct_users


# ── Validation ───────────────────────────────────────────────────────────


class TestValidation:
    def test_schema_version(self) -> None:
        model = AuthorizationModelRequest(schema_version="1.0", type_definitions=[USER])
        with pytest.raises(ValidationError, match="schema version"):
            build_graph(model)

    def test_empty_model(self) -> None:
        with pytest.raises(ValidationError):
            build_graph(model_from([]))

    def test_duplicate_type(self) -> None:
        with pytest.raises(ValidationError, match="more than once"):
            build_graph(model_from([USER, USER]))

    def test_invalid_type_name(self) -> None:
        with pytest.raises(ValidationError, match="invalid type name"):
            build_graph(model_from([{"type": "user:x"}]))

    def test_undefined_computed_relation(self) -> None:
        owner, owner_meta = direct(USER)
        model = doc_with(
            {"owner": owner, "editor": {"computedUserset": {"relation": "writer"}}},
            {"owner": owner_meta},
        )
        with pytest.raises(ValidationError, match="computed relation 'writer'"):
            build_graph(model)

    def test_undefined_directly_related_type(self) -> None:
        owner, owner_meta = direct({"type": "group"})
        with pytest.raises(ValidationError, match="undefined type 'group'"):
            build_graph(doc_with({"owner": owner}, {"owner": owner_meta}))

    def test_undefined_directly_related_relation(self) -> None:
        owner, owner_meta = direct({"type": "user", "relation": "friend"})
        with pytest.raises(ValidationError, match="undefined relation 'user#friend'"):
            build_graph(doc_with({"owner": owner}, {"owner": owner_meta}))

    def test_direct_relation_without_user_types(self) -> None:
        with pytest.raises(ValidationError, match="lists no directly related user types"):
            build_graph(doc_with({"owner": {"this": {}}}, {}))

    def test_user_types_without_direct_rewrite(self) -> None:
        owner, owner_meta = direct(USER)
        model = doc_with(
            {"owner": owner, "editor": {"computedUserset": {"relation": "owner"}}},
            {"owner": owner_meta, "editor": {"directly_related_user_types": [USER]}},
        )
        with pytest.raises(ValidationError, match="without 'this'"):
            build_graph(model)

    def test_metadata_for_missing_relation(self) -> None:
        owner, owner_meta = direct(USER)
        with pytest.raises(ValidationError, match="does not define"):
            build_graph(doc_with({"owner": owner}, {"owner": owner_meta, "editor": owner_meta}))

    def test_undefined_tupleset(self) -> None:
        data = copy.deepcopy(DOCUMENT_MODEL)
        department = data["type_definitions"][2]
        department["relations"]["member"]["tupleToUserset"]["tupleset"]["relation"] = "teams"
        with pytest.raises(ValidationError, match="tupleset relation 'teams'"):
            build_graph(AuthorizationModelRequest.model_validate(data))

    def test_computed_relation_missing_on_related_types(self) -> None:
        data = copy.deepcopy(DOCUMENT_MODEL)
        department = data["type_definitions"][2]
        department["relations"]["member"]["tupleToUserset"]["computedUserset"]["relation"] = "lead"
        with pytest.raises(ValidationError, match="not defined on any type"):
            build_graph(AuthorizationModelRequest.model_validate(data))

    def test_tupleset_may_not_allow_usersets(self) -> None:
        data = copy.deepcopy(DOCUMENT_MODEL)
        department = data["type_definitions"][2]
        department["metadata"]["relations"]["team"]["directly_related_user_types"] = [
            {"type": "team", "relation": "member"},
        ]
        with pytest.raises(ValidationError, match="may not allow usersets"):
            build_graph(AuthorizationModelRequest.model_validate(data))

    def test_userset_needs_exactly_one_rewrite(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AuthorizationModelRequest.model_validate({
                "schema_version": "1.1",
                "type_definitions": [
                    {"type": "document", "relations": {"owner": {"this": {}, "computedUserset": {"relation": "x"}}}},
                ],
            })


# ── Model store ──────────────────────────────────────────────────────────


class TestModelStore:
    @pytest.mark.asyncio
    async def test_round_trip(self, session_factory, document_model) -> None:
        models = ModelStore(session_factory)
        model_id = await models.publish("store-1", document_model)

        published = await models.get("store-1", model_id)
        assert published.id == model_id
        assert published.version == 1
        assert published.schema_version == document_model.schema_version
        assert published.type_definitions == document_model.type_definitions

    @pytest.mark.asyncio
    async def test_versions_and_latest(self, session_factory, document_model) -> None:
        models = ModelStore(session_factory)
        first = await models.publish("store-1", document_model)
        second = await models.publish("store-1", document_model)
        assert first != second

        latest = await models.latest("store-1")
        assert (latest.id, latest.version) == (second, 2)
        assert [m.id for m in await models.list("store-1")] == [second, first]

        graph = await models.get_graph("store-1")
        assert graph.model_id == second

    @pytest.mark.asyncio
    async def test_missing_model(self, session_factory, document_model) -> None:
        models = ModelStore(session_factory)
        with pytest.raises(NotFoundError):
            await models.latest("store-1")
        model_id = await models.publish("store-1", document_model)
        with pytest.raises(NotFoundError):
            await models.get("store-2", model_id)
        with pytest.raises(NotFoundError):
            await models.get_graph("store-1", "nope")

    @pytest.mark.asyncio
    async def test_graph_rebuilt_from_database(self, session_factory, document_model) -> None:
        model_id = await ModelStore(session_factory).publish("store-1", document_model)
        fresh = ModelStore(session_factory)
        graph = await fresh.get_graph("store-1", model_id)
        assert graph.model_id == model_id
        assert graph.get_definition("document", "editor") is not None

    @pytest.mark.asyncio
    async def test_invalid_model_is_not_stored(self, session_factory) -> None:
        models = ModelStore(session_factory)
        with pytest.raises(ValidationError):
            await models.publish("store-1", model_from([USER, USER]))
        assert await models.list("store-1") == []

    @pytest.mark.asyncio
    async def test_purge(self, session_factory, document_model) -> None:
        models = ModelStore(session_factory)
        model_id = await models.publish("store-1", document_model)
        assert await models.purge("store-1") == 1
        with pytest.raises(NotFoundError):
            await models.get_graph("store-1", model_id)

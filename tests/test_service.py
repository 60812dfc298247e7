"""Tests for the authorization service facade."""

from __future__ import annotations

import asyncio

import pytest

from rebac_server.errors import NotFoundError, ValidationError
from rebac_server.schema import TupleKeySchema

from .conftest import model_from


def tk(user: str, relation: str, object: str) -> TupleKeySchema:
    return TupleKeySchema(user=user, relation=relation, object=object)


def user_only_model(relation_types: list[dict]):
    return model_from([
        {"type": "user"},
        {
            "type": "team",
            "relations": {"member": {"this": {}}},
            "metadata": {"relations": {"member": {"directly_related_user_types": [{"type": "user"}]}}},
        },
        {
            "type": "document",
            "relations": {"editor": {"this": {}}},
            "metadata": {"relations": {"editor": {"directly_related_user_types": relation_types}}},
        },
    ])


# ── Stores ───────────────────────────────────────────────────────────────


class TestStores:
    @pytest.mark.asyncio
    async def test_lifecycle(self, service) -> None:
        store = await service.create_store("Document Management System")
        assert store.name == "Document Management System"
        assert (await service.get_store(store.id)).id == store.id
        assert [s.id for s in await service.list_stores()] == [store.id]

        await service.delete_store(store.id)
        with pytest.raises(NotFoundError):
            await service.get_store(store.id)
        assert await service.list_stores() == []

    @pytest.mark.asyncio
    async def test_empty_name(self, service) -> None:
        with pytest.raises(ValidationError):
            await service.create_store("   ")

    @pytest.mark.asyncio
    async def test_unknown_store(self, service, document_model) -> None:
        with pytest.raises(NotFoundError):
            await service.write_authorization_model("missing", document_model)
        with pytest.raises(NotFoundError):
            await service.check("missing", "user:bob", "editor", "document:doc-001")
        with pytest.raises(NotFoundError):
            await service.delete_store("missing")

    @pytest.mark.asyncio
    async def test_delete_removes_models_and_tuples(self, service, scenario) -> None:
        store_id, model_id = scenario
        await service.delete_store(store_id)
        with pytest.raises(NotFoundError):
            await service.read_authorization_model(store_id, model_id)
        assert await service.tuples.read(store_id) == []


# ── Models ───────────────────────────────────────────────────────────────


class TestModels:
    @pytest.mark.asyncio
    async def test_store_without_model(self, service) -> None:
        store = await service.create_store("empty")
        with pytest.raises(NotFoundError):
            await service.check(store.id, "user:bob", "editor", "document:doc-001")
        assert await service.read_authorization_models(store.id) == []

    @pytest.mark.asyncio
    async def test_model_pinning(self, service) -> None:
        store = await service.create_store("pinning")
        v1 = await service.write_authorization_model(store.id, user_only_model([{"type": "user"}]))
        await service.write(store.id, writes=[tk("user:bob", "editor", "document:d1")])

        v2 = await service.write_authorization_model(
            store.id, user_only_model([{"type": "team", "relation": "member"}])
        )
        models = await service.read_authorization_models(store.id)
        assert [m.id for m in models] == [v2, v1]

        # The newer model no longer allows plain users as editors
        assert not (await service.check(store.id, "user:bob", "editor", "document:d1")).allowed
        assert not (await service.check(store.id, "user:bob", "editor", "document:d1", model_id=v2)).allowed
        assert (await service.check(store.id, "user:bob", "editor", "document:d1", model_id=v1)).allowed


# ── Writes ───────────────────────────────────────────────────────────────


class TestWrites:
    @pytest.mark.asyncio
    async def test_same_tuple_twice(self, service, scenario) -> None:
        store_id, _ = scenario
        before = await service.read(store_id)
        await service.write(store_id, writes=[tk("user:alice", "owner", "document:doc-001")])
        assert await service.read(store_id) == before

    @pytest.mark.asyncio
    async def test_delete_nonexistent(self, service, scenario) -> None:
        store_id, _ = scenario
        before = await service.read(store_id)
        await service.write(store_id, deletes=[tk("user:carol", "owner", "document:doc-001")])
        assert await service.read(store_id) == before

    @pytest.mark.asyncio
    async def test_delete_revokes_access(self, service, scenario) -> None:
        store_id, _ = scenario
        await service.write(store_id, deletes=[tk("user:bob", "member", "team:engineering")])
        assert not (await service.check(store_id, "user:bob", "editor", "document:doc-001")).allowed
        assert not (await service.check(store_id, "user:bob", "editor", "document:doc-002")).allowed

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "bad",
        [
            tk("user:bob", "member", "department:product"),         # not directly assignable
            tk("team:engineering#member", "owner", "document:x"),   # type restriction
            tk("team:engineering", "editor", "document:x"),         # team without relation
            tk("user:bob", "viewer", "document:x"),                 # undefined relation
            tk("user:bob", "owner", "folder:x"),                    # undefined type
            tk("bob", "owner", "document:x"),                       # malformed user
        ],
    )
    async def test_rejected_batch_is_not_applied(self, service, scenario, bad) -> None:
        store_id, _ = scenario
        good = tk("user:carol", "owner", "document:doc-004")
        with pytest.raises(ValidationError):
            await service.write(store_id, writes=[good, bad])
        assert await service.read(store_id, object="document:doc-004") == []

    @pytest.mark.asyncio
    async def test_write_and_delete_same_tuple(self, service, scenario) -> None:
        store_id, _ = scenario
        t = tk("user:carol", "owner", "document:doc-004")
        with pytest.raises(ValidationError, match="both written and deleted"):
            await service.write(store_id, writes=[t], deletes=[t])

    @pytest.mark.asyncio
    async def test_batch_limit(self, service, scenario, settings) -> None:
        store_id, _ = scenario
        writes = [tk(f"user:u{i}", "owner", "document:big") for i in range(settings.max_tuples_per_write + 1)]
        with pytest.raises(ValidationError, match="exceeds the limit"):
            await service.write(store_id, writes=writes)

    @pytest.mark.asyncio
    async def test_read_filters(self, service, scenario) -> None:
        store_id, _ = scenario
        tuples = await service.read(store_id, object="document:")
        assert len(tuples) == 4
        tuples = await service.read(store_id, user="user:bob")
        assert [t.key for t in tuples] == [tk("user:bob", "member", "team:engineering")]
        tuples = await service.read(store_id, relation="editor", object="document:doc-002")
        assert [t.key.user for t in tuples] == ["department:product#member"]


# ── Queries ──────────────────────────────────────────────────────────────


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_objects(self, service, scenario) -> None:
        store_id, _ = scenario
        assert await service.list_objects(store_id, "user:bob", "editor", "document") == [
            "document:doc-001",
            "document:doc-002",
        ]
        assert await service.list_objects(store_id, "user:alice", "editor", "document") == [
            "document:doc-001",
        ]
        assert await service.list_objects(store_id, "user:bob", "member", "team") == [
            "team:engineering",
        ]

    @pytest.mark.asyncio
    async def test_list_objects_validates_type(self, service, scenario) -> None:
        store_id, _ = scenario
        with pytest.raises(ValidationError):
            await service.list_objects(store_id, "user:bob", "editor", "folder")

    @pytest.mark.asyncio
    async def test_write_waits_for_running_reads(self, service, scenario) -> None:
        store_id, _ = scenario
        async with service._lock(store_id).read():
            write = asyncio.create_task(
                service.write(store_id, writes=[tk("user:dan", "member", "team:engineering")])
            )
            await asyncio.sleep(0.01)
            assert not write.done()
            assert await service.tuples.read(store_id, user="user:dan") == []
        await write
        assert (await service.check(store_id, "user:dan", "editor", "document:doc-002")).allowed

    @pytest.mark.asyncio
    async def test_concurrent_checks_and_writes(self, service, scenario) -> None:
        store_id, _ = scenario
        checks = [
            service.check(store_id, "user:bob", "editor", "document:doc-001")
            for _ in range(10)
        ]
        write = service.write(store_id, writes=[tk("user:dan", "member", "team:engineering")])
        results = await asyncio.gather(*checks, write)
        assert all(r.allowed for r in results[:-1])
        assert (await service.check(store_id, "user:dan", "editor", "document:doc-002")).allowed

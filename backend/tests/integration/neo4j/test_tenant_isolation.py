"""
Integration tests for tenant isolation against a live Neo4j.

These tests require a running Neo4j instance and are skipped otherwise.
Each test uses fresh tenant ids and erases them afterwards.
"""

import pytest

from lorekeeper.services.neo4j_tenant import NodeLabel, OwnershipStatus, extract_tenant_id

pytestmark = pytest.mark.integration

CREATE_CHARACTER = """
CREATE (c:Character {id: $id, tenant_id: $tenant_id, name: $name})
RETURN c
"""

LIST_CHARACTERS = """
MATCH (c:Character {tenant_id: $tenant_id})
RETURN c
ORDER BY c.id
"""

RENAME_CHARACTER = """
MATCH (c:Character {id: $id, tenant_id: $tenant_id})
SET c.name = $name
RETURN c
"""

DELETE_CHARACTER = """
MATCH (c:Character {id: $id, tenant_id: $tenant_id})
DETACH DELETE c
RETURN count(c) AS deleted
"""


@pytest.mark.asyncio
async def test_created_node_visible_only_to_owner(isolation, alice, bob):
    """Test alice sees her node and bob sees an empty list."""
    await isolation.scoped_write(CREATE_CHARACTER, {"id": "c1", "name": "Hero"}, alice)

    alice_view = await isolation.scoped_read(LIST_CHARACTERS, {}, alice)
    bob_view = await isolation.scoped_read(LIST_CHARACTERS, {}, bob)

    assert [{k: v for k, v in c.items() if k != "tenant_id"} for c in alice_view] == [
        {"id": "c1", "name": "Hero"}
    ]
    assert bob_view == []


@pytest.mark.asyncio
async def test_write_round_trip_fidelity(isolation, alice):
    """Test a created node reads back with exactly the written fields."""
    created = await isolation.scoped_write(
        CREATE_CHARACTER, {"id": "c1", "name": "Hero"}, alice
    )
    read_back = await isolation.scoped_read(LIST_CHARACTERS, {}, alice)

    expected = {"id": "c1", "name": "Hero", "tenant_id": extract_tenant_id(alice)}
    assert created == [expected]
    assert read_back == [expected]


@pytest.mark.asyncio
async def test_supplied_tenant_id_cannot_reach_other_tenant(isolation, alice, bob):
    """Test passing another tenant's id as a parameter reads only the caller's data."""
    await isolation.scoped_write(CREATE_CHARACTER, {"id": "c1", "name": "Hero"}, alice)

    stolen = await isolation.scoped_read(
        LIST_CHARACTERS, {"tenant_id": extract_tenant_id(alice)}, bob
    )
    planted = await isolation.scoped_write(
        CREATE_CHARACTER,
        {"id": "c2", "name": "Impostor", "tenant_id": extract_tenant_id(alice)},
        bob,
    )

    assert stolen == []
    assert planted[0]["tenant_id"] == extract_tenant_id(bob)
    assert [c["id"] for c in await isolation.scoped_read(LIST_CHARACTERS, {}, alice)] == ["c1"]


@pytest.mark.asyncio
async def test_cross_tenant_update_affects_nothing(isolation, alice, bob):
    """Test bob's update of alice's node returns nothing and changes nothing."""
    await isolation.scoped_write(CREATE_CHARACTER, {"id": "c1", "name": "Hero"}, alice)

    result = await isolation.scoped_write(
        RENAME_CHARACTER, {"id": "c1", "name": "Villain"}, bob
    )

    assert result == []
    alice_view = await isolation.scoped_read(LIST_CHARACTERS, {}, alice)
    assert alice_view[0]["name"] == "Hero"


@pytest.mark.asyncio
async def test_cross_tenant_delete_affects_nothing(isolation, alice, bob):
    """Test bob cannot delete alice's node."""
    await isolation.scoped_write(CREATE_CHARACTER, {"id": "c1", "name": "Hero"}, alice)

    result = await isolation.scoped_write(DELETE_CHARACTER, {"id": "c1"}, bob)

    assert result == [0]
    assert len(await isolation.scoped_read(LIST_CHARACTERS, {}, alice)) == 1


@pytest.mark.asyncio
async def test_ownership_symmetry(isolation, alice, bob):
    """Test ownership is true for the owner only and false for missing ids."""
    await isolation.scoped_write(CREATE_CHARACTER, {"id": "c1", "name": "Hero"}, alice)

    assert await isolation.verify_ownership(NodeLabel.CHARACTER, "c1", alice) is True
    assert await isolation.verify_ownership("Character", "c1", bob) is False
    assert await isolation.verify_ownership("Character", "nonexistent", alice) is False

    foreign = await isolation.check_ownership("Character", "c1", bob)
    missing = await isolation.check_ownership("Character", "nonexistent", alice)
    assert foreign is missing is OwnershipStatus.NOT_OWNED


@pytest.mark.asyncio
async def test_erasure_is_tenant_exact(isolation, alice, bob):
    """Test erasing alice removes her two nodes and leaves bob's node intact."""
    await isolation.scoped_write(CREATE_CHARACTER, {"id": "c1", "name": "Hero"}, alice)
    await isolation.scoped_write(
        "CREATE (l:Location {id: $id, tenant_id: $tenant_id, name: $name}) RETURN l",
        {"id": "l1", "name": "Harbor"},
        alice,
    )
    await isolation.scoped_write(CREATE_CHARACTER, {"id": "c9", "name": "Rival"}, bob)

    deleted = await isolation.erase_tenant_data(extract_tenant_id(alice))

    assert deleted == 2
    assert await isolation.scoped_read(LIST_CHARACTERS, {}, alice) == []
    bob_view = await isolation.scoped_read(LIST_CHARACTERS, {}, bob)
    assert [(c["id"], c["name"]) for c in bob_view] == [("c9", "Rival")]


@pytest.mark.asyncio
async def test_erasure_removes_relationships(isolation, alice):
    """Test erasure detach-deletes nodes that have relationships."""
    await isolation.scoped_write(
        """
        CREATE (c:Character {id: $cid, tenant_id: $tenant_id, name: 'Hero'})
        CREATE (m:Moment {id: $mid, tenant_id: $tenant_id, title: 'Opening'})
        CREATE (c)-[:PARTICIPATED_IN {tenant_id: $tenant_id}]->(m)
        RETURN c
        """,
        {"cid": "c1", "mid": "m1"},
        alice,
    )

    assert await isolation.erase_tenant_data(extract_tenant_id(alice)) == 2
    assert await isolation.scoped_read(
        "MATCH (n {tenant_id: $tenant_id}) RETURN count(n) AS n", {}, alice
    ) == [0]

"""
Cypher templates for story graph operations.

Every template filters on, or stamps, ``$tenant_id``; the value is bound by
lorekeeper.services.neo4j_tenant and never taken from the request.
"""

# Moment queries
LIST_MOMENTS = """
MATCH (m:Moment {tenant_id: $tenant_id})
RETURN m.id AS id,
       m.title AS title,
       m.preview AS preview,
       m.summary AS summary,
       m.timestamp AS timestamp,
       m.created_at AS created_at
ORDER BY m.created_at DESC
SKIP toInteger($skip)
LIMIT toInteger($limit)
"""

CREATE_MOMENT = """
CREATE (m:Moment {
    id: $id,
    tenant_id: $tenant_id,
    title: $title,
    content: $content,
    summary: $summary,
    preview: $preview,
    timestamp: $timestamp,
    created_at: datetime(),
    updated_at: datetime()
})
RETURN m
"""

GET_MOMENT_LIGHTWEIGHT = """
MATCH (m:Moment {id: $id, tenant_id: $tenant_id})
RETURN m.id AS id,
       m.title AS title,
       m.summary AS summary,
       m.preview AS preview,
       m.timestamp AS timestamp,
       m.created_at AS created_at,
       m.updated_at AS updated_at
"""

GET_MOMENT_FULL = """
MATCH (m:Moment {id: $id, tenant_id: $tenant_id})
OPTIONAL MATCH (m)<-[:PARTICIPATED_IN]-(c:Character {tenant_id: $tenant_id})
OPTIONAL MATCH (m)-[:OCCURRED_AT]->(l:Location {tenant_id: $tenant_id})
RETURN m,
       collect(DISTINCT {id: c.id, name: c.name}) AS characters,
       collect(DISTINCT {id: l.id, name: l.name}) AS locations
"""

# The SET clause is assembled from a fixed list of property names
UPDATE_MOMENT = """
MATCH (m:Moment {{id: $id, tenant_id: $tenant_id}})
SET {assignments}
RETURN m
"""

DELETE_MOMENT = """
MATCH (m:Moment {id: $id, tenant_id: $tenant_id})
DETACH DELETE m
"""

# Diagnostics queries
CREATE_TEST_NODE = """
CREATE (t:TestNode {
    id: $test_id,
    tenant_id: $tenant_id,
    name: $name,
    created_at: datetime()
})
RETURN t
"""

LIST_TEST_NODES = """
MATCH (t:TestNode {tenant_id: $tenant_id})
RETURN t
"""

DELETE_TEST_NODE = """
MATCH (t:TestNode {id: $test_id, tenant_id: $tenant_id})
DELETE t
"""

DELETE_ALL_TEST_NODES = """
MATCH (t:TestNode {tenant_id: $tenant_id})
DELETE t
RETURN count(t) AS deleted_count
"""

CREATE_CHARACTER = """
CREATE (c:Character {
    id: $id,
    tenant_id: $tenant_id,
    name: $name,
    description: $description,
    created_at: datetime(),
    updated_at: datetime()
})
RETURN c
"""

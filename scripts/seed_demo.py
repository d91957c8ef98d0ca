import asyncio
from family_graph.database import engine, Base, AsyncSessionLocal
from family_graph.main import FamilyGraph
from family_graph.models.node import RelationshipType
from family_graph.models.tree import AccessLevel
from family_graph.schemas.node import NodeCreate

async def seed_demo():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        graph = FamilyGraph(db)

        owner = await graph.users.get_or_create_user("owner@example.com", "Tree Owner")
        cousin = await graph.users.get_or_create_user("cousin@example.com", "Cousin")

        tree = await graph.trees.create_tree("Demo Family", owner.id, "Seeded demo tree")
        print(f"Created tree {tree.id} ({tree.name})")

        grandpa = await graph.nodes.create_node(tree.id, owner.id, NodeCreate(first_name="Arthur", last_name="Demo"))
        grandpa = await graph.nodes.publish_node(grandpa.id, owner.id)

        dad = await graph.nodes.create_node(tree.id, owner.id, NodeCreate(first_name="Ben", last_name="Demo"))
        result = await graph.relationships.create_relationship(
            tree.id, owner.id, grandpa.id, dad.id, RelationshipType.PARENT_CHILD, publish_draft_nodes=True
        )
        print(f"Relationship {result.relationship.id}, published {result.published_node_ids}")

        await graph.trees.grant_tree_access(tree.id, owner.id, cousin.email, AccessLevel.VIEWER)
        for access in await graph.trees.get_tree_access(tree.id, owner.id):
            print(f"  {access.display_name} <{access.email}>: {access.access_level.value}")

    await engine.dispose()

if __name__ == "__main__":
    asyncio.run(seed_demo())

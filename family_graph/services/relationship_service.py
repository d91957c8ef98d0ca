import logging
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from family_graph.database import unit_of_work
from family_graph.exceptions import ForbiddenError, NotFoundError, ValidationError
from family_graph.models.node import Node, NodeStatus, Relationship, RelationshipType
from family_graph.schemas.node import CreateRelationshipResult, RelationshipResponse
from family_graph.services.access_service import AccessControlService
from family_graph.services.node_service import is_first_node_in_tree
from family_graph.services.notification_service import NotificationSink
from typing import Optional, List
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

class RelationshipService:
    def __init__(self, db: AsyncSession, notifier: Optional[NotificationSink] = None):
        self.db = db
        self.access_control = AccessControlService(db, notifier)

    async def create_relationship(
        self,
        tree_id: int,
        user_id: int,
        node_1_id: int,
        node_2_id: int,
        relationship_type: RelationshipType,
        publish_draft_nodes: bool = False,
    ) -> CreateRelationshipResult:
        """
        Connect two nodes of the same tree.

        Unless the tree has no published node yet, one endpoint must already
        be published. Draft endpoints are published alongside the new edge
        when ``publish_draft_nodes`` is set (only the requester's own drafts);
        otherwise they are reported back in ``draft_node_ids`` and stay drafts.
        """
        await self.access_control.require_edit_access(tree_id, user_id)

        if node_1_id == node_2_id:
            raise ValidationError("A node cannot have a relationship with itself")

        result = await self.db.execute(select(Node).filter(Node.id.in_([node_1_id, node_2_id])))
        nodes = {node.id: node for node in result.scalars().all()}
        node_1 = nodes.get(node_1_id)
        node_2 = nodes.get(node_2_id)
        if node_1 is None or node_2 is None:
            raise NotFoundError("One or both nodes not found")

        if node_1.tree_id != tree_id or node_2.tree_id != tree_id:
            raise ValidationError("Both nodes must belong to the same tree")

        drafts = [node for node in (node_1, node_2) if node.status == NodeStatus.DRAFT]
        if len(drafts) == 2 and not await is_first_node_in_tree(self.db, tree_id):
            raise ValidationError("At least one node must be published unless this is the first node in the tree")

        published_node_ids = []
        draft_node_ids = []
        if publish_draft_nodes:
            for node in drafts:
                if node.created_by != user_id:
                    raise ForbiddenError("Cannot publish a draft node created by another user")
        else:
            draft_node_ids = [node.id for node in drafts]

        async with unit_of_work(self.db):
            if publish_draft_nodes:
                now = datetime.now(timezone.utc)
                for node in drafts:
                    node.status = NodeStatus.PUBLISHED
                    node.published_at = now
                    published_node_ids.append(node.id)

            relationship = Relationship(
                tree_id=tree_id,
                node_1_id=node_1_id,
                node_2_id=node_2_id,
                relationship_type=relationship_type,
            )
            self.db.add(relationship)

        await self.db.refresh(relationship)
        logger.info(
            f"Created {relationship_type.value} relationship {relationship.id} in tree {tree_id}"
            f" (published {published_node_ids}, drafts {draft_node_ids})"
        )
        return CreateRelationshipResult(
            relationship=RelationshipResponse.model_validate(relationship),
            published_node_ids=published_node_ids,
            draft_node_ids=draft_node_ids,
        )

    async def get_relationships(self, tree_id: int, user_id: int) -> List[Relationship]:
        await self.access_control.check_access(tree_id, user_id)

        result = await self.db.execute(
            select(Relationship).filter(Relationship.tree_id == tree_id).order_by(Relationship.id)
        )
        return result.scalars().all()

    async def get_node_relationships(self, node_id: int, user_id: int) -> List[Relationship]:
        result = await self.db.execute(select(Node.tree_id).filter(Node.id == node_id))
        tree_id = result.scalars().first()
        if tree_id is None:
            raise NotFoundError("Node not found")

        await self.access_control.check_access(tree_id, user_id)

        result = await self.db.execute(
            select(Relationship)
            .filter(or_(Relationship.node_1_id == node_id, Relationship.node_2_id == node_id))
            .order_by(Relationship.id)
        )
        return result.scalars().all()

    async def _get_relationship(self, relationship_id: int) -> Relationship:
        result = await self.db.execute(select(Relationship).filter(Relationship.id == relationship_id))
        relationship = result.scalars().first()
        if not relationship:
            raise NotFoundError("Relationship not found")
        return relationship

    async def get_relationship_by_id(self, relationship_id: int, user_id: int) -> Relationship:
        relationship = await self._get_relationship(relationship_id)
        await self.access_control.check_access(relationship.tree_id, user_id)
        return relationship

    async def delete_relationship(self, relationship_id: int, user_id: int):
        relationship = await self._get_relationship(relationship_id)
        await self.access_control.require_edit_access(relationship.tree_id, user_id)

        await self.db.delete(relationship)
        await self.db.commit()

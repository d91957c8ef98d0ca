import logging
from sqlalchemy import and_, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from family_graph.exceptions import NotFoundError, ValidationError
from family_graph.models.node import Node, NodeStatus, Relationship
from family_graph.models.notification import NotificationType
from family_graph.models.tree import TreeAccess
from family_graph.schemas.node import NodeCreate, NodeUpdate
from family_graph.services.access_service import AccessControlService
from family_graph.services.notification_service import NotificationSink, dispatch
from family_graph.utils.validators import get_display_name, is_valid_node_name
from typing import Optional, List
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

NAME_RULE_MESSAGE = "Either first name and last name, or pet name must be provided"

async def count_published_nodes(db: AsyncSession, tree_id: int) -> int:
    result = await db.execute(
        select(func.count(Node.id)).filter(Node.tree_id == tree_id, Node.status == NodeStatus.PUBLISHED)
    )
    return result.scalar_one()

async def is_first_node_in_tree(db: AsyncSession, tree_id: int) -> bool:
    """True while the tree has no published node yet."""
    return await count_published_nodes(db, tree_id) == 0

def node_display_name(node: Node) -> str:
    return get_display_name(node.first_name, node.last_name, node.pet_name)

class NodeService:
    """
    Draft/publish lifecycle of people records.

    Drafts are visible only to their creator: any lookup of someone else's
    draft reports NotFound rather than Forbidden, so their existence never
    leaks.
    """

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationSink] = None):
        self.db = db
        self.notifier = notifier
        self.access_control = AccessControlService(db, notifier)

    async def _get_node(self, node_id: int) -> Node:
        result = await self.db.execute(select(Node).filter(Node.id == node_id))
        node = result.scalars().first()
        if not node:
            raise NotFoundError("Node not found")
        return node

    @staticmethod
    def _ensure_visible(node: Node, user_id: int):
        if node.status == NodeStatus.DRAFT and node.created_by != user_id:
            raise NotFoundError("Node not found")

    async def create_node(self, tree_id: int, user_id: int, fields: NodeCreate) -> Node:
        await self.access_control.require_edit_access(tree_id, user_id)

        if not is_valid_node_name(fields.first_name, fields.last_name, fields.pet_name):
            raise ValidationError(NAME_RULE_MESSAGE)

        node = Node(
            tree_id=tree_id,
            created_by=user_id,
            status=NodeStatus.DRAFT,
            **fields.model_dump(),
        )
        self.db.add(node)
        await self.db.commit()
        await self.db.refresh(node)
        return node

    async def get_nodes(self, tree_id: int, user_id: int) -> List[Node]:
        await self.access_control.check_access(tree_id, user_id)

        result = await self.db.execute(
            select(Node)
            .filter(
                Node.tree_id == tree_id,
                or_(Node.status == NodeStatus.PUBLISHED, Node.created_by == user_id),
            )
            .order_by(Node.id)
        )
        return result.scalars().all()

    async def get_node_by_id(self, node_id: int, user_id: int) -> Node:
        node = await self._get_node(node_id)
        await self.access_control.check_access(node.tree_id, user_id)
        self._ensure_visible(node, user_id)
        return node

    async def update_node(self, node_id: int, user_id: int, patch: NodeUpdate) -> Node:
        node = await self._get_node(node_id)
        await self.access_control.require_edit_access(node.tree_id, user_id)
        self._ensure_visible(node, user_id)

        changes = patch.model_dump(exclude_unset=True)
        if not changes:
            return node

        merged = {
            key: changes.get(key, getattr(node, key))
            for key in ("first_name", "last_name", "pet_name")
        }
        if not is_valid_node_name(**merged):
            raise ValidationError(NAME_RULE_MESSAGE)

        for key, value in changes.items():
            setattr(node, key, value)
        await self.db.commit()
        await self.db.refresh(node)
        return node

    async def delete_node(self, node_id: int, user_id: int):
        node = await self._get_node(node_id)
        await self.access_control.require_edit_access(node.tree_id, user_id)
        self._ensure_visible(node, user_id)

        # Relationships and same-person links touching the node cascade.
        await self.db.delete(node)
        await self.db.commit()

    async def publish_node(self, node_id: int, user_id: int) -> Node:
        node = await self._get_node(node_id)
        await self.access_control.require_edit_access(node.tree_id, user_id)
        self._ensure_visible(node, user_id)

        if node.status == NodeStatus.PUBLISHED:
            return node

        if not await is_first_node_in_tree(self.db, node.tree_id):
            if not await self.has_relationship_to_published_node(node.id, node.tree_id):
                raise ValidationError("Node must have a relationship to a published node before publishing")

        node.status = NodeStatus.PUBLISHED
        node.published_at = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(node)
        logger.info(f"Published node {node.id} in tree {node.tree_id}")

        await self._notify_node_published(node, user_id)
        return node

    async def has_relationship_to_published_node(self, node_id: int, tree_id: int) -> bool:
        result = await self.db.execute(
            select(func.count(Relationship.id))
            .select_from(Relationship)
            .join(
                Node,
                or_(
                    and_(Relationship.node_1_id == node_id, Relationship.node_2_id == Node.id),
                    and_(Relationship.node_2_id == node_id, Relationship.node_1_id == Node.id),
                ),
            )
            .filter(
                Relationship.tree_id == tree_id,
                Node.tree_id == tree_id,
                Node.status == NodeStatus.PUBLISHED,
            )
        )
        return result.scalar_one() > 0

    def get_display_name(self, node: Node) -> str:
        return node_display_name(node)

    async def _notify_node_published(self, node: Node, publisher_id: int):
        if self.notifier is None:
            return
        result = await self.db.execute(
            select(TreeAccess.user_id).filter(TreeAccess.tree_id == node.tree_id, TreeAccess.user_id != publisher_id)
        )
        await dispatch(
            self.notifier,
            result.scalars().all(),
            NotificationType.NODE_PUBLISHED,
            f'A new family member "{node_display_name(node)}" has been added to your family tree',
            "node",
            node.id,
        )

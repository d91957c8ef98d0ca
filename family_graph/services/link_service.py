import logging
from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from family_graph.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from family_graph.models.access_request import AccessRequest, AccessRequestStatus
from family_graph.models.link import SamePersonLink, pair_key
from family_graph.models.node import Node
from family_graph.models.notification import NotificationType
from family_graph.models.tree import AccessLevel, Tree, TreeAccess
from family_graph.schemas.link import LinkedNode, LinkedTree, LinkedTreeInfo, LinkedTreeInfoResult
from family_graph.services.access_service import AccessControlService, has_edit_access
from family_graph.services.notification_service import NotificationSink, dispatch
from typing import Optional, List

logger = logging.getLogger(__name__)

class SamePersonLinkService:
    """
    Cross-tree identity links: "node A in one tree is the same person as
    node B in another". Links are undirected; lookups match either side.
    """

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationSink] = None):
        self.db = db
        self.notifier = notifier
        self.access_control = AccessControlService(db, notifier)

    async def create_same_person_link(self, node_1_id: int, node_2_id: int, user_id: int) -> SamePersonLink:
        result = await self.db.execute(select(Node).filter(Node.id.in_([node_1_id, node_2_id])))
        nodes = {node.id: node for node in result.scalars().all()}
        node_1 = nodes.get(node_1_id)
        node_2 = nodes.get(node_2_id)
        if node_1 is None or node_2 is None:
            raise NotFoundError("One or both nodes not found")

        if node_1.tree_id == node_2.tree_id:
            raise ValidationError("Nodes must belong to different trees")

        # Edit rights on either side are enough.
        level_1 = await self.access_control.get_access_level(node_1.tree_id, user_id)
        level_2 = await self.access_control.get_access_level(node_2.tree_id, user_id)
        if not has_edit_access(level_1) and not has_edit_access(level_2):
            raise ForbiddenError("Edit access to at least one tree is required")

        key = pair_key(node_1_id, node_2_id)
        result = await self.db.execute(select(SamePersonLink.id).filter(SamePersonLink.pair_key == key))
        if result.scalars().first() is not None:
            raise ConflictError("Same person link already exists")

        link = SamePersonLink(node_1_id=node_1_id, node_2_id=node_2_id, pair_key=key, created_by=user_id)
        self.db.add(link)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError("Same person link already exists") from exc
        await self.db.refresh(link)
        logger.info(f"Linked node {node_1_id} (tree {node_1.tree_id}) with node {node_2_id} (tree {node_2.tree_id})")

        await self._notify_tree_owners([node_1.tree_id, node_2.tree_id], link.id, user_id)
        return link

    async def _notify_tree_owners(self, tree_ids: List[int], link_id: int, creator_id: int):
        if self.notifier is None:
            return
        result = await self.db.execute(
            select(TreeAccess.user_id).filter(
                TreeAccess.tree_id.in_(tree_ids),
                TreeAccess.access_level == AccessLevel.OWNER,
                TreeAccess.user_id != creator_id,
            )
        )
        await dispatch(
            self.notifier,
            result.scalars().all(),
            NotificationType.SAME_PERSON_LINK_CREATED,
            "A same person link has been created connecting your family tree to another tree",
            "same_person_link",
            link_id,
        )

    async def _get_node_tree_id(self, node_id: int) -> int:
        result = await self.db.execute(select(Node.tree_id).filter(Node.id == node_id))
        tree_id = result.scalars().first()
        if tree_id is None:
            raise NotFoundError("Node not found")
        return tree_id

    async def _linked_node_ids(self, node_id: int) -> List[int]:
        result = await self.db.execute(
            select(SamePersonLink).filter(
                or_(SamePersonLink.node_1_id == node_id, SamePersonLink.node_2_id == node_id)
            )
        )
        linked = []
        for link in result.scalars().all():
            other = link.node_2_id if link.node_1_id == node_id else link.node_1_id
            if other not in linked:
                linked.append(other)
        return linked

    async def _linked_nodes_with_trees(self, node_id: int):
        linked_ids = await self._linked_node_ids(node_id)
        if not linked_ids:
            return []
        result = await self.db.execute(
            select(Node, Tree.name)
            .join(Tree, Tree.id == Node.tree_id)
            .filter(Node.id.in_(linked_ids))
            .order_by(Node.id)
        )
        return result.all()

    async def get_linked_nodes(self, node_id: int, user_id: int) -> List[LinkedNode]:
        tree_id = await self._get_node_tree_id(node_id)
        await self.access_control.check_access(tree_id, user_id)

        return [
            LinkedNode(
                node_id=node.id,
                tree_id=node.tree_id,
                first_name=node.first_name,
                last_name=node.last_name,
                pet_name=node.pet_name,
            )
            for node, _ in await self._linked_nodes_with_trees(node_id)
        ]

    async def get_linked_trees(self, node_id: int, user_id: int) -> List[LinkedTree]:
        tree_id = await self._get_node_tree_id(node_id)
        await self.access_control.check_access(tree_id, user_id)

        return [
            LinkedTree(tree_id=node.tree_id, tree_name=tree_name, linked_node_id=node.id)
            for node, tree_name in await self._linked_nodes_with_trees(node_id)
        ]

    async def get_linked_tree_info(self, node_id: int, user_id: int) -> LinkedTreeInfoResult:
        """
        For each node linked to ``node_id``, report whether the requester can
        already see its tree and, if not, whether an access request may be
        submitted or is already pending.
        """
        tree_id = await self._get_node_tree_id(node_id)
        await self.access_control.check_access(tree_id, user_id)

        linked_ids = await self._linked_node_ids(node_id)
        rows = []
        if linked_ids:
            result = await self.db.execute(
                select(Node.id, Node.tree_id, Tree.name, TreeAccess.access_level, AccessRequest.id)
                .join(Tree, Tree.id == Node.tree_id)
                .outerjoin(TreeAccess, and_(TreeAccess.tree_id == Node.tree_id, TreeAccess.user_id == user_id))
                .outerjoin(
                    AccessRequest,
                    and_(
                        AccessRequest.tree_id == Node.tree_id,
                        AccessRequest.user_id == user_id,
                        AccessRequest.status == AccessRequestStatus.PENDING,
                    ),
                )
                .filter(Node.id.in_(linked_ids))
                .order_by(Node.id)
            )
            rows = result.all()

        linked_trees = [
            LinkedTreeInfo(
                linked_node_id=linked_node_id,
                linked_tree_id=linked_tree_id,
                linked_tree_name=tree_name,
                has_access=level is not None,
                user_access_level=level,
                can_request_access=level is None and pending_id is None,
                has_pending_request=pending_id is not None,
            )
            for linked_node_id, linked_tree_id, tree_name, level, pending_id in rows
        ]
        return LinkedTreeInfoResult(has_linked_tree=len(linked_trees) > 0, linked_trees=linked_trees)

    async def _get_link(self, link_id: int) -> SamePersonLink:
        result = await self.db.execute(select(SamePersonLink).filter(SamePersonLink.id == link_id))
        link = result.scalars().first()
        if not link:
            raise NotFoundError("Same person link not found")
        return link

    async def _link_tree_ids(self, link: SamePersonLink) -> List[int]:
        result = await self.db.execute(
            select(Node.tree_id).filter(Node.id.in_([link.node_1_id, link.node_2_id]))
        )
        return result.scalars().all()

    async def get_link_by_id(self, link_id: int, user_id: int) -> SamePersonLink:
        link = await self._get_link(link_id)
        for tree_id in await self._link_tree_ids(link):
            if await self.access_control.get_access_level(tree_id, user_id) is not None:
                return link
        raise ForbiddenError("Access denied")

    async def delete_same_person_link(self, link_id: int, user_id: int):
        link = await self._get_link(link_id)

        is_owner = False
        for tree_id in await self._link_tree_ids(link):
            if await self.access_control.get_access_level(tree_id, user_id) == AccessLevel.OWNER:
                is_owner = True
                break
        if not is_owner:
            raise ForbiddenError("Only tree owners can delete same person links")

        await self.db.delete(link)
        await self.db.commit()
        logger.info(f"Deleted same person link {link_id}")

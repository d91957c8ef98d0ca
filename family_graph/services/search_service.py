from sqlalchemy import and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from family_graph.exceptions import ValidationError
from family_graph.models.node import Node, NodeStatus
from family_graph.models.tree import Tree, TreeAccess
from family_graph.schemas.node import NodeResponse
from family_graph.schemas.search import NodeSearchResult, SearchFilters
from family_graph.services.access_service import AccessControlService
from family_graph.services.notification_service import NotificationSink
from typing import Optional, List

MIN_SEARCH_LENGTH = 3

def _validate_query(search_query: Optional[str]) -> str:
    search_query = (search_query or "").strip()
    if len(search_query) < MIN_SEARCH_LENGTH:
        raise ValidationError(f"Search query must be at least {MIN_SEARCH_LENGTH} characters")
    return search_query

def _matches_any_name(search_query: str):
    pattern = f"%{search_query}%"
    return or_(Node.first_name.ilike(pattern), Node.last_name.ilike(pattern), Node.pet_name.ilike(pattern))

class SearchService:
    """
    Name search over published nodes. Drafts never show up, not even to
    their creator.
    """

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationSink] = None):
        self.db = db
        self.access_control = AccessControlService(db, notifier)

    async def search_nodes(
        self, user_id: int, search_query: str, filters: Optional[SearchFilters] = None
    ) -> List[NodeSearchResult]:
        """Searches every tree the user holds a grant on."""
        search_query = _validate_query(search_query)

        stmt = (
            select(Node, Tree.name)
            .join(Tree, Tree.id == Node.tree_id)
            .join(TreeAccess, and_(TreeAccess.tree_id == Tree.id, TreeAccess.user_id == user_id))
            .filter(Node.status == NodeStatus.PUBLISHED, _matches_any_name(search_query))
        )
        if filters is not None:
            for column, value in (
                (Node.first_name, filters.first_name),
                (Node.last_name, filters.last_name),
                (Node.pet_name, filters.pet_name),
                (Node.place_of_birth, filters.place_of_birth),
            ):
                if value:
                    stmt = stmt.filter(column.ilike(f"%{value}%"))

        result = await self.db.execute(stmt.order_by(Tree.id, Node.id))
        return [
            NodeSearchResult(**NodeResponse.model_validate(node).model_dump(), tree_name=tree_name)
            for node, tree_name in result.all()
        ]

    async def search_in_tree(self, tree_id: int, user_id: int, search_query: str) -> List[Node]:
        search_query = _validate_query(search_query)
        await self.access_control.check_access(tree_id, user_id)

        result = await self.db.execute(
            select(Node)
            .filter(
                Node.tree_id == tree_id,
                Node.status == NodeStatus.PUBLISHED,
                _matches_any_name(search_query),
            )
            .order_by(Node.id)
        )
        return result.scalars().all()

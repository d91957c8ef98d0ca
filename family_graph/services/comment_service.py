from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from family_graph.exceptions import ForbiddenError, NotFoundError, ValidationError
from family_graph.models.comment import Comment, EntityType
from family_graph.models.notification import NotificationType
from family_graph.models.tree import TreeAccess
from family_graph.services.access_service import AccessControlService
from family_graph.services.notification_service import NotificationSink, dispatch
from typing import Optional, List

class CommentService:
    def __init__(self, db: AsyncSession, notifier: Optional[NotificationSink] = None):
        self.db = db
        self.notifier = notifier
        self.access_control = AccessControlService(db, notifier)

    async def create_comment(
        self, tree_id: int, user_id: int, entity_type: EntityType, entity_id: int, comment_text: str
    ) -> Comment:
        await self.access_control.check_access(tree_id, user_id)
        if not comment_text or not comment_text.strip():
            raise ValidationError("Comment text is required")

        comment = Comment(
            tree_id=tree_id,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            comment_text=comment_text,
        )
        self.db.add(comment)
        await self.db.commit()
        await self.db.refresh(comment)

        result = await self.db.execute(
            select(TreeAccess.user_id).filter(TreeAccess.tree_id == tree_id, TreeAccess.user_id != user_id)
        )
        await dispatch(
            self.notifier,
            result.scalars().all(),
            NotificationType.COMMENT_ADDED,
            f"A new comment has been added to a {entity_type.value} in your family tree",
            entity_type.value,
            entity_id,
        )
        return comment

    async def get_comments(self, tree_id: int, entity_type: EntityType, entity_id: int, user_id: int) -> List[Comment]:
        await self.access_control.check_access(tree_id, user_id)
        result = await self.db.execute(
            select(Comment)
            .filter(
                Comment.tree_id == tree_id,
                Comment.entity_type == entity_type,
                Comment.entity_id == entity_id,
            )
            .order_by(Comment.created_at, Comment.id)
        )
        return result.scalars().all()

    async def _get_own_comment(self, comment_id: int, user_id: int) -> Comment:
        result = await self.db.execute(select(Comment).filter(Comment.id == comment_id))
        comment = result.scalars().first()
        if not comment:
            raise NotFoundError("Comment not found")
        # Only the author may change a comment, whatever their level on the tree.
        if comment.user_id != user_id:
            raise ForbiddenError("You can only modify your own comments")
        return comment

    async def update_comment(self, comment_id: int, user_id: int, comment_text: str) -> Comment:
        comment = await self._get_own_comment(comment_id, user_id)
        if not comment_text or not comment_text.strip():
            raise ValidationError("Comment text is required")
        comment.comment_text = comment_text
        await self.db.commit()
        await self.db.refresh(comment)
        return comment

    async def delete_comment(self, comment_id: int, user_id: int):
        comment = await self._get_own_comment(comment_id, user_id)
        await self.db.delete(comment)
        await self.db.commit()

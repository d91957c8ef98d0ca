import logging
from typing import Optional
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from family_graph.exceptions import ConflictError, ForbiddenError
from family_graph.models.notification import NotificationType
from family_graph.models.tree import ACCESS_LEVEL_ORDER, AccessLevel, Tree, TreeAccess
from family_graph.services.notification_service import NotificationSink, dispatch

logger = logging.getLogger(__name__)

def has_edit_access(level: Optional[AccessLevel]) -> bool:
    return level in (AccessLevel.EDITOR, AccessLevel.OWNER)

class AccessControlService:
    """
    Single authority for "who can do what to which tree". Every workflow
    service asks it before mutating anything.
    """

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationSink] = None):
        self.db = db
        self.notifier = notifier

    async def _get_grant(self, tree_id: int, user_id: int) -> Optional[TreeAccess]:
        result = await self.db.execute(
            select(TreeAccess).filter(TreeAccess.tree_id == tree_id, TreeAccess.user_id == user_id)
        )
        return result.scalars().first()

    async def check_access(self, tree_id: int, user_id: int, min_level: Optional[AccessLevel] = None) -> TreeAccess:
        access = await self._get_grant(tree_id, user_id)
        if access is None:
            raise ForbiddenError("Access denied")

        if min_level is not None:
            if ACCESS_LEVEL_ORDER.index(access.access_level) < ACCESS_LEVEL_ORDER.index(min_level):
                raise ForbiddenError(f"{min_level.value.capitalize()} access required")

        return access

    async def require_edit_access(self, tree_id: int, user_id: int) -> TreeAccess:
        access = await self.check_access(tree_id, user_id)
        if access.access_level == AccessLevel.VIEWER:
            raise ForbiddenError("Edit access required")
        return access

    async def require_owner_access(self, tree_id: int, user_id: int) -> TreeAccess:
        access = await self.check_access(tree_id, user_id)
        if access.access_level != AccessLevel.OWNER:
            raise ForbiddenError("Owner access required")
        return access

    async def get_access_level(self, tree_id: int, user_id: int) -> Optional[AccessLevel]:
        result = await self.db.execute(
            select(TreeAccess.access_level).filter(TreeAccess.tree_id == tree_id, TreeAccess.user_id == user_id)
        )
        return result.scalars().first()

    async def grant_access(
        self, tree_id: int, user_id: int, access_level: AccessLevel, granted_by: int, notify: bool = True
    ) -> TreeAccess:
        """
        Set-or-replace: an existing grant for (tree, user) is overwritten with
        the new level, whether that is an upgrade or a downgrade. Callers that
        must protect the owner grant check before calling.
        """
        access = await self.stage_grant(tree_id, user_id, access_level, granted_by)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError("Access was modified concurrently for this user") from exc
        await self.db.refresh(access)
        logger.info(f"Granted {access_level.value} on tree {tree_id} to user {user_id} (by {granted_by})")

        if notify:
            await self.notify_granted(tree_id, user_id, access_level, granted_by)
        return access

    async def stage_grant(
        self, tree_id: int, user_id: int, access_level: AccessLevel, granted_by: int
    ) -> TreeAccess:
        """Adds or updates the grant in the session without committing."""
        access = await self._get_grant(tree_id, user_id)
        if access:
            if access.access_level != access_level:
                access.access_level = access_level
        else:
            access = TreeAccess(tree_id=tree_id, user_id=user_id, access_level=access_level, granted_by=granted_by)
            self.db.add(access)
        return access

    async def notify_granted(self, tree_id: int, user_id: int, access_level: AccessLevel, granted_by: int):
        if self.notifier is None or user_id == granted_by:
            return
        result = await self.db.execute(select(Tree.name).filter(Tree.id == tree_id))
        tree_name = result.scalars().first()
        if tree_name is None:
            return
        await dispatch(
            self.notifier,
            [user_id],
            NotificationType.ACCESS_GRANTED,
            f'You have been granted {access_level.value} access to the family tree "{tree_name}"',
            "tree",
            tree_id,
        )

    async def revoke_access(self, tree_id: int, user_id: int):
        # Scoped to non-owner rows: revoking an owner matches nothing.
        await self.db.execute(
            delete(TreeAccess).where(
                TreeAccess.tree_id == tree_id,
                TreeAccess.user_id == user_id,
                TreeAccess.access_level != AccessLevel.OWNER,
            )
        )
        await self.db.commit()

import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from family_graph.database import unit_of_work
from family_graph.exceptions import NotFoundError, ValidationError
from family_graph.models.tree import Tree, TreeAccess, AccessLevel
from family_graph.models.user import User
from family_graph.schemas.tree import TreeAccessWithUser, TreeUpdate
from family_graph.services.access_service import AccessControlService
from family_graph.services.notification_service import NotificationSink
from family_graph.services.user_service import UserService
from typing import Optional, List

logger = logging.getLogger(__name__)

class TreeService:
    def __init__(self, db: AsyncSession, notifier: Optional[NotificationSink] = None):
        self.db = db
        self.access_control = AccessControlService(db, notifier)
        self.user_service = UserService(db)

    async def create_tree(self, name: str, creator_id: int, description: Optional[str] = None) -> Tree:
        if not name or not name.strip():
            raise ValidationError("Tree name is required")

        # The tree and its owner grant are written together or not at all.
        async with unit_of_work(self.db):
            tree = Tree(name=name, description=description, owner_id=creator_id)
            self.db.add(tree)
            await self.db.flush()

            access = TreeAccess(
                tree_id=tree.id,
                user_id=creator_id,
                access_level=AccessLevel.OWNER,
                granted_by=creator_id,
            )
            self.db.add(access)

        await self.db.refresh(tree)
        logger.info(f"Created tree {tree.id} owned by user {creator_id}")
        return tree

    async def get_user_trees(self, user_id: int) -> List[Tree]:
        result = await self.db.execute(
            select(Tree)
            .join(TreeAccess, TreeAccess.tree_id == Tree.id)
            .filter(TreeAccess.user_id == user_id)
            .order_by(Tree.id)
        )
        return result.scalars().all()

    async def _get_tree(self, tree_id: int) -> Tree:
        result = await self.db.execute(select(Tree).filter(Tree.id == tree_id))
        tree = result.scalars().first()
        if not tree:
            raise NotFoundError("Tree not found")
        return tree

    async def get_tree_by_id(self, tree_id: int, user_id: int) -> Tree:
        await self.access_control.check_access(tree_id, user_id)
        return await self._get_tree(tree_id)

    async def update_tree(self, tree_id: int, user_id: int, patch: TreeUpdate) -> Tree:
        await self.access_control.require_owner_access(tree_id, user_id)
        tree = await self._get_tree(tree_id)

        changes = patch.model_dump(exclude_unset=True)
        if not changes:
            return tree

        if "name" in changes and (not changes["name"] or not changes["name"].strip()):
            raise ValidationError("Tree name cannot be empty")

        for key, value in changes.items():
            setattr(tree, key, value)
        await self.db.commit()
        await self.db.refresh(tree)
        return tree

    async def delete_tree(self, tree_id: int, user_id: int):
        await self.access_control.require_owner_access(tree_id, user_id)
        tree = await self._get_tree(tree_id)
        # Grants, nodes, relationships, requests and comments go with it.
        await self.db.delete(tree)
        await self.db.commit()
        logger.info(f"Deleted tree {tree_id}")

    async def get_tree_access(self, tree_id: int, user_id: int) -> List[TreeAccessWithUser]:
        await self.access_control.require_owner_access(tree_id, user_id)

        result = await self.db.execute(
            select(TreeAccess, User.email, User.display_name)
            .join(User, User.id == TreeAccess.user_id)
            .filter(TreeAccess.tree_id == tree_id)
        )
        rows = result.all()
        # owner first, then editors, then viewers; alphabetical within a level
        rank = {AccessLevel.OWNER: 0, AccessLevel.EDITOR: 1, AccessLevel.VIEWER: 2}
        rows = sorted(rows, key=lambda row: (rank[row[0].access_level], row[2]))
        return [
            TreeAccessWithUser(
                **_access_fields(access),
                email=email,
                display_name=display_name,
            )
            for access, email, display_name in rows
        ]

    async def grant_tree_access(self, tree_id: int, owner_id: int, email: str, access_level: AccessLevel) -> TreeAccessWithUser:
        await self.access_control.require_owner_access(tree_id, owner_id)

        if access_level == AccessLevel.OWNER:
            raise ValidationError("Cannot grant owner access")

        target = await self.user_service.get_user_by_email(email)
        if not target:
            raise NotFoundError("User not found with that email")

        if target.id == owner_id:
            raise ValidationError("Cannot modify your own access")

        existing = await self.access_control.get_access_level(tree_id, target.id)
        if existing == AccessLevel.OWNER:
            raise ValidationError("Cannot modify owner access")

        access = await self.access_control.grant_access(tree_id, target.id, access_level, owner_id)
        return TreeAccessWithUser(
            **_access_fields(access),
            email=target.email,
            display_name=target.display_name,
        )

    async def revoke_tree_access(self, tree_id: int, owner_id: int, target_user_id: int):
        await self.access_control.require_owner_access(tree_id, owner_id)

        if target_user_id == owner_id:
            raise ValidationError("Cannot revoke your own access")

        existing = await self.access_control.get_access_level(tree_id, target_user_id)
        if existing is None:
            raise NotFoundError("User does not have access to this tree")
        if existing == AccessLevel.OWNER:
            raise ValidationError("Cannot revoke owner access")

        await self.access_control.revoke_access(tree_id, target_user_id)
        logger.info(f"Revoked access to tree {tree_id} for user {target_user_id}")

def _access_fields(access: TreeAccess) -> dict:
    return {
        "id": access.id,
        "tree_id": access.tree_id,
        "user_id": access.user_id,
        "access_level": access.access_level,
        "granted_by": access.granted_by,
        "granted_at": access.granted_at,
    }

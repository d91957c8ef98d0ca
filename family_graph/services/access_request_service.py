import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from family_graph.database import unit_of_work
from family_graph.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from family_graph.models.access_request import AccessRequest, AccessRequestStatus
from family_graph.models.notification import NotificationType
from family_graph.models.tree import AccessLevel, Tree
from family_graph.models.user import User
from family_graph.schemas.access_request import AccessRequestResponse, AccessRequestWithUser
from family_graph.services.access_service import AccessControlService
from family_graph.services.notification_service import NotificationSink, dispatch
from family_graph.utils.validators import validate_requested_level
from typing import Optional, List, Union
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

def _as_requestable_level(level: Union[str, AccessLevel]) -> AccessLevel:
    try:
        return validate_requested_level(level.value if isinstance(level, AccessLevel) else level)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

class AccessRequestService:
    """Pending -> Approved | Denied. Both outcomes are final."""

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationSink] = None):
        self.db = db
        self.notifier = notifier
        self.access_control = AccessControlService(db, notifier)

    async def submit_access_request(
        self, tree_id: int, user_id: int, requested_level: Union[str, AccessLevel]
    ) -> AccessRequest:
        requested_level = _as_requestable_level(requested_level)

        result = await self.db.execute(select(Tree.owner_id).filter(Tree.id == tree_id))
        owner_id = result.scalars().first()
        if owner_id is None:
            raise NotFoundError("Tree not found")

        if await self.access_control.get_access_level(tree_id, user_id) is not None:
            raise ConflictError("User already has access to this tree")

        result = await self.db.execute(
            select(AccessRequest.id).filter(
                AccessRequest.tree_id == tree_id,
                AccessRequest.user_id == user_id,
                AccessRequest.status == AccessRequestStatus.PENDING,
            )
        )
        if result.scalars().first() is not None:
            raise ConflictError("Access request already pending")

        request = AccessRequest(tree_id=tree_id, user_id=user_id, requested_level=requested_level)
        self.db.add(request)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError("Access request already pending") from exc
        await self.db.refresh(request)
        logger.info(f"User {user_id} requested {requested_level.value} access to tree {tree_id}")

        await dispatch(
            self.notifier,
            [owner_id],
            NotificationType.ACCESS_REQUEST,
            "A user has requested access to your family tree",
            "access_request",
            request.id,
        )
        return request

    async def get_access_requests(self, tree_id: int, user_id: int) -> List[AccessRequestWithUser]:
        await self.access_control.require_owner_access(tree_id, user_id)

        result = await self.db.execute(
            select(AccessRequest, User.email, User.display_name)
            .join(User, User.id == AccessRequest.user_id)
            .filter(AccessRequest.tree_id == tree_id)
            .order_by(AccessRequest.requested_at.desc(), AccessRequest.id.desc())
        )
        return [
            AccessRequestWithUser(
                **AccessRequestResponse.model_validate(request).model_dump(),
                user_email=email,
                user_display_name=display_name,
            )
            for request, email, display_name in result.all()
        ]

    async def _get_request(self, request_id: int) -> AccessRequest:
        result = await self.db.execute(select(AccessRequest).filter(AccessRequest.id == request_id))
        request = result.scalars().first()
        if not request:
            raise NotFoundError("Access request not found")
        return request

    async def get_request_by_id(self, request_id: int, user_id: int) -> AccessRequest:
        request = await self._get_request(request_id)
        if request.user_id != user_id:
            level = await self.access_control.get_access_level(request.tree_id, user_id)
            if level != AccessLevel.OWNER:
                raise ForbiddenError("Access denied")
        return request

    async def resolve_access_request(
        self,
        request_id: int,
        resolver_id: int,
        approved: bool,
        granted_level: Optional[Union[str, AccessLevel]] = None,
    ) -> AccessRequest:
        request = await self._get_request(request_id)

        if request.status != AccessRequestStatus.PENDING:
            raise ValidationError("Access request has already been resolved")

        await self.access_control.require_owner_access(request.tree_id, resolver_id)

        level_to_grant = None
        if approved:
            level_to_grant = _as_requestable_level(granted_level) if granted_level is not None else request.requested_level
        tree_id, requester_id = request.tree_id, request.user_id

        # The grant and the stamped request are committed together.
        try:
            async with unit_of_work(self.db):
                if approved:
                    await self.access_control.stage_grant(tree_id, requester_id, level_to_grant, resolver_id)
                request.status = AccessRequestStatus.APPROVED if approved else AccessRequestStatus.DENIED
                request.granted_level = level_to_grant
                request.resolved_at = datetime.now(timezone.utc)
                request.resolved_by = resolver_id
        except IntegrityError as exc:
            raise ConflictError("Access was modified concurrently for this user") from exc
        await self.db.refresh(request)
        logger.info(f"Access request {request_id} {request.status.value} by user {resolver_id}")

        if approved:
            await self.access_control.notify_granted(tree_id, requester_id, level_to_grant, resolver_id)
            message = f"Your access request has been approved. You now have {level_to_grant.value} access."
        else:
            message = "Your access request has been denied."
        await dispatch(
            self.notifier,
            [requester_id],
            NotificationType.ACCESS_GRANTED if approved else NotificationType.ACCESS_REQUEST,
            message,
            "tree",
            tree_id,
        )
        return request

    async def approve_access_request(
        self, request_id: int, resolver_id: int, granted_level: Optional[Union[str, AccessLevel]] = None
    ) -> AccessRequest:
        return await self.resolve_access_request(request_id, resolver_id, True, granted_level)

    async def deny_access_request(self, request_id: int, resolver_id: int) -> AccessRequest:
        return await self.resolve_access_request(request_id, resolver_id, False)

import logging
from typing import Iterable, List, Optional, Protocol
from sqlalchemy import update
from sqlalchemy.future import select
from family_graph.database import AsyncSessionLocal
from family_graph.exceptions import NotFoundError
from family_graph.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)

class NotificationSink(Protocol):
    async def record(
        self,
        user_id: int,
        kind: NotificationType,
        message: str,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[int] = None,
    ) -> None: ...

    async def record_many(
        self,
        user_ids: Iterable[int],
        kind: NotificationType,
        message: str,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[int] = None,
    ) -> None: ...

class NotificationService:
    """
    Stores notifications in their own session, so a failed insert never
    touches the caller's transaction. Recording is fire-and-forget: errors
    are logged and dropped.
    """

    def __init__(self, session_factory=AsyncSessionLocal):
        self.session_factory = session_factory

    async def record(
        self,
        user_id: int,
        kind: NotificationType,
        message: str,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[int] = None,
    ) -> None:
        await self.record_many([user_id], kind, message, related_entity_type, related_entity_id)

    async def record_many(
        self,
        user_ids: Iterable[int],
        kind: NotificationType,
        message: str,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[int] = None,
    ) -> None:
        user_ids = list(user_ids)
        if not user_ids:
            return
        try:
            async with self.session_factory() as session:
                for user_id in user_ids:
                    session.add(Notification(
                        user_id=user_id,
                        notification_type=kind,
                        message=message,
                        related_entity_type=related_entity_type,
                        related_entity_id=related_entity_id,
                    ))
                await session.commit()
        except Exception:
            logger.exception(f"Failed to record {kind.value} notification for users {user_ids}")

    async def get_notifications(self, user_id: int, unread_only: bool = False) -> List[Notification]:
        async with self.session_factory() as session:
            query = select(Notification).filter(Notification.user_id == user_id)
            if unread_only:
                query = query.filter(Notification.is_read.is_(False))
            result = await session.execute(query.order_by(Notification.created_at.desc(), Notification.id.desc()))
            return result.scalars().all()

    async def mark_as_read(self, notification_id: int, user_id: int):
        async with self.session_factory() as session:
            result = await session.execute(
                update(Notification)
                .where(Notification.id == notification_id, Notification.user_id == user_id)
                .values(is_read=True)
            )
            await session.commit()
            if result.rowcount == 0:
                raise NotFoundError("Notification not found")

    async def mark_all_as_read(self, user_id: int):
        async with self.session_factory() as session:
            await session.execute(
                update(Notification)
                .where(Notification.user_id == user_id, Notification.is_read.is_(False))
                .values(is_read=True)
            )
            await session.commit()

async def dispatch(
    notifier: Optional[NotificationSink],
    user_ids: Iterable[int],
    kind: NotificationType,
    message: str,
    related_entity_type: Optional[str] = None,
    related_entity_id: Optional[int] = None,
) -> None:
    """Best-effort fan-out used by the workflows after their own commit."""
    user_ids = list(user_ids)
    if notifier is None or not user_ids:
        return
    try:
        await notifier.record_many(user_ids, kind, message, related_entity_type, related_entity_id)
    except Exception:
        logger.exception(f"Notification sink failed for {kind.value}")

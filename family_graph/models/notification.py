from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, Text, Boolean
from sqlalchemy.sql import func
from family_graph.database import Base
import enum

class NotificationType(str, enum.Enum):
    ACCESS_GRANTED = "access_granted"
    SAME_PERSON_LINK_CREATED = "same_person_link_created"
    ACCESS_REQUEST = "access_request"
    COMMENT_ADDED = "comment_added"
    NODE_PUBLISHED = "node_published"
    TIMELINE_EVENT_ADDED = "timeline_event_added"

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    notification_type = Column(Enum(NotificationType), nullable=False)
    message = Column(Text, nullable=False)
    related_entity_type = Column(String(50), nullable=True)
    related_entity_id = Column(Integer, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from family_graph.database import Base
from family_graph.models.tree import AccessLevel
import enum

class AccessRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"

class AccessRequest(Base):
    __tablename__ = "access_requests"

    id = Column(Integer, primary_key=True, index=True)
    tree_id = Column(Integer, ForeignKey("trees.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    requested_level = Column(Enum(AccessLevel), nullable=False)
    granted_level = Column(Enum(AccessLevel), nullable=True)
    status = Column(Enum(AccessRequestStatus), nullable=False, default=AccessRequestStatus.PENDING)
    requested_at = Column(DateTime(timezone=True), server_default=func.now())
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolved_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    tree = relationship("Tree", back_populates="access_requests")

# at most one pending request per (tree, user)
Index(
    "uq_access_requests_pending",
    AccessRequest.tree_id,
    AccessRequest.user_id,
    unique=True,
    postgresql_where=AccessRequest.status == AccessRequestStatus.PENDING,
    sqlite_where=AccessRequest.status == AccessRequestStatus.PENDING,
)

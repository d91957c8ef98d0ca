from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum, String, Text, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from family_graph.database import Base
import enum

class AccessLevel(str, enum.Enum):
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"

# Viewer < Editor < Owner
ACCESS_LEVEL_ORDER = [AccessLevel.VIEWER, AccessLevel.EDITOR, AccessLevel.OWNER]

class Tree(Base):
    __tablename__ = "trees"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    access_list = relationship("TreeAccess", back_populates="tree", cascade="all, delete-orphan")
    nodes = relationship("Node", back_populates="tree", cascade="all, delete-orphan")
    relationships = relationship("Relationship", back_populates="tree", cascade="all, delete-orphan")
    access_requests = relationship("AccessRequest", back_populates="tree", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="tree", cascade="all, delete-orphan")

class TreeAccess(Base):
    __tablename__ = "tree_access"
    __table_args__ = (UniqueConstraint("tree_id", "user_id", name="uq_tree_access_tree_user"),)

    id = Column(Integer, primary_key=True, index=True)
    tree_id = Column(Integer, ForeignKey("trees.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    access_level = Column(Enum(AccessLevel), nullable=False, default=AccessLevel.VIEWER)
    granted_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    granted_at = Column(DateTime(timezone=True), server_default=func.now())

    tree = relationship("Tree", back_populates="access_list")

from sqlalchemy import Column, Integer, String, Date, ForeignKey, DateTime, Enum, Text, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from family_graph.database import Base
import enum

class NodeStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"

class RelationshipType(str, enum.Enum):
    PARENT_CHILD = "parent_child"
    SPOUSE = "spouse"
    SIBLING = "sibling"
    ADOPTED = "adopted"
    STEP = "step"

class Node(Base):
    __tablename__ = "nodes"

    id = Column(Integer, primary_key=True, index=True)
    tree_id = Column(Integer, ForeignKey("trees.id", ondelete="CASCADE"), nullable=False, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    pet_name = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    place_of_birth = Column(String(255), nullable=True)
    contact_info = Column(JSON, nullable=True)
    profile_picture_url = Column(Text, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    date_of_death = Column(Date, nullable=True)

    status = Column(Enum(NodeStatus), nullable=False, default=NodeStatus.DRAFT)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    published_at = Column(DateTime(timezone=True), nullable=True)

    tree = relationship("Tree", back_populates="nodes")
    # edges where this node is the first endpoint
    first_relationships = relationship("Relationship", foreign_keys="Relationship.node_1_id", back_populates="node_1", cascade="all, delete-orphan")
    # edges where this node is the second endpoint
    second_relationships = relationship("Relationship", foreign_keys="Relationship.node_2_id", back_populates="node_2", cascade="all, delete-orphan")
    first_links = relationship("SamePersonLink", foreign_keys="SamePersonLink.node_1_id", back_populates="node_1", cascade="all, delete-orphan")
    second_links = relationship("SamePersonLink", foreign_keys="SamePersonLink.node_2_id", back_populates="node_2", cascade="all, delete-orphan")

class Relationship(Base):
    __tablename__ = "relationships"

    id = Column(Integer, primary_key=True, index=True)
    tree_id = Column(Integer, ForeignKey("trees.id", ondelete="CASCADE"), nullable=False, index=True)
    node_1_id = Column(Integer, ForeignKey("nodes.id", ondelete="CASCADE"), nullable=False, index=True)
    node_2_id = Column(Integer, ForeignKey("nodes.id", ondelete="CASCADE"), nullable=False, index=True)
    relationship_type = Column(Enum(RelationshipType), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    tree = relationship("Tree", back_populates="relationships")
    node_1 = relationship("Node", foreign_keys=[node_1_id], back_populates="first_relationships")
    node_2 = relationship("Node", foreign_keys=[node_2_id], back_populates="second_relationships")

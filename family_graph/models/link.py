from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from family_graph.database import Base

def pair_key(node_id_1: int, node_id_2: int) -> str:
    """Order-independent key for a pair of node ids."""
    low, high = sorted((node_id_1, node_id_2))
    return f"{low}:{high}"

class SamePersonLink(Base):
    __tablename__ = "same_person_links"
    __table_args__ = (CheckConstraint("node_1_id != node_2_id", name="ck_same_person_links_different_nodes"),)

    id = Column(Integer, primary_key=True, index=True)
    node_1_id = Column(Integer, ForeignKey("nodes.id", ondelete="CASCADE"), nullable=False, index=True)
    node_2_id = Column(Integer, ForeignKey("nodes.id", ondelete="CASCADE"), nullable=False, index=True)
    # one link per unordered pair
    pair_key = Column(String(64), nullable=False, unique=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    node_1 = relationship("Node", foreign_keys=[node_1_id], back_populates="first_links")
    node_2 = relationship("Node", foreign_keys=[node_2_id], back_populates="second_links")

from pydantic import BaseModel, ConfigDict
from datetime import date, datetime
from typing import Optional, Dict, Any, List
from family_graph.models.node import NodeStatus, RelationshipType

class NodeBase(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    pet_name: Optional[str] = None
    address: Optional[str] = None
    place_of_birth: Optional[str] = None
    contact_info: Optional[Dict[str, Any]] = None
    profile_picture_url: Optional[str] = None
    date_of_birth: Optional[date] = None
    date_of_death: Optional[date] = None

class NodeCreate(NodeBase):
    pass

class NodeUpdate(NodeBase):
    # Only fields explicitly set are applied (model_dump(exclude_unset=True)).
    pass

class NodeResponse(NodeBase):
    id: int
    tree_id: int
    status: NodeStatus
    created_by: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class RelationshipResponse(BaseModel):
    id: int
    tree_id: int
    node_1_id: int
    node_2_id: int
    relationship_type: RelationshipType
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class CreateRelationshipResult(BaseModel):
    relationship: RelationshipResponse
    published_node_ids: List[int] = []
    draft_node_ids: List[int] = []

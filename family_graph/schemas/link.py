from pydantic import BaseModel
from typing import Optional, List
from family_graph.models.tree import AccessLevel

class LinkedNode(BaseModel):
    node_id: int
    tree_id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    pet_name: Optional[str] = None

class LinkedTree(BaseModel):
    tree_id: int
    tree_name: str
    linked_node_id: int

class LinkedTreeInfo(BaseModel):
    linked_node_id: int
    linked_tree_id: int
    linked_tree_name: str
    has_access: bool
    user_access_level: Optional[AccessLevel] = None
    can_request_access: bool
    has_pending_request: bool

class LinkedTreeInfoResult(BaseModel):
    has_linked_tree: bool
    linked_trees: List[LinkedTreeInfo] = []

from pydantic import BaseModel
from typing import Optional
from family_graph.schemas.node import NodeResponse

class SearchFilters(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    pet_name: Optional[str] = None
    place_of_birth: Optional[str] = None

class NodeSearchResult(NodeResponse):
    tree_name: str

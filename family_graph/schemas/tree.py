from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional
from family_graph.models.tree import AccessLevel

class TreeBase(BaseModel):
    name: str
    description: Optional[str] = None

class TreeUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None

class TreeResponse(TreeBase):
    id: int
    owner_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class TreeAccessResponse(BaseModel):
    id: int
    tree_id: int
    user_id: int
    access_level: AccessLevel
    granted_by: int
    granted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class TreeAccessWithUser(TreeAccessResponse):
    email: str
    display_name: str

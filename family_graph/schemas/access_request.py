from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional
from family_graph.models.tree import AccessLevel
from family_graph.models.access_request import AccessRequestStatus

class AccessRequestResponse(BaseModel):
    id: int
    tree_id: int
    user_id: int
    requested_level: AccessLevel
    granted_level: Optional[AccessLevel] = None
    status: AccessRequestStatus
    requested_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

class AccessRequestWithUser(AccessRequestResponse):
    user_email: str
    user_display_name: str

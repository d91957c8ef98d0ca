# Import every model so string-based relationships resolve on first use.
from family_graph.models.user import User
from family_graph.models.tree import Tree, TreeAccess, AccessLevel
from family_graph.models.node import Node, NodeStatus, Relationship, RelationshipType
from family_graph.models.link import SamePersonLink
from family_graph.models.access_request import AccessRequest, AccessRequestStatus
from family_graph.models.notification import Notification, NotificationType
from family_graph.models.comment import Comment, EntityType

from sqlalchemy.ext.asyncio import AsyncSession
from family_graph.services.access_request_service import AccessRequestService
from family_graph.services.access_service import AccessControlService
from family_graph.services.comment_service import CommentService
from family_graph.services.link_service import SamePersonLinkService
from family_graph.services.node_service import NodeService
from family_graph.services.notification_service import NotificationService, NotificationSink
from family_graph.services.relationship_service import RelationshipService
from family_graph.services.search_service import SearchService
from family_graph.services.tree_service import TreeService
from family_graph.services.user_service import UserService
from family_graph.utils.logging import setup_logging
from typing import Optional

logger = setup_logging()

class FamilyGraph:
    """
    Wires every workflow service to one session and one notification sink.
    A caller builds one per request/unit of work.
    """

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationSink] = None):
        self.db = db
        self.notifier = notifier if notifier is not None else NotificationService()
        self.access = AccessControlService(db, self.notifier)
        self.users = UserService(db)
        self.trees = TreeService(db, self.notifier)
        self.nodes = NodeService(db, self.notifier)
        self.relationships = RelationshipService(db, self.notifier)
        self.links = SamePersonLinkService(db, self.notifier)
        self.access_requests = AccessRequestService(db, self.notifier)
        self.comments = CommentService(db, self.notifier)
        self.search = SearchService(db, self.notifier)

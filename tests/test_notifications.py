import pytest
from family_graph.exceptions import NotFoundError
from family_graph.main import FamilyGraph
from family_graph.models.node import NodeStatus
from family_graph.models.notification import NotificationType
from family_graph.models.tree import AccessLevel
from family_graph.schemas.node import NodeCreate
from family_graph.services.notification_service import NotificationService

@pytest.mark.asyncio
async def test_record_and_read_notifications(notifier, owner, make_user):
    other = await make_user("Other")
    await notifier.record(owner.id, NotificationType.COMMENT_ADDED, "first", "node", 1)
    await notifier.record_many([owner.id, other.id], NotificationType.NODE_PUBLISHED, "second", "node", 2)

    mine = await notifier.get_notifications(owner.id)
    assert sorted(n.message for n in mine) == ["first", "second"]
    assert all(not n.is_read for n in mine)
    assert [n.message for n in await notifier.get_notifications(other.id)] == ["second"]

@pytest.mark.asyncio
async def test_mark_as_read(notifier, owner, make_user):
    other = await make_user("Other")
    await notifier.record(owner.id, NotificationType.COMMENT_ADDED, "one")
    await notifier.record(owner.id, NotificationType.COMMENT_ADDED, "two")
    first = (await notifier.get_notifications(owner.id))[0]

    with pytest.raises(NotFoundError):
        await notifier.mark_as_read(first.id, other.id)

    await notifier.mark_as_read(first.id, owner.id)
    unread = await notifier.get_notifications(owner.id, unread_only=True)
    assert len(unread) == 1

    await notifier.mark_all_as_read(owner.id)
    assert await notifier.get_notifications(owner.id, unread_only=True) == []

@pytest.mark.asyncio
async def test_notification_failure_never_fails_the_mutation(db_session, failing_notifier, owner, make_user):
    failing = failing_notifier
    graph = FamilyGraph(db_session, failing)
    member = await make_user("Member")

    tree = await graph.trees.create_tree("Quiet", owner.id)
    await graph.trees.grant_tree_access(tree.id, owner.id, member.email, AccessLevel.EDITOR)
    node = await graph.nodes.create_node(tree.id, owner.id, NodeCreate(first_name="Ada", last_name="Lovelace"))
    published = await graph.nodes.publish_node(node.id, owner.id)

    assert published.status == NodeStatus.PUBLISHED
    assert await graph.access.get_access_level(tree.id, member.id) == AccessLevel.EDITOR
    assert failing.calls == 2

@pytest.mark.asyncio
async def test_record_swallows_storage_errors(owner):
    class BrokenFactory:
        def __call__(self):
            raise RuntimeError("no database")

    sink = NotificationService(session_factory=BrokenFactory())
    # logged, not raised
    await sink.record(owner.id, NotificationType.ACCESS_REQUEST, "hello")

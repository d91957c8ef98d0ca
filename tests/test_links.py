import pytest
import pytest_asyncio
from family_graph.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from family_graph.models.notification import NotificationType
from family_graph.models.tree import AccessLevel

@pytest_asyncio.fixture
async def two_trees(graph, owner, make_user, make_node):
    """Owner's tree and another user's tree, each with one published node."""
    other_owner = await make_user("OtherOwner")
    mine = await graph.trees.create_tree("Mine", owner.id)
    theirs = await graph.trees.create_tree("Theirs", other_owner.id)
    my_node = await make_node(mine.id, owner.id, first_name="Ann", publish=True)
    their_node = await make_node(theirs.id, other_owner.id, first_name="Ann", publish=True)
    return {
        "mine": mine,
        "theirs": theirs,
        "my_node": my_node,
        "their_node": their_node,
        "other_owner": other_owner,
    }

@pytest.mark.asyncio
async def test_link_nodes_across_trees_with_edit_on_one_side(graph, owner, two_trees):
    link = await graph.links.create_same_person_link(two_trees["my_node"].id, two_trees["their_node"].id, owner.id)
    assert link.node_1_id == two_trees["my_node"].id
    assert link.node_2_id == two_trees["their_node"].id
    assert link.created_by == owner.id

@pytest.mark.asyncio
async def test_link_requires_different_trees(graph, tree, owner, make_node):
    a = await make_node(tree.id, owner.id, publish=True)
    b = await make_node(tree.id, owner.id)
    with pytest.raises(ValidationError, match="different trees"):
        await graph.links.create_same_person_link(a.id, b.id, owner.id)

@pytest.mark.asyncio
async def test_link_missing_node(graph, owner, two_trees):
    with pytest.raises(NotFoundError):
        await graph.links.create_same_person_link(two_trees["my_node"].id, 9999, owner.id)

@pytest.mark.asyncio
async def test_link_requires_edit_on_at_least_one_tree(graph, owner, make_user, two_trees):
    viewer = await make_user("Viewer")
    await graph.access.grant_access(two_trees["mine"].id, viewer.id, AccessLevel.VIEWER, owner.id)
    with pytest.raises(ForbiddenError, match="at least one tree"):
        await graph.links.create_same_person_link(two_trees["my_node"].id, two_trees["their_node"].id, viewer.id)

    stranger = await make_user("Stranger")
    with pytest.raises(ForbiddenError):
        await graph.links.create_same_person_link(two_trees["my_node"].id, two_trees["their_node"].id, stranger.id)

    # editor on the far side only is enough
    await graph.access.grant_access(two_trees["theirs"].id, viewer.id, AccessLevel.EDITOR, two_trees["other_owner"].id)
    link = await graph.links.create_same_person_link(two_trees["my_node"].id, two_trees["their_node"].id, viewer.id)
    assert link.created_by == viewer.id

@pytest.mark.asyncio
async def test_duplicate_link_in_either_orientation_conflicts(graph, owner, two_trees):
    a, b = two_trees["my_node"].id, two_trees["their_node"].id
    await graph.links.create_same_person_link(a, b, owner.id)

    with pytest.raises(ConflictError):
        await graph.links.create_same_person_link(a, b, owner.id)
    with pytest.raises(ConflictError):
        await graph.links.create_same_person_link(b, a, owner.id)

@pytest.mark.asyncio
async def test_link_notifies_other_tree_owner_only(graph, notifier, owner, two_trees):
    link = await graph.links.create_same_person_link(two_trees["my_node"].id, two_trees["their_node"].id, owner.id)

    theirs = await notifier.get_notifications(two_trees["other_owner"].id)
    assert [n.notification_type for n in theirs] == [NotificationType.SAME_PERSON_LINK_CREATED]
    assert theirs[0].related_entity_id == link.id
    assert await notifier.get_notifications(owner.id) == []

@pytest.mark.asyncio
async def test_linked_nodes_and_trees_are_symmetric(graph, owner, two_trees):
    my_node, their_node = two_trees["my_node"], two_trees["their_node"]
    await graph.links.create_same_person_link(their_node.id, my_node.id, two_trees["other_owner"].id)

    linked = await graph.links.get_linked_nodes(my_node.id, owner.id)
    assert [n.node_id for n in linked] == [their_node.id]
    assert linked[0].tree_id == two_trees["theirs"].id

    trees = await graph.links.get_linked_trees(my_node.id, owner.id)
    assert [(t.tree_id, t.tree_name, t.linked_node_id) for t in trees] == [
        (two_trees["theirs"].id, "Theirs", their_node.id)
    ]

    back = await graph.links.get_linked_nodes(their_node.id, two_trees["other_owner"].id)
    assert [n.node_id for n in back] == [my_node.id]

@pytest.mark.asyncio
async def test_linked_reads_require_access_to_source_tree(graph, make_user, owner, two_trees):
    await graph.links.create_same_person_link(two_trees["my_node"].id, two_trees["their_node"].id, owner.id)
    stranger = await make_user("Stranger")
    with pytest.raises(ForbiddenError):
        await graph.links.get_linked_nodes(two_trees["my_node"].id, stranger.id)
    with pytest.raises(NotFoundError):
        await graph.links.get_linked_trees(9999, owner.id)

@pytest.mark.asyncio
async def test_get_link_by_id_requires_access_to_either_side(graph, owner, make_user, two_trees):
    link = await graph.links.create_same_person_link(two_trees["my_node"].id, two_trees["their_node"].id, owner.id)

    assert (await graph.links.get_link_by_id(link.id, owner.id)).id == link.id
    assert (await graph.links.get_link_by_id(link.id, two_trees["other_owner"].id)).id == link.id

    stranger = await make_user("Stranger")
    with pytest.raises(ForbiddenError):
        await graph.links.get_link_by_id(link.id, stranger.id)
    with pytest.raises(NotFoundError):
        await graph.links.get_link_by_id(9999, owner.id)

@pytest.mark.asyncio
async def test_only_an_owner_of_either_tree_deletes_links(graph, owner, make_user, two_trees):
    link = await graph.links.create_same_person_link(two_trees["my_node"].id, two_trees["their_node"].id, owner.id)
    link_id = link.id

    editor = await make_user("Editor")
    await graph.access.grant_access(two_trees["mine"].id, editor.id, AccessLevel.EDITOR, owner.id)
    with pytest.raises(ForbiddenError, match="Only tree owners"):
        await graph.links.delete_same_person_link(link_id, editor.id)

    await graph.links.delete_same_person_link(link_id, two_trees["other_owner"].id)
    with pytest.raises(NotFoundError):
        await graph.links.delete_same_person_link(link_id, owner.id)

@pytest.mark.asyncio
async def test_deleting_a_node_removes_its_links(graph, owner, two_trees):
    await graph.links.create_same_person_link(two_trees["my_node"].id, two_trees["their_node"].id, owner.id)
    their_node_id = two_trees["their_node"].id
    my_node_id = two_trees["my_node"].id

    await graph.nodes.delete_node(their_node_id, two_trees["other_owner"].id)
    assert await graph.links.get_linked_nodes(my_node_id, owner.id) == []

@pytest.mark.asyncio
async def test_linked_tree_info_reports_access_and_requests(graph, owner, make_user, make_node, two_trees):
    third_owner = await make_user("ThirdOwner")
    third = await graph.trees.create_tree("Third", third_owner.id)
    third_node = await make_node(third.id, third_owner.id, first_name="Ann", publish=True)

    my_node = two_trees["my_node"]
    await graph.links.create_same_person_link(my_node.id, two_trees["their_node"].id, owner.id)
    await graph.links.create_same_person_link(my_node.id, third_node.id, owner.id)
    await graph.access_requests.submit_access_request(third.id, owner.id, AccessLevel.VIEWER)

    info = await graph.links.get_linked_tree_info(my_node.id, owner.id)
    assert info.has_linked_tree
    by_tree = {t.linked_tree_id: t for t in info.linked_trees}

    theirs = by_tree[two_trees["theirs"].id]
    assert not theirs.has_access
    assert theirs.user_access_level is None
    assert theirs.can_request_access
    assert not theirs.has_pending_request

    pending = by_tree[third.id]
    assert pending.linked_tree_name == "Third"
    assert not pending.can_request_access
    assert pending.has_pending_request

    # once access exists, no request is offered
    await graph.access.grant_access(two_trees["theirs"].id, owner.id, AccessLevel.VIEWER, two_trees["other_owner"].id)
    info = await graph.links.get_linked_tree_info(my_node.id, owner.id)
    theirs = {t.linked_tree_id: t for t in info.linked_trees}[two_trees["theirs"].id]
    assert theirs.has_access
    assert theirs.user_access_level == AccessLevel.VIEWER
    assert not theirs.can_request_access

@pytest.mark.asyncio
async def test_linked_tree_info_without_links(graph, owner, two_trees):
    info = await graph.links.get_linked_tree_info(two_trees["my_node"].id, owner.id)
    assert not info.has_linked_tree
    assert info.linked_trees == []

@pytest.mark.asyncio
async def test_linked_tree_info_ignores_resolved_requests(graph, owner, two_trees):
    my_node = two_trees["my_node"]
    await graph.links.create_same_person_link(my_node.id, two_trees["their_node"].id, owner.id)
    request = await graph.access_requests.submit_access_request(two_trees["theirs"].id, owner.id, AccessLevel.EDITOR)
    await graph.access_requests.deny_access_request(request.id, two_trees["other_owner"].id)

    info = await graph.links.get_linked_tree_info(my_node.id, owner.id)
    assert len(info.linked_trees) == 1
    theirs = info.linked_trees[0]
    assert not theirs.has_access
    assert not theirs.has_pending_request
    assert theirs.can_request_access

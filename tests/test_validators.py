import pytest
from family_graph.models.tree import AccessLevel
from family_graph.utils.validators import (
    get_display_name,
    is_valid_node_name,
    validate_requested_level,
)

@pytest.mark.parametrize("first, last, pet, expected", [
    ("John", "Smith", None, True),
    (None, None, "Rex", True),
    ("John", None, "Rex", True),
    ("John", None, None, False),
    (None, "Smith", None, False),
    (None, None, None, False),
    ("", "", "", False),
    ("   ", "Smith", None, False),
    ("John", "Smith", "  ", True),
    ("John", "\t", "  ", False),
])
def test_is_valid_node_name(first, last, pet, expected):
    assert is_valid_node_name(first, last, pet) is expected

@pytest.mark.parametrize("first, last, pet, expected", [
    ("John", "Smith", None, "John Smith"),
    ("John", "Smith", "Johnny", "Johnny"),
    (None, None, "Rex", "Rex"),
    ("John", "Smith", "   ", "John Smith"),
    ("John", None, None, "John"),
    (None, "Smith", "", "Smith"),
    (None, None, None, ""),
])
def test_get_display_name(first, last, pet, expected):
    assert get_display_name(first, last, pet) == expected

def test_validate_requested_level():
    assert validate_requested_level("Viewer") == AccessLevel.VIEWER
    assert validate_requested_level("e") == AccessLevel.EDITOR
    with pytest.raises(ValueError):
        validate_requested_level("owner")

def test_validate_requested_level_requires_a_value():
    with pytest.raises(ValueError):
        validate_requested_level(None)
    with pytest.raises(ValueError):
        validate_requested_level("")

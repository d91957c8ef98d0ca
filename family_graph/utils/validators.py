from typing import Optional
from family_graph.models.tree import AccessLevel

def _present(value: Optional[str]) -> bool:
    # blank and whitespace-only strings count as absent
    return value is not None and value.strip() != ""

def is_valid_node_name(first_name: Optional[str], last_name: Optional[str], pet_name: Optional[str]) -> bool:
    """A node needs both first and last name, or a pet name."""
    has_full_name = _present(first_name) and _present(last_name)
    return has_full_name or _present(pet_name)

def get_display_name(first_name: Optional[str], last_name: Optional[str], pet_name: Optional[str]) -> str:
    if _present(pet_name):
        return pet_name
    return f"{first_name or ''} {last_name or ''}".strip()

def normalize_email(email: str) -> str:
    return email.strip().lower()

def validate_requested_level(level_str: Optional[str]) -> AccessLevel:
    if not level_str:
        raise ValueError("Access level is required.")
    level_str = level_str.strip().lower()
    if level_str in ["viewer", "v"]:
        return AccessLevel.VIEWER
    elif level_str in ["editor", "e"]:
        return AccessLevel.EDITOR
    else:
        raise ValueError("Invalid access level. Please enter Viewer or Editor.")

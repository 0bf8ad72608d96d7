"""Role-based access policy: which roles may perform which class of operation."""

from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class Operation(str, Enum):
    """Operation classes gated by role."""

    PUBLIC_READ = "public_read"  # list/get active posts, serve images
    EDITOR_WRITE = "editor_write"  # create/update/soft-delete posts, upload/delete images
    ADMIN_ONLY = "admin_only"  # list/create/update users


ROLE_VALUES: frozenset[str] = frozenset(r.value for r in Role)

_PERMISSIONS: dict[Role, frozenset[Operation]] = {
    Role.VIEWER: frozenset({Operation.PUBLIC_READ}),
    Role.EDITOR: frozenset({Operation.PUBLIC_READ, Operation.EDITOR_WRITE}),
    Role.ADMIN: frozenset(Operation),
}


def is_allowed(role: str | None, operation: Operation) -> bool:
    """
    Pure policy check. role=None is an anonymous caller, allowed public reads only.
    Unknown roles are denied everything except public reads.
    """
    if operation is Operation.PUBLIC_READ:
        return True
    try:
        granted = _PERMISSIONS[Role(role)]
    except ValueError:
        return False
    return operation in granted

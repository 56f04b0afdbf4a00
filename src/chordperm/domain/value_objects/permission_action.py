"""Permission actions for RBAC."""

from enum import StrEnum


class PermissionAction(StrEnum):
    """Actions that can be performed on resources."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"
    FLAG = "flag"
    ASSIGN_ROLE = "assign_role"
    REVOKE_ROLE = "revoke_role"
    EXPORT = "export"
    IMPORT = "import"
    BULK_EDIT = "bulk_edit"

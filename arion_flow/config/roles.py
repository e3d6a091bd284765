"""
Roles Configuration
Application roles stored on profiles.role and organization membership roles
stored on organization_users.role.
"""

ARION_ADMIN = "arion_admin"
ORG_ADMIN = "org_admin"
WORKSPACE_USER = "workspace_user"

# Profile roles, highest privilege first
ROLES = {
    ARION_ADMIN: {
        "label": "Arion Admin",
        "description": "Platform administrator with access to every organization"
    },
    ORG_ADMIN: {
        "label": "Organization Admin",
        "description": "Manages users and workspaces of the organizations they belong to"
    },
    WORKSPACE_USER: {
        "label": "Workspace User",
        "description": "Orders and uses GPU workspaces"
    },
}

# Roles allowed into the admin routes
ADMIN_ROLES = (ARION_ADMIN, ORG_ADMIN)

# organization_users.role
ORG_ROLE_ADMIN = "admin"
ORG_ROLE_MEMBER = "member"
ORG_ROLES = (ORG_ROLE_ADMIN, ORG_ROLE_MEMBER)


def is_known_role(role: str) -> bool:
    return role in ROLES


def get_role_list() -> list:
    """Built-in role rows in the same shape as the roles table."""
    return [
        {"name": name, "label": info["label"], "description": info["description"]}
        for name, info in ROLES.items()
    ]

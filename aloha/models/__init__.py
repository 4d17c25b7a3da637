"""
SQLModel database models.

Importing this package registers every table with SQLModel.metadata, which
Alembic and the test fixtures rely on.

For modifications:
1. Edit the appropriate model file in aloha/models/
2. Create an Alembic migration to reflect the changes
"""

from aloha.models.permissions import (
    GroupPermissions,
    Permissions,
    UserGroups,
    UserPermissions,
)
from aloha.models.tweet import Tweets
from aloha.models.user import Users

__all__ = [
    # Core entity models
    "Users",
    "Tweets",
    # Permission system
    "UserGroups",
    "Permissions",
    "GroupPermissions",
    "UserPermissions",
]

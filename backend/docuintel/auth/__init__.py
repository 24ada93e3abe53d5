from docuintel.auth.token import UserSession, get_current_user, get_optional_user, verify_token
from docuintel.auth.rbac import require_role, RequireAdmin
from docuintel.auth.dependencies import (
    AdminStorage,
    CurrentUser,
    OptionalUser,
    OptionalUserDB,
    OptionalUserStorage,
    PrivilegedDB,
    UserDB,
)

__all__ = [
    "UserSession", "get_current_user", "get_optional_user", "verify_token",
    "require_role", "RequireAdmin",
    "AdminStorage", "CurrentUser", "OptionalUser", "OptionalUserDB",
    "OptionalUserStorage", "PrivilegedDB", "UserDB",
]

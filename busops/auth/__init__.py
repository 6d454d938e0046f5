from .dependencies import get_current_user, get_current_actor, require_admin
from .schemas import Actor, User, UserSummary
from .service import UserService

__all__ = [
    "get_current_user",
    "get_current_actor",
    "require_admin",
    "Actor",
    "User",
    "UserSummary",
    "UserService"
]

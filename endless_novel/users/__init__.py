"""User accounts and profile editing."""

from endless_novel.users.service import (
    ProfileForm,
    ProfileValidationError,
    UserNotFoundError,
    create_user,
    get_user,
    update_profile,
)

__all__ = [
    "ProfileForm",
    "ProfileValidationError",
    "UserNotFoundError",
    "create_user",
    "get_user",
    "update_profile",
]

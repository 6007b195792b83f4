"""User account storage and balance mutation."""

from endless_novel.storage.users.base import User
from endless_novel.storage.users import crud

__all__ = ["User", "crud"]

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.exc import IntegrityError

from endless_novel.config.schema import AppConfigRoot, ProfileConfig
from endless_novel.storage.db import session_scope
from endless_novel.storage.repo import SQLAlchemyRepo
from endless_novel.storage.types import UserRow

WELCOME_PACKAGE = "Welcome Package"
VISIBILITIES = ("public", "friends", "private")


class UserNotFoundError(LookupError):
    def __init__(self, user_id: str):
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id


class ProfileValidationError(ValueError):
    pass


def looks_like_email(value: str) -> bool:
    return "@" in value and "." in value


@dataclass
class ProfileForm:
    display_name: str
    username: str
    email: str
    bio: str = ""
    notification_emails: bool = True
    marketing_emails: bool = False
    profile_visibility: str = "public"

    @classmethod
    def from_user(cls, user: UserRow) -> "ProfileForm":
        """Editable copy of the stored profile; an unset bio stays empty."""
        return cls(
            display_name=user.name,
            username=user.username,
            email=user.email,
            bio=user.bio or "",
            notification_emails=user.notification_emails,
            marketing_emails=user.marketing_emails,
            profile_visibility=user.profile_visibility,
        )

    def validate(self, config: ProfileConfig) -> None:
        if not self.display_name.strip() or not self.username.strip() or not self.email.strip():
            raise ProfileValidationError("Display name, username and email are required")
        if not looks_like_email(self.email):
            raise ProfileValidationError("Please enter a valid email address")
        if len(self.bio) > config.bio_max_chars:
            raise ProfileValidationError(f"Bio must be at most {config.bio_max_chars} characters")
        if self.profile_visibility not in VISIBILITIES:
            raise ProfileValidationError(f"Unknown profile visibility: {self.profile_visibility}")

    def to_values(self) -> dict[str, Any]:
        return {
            "name": self.display_name.strip(),
            "username": self.username.strip(),
            "email": self.email.strip(),
            "bio": self.bio.strip() or None,
            "notification_emails": self.notification_emails,
            "marketing_emails": self.marketing_emails,
            "profile_visibility": self.profile_visibility,
        }


def display_bio(user: UserRow, config: ProfileConfig) -> str:
    return user.bio or config.default_bio


async def create_user(name: str, email: str, username: str, config: AppConfigRoot) -> UserRow:
    """Register a user and credit the sign-up bonus as a free welcome package."""
    form = ProfileForm(display_name=name, username=username, email=email)
    form.validate(config.profile)

    user_id = uuid.uuid4().hex
    bonus = config.gems.signup_bonus
    async with session_scope() as session:
        repo = SQLAlchemyRepo(session)
        if await repo.get_user_by_username(form.username.strip()) is not None:
            raise ProfileValidationError(f"Username already taken: {form.username}")
        await repo.create_user(
            user_id=user_id,
            name=form.display_name.strip(),
            username=form.username.strip(),
            email=form.email.strip(),
            gems=bonus,
            profile_visibility=config.profile.default_visibility,
        )
        if bonus > 0:
            await repo.insert_purchase(
                user_id=user_id,
                description=WELCOME_PACKAGE,
                amount=bonus,
                price=Decimal("0.00"),
                receipt=False,
            )
        user = await repo.get_user(user_id)

    if user is None:
        raise UserNotFoundError(user_id)
    logger.bind(node="create_user", user_id=user_id).info("Created user {} with {} gems", user.username, bonus)
    return user


async def get_user(user_id: str) -> UserRow:
    async with session_scope() as session:
        user = await SQLAlchemyRepo(session).get_user(user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


async def find_user_by_username(username: str) -> UserRow:
    async with session_scope() as session:
        user = await SQLAlchemyRepo(session).get_user_by_username(username)
    if user is None:
        raise UserNotFoundError(username)
    return user


async def update_profile(user_id: str, form: ProfileForm, config: AppConfigRoot) -> UserRow:
    form.validate(config.profile)

    try:
        async with session_scope() as session:
            repo = SQLAlchemyRepo(session)
            existing = await repo.get_user(user_id)
            if existing is None:
                raise UserNotFoundError(user_id)
            clash = await repo.get_user_by_username(form.username.strip())
            if clash is not None and clash.id != user_id:
                raise ProfileValidationError(f"Username already taken: {form.username}")
            user = await repo.update_profile(user_id, form.to_values())
    except IntegrityError as exc:
        raise ProfileValidationError(f"Username already taken: {form.username}") from exc

    if user is None:
        raise UserNotFoundError(user_id)
    logger.bind(node="update_profile", user_id=user_id).info("Profile updated")
    return user

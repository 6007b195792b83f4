from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

STATUS_COMPLETED = "Completed"
STATUS_IN_PROGRESS = "In Progress"
STATUSES = (STATUS_COMPLETED, STATUS_IN_PROGRESS)

RATINGS = ("PG", "PG-13", "R", "X", "XXX")
DEFAULT_RATING = "PG"
DEFAULT_STATUS = STATUS_IN_PROGRESS
DEFAULT_GENRE = "fantasy"

FILTER_ALL = "All"


@dataclass
class Story:
    id: str
    title: str
    author_name: str
    author_username: str
    date_shared: str
    description: str
    genre: str
    cover_image: str
    status: str = DEFAULT_STATUS
    rating: str = DEFAULT_RATING
    content: str | None = None

    def paragraphs(self) -> list[str]:
        if not self.content:
            return []
        return [part.strip() for part in self.content.split("\n\n") if part.strip()]

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys the web client stores."""
        payload: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "authorName": self.author_name,
            "authorUsername": self.author_username,
            "dateShared": self.date_shared,
            "description": self.description,
            "genre": self.genre,
            "coverImage": self.cover_image,
            "status": self.status,
            "rating": self.rating,
        }
        if self.content is not None:
            payload["content"] = self.content
        return payload


@dataclass
class StoryRef:
    id: str
    author_id: str | None = None
    author_name: str | None = None
    author_username: str | None = None
    title: str | None = None
    description: str | None = None
    genre: str | None = None
    status: str | None = None
    rating: str | None = None
    date_shared: str | None = None
    content: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id}
        for key, value in (
            ("authorId", self.author_id),
            ("authorName", self.author_name),
            ("authorUsername", self.author_username),
            ("title", self.title),
            ("description", self.description),
            ("genre", self.genre),
            ("status", self.status),
            ("rating", self.rating),
            ("dateShared", self.date_shared),
            ("content", self.content),
        ):
            if value is not None:
                payload[key] = value
        payload.update(self.extra)
        return payload


@dataclass
class StoryFilter:
    status: str = FILTER_ALL
    rating: str = FILTER_ALL
    query: str = ""

    def matches(self, story: Story) -> bool:
        if self.status != FILTER_ALL and story.status != self.status:
            return False
        if self.rating != FILTER_ALL and story.rating != self.rating:
            return False

        if not self.query.strip():
            return True
        query = self.query.lower()
        return any(
            query in (value or "").lower()
            for value in (story.title, story.author_name, story.description, story.genre)
        )

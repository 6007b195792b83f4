from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from endless_novel.config.schema import StoriesConfig
from endless_novel.stories.models import DEFAULT_GENRE, DEFAULT_RATING, DEFAULT_STATUS, Story, StoryRef

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_AUTHOR = "Unknown Author"
UNKNOWN_USERNAME = "unknown"
SHARED_DESCRIPTION = "A shared story from the community."
MISSING_CONTENT = "The full content of this story is not available."

_ALIASES: dict[str, tuple[str, ...]] = {
    "author_id": ("authorId", "author_id"),
    "author_name": ("authorName", "author_name"),
    "author_username": ("authorUsername", "author_username"),
    "date_shared": ("dateShared", "date_shared"),
    "cover_image": ("coverImage", "cover_image"),
}


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def record_id(raw: Mapping[str, Any]) -> str | None:
    """Story id as stored; non-string ids never match a requested id."""
    value = raw.get("id")
    return value if isinstance(value, str) and value else None


def pick(raw: Mapping[str, Any], field_name: str) -> str | None:
    """Read a field by its stored key, treating None and "" as missing."""
    for key in _ALIASES.get(field_name, (field_name,)):
        value = raw.get(key)
        if value is None:
            continue
        text = value if isinstance(value, str) else str(value)
        if text:
            return text
    return None


def cover_image_for_genre(genre: str | None, config: StoriesConfig) -> str:
    image = config.genre_images.get((genre or "").lower(), config.default_image)
    return config.image_url(image)


def normalize_story(
    raw: Mapping[str, Any],
    config: StoriesConfig,
    *,
    default_content: str | None = None,
    default_description: str = "",
    now: str | None = None,
) -> Story:
    story_id = record_id(raw)
    if story_id is None:
        raise ValueError("story record has no id")

    raw_genre = pick(raw, "genre")
    return Story(
        id=story_id,
        title=pick(raw, "title") or UNKNOWN_TITLE,
        author_name=pick(raw, "author_name") or UNKNOWN_AUTHOR,
        author_username=pick(raw, "author_username") or UNKNOWN_USERNAME,
        date_shared=pick(raw, "date_shared") or now or now_iso(),
        description=pick(raw, "description") or default_description,
        genre=raw_genre or DEFAULT_GENRE,
        # Placeholder follows the stored genre, not the defaulted one.
        cover_image=pick(raw, "cover_image") or cover_image_for_genre(raw_genre, config),
        status=pick(raw, "status") or DEFAULT_STATUS,
        rating=pick(raw, "rating") or DEFAULT_RATING,
        content=pick(raw, "content") or default_content,
    )


def parse_ref(raw: Mapping[str, Any]) -> StoryRef | None:
    story_id = record_id(raw)
    if story_id is None:
        return None
    known = {alias for aliases in _ALIASES.values() for alias in aliases}
    known.update({"id", "title", "description", "genre", "status", "rating", "content"})
    return StoryRef(
        id=story_id,
        author_id=pick(raw, "author_id"),
        author_name=pick(raw, "author_name"),
        author_username=pick(raw, "author_username"),
        title=pick(raw, "title"),
        description=pick(raw, "description"),
        genre=pick(raw, "genre"),
        status=pick(raw, "status"),
        rating=pick(raw, "rating"),
        date_shared=pick(raw, "date_shared"),
        content=pick(raw, "content"),
        extra={key: value for key, value in raw.items() if key not in known},
    )


def merge_with_ref(full: Mapping[str, Any], ref: StoryRef, config: StoriesConfig) -> Story:
    """Full record wins, except the author and share date come from the reference."""
    merged = dict(full)
    merged["id"] = ref.id
    merged["authorName"] = ref.author_name or UNKNOWN_AUTHOR
    merged["authorUsername"] = ref.author_username or UNKNOWN_USERNAME
    merged["dateShared"] = ref.date_shared or now_iso()
    for key in ("author_name", "author_username", "date_shared"):
        merged.pop(key, None)
    return normalize_story(merged, config)


def story_from_ref(ref: StoryRef, config: StoriesConfig) -> Story:
    return normalize_story(
        ref.to_dict(),
        config,
        default_content=MISSING_CONTENT,
        default_description=SHARED_DESCRIPTION,
    )

from __future__ import annotations

from typing import Any, Protocol

from loguru import logger

from endless_novel.config.schema import StoriesConfig
from endless_novel.stories.demo import demo_stories
from endless_novel.stories.json_utils import MalformedSourceError, load_record_list
from endless_novel.stories.models import Story, StoryRef
from endless_novel.stories.normalize import merge_with_ref, normalize_story, parse_ref, record_id, story_from_ref

LEGACY_STORIES_KEY = "sharedStories"
STORY_REFS_KEY = "sharedStoryRefs"


def author_stories_key(author_id: str) -> str:
    return f"stories_{author_id}"


class KVReader(Protocol):
    async def get_kv(self, key: str) -> str | None: ...


class StorySource(Protocol):
    name: str

    async def try_load(self, story_id: str) -> Story | None: ...

    async def load_all(self) -> list[Story] | None: ...


async def read_records(reader: KVReader, key: str) -> list[dict[str, Any]] | None:
    """Read a stored record list; malformed payloads are logged and read as absent."""
    try:
        return load_record_list(await reader.get_kv(key), source=key)
    except MalformedSourceError as exc:
        logger.bind(node="story_sources", source=key).warning("Ignoring malformed story source: {}", exc)
        return None


def _find(records: list[dict[str, Any]], story_id: str) -> dict[str, Any] | None:
    for record in records:
        if record_id(record) == story_id:
            return record
    return None


class LegacySharedStoriesSource:
    """Flat list of fully shared stories written by older clients."""

    name = "legacy"

    def __init__(self, reader: KVReader, config: StoriesConfig):
        self.reader = reader
        self.config = config

    async def try_load(self, story_id: str) -> Story | None:
        records = await read_records(self.reader, LEGACY_STORIES_KEY)
        if not records:
            return None
        found = _find(records, story_id)
        return normalize_story(found, self.config) if found is not None else None

    async def load_all(self) -> list[Story] | None:
        records = await read_records(self.reader, LEGACY_STORIES_KEY)
        if records is None:
            return None
        return [normalize_story(record, self.config) for record in records if record_id(record)]


class SharedStoryRefsSource:
    """References whose full body lives in the author's own story list."""

    name = "refs"

    def __init__(self, reader: KVReader, config: StoriesConfig):
        self.reader = reader
        self.config = config

    async def _expand(self, ref: StoryRef) -> Story:
        if ref.author_id:
            author_records = await read_records(self.reader, author_stories_key(ref.author_id))
            full = _find(author_records, ref.id) if author_records else None
            if full is not None:
                return merge_with_ref(full, ref, self.config)
        return story_from_ref(ref, self.config)

    async def _refs(self) -> list[StoryRef] | None:
        records = await read_records(self.reader, STORY_REFS_KEY)
        if records is None:
            return None
        refs = [parse_ref(record) for record in records]
        return [ref for ref in refs if ref is not None]

    async def try_load(self, story_id: str) -> Story | None:
        refs = await self._refs()
        if not refs:
            return None
        for ref in refs:
            if ref.id == story_id:
                return await self._expand(ref)
        return None

    async def load_all(self) -> list[Story] | None:
        refs = await self._refs()
        if refs is None:
            return None
        return [await self._expand(ref) for ref in refs]


class DemoStoriesSource:
    name = "demo"

    def __init__(self, config: StoriesConfig):
        self.config = config

    async def try_load(self, story_id: str) -> Story | None:
        for story in demo_stories(self.config):
            if story.id == story_id:
                return story
        return None

    async def load_all(self) -> list[Story] | None:
        return demo_stories(self.config)


def default_sources(reader: KVReader, config: StoriesConfig) -> list[StorySource]:
    return [
        LegacySharedStoriesSource(reader, config),
        SharedStoryRefsSource(reader, config),
        DemoStoriesSource(config),
    ]

from __future__ import annotations

from typing import Iterable

from loguru import logger

from endless_novel.config.schema import AppConfigRoot, StoriesConfig
from endless_novel.storage.db import session_scope
from endless_novel.storage.repo import SQLAlchemyRepo
from endless_novel.stories.json_utils import dump_record_list
from endless_novel.stories.models import Story, StoryFilter, StoryRef
from endless_novel.stories.normalize import now_iso
from endless_novel.stories.sources import (
    LEGACY_STORIES_KEY,
    STORY_REFS_KEY,
    KVReader,
    StorySource,
    author_stories_key,
    default_sources,
    read_records,
)


class StoryNotFoundError(LookupError):
    def __init__(self, story_id: str):
        super().__init__(f"Story not found: {story_id}")
        self.story_id = story_id


class StoryResolver:
    """Walks story sources in priority order; the first hit wins."""

    def __init__(self, sources: list[StorySource]):
        self.sources = sources

    @classmethod
    def from_reader(cls, reader: KVReader, config: StoriesConfig) -> "StoryResolver":
        return cls(default_sources(reader, config))

    async def resolve(self, story_id: str) -> Story:
        for source in self.sources:
            story = await source.try_load(story_id)
            if story is not None:
                logger.bind(node="story_resolver", story_id=story_id, source=source.name).debug("Resolved story")
                return story
        raise StoryNotFoundError(story_id)

    async def list_all(self) -> list[Story]:
        for source in self.sources:
            stories = await source.load_all()
            if stories is not None:
                logger.bind(node="story_resolver", source=source.name).debug("Listing {} stories", len(stories))
                return stories
        return []


def filter_stories(stories: Iterable[Story], story_filter: StoryFilter) -> list[Story]:
    return [story for story in stories if story_filter.matches(story)]


def story_url(story_id: str, config: StoriesConfig) -> str:
    return f"{config.story_url_prefix.rstrip('/')}/{story_id}"


async def resolve_story(story_id: str, config: AppConfigRoot) -> Story:
    async with session_scope() as session:
        resolver = StoryResolver.from_reader(SQLAlchemyRepo(session), config.stories)
        return await resolver.resolve(story_id)


async def list_stories(config: AppConfigRoot, story_filter: StoryFilter | None = None) -> list[Story]:
    async with session_scope() as session:
        resolver = StoryResolver.from_reader(SQLAlchemyRepo(session), config.stories)
        stories = await resolver.list_all()
    if story_filter is None:
        return stories
    return filter_stories(stories, story_filter)


async def share_story(
    repo: SQLAlchemyRepo,
    story: Story,
    *,
    author_id: str,
) -> StoryRef:
    """Store the full story under its author and publish a reference to it."""
    author_key = author_stories_key(author_id)
    author_records = await read_records(repo, author_key) or []
    author_records = [record for record in author_records if record.get("id") != story.id]
    author_records.append(story.to_dict())
    await repo.set_kv(author_key, dump_record_list(author_records))

    ref = StoryRef(
        id=story.id,
        author_id=author_id,
        author_name=story.author_name,
        author_username=story.author_username,
        title=story.title,
        description=story.description,
        genre=story.genre,
        status=story.status,
        rating=story.rating,
        date_shared=now_iso(),
    )
    ref_records = await read_records(repo, STORY_REFS_KEY) or []
    ref_records = [record for record in ref_records if record.get("id") != story.id]
    ref_records.append(ref.to_dict())
    await repo.set_kv(STORY_REFS_KEY, dump_record_list(ref_records))

    logger.bind(node="share_story", story_id=story.id, user_id=author_id).info("Shared story")
    return ref


async def save_legacy_stories(repo: SQLAlchemyRepo, stories: Iterable[Story]) -> int:
    records = [story.to_dict() for story in stories]
    await repo.set_kv(LEGACY_STORIES_KEY, dump_record_list(records))
    return len(records)

"""Community story resolution, listing and filtering."""

from endless_novel.stories.models import Story, StoryFilter, StoryRef
from endless_novel.stories.service import (
    StoryNotFoundError,
    StoryResolver,
    filter_stories,
    list_stories,
    resolve_story,
)

__all__ = [
    "Story",
    "StoryFilter",
    "StoryNotFoundError",
    "StoryRef",
    "StoryResolver",
    "filter_stories",
    "list_stories",
    "resolve_story",
]

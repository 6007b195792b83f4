from __future__ import annotations

from endless_novel.config.schema import StoriesConfig
from endless_novel.stories.demo import demo_stories
from endless_novel.stories.models import Story, StoryFilter
from endless_novel.stories.service import filter_stories, story_url


def _ids(stories: list[Story]) -> list[str]:
    return [story.id for story in stories]


def _demo() -> list[Story]:
    return demo_stories(StoriesConfig())


def test_default_filter_keeps_everything() -> None:
    assert _ids(filter_stories(_demo(), StoryFilter())) == ["demo1", "demo2", "demo3"]


def test_status_and_query_combine() -> None:
    stories = filter_stories(_demo(), StoryFilter(status="Completed", query="kingdom"))

    assert _ids(stories) == ["demo1"]


def test_query_is_case_insensitive_across_fields() -> None:
    assert _ids(filter_stories(_demo(), StoryFilter(query="KINGDOM"))) == ["demo1"]
    assert _ids(filter_stories(_demo(), StoryFilter(query="alex"))) == ["demo2"]
    assert _ids(filter_stories(_demo(), StoryFilter(query="small town"))) == ["demo3"]
    assert _ids(filter_stories(_demo(), StoryFilter(query="cosmos"))) == ["demo2"]
    assert _ids(filter_stories(_demo(), StoryFilter(query="SciFi"))) == ["demo2"]


def test_rating_filter() -> None:
    assert _ids(filter_stories(_demo(), StoryFilter(rating="R"))) == ["demo3"]
    assert _ids(filter_stories(_demo(), StoryFilter(rating="XXX"))) == []


def test_blank_query_is_ignored() -> None:
    assert _ids(filter_stories(_demo(), StoryFilter(status="In Progress", query="   "))) == ["demo2"]


def test_story_url() -> None:
    assert story_url("demo1", StoriesConfig()) == "/story/read/demo1"

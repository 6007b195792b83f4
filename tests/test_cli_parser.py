from __future__ import annotations

from pathlib import Path

import pytest

from endless_novel.cli import _build_overrides, _build_parser


def test_stories_list_defaults_to_all_filters() -> None:
    parser = _build_parser()
    args = parser.parse_args(["stories", "list"])

    assert args.command == "stories"
    assert args.stories_command == "list"
    assert args.status == "All"
    assert args.rating == "All"
    assert args.query == ""


def test_stories_list_accepts_filters() -> None:
    parser = _build_parser()
    args = parser.parse_args(["stories", "list", "--status", "Completed", "--rating", "PG-13", "--query", "kingdom"])

    assert args.status == "Completed"
    assert args.rating == "PG-13"
    assert args.query == "kingdom"


def test_stories_list_rejects_unknown_rating() -> None:
    parser = _build_parser()

    with pytest.raises(SystemExit):
        parser.parse_args(["stories", "list", "--rating", "G"])


def test_stories_show_maps_id() -> None:
    parser = _build_parser()
    args = parser.parse_args(["stories", "show", "--id", "demo2"])

    assert args.story_id == "demo2"


def test_gems_buy_accepts_package_or_amount() -> None:
    parser = _build_parser()

    by_package = parser.parse_args(["gems", "buy", "--user-id", "u1", "--package", "2"])
    assert by_package.gems_command == "buy"
    assert by_package.package == 2
    assert by_package.amount is None

    by_amount = parser.parse_args(["gems", "buy", "--user-id", "u1", "--amount", "120"])
    assert by_amount.amount == 120
    assert by_amount.package is None


def test_gems_buy_requires_exactly_one_target() -> None:
    parser = _build_parser()

    with pytest.raises(SystemExit):
        parser.parse_args(["gems", "buy", "--user-id", "u1"])
    with pytest.raises(SystemExit):
        parser.parse_args(["gems", "buy", "--user-id", "u1", "--amount", "1", "--package", "1"])


def test_profile_edit_boolean_flags() -> None:
    parser = _build_parser()
    args = parser.parse_args(["profile", "edit", "--user-id", "u1", "--no-notification-emails", "--marketing-emails"])

    assert args.profile_command == "edit"
    assert args.notification_emails is False
    assert args.marketing_emails is True
    assert args.bio is None


def test_global_paths_build_overrides() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--data-dir", "/tmp/en", "--db-path", "/tmp/en/x.db", "gems", "packages"])

    overrides = _build_overrides(args)

    assert overrides["app"]["data_dir"] == str(Path("/tmp/en"))
    assert overrides["storage"]["sqlite_path"] == str(Path("/tmp/en/x.db"))


def test_no_global_paths_build_no_overrides() -> None:
    parser = _build_parser()
    args = parser.parse_args(["gems", "price", "--amount", "100"])

    assert _build_overrides(args) == {}


def test_gems_subscribe_defaults_to_monthly() -> None:
    parser = _build_parser()
    args = parser.parse_args(["gems", "subscribe", "--user-id", "u1", "--tier", "hero"])

    assert args.gems_command == "subscribe"
    assert args.cycle == "monthly"

    with pytest.raises(SystemExit):
        parser.parse_args(["gems", "subscribe", "--user-id", "u1", "--tier", "hero", "--cycle", "weekly"])

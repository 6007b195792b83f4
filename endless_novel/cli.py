from __future__ import annotations

import argparse
import asyncio
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.pretty import Pretty
from rich.table import Table
from loguru import logger

from endless_novel.config import load_config
from endless_novel.config.loader import masked_env_snapshot
from endless_novel.config.schema import AppConfigRoot
from endless_novel.contact.service import ContactForm, ContactSendError, ContactValidationError, send_contact_message
from endless_novel.gems.pricing import (
    UnknownPackageError,
    compute_total,
    format_price,
    load_packages,
    payment_url,
    price_per_gem_label,
)
from endless_novel.gems.service import (
    InsufficientGemsError,
    InvalidGemAmountError,
    PurchaseFailedError,
    gem_history,
    open_purchase_session,
    spend_gems,
)
from endless_novel.gems.subscriptions import (
    BILLING_CYCLES,
    InvalidSubscriptionError,
    allocate_subscription_gems,
    get_subscription,
    load_subscription_tiers,
    subscribe,
)
from endless_novel.storage.db import init_db_service, session_scope, shutdown_db_service
from endless_novel.storage.repo import SQLAlchemyRepo
from endless_novel.stories.models import FILTER_ALL, RATINGS, STATUSES, Story, StoryFilter
from endless_novel.stories.normalize import cover_image_for_genre, now_iso
from endless_novel.stories.service import StoryNotFoundError, list_stories, resolve_story, share_story, story_url
from endless_novel.users.service import (
    ProfileForm,
    ProfileValidationError,
    UserNotFoundError,
    create_user,
    display_bio,
    get_user,
    update_profile,
)
from endless_novel.utils.logging import setup_logging

console = Console()

_USER_ERRORS = (
    StoryNotFoundError,
    UserNotFoundError,
    ProfileValidationError,
    PurchaseFailedError,
    InsufficientGemsError,
    InvalidGemAmountError,
    InvalidSubscriptionError,
    UnknownPackageError,
    ContactValidationError,
    ContactSendError,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="endless-novel")
    parser.add_argument("--config", type=Path, default=None, help="Path to custom config YAML")
    parser.add_argument("--profile", type=str, default=None, help="Config profile name")
    parser.add_argument("--data-dir", type=Path, default=None, help="Override data directory")
    parser.add_argument("--db-path", type=Path, default=None, help="Override SQLite database path")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("config", help="Validate and print effective config")

    user_parser = subparsers.add_parser("init-user", help="Create a user with the sign-up gem bonus")
    user_parser.add_argument("--name", type=str, required=True, help="Display name")
    user_parser.add_argument("--email", type=str, required=True, help="Email address")
    user_parser.add_argument("--username", type=str, required=True, help="Unique username")

    stories_parser = subparsers.add_parser("stories", help="Browse and share community stories")
    stories_sub = stories_parser.add_subparsers(dest="stories_command", required=True)

    list_parser = stories_sub.add_parser("list", help="List community stories")
    list_parser.add_argument("--status", choices=[FILTER_ALL, *STATUSES], default=FILTER_ALL, help="Status filter")
    list_parser.add_argument("--rating", choices=[FILTER_ALL, *RATINGS], default=FILTER_ALL, help="Rating filter")
    list_parser.add_argument("--query", type=str, default="", help="Search title, author, description, genre")

    show_parser = stories_sub.add_parser("show", help="Read one story")
    show_parser.add_argument("--id", dest="story_id", type=str, required=True, help="Story id")

    share_parser = stories_sub.add_parser("share", help="Share a story with the community")
    share_parser.add_argument("--user-id", type=str, required=True, help="Author user id")
    share_parser.add_argument("--title", type=str, required=True, help="Story title")
    share_parser.add_argument("--genre", type=str, default="fantasy", help="Story genre")
    share_parser.add_argument("--description", type=str, default="", help="Short description")
    share_parser.add_argument("--content-file", type=Path, default=None, help="Text file with the story body")
    share_parser.add_argument("--status", choices=list(STATUSES), default=STATUSES[1], help="Story status")
    share_parser.add_argument("--rating", choices=list(RATINGS), default=RATINGS[0], help="Story rating")

    gems_parser = subparsers.add_parser("gems", help="Gem pricing, purchases and history")
    gems_sub = gems_parser.add_subparsers(dest="gems_command", required=True)

    price_parser = gems_sub.add_parser("price", help="Quote a custom gem amount")
    price_parser.add_argument("--amount", type=int, required=True, help="Number of gems")

    gems_sub.add_parser("packages", help="List fixed gem packages")

    buy_parser = gems_sub.add_parser("buy", help="Buy gems (simulated payment)")
    buy_parser.add_argument("--user-id", type=str, required=True, help="Buyer user id")
    buy_target = buy_parser.add_mutually_exclusive_group(required=True)
    buy_target.add_argument("--amount", type=int, default=None, help="Custom gem amount")
    buy_target.add_argument("--package", type=int, default=None, help="Package id")

    spend_parser = gems_sub.add_parser("spend", help="Spend gems on content generation")
    spend_parser.add_argument("--user-id", type=str, required=True, help="User id")
    spend_parser.add_argument("--amount", type=int, required=True, help="Gems to spend")
    spend_parser.add_argument("--description", type=str, required=True, help="What the gems paid for")

    history_parser = gems_sub.add_parser("history", help="Show balance, purchases and usage")
    history_parser.add_argument("--user-id", type=str, required=True, help="User id")

    gems_sub.add_parser("tiers", help="List Battle Pass subscription tiers")

    subscribe_parser = gems_sub.add_parser("subscribe", help="Subscribe to a Battle Pass tier (simulated payment)")
    subscribe_parser.add_argument("--user-id", type=str, required=True, help="Subscriber user id")
    subscribe_parser.add_argument("--tier", type=str, required=True, help="Tier id, e.g. adventurer")
    subscribe_parser.add_argument("--cycle", choices=list(BILLING_CYCLES), default=BILLING_CYCLES[0], help="Billing cycle")

    renew_parser = gems_sub.add_parser("renew", help="Allocate the next period of Battle Pass gems")
    renew_parser.add_argument("--user-id", type=str, required=True, help="Subscriber user id")

    profile_parser = subparsers.add_parser("profile", help="Show or edit a user profile")
    profile_sub = profile_parser.add_subparsers(dest="profile_command", required=True)

    profile_show = profile_sub.add_parser("show", help="Show a profile")
    profile_show.add_argument("--user-id", type=str, required=True, help="User id")

    profile_edit = profile_sub.add_parser("edit", help="Edit a profile")
    profile_edit.add_argument("--user-id", type=str, required=True, help="User id")
    profile_edit.add_argument("--name", type=str, default=None, help="Display name")
    profile_edit.add_argument("--username", type=str, default=None, help="Username")
    profile_edit.add_argument("--email", type=str, default=None, help="Email address")
    profile_edit.add_argument("--bio", type=str, default=None, help="Short biography")
    profile_edit.add_argument("--visibility", choices=["public", "friends", "private"], default=None)
    profile_edit.add_argument(
        "--notification-emails",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Receive notification emails",
    )
    profile_edit.add_argument(
        "--marketing-emails",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Receive marketing emails",
    )

    contact_parser = subparsers.add_parser("contact", help="Send a message through the contact form")
    contact_parser.add_argument("--name", type=str, required=True, help="Your name")
    contact_parser.add_argument("--email", type=str, required=True, help="Your email")
    contact_parser.add_argument("--subject", type=str, required=True, help="Subject")
    contact_parser.add_argument("--message", type=str, required=True, help="Message body")

    return parser


def _build_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.data_dir:
        overrides["app"] = {"data_dir": str(args.data_dir)}
    if args.db_path:
        overrides["storage"] = {"sqlite_path": str(args.db_path)}
    return overrides


def _print_config(config: AppConfigRoot) -> None:
    env_snapshot = masked_env_snapshot(config)
    console.print(Panel(Pretty(config.model_dump(mode="json")), title="Effective Config"))
    console.print(Panel(Pretty(env_snapshot), title="Env Snapshot"))


def _stories_table(stories: list[Story], config: AppConfigRoot) -> Table:
    table = Table(title="Community Stories", show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Author")
    table.add_column("Genre")
    table.add_column("Status")
    table.add_column("Rating")
    table.add_column("Link")
    for story in stories:
        table.add_row(
            story.id,
            story.title,
            story.author_name,
            story.genre,
            story.status,
            story.rating,
            story_url(story.id, config.stories),
        )
    return table


def _print_story(story: Story) -> None:
    table = Table(show_header=False)
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("Author", f"{story.author_name} (@{story.author_username})")
    table.add_row("Shared", story.date_shared)
    table.add_row("Genre", story.genre)
    table.add_row("Status", story.status)
    table.add_row("Rating", story.rating)
    table.add_row("Cover", story.cover_image)
    table.add_row("Description", story.description or "No description available")
    console.print(table)

    paragraphs = story.paragraphs()
    body = "\n\n".join(paragraphs) if paragraphs else "No content available for this story."
    console.print(Panel(body, title=story.title))


async def _share_from_args(args: argparse.Namespace, config: AppConfigRoot) -> None:
    author = await get_user(args.user_id)
    content = args.content_file.read_text(encoding="utf-8") if args.content_file else None
    story = Story(
        id=uuid.uuid4().hex,
        title=args.title,
        author_name=author.name,
        author_username=author.username,
        date_shared=now_iso(),
        description=args.description,
        genre=args.genre,
        cover_image=cover_image_for_genre(args.genre, config.stories),
        status=args.status,
        rating=args.rating,
        content=content,
    )
    async with session_scope() as session:
        ref = await share_story(SQLAlchemyRepo(session), story, author_id=author.id)
    console.print(Panel(f"Shared {ref.title!r} as {ref.id}\n{story_url(ref.id, config.stories)}", title="Shared"))


async def _run_stories(args: argparse.Namespace, config: AppConfigRoot) -> None:
    if args.stories_command == "list":
        story_filter = StoryFilter(status=args.status, rating=args.rating, query=args.query)
        stories = await list_stories(config, story_filter)
        if not stories:
            console.print(Panel("No stories match the current filters.", title="Community Stories"))
            return
        console.print(_stories_table(stories, config))
        return

    if args.stories_command == "show":
        _print_story(await resolve_story(args.story_id, config))
        return

    if args.stories_command == "share":
        await _share_from_args(args, config)
        return


async def _run_gems(args: argparse.Namespace, config: AppConfigRoot) -> None:
    tiers = config.gems.pricing_tiers

    if args.gems_command == "price":
        table = Table(title="Custom Gems Quote", show_header=True, header_style="bold")
        table.add_column("Metric")
        table.add_column("Value")
        table.add_row("Gems", str(max(0, args.amount)))
        table.add_row("Current rate", f"{price_per_gem_label(args.amount, tiers)} per gem")
        table.add_row("Total price", format_price(compute_total(args.amount, tiers)))
        console.print(table)
        return

    if args.gems_command == "packages":
        table = Table(title="Gem Packages", show_header=True, header_style="bold")
        table.add_column("ID")
        table.add_column("Title")
        table.add_column("Gems")
        table.add_column("Price")
        table.add_column("Description")
        table.add_column("Checkout")
        for package in load_packages(config.gems):
            table.add_row(
                str(package.id),
                package.title,
                str(package.amount),
                format_price(package.price),
                package.description,
                payment_url(package, config.gems.payment_url),
            )
        console.print(table)
        return

    if args.gems_command == "buy":
        session = open_purchase_session(args.user_id, config)
        with console.status("Processing..."):
            if args.package is not None:
                result = await session.buy_package(args.package)
            else:
                result = await session.purchase(args.amount)
        console.print(
            Panel(
                f"Added {result.amount} gems ({result.description}) for {format_price(result.price)}.\n"
                f"New balance: {result.new_balance} gems",
                title="Purchase Successful",
            )
        )
        return

    if args.gems_command == "spend":
        balance = await spend_gems(args.user_id, args.amount, args.description)
        console.print(Panel(f"Spent {args.amount} gems. Balance: {balance} gems", title="Gems Spent"))
        return

    if args.gems_command == "tiers":
        table = Table(title="Battle Pass", show_header=True, header_style="bold")
        for column in ("ID", "Tier", "Monthly", "Yearly", "Yearly saving", "Gems / month"):
            table.add_column(column)
        for tier in load_subscription_tiers(config.gems):
            table.add_row(
                tier.id,
                tier.title,
                format_price(tier.monthly_price),
                format_price(tier.yearly_price),
                f"{tier.yearly_savings_percent()}%",
                str(tier.monthly_gems),
            )
        console.print(table)
        return

    if args.gems_command == "subscribe":
        with console.status("Processing..."):
            result = await subscribe(args.user_id, args.tier, args.cycle, config)
        console.print(
            Panel(
                f"{result.tier} ({result.billing_cycle}) for {format_price(result.price)}: "
                f"+{result.gems_added} gems.\n"
                f"New balance: {result.new_balance} gems\n"
                f"Next billing: {_format_date(result.next_billing_date)}",
                title="Subscription Active",
            )
        )
        return

    if args.gems_command == "renew":
        if not await allocate_subscription_gems(args.user_id, config):
            raise InvalidSubscriptionError(f"No active Battle Pass for user {args.user_id}")
        subscription = await get_subscription(args.user_id)
        next_billing = _format_date(subscription.next_billing_date if subscription else None)
        console.print(Panel(f"Battle Pass gems added. Next billing: {next_billing}", title="Battle Pass"))
        return

    if args.gems_command == "history":
        history = await gem_history(args.user_id)
        console.print(Panel(f"{history.balance} Gems", title="Current Balance"))
        subscription = await get_subscription(args.user_id)
        if subscription is not None:
            console.print(
                Panel(
                    f"{subscription.tier} ({subscription.billing_cycle}), "
                    f"next billing {_format_date(subscription.next_billing_date)}",
                    title="Battle Pass",
                )
            )

        purchases = Table(title="Purchase History", show_header=True, header_style="bold")
        for column in ("Date", "Description", "Gems", "Price", "Status", "Receipt"):
            purchases.add_column(column)
        for row in history.purchases:
            purchases.add_row(
                _format_date(row.created_at),
                row.description,
                f"+{row.amount}",
                format_price(row.price),
                row.status,
                "yes" if row.receipt else "-",
            )
        console.print(purchases)

        usage = Table(title="Usage History", show_header=True, header_style="bold")
        for column in ("Date", "Description", "Gems", "Status"):
            usage.add_column(column)
        for row in history.usage:
            usage.add_row(_format_date(row.created_at), row.description, f"-{row.amount}", row.status)
        console.print(usage)
        return


def _format_date(value: datetime | None) -> str:
    if value is None:
        return "Unknown date"
    return value.strftime("%b %d, %Y")


async def _run_profile(args: argparse.Namespace, config: AppConfigRoot) -> None:
    user = await get_user(args.user_id)

    if args.profile_command == "edit":
        form = ProfileForm.from_user(user)
        for attr, value in (
            ("display_name", args.name),
            ("username", args.username),
            ("email", args.email),
            ("bio", args.bio),
            ("profile_visibility", args.visibility),
            ("notification_emails", args.notification_emails),
            ("marketing_emails", args.marketing_emails),
        ):
            if value is not None:
                setattr(form, attr, value)
        user = await update_profile(user.id, form, config)
        console.print(Panel("Profile updated successfully!", title="Profile"))

    table = Table(title="Profile", show_header=False)
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("User ID", user.id)
    table.add_row("Name", user.name)
    table.add_row("Username", f"@{user.username}")
    table.add_row("Email", user.email)
    table.add_row("Bio", display_bio(user, config.profile))
    table.add_row("Gems", str(user.gems))
    table.add_row("Visibility", user.profile_visibility)
    table.add_row("Notification emails", "on" if user.notification_emails else "off")
    table.add_row("Marketing emails", "on" if user.marketing_emails else "off")
    table.add_row("Member since", _format_date(user.member_since))
    console.print(table)


async def _main_async(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    config = load_config(
        config_path=args.config,
        profile=args.profile,
        overrides=_build_overrides(args),
    )

    setup_logging(config.app.log_level)
    logger.info("Loaded configuration")

    if args.command == "config":
        _print_config(config)
        return 0

    if args.command == "contact":
        form = ContactForm(name=args.name, email=args.email, subject=args.subject, message=args.message)
        try:
            with console.status("Sending..."):
                await send_contact_message(form, config.contact)
        except (ContactValidationError, ContactSendError) as exc:
            console.print(Panel(str(exc), title="Contact"))
            return 1
        console.print(Panel("Thank you! Your message has been sent.", title="Contact"))
        return 0

    await init_db_service(config.storage.sqlite_path)

    try:
        if args.command == "init-user":
            user = await create_user(args.name, args.email, args.username, config)
            table = Table(title="User Created", show_header=True, header_style="bold")
            table.add_column("Metric")
            table.add_column("Value")
            table.add_row("User ID", user.id)
            table.add_row("Username", user.username)
            table.add_row("Gems", str(user.gems))
            console.print(table)
        elif args.command == "stories":
            await _run_stories(args, config)
        elif args.command == "gems":
            await _run_gems(args, config)
        elif args.command == "profile":
            await _run_profile(args, config)
    except _USER_ERRORS as exc:
        console.print(Panel(str(exc), title="Error", border_style="red"))
        return 1
    finally:
        await shutdown_db_service()
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(_main_async()))


if __name__ == "__main__":
    main()

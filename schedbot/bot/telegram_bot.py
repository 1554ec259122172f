"""
Stream Schedule Bot — Telegram Bot.

Chat front-end for the schedule engine: add, edit and delete stream
schedules, list an owner's schedules, and report which stream is next.

Only whitelisted users may change schedules; everyone may read them.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Coroutine

from telegram import Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CommandHandler,
    ContextTypes,
)

from schedbot.config import settings
from schedbot.core.commands import (
    parse_add_args,
    parse_delete_args,
    parse_edit_args,
    parse_show_args,
)
from schedbot.core.errors import StoreUnavailableError, SyncError, UserInputError
from schedbot.core.recurrence import describe_repeat

if TYPE_CHECKING:
    from schedbot.core.engine import ScheduleEngine
    from schedbot.data.models import NextOccurrence, ScheduleEntry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that silently ignores messages from unauthorized users."""

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        if user is None or user.id not in settings.ALLOWED_USER_IDS:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized schedule change attempt from user_id=%s", uid)
            return  # Silent ignore
        return await func(update, context)

    return wrapper


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_entry(sched_id: int, entry: ScheduleEntry) -> str:
    """One schedule as shown by /sched, e.g. ``[0: Title • Daily • 20:00 UTC]``."""
    return (
        f"[{sched_id}: {entry.title} • {describe_repeat(entry.repeat, entry.start)}"
        f" • {entry.start:%H:%M} UTC]"
    )


def format_countdown(seconds: int) -> str:
    seconds = max(seconds, 0)
    return f"{seconds // 3600:02d}:{seconds // 60 % 60:02d}:{seconds % 60:02d}"


def format_next(nxt: NextOccurrence | None) -> str:
    if nxt is None:
        return "No streams are scheduled."
    return (
        f"Next scheduled stream: [{nxt.owner} - {nxt.entry.title}]"
        f" in [{format_countdown(nxt.seconds_until)}]."
    )


def _sender_name(update: Update) -> str:
    user = update.effective_user
    if user is None:
        return ""
    return user.username or str(user.id)


def _chat_name(update: Update) -> str:
    chat = update.effective_chat
    if chat is not None and chat.username:
        return chat.username
    return _sender_name(update)


def _engine(context: ContextTypes.DEFAULT_TYPE) -> ScheduleEngine:
    return context.bot_data["engine"]


async def _reply(update: Update, action: Callable[[], Awaitable[str]]) -> None:
    """Run a command body and reply with its text or the error it raised."""
    try:
        text = await action()
    except UserInputError as exc:
        text = str(exc)
    except StoreUnavailableError as exc:
        logger.error("Schedule store unavailable: %s", exc)
        text = "The schedule store is unavailable right now. Please try again later."
    except SyncError as exc:
        logger.error("Schedule sync error: %s", exc)
        text = "Couldn't sync with the schedule store. Nothing was changed, please try again."
    await update.message.reply_text(text)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — welcome message."""
    await update.message.reply_text(
        "I keep track of stream schedules.\n"
        "Use /sched to see a schedule, /next to see what's on next.\n"
        "Type /help for the full command list."
    )


async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    await update.message.reply_text(
        "Available commands:\n"
        "/schedadd [#owner] [days] <HH:MM>[-HH:MM][TZ] [Title] — Add a schedule. "
        "[days] is a YYYY-MM-DD date, a list like mon,wed,fri, or daily/weekdays/weekends/weekly. "
        "[TZ] is an abbreviation like GMT written right after the time.\n"
        "/schedit [#owner] <id> [days] [HH:MM[-HH:MM][TZ]] [Title] — Edit a schedule, "
        "omitted fields don't change\n"
        "/scheddel [#owner] <id> — Delete a schedule\n"
        "/sched [#owner] — Show schedules\n"
        "/schedlist — Link to every known schedule\n"
        "/next — Which stream is on next"
    )


@authorized_only
async def cmd_schedadd(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /schedadd — add a schedule."""
    engine = _engine(context)

    async def action() -> str:
        args = parse_add_args(context.args or [], _sender_name(update))
        change = await engine.add(args.owner, args.time_spec, args.day_spec, args.title)
        return (
            f"Added schedule for {change.owner}'s [{change.title}] stream "
            f"#{change.sched_id}: {engine.link()}"
        )

    await _reply(update, action)


@authorized_only
async def cmd_schedit(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /schedit — edit a schedule."""
    engine = _engine(context)

    async def action() -> str:
        args = parse_edit_args(context.args or [], _sender_name(update))
        change = await engine.edit(
            args.owner, args.sched_id, args.day_spec, args.time_spec, args.title,
        )
        return (
            f"Updated {change.owner}'s [{change.title}] stream schedule "
            f"#{change.sched_id}: {engine.link()}"
        )

    await _reply(update, action)


@authorized_only
async def cmd_scheddel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /scheddel — delete a schedule."""
    engine = _engine(context)

    async def action() -> str:
        args = parse_delete_args(context.args or [], _sender_name(update))
        change = await engine.delete(args.owner, args.sched_id)
        return f"Deleted {change.owner}'s schedule #{change.sched_id}: {engine.link()}"

    await _reply(update, action)


async def cmd_sched(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /sched — show an owner's schedules."""
    engine = _engine(context)

    async def action() -> str:
        owner = parse_show_args(context.args or [], _chat_name(update))
        entries = await engine.show(owner)
        listing = " ".join(format_entry(i, entry) for i, entry in enumerate(entries))
        return f"{owner}'s schedules: {listing}"

    await _reply(update, action)


async def cmd_schedlist(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /schedlist — link to the amalgamated schedule page."""
    await update.message.reply_text(
        f"You can view all known schedules here: {_engine(context).link()}"
    )


async def cmd_next(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /next — the nearest upcoming stream."""
    engine = _engine(context)

    async def action() -> str:
        return format_next(await engine.next())

    await _reply(update, action)


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


async def _index_tick(context: ContextTypes.DEFAULT_TYPE) -> None:
    if _engine(context).tick():
        logger.info("Weekly schedule index rolled over")


def build_app(engine: ScheduleEngine | None = None) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        engine: Schedule engine to serve. Defaults to one over the document
                store selected by DOCUMENT_PROVIDER.
    """
    if engine is None:
        from schedbot.adapters.store_factory import create_document_store
        from schedbot.core.engine import ScheduleEngine

        engine = ScheduleEngine(create_document_store(), schedule_url=settings.SCHEDULE_URL)

    async def _on_startup(app: Application) -> None:
        await engine.start()

    async def _on_shutdown(app: Application) -> None:
        await engine.close()

    app = (
        ApplicationBuilder()
        .token(settings.TELEGRAM_BOT_TOKEN)
        .post_init(_on_startup)
        .post_shutdown(_on_shutdown)
        .build()
    )
    app.bot_data["engine"] = engine

    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("schedadd", cmd_schedadd))
    app.add_handler(CommandHandler("schedit", cmd_schedit))
    app.add_handler(CommandHandler("scheddel", cmd_scheddel))
    app.add_handler(CommandHandler("sched", cmd_sched))
    app.add_handler(CommandHandler("schedlist", cmd_schedlist))
    app.add_handler(CommandHandler("next", cmd_next))

    app.job_queue.run_repeating(
        _index_tick,
        interval=settings.INDEX_TICK_SECONDS,
        name="schedule_index_tick",
    )

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting stream schedule bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()

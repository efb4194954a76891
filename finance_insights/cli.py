"""CLI for the ``finance_insights`` package.

This module exposes callable command handlers (``cmd_snapshot``,
``cmd_summary``, ...) and a Typer-based console interface. Environment
variables (``DATABASE_URL``, provider keys, ``FINANCE_INSIGHTS_LOG_LEVEL``)
are loaded from a local ``.env`` using ``python-dotenv`` before any command
runs. Business logic lives in :mod:`finance_insights.api` and the core
modules; handlers only pick the data source and print JSON.

Every data command reads either a JSON file (``--input``, shaped
``{"accounts": [...], "transactions": [...]}``) or the database
(``--user-id`` with ``--database-url`` or ``DATABASE_URL``). ``chat`` and
``history`` keep per-user chat sessions in the same database.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Any, TypeVar

import typer
from db.client import session_scope
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from . import api, memory
from .assistant import answer, chat_turn, welcome
from .config import Settings
from .errors import FinanceInsightsError
from .evaluation import evaluate
from .logging_setup import configure_logging, get_logger
from .models import Account, ChatMessage, FinanceInput, Period, Timeframe, Transaction, as_utc

_logger = get_logger("finance_insights.cli")

T = TypeVar("T")


class UsageError(FinanceInsightsError):
    """Invalid combination of command-line options."""


# ---- Small module-level helpers used by CLI commands -------------------------


def _parse_now(value: str | None) -> datetime:
    if value is None:
        return datetime.now(UTC)
    try:
        return as_utc(datetime.fromisoformat(value))
    except ValueError as e:
        raise UsageError(f"--now must be an ISO 8601 timestamp, got {value!r}") from e


def _load_input(path: Path) -> tuple[list[Account], list[Transaction]]:
    parsed = FinanceInput.model_validate_json(path.read_text(encoding="utf-8"))
    return parsed.account_records(), parsed.transaction_records()


def _check_source(input_path: Path | None, user_id: str | None) -> None:
    if (input_path is None) == (user_id is None):
        raise UsageError("pass exactly one of --input or --user-id")


def _with_session(
    settings: Settings, database_url: str | None, fn: Callable[[Session], T]
) -> T:
    url = database_url or settings.require_database_url()
    with session_scope(database_url=url) as session:
        return fn(session)


def _emit(payload: BaseModel | Any) -> None:
    if isinstance(payload, BaseModel):
        print(payload.model_dump_json(by_alias=True, indent=2))
    else:
        print(json.dumps(payload, indent=2, ensure_ascii=False))


def _run(label: str, body: Callable[[], Any]) -> int:
    """Run ``body``, print its JSON result and map failures to exit code 1."""

    try:
        _emit(body())
    except FileNotFoundError as e:
        print(f"Error: File not found: {e.filename}", file=sys.stderr)
        return 1
    except ValidationError as e:
        print(f"Error: invalid input file: {e}", file=sys.stderr)
        return 1
    except FinanceInsightsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        _logger.exception("cli:%s failed", label)
        print(f"Error: {label} failed: {e}", file=sys.stderr)
        return 1
    return 0


# ---- Command handlers -------------------------------------------------------


def cmd_snapshot(
    *,
    period: Period,
    input_path: Path | None = None,
    user_id: str | None = None,
    database_url: str | None = None,
    now: str | None = None,
    settings: Settings | None = None,
) -> int:
    """Print the dashboard snapshot for ``period`` as JSON."""

    settings = settings or Settings()

    def body() -> Any:
        _check_source(input_path, user_id)
        at = _parse_now(now)
        if input_path is not None:
            accounts, transactions = _load_input(input_path)
            return api.snapshot_from_records(period, accounts, transactions, at)
        return _with_session(
            settings,
            database_url,
            lambda s: api.get_finance_snapshot(s, str(user_id), period, at),
        )

    return _run("snapshot", body)


def cmd_summary(
    *,
    timeframe: Timeframe,
    compare_to: Timeframe | None = None,
    input_path: Path | None = None,
    user_id: str | None = None,
    database_url: str | None = None,
    now: str | None = None,
    settings: Settings | None = None,
) -> int:
    """Print the spending summary for ``timeframe`` as JSON.

    With ``compare_to`` the output compares it against that timeframe.
    """

    settings = settings or Settings()

    def body() -> Any:
        _check_source(input_path, user_id)
        at = _parse_now(now)
        if input_path is not None:
            _accounts, transactions = _load_input(input_path)
            return api.summary_from_records(transactions, timeframe, at, compare_to=compare_to)
        return _with_session(
            settings,
            database_url,
            lambda s: api.get_spending_summary(
                s, str(user_id), timeframe, at, compare_to=compare_to
            ),
        )

    return _run("summary", body)


def cmd_evaluate(
    *,
    period: Period,
    timeframe: Timeframe,
    input_path: Path | None = None,
    user_id: str | None = None,
    database_url: str | None = None,
    now: str | None = None,
    settings: Settings | None = None,
) -> int:
    """Print the health evaluation of the ``period`` snapshot as JSON.

    The ``timeframe`` summary feeds the category-concentration signal.
    """

    settings = settings or Settings()

    def body() -> Any:
        _check_source(input_path, user_id)
        at = _parse_now(now)
        if input_path is not None:
            accounts, transactions = _load_input(input_path)
            snap = api.snapshot_from_records(period, accounts, transactions, at)
            summary = api.summary_from_records(transactions, timeframe, at)
            return evaluate(snap, summary)

        def _from_db(s: Session) -> Any:
            snap = api.get_finance_snapshot(s, str(user_id), period, at)
            return evaluate(snap, api.get_spending_summary(s, str(user_id), timeframe, at))

        return _with_session(settings, database_url, _from_db)

    return _run("evaluate", body)


def cmd_context(
    question: str,
    *,
    input_path: Path | None = None,
    user_id: str | None = None,
    database_url: str | None = None,
    now: str | None = None,
    settings: Settings | None = None,
) -> int:
    """Print the finance context the assistant would attach for ``question``."""

    settings = settings or Settings()

    def body() -> Any:
        _check_source(input_path, user_id)
        at = _parse_now(now)
        if input_path is not None:
            accounts, transactions = _load_input(input_path)
            return api.finance_context_from_records(accounts, transactions, question, at)
        return _with_session(
            settings,
            database_url,
            lambda s: api.build_finance_context(s, str(user_id), question, at),
        )

    return _run("context", body)


def cmd_chat(
    messages: Sequence[str],
    *,
    input_path: Path | None = None,
    user_id: str | None = None,
    session_id: str | None = None,
    database_url: str | None = None,
    now: str | None = None,
    settings: Settings | None = None,
) -> int:
    """Send a conversation to the configured provider and print the reply.

    ``messages`` alternate user/assistant, starting and ending with the user.
    Without ``--input`` or ``--user-id`` the assistant runs signed out. With
    ``--user-id`` the turn is stored in a chat session (``session_id`` when
    the user owns it, else a new one) whose id is printed as ``sessionId``.
    """

    settings = settings or Settings()
    convo = [
        ChatMessage(role="user" if i % 2 == 0 else "assistant", content=m)
        for i, m in enumerate(messages)
    ]

    def body() -> Any:
        if input_path is not None and user_id is not None:
            raise UsageError("pass at most one of --input or --user-id")
        if session_id is not None and user_id is None:
            raise UsageError("--session-id needs --user-id")
        at = _parse_now(now)
        if input_path is not None:
            accounts, transactions = _load_input(input_path)
            return {
                "role": "assistant",
                "content": answer(
                    convo,
                    settings,
                    now=at,
                    context_loader=lambda q: api.finance_context_from_records(
                        accounts, transactions, q, at
                    ),
                ),
            }
        if user_id is not None:

            def _stored(s: Session) -> dict[str, Any]:
                reply = chat_turn(s, user_id, convo, settings, session_id=session_id, now=at)
                out: dict[str, Any] = {"role": "assistant", "content": reply.content}
                if reply.session_id is not None:
                    out["sessionId"] = reply.session_id
                return out

            return _with_session(settings, database_url, _stored)
        return {"role": "assistant", "content": answer(convo, settings, now=at)}

    return _run("chat", body)


def cmd_welcome(*, signed_in: bool = False, settings: Settings | None = None) -> int:
    """Print the assistant's opening greeting."""

    settings = settings or Settings()
    return _run(
        "welcome",
        lambda: {"role": "assistant", "content": welcome(settings, signed_in=signed_in)},
    )


def cmd_history(
    *,
    user_id: str,
    session_id: str | None = None,
    limit: int = memory.HISTORY_DEFAULT_LIMIT,
    database_url: str | None = None,
    settings: Settings | None = None,
) -> int:
    """Open (or resume) a chat session and print its stored messages."""

    settings = settings or Settings()

    def _load(s: Session) -> dict[str, Any]:
        sid = memory.get_or_create_session(s, user_id, session_id)
        rows = memory.get_history(s, user_id, sid, limit=limit)
        return {
            "sessionId": sid,
            "messages": [{"role": m.role, "content": m.content} for m in rows],
        }

    return _run("history", lambda: _with_session(settings, database_url, _load))


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Build finance dashboard snapshots, spending summaries and health evaluations "
        "from a JSON file or the finance database. Loads .env before running."
    ),
)

INPUT_OPTION = typer.Option(
    "--input",
    help="JSON file with 'accounts' and 'transactions' arrays.",
    dir_okay=False,
    file_okay=True,
    exists=False,  # handler reports a friendly error
)
USER_ID_OPTION = typer.Option("--user-id", help="Read this user's data from the database.")
DATABASE_URL_OPTION = typer.Option(
    "--database-url", help="Override DATABASE_URL (falls back to env var)."
)
NOW_OPTION = typer.Option(
    "--now", help="Reference time as ISO 8601 (naive means UTC); defaults to now."
)
PERIOD_OPTION = typer.Option("--period", help="Dashboard period.")
TIMEFRAME_OPTION = typer.Option("--timeframe", help="Summary timeframe.")
COMPARE_TO_OPTION = typer.Option("--compare-to", help="Baseline timeframe to compare against.")
SESSION_ID_OPTION = typer.Option(
    "--session-id", help="Stored chat session to continue (needs --user-id)."
)


def _settings(ctx: typer.Context) -> Settings:
    obj = ctx.obj
    return obj if isinstance(obj, Settings) else Settings.from_env()


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code=code)


@app.command("snapshot")
def snapshot_cmd(
    ctx: typer.Context,
    period: Annotated[Period, PERIOD_OPTION] = Period.ONE_MONTH,
    input_path: Annotated[Path | None, INPUT_OPTION] = None,
    user_id: Annotated[str | None, USER_ID_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    now: Annotated[str | None, NOW_OPTION] = None,
) -> None:
    """Print the dashboard snapshot as JSON."""

    _exit(
        cmd_snapshot(
            period=period,
            input_path=input_path,
            user_id=user_id,
            database_url=database_url,
            now=now,
            settings=_settings(ctx),
        )
    )


@app.command("summary")
def summary_cmd(
    ctx: typer.Context,
    timeframe: Annotated[Timeframe, TIMEFRAME_OPTION] = Timeframe.PAST_30_DAYS,
    compare_to: Annotated[Timeframe | None, COMPARE_TO_OPTION] = None,
    input_path: Annotated[Path | None, INPUT_OPTION] = None,
    user_id: Annotated[str | None, USER_ID_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    now: Annotated[str | None, NOW_OPTION] = None,
) -> None:
    """Print income, spend, net and top categories as JSON."""

    _exit(
        cmd_summary(
            timeframe=timeframe,
            compare_to=compare_to,
            input_path=input_path,
            user_id=user_id,
            database_url=database_url,
            now=now,
            settings=_settings(ctx),
        )
    )


@app.command("evaluate")
def evaluate_cmd(
    ctx: typer.Context,
    period: Annotated[Period, PERIOD_OPTION] = Period.ONE_MONTH,
    timeframe: Annotated[Timeframe, TIMEFRAME_OPTION] = Timeframe.PAST_30_DAYS,
    input_path: Annotated[Path | None, INPUT_OPTION] = None,
    user_id: Annotated[str | None, USER_ID_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    now: Annotated[str | None, NOW_OPTION] = None,
) -> None:
    """Print the heuristic health evaluation as JSON."""

    _exit(
        cmd_evaluate(
            period=period,
            timeframe=timeframe,
            input_path=input_path,
            user_id=user_id,
            database_url=database_url,
            now=now,
            settings=_settings(ctx),
        )
    )


@app.command("context")
def context_cmd(
    ctx: typer.Context,
    question: Annotated[str, typer.Argument(help="Question used to infer period/timeframe.")],
    input_path: Annotated[Path | None, INPUT_OPTION] = None,
    user_id: Annotated[str | None, USER_ID_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    now: Annotated[str | None, NOW_OPTION] = None,
) -> None:
    """Print the finance context JSON the assistant would receive."""

    _exit(
        cmd_context(
            question,
            input_path=input_path,
            user_id=user_id,
            database_url=database_url,
            now=now,
            settings=_settings(ctx),
        )
    )


@app.command("chat")
def chat_cmd(
    ctx: typer.Context,
    messages: Annotated[
        list[str], typer.Argument(help="Conversation turns, user first, alternating.")
    ],
    input_path: Annotated[Path | None, INPUT_OPTION] = None,
    user_id: Annotated[str | None, USER_ID_OPTION] = None,
    session_id: Annotated[str | None, SESSION_ID_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    now: Annotated[str | None, NOW_OPTION] = None,
) -> None:
    """Ask the configured chat provider and print its reply."""

    _exit(
        cmd_chat(
            messages,
            input_path=input_path,
            user_id=user_id,
            session_id=session_id,
            database_url=database_url,
            now=now,
            settings=_settings(ctx),
        )
    )


@app.command("welcome")
def welcome_cmd(
    ctx: typer.Context,
    signed_in: Annotated[
        bool, typer.Option("--signed-in", help="Greet a signed-in user.")
    ] = False,
) -> None:
    """Print the assistant's opening greeting."""

    _exit(cmd_welcome(signed_in=signed_in, settings=_settings(ctx)))


@app.command("history")
def history_cmd(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Option("--user-id", help="Owner of the chat session.")],
    session_id: Annotated[str | None, SESSION_ID_OPTION] = None,
    limit: Annotated[
        int, typer.Option("--limit", help="Maximum messages to return (1-200).")
    ] = memory.HISTORY_DEFAULT_LIMIT,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Open or resume a chat session and print its stored messages."""

    _exit(
        cmd_history(
            user_id=user_id,
            session_id=session_id,
            limit=limit,
            database_url=database_url,
            settings=_settings(ctx),
        )
    )


@app.callback()
def _root(ctx: typer.Context) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables), builds :class:`Settings` once and
    configures package logging.
    """

    load_dotenv(override=False)
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    ctx.obj = settings


if __name__ == "__main__":  # pragma: no cover
    app()

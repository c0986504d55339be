"""Food log session coordinator.

Drives parse -> confirm -> reload against the spreadsheet store. A 401 during a
write or delete triggers exactly one token refresh followed by one retry; every
other failure is surfaced immediately. The status field doubles as the
single-operation guard, which callers are expected to respect.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from enum import StrEnum
from typing import Protocol
from uuid import uuid4

from macro_logger.domain.entries import DailySummary, LogEntry, MealGroup
from macro_logger.domain.errors import (
    AuthError,
    MacroLoggerError,
    RateLimitError,
    ValidationError,
)
from macro_logger.domain.parsing import ParseResult
from macro_logger.domain.tokens import RefreshedToken
from macro_logger.services.entry_time import (
    format_clock_24h,
    format_local_date,
    format_utc_offset,
    parse_entry_timestamp,
)
from macro_logger.services.grouping import group_entries
from macro_logger.services.session_settings import SessionSettings

logger = logging.getLogger(__name__)

REAUTHORIZE_MESSAGE = "Google authorization expired. Please re-authorize in Settings."
SHEETS_RATE_LIMIT_MESSAGE = "Rate limited by Google Sheets. Please wait and try again."
AI_RATE_LIMIT_MESSAGE = "Rate limited by the AI provider. Please wait and try again."
AI_AUTH_MESSAGE = "Invalid AI provider API key. Please check Settings."
MEAL_NOT_FOUND_MESSAGE = "That meal is no longer in today's log. Reload and try again."


class LogStore(Protocol):
    """Spreadsheet operations used by the food log."""

    async def ensure_log_sheet(self, log_id: str, token: str) -> None:
        """Create or migrate the log sheet."""

    async def read_all_entries(self, log_id: str, token: str) -> list[LogEntry]:
        """Return every logged entry."""

    async def write_entries(
        self, log_id: str, token: str, entries: list[LogEntry]
    ) -> None:
        """Append entries to the log."""

    async def delete_entries(
        self, log_id: str, token: str, sheet_rows: list[int]
    ) -> None:
        """Delete entries by their row position from the latest read."""


class FoodParser(Protocol):
    """AI capability turning free text into structured items."""

    async def parse(self, provider: str, api_key: str, text: str) -> ParseResult:
        """Parse text with the given provider."""


class TokenRefresher(Protocol):
    """Refresh-token exchange."""

    async def refresh(
        self, *, client_id: str, client_secret: str, refresh_token: str
    ) -> RefreshedToken:
        """Return a new access token."""


class Status(StrEnum):
    """Current operation of a food log session."""

    IDLE = "idle"
    PARSING = "parsing"
    WRITING = "writing"
    LOADING = "loading"
    DELETING = "deleting"
    REFINING = "refining"


@dataclass(frozen=True)
class OperationError:
    """User-facing failure of a write or delete."""

    message: str
    is_auth_error: bool = False


def _local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class FoodLogService:
    """Stateful coordinator for one user's food log session."""

    settings: SessionSettings
    parser: FoodParser
    store: LogStore
    token_refresher: TokenRefresher
    clock: Callable[[], datetime] = _local_now
    new_group_id: Callable[[], str] = field(default=lambda: str(uuid4()))
    local_tz: tzinfo | None = None

    status: Status = Status.IDLE
    parse_result: ParseResult | None = None
    raw_input: str = ""
    refinements: list[str] = field(default_factory=list)
    entries: list[LogEntry] = field(default_factory=list)
    summary: DailySummary | None = None
    last_ate_at: datetime | None = None
    error: str | None = None
    write_error: OperationError | None = None
    delete_error: OperationError | None = None
    refine_error: str | None = None

    @property
    def groups(self) -> list[MealGroup]:
        """Meal groups for today's entries, rebuilt on every access."""
        return group_entries(self.entries)

    async def parse(self, text: str) -> None:
        """Parse meal text into a pending result without persisting it."""
        self.error = None
        self.write_error = None
        self.refine_error = None
        self.parse_result = None
        self.refinements = []
        self.raw_input = text
        self.status = Status.PARSING
        try:
            if not text.strip():
                raise ValidationError("Describe what you ate first.")
            self.parse_result = await self._call_parser(text)
        except MacroLoggerError as exc:
            self.error = _parser_message(exc)
        finally:
            self.status = Status.IDLE

    async def refine(self, instruction: str) -> None:
        """Ask the parser to correct the pending result."""
        if self.parse_result is None:
            return
        self.refine_error = None
        self.status = Status.REFINING
        try:
            if not instruction.strip():
                raise ValidationError("Describe what should change.")
            prompt = build_refine_prompt(
                self.raw_input, self.parse_result, self.refinements, instruction
            )
            result = await self._call_parser(prompt)
        except MacroLoggerError as exc:
            self.refine_error = _parser_message(exc)
        else:
            self.parse_result = result
            self.refinements = [*self.refinements, instruction]
        finally:
            self.status = Status.IDLE

    async def confirm(self) -> None:
        """Write the pending result to the log, refreshing auth once on 401."""
        if self.parse_result is None:
            return
        self.status = Status.WRITING
        self.write_error = None
        entries = self._entries_for(self.parse_result)
        try:
            try:
                await self._write(self.settings.access_token, entries)
            except AuthError:
                if not self.settings.refresh_token:
                    raise
                logger.warning("Sheets write rejected with 401, refreshing token")
                try:
                    token = await self._refresh_access_token()
                    await self._write(token, entries)
                except MacroLoggerError as exc:
                    logger.warning("Write retry after refresh failed: %s", exc)
                    self.write_error = OperationError(REAUTHORIZE_MESSAGE, True)
                    return
        except AuthError:
            logger.warning("Sheets write rejected with 401 and no refresh token")
            self.write_error = OperationError(REAUTHORIZE_MESSAGE, True)
            return
        except RateLimitError:
            self.write_error = OperationError(SHEETS_RATE_LIMIT_MESSAGE)
            return
        except MacroLoggerError as exc:
            logger.warning("Sheets write failed: %s", exc)
            self.write_error = OperationError(exc.message)
            return
        finally:
            self.status = Status.IDLE

        self.parse_result = None
        self.raw_input = ""
        self.refinements = []
        self.write_error = None
        await self.load_todays_entries()

    async def retry(self) -> None:
        """Retry the last failed write."""
        await self.confirm()

    def dismiss(self) -> None:
        """Discard the pending result after an unrecoverable write error."""
        self._reset_pending()

    def cancel(self) -> None:
        """Discard the pending result before writing."""
        self._reset_pending()

    async def delete_group(self, group_id: str) -> None:
        """Delete every entry of a meal group listed in `groups`."""
        group = next((g for g in self.groups if g.group_id == group_id), None)
        if group is None:
            self.delete_error = OperationError(MEAL_NOT_FOUND_MESSAGE)
            return
        await self._delete_rows([entry.sheet_row for entry in group.items])

    async def delete_entry(self, sheet_row: int) -> None:
        """Delete a single entry by its row from the latest read."""
        await self._delete_rows([sheet_row])

    async def load_todays_entries(self) -> None:
        """Reload the log and recompute today's entries and summary."""
        if not self.settings.spreadsheet_id or not self.settings.access_token:
            return
        self.status = Status.LOADING
        self.error = None
        try:
            log_id = self.settings.spreadsheet_id
            token = self.settings.access_token
            await self.store.ensure_log_sheet(log_id, token)
            all_entries = await self.store.read_all_entries(log_id, token)
        except MacroLoggerError as exc:
            logger.warning("Loading entries failed: %s", exc)
            self.error = exc.message
            return
        finally:
            self.status = Status.IDLE

        now = self.clock()
        today = format_local_date(now, self.local_tz)
        timestamps = [parse_entry_timestamp(e, self.local_tz) for e in all_entries]

        known = [ts for ts in timestamps if ts is not None]
        self.last_ate_at = max(known) if known else None

        todays: list[tuple[int, datetime | None, LogEntry]] = []
        for index, (entry, timestamp) in enumerate(
            zip(all_entries, timestamps, strict=True)
        ):
            day = (
                format_local_date(timestamp, self.local_tz)
                if timestamp is not None
                else entry.date
            )
            if day == today:
                todays.append((index, timestamp, entry))
        todays.sort(key=_chronological_key)

        self.entries = [entry for _, _, entry in todays]
        self.summary = summarize(today, self.entries)

    async def _delete_rows(self, rows: list[int]) -> None:
        self.status = Status.DELETING
        self.delete_error = None
        log_id = self.settings.spreadsheet_id
        try:
            try:
                await self.store.delete_entries(
                    log_id, self.settings.access_token, rows
                )
            except AuthError:
                if not self.settings.refresh_token:
                    raise
                logger.warning("Sheets delete rejected with 401, refreshing token")
                try:
                    token = await self._refresh_access_token()
                    await self.store.delete_entries(log_id, token, rows)
                except MacroLoggerError as exc:
                    logger.warning("Delete retry after refresh failed: %s", exc)
                    self.delete_error = OperationError(REAUTHORIZE_MESSAGE, True)
                    return
        except AuthError:
            logger.warning("Sheets delete rejected with 401 and no refresh token")
            self.delete_error = OperationError(REAUTHORIZE_MESSAGE, True)
            return
        except RateLimitError:
            self.delete_error = OperationError(SHEETS_RATE_LIMIT_MESSAGE)
            return
        except MacroLoggerError as exc:
            logger.warning("Sheets delete failed: %s", exc)
            self.delete_error = OperationError(exc.message)
            return
        finally:
            self.status = Status.IDLE

        await self.load_todays_entries()

    async def _write(self, token: str, entries: list[LogEntry]) -> None:
        log_id = self.settings.spreadsheet_id
        await self.store.ensure_log_sheet(log_id, token)
        await self.store.write_entries(log_id, token, entries)

    async def _refresh_access_token(self) -> str:
        refreshed = await self.token_refresher.refresh(
            client_id=self.settings.google_client_id,
            client_secret=self.settings.google_client_secret,
            refresh_token=self.settings.refresh_token,
        )
        self.settings.update_access_token(refreshed.access_token, refreshed.expires_in)
        return refreshed.access_token

    async def _call_parser(self, text: str) -> ParseResult:
        provider = self.settings.active_provider
        api_key = self.settings.api_key_for_active_provider()
        if not provider or not api_key:
            raise ValidationError("No AI provider configured. Add one in Settings.")
        return await self.parser.parse(provider, api_key, text)

    def _entries_for(self, result: ParseResult) -> list[LogEntry]:
        now = self.clock()
        date = format_local_date(now, self.local_tz)
        time = format_clock_24h(now, self.local_tz)
        offset = format_utc_offset(now.astimezone(self.local_tz))
        group_id = self.new_group_id()
        return [
            LogEntry(
                date=date,
                time=time,
                description=item.description,
                calories=item.calories,
                protein_g=item.protein_g,
                carbs_g=item.carbs_g,
                fat_g=item.fat_g,
                raw_input=self.raw_input,
                group_id=group_id,
                meal_label=result.meal_label,
                utc_offset=offset,
            )
            for item in result.items
        ]

    def _reset_pending(self) -> None:
        self.parse_result = None
        self.raw_input = ""
        self.write_error = None
        self.refine_error = None
        self.refinements = []


def summarize(day: str, entries: list[LogEntry]) -> DailySummary:
    """Sum macros over the given entries."""
    return DailySummary(
        date=day,
        total_calories=sum(entry.calories for entry in entries),
        total_protein=sum(entry.protein_g for entry in entries),
        total_carbs=sum(entry.carbs_g for entry in entries),
        total_fat=sum(entry.fat_g for entry in entries),
        entry_count=len(entries),
    )


def build_refine_prompt(
    raw_input: str,
    current: ParseResult,
    previous: list[str],
    instruction: str,
) -> str:
    """Build a follow-up prompt asking the parser to correct its items."""
    lines = [f"Original input: {raw_input}", "", "Current parsed items:"]
    for item in current.items:
        lines.append(
            f"- {item.description}: {item.calories:g} cal, "
            f"{item.protein_g:g}g protein, {item.carbs_g:g}g carbs, "
            f"{item.fat_g:g}g fat"
        )
    if previous:
        lines.extend(["", "Previous corrections:"])
        lines.extend(f"{n}. {text}" for n, text in enumerate(previous, start=1))
    lines.extend(["", f"Correction: {instruction}"])
    lines.append("Return the full corrected list of items.")
    return "\n".join(lines)


def _chronological_key(
    row: tuple[int, datetime | None, LogEntry],
) -> tuple[int, float, int]:
    index, timestamp, _ = row
    if timestamp is None:
        return (1, 0.0, index)
    return (0, timestamp.timestamp(), index)


def _parser_message(exc: MacroLoggerError) -> str:
    if isinstance(exc, RateLimitError):
        return AI_RATE_LIMIT_MESSAGE
    if isinstance(exc, AuthError):
        return AI_AUTH_MESSAGE
    return exc.message

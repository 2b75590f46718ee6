"""Normalize-and-persist pipeline used by the bot and the dashboard."""

from dataclasses import dataclass, field
from datetime import date, datetime
from zoneinfo import ZoneInfo

from loguru import logger

from aturuang.db.repository import ExpenseRepository
from aturuang.errors import EmptyExtractionError, MalformedOutputError, NotFoundError
from aturuang.llm import normalizer
from aturuang.llm.gateway import ExpenseGateway
from aturuang.models.schemas import (
    Dashboard,
    ExpenseRecord,
    ExtractionResult,
    PeriodTotal,
    Summary,
)
from aturuang.services.aggregator import Period, period_window, summarize

PHOTO_SENTINEL = "[photo]"
DASHBOARD_RECENT = 20


@dataclass
class RecordedBatch:
    records: list[ExpenseRecord]
    today_total: int
    merchant: str | None = None
    receipt_total: int | None = None


@dataclass
class Report:
    period: Period
    start: date
    end: date
    records: list[ExpenseRecord] = field(default_factory=list)

    @property
    def summary(self) -> Summary:
        return summarize(self.records)


class ExpenseLedger:
    def __init__(
        self,
        repo: ExpenseRepository,
        gateway: ExpenseGateway,
        timezone: str = "Asia/Jakarta",
        batch_window: float = 2.0,
    ):
        self.repo = repo
        self.gateway = gateway
        self.tz = ZoneInfo(timezone)
        self.batch_window = batch_window

    def now(self) -> datetime:
        # Naive local time so stored timestamps compare without offsets.
        return datetime.now(self.tz).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()

    def record_text(self, owner_id: str, message: str) -> RecordedBatch:
        today = self.today()
        raw = self.gateway.extract_from_text(message, today)
        result = normalizer.normalize(raw, today)
        saved = self._persist(owner_id, message, result)
        return RecordedBatch(records=saved, today_total=self.total_for(owner_id, today))

    def record_photo(
        self, owner_id: str, image_bytes: bytes, caption: str | None = None
    ) -> RecordedBatch:
        today = self.today()
        raw = self.gateway.extract_from_image(image_bytes, caption, today)
        result = normalizer.normalize_receipt(raw, today)
        if result.merchant:
            for expense in result.records:
                if expense.place is None:
                    expense.place = result.merchant

        raw_message = f"{PHOTO_SENTINEL} {caption}" if caption else PHOTO_SENTINEL
        saved = self._persist(owner_id, raw_message, result)
        return RecordedBatch(
            records=saved,
            today_total=self.total_for(owner_id, today),
            merchant=result.merchant,
            receipt_total=result.receipt_total,
        )

    def _persist(
        self, owner_id: str, raw_message: str, result: ExtractionResult
    ) -> list[ExpenseRecord]:
        if result.error:
            raise MalformedOutputError(result.error)
        if not result.records:
            raise EmptyExtractionError("model returned no expenses")

        created_at = self.now()
        saved = []
        for expense in result.records:
            record = ExpenseRecord(
                owner_id=owner_id,
                raw_message=raw_message,
                created_at=created_at,
                **expense.model_dump(),
            )
            saved.append(self.repo.add(record))
        logger.info("Saved {} expense(s) for {}", len(saved), owner_id)
        return saved

    def total_for(self, owner_id: str, day: date) -> int:
        return sum(r.amount for r in self.repo.find_between(owner_id, day, day))

    def report(self, owner_id: str, period: Period) -> Report:
        start, end = period_window(period, self.today())
        records = self.repo.find_between(owner_id, start, end)
        return Report(period=period, start=start, end=end, records=records)

    def recent(self, owner_id: str, limit: int = 10) -> list[ExpenseRecord]:
        return self.repo.recent(owner_id, limit=limit)

    def last_batch(self, owner_id: str) -> list[ExpenseRecord]:
        """The most recent record followed by the rest of its batch."""
        latest = self.repo.latest(owner_id)
        if latest is None:
            return []
        batch = self.repo.find_batch(
            owner_id, latest.raw_message, latest.created_at, self.batch_window
        )
        return [latest] + [r for r in batch if r.id != latest.id]

    def delete(self, id: int) -> bool:
        deleted = self.repo.delete(id)
        if not deleted:
            logger.info("Expense #{} already gone", id)
        return deleted

    def delete_batch(self, anchor_id: int) -> int:
        anchor = self.repo.get(anchor_id)
        if anchor is None:
            raise NotFoundError(f"expense #{anchor_id}")
        removed = self.repo.delete_batch(
            anchor.owner_id, anchor.raw_message, anchor.created_at, self.batch_window
        )
        logger.info("Deleted batch of {} around expense #{}", removed, anchor_id)
        return removed

    def delete_records(self, ids: list[int]) -> int:
        """Delete the members of a batch remembered by id. Missing ids are skipped."""
        removed = self.repo.delete_many(ids)
        logger.info("Deleted {} of {} batch record(s)", removed, len(ids))
        return removed

    def dashboard(self, owner_id: str) -> Dashboard:
        totals = {}
        month = None
        for period in Period:
            report = self.report(owner_id, period)
            summary = report.summary
            totals[period] = PeriodTotal(total=summary.total, count=summary.count)
            if period is Period.MONTH:
                month = summary

        return Dashboard(
            today=totals[Period.TODAY],
            week=totals[Period.WEEK],
            month=totals[Period.MONTH],
            by_category=dict(month.categories_by_total()),
            by_mood=month.by_mood,
            recent=self.recent(owner_id, limit=DASHBOARD_RECENT),
        )

import json
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta

import pytest

from aturuang.db.repository import ExpenseRepository
from aturuang.errors import (
    EmptyExtractionError,
    MalformedOutputError,
    NotFoundError,
    TransportError,
)
from aturuang.models.schemas import ExpenseRecord
from aturuang.services.aggregator import Period
from aturuang.services.ledger import PHOTO_SENTINEL
from aturuang.vocab import Category

NOW = datetime(2024, 2, 8, 12, 0, 0)
TODAY = NOW.date()


def _reply(*expenses, **extra):
    return json.dumps({"expenses": list(expenses), **extra})


def _stored(repo, amount, day, category="food", mood=None, created_at=NOW, raw="seed"):
    return repo.add(
        ExpenseRecord(
            owner_id="42",
            amount=amount,
            item=category,
            category=category,
            mood=mood,
            date=day,
            raw_message=raw,
            created_at=created_at,
        )
    )


def test_makan_20k_end_to_end(ledger, gateway, repo):
    gateway.reply = _reply(
        {
            "amount": 20000,
            "item": "makan",
            "category": "food",
            "place": None,
            "withPerson": None,
            "mood": None,
            "story": None,
            "date": "2024-02-08",
        }
    )

    batch = ledger.record_text("42", "makan 20k")

    assert gateway.calls == [("text", "makan 20k", date(2024, 2, 8))]
    assert len(batch.records) == 1
    rec = batch.records[0]
    assert (rec.amount, rec.item, rec.category) == (20000, "makan", Category.FOOD)
    assert (rec.place, rec.mood, rec.story) == (None, None, None)
    assert rec.date == date(2024, 2, 8)
    assert rec.raw_message == "makan 20k"
    assert rec.created_at == NOW
    assert batch.today_total == 20000
    assert repo.get(rec.id) == rec


def test_multi_expense_split_shares_one_batch(ledger, gateway):
    gateway.reply = _reply(
        {"amount": 50000, "item": "makan", "category": "food", "date": "2024-02-08"},
        {"amount": 25000, "item": "kopi", "category": "coffee", "date": "2024-02-08"},
        {"amount": 30000, "item": "grab", "category": "transport", "date": "2024-02-08"},
    )

    batch = ledger.record_text("42", "makan 50k, kopi 25k, grab 30k")

    assert [r.category for r in batch.records] == [
        Category.FOOD,
        Category.COFFEE,
        Category.TRANSPORT,
    ]
    assert [r.amount for r in batch.records] == [50000, 25000, 30000]
    assert batch.today_total == 105000
    assert len(ledger.last_batch("42")) == 3


def test_today_total_ignores_yesterday(ledger, gateway, repo):
    _stored(repo, 99000, TODAY - timedelta(days=1))
    gateway.reply = _reply(
        {"amount": 15000, "item": "kopi", "category": "coffee", "date": "2024-02-07"},
        {"amount": 5000, "item": "parkir", "category": "transport", "date": "2024-02-08"},
    )

    batch = ledger.record_text("42", "kemarin kopi 15k, parkir 5k")

    assert batch.today_total == 5000


def test_malformed_reply_raises_and_saves_nothing(ledger, gateway, repo):
    gateway.reply = "sorry, I can't help with that"

    with pytest.raises(MalformedOutputError):
        ledger.record_text("42", "halo")
    assert repo.recent("42") == []


def test_invalid_amount_raises_malformed(ledger, gateway, repo):
    gateway.reply = _reply(
        {"amount": 20000, "item": "makan", "category": "food", "date": "2024-02-08"},
        {"amount": 0, "item": "gratis", "category": "food", "date": "2024-02-08"},
    )

    with pytest.raises(MalformedOutputError):
        ledger.record_text("42", "makan 20k, es teh gratis")
    assert repo.recent("42") == []


def test_empty_extraction_raises(ledger, gateway):
    gateway.reply = _reply()

    with pytest.raises(EmptyExtractionError):
        ledger.record_text("42", "halo bot")


def test_gateway_errors_propagate(ledger, gateway):
    def fail(message, reference_date):
        raise TransportError("offline")

    gateway.extract_from_text = fail
    with pytest.raises(TransportError):
        ledger.record_text("42", "makan 20k")


def test_photo_fills_place_from_merchant(ledger, gateway):
    gateway.reply = json.dumps(
        {
            "merchant": "Indomaret",
            "total": 57500,
            "expenses": [
                {"amount": 42500, "item": "belanja", "category": "groceries", "date": "2024-02-08"},
                {"amount": 15000, "item": "ongkir", "category": "transport", "place": "GoSend", "date": "2024-02-08"},
            ],
        }
    )

    batch = ledger.record_photo("42", b"jpeg", caption="belanja mingguan")

    assert gateway.calls == [("image", "belanja mingguan", TODAY)]
    assert batch.merchant == "Indomaret"
    assert batch.receipt_total == 57500
    assert [r.place for r in batch.records] == ["Indomaret", "GoSend"]
    assert {r.raw_message for r in batch.records} == {f"{PHOTO_SENTINEL} belanja mingguan"}


def test_photo_without_caption_uses_sentinel(ledger, gateway):
    gateway.reply = _reply({"amount": 8000, "item": "roti", "category": "snack"})

    batch = ledger.record_photo("42", b"jpeg")

    assert batch.records[0].raw_message == PHOTO_SENTINEL
    assert batch.records[0].date == TODAY


def test_report_windows(ledger, repo):
    _stored(repo, 10000, TODAY)
    _stored(repo, 20000, date(2024, 2, 5), category="coffee")
    _stored(repo, 40000, date(2024, 2, 1), category="bills")
    _stored(repo, 80000, date(2024, 1, 31))

    assert ledger.report("42", Period.TODAY).summary.total == 10000
    assert ledger.report("42", Period.WEEK).summary.total == 30000
    month = ledger.report("42", Period.MONTH)
    assert (month.start, month.end) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month.summary.total == 70000


def test_last_batch_and_delete_batch(ledger, repo):
    older = _stored(repo, 5000, TODAY, raw="kopi 5k", created_at=NOW - timedelta(minutes=5))
    first = _stored(repo, 50000, TODAY, raw="makan 50k, kopi 25k", created_at=NOW)
    second = _stored(repo, 25000, TODAY, raw="makan 50k, kopi 25k", created_at=NOW)

    batch = ledger.last_batch("42")
    assert batch[0].id == second.id
    assert {r.id for r in batch} == {first.id, second.id}

    assert ledger.delete_batch(second.id) == 2
    assert [r.id for r in ledger.recent("42")] == [older.id]

    with pytest.raises(NotFoundError):
        ledger.delete_batch(second.id)


def test_batch_members_removed_after_anchor_is_gone(ledger, repo):
    ids = [_stored(repo, amount, TODAY, raw="makan, kopi, grab").id for amount in (50000, 25000, 30000)]

    assert ledger.delete(ids[0]) is True
    with pytest.raises(NotFoundError):
        ledger.delete_batch(ids[0])

    assert ledger.delete_records(ids) == 2
    assert ledger.delete_records(ids) == 0
    assert ledger.recent("42") == []


def test_last_batch_empty(ledger):
    assert ledger.last_batch("42") == []


def test_delete_twice(ledger, repo):
    rec = _stored(repo, 5000, TODAY)

    assert ledger.delete(rec.id) is True
    assert ledger.delete(rec.id) is False


def test_dashboard(ledger, repo):
    _stored(repo, 10000, TODAY, mood="happy")
    _stored(repo, 20000, date(2024, 2, 5), category="coffee", mood="happy")
    _stored(repo, 40000, date(2024, 2, 1), category="bills", mood="regret")
    _stored(repo, 80000, date(2024, 1, 31), mood="guilty")

    board = ledger.dashboard("42")

    assert (board.today.total, board.today.count) == (10000, 1)
    assert (board.week.total, board.week.count) == (30000, 2)
    assert (board.month.total, board.month.count) == (70000, 3)
    assert list(board.by_category) == ["bills", "coffee", "food"]
    assert board.by_mood == {"happy": 2, "regret": 1}
    assert len(board.recent) == 4


def test_concurrent_turns_keep_store_readable(ledger, gateway, tmp_path):
    gateway.reply = _reply(
        {"amount": 5000, "item": "parkir", "category": "transport", "date": "2024-02-08"}
    )
    owners = [str(n) for n in range(8)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        turns = [pool.submit(ledger.record_text, owner, "parkir 5k") for owner in owners * 10]
        for turn in turns:
            turn.result()

    reopened = ExpenseRepository(str(tmp_path / "ledger.json"))
    try:
        for owner in owners:
            assert len(reopened.recent(owner, limit=100)) == 10
    finally:
        reopened.db.close()

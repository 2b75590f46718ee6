from datetime import date

from telegram.helpers import escape_markdown

from aturuang.models.schemas import ExpenseRecord
from aturuang.services.aggregator import percentage
from aturuang.services.ledger import RecordedBatch, Report
from aturuang.vocab import category_emoji, mood_emoji

DAYS = ["Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu"]
MONTHS = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]


def format_rupiah(amount: int) -> str:
    """Format amount the Indonesian way: 'Rp1.500.000'."""
    return "Rp" + f"{amount:,}".replace(",", ".")


def format_day(day: date) -> str:
    """'Kamis, 8 Feb'."""
    return f"{DAYS[day.weekday()]}, {day.day} {MONTHS[day.month - 1][:3]}"


def format_month(day: date) -> str:
    return f"{MONTHS[day.month - 1]} {day.year}"


def format_saved(batch: RecordedBatch) -> str:
    lines = ["✅ Noted!\n"]
    if batch.merchant:
        lines.append(f"🧾 {escape_markdown(batch.merchant)}")
    for e in batch.records:
        mood = mood_emoji(e.mood)
        lines.append(
            f"{category_emoji(e.category)} {escape_markdown(e.item)} — *{format_rupiah(e.amount)}*"
            + (f" {mood}" if mood else "")
        )
        if e.place and e.place != batch.merchant:
            lines.append(f"   📍 {escape_markdown(e.place)}")
        if e.with_person:
            lines.append(f"   👥 {escape_markdown(e.with_person)}")
        if e.story:
            lines.append(f"   💭 {escape_markdown(e.story)}")

    if batch.receipt_total is not None:
        saved_total = sum(e.amount for e in batch.records)
        lines.append(f"\n🧾 Total struk: {format_rupiah(batch.receipt_total)}")
        if saved_total != batch.receipt_total:
            lines.append(f"   ⚠️ Yang kecatat: {format_rupiah(saved_total)}")

    lines.append(f"\n📊 Total hari ini: *{format_rupiah(batch.today_total)}*")
    return "\n".join(lines)


def format_today(report: Report) -> str:
    if not report.records:
        return "Belum ada pengeluaran hari ini ✨"

    lines = [f"📅 *{format_day(report.start)}*\n"]
    for e in report.records:
        lines.append(f"{category_emoji(e.category)} {escape_markdown(e.item)} — *{format_rupiah(e.amount)}*")
    lines.append(f"\n*Total: {format_rupiah(report.summary.total)}*")
    return "\n".join(lines)


def format_period(report: Report, title: str, with_share: bool = False) -> str:
    """Category breakdown for a week or month, biggest spend first."""
    if not report.records:
        return f"Belum ada pengeluaran {title.lower()} ✨"

    summary = report.summary
    lines = [
        f"📊 *{title}*\n",
        f"💰 *{format_rupiah(summary.total)}* dari {summary.count} transaksi\n",
    ]
    for category, data in summary.categories_by_total():
        line = f"{category_emoji(category)} {category} — {format_rupiah(data.total)}"
        if with_share:
            share = percentage(data.total, summary.total)
            if share is not None:
                line += f" ({share}%)"
        lines.append(line)
    return "\n".join(lines)


def format_recent(records: list[ExpenseRecord]) -> str:
    if not records:
        return "Belum ada transaksi."

    lines = ["📝 *Recent*\n"]
    for e in records:
        lines.append(f"{category_emoji(e.category)} {escape_markdown(e.item)} — *{format_rupiah(e.amount)}*")
        where = f" • {escape_markdown(e.place)}" if e.place else ""
        lines.append(f"└ {e.date.day}/{e.date.month}{where}\n")
    return "\n".join(lines)

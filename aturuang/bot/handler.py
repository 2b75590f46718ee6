import asyncio
import re

from loguru import logger
from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import BadRequest
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)
from telegram.helpers import escape_markdown

from aturuang.bot.formatting import (
    format_month,
    format_period,
    format_recent,
    format_rupiah,
    format_saved,
    format_today,
)
from aturuang.config import get_settings
from aturuang.errors import AliasTakenError, ExtractionError, NotFoundError
from aturuang.services.aggregator import Period
from aturuang.services.ledger import ExpenseLedger

MIN_PASSWORD_LENGTH = 4
ALIAS_PATTERN = re.compile(r"^[A-Za-z0-9_.]{3,32}$")
RECENT_LIMIT = 10

NOT_UNDERSTOOD = "Hmm gue ga nangkep 🤔\n\nCoba gini: _makan soto 20k_"
TRY_AGAIN = "Waduh, ada yang error 😵 Coba kirim ulang ya."
NOT_YOURS = "Itu bukan transaksi lo 🙅"
GONE = "Udah ga ada, mungkin udah dihapus duluan."


def _ledger(context: ContextTypes.DEFAULT_TYPE) -> ExpenseLedger:
    return context.application.bot_data["ledger"]


def _owner_id(update: Update) -> str | None:
    user = update.effective_user
    return str(user.id) if user else None


def _command_args(update: Update) -> str:
    parts = (update.message.text or "").split(maxsplit=1)
    return parts[1].strip() if len(parts) > 1 else ""


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /start and /help."""
    name = update.effective_user.first_name if update.effective_user else None
    await update.message.reply_text(
        f"Yo {escape_markdown(name or 'there')}! 👋\n\n"
        "Gue *AturUang* — SatuRuang buat atur keuangan lo.\n\n"
        "*Cara pakai:*\n"
        "Cerita aja kayak chat biasa:\n"
        "• _makan soto 20k_\n"
        "• _kopi 35k di starbucks sama temen_\n"
        "• _grab 45k kemarin, males jalan_\n"
        "Atau kirim foto struk 🧾\n\n"
        "*Commands:*\n"
        "/today • /week • /month\n"
        "/recent • /undo\n"
        "/setpassword • /setusername\n\n"
        "Gas! 💸",
        parse_mode="Markdown",
    )


async def setpassword_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    owner_id = _owner_id(update)
    if not owner_id:
        return

    password = _command_args(update)
    if len(password) < MIN_PASSWORD_LENGTH:
        await update.message.reply_text(
            "Format: `/setpassword <password>`\nMin 4 karakter.", parse_mode="Markdown"
        )
        return

    repo = _ledger(context).repo
    account = repo.upsert_account(owner_id, password, update.effective_user.first_name)
    logger.info("Password set for {}", owner_id)

    login_id = account.alias or account.tg_id
    await update.message.reply_text(
        f"✅ Password udah ke-set!\n\nBuka dashboard di:\n{get_settings().web_url}\n\n"
        f"Login pake ID: `{login_id}`",
        parse_mode="Markdown",
    )


async def setusername_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    owner_id = _owner_id(update)
    if not owner_id:
        return

    alias = _command_args(update)
    if not ALIAS_PATTERN.match(alias):
        await update.message.reply_text(
            "Format: `/setusername <username>`\n3-32 karakter: huruf, angka, `_` atau `.`",
            parse_mode="Markdown",
        )
        return

    try:
        account = _ledger(context).repo.set_alias(owner_id, alias)
    except AliasTakenError:
        await update.message.reply_text(f"Username `{alias}` udah dipake orang 😅", parse_mode="Markdown")
        return

    if account is None:
        await update.message.reply_text("Set password dulu pake /setpassword ya.")
        return

    logger.info("Alias {} set for {}", alias, owner_id)
    await update.message.reply_text(
        f"✅ Sekarang lo bisa login dashboard pake `{alias}`", parse_mode="Markdown"
    )


async def today_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    owner_id = _owner_id(update)
    if not owner_id:
        return
    report = _ledger(context).report(owner_id, Period.TODAY)
    await update.message.reply_text(format_today(report), parse_mode="Markdown")


async def week_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    owner_id = _owner_id(update)
    if not owner_id:
        return
    report = _ledger(context).report(owner_id, Period.WEEK)
    await update.message.reply_text(format_period(report, "Minggu Ini"), parse_mode="Markdown")


async def month_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    owner_id = _owner_id(update)
    if not owner_id:
        return
    report = _ledger(context).report(owner_id, Period.MONTH)
    if report.records:
        text = format_period(report, format_month(report.start), with_share=True)
    else:
        text = format_period(report, "Bulan Ini")
    await update.message.reply_text(text, parse_mode="Markdown")


async def recent_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    owner_id = _owner_id(update)
    if not owner_id:
        return
    records = _ledger(context).recent(owner_id, limit=RECENT_LIMIT)
    await update.message.reply_text(format_recent(records), parse_mode="Markdown")


async def undo_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Offer to delete the latest record, or the whole batch it came from."""
    owner_id = _owner_id(update)
    if not owner_id:
        return

    batch = _ledger(context).last_batch(owner_id)
    if not batch:
        await update.message.reply_text("Tidak ada transaksi.")
        return

    last = batch[0]
    buttons = [InlineKeyboardButton("🗑 Hapus", callback_data=f"del:{last.id}")]
    text = f"Hapus {escape_markdown(last.item)} — *{format_rupiah(last.amount)}*?"
    if len(batch) > 1:
        # Members are kept so the batch can still be removed once its anchor is gone.
        context.user_data["undo_batch"] = {"anchor": last.id, "ids": [r.id for r in batch]}
        buttons.append(
            InlineKeyboardButton(f"🗑 Hapus {len(batch)} item", callback_data=f"delbatch:{last.id}")
        )
        total = sum(r.amount for r in batch)
        text += f"\n\nAtau hapus semua {len(batch)} item dari pesan itu ({format_rupiah(total)})?"
    buttons.append(InlineKeyboardButton("✕ Batal", callback_data="cancel"))

    await update.message.reply_text(
        text, parse_mode="Markdown", reply_markup=InlineKeyboardMarkup([buttons])
    )


def _delete_batch(context: ContextTypes.DEFAULT_TYPE, anchor_id: int) -> int:
    ledger = _ledger(context)
    pending = context.user_data.pop("undo_batch", None)
    if pending and pending["anchor"] == anchor_id:
        return ledger.delete_records(pending["ids"])
    try:
        return ledger.delete_batch(anchor_id)
    except NotFoundError:
        return 0


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle the undo keyboard buttons."""
    query = update.callback_query
    await query.answer()
    ledger = _ledger(context)

    if query.data == "cancel":
        context.user_data.pop("undo_batch", None)
        await query.edit_message_text("Dibatalkan")
        return

    action, _, raw_id = (query.data or "").partition(":")
    if not raw_id.isdigit():
        logger.warning("Unknown callback data: {}", query.data)
        return

    expense_id = int(raw_id)
    owner_id = _owner_id(update)
    record = ledger.repo.get(expense_id)
    if record is not None and record.owner_id != owner_id:
        logger.warning("User {} tried to delete expense #{}", owner_id, expense_id)
        await query.edit_message_text(NOT_YOURS)
        return

    if action == "del":
        deleted = ledger.delete(expense_id)
        await query.edit_message_text("✅ Dihapus" if deleted else GONE)
    elif action == "delbatch":
        removed = _delete_batch(context, expense_id)
        await query.edit_message_text(f"✅ {removed} item dihapus" if removed else GONE)


async def _reply_recorded(update: Update, task, *args):
    try:
        batch = await asyncio.to_thread(task, *args)
    except ExtractionError as e:
        logger.warning("Could not extract expenses ({}): {}", type(e).__name__, e)
        await update.message.reply_text(NOT_UNDERSTOOD, parse_mode="Markdown")
        return
    except Exception as e:
        logger.exception("Failed to record expenses: {}", e)
        await update.message.reply_text(TRY_AGAIN)
        return

    text = format_saved(batch)
    try:
        await update.message.reply_text(text, parse_mode="Markdown")
    except BadRequest as e:
        logger.warning("Markdown reply rejected ({}), sending plain text", e)
        await update.message.reply_text(text)


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle free-text expense messages."""
    owner_id = _owner_id(update)
    message = (update.message.text or "").strip()
    if not owner_id or not message:
        return
    logger.info("Telegram message from {}: {}", owner_id, message)

    await update.message.chat.send_action("typing")
    await _reply_recorded(update, _ledger(context).record_text, owner_id, message)


async def handle_photo(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle receipt photos."""
    owner_id = _owner_id(update)
    if not owner_id:
        return
    caption = (update.message.caption or "").strip() or None
    logger.info("Telegram photo from {} (caption: {})", owner_id, caption)

    await update.message.chat.send_action("typing")
    photo = await update.message.photo[-1].get_file()
    image = bytes(await photo.download_as_bytearray())
    await _reply_recorded(update, _ledger(context).record_photo, owner_id, image, caption)


async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE):
    logger.error("Bot error: {}", context.error)


def build_bot_app(ledger: ExpenseLedger) -> Application:
    """Build and return the Telegram bot application."""
    app = Application.builder().token(get_settings().telegram_bot_token).build()
    app.bot_data["ledger"] = ledger

    app.add_handler(CommandHandler(["start", "help"], start_command))
    app.add_handler(CommandHandler("setpassword", setpassword_command))
    app.add_handler(CommandHandler("setusername", setusername_command))
    app.add_handler(CommandHandler("today", today_command))
    app.add_handler(CommandHandler("week", week_command))
    app.add_handler(CommandHandler("month", month_command))
    app.add_handler(CommandHandler("recent", recent_command))
    app.add_handler(CommandHandler("undo", undo_command))

    app.add_handler(CallbackQueryHandler(handle_callback))

    app.add_handler(MessageHandler(filters.UpdateType.MESSAGE & filters.PHOTO, handle_photo))
    app.add_handler(MessageHandler(filters.UpdateType.MESSAGE & filters.TEXT & ~filters.COMMAND, handle_message))
    app.add_error_handler(on_error)

    return app

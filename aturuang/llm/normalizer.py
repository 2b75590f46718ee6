"""Turn the model's raw reply into validated expenses.

The model is untrusted: its reply may wrap the JSON in prose or code fences,
drop fields, or invent categories. Everything goes through ``ParsedExpense``
and any bad element fails the whole extraction.
"""

import json
from datetime import date

from loguru import logger
from pydantic import ValidationError

from aturuang.models.schemas import (
    ExtractionResult,
    ParsedExpense,
    ReceiptExtractionResult,
)

NO_JSON = "no JSON in response"
NO_EXPENSES_ARRAY = "response has no expenses array"


def find_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` span in ``text``, or None."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _load_payload(raw_text: str) -> dict | None:
    span = find_json_object(raw_text or "")
    if span is None:
        return None
    try:
        payload = json.loads(span)
    except json.JSONDecodeError as e:
        logger.warning("Model JSON did not parse: {}", e)
        return None
    return payload if isinstance(payload, dict) else None


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    where = ".".join(str(p) for p in err.get("loc", ()))
    return f"{where}: {err['msg']}" if where else err["msg"]


def _validate_expenses(payload: dict, reference_date: date) -> ExtractionResult:
    expenses = payload.get("expenses")
    if not isinstance(expenses, list):
        return ExtractionResult(error=NO_EXPENSES_ARRAY)

    records = []
    for index, entry in enumerate(expenses):
        try:
            records.append(
                ParsedExpense.model_validate(entry, context={"today": reference_date})
            )
        except ValidationError as e:
            reason = f"expense {index}: {_first_error(e)}"
            logger.warning("Rejected model output, {}", reason)
            return ExtractionResult(error=reason)

    error = payload.get("error")
    if not records and isinstance(error, str) and error.strip():
        return ExtractionResult(error=error.strip())
    return ExtractionResult(records=records)


def normalize(raw_text: str, reference_date: date) -> ExtractionResult:
    payload = _load_payload(raw_text)
    if payload is None:
        return ExtractionResult(error=NO_JSON)
    return _validate_expenses(payload, reference_date)


def normalize_receipt(raw_text: str, reference_date: date) -> ReceiptExtractionResult:
    payload = _load_payload(raw_text)
    if payload is None:
        return ReceiptExtractionResult(error=NO_JSON)

    result = _validate_expenses(payload, reference_date)
    merchant = payload.get("merchant")
    if not isinstance(merchant, str) or not merchant.strip():
        merchant = None
    return ReceiptExtractionResult(
        records=result.records,
        error=result.error,
        merchant=merchant.strip() if merchant else None,
        receipt_total=_receipt_total(payload.get("total")),
    )


def _receipt_total(value) -> int | None:
    # A bad total never fails the receipt; it is only shown for comparison.
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        total = round(float(value))
    except (ValueError, OverflowError):
        return None
    return total if total > 0 else None

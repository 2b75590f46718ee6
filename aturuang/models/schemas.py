import datetime as dt
import math

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from aturuang.vocab import Category


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _optional_text(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ParsedExpense(_CamelModel):
    """One expense as read back from the model, before it is owned or stored.

    Validation needs ``context={"today": date}`` so an unusable date falls
    back to the reference day the prompt was built with.
    """

    amount: int
    item: str
    category: Category
    place: str | None = None
    with_person: str | None = None
    mood: str | None = None
    story: str | None = None
    date: dt.date = Field(default=None, validate_default=True)

    @field_validator("amount", mode="before")
    @classmethod
    def _positive_amount(cls, value):
        if isinstance(value, bool):
            raise ValueError("amount must be a number")
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                raise ValueError(f"amount is not numeric: {value!r}") from None
        if not isinstance(value, (int, float)):
            raise ValueError("amount must be a number")
        if not math.isfinite(value):
            raise ValueError("amount must be finite")
        amount = int(math.floor(value + 0.5))
        if amount <= 0:
            raise ValueError("amount must be positive")
        return amount

    @field_validator("item", mode="before")
    @classmethod
    def _non_empty_item(cls, value):
        text = _optional_text(value)
        if text is None:
            raise ValueError("item is required")
        return text

    @field_validator("category", mode="before")
    @classmethod
    def _closed_category(cls, value):
        if isinstance(value, Category):
            return value
        if not isinstance(value, str):
            raise ValueError("category must be text")
        return Category.coerce(value)

    @field_validator("place", "with_person", "mood", "story", mode="before")
    @classmethod
    def _blank_is_absent(cls, value):
        return _optional_text(value)

    @field_validator("date", mode="before")
    @classmethod
    def _calendar_date(cls, value, info: ValidationInfo):
        today = (info.context or {}).get("today") or dt.date.today()
        if isinstance(value, dt.datetime):
            return value.date()
        if isinstance(value, dt.date):
            return value
        if isinstance(value, str):
            try:
                return dt.date.fromisoformat(value.strip()[:10])
            except ValueError:
                return today
        return today


class ExtractionResult(BaseModel):
    records: list[ParsedExpense] = []
    error: str | None = None


class ReceiptExtractionResult(ExtractionResult):
    merchant: str | None = None
    receipt_total: int | None = None


class ExpenseRecord(_CamelModel):
    id: int | None = None
    owner_id: str
    amount: int = Field(gt=0)
    item: str
    category: Category
    place: str | None = None
    with_person: str | None = None
    mood: str | None = None
    story: str | None = None
    date: dt.date
    raw_message: str
    created_at: dt.datetime = Field(default_factory=dt.datetime.now)


class Account(_CamelModel):
    tg_id: str
    alias: str | None = None
    password: str
    name: str | None = None
    theme: str = "light"


class CreditBalance(BaseModel):
    total: float
    used: float
    remaining: float


class CategoryTotal(BaseModel):
    total: int = 0
    count: int = 0


class Summary(_CamelModel):
    total: int = 0
    count: int = 0
    by_category: dict[str, CategoryTotal] = {}
    by_mood: dict[str, int] = {}

    def categories_by_total(self) -> list[tuple[str, CategoryTotal]]:
        return sorted(self.by_category.items(), key=lambda kv: kv[1].total, reverse=True)


class PeriodTotal(BaseModel):
    total: int
    count: int


class Dashboard(_CamelModel):
    today: PeriodTotal
    week: PeriodTotal
    month: PeriodTotal
    by_category: dict[str, CategoryTotal]
    by_mood: dict[str, int]
    recent: list[ExpenseRecord]


class AuthRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    identifier: str = Field(alias="tgId")
    password: str


class ThemeRequest(BaseModel):
    theme: str

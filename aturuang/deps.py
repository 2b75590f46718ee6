from functools import lru_cache

from aturuang.config import get_settings
from aturuang.db.repository import ExpenseRepository
from aturuang.llm.gateway import ExpenseGateway
from aturuang.services.ledger import ExpenseLedger


@lru_cache
def get_repo() -> ExpenseRepository:
    return ExpenseRepository(get_settings().db_path)


@lru_cache
def get_gateway() -> ExpenseGateway:
    settings = get_settings()
    return ExpenseGateway(
        api_key=settings.openrouter_api_key,
        text_model=settings.text_model,
        vision_model=settings.vision_model,
        base_url=settings.openrouter_base_url,
    )


@lru_cache
def get_ledger() -> ExpenseLedger:
    settings = get_settings()
    return ExpenseLedger(
        get_repo(),
        get_gateway(),
        timezone=settings.timezone,
        batch_window=settings.batch_window_seconds,
    )

from datetime import datetime
from types import SimpleNamespace

import pytest

from aturuang.db.repository import ExpenseRepository
from aturuang.services.ledger import ExpenseLedger

NOW = datetime(2024, 2, 8, 12, 0, 0)


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAI:
    def __init__(self, content=None, error=None):
        self.chat = SimpleNamespace(completions=FakeCompletions(content, error))


class FakeGateway:
    """Stands in for ExpenseGateway, replaying canned model replies."""

    def __init__(self, reply: str = ""):
        self.reply = reply
        self.calls = []

    def extract_from_text(self, message, reference_date):
        self.calls.append(("text", message, reference_date))
        return self.reply

    def extract_from_image(self, image_bytes, caption=None, reference_date=None):
        self.calls.append(("image", caption, reference_date))
        return self.reply

    def get_credits(self):
        return None


@pytest.fixture
def fake_openai():
    return FakeOpenAI


@pytest.fixture
def repo(tmp_path):
    repo = ExpenseRepository(str(tmp_path / "ledger.json"))
    yield repo
    repo.db.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def ledger(repo, gateway):
    ledger = ExpenseLedger(repo, gateway)
    ledger.now = lambda: NOW
    return ledger

import threading
from datetime import date, datetime, timedelta
from functools import wraps

from tinydb import Query, TinyDB

from aturuang.errors import AliasTakenError
from aturuang.models.schemas import Account, ExpenseRecord


def _locked(method):
    # TinyDB is not thread-safe; bot turns and sync API routes run in worker threads.
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class ExpenseRepository:
    def __init__(self, db_path: str = "aturuang.json", **kwargs):
        self._lock = threading.RLock()
        self.db = TinyDB(db_path, **kwargs)
        self.expenses = self.db.table("expenses")
        self.accounts = self.db.table("accounts")

    # Expenses

    @_locked
    def add(self, record: ExpenseRecord) -> ExpenseRecord:
        data = record.model_dump(mode="json")
        data.pop("id", None)
        doc_id = self.expenses.insert(data)
        record.id = doc_id
        return record

    @_locked
    def get(self, id: int) -> ExpenseRecord | None:
        doc = self.expenses.get(doc_id=id)
        if doc is None:
            return None
        return ExpenseRecord(id=doc.doc_id, **doc)

    @_locked
    def delete(self, id: int) -> bool:
        """Remove one record. Deleting a missing id is not an error."""
        if not self.expenses.contains(doc_id=id):
            return False
        self.expenses.remove(doc_ids=[id])
        return True

    @_locked
    def delete_many(self, ids: list[int]) -> int:
        """Remove whichever of the given records still exist."""
        present = [id for id in ids if self.expenses.contains(doc_id=id)]
        if present:
            self.expenses.remove(doc_ids=present)
        return len(present)

    @_locked
    def find_batch(
        self, owner_id: str, raw_message: str, created_at: datetime, window: float = 2.0
    ) -> list[ExpenseRecord]:
        Ex = Query()
        lo = created_at - timedelta(seconds=window)
        hi = created_at + timedelta(seconds=window)
        docs = self.expenses.search(
            (Ex.owner_id == owner_id)
            & (Ex.raw_message == raw_message)
            & Ex.created_at.test(lambda val: lo <= datetime.fromisoformat(val) <= hi)
        )
        return self._records(docs)

    @_locked
    def delete_batch(
        self, owner_id: str, raw_message: str, created_at: datetime, window: float = 2.0
    ) -> int:
        batch = self.find_batch(owner_id, raw_message, created_at, window)
        if batch:
            self.expenses.remove(doc_ids=[r.id for r in batch])
        return len(batch)

    @_locked
    def find_between(self, owner_id: str, start: date, end: date) -> list[ExpenseRecord]:
        """Records whose spending date falls in [start, end], newest first."""
        Ex = Query()
        lo, hi = start.isoformat(), end.isoformat()
        docs = self.expenses.search(
            (Ex.owner_id == owner_id) & Ex.date.test(lambda val: lo <= val <= hi)
        )
        return self._newest_first(docs)

    @_locked
    def recent(self, owner_id: str, limit: int = 10) -> list[ExpenseRecord]:
        Ex = Query()
        docs = self.expenses.search(Ex.owner_id == owner_id)
        return self._newest_first(docs)[:limit]

    @_locked
    def latest(self, owner_id: str) -> ExpenseRecord | None:
        records = self.recent(owner_id, limit=1)
        return records[0] if records else None

    @staticmethod
    def _records(docs) -> list[ExpenseRecord]:
        return [ExpenseRecord(id=doc.doc_id, **doc) for doc in docs]

    def _newest_first(self, docs) -> list[ExpenseRecord]:
        records = self._records(docs)
        records.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        return records

    # Accounts

    @_locked
    def find_account(self, identifier: str) -> Account | None:
        """Look an account up by its platform id or its alias."""
        Acc = Query()
        doc = self.accounts.get(Acc.tg_id == identifier)
        if doc is None:
            doc = self.accounts.get(Acc.alias == identifier)
        if doc is None:
            return None
        return Account(**doc)

    @_locked
    def upsert_account(self, tg_id: str, password: str, name: str | None = None) -> Account:
        Acc = Query()
        doc = self.accounts.get(Acc.tg_id == tg_id)
        if doc is None:
            account = Account(tg_id=tg_id, password=password, name=name)
            self.accounts.insert(account.model_dump(mode="json"))
            return account

        self.accounts.update({"password": password, "name": name}, Acc.tg_id == tg_id)
        return self.find_account(tg_id)

    @_locked
    def set_alias(self, tg_id: str, alias: str) -> Account | None:
        Acc = Query()
        if self.accounts.get(Acc.tg_id == tg_id) is None:
            return None

        owner = self.accounts.get((Acc.alias == alias) | (Acc.tg_id == alias))
        if owner is not None and owner["tg_id"] != tg_id:
            raise AliasTakenError(alias)

        self.accounts.update({"alias": alias}, Acc.tg_id == tg_id)
        return self.find_account(tg_id)

    @_locked
    def set_theme(self, tg_id: str, theme: str) -> Account | None:
        Acc = Query()
        if not self.accounts.update({"theme": theme}, Acc.tg_id == tg_id):
            return None
        return self.find_account(tg_id)

    @_locked
    def authenticate(self, identifier: str, password: str) -> Account | None:
        account = self.find_account(identifier)
        if account is None or account.password != password:
            return None
        return account

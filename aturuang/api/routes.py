from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from loguru import logger

from aturuang.db.repository import ExpenseRepository
from aturuang.deps import get_gateway, get_ledger, get_repo
from aturuang.llm.gateway import ExpenseGateway
from aturuang.models.schemas import Account, AuthRequest, Dashboard, ThemeRequest
from aturuang.services.ledger import ExpenseLedger

router = APIRouter()
basic = HTTPBasic()


def current_account(
    credentials: HTTPBasicCredentials = Depends(basic),
    repo: ExpenseRepository = Depends(get_repo),
) -> Account:
    account = repo.authenticate(credentials.username, credentials.password)
    if account is None:
        raise HTTPException(
            status_code=401,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return account


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/api/auth")
def login(request: AuthRequest, repo: ExpenseRepository = Depends(get_repo)):
    account = repo.authenticate(request.identifier, request.password)
    if account is None:
        logger.info("Failed login for {}", request.identifier)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return {
        "success": True,
        "tgId": account.tg_id,
        "name": account.name,
        "theme": account.theme,
    }


@router.get("/api/data", response_model=Dashboard)
def dashboard_data(
    account: Account = Depends(current_account),
    ledger: ExpenseLedger = Depends(get_ledger),
):
    return ledger.dashboard(account.tg_id)


@router.post("/api/theme")
def update_theme(
    request: ThemeRequest,
    account: Account = Depends(current_account),
    repo: ExpenseRepository = Depends(get_repo),
):
    repo.set_theme(account.tg_id, request.theme)
    return {"success": True, "theme": request.theme}


@router.delete("/api/expenses/{expense_id}")
def delete_expense(
    expense_id: int,
    account: Account = Depends(current_account),
    ledger: ExpenseLedger = Depends(get_ledger),
):
    existing = ledger.repo.get(expense_id)
    if existing is not None and existing.owner_id != account.tg_id:
        raise HTTPException(status_code=404, detail="Expense not found")

    deleted = ledger.delete(expense_id)
    if deleted:
        logger.info("Deleted expense #{} from dashboard", expense_id)
    return {"success": True, "deleted": deleted}


@router.get("/api/credits")
def credits(
    account: Account = Depends(current_account),
    gateway: ExpenseGateway = Depends(get_gateway),
):
    balance = gateway.get_credits()
    if balance is None:
        return {"available": False}
    return {"available": True, **balance.model_dump()}

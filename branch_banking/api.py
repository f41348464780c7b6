"""
FastAPI REST API Module

HTTP surface over the branch ledger. Staff authenticate with HTTP Basic
credentials checked by Bank.login; each endpoint is gated on the caller's
role. Branches, staff and regional managers are created through the admin
endpoints, which require the configured admin key. Runs on port 8090.
"""

from datetime import date, datetime, timezone
from typing import Dict, List, Optional
import hmac

from fastapi import FastAPI, HTTPException, Depends, Header, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel, Field
import uvicorn

from .accounts import ProductType, require_ledger_currency
from .bank import Bank
from .branch import Branch
from .config import get_config
from .currency import Currency
from .customers import Customer
from .errors import BankingError, ErrorKind
from .staff import BankStaff, Manager, RegionalManager, Teller


# Pydantic models for API requests
class AmountRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")


class PersonRequest(BaseModel):
    name: str
    address: str
    date_of_birth: Optional[str] = None  # ISO date string


class CreateBranchRequest(BaseModel):
    name: str
    sort_code: str
    address: str


class CreateStaffRequest(PersonRequest):
    role: str = Field(..., description="Staff role (teller, manager)")
    login_id: str
    password: str


class CreateRegionalManagerRequest(PersonRequest):
    login_id: str
    password: str


class OversightRequest(BaseModel):
    sort_code: str


class OpenAccountRequest(BaseModel):
    product_type: str = Field(..., description="Product type (current, savings)")
    initial_balance: str = "0"
    overdraft_limit: str = "0"  # Current accounts only
    interest_rate: str = "0"    # Savings accounts only, as a fraction
    currency: Optional[str] = None


# HTTP status for each refusal kind; anything not listed is a business-rule refusal
ERROR_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.ACCOUNT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.BRANCH_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.STAFF_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CUSTOMER_NOT_REGISTERED: status.HTTP_404_NOT_FOUND,
    ErrorKind.BRANCH_NOT_IN_OVERSIGHT: status.HTTP_403_FORBIDDEN,
    ErrorKind.TELLER_UNASSIGNED: status.HTTP_403_FORBIDDEN,
    ErrorKind.MANAGER_UNASSIGNED: status.HTTP_403_FORBIDDEN,
    ErrorKind.AUTHENTICATION_FAILED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.OWNERSHIP_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.DEPENDENT_ENTITIES_EXIST: status.HTTP_409_CONFLICT,
}


def status_for(error: BankingError) -> int:
    return ERROR_STATUS.get(error.kind, status.HTTP_422_UNPROCESSABLE_ENTITY)


# Global bank instance
bank = Bank()


# Create FastAPI app
app = FastAPI(
    title="Branch Banking API",
    description="Retail branch account ledger: tellers, managers and regional rollups",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

security = HTTPBasic()


@app.exception_handler(BankingError)
async def banking_error_handler(request: Request, exc: BankingError):
    code = status_for(exc)
    headers = {"WWW-Authenticate": "Basic"} if code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=code, content=exc.to_dict(), headers=headers)


# Dependencies
def get_bank() -> Bank:
    return bank


def current_staff(
    credentials: HTTPBasicCredentials = Depends(security),
    system: Bank = Depends(get_bank)
) -> BankStaff:
    return system.login(credentials.username, credentials.password)


def current_teller(member: BankStaff = Depends(current_staff)) -> Teller:
    if not isinstance(member, Teller):
        raise HTTPException(status_code=403, detail="Teller role required")
    return member


def current_manager(member: BankStaff = Depends(current_staff)) -> Manager:
    if not isinstance(member, Manager):
        raise HTTPException(status_code=403, detail="Manager role required")
    return member


def current_regional_manager(member: BankStaff = Depends(current_staff)) -> RegionalManager:
    if not isinstance(member, RegionalManager):
        raise HTTPException(status_code=403, detail="Regional manager role required")
    return member


def require_admin(x_admin_key: Optional[str] = Header(None)) -> None:
    expected = get_config().admin_api_key
    if not expected:
        raise HTTPException(status_code=403, detail="Admin endpoints are disabled")
    if not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=403, detail="Invalid admin key")


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid date: {value}")


def _parse_currency(code: Optional[str]) -> Optional[Currency]:
    if not code:
        return None
    try:
        return Currency[code.upper()]
    except KeyError:
        raise HTTPException(status_code=422, detail=f"Unknown currency: {code}")


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


# Admin endpoints
@app.post("/branches", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def create_branch(
    request: CreateBranchRequest,
    system: Bank = Depends(get_bank)
):
    """Register a new branch"""
    try:
        branch = Branch(request.name, request.sort_code, request.address)
    except BankingError:
        raise
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    system.add_branch(branch)
    return branch.to_dict()


@app.post("/branches/{sort_code}/staff", status_code=status.HTTP_201_CREATED,
          dependencies=[Depends(require_admin)])
async def create_staff(
    sort_code: str,
    request: CreateStaffRequest,
    system: Bank = Depends(get_bank)
):
    """Hire a teller or manager at a branch; a new manager takes over the branch"""
    branch = system.get_branch(sort_code)
    roles = {"teller": Teller, "manager": Manager}
    if request.role not in roles:
        raise HTTPException(status_code=422, detail=f"Unknown staff role: {request.role}")

    try:
        member = roles[request.role](
            request.name, request.address, _parse_date(request.date_of_birth),
            request.login_id, request.password
        )
    except BankingError:
        raise
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    system.add_staff(branch, member)
    if isinstance(member, Manager):
        branch.set_manager(member)
    return {"login_id": member.login_id, "role": member.role, "branch": branch.sort_code}


@app.post("/regional-managers", status_code=status.HTTP_201_CREATED,
          dependencies=[Depends(require_admin)])
async def create_regional_manager(
    request: CreateRegionalManagerRequest,
    system: Bank = Depends(get_bank)
):
    """Register a regional manager with an empty oversight set"""
    try:
        manager = RegionalManager(
            request.name, request.address, _parse_date(request.date_of_birth),
            request.login_id, request.password
        )
    except BankingError:
        raise
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    system.add_regional_manager(manager)
    return {"login_id": manager.login_id, "role": manager.role, "branches": []}


@app.post("/regional-managers/{login_id}/branches", dependencies=[Depends(require_admin)])
async def add_oversight(
    login_id: str,
    request: OversightRequest,
    system: Bank = Depends(get_bank)
):
    """Put a branch under a regional manager's oversight"""
    manager = system.get_regional_manager(login_id)
    added = manager.add_branch(system.get_branch(request.sort_code))
    return {
        "login_id": manager.login_id,
        "added": added,
        "branches": [branch.sort_code for branch in manager.branches]
    }


# Teller endpoints
@app.post("/customers", status_code=status.HTTP_201_CREATED)
async def register_customer(
    request: PersonRequest,
    teller: Teller = Depends(current_teller)
):
    """Register a customer at the teller's branch"""
    try:
        customer = Customer(request.name, request.address, _parse_date(request.date_of_birth))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    teller.add_new_customer(customer)
    return customer.to_dict()


@app.post("/customers/{customer_id}/accounts", status_code=status.HTTP_201_CREATED)
async def open_account(
    customer_id: str,
    request: OpenAccountRequest,
    teller: Teller = Depends(current_teller),
    system: Bank = Depends(get_bank)
):
    """Open a current or savings account for a registered customer"""
    customer = teller.assigned_branch().find_customer(customer_id)
    currency = _parse_currency(request.currency)
    if currency is not None:
        require_ledger_currency(currency)

    try:
        product_type = ProductType(request.product_type)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown product type: {request.product_type}")

    if product_type == ProductType.CURRENT:
        account = system.open_current_account(
            request.initial_balance, request.overdraft_limit, currency=currency
        )
    else:
        try:
            account = system.open_savings_account(
                request.initial_balance, request.interest_rate, currency=currency
            )
        except BankingError:
            raise
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))

    teller.add_new_account(account, customer)
    return account.to_dict()


@app.post("/accounts/{account_number}/deposit")
async def deposit(
    account_number: int,
    request: AmountRequest,
    teller: Teller = Depends(current_teller)
):
    """Deposit into an account held at the teller's branch"""
    account = teller.assigned_branch().find_account(account_number)
    transaction = teller.deposit(request.amount, account)
    return {"transaction": transaction.to_dict(), "account": account.to_dict()}


@app.post("/accounts/{account_number}/withdraw")
async def withdraw(
    account_number: int,
    request: AmountRequest,
    teller: Teller = Depends(current_teller)
):
    """Withdraw from an account held at the teller's branch"""
    account = teller.assigned_branch().find_account(account_number)
    transaction = teller.withdraw(request.amount, account)
    return {"transaction": transaction.to_dict(), "account": account.to_dict()}


@app.post("/accounts/{account_number}/close")
async def close_account(
    account_number: int,
    teller: Teller = Depends(current_teller)
):
    account = teller.assigned_branch().find_account(account_number)
    outcome = teller.close_account(account)
    return {"outcome": outcome.value, "account": account.to_dict()}


# Manager endpoints
@app.post("/accounts/{account_number}/suspend")
async def suspend_account(
    account_number: int,
    manager: Manager = Depends(current_manager)
):
    account = manager.assigned_branch().find_account(account_number)
    outcome = manager.suspend_account(account)
    return {"outcome": outcome.value, "account": account.to_dict()}


@app.post("/accounts/{account_number}/unsuspend")
async def unsuspend_account(
    account_number: int,
    manager: Manager = Depends(current_manager)
):
    account = manager.assigned_branch().find_account(account_number)
    outcome = manager.unsuspend_account(account)
    return {"outcome": outcome.value, "account": account.to_dict()}


@app.get("/branch/report")
async def head_office_report(manager: Manager = Depends(current_manager)):
    """Branch statistics for head office"""
    return manager.generate_head_office_report().to_dict()


@app.post("/branch/year-end-reset")
async def year_end_reset(manager: Manager = Depends(current_manager)):
    """Reset withdrawal counts of every savings account at the manager's branch"""
    return {"accounts_reset": manager.reset_year_end_withdrawals()}


# Any staff
@app.get("/accounts/{account_number}")
async def get_account(
    account_number: int,
    member: BankStaff = Depends(current_staff),
    system: Bank = Depends(get_bank)
):
    """Get account details"""
    return system.find_account(account_number).to_dict()


@app.get("/accounts/{account_number}/transactions")
async def get_account_transactions(
    account_number: int,
    member: BankStaff = Depends(current_staff),
    system: Bank = Depends(get_bank)
):
    """Transaction history with running totals, oldest first"""
    account = system.find_account(account_number)
    log = account.transaction_log
    lines: List[dict] = log.statement_lines()
    return {
        "account_number": account.account_number,
        "transaction_count": log.transaction_count,
        "total_value": str(log.total_value.amount),
        "unlogged_amount": str(account.unlogged_amount.amount),
        "transactions": lines
    }


# Regional manager endpoints
@app.get("/regional/branches/{sort_code}/balance")
async def regional_branch_balance(
    sort_code: str,
    manager: RegionalManager = Depends(current_regional_manager),
    system: Bank = Depends(get_bank)
):
    """Total balance of one overseen branch"""
    balance = manager.get_total_branch_balance(system.get_branch(sort_code))
    return {
        "sort_code": sort_code,
        "total_balance": str(balance.amount),
        "currency": balance.currency.code
    }


@app.get("/regional/report")
async def regional_report(manager: RegionalManager = Depends(current_regional_manager)):
    return manager.generate_regional_report().to_dict()


# Run server function
def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the FastAPI server"""
    config = get_config()
    uvicorn.run(
        "branch_banking.api:app",
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level=config.log_level.lower()
    )

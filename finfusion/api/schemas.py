"""Pydantic schemas for serialising FinFusion data."""
from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

T = TypeVar("T")

Role = Literal["ADMIN", "MANAGER", "USER"]
AccountType = Literal["CHECKING", "SAVINGS", "CREDIT_CARD", "CASH", "INVESTMENT", "LOAN", "OTHER"]
CategoryType = Literal["INCOME", "EXPENSE"]
TransactionType = Literal["INCOME", "EXPENSE", "TRANSFER"]
Frequency = Literal["DAILY", "WEEKLY", "MONTHLY", "QUARTERLY", "YEARLY"]
BudgetPeriod = Literal["MONTHLY", "QUARTERLY", "YEARLY"]
LoanType = Literal["PERSONAL", "HOME", "CAR", "EDUCATION", "BUSINESS", "CREDIT_CARD", "OTHER"]
LoanStatus = Literal["ACTIVE", "PAID_OFF", "DEFAULTED", "REFINANCED", "PAUSED"]
NotificationType = Literal["SUCCESS", "ERROR", "WARNING", "INFO"]

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"
COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# -- envelopes ---------------------------------------------------------------


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T
    message: Optional[str] = None


class Page(BaseModel, Generic[T]):
    success: bool = True
    data: List[T]
    pagination: Pagination


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# -- users and auth ----------------------------------------------------------


class RegisterRequest(BaseModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    username: str = Field(..., min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    password: str = Field(..., min_length=6, max_length=72)
    name: str = Field(..., min_length=1, max_length=100)

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, value: str) -> str:
        return value.strip().lower()


class LoginRequest(BaseModel):
    identifier: str = Field(..., min_length=1, description="Email address or username")
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255, pattern=EMAIL_PATTERN)
    profile_picture: Optional[str] = Field(None, max_length=500)

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().lower() if value is not None else value


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=72)


class UserRead(ORMModel):
    id: str
    email: str
    username: str
    name: str
    profile_picture: Optional[str] = None
    role: Role
    is_active: bool
    created_at: dt.datetime
    updated_at: dt.datetime


class AuthTokens(BaseModel):
    user: UserRead
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AccessToken(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AdminUserCreate(RegisterRequest):
    role: Role = "USER"


class AdminUserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255, pattern=EMAIL_PATTERN)
    role: Optional[Role] = None
    is_active: Optional[bool] = None


class SystemStats(BaseModel):
    total_users: int
    active_users: int
    users_by_role: Dict[str, int]
    total_accounts: int
    total_transactions: int
    total_loans: int
    total_budgets: int


# -- accounts ----------------------------------------------------------------


class AccountBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType
    balance: Decimal = Field(Decimal("0"), ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)


class AccountCreate(AccountBase):
    pass


class AccountUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[AccountType] = None
    balance: Optional[Decimal] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    is_active: Optional[bool] = None


class AccountRead(AccountBase, ORMModel):
    id: str
    balance: Decimal
    is_active: bool
    created_at: dt.datetime
    updated_at: dt.datetime


class AccountBrief(ORMModel):
    id: str
    name: str
    type: AccountType


class BalanceAdjustment(BaseModel):
    amount: Decimal = Field(..., description="Signed amount added to the balance")


class AccountTypeTotal(BaseModel):
    count: int
    balance: Decimal


class AccountSummary(BaseModel):
    total_balance: Decimal
    total_accounts: int
    by_type: Dict[str, AccountTypeTotal]


# -- categories --------------------------------------------------------------


class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: CategoryType
    icon: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)
    description: Optional[str] = None
    is_essential: bool = False
    parent_category_id: Optional[str] = None


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    icon: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)
    description: Optional[str] = None
    is_essential: Optional[bool] = None
    parent_category_id: Optional[str] = None


class CategoryRead(CategoryBase, ORMModel):
    id: str
    user_id: Optional[str] = None
    is_system: bool
    created_at: dt.datetime


class CategoryTree(CategoryRead):
    sub_categories: List[CategoryRead] = []


class CategoryBrief(ORMModel):
    id: str
    name: str
    type: CategoryType
    icon: Optional[str] = None
    color: Optional[str] = None


class CategoryStats(BaseModel):
    total: int
    income: int
    expense: int
    custom: int
    system: int


# -- payment methods ---------------------------------------------------------


class PaymentMethodBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def _upper_code(cls, value: str) -> str:
        return value.strip().upper()


class PaymentMethodCreate(PaymentMethodBase):
    pass


class PaymentMethodUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("code")
    @classmethod
    def _upper_code(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value is not None else value


class PaymentMethodRead(PaymentMethodBase, ORMModel):
    id: str
    created_at: dt.datetime


class PaymentMethodBrief(ORMModel):
    id: str
    code: str
    name: str


# -- transactions ------------------------------------------------------------


class TransactionBase(BaseModel):
    amount: Decimal = Field(..., gt=0)
    type: TransactionType
    category_id: str
    account_id: Optional[str] = None
    to_account_id: Optional[str] = None
    payment_method_id: Optional[str] = None
    date: dt.date
    description: Optional[str] = Field(None, max_length=500)
    is_recurring: bool = False
    recurring_frequency: Optional[Frequency] = None
    recurring_end_date: Optional[dt.date] = None


class TransactionCreate(TransactionBase):
    is_opening_balance: bool = False

    @model_validator(mode="after")
    def _check_shape(self) -> "TransactionCreate":
        if self.type == "TRANSFER":
            if not self.account_id or not self.to_account_id:
                raise ValueError("Transfers require both account_id and to_account_id")
            if self.account_id == self.to_account_id:
                raise ValueError("Cannot transfer to the same account")
        if self.is_recurring and self.recurring_frequency is None:
            raise ValueError("Recurring transactions require recurring_frequency")
        return self


class TransactionUpdate(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0)
    type: Optional[TransactionType] = None
    category_id: Optional[str] = None
    account_id: Optional[str] = None
    to_account_id: Optional[str] = None
    payment_method_id: Optional[str] = None
    date: Optional[dt.date] = None
    description: Optional[str] = Field(None, max_length=500)
    is_recurring: Optional[bool] = None
    recurring_frequency: Optional[Frequency] = None
    recurring_end_date: Optional[dt.date] = None


class TransactionRead(TransactionBase, ORMModel):
    id: str
    is_opening_balance: bool
    created_at: dt.datetime
    category: Optional[CategoryBrief] = None
    account: Optional[AccountBrief] = None
    to_account: Optional[AccountBrief] = None
    payment_method: Optional[PaymentMethodBrief] = None


class TransactionImport(BaseModel):
    transactions: List[Dict[str, Any]] = Field(..., min_length=1)


class ImportRowError(BaseModel):
    row: int
    error: str


class ImportResult(BaseModel):
    imported: int
    errors: List[ImportRowError]
    total: int


class TransactionSummary(BaseModel):
    total_income: float
    total_expenses: float
    net_income: float
    income_count: int
    expense_count: int
    transaction_count: int


class TrendPoint(BaseModel):
    period: str
    income: float
    expenses: float
    net_income: float


class CategorySpending(BaseModel):
    category: CategoryBrief
    amount: float
    transaction_count: int
    percentage: float


class TransactionAnalytics(BaseModel):
    summary: TransactionSummary
    spending_by_category: List[CategorySpending]
    monthly_trends: List[TrendPoint]


# -- recurring transactions --------------------------------------------------


class RecurringCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    type: TransactionType
    category_id: str
    account_id: Optional[str] = None
    to_account_id: Optional[str] = None
    payment_method_id: Optional[str] = None
    date: dt.date
    description: Optional[str] = Field(None, max_length=500)
    recurring_frequency: Frequency
    recurring_end_date: Optional[dt.date] = None

    @model_validator(mode="after")
    def _check_dates(self) -> "RecurringCreate":
        if self.recurring_end_date is not None and self.recurring_end_date < self.date:
            raise ValueError("recurring_end_date must not be before date")
        return self


class RecurringRead(TransactionRead):
    next_due_date: Optional[dt.date] = None


class RecurringRunResult(BaseModel):
    date: dt.date
    processed: int
    skipped: int
    transaction_ids: List[str]


# -- budgets -----------------------------------------------------------------


class BudgetBase(BaseModel):
    category_id: str
    amount: Decimal = Field(..., gt=0)
    period_type: BudgetPeriod = "MONTHLY"
    start_date: dt.date
    end_date: dt.date
    alert_threshold: int = Field(80, ge=1, le=100)
    allow_rollover: bool = False


class BudgetCreate(BudgetBase):
    @model_validator(mode="after")
    def _check_dates(self) -> "BudgetCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class BudgetUpdate(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0)
    period_type: Optional[BudgetPeriod] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    alert_threshold: Optional[int] = Field(None, ge=1, le=100)
    allow_rollover: Optional[bool] = None


class BudgetRecord(BudgetBase, ORMModel):
    id: str
    created_at: dt.datetime
    category: Optional[CategoryBrief] = None


class BudgetRead(BudgetRecord):
    spent_amount: float
    remaining_amount: float
    utilization_percentage: float
    status: str


class BudgetUsage(BaseModel):
    budget_id: str
    category_id: str
    category_name: str
    allocated_amount: float
    spent_amount: float
    remaining_amount: float
    utilization_percentage: float
    status: str


class BudgetAnalytics(BaseModel):
    total_budgets: int
    total_allocated: float
    total_spent: float
    total_remaining: float
    overall_utilization: float
    status_counts: Dict[str, int]
    budgets: List[BudgetUsage]


class Period(BaseModel):
    start_date: dt.date
    end_date: dt.date
    group_by: Optional[str] = None


class BudgetPerformance(BudgetAnalytics):
    period: Period


class BudgetAlertRead(ORMModel):
    id: str
    budget_id: str
    threshold_percentage: int
    triggered_at: dt.datetime
    is_acknowledged: bool


class BudgetRecommendation(BaseModel):
    category_id: str
    category_name: str
    average_monthly_spending: float
    recommended_amount: int


# -- loans -------------------------------------------------------------------


class LoanCreate(BaseModel):
    account_id: str
    name: str = Field(..., min_length=1, max_length=100)
    type: LoanType = "PERSONAL"
    original_principal: Decimal = Field(..., gt=0)
    original_interest_rate: Decimal = Field(..., ge=0, le=100)
    original_term_months: int = Field(..., ge=1, le=600)
    original_start_date: dt.date
    current_balance: Optional[Decimal] = Field(None, ge=0)
    current_interest_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    remaining_term_months: Optional[int] = Field(None, ge=0, le=600)
    is_existing_loan: bool = False
    total_paid: Optional[Decimal] = Field(None, ge=0)
    total_interest_paid: Optional[Decimal] = Field(None, ge=0)
    last_payment_date: Optional[dt.date] = None
    next_payment_date: Optional[dt.date] = None


class LoanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    current_balance: Optional[Decimal] = Field(None, ge=0)
    current_interest_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    remaining_term_months: Optional[int] = Field(None, ge=0, le=600)
    status: Optional[LoanStatus] = None
    total_paid: Optional[Decimal] = Field(None, ge=0)
    total_interest_paid: Optional[Decimal] = Field(None, ge=0)
    last_payment_date: Optional[dt.date] = None
    next_payment_date: Optional[dt.date] = None


class LoanRead(ORMModel):
    id: str
    account_id: str
    name: str
    type: LoanType
    status: LoanStatus
    original_principal: Decimal
    original_interest_rate: Decimal
    original_term_months: int
    original_start_date: dt.date
    current_balance: Decimal
    current_interest_rate: Decimal
    remaining_term_months: int
    is_existing_loan: bool
    total_paid: Decimal
    total_interest_paid: Decimal
    total_prepayments: Decimal
    total_interest_savings: Decimal
    last_payment_date: Optional[dt.date] = None
    next_payment_date: Optional[dt.date] = None
    created_at: dt.datetime


class LoanPaymentRead(ORMModel):
    id: str
    loan_id: str
    transaction_id: Optional[str] = None
    amount: Decimal
    principal_amount: Decimal
    interest_amount: Decimal
    payment_date: dt.date
    is_prepayment: bool
    prepayment_type: Optional[str] = None
    interest_savings: Optional[Decimal] = None
    term_reduction: Optional[int] = None
    is_scheduled: bool
    scheduled_date: Optional[dt.date] = None
    status: str
    default_reason: Optional[str] = None


class PaymentTotals(BaseModel):
    total_payments: int
    total_amount: float
    total_principal: float
    total_interest: float
    prepayment_count: int


class LoanDetail(LoanRead):
    emi: float
    payments: List[LoanPaymentRead]
    payment_summary: PaymentTotals


class LoanPaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_date: dt.date = Field(default_factory=dt.date.today)
    description: Optional[str] = Field(None, max_length=500)
    is_prepayment: bool = False


class PrepaymentBenefitsRead(BaseModel):
    new_emi: float
    new_term: int
    interest_savings: float
    term_reduction: int
    new_balance: float


class LoanPaymentResult(BaseModel):
    payment: LoanPaymentRead
    loan: LoanRead
    benefits: Optional[PrepaymentBenefitsRead] = None


class EmiResult(BaseModel):
    principal: float
    annual_rate: float
    term_months: int
    emi: float
    total_payment: float
    total_interest: float


class LoanSummary(BaseModel):
    total_loans: int
    active_loans: int
    total_outstanding: float
    total_paid: float
    monthly_payments: float


class LoanProgress(BaseModel):
    loan_id: str
    status: LoanStatus
    original_principal: float
    current_balance: float
    principal_paid: float
    total_paid: float
    total_interest_paid: float
    percentage_paid: float
    payments_made: int
    remaining_term_months: int
    next_payment_date: Optional[dt.date] = None


class PrepaymentRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)


class PrepaymentScenarioRead(BaseModel):
    is_full_prepayment: bool
    current_emi: float
    new_balance: float
    new_emi: float
    new_term: int
    interest_savings: float
    term_reduction: int
    monthly_savings: float
    reduced_emi: float


class PrepaymentAnalytics(BaseModel):
    total_prepayments: float
    total_interest_savings: float
    prepayment_count: int
    average_prepayment: float
    recent_prepayments: List[LoanPaymentRead]


class AmortizationRow(BaseModel):
    period: int
    due_date: Optional[dt.date] = None
    payment: float
    interest: float
    principal: float
    balance: float


class AmortizationSchedule(BaseModel):
    loan_id: str
    emi: float
    total_interest: float
    rows: List[AmortizationRow]


class LoanPaymentRunResult(BaseModel):
    date: dt.date
    processed: int
    completed: int
    defaulted: int


class TermRecalculation(BaseModel):
    updated: int
    loans: List[LoanRead]


# -- notifications -----------------------------------------------------------


class NotificationBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    type: NotificationType = "INFO"


class NotificationCreate(NotificationBase):
    pass


class NotificationUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    message: Optional[str] = Field(None, min_length=1)
    type: Optional[NotificationType] = None
    is_read: Optional[bool] = None


class NotificationRead(NotificationBase, ORMModel):
    id: str
    is_read: bool
    created_at: dt.datetime


class UnreadCount(BaseModel):
    count: int


class BulkUpdateResult(BaseModel):
    updated: int


# -- analytics ---------------------------------------------------------------


class TransactionCounts(BaseModel):
    income: int
    expenses: int


class OverviewSummary(BaseModel):
    total_income: float
    total_expenses: float
    net_income: float
    transaction_counts: TransactionCounts


class DashboardOverview(BaseModel):
    period: Period
    summary: OverviewSummary
    budget_utilization: List[BudgetUsage]


class SpendingTrends(BaseModel):
    period: Period
    trends: List[TrendPoint]


class CategoryBreakdown(BaseModel):
    period: Period
    total_amount: float
    breakdown: List[CategorySpending]


class MonthlyAverage(BaseModel):
    income: float
    expenses: float
    net_income: float


class TopCategory(BaseModel):
    category_name: str
    amount: float
    percentage: float


class BudgetHealth(BaseModel):
    on_track: int
    warning: int
    over_budget: int


class FinancialInsights(BaseModel):
    monthly_average: MonthlyAverage
    top_spending_categories: List[TopCategory]
    budget_health: BudgetHealth
    recommendations: List[str]

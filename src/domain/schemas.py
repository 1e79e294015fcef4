from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator, model_validator

from domain.models import DEFAULT_COLOR, AccountType, TransactionType

# Exact Decimal in Python, plain number once dumped to JSON.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class TransactionCreate(BaseModel):
    amount: Decimal = Field(ge=0, allow_inf_nan=False)
    description: str = Field(min_length=1)
    type: TransactionType = TransactionType.EXPENSE
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    account_id: Optional[str] = None
    date: Optional[datetime] = Field(
        default=None,
        description="ISO-8601 timestamp. The store uses the creation time when omitted.",
    )
    notes: Optional[str] = None
    is_recurring: bool = False

    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("category_id", "subcategory_id", "account_id", "notes", mode="before")
    @classmethod
    def coerce_blank(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @model_validator(mode="after")
    def validate_subcategory(self) -> "TransactionCreate":
        if self.subcategory_id is not None and self.category_id is None:
            raise ValueError("subcategory_id requires category_id")
        return self


class TransactionUpdate(BaseModel):
    """Partial update; only fields explicitly set are applied."""

    amount: Optional[Decimal] = Field(default=None, ge=0, allow_inf_nan=False)
    description: Optional[str] = Field(default=None, min_length=1)
    type: Optional[TransactionType] = None
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    account_id: Optional[str] = None
    date: Optional[datetime] = None
    notes: Optional[str] = None
    is_recurring: Optional[bool] = None

    @field_validator("category_id", "subcategory_id", "account_id", "notes", mode="before")
    @classmethod
    def coerce_blank(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @model_validator(mode="after")
    def reject_null_required(self) -> "TransactionUpdate":
        for name in ("amount", "description", "type", "date", "is_recurring"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    color: str = DEFAULT_COLOR
    icon: str = "tag"
    budget: Optional[Decimal] = Field(default=None, ge=0)


class SubcategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    category_id: str = Field(min_length=1)


class AccountCreate(BaseModel):
    name: str = Field(min_length=1)
    type: AccountType = AccountType.CUSTOM
    color: str = DEFAULT_COLOR
    icon: str = "wallet"
    balance: Decimal = Decimal("0")
    is_default: bool = False


# ---- report views ----

class TransactionView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    amount: Money
    description: str
    type: TransactionType
    date: datetime
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    account_id: Optional[str] = None
    notes: Optional[str] = None
    is_recurring: bool = False


class CategoryView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    color: str
    icon: str
    budget: Optional[Money] = None


class SubcategoryView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    category_id: str


class AccountView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    type: AccountType
    color: str
    icon: str
    balance: Money
    is_default: bool = False
    created_at: Optional[datetime] = None


class MonthlyBucket(BaseModel):
    month: str
    short_month: str
    start: date
    expenses: Money = Decimal("0")
    income: Money = Decimal("0")
    net: Money = Decimal("0")
    transaction_count: int = 0


class CategoryBreakdownEntry(BaseModel):
    id: str
    name: str
    color: str
    total: Money
    transaction_count: int
    percentage: float = 0.0


class AccountBreakdownEntry(BaseModel):
    id: str
    name: str
    color: str
    total_spent: Money
    total_income: Money
    transaction_count: int


class MonthlyCategoryRow(BaseModel):
    month: str
    values: Dict[str, Money] = Field(default_factory=dict)


class DayOfWeekEntry(BaseModel):
    day: str
    total: Money = Decimal("0")
    count: int = 0


class TopExpense(BaseModel):
    id: str
    description: str
    amount: Money
    date: datetime
    category: str
    category_color: str


class OverallStats(BaseModel):
    total_expenses: Money = Decimal("0")
    total_income: Money = Decimal("0")
    net_savings: Money = Decimal("0")
    avg_monthly_expense: Money = Decimal("0")
    avg_monthly_income: Money = Decimal("0")
    transaction_count: int = 0
    month_over_month_change: float = 0.0
    current_month_expenses: Money = Decimal("0")
    savings_rate: float = 0.0
    avg_transaction: Money = Decimal("0")


class TransactionTotals(BaseModel):
    income: Money = Decimal("0")
    expenses: Money = Decimal("0")
    net: Money = Decimal("0")


class CategoryLabel(BaseModel):
    id: str
    name: str
    color: str


class CategorySpending(BaseModel):
    total: Money = Decimal("0")
    color: str = DEFAULT_COLOR


class SavingsGrade(BaseModel):
    grade: str
    message: str


class WeeklyReview(BaseModel):
    start: datetime
    end: datetime
    weekly_income: Money = Decimal("0")
    weekly_expenses: Money = Decimal("0")
    savings_rate: float = 0.0
    uncategorized_count: int = 0
    # Expenses in the window with no resolvable category, ready to be assigned one.
    uncategorized: List[TransactionView] = Field(default_factory=list)
    transaction_count: int = 0
    category_spending: Dict[str, CategorySpending] = Field(default_factory=dict)
    grade: SavingsGrade


class InsightsReport(BaseModel):
    reference: datetime
    timezone: str
    monthly_data: List[MonthlyBucket] = Field(default_factory=list)
    category_breakdown: List[CategoryBreakdownEntry] = Field(default_factory=list)
    account_breakdown: List[AccountBreakdownEntry] = Field(default_factory=list)
    monthly_category_data: List[MonthlyCategoryRow] = Field(default_factory=list)
    day_of_week_spending: List[DayOfWeekEntry] = Field(default_factory=list)
    top_expenses: List[TopExpense] = Field(default_factory=list)
    categories: List[CategoryLabel] = Field(default_factory=list)
    stats: OverallStats = Field(default_factory=OverallStats)


class ImportSummary(BaseModel):
    imported: int = 0
    failed: int = 0
    message: str = ""


# ---- tool envelopes ----

class ToolContext(BaseModel):
    timezone: str = "UTC"
    reference_date: Optional[date] = Field(
        default=None,
        description="Calendar day the reports are anchored to. Defaults to today in the context timezone.",
    )

    @field_validator("reference_date", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        if not isinstance(value, str):
            return value

        text = value.strip()
        if not text:
            return None

        for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y"):
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        return value


class ToolRequest(BaseModel):
    request_id: str
    tool: str
    args: Dict[str, Any] = Field(default_factory=dict)
    context: ToolContext = Field(default_factory=ToolContext)


class ToolResponse(BaseModel):
    request_id: str
    tool: str
    ok: bool = True
    result: Dict[str, Any] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)
    context: ToolContext


class ToolCall(BaseModel):
    id: str
    tool: str
    args: Dict[str, Any] = Field(default_factory=dict)
    purpose: str = ""

"""
Core Data Models for the Budget Engine

These models define the schemas for everything the engine reads from
storage and hands to the UI:
1. Categories are long-lived and independent of any month
2. Entries hold allocation and spend per (category, month)
3. Transactions are append-only spend events folded into entries
4. Summaries and states are derived, never persisted

DESIGN DECISION: Money is Decimal end to end. Floats coming in from a UI
widget are converted through str() so 0.1 stays 0.1.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from budget_engine.models.month import Month, normalize_month


ZERO = Decimal("0")

# Alias used where a field is itself called "date"
DateType = date


def as_amount(value: Any) -> Decimal:
    """
    Convert a number-ish value to Decimal.

    None, empty strings and NaN become zero so a missing figure can never
    poison later arithmetic.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip() or "0")
        except (InvalidOperation, ValueError):
            return ZERO
    if result.is_nan() or result.is_infinite():
        return ZERO
    return result


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class IconKey(str, Enum):
    """
    Icons a category can carry.

    DESIGN DECISION: The engine only ever holds the key. Turning a key into
    something renderable is the UI's job.
    """
    HOME = "Home"
    SHOPPING_CART = "ShoppingCart"
    CAR = "Car"
    UTENSILS = "Utensils"
    COFFEE = "Coffee"
    BRIEFCASE = "Briefcase"
    FILM = "Film"
    HEART = "Heart"
    SHOPPING_BAG = "ShoppingBag"
    MORE_HORIZONTAL = "MoreHorizontal"

    @classmethod
    def default(cls) -> "IconKey":
        return cls.SHOPPING_CART

    @classmethod
    def from_key(cls, raw: Optional[str]) -> "IconKey":
        """Resolve a stored key, falling back to the default icon."""
        if isinstance(raw, IconKey):
            return raw
        if not raw:
            return cls.default()
        try:
            return cls(raw.strip())
        except ValueError:
            return cls.default()


# =============================================================================
# CATEGORY MODELS
# =============================================================================

class BudgetCategory(BaseModel):
    """
    A budget category.

    Identity is the id. Name, icon and color can change; a category is
    never removed as a side effect of switching months.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = Field(..., ge=1, description="Category identifier")
    name: str = Field(..., min_length=1, max_length=100)
    icon: IconKey = Field(default_factory=IconKey.default)
    color: str = Field(default="", max_length=100, description="UI color token")

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("icon", mode="before")
    @classmethod
    def resolve_icon(cls, v: Any) -> IconKey:
        return IconKey.from_key(v)


class BudgetCategoryCreate(BaseModel):
    """Data needed to create a category."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    icon: IconKey = Field(default_factory=IconKey.default)
    color: str = Field(default="", max_length=100)

    @field_validator("icon", mode="before")
    @classmethod
    def resolve_icon(cls, v: Any) -> IconKey:
        return IconKey.from_key(v)


class BudgetCategoryUpdate(BaseModel):
    """Partial update for a category. Unset fields are left alone."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    icon: Optional[IconKey] = None
    color: Optional[str] = Field(default=None, max_length=100)

    @field_validator("icon", mode="before")
    @classmethod
    def resolve_icon(cls, v: Any) -> Optional[IconKey]:
        if v is None:
            return None
        return IconKey.from_key(v)

    def to_patch(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)

    @property
    def is_empty(self) -> bool:
        return not self.to_patch()


# =============================================================================
# ENTRY AND TRANSACTION MODELS
# =============================================================================

class BudgetEntry(BaseModel):
    """
    Allocation and accumulated spend for one category in one month.

    At most one entry exists per (category_id, month). The month is always
    stored as the first day of the month.
    """

    category_id: int = Field(..., ge=1)
    month: date = Field(..., description="First day of the month")
    allocated: Decimal = Field(default=ZERO, ge=0)
    spent: Decimal = Field(default=ZERO, ge=0)

    @field_validator("month", mode="before")
    @classmethod
    def normalize(cls, v: Any) -> date:
        if isinstance(v, Month):
            return v.first_day
        return normalize_month(v)

    @property
    def key(self) -> tuple[int, date]:
        return self.category_id, self.month

    @property
    def budget_month(self) -> Month:
        return Month.from_date(self.month)


class BudgetTransaction(BaseModel):
    """
    A single spend event.

    The amount is always a non-negative magnitude. Spending is implied by
    the model, not by the sign.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    category_id: int = Field(..., ge=1)
    amount: Decimal = Field(..., ge=0)
    date: DateType
    description: str = Field(default="Budget transaction", max_length=500)

    @property
    def budget_month(self) -> Month:
        return Month.from_date(self.date)


# =============================================================================
# DERIVED MODELS
# =============================================================================

class CategoryBudget(BaseModel):
    """One category line of a monthly summary."""

    id: int
    name: str
    icon: IconKey = Field(default_factory=IconKey.default)
    color: str = ""
    allocated: Decimal = ZERO
    spent: Decimal = ZERO

    @field_validator("icon", mode="before")
    @classmethod
    def resolve_icon(cls, v: Any) -> IconKey:
        return IconKey.from_key(v)

    @property
    def remaining(self) -> Decimal:
        return self.allocated - self.spent

    @property
    def percent_used(self) -> Decimal:
        if self.allocated <= 0:
            return ZERO
        return (self.spent / self.allocated * 100).quantize(Decimal("0.01"))


class BudgetSummary(BaseModel):
    """
    Allocation and spend for every category in one month.

    Computed fresh on every load. Totals must agree with the lines.
    """

    month: str = Field(..., description="Display label, e.g. 'October 2026'")
    categories: list[CategoryBudget] = Field(default_factory=list)
    total_allocated: Decimal = ZERO
    total_spent: Decimal = ZERO
    remaining_budget: Decimal = ZERO

    @classmethod
    def from_categories(
        cls,
        month: Month,
        categories: list[CategoryBudget],
    ) -> "BudgetSummary":
        total_allocated = sum((c.allocated for c in categories), ZERO)
        total_spent = sum((c.spent for c in categories), ZERO)
        return cls(
            month=month.label,
            categories=categories,
            total_allocated=total_allocated,
            total_spent=total_spent,
            remaining_budget=total_allocated - total_spent,
        )

    @model_validator(mode="after")
    def validate_totals(self) -> "BudgetSummary":
        """Totals are sums of the lines, nothing else."""
        allocated = sum((c.allocated for c in self.categories), ZERO)
        spent = sum((c.spent for c in self.categories), ZERO)
        if self.total_allocated != allocated:
            raise ValueError(
                f"total_allocated {self.total_allocated} does not match categories ({allocated})"
            )
        if self.total_spent != spent:
            raise ValueError(
                f"total_spent {self.total_spent} does not match categories ({spent})"
            )
        if self.remaining_budget != allocated - spent:
            raise ValueError("remaining_budget must equal total_allocated - total_spent")
        return self

    def find(self, category_id: int) -> Optional[CategoryBudget]:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None


class BudgetState(BudgetSummary):
    """
    Everything the dashboard shows for the active month.

    Extends the summary with figures pulled from the recurring, debt and
    goal subsystems. Owned by the period controller.
    """

    monthly_income: Decimal = ZERO
    fixed_expenses: Decimal = ZERO
    total_debt_payments: Decimal = ZERO
    total_goal_contributions: Decimal = ZERO
    left_to_allocate: Decimal = ZERO

    @classmethod
    def empty(cls, month: Month) -> "BudgetState":
        return cls(month=month.label)

    @property
    def total_committed(self) -> Decimal:
        return (
            self.total_allocated
            + self.fixed_expenses
            + self.total_debt_payments
            + self.total_goal_contributions
        )


# =============================================================================
# SEED DATA
# =============================================================================

class CategorySeed(BaseModel):
    """A default category plus the allocation it starts with."""

    name: str
    icon: IconKey
    color: str
    allocated: Decimal

    def to_create(self) -> BudgetCategoryCreate:
        return BudgetCategoryCreate(name=self.name, icon=self.icon, color=self.color)


DEFAULT_CATEGORIES: tuple[CategorySeed, ...] = (
    CategorySeed(name="Groceries", icon=IconKey.SHOPPING_CART,
                 color="text-green-600 bg-green-100", allocated=Decimal("500")),
    CategorySeed(name="Dining Out", icon=IconKey.UTENSILS,
                 color="text-red-600 bg-red-100", allocated=Decimal("300")),
    CategorySeed(name="Transportation", icon=IconKey.CAR,
                 color="text-purple-600 bg-purple-100", allocated=Decimal("200")),
    CategorySeed(name="Entertainment", icon=IconKey.FILM,
                 color="text-yellow-600 bg-yellow-100", allocated=Decimal("150")),
    CategorySeed(name="Shopping", icon=IconKey.SHOPPING_BAG,
                 color="text-blue-600 bg-blue-100", allocated=Decimal("200")),
    CategorySeed(name="Personal Care", icon=IconKey.HEART,
                 color="text-pink-600 bg-pink-100", allocated=Decimal("100")),
    CategorySeed(name="Miscellaneous", icon=IconKey.MORE_HORIZONTAL,
                 color="text-gray-600 bg-gray-100", allocated=Decimal("150")),
)

# Shown when a load fails so the dashboard always has something to render
FALLBACK_CATEGORIES: tuple[CategoryBudget, ...] = (
    CategoryBudget(id=1, name="Groceries", icon=IconKey.SHOPPING_CART,
                   color="text-green-600 bg-green-100", allocated=Decimal("500")),
    CategoryBudget(id=2, name="Dining Out", icon=IconKey.UTENSILS,
                   color="text-red-600 bg-red-100", allocated=Decimal("300")),
    CategoryBudget(id=3, name="Transportation", icon=IconKey.CAR,
                   color="text-purple-600 bg-purple-100", allocated=Decimal("200")),
    CategoryBudget(id=4, name="Entertainment", icon=IconKey.COFFEE,
                   color="text-yellow-600 bg-yellow-100", allocated=Decimal("150")),
    CategoryBudget(id=5, name="Shopping", icon=IconKey.SHOPPING_BAG,
                   color="text-blue-600 bg-blue-100", allocated=Decimal("200")),
)


def fallback_summary(month: Month) -> BudgetSummary:
    """Summary built from the hard-coded fallback categories."""
    return BudgetSummary.from_categories(
        month,
        [category.model_copy() for category in FALLBACK_CATEGORIES],
    )

"""
Plain record types consumed by the split, balance and settlement services.

These are independent of the ORM: ``group_ledger`` converts
model instances into them, and the services never touch the database.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from django.db import models

from apps.expenses.exceptions import UnsupportedSplitPolicy
from apps.expenses.services.money import ZERO, to_decimal


class SplitPolicy(models.TextChoices):
    EQUAL = 'equal', 'Equal'
    BY_ITEM = 'by_item', 'By Item'
    BY_PERCENTAGE = 'by_percentage', 'By Percentage'
    BY_AMOUNT = 'by_amount', 'By Amount'

    @classmethod
    def parse(cls, value):
        """Return the policy for *value*, raising ``UnsupportedSplitPolicy``."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedSplitPolicy(value) from None


class ExpenseStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    SETTLED = 'settled', 'Settled'
    CANCELLED = 'cancelled', 'Cancelled'


class SettlementStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    CONFIRMED = 'confirmed', 'Confirmed'
    REJECTED = 'rejected', 'Rejected'


@dataclass(frozen=True)
class ExtraCharges:
    """Charges applied on top of the base amount. Discount subtracts."""
    tax: Decimal = ZERO
    service_charge: Decimal = ZERO
    tip: Decimal = ZERO
    discount: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return (
            to_decimal(self.tax)
            + to_decimal(self.service_charge)
            + to_decimal(self.tip)
            - to_decimal(self.discount)
        )


@dataclass(frozen=True)
class LineItem:
    name: str
    quantity: int = 1
    unit_price: Decimal = ZERO
    total_price: Decimal = ZERO
    assigned_to: Tuple[Any, ...] = ()

    @property
    def line_total(self) -> Decimal:
        # Receipts often carry only quantity and unit price.
        total = to_decimal(self.total_price)
        if total == 0:
            return to_decimal(self.unit_price) * self.quantity
        return total


@dataclass
class Share:
    member_id: Any
    amount: Decimal
    is_paid: bool = False
    paid_at: Optional[datetime] = None


@dataclass
class ExpenseRecord:
    payer_id: Any
    amount: Decimal
    charges: ExtraCharges = field(default_factory=ExtraCharges)
    split_policy: str = SplitPolicy.EQUAL
    items: List[LineItem] = field(default_factory=list)
    shares: List[Share] = field(default_factory=list)
    percentages: Dict[Any, Decimal] = field(default_factory=dict)
    status: str = ExpenseStatus.PENDING
    id: Any = None
    group_id: Any = None

    @property
    def total_payable(self) -> Decimal:
        return to_decimal(self.amount) + self.charges.total

    @property
    def is_cancelled(self) -> bool:
        return self.status == ExpenseStatus.CANCELLED


@dataclass(frozen=True)
class SettlementRecord:
    from_member_id: Any
    to_member_id: Any
    amount: Decimal
    status: str = SettlementStatus.CONFIRMED
    group_id: Any = None
    expense_id: Any = None
    id: Any = None


@dataclass(frozen=True)
class Balance:
    """Net position of a member. Positive means the member is owed money."""
    member_id: Any
    amount: Decimal


@dataclass(frozen=True)
class SettlementSuggestion:
    from_member_id: Any
    to_member_id: Any
    amount: Decimal

"""Expense and invoice records plus the DataFrame conversions the engine uses.

Records arrive from the persistence layer as dataclasses, plain mappings
(snake_case, camelCase or backend column names) or DataFrames.  Everything is
normalised into two frames with titled columns::

    expenses: id, Date, Amount, Category, Bill Type, Recurring, Description,
              Is Paid, Bill Provider, Subscription Type, Category Parent,
              Is Family Expense, Linked Transfer Id
    invoices: id, Invoice Date, Due Date, Total Amount, Paid Amount,
              Remaining Amount, Status, Paid Date

Malformed numbers become ``0.0`` and malformed dates become ``NaT``; nothing
here raises on bad data.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

EXPENSE_COLUMNS = [
    'id',
    'Date',
    'Amount',
    'Category',
    'Bill Type',
    'Recurring',
    'Description',
    'Is Paid',
    'Bill Provider',
    'Subscription Type',
    'Category Parent',
    'Is Family Expense',
    'Linked Transfer Id',
]
INVOICE_COLUMNS = [
    'id',
    'Invoice Date',
    'Due Date',
    'Total Amount',
    'Paid Amount',
    'Remaining Amount',
    'Status',
    'Paid Date',
]


class InvoiceStatus(str, Enum):
    DRAFT = 'draft'
    SENT = 'sent'
    PARTIAL = 'partial'
    PAID = 'paid'

    @classmethod
    def parse(cls, value: Any) -> 'InvoiceStatus':
        """Map a status label (English or the backend's Italian) to a member.

        Unknown labels are treated as ``sent``: an issued, still-open invoice.
        """
        if isinstance(value, cls):
            return value
        text = str(value or '').strip().lower()
        resolved = STATUS_ALIASES.get(text)
        if resolved is None:
            logger.debug("Unknown invoice status %r, treating as sent", value)
            return cls.SENT
        return resolved


STATUS_ALIASES = {
    'draft': InvoiceStatus.DRAFT,
    'bozza': InvoiceStatus.DRAFT,
    'sent': InvoiceStatus.SENT,
    'inviata': InvoiceStatus.SENT,
    'partial': InvoiceStatus.PARTIAL,
    'parziale': InvoiceStatus.PARTIAL,
    'paid': InvoiceStatus.PAID,
    'pagata': InvoiceStatus.PAID,
}


def coerce_amount(value: Any) -> float:
    """Return ``value`` as a finite float, or ``0.0`` when it isn't numeric."""
    if isinstance(value, bool):
        return float(value)
    if not pd.api.types.is_scalar(value):
        return 0.0
    number = pd.to_numeric(value, errors='coerce')
    if pd.isna(number) or not np.isfinite(number):
        return 0.0
    return float(number)


def coerce_date(value: Any) -> Optional[pd.Timestamp]:
    """Parse ``value`` into a naive timestamp, or ``None`` when it can't be read."""
    if value is None or value == '':
        return None
    stamp = pd.to_datetime(value, errors='coerce')
    if pd.isna(stamp):
        return None
    stamp = pd.Timestamp(stamp)
    if stamp.tzinfo is not None:
        stamp = stamp.tz_convert(None)
    return stamp


def coerce_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {'1', 'true', 'yes', 'y', 'si', 'sì'}
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return False
    return bool(value)


def _optional_text(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return None
    text = str(value).strip()
    return text or None


def _normalize_key(key: Any) -> str:
    return re.sub(r'[^a-z0-9]', '', str(key).lower())


def month_period(value: Any) -> Optional[pd.Period]:
    """Return the calendar month containing ``value`` (``None`` for bad dates)."""
    stamp = coerce_date(value)
    return stamp.to_period('M') if stamp is not None else None


def parse_month_key(month_key: Union[str, pd.Period]) -> pd.Period:
    """Parse a ``YYYY-MM`` key.

    Raises:
        ValueError: If ``month_key`` is not a year-month string.
    """
    if isinstance(month_key, pd.Period):
        return month_key.asfreq('M')
    if not isinstance(month_key, str) or not re.fullmatch(r'\d{4}-\d{2}', month_key.strip()):
        raise ValueError(f"Month key must look like 'YYYY-MM', got {month_key!r}")
    return pd.Period(month_key.strip(), freq='M')


@dataclass(frozen=True)
class ExpenseRecord:
    """A single outflow. Positive ``amount`` means money leaving the account."""

    id: str
    amount: float
    date: Optional[pd.Timestamp]
    category: str = ''
    bill_type: Optional[str] = None
    recurring: bool = False
    description: str = ''
    is_paid: Optional[bool] = None
    bill_provider: Optional[str] = None
    subscription_type: Optional[str] = None
    category_parent: Optional[str] = None
    is_family_expense: bool = False
    linked_transfer_id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, 'amount', coerce_amount(self.amount))
        object.__setattr__(self, 'date', coerce_date(self.date))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'ExpenseRecord':
        values = {_EXPENSE_KEYS[_normalize_key(k)]: v for k, v in data.items() if _normalize_key(k) in _EXPENSE_KEYS}
        is_paid = values.get('is_paid')
        return cls(
            id=str(values.get('id', '') or ''),
            amount=coerce_amount(values.get('amount')),
            date=coerce_date(values.get('date')),
            category=str(_optional_text(values.get('category')) or ''),
            bill_type=_optional_text(values.get('bill_type')),
            recurring=coerce_flag(values.get('recurring')),
            description=str(_optional_text(values.get('description')) or ''),
            is_paid=None if _optional_text(is_paid) is None else coerce_flag(is_paid),
            bill_provider=_optional_text(values.get('bill_provider')),
            subscription_type=_optional_text(values.get('subscription_type')),
            category_parent=_optional_text(values.get('category_parent')),
            is_family_expense=coerce_flag(values.get('is_family_expense')),
            linked_transfer_id=_optional_text(values.get('linked_transfer_id')),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'Date': self.date,
            'Amount': self.amount,
            'Category': self.category,
            'Bill Type': self.bill_type,
            'Recurring': self.recurring,
            'Description': self.description,
            'Is Paid': self.is_paid,
            'Bill Provider': self.bill_provider,
            'Subscription Type': self.subscription_type,
            'Category Parent': self.category_parent,
            'Is Family Expense': self.is_family_expense,
            'Linked Transfer Id': self.linked_transfer_id,
        }


@dataclass(frozen=True)
class InvoiceRecord:
    """A receivable. ``remaining_amount`` defaults to ``total - paid``."""

    id: str
    invoice_date: Optional[pd.Timestamp]
    due_date: Optional[pd.Timestamp]
    total_amount: float
    paid_amount: float = 0.0
    remaining_amount: Optional[float] = None
    status: InvoiceStatus = InvoiceStatus.SENT
    paid_date: Optional[pd.Timestamp] = None

    def __post_init__(self) -> None:
        for name in ('total_amount', 'paid_amount'):
            object.__setattr__(self, name, coerce_amount(getattr(self, name)))
        for name in ('invoice_date', 'due_date', 'paid_date'):
            object.__setattr__(self, name, coerce_date(getattr(self, name)))
        object.__setattr__(self, 'status', InvoiceStatus.parse(self.status))
        if self.remaining_amount is not None:
            object.__setattr__(self, 'remaining_amount', coerce_amount(self.remaining_amount))
        else:
            remaining = max(self.total_amount - self.paid_amount, 0.0)
            object.__setattr__(self, 'remaining_amount', remaining)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'InvoiceRecord':
        values = {_INVOICE_KEYS[_normalize_key(k)]: v for k, v in data.items() if _normalize_key(k) in _INVOICE_KEYS}
        remaining = values.get('remaining_amount')
        explicit_remaining = remaining is not None and not pd.isna(pd.to_numeric(remaining, errors='coerce'))
        return cls(
            id=str(values.get('id', '') or ''),
            invoice_date=coerce_date(values.get('invoice_date')),
            due_date=coerce_date(values.get('due_date')),
            total_amount=coerce_amount(values.get('total_amount')),
            paid_amount=coerce_amount(values.get('paid_amount')),
            remaining_amount=coerce_amount(remaining) if explicit_remaining else None,
            status=InvoiceStatus.parse(values.get('status')),
            paid_date=coerce_date(values.get('paid_date')),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'Invoice Date': self.invoice_date,
            'Due Date': self.due_date,
            'Total Amount': self.total_amount,
            'Paid Amount': self.paid_amount,
            'Remaining Amount': self.remaining_amount,
            'Status': self.status.value,
            'Paid Date': self.paid_date,
        }


def _field_lookup(record_cls, extra: Dict[str, str]) -> Dict[str, str]:
    lookup = {_normalize_key(f.name): f.name for f in fields(record_cls)}
    lookup.update({_normalize_key(k): v for k, v in extra.items()})
    return lookup


_EXPENSE_KEYS = _field_lookup(ExpenseRecord, {
    'Transaction Date': 'date',
    'expense_date': 'date',
    'is_family': 'is_family_expense',
    'linked_transfer': 'linked_transfer_id',
})
_INVOICE_KEYS = _field_lookup(InvoiceRecord, {
    'date': 'invoice_date',
    'total': 'total_amount',
    'paid': 'paid_amount',
    'remaining': 'remaining_amount',
})

RecordInput = Union[None, pd.DataFrame, Iterable[Union[ExpenseRecord, InvoiceRecord, Mapping[str, Any]]]]


def _to_records(items: RecordInput, record_cls) -> List[Any]:
    if items is None:
        return []
    if isinstance(items, pd.DataFrame):
        items = items.to_dict('records')
    records = []
    for item in items:
        if isinstance(item, record_cls):
            records.append(item)
        elif isinstance(item, Mapping):
            records.append(record_cls.from_mapping(item))
        else:
            logger.debug("Skipping unsupported %s input %r", record_cls.__name__, type(item))
    return records


def expense_records(items: RecordInput) -> List[ExpenseRecord]:
    return _to_records(items, ExpenseRecord)


def invoice_records(items: RecordInput) -> List[InvoiceRecord]:
    return _to_records(items, InvoiceRecord)


def expenses_frame(items: RecordInput) -> pd.DataFrame:
    """Normalise expense input into the engine's expense DataFrame."""
    rows = [record.to_row() for record in expense_records(items)]
    frame = pd.DataFrame(rows, columns=EXPENSE_COLUMNS)
    frame['Amount'] = pd.to_numeric(frame['Amount'], errors='coerce').fillna(0.0).astype(float)
    frame['Date'] = pd.to_datetime(frame['Date'], errors='coerce')
    frame['Recurring'] = frame['Recurring'].fillna(False).astype(bool)
    frame['Is Family Expense'] = frame['Is Family Expense'].fillna(False).astype(bool)
    frame['Category'] = frame['Category'].fillna('').astype(str)
    frame['Description'] = frame['Description'].fillna('').astype(str)
    return frame


def invoices_frame(items: RecordInput) -> pd.DataFrame:
    """Normalise invoice input into the engine's invoice DataFrame."""
    rows = [record.to_row() for record in invoice_records(items)]
    frame = pd.DataFrame(rows, columns=INVOICE_COLUMNS)
    for col in ['Total Amount', 'Paid Amount', 'Remaining Amount']:
        frame[col] = pd.to_numeric(frame[col], errors='coerce').fillna(0.0).astype(float)
    for col in ['Invoice Date', 'Due Date', 'Paid Date']:
        frame[col] = pd.to_datetime(frame[col], errors='coerce')
    frame['Status'] = frame['Status'].fillna(InvoiceStatus.SENT.value).astype(str)
    return frame


def resolve_now(now: Any = None) -> pd.Timestamp:
    """Return ``now`` as a naive timestamp, defaulting to the current local time."""
    stamp = coerce_date(now) if now is not None else None
    return stamp if stamp is not None else pd.Timestamp.now()

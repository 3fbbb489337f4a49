"""Classification of expenses into the buckets the forecast works with.

Every expense lands in exactly one :class:`ExpenseBucket`.  Rules are applied
in priority order (loan, family transfer, subscription, utility bill, fixed
category, variable category) and anything unrecognised falls through to
``variable`` so no amount is ever dropped.  Keyword and provider lists are
read from ``config/classification.json``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Union

import pandas as pd

from .config import get_classification_config
from .providers import is_utility_provider, mentions_streaming_provider
from .records import ExpenseRecord, expenses_frame, resolve_now

logger = logging.getLogger(__name__)


class ExpenseBucket(str, Enum):
    LOAN = 'loan'
    TRANSFER = 'transfer'
    SUBSCRIPTION = 'subscription'
    BILL = 'bill'
    FIXED = 'fixed'
    VARIABLE = 'variable'


FIXED_COST_BUCKETS = {
    ExpenseBucket.LOAN,
    ExpenseBucket.TRANSFER,
    ExpenseBucket.SUBSCRIPTION,
    ExpenseBucket.FIXED,
}


@dataclass(frozen=True)
class _Rules:
    aliases: Dict[str, str]
    loan_categories: frozenset
    subscription_categories: frozenset
    fixed_categories: frozenset
    variable_categories: frozenset
    ignored_bill_types: frozenset
    installment_pattern: re.Pattern
    lender_pattern: re.Pattern
    loan_keywords: tuple
    loan_false_positives: tuple
    loan_min_amount: float
    loan_parents: frozenset
    recipient_pattern: re.Pattern
    transfer_keywords: tuple
    subscription_parents: frozenset
    subscription_keywords: tuple


def _word_pattern(words) -> re.Pattern:
    if not words:
        return re.compile(r'$^')
    # Whole words only: "agos" must not match "agosto"
    return re.compile(r'\b(?:' + '|'.join(re.escape(w) for w in words) + r')\b')


@lru_cache(maxsize=1)
def _rules() -> _Rules:
    config = get_classification_config()
    loan = config.get('loan', {})
    transfer = config.get('transfer', {})
    subscription = config.get('subscription', {})

    def lowered(values) -> tuple:
        return tuple(str(v).lower() for v in values or [])

    return _Rules(
        aliases={k.lower(): v.lower() for k, v in config.get('category_aliases', {}).items()},
        loan_categories=frozenset(lowered(config.get('loan_categories'))),
        subscription_categories=frozenset(lowered(config.get('subscription_categories'))),
        fixed_categories=frozenset(lowered(config.get('fixed_categories'))),
        variable_categories=frozenset(lowered(config.get('variable_categories'))),
        ignored_bill_types=frozenset(lowered(config.get('ignored_bill_types'))),
        installment_pattern=re.compile(loan.get('installment_pattern', r'$^'), re.IGNORECASE),
        lender_pattern=_word_pattern(lowered(loan.get('lender_keywords'))),
        loan_keywords=lowered(loan.get('keywords')),
        loan_false_positives=lowered(loan.get('false_positive_keywords')),
        loan_min_amount=float(loan.get('min_amount', 30.0)),
        loan_parents=frozenset(lowered(loan.get('category_parents'))),
        recipient_pattern=re.compile(transfer.get('recipient_pattern', r'$^'), re.IGNORECASE),
        transfer_keywords=lowered(transfer.get('keywords')),
        subscription_parents=frozenset(lowered(subscription.get('category_parents'))),
        subscription_keywords=lowered(subscription.get('keywords')),
    )


ExpenseLike = Union[ExpenseRecord, Mapping[str, Any], pd.Series]


def _as_record(expense: ExpenseLike) -> ExpenseRecord:
    if isinstance(expense, ExpenseRecord):
        return expense
    return ExpenseRecord.from_mapping(dict(expense))


def normalize_category(category: Optional[str]) -> str:
    """Lower-case ``category`` and translate backend aliases (``casa`` → ``housing``)."""
    text = (category or '').strip().lower()
    return _rules().aliases.get(text, text)


def is_loan_payment(expense: ExpenseLike) -> bool:
    record = _as_record(expense)
    rules = _rules()
    desc = record.description.lower()

    if rules.installment_pattern.search(desc):
        return True
    if rules.lender_pattern.search(desc):
        return True
    if normalize_category(record.category) in rules.loan_categories:
        return True
    if (record.category_parent or '').lower() in rules.loan_parents:
        return True
    if record.amount >= rules.loan_min_amount and any(kw in desc for kw in rules.loan_keywords):
        return not any(kw in desc for kw in rules.loan_false_positives)
    return False


def is_family_transfer(expense: ExpenseLike) -> bool:
    record = _as_record(expense)
    rules = _rules()
    desc = record.description.lower()

    if record.linked_transfer_id or record.is_family_expense:
        return True
    if rules.recipient_pattern.search(desc):
        return True
    # A generic bank transfer only counts when filed as a fixed cost and not a bill
    has_bill_data = bool(record.bill_type or record.bill_provider)
    if normalize_category(record.category) == 'fixed' and not has_bill_data:
        return any(keyword in desc for keyword in rules.transfer_keywords)
    return False


def is_subscription(expense: ExpenseLike) -> bool:
    record = _as_record(expense)
    rules = _rules()

    if normalize_category(record.category) in rules.subscription_categories:
        return True
    if record.subscription_type:
        return True
    if (record.category_parent or '').lower() in rules.subscription_parents:
        return True
    if not record.recurring:
        return False
    desc = record.description.lower()
    return mentions_streaming_provider(desc) or any(kw in desc for kw in rules.subscription_keywords)


def is_utility_bill(expense: ExpenseLike) -> bool:
    record = _as_record(expense)
    bill_type = (record.bill_type or '').strip().lower()
    if bill_type and bill_type not in _rules().ignored_bill_types:
        return True
    if record.bill_provider:
        return is_utility_provider(record.bill_provider)
    # Streaming services named in the description stay out of bills
    return is_utility_provider(record.description)


def classify_expense(expense: ExpenseLike) -> ExpenseBucket:
    """Return the single bucket an expense belongs to.

    Example:
        >>> classify_expense({'amount': 250, 'description': 'Rata 12/48 - Younited'})
        <ExpenseBucket.LOAN: 'loan'>
        >>> classify_expense({'amount': 40, 'category': 'cibo', 'description': 'Esselunga'})
        <ExpenseBucket.VARIABLE: 'variable'>
    """
    record = _as_record(expense)
    rules = _rules()

    if is_loan_payment(record):
        return ExpenseBucket.LOAN
    if is_family_transfer(record):
        return ExpenseBucket.TRANSFER
    if is_subscription(record):
        return ExpenseBucket.SUBSCRIPTION
    if is_utility_bill(record):
        return ExpenseBucket.BILL

    category = normalize_category(record.category)
    if category in rules.fixed_categories:
        return ExpenseBucket.FIXED
    if category in rules.variable_categories:
        return ExpenseBucket.VARIABLE
    if category:
        logger.debug("Unrecognised category %r for expense %s, counted as variable", category, record.id)
    return ExpenseBucket.VARIABLE


def classify_expenses(expenses: Any) -> pd.DataFrame:
    """Return the expense frame with a ``Bucket`` column (bucket values as strings)."""
    frame = expenses_frame(expenses)
    frame['Bucket'] = [classify_expense(row).value for row in frame.to_dict('records')]
    return frame


def bucket_totals(classified: pd.DataFrame) -> Dict[ExpenseBucket, float]:
    """Sum ``Amount`` per bucket; every bucket is present, zero when empty."""
    totals = {bucket: 0.0 for bucket in ExpenseBucket}
    if classified is None or classified.empty:
        return totals
    grouped = classified.groupby('Bucket')['Amount'].sum()
    for key, amount in grouped.items():
        totals[ExpenseBucket(key)] = float(amount)
    return totals


@dataclass
class LoanSummary:
    name: str
    monthly_amount: float
    total_paid: float
    total_remaining: float
    total_amount: float
    paid_count: int
    remaining_count: int
    total_count: int
    completion_percent: int
    first_payment: pd.Timestamp
    last_payment: pd.Timestamp

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.__dict__)
        data['first_payment'] = self.first_payment.date().isoformat()
        data['last_payment'] = self.last_payment.date().isoformat()
        return data


_INSTALLMENT_NAME = re.compile(r'(?:rata|installment)\s+\d+\s*/\s*\d+\s*[-–]\s*(.+)', re.IGNORECASE)
_INSTALLMENT_COUNTS = re.compile(r'(?:rata|installment)\s+(\d+)\s*/\s*(\d+)', re.IGNORECASE)


def _loan_name(description: str) -> str:
    match = _INSTALLMENT_NAME.search(description)
    if match:
        key = match.group(1).strip().upper()
    else:
        key = re.sub(r'(?:rata|installment)\s*\d*\s*[-/]?\s*', '', description, flags=re.IGNORECASE)
        key = re.sub(r'\d{1,2}[/-]\d{1,2}[/-]?\d{0,4}', '', key).strip().upper()
    if 'YOUNITED' in key:
        return 'YOUNITED PRESTITO'
    return key or 'UNKNOWN'


def group_loan_payments(expenses: Any, now: Any = None) -> List[LoanSummary]:
    """Group loan installments by lender and report progress on each loan.

    The monthly amount is the most frequent installment (the latest one when
    every amount differs).  With fewer than three installments on record the
    paid count is inferred from the highest ``rata X/Y`` number seen.
    """
    classified = classify_expenses(expenses)
    loans = classified[(classified['Bucket'] == ExpenseBucket.LOAN.value) & classified['Date'].notna()].copy()
    if loans.empty:
        return []

    cutoff = resolve_now(now).normalize() + pd.Timedelta(days=1)
    loans['Loan'] = loans['Description'].apply(_loan_name)
    summaries: List[LoanSummary] = []

    for name, group in loans.sort_values('Date').groupby('Loan'):
        amounts = group['Amount'].round(2)
        counts = amounts.value_counts()
        monthly = float(counts.index[0]) if counts.iloc[0] > 1 else float(amounts.iloc[-1])

        current_installment = 0
        total_count = len(group)
        for description in group['Description']:
            match = _INSTALLMENT_COUNTS.search(description)
            if match:
                current_installment = max(current_installment, int(match.group(1)))
                total_count = int(match.group(2))

        paid_on_record = int((group['Date'] < cutoff).sum())
        if len(group) >= 3 or current_installment == 0:
            paid_count = paid_on_record
        else:
            paid_count = current_installment
        remaining_count = max(total_count - paid_count, 0)

        summaries.append(LoanSummary(
            name=str(name),
            monthly_amount=monthly,
            total_paid=paid_count * monthly,
            total_remaining=remaining_count * monthly,
            total_amount=total_count * monthly,
            paid_count=paid_count,
            remaining_count=remaining_count,
            total_count=total_count,
            completion_percent=round(paid_count / total_count * 100) if total_count else 0,
            first_payment=group['Date'].iloc[0],
            last_payment=group['Date'].iloc[-1],
        ))

    return sorted(summaries, key=lambda s: s.monthly_amount, reverse=True)

"""Recording transactions and reporting statistics over periods."""

from __future__ import annotations

import calendar
import enum
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional, Sequence, Union

from sqlalchemy.orm import Session

from pocketledger.category import IncomeExpense
from pocketledger.statistics import (
    AmountCount,
    IEStatistic,
    StatisticCondition,
    StatisticConditionBuilder,
    StatisticDao,
    accumulate_category_statistic,
    accumulate_user_statistic,
)
from pocketledger.timetools import to_day
from pocketledger.transaction import RecordType, Transaction, TransactionDao, TransactionInfo

_log = logging.getLogger(__name__)

IncomeExpenseLike = Union[IncomeExpense, str]


class TransactionService:
    """Keeps transactions and their daily statistics in step."""

    def create(
        self,
        session: Session,
        info: TransactionInfo,
        record_type: RecordType = RecordType.MANUAL,
    ) -> Transaction:
        """Validate, count and store a new transaction."""
        info.check_valid(session)
        self.update_statistic(session, info)
        return TransactionDao(session).create(info, record_type)

    def update(self, session: Session, transaction_id: int, info: TransactionInfo) -> None:
        """Replace a transaction's content and add it to the statistics."""
        transaction = TransactionDao(session).select_by_id(transaction_id, for_update=True)
        transaction.info = info
        self.update_statistic(session, transaction.info)
        session.flush()

    def delete(self, session: Session, transaction_id: int) -> None:
        """Take a transaction's amount out of the statistics and soft-delete it."""
        transaction = TransactionDao(session).select_by_id(transaction_id, for_update=True)
        info = transaction.info
        self.update_statistic(session, replace(info, amount=-info.amount))
        transaction.deleted_at = datetime.now()
        session.flush()

    def update_statistic(self, session: Session, info: TransactionInfo) -> None:
        """Add one transaction to the user's and the category's daily totals."""
        try:
            kind = IncomeExpense(info.income_expense)
        except ValueError as exc:
            raise ValueError("invalid income/expense type") from exc
        with session.begin_nested():
            accumulate_user_statistic(
                session, kind, info.trade_time, info.user_id, info.amount, 1
            )
            accumulate_category_statistic(
                session, kind, info.trade_time, info.user_id, info.category_id, info.amount, 1
            )


class PeriodType(str, enum.Enum):
    """Length of the periods statistics are grouped into."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class PeriodRange:
    """One period: its label and first and last day."""

    label: str
    start: datetime
    end: datetime


@dataclass
class PeriodStatistic:
    """Income and expense totals of one period."""

    period: str
    start_time: datetime
    end_time: datetime
    statistics: IEStatistic


def _period_type(value: Union[PeriodType, str]) -> PeriodType:
    try:
        return PeriodType(value)
    except ValueError:
        return PeriodType.DAILY


def _period_of(kind: PeriodType, day: datetime) -> PeriodRange:
    if kind is PeriodType.WEEKLY:
        start = day - timedelta(days=day.weekday())
        return PeriodRange(f"{start:%Y}-W{start:%m}", start, start + timedelta(days=6))
    if kind is PeriodType.MONTHLY:
        start = day.replace(day=1)
        last = calendar.monthrange(start.year, start.month)[1]
        return PeriodRange(f"{start:%Y-%m}", start, start.replace(day=last))
    if kind is PeriodType.YEARLY:
        start = day.replace(month=1, day=1)
        return PeriodRange(f"{start:%Y}", start, day.replace(month=12, day=31))
    return PeriodRange(f"{day:%Y-%m-%d}", day, day)


def calculate_periods(
    period_type: Union[PeriodType, str], start: datetime, end: datetime
) -> list[PeriodRange]:
    """Split the days from ``start`` to ``end`` into periods; unknown types mean daily.

    The first period begins at its natural start, the last is cut at ``end``.
    """
    kind = _period_type(period_type)
    current, last = to_day(start), to_day(end)
    periods = []
    while current <= last:
        period = _period_of(kind, current)
        if period.end > last:
            period = replace(period, end=last)
        periods.append(period)
        current = period.end + timedelta(days=1)
    return periods


def _condition(
    user_id: int, start: datetime, end: datetime, category_ids: Optional[Sequence[int]]
) -> StatisticCondition:
    builder = StatisticConditionBuilder(user_id).with_date(start, end)
    if category_ids:
        builder = builder.with_category_ids(list(category_ids))
    return builder.build()


class StatisticService:
    """Statistics aggregated over days, weeks, months or years."""

    def get_period_statistics(
        self,
        session: Session,
        user_id: int,
        period_type: Union[PeriodType, str],
        start: datetime,
        end: datetime,
        category_ids: Optional[Sequence[int]] = None,
        income_expense: Optional[IncomeExpenseLike] = None,
    ) -> list[PeriodStatistic]:
        dao = StatisticDao(session)
        return [
            PeriodStatistic(
                period=period.label,
                start_time=period.start,
                end_time=period.end,
                statistics=dao.get_ie_statistic_by_condition(
                    income_expense, _condition(user_id, period.start, period.end, category_ids)
                ),
            )
            for period in calculate_periods(period_type, start, end)
        ]

    def get_category_period_statistics(
        self,
        session: Session,
        user_id: int,
        category_ids: Optional[Sequence[int]],
        start: datetime,
        end: datetime,
        income_expense: IncomeExpenseLike,
    ) -> AmountCount:
        condition = _condition(user_id, start, end, category_ids)
        return StatisticDao(session).get_amount_count_by_condition(condition, income_expense)
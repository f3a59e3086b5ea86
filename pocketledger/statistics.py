"""Daily income and expense statistics, query conditions and their lookups."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Union

from sqlalchemy import DateTime, Integer, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from pocketledger.category import IncomeExpense
from pocketledger.database import Base
from pocketledger.timetools import to_day

_log = logging.getLogger(__name__)

IncomeExpenseLike = Union[IncomeExpense, str]


@dataclass
class AmountCount:
    """A summed amount (in cents) and the number of records behind it."""

    amount: int = 0
    count: int = 0


@dataclass
class IEStatistic:
    """Income and expense totals side by side."""

    income: AmountCount = field(default_factory=AmountCount)
    expense: AmountCount = field(default_factory=AmountCount)


class _StatisticColumns:
    """Columns shared by every daily statistic table."""

    date: Mapped[datetime] = mapped_column(DateTime, primary_key=True)
    amount: Mapped[int] = mapped_column(Integer, default=0)
    count: Mapped[int] = mapped_column(Integer, default=0)


class IncomeUserStatistic(_StatisticColumns, Base):
    """Per-user daily income totals."""

    __tablename__ = "transaction_income_account_statistic"

    user_id: Mapped[int] = mapped_column(primary_key=True)


class ExpenseUserStatistic(_StatisticColumns, Base):
    """Per-user daily expense totals."""

    __tablename__ = "transaction_expense_account_statistic"

    user_id: Mapped[int] = mapped_column(primary_key=True)


class IncomeCategoryStatistic(_StatisticColumns, Base):
    """Per-category daily income totals."""

    __tablename__ = "transaction_income_category_statistic"

    category_id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(index=True)


class ExpenseCategoryStatistic(_StatisticColumns, Base):
    """Per-category daily expense totals."""

    __tablename__ = "transaction_expense_category_statistic"

    category_id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(primary_key=True)


def _local(moment: datetime) -> datetime:
    """Express ``moment`` as naive local time."""
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


def _accumulate(
    session: Session, model: Any, trade_time: datetime, keys: dict[str, int], amount: int, count: int
) -> None:
    day = to_day(trade_time)
    criteria = [model.date == day, *(getattr(model, name) == value for name, value in keys.items())]
    stmt = (
        update(model)
        .where(*criteria)
        .values(amount=model.amount + amount, count=model.count + count)
    )
    if session.execute(stmt).rowcount:
        return
    try:
        with session.begin_nested():
            session.execute(
                insert(model).values(date=day, amount=amount, count=count, **keys)
            )
    except IntegrityError:
        session.execute(stmt)


def accumulate_user_statistic(
    session: Session,
    income_expense: IncomeExpenseLike,
    trade_time: datetime,
    user_id: int,
    amount: int,
    count: int,
) -> None:
    """Add ``amount`` and ``count`` to the user's total for the day of ``trade_time``."""
    model = (
        IncomeUserStatistic
        if IncomeExpense(income_expense) is IncomeExpense.INCOME
        else ExpenseUserStatistic
    )
    _accumulate(session, model, trade_time, {"user_id": user_id}, amount, count)


def accumulate_category_statistic(
    session: Session,
    income_expense: IncomeExpenseLike,
    trade_time: datetime,
    user_id: int,
    category_id: int,
    amount: int,
    count: int,
) -> None:
    """Add ``amount`` and ``count`` to the category's total for the day of ``trade_time``."""
    model = (
        IncomeCategoryStatistic
        if IncomeExpense(income_expense) is IncomeExpense.INCOME
        else ExpenseCategoryStatistic
    )
    _accumulate(
        session,
        model,
        trade_time,
        {"category_id": category_id, "user_id": user_id},
        amount,
        count,
    )


@dataclass
class ForeignKeyCondition:
    """Restricts a query to one user and, optionally, some categories."""

    user_id: int
    category_ids: Optional[list[int]] = None

    def criteria(self, model: Any) -> list[Any]:
        result = [model.user_id == self.user_id]
        if self.category_ids is not None:
            result.append(model.category_id.in_(self.category_ids))
        return result

    def statistic_model(self, income_expense: IncomeExpenseLike) -> type:
        """The statistic table that answers this condition for income or expense."""
        by_category = self.category_ids is not None
        if IncomeExpense(income_expense) is IncomeExpense.INCOME:
            return IncomeCategoryStatistic if by_category else IncomeUserStatistic
        return ExpenseCategoryStatistic if by_category else ExpenseUserStatistic


@dataclass
class TimeCondition:
    """Bounds on a transaction's trade time; either end may be open."""

    trade_start_time: Optional[datetime] = None
    trade_end_time: Optional[datetime] = None

    def set_trade_times(self, start: datetime, end: datetime) -> None:
        self.trade_start_time = start
        self.trade_end_time = end

    def criteria(self, model: Any) -> list[Any]:
        result = []
        if self.trade_start_time is not None:
            result.append(model.trade_time >= self.trade_start_time)
        if self.trade_end_time is not None:
            result.append(model.trade_time <= self.trade_end_time)
        return result


@dataclass
class ExtensionCondition:
    """Bounds on a transaction's amount."""

    min_amount: Optional[int] = None
    max_amount: Optional[int] = None

    def is_set(self) -> bool:
        return self.min_amount is not None or self.max_amount is not None

    def criteria(self, model: Any) -> list[Any]:
        result = []
        if self.min_amount is not None:
            result.append(model.amount >= self.min_amount)
        if self.max_amount is not None:
            result.append(model.amount <= self.max_amount)
        return result


@dataclass
class Condition(ForeignKeyCondition):
    """A full filter over transaction records."""

    time: TimeCondition = field(default_factory=TimeCondition)
    extension: ExtensionCondition = field(default_factory=ExtensionCondition)
    income_expense: Optional[IncomeExpense] = None

    def criteria(self, model: Any) -> list[Any]:
        result = super().criteria(model)
        result += self.time.criteria(model)
        result += self.extension.criteria(model)
        if self.income_expense is not None:
            result.append(model.income_expense == IncomeExpense(self.income_expense))
        return result


@dataclass
class StatisticCondition(ForeignKeyCondition):
    """A filter over the daily statistic tables; times are reduced to local days."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def criteria(self, model: Any) -> list[Any]:
        result = super().criteria(model)
        if self.start is not None and self.end is not None:
            result.append(
                model.date.between(to_day(_local(self.start)), to_day(_local(self.end)))
            )
        elif self.start is not None:
            result.append(model.date >= to_day(_local(self.start)))
        elif self.end is not None:
            result.append(model.date <= to_day(_local(self.end)))
        return result

    def check_availability(self) -> bool:
        """False when an explicit, empty list of categories was given."""
        return not (self.category_ids is not None and len(self.category_ids) == 0)


class StatisticConditionBuilder:
    """Builds a StatisticCondition step by step."""

    def __init__(self, user_id: int) -> None:
        self._condition = StatisticCondition(user_id=user_id)

    def with_category_ids(self, category_ids: list[int]) -> "StatisticConditionBuilder":
        self._condition.category_ids = list(category_ids)
        return self

    def with_date(self, start: datetime, end: datetime) -> "StatisticConditionBuilder":
        self._condition.start = start
        self._condition.end = end
        return self

    def build(self) -> StatisticCondition:
        return self._condition


@dataclass(frozen=True)
class DayStatistic:
    """Totals of a single day."""

    date: datetime
    amount: int
    count: int


@dataclass(frozen=True)
class CategoryAmountRank:
    """Totals of one category within a period."""

    category_id: int
    amount: int
    count: int


def _sums(model: Any):
    return (
        func.coalesce(func.sum(model.amount), 0).label("amount"),
        func.coalesce(func.sum(model.count), 0).label("count"),
    )


@dataclass
class StatisticDao:
    """Queries over the daily statistic tables."""

    session: Session

    def _amount_count(self, model: Any, criteria: list[Any]) -> AmountCount:
        row = self.session.execute(select(*_sums(model)).where(*criteria)).one()
        return AmountCount(amount=int(row.amount), count=int(row.count))

    def get_day_statistic_by_condition(
        self, income_expense: IncomeExpenseLike, condition: StatisticCondition
    ) -> list[DayStatistic]:
        """Totals per day, earliest first."""
        if not condition.check_availability():
            _log.info("invalid category ids")
            return []
        model = condition.statistic_model(income_expense)
        stmt = (
            select(model.date, *_sums(model))
            .where(*condition.criteria(model))
            .group_by(model.date)
            .order_by(model.date)
        )
        return [
            DayStatistic(date=row.date, amount=int(row.amount), count=int(row.count))
            for row in self.session.execute(stmt)
        ]

    def get_amount_count_by_condition(
        self, condition: StatisticCondition, income_expense: IncomeExpenseLike
    ) -> AmountCount:
        if not condition.check_availability():
            return AmountCount()
        model = condition.statistic_model(income_expense)
        return self._amount_count(model, condition.criteria(model))

    def get_ie_statistic_by_condition(
        self, income_expense: Optional[IncomeExpenseLike], condition: StatisticCondition
    ) -> IEStatistic:
        """Income and/or expense totals; both when ``income_expense`` is None."""
        if not condition.check_availability():
            raise ValueError("wrong check categories")
        result = IEStatistic()
        kind = None if income_expense is None else IncomeExpense(income_expense)
        if kind is None or kind.query_income():
            model = condition.statistic_model(IncomeExpense.INCOME)
            result.income = self._amount_count(model, condition.criteria(model))
        if kind is None or kind.query_expense():
            model = condition.statistic_model(IncomeExpense.EXPENSE)
            result.expense = self._amount_count(model, condition.criteria(model))
        return result

    def get_total_statistics(self, user_id: int) -> IEStatistic:
        """All-time income and expense totals of a user."""
        result = IEStatistic(
            income=self._amount_count(
                IncomeUserStatistic, [IncomeUserStatistic.user_id == user_id]
            ),
            expense=self._amount_count(
                ExpenseUserStatistic, [ExpenseUserStatistic.user_id == user_id]
            ),
        )
        _log.debug("total statistics for user %d: %s", user_id, result)
        return result

    def get_category_amount_rank(
        self,
        income_expense: IncomeExpenseLike,
        user_id: int,
        start: datetime,
        end: datetime,
        limit: Optional[int] = None,
    ) -> list[CategoryAmountRank]:
        """Categories ordered by total amount, largest first."""
        model = (
            ExpenseCategoryStatistic
            if IncomeExpense(income_expense) is IncomeExpense.EXPENSE
            else IncomeCategoryStatistic
        )
        amount_sum = func.coalesce(func.sum(model.amount), 0)
        stmt = (
            select(
                model.category_id,
                amount_sum.label("amount"),
                func.coalesce(func.sum(model.count), 0).label("count"),
            )
            .where(model.user_id == user_id, model.date.between(_local(start), _local(end)))
            .group_by(model.category_id)
            .order_by(amount_sum.desc(), model.category_id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return [
            CategoryAmountRank(
                category_id=row.category_id, amount=int(row.amount), count=int(row.count)
            )
            for row in self.session.execute(stmt)
        ]
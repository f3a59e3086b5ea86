"""Income and expense transactions and their data access."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Union

from sqlalchemy import DateTime, Enum as SAEnum, Integer, String, func, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from pocketledger.category import Category, CategoryDao, CategoryNotFoundError, IncomeExpense
from pocketledger.database import Base, RecordNotFoundError
from pocketledger.statistics import (
    AmountCount,
    Condition,
    ExtensionCondition,
    ForeignKeyCondition,
    IEStatistic,
    StatisticCondition,
    StatisticDao,
    TimeCondition,
)
from pocketledger.timetools import to_day

_log = logging.getLogger(__name__)

_AMOUNT_RANK_LIMIT = 10


class RecordType(enum.IntEnum):
    """How a transaction was recorded."""

    MANUAL = 0
    TIMING = 1
    SYNC = 2
    IMPORT = 3


class InvalidTransactionError(ValueError):
    """Raised when transaction data does not fit its category or is out of range."""


def _enum_values(enum_class: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_class]


@dataclass
class TransactionInfo:
    """The user-supplied content of a transaction; amounts are in cents."""

    user_id: int
    category_id: int
    income_expense: IncomeExpense
    amount: int
    trade_time: datetime = field(default_factory=datetime.now)
    remark: str = ""

    def check_valid(self, session: Session) -> Category:
        """Check the data against its category and return that category."""
        _log.debug(
            "validating transaction: category %s, kind %s", self.category_id, self.income_expense
        )
        try:
            category = CategoryDao(session).select_by_id(self.category_id)
        except CategoryNotFoundError as exc:
            raise InvalidTransactionError("找不到指定的分类") from exc
        if self.amount <= 0:
            raise InvalidTransactionError("transaction CheckValid: amount must be positive")
        if IncomeExpense(self.income_expense) is not category.income_expense:
            raise InvalidTransactionError("交易的收支类型与分类不匹配")
        return category


class Transaction(Base):
    """A stored income or expense record."""

    __tablename__ = "transaction"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(index=True)
    category_id: Mapped[int] = mapped_column(index=True)
    income_expense: Mapped[IncomeExpense] = mapped_column(
        SAEnum(IncomeExpense, native_enum=False, length=16, values_callable=_enum_values)
    )
    amount: Mapped[int] = mapped_column(Integer)
    remark: Mapped[str] = mapped_column(String(255), default="")
    trade_time: Mapped[datetime] = mapped_column(DateTime)
    record_type: Mapped[int] = mapped_column(Integer, default=RecordType.MANUAL)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, index=True, default=None)

    @property
    def info(self) -> TransactionInfo:
        return TransactionInfo(
            user_id=self.user_id,
            category_id=self.category_id,
            income_expense=IncomeExpense(self.income_expense),
            amount=self.amount,
            trade_time=self.trade_time,
            remark=self.remark,
        )

    @info.setter
    def info(self, info: TransactionInfo) -> None:
        self.user_id = info.user_id
        self.category_id = info.category_id
        self.income_expense = IncomeExpense(info.income_expense)
        self.amount = info.amount
        self.trade_time = info.trade_time
        self.remark = info.remark


def _live():
    return select(Transaction).where(Transaction.deleted_at.is_(None))


@dataclass
class TransactionDao:
    """Data access for transactions."""

    session: Session

    def select_by_id(self, transaction_id: int, for_update: bool = False) -> Transaction:
        stmt = _live().where(Transaction.id == transaction_id).limit(1)
        if for_update:
            stmt = stmt.with_for_update()
        transaction = self.session.scalars(stmt).first()
        if transaction is None:
            raise RecordNotFoundError()
        return transaction

    def create(
        self, info: TransactionInfo, record_type: RecordType = RecordType.MANUAL
    ) -> Transaction:
        transaction = Transaction(record_type=RecordType(record_type))
        transaction.info = info
        self.session.add(transaction)
        self.session.flush()
        return transaction

    def get_list_by_condition(
        self, condition: Condition, offset: int = 0, limit: Optional[int] = None
    ) -> list[Transaction]:
        """Matching transactions, latest trade first."""
        stmt = (
            _live()
            .where(*condition.criteria(Transaction))
            .order_by(Transaction.trade_time.desc(), Transaction.id.desc())
        )
        if offset > 0:
            stmt = stmt.offset(offset)
        if limit is not None and limit >= 0:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt))

    def _time_range(self, start: Optional[datetime], end: Optional[datetime]) -> list[Any]:
        if start is not None and end is not None:
            return [Transaction.trade_time.between(start, end)]
        if start is not None:
            return [Transaction.trade_time >= start]
        if end is not None:
            return [Transaction.trade_time <= end]
        return []

    def _amount_count(self, criteria: list[Any], kind: IncomeExpense) -> AmountCount:
        stmt = select(
            func.count().label("count"),
            func.coalesce(func.sum(Transaction.amount), 0).label("amount"),
        ).where(*criteria, Transaction.income_expense == kind)
        row = self.session.execute(stmt).one()
        return AmountCount(amount=int(row.amount), count=int(row.count))

    def get_ie_statistic_by_condition(
        self,
        income_expense: Optional[Union[IncomeExpense, str]],
        condition: StatisticCondition,
        ext_cond: Optional[ExtensionCondition] = None,
    ) -> IEStatistic:
        """Income and/or expense totals; amount bounds force a scan of transactions."""
        if ext_cond is None or not ext_cond.is_set():
            return StatisticDao(self.session).get_ie_statistic_by_condition(
                income_expense, condition
            )
        keys = ForeignKeyCondition(user_id=condition.user_id, category_ids=condition.category_ids)
        criteria = [Transaction.deleted_at.is_(None), *keys.criteria(Transaction)]
        criteria += self._time_range(
            None if condition.start is None else to_day(condition.start),
            None if condition.end is None else to_day(condition.end),
        )
        criteria += ext_cond.criteria(Transaction)
        kind = None if income_expense is None else IncomeExpense(income_expense)
        result = IEStatistic()
        if kind is None or kind.query_income():
            result.income = self._amount_count(criteria, IncomeExpense.INCOME)
        if kind is None or kind.query_expense():
            result.expense = self._amount_count(criteria, IncomeExpense.EXPENSE)
        return result

    def get_amount_rank(
        self,
        user_id: int,
        income_expense: Union[IncomeExpense, str],
        time_cond: TimeCondition,
    ) -> list[Transaction]:
        """The ten largest transactions of a kind within the time bounds."""
        stmt = (
            _live()
            .where(
                *time_cond.criteria(Transaction),
                Transaction.user_id == user_id,
                Transaction.income_expense == IncomeExpense(income_expense),
            )
            .order_by(Transaction.amount.desc(), Transaction.id)
            .limit(_AMOUNT_RANK_LIMIT)
        )
        return list(self.session.scalars(stmt))
"""Income and expense categories owned by users."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from sqlalchemy import DateTime, Enum as SAEnum, String, UniqueConstraint, func, select
from sqlalchemy import delete as sa_delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from pocketledger.database import Base, RecordNotFoundError
from pocketledger.textdata import DataIsEmptyError, copy_not_empty_string_optional


class IncomeExpense(str, enum.Enum):
    """Whether money comes in or goes out."""

    INCOME = "income"
    EXPENSE = "expense"

    def query_income(self) -> bool:
        return self is IncomeExpense.INCOME

    def query_expense(self) -> bool:
        return self is IncomeExpense.EXPENSE


def _enum_values(enum_class: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_class]


class CategorySameNameError(ValueError):
    """Raised when a user already has a category with this name and kind."""

    def __init__(self, message: str = "category with the same name already exists") -> None:
        super().__init__(message)


class CategoryNotFoundError(RecordNotFoundError):
    """Raised when a category does not exist or was deleted."""

    def __init__(self, message: str = "category not found") -> None:
        super().__init__(message)


class Category(Base):
    """A user's category of transactions."""

    __tablename__ = "category"
    __table_args__ = (
        UniqueConstraint("user_id", "name", "income_expense", name="idx_category_unique"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(index=True, comment="账户ID")
    income_expense: Mapped[IncomeExpense] = mapped_column(
        SAEnum(IncomeExpense, native_enum=False, length=16, values_callable=_enum_values),
        comment="收支类型",
    )
    name: Mapped[str] = mapped_column(String(128), comment="标签名")
    icon: Mapped[str] = mapped_column(String(64), default="", comment="图标")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, index=True, default=None)

    def check_name(self) -> None:
        """Raise DataIsEmptyError when the category has no name."""
        if not self.name:
            raise DataIsEmptyError("交易类型名称不可为空")


@dataclass
class ListOptions:
    """Filtering, ordering and paging for category lists."""

    user_id: Optional[int] = None
    income_expense: Optional[IncomeExpense] = None
    order_by: str = ""
    order_desc: bool = False
    limit: int = 0
    offset: int = 0


_DEFAULT_EXPENSES = [
    ("餐饮", "food"),
    ("购物", "shop"),
    ("交通", "transportation"),
    ("住房", "house"),
    ("娱乐", "game"),
]
_DEFAULT_INCOMES = [
    ("服游", "salary"),
    ("投资", "invest"),
]


@dataclass
class CategoryDao:
    """Data access for categories."""

    session: Session

    def _live(self):
        return select(Category).where(Category.deleted_at.is_(None))

    def _ensure_unique(
        self,
        user_id: int,
        name: str,
        income_expense: IncomeExpense,
        exclude_id: Optional[int] = None,
    ) -> None:
        stmt = select(Category.id).where(
            Category.user_id == user_id,
            Category.name == name,
            Category.income_expense == income_expense,
        )
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)
        if self.session.scalars(stmt.limit(1)).first() is not None:
            raise CategorySameNameError()

    def _flush(self) -> None:
        try:
            self.session.flush()
        except IntegrityError as exc:
            self.session.rollback()
            raise CategorySameNameError() from exc

    def select_by_id(self, category_id: int) -> Category:
        stmt = self._live().where(Category.id == category_id).limit(1)
        category = self.session.scalars(stmt).first()
        if category is None:
            raise CategoryNotFoundError()
        return category

    def select_by_name(
        self, user_id: int, name: str, income_expense: Union[IncomeExpense, str]
    ) -> Category:
        stmt = (
            self._live()
            .where(
                Category.user_id == user_id,
                Category.name == name,
                Category.income_expense == IncomeExpense(income_expense),
            )
            .order_by(Category.id)
            .limit(1)
        )
        category = self.session.scalars(stmt).first()
        if category is None:
            raise CategoryNotFoundError()
        return category

    def update(
        self, category_id: int, name: Optional[str] = None, icon: Optional[str] = None
    ) -> None:
        """Change the given fields; blank values raise, a missing category is a no-op."""
        new_name = copy_not_empty_string_optional(name)
        new_icon = copy_not_empty_string_optional(icon)
        if new_name is None and new_icon is None:
            return
        category = self.session.scalars(
            self._live().where(Category.id == category_id).limit(1)
        ).first()
        if category is None:
            return
        if new_name is not None:
            self._ensure_unique(
                category.user_id, new_name, category.income_expense, exclude_id=category.id
            )
            category.name = new_name
            category.check_name()
        if new_icon is not None:
            category.icon = new_icon
        self._flush()

    def create(
        self,
        user_id: int,
        name: str,
        icon: str,
        income_expense: Union[IncomeExpense, str],
    ) -> Category:
        category = Category(
            user_id=user_id,
            name=name,
            icon=icon,
            income_expense=IncomeExpense(income_expense),
        )
        category.check_name()
        self._ensure_unique(user_id, name, category.income_expense)
        self.session.add(category)
        self._flush()
        return category

    def delete(self, category_id: int) -> None:
        """Soft-delete a category; raise CategoryNotFoundError when absent."""
        category = self.select_by_id(category_id)
        category.deleted_at = datetime.now()
        self.session.flush()

    def hard_delete(self, category_id: int) -> None:
        """Remove a category row for good, deleted or not."""
        self.session.execute(sa_delete(Category).where(Category.id == category_id))

    def list_with_options(self, options: ListOptions) -> list[Category]:
        stmt = self._live()
        if options.user_id is not None:
            stmt = stmt.where(Category.user_id == options.user_id)
        if options.income_expense is not None:
            stmt = stmt.where(Category.income_expense == IncomeExpense(options.income_expense))
        column = Category.__table__.c.get(options.order_by or "created_at")
        if column is None:
            raise ValueError(f"unknown order field: {options.order_by}")
        if options.order_desc:
            stmt = stmt.order_by(column.desc(), Category.id.desc())
        else:
            stmt = stmt.order_by(column.asc(), Category.id.asc())
        if options.limit > 0:
            stmt = stmt.limit(options.limit)
        if options.offset > 0:
            stmt = stmt.offset(options.offset)
        return list(self.session.scalars(stmt))

    def list(
        self,
        user_id: Optional[int],
        income_expense: Optional[Union[IncomeExpense, str]] = None,
    ) -> list[Category]:
        """List categories newest first."""
        return self.list_with_options(
            ListOptions(
                user_id=user_id,
                income_expense=None if income_expense is None else IncomeExpense(income_expense),
                order_by="created_at",
                order_desc=True,
            )
        )


def create_default_categories(session: Session, user_id: int) -> list[Category]:
    """Give a user the default categories unless they already have some."""
    count = session.scalar(
        select(func.count())
        .select_from(Category)
        .where(Category.user_id == user_id, Category.deleted_at.is_(None))
    )
    if count:
        return []
    created = [
        Category(user_id=user_id, name=name, icon=icon, income_expense=IncomeExpense.EXPENSE)
        for name, icon in _DEFAULT_EXPENSES
    ]
    created += [
        Category(user_id=user_id, name=name, icon=icon, income_expense=IncomeExpense.INCOME)
        for name, icon in _DEFAULT_INCOMES
    ]
    session.add_all(created)
    session.flush()
    return created
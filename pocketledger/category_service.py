"""Category operations on behalf of a signed-in user."""

from __future__ import annotations

import logging
from typing import Optional, Union

from sqlalchemy.orm import Session

from pocketledger.category import Category, CategoryDao, CategoryNotFoundError, IncomeExpense

_log = logging.getLogger(__name__)

IncomeExpenseLike = Union[IncomeExpense, str]


def _income_expense(value: IncomeExpenseLike) -> IncomeExpense:
    try:
        return IncomeExpense(value)
    except ValueError as exc:
        raise ValueError("收支类型必须是'income'或'expense'") from exc


def _require_user(user_id: Optional[int]) -> int:
    if not user_id:
        raise PermissionError("用户未登录")
    return user_id


def _require_id(category_id: int) -> None:
    if not category_id:
        raise ValueError("分类ID不能为空")


class CategoryService:
    """Validates requests and hands them to the category data layer."""

    def create(
        self,
        session: Session,
        user_id: Optional[int],
        name: str,
        income_expense: IncomeExpenseLike,
        icon: str = "",
    ) -> Category:
        """Create a category for the user."""
        if not name:
            raise ValueError("分类名称不能为空")
        kind = _income_expense(income_expense)
        owner = _require_user(user_id)
        _log.debug("creating category for user %d", owner)
        return CategoryDao(session).create(owner, name, icon, kind)

    def update(
        self,
        session: Session,
        category_id: int,
        name: str,
        income_expense: IncomeExpenseLike,
    ) -> None:
        """Rename a category; an empty name keeps the current one."""
        _require_id(category_id)
        _income_expense(income_expense)
        dao = CategoryDao(session)
        try:
            category = dao.select_by_id(category_id)
        except CategoryNotFoundError as exc:
            raise CategoryNotFoundError("找不到指定的分类") from exc
        dao.update(category_id, name=name or category.name)

    def delete(self, session: Session, category_id: int) -> None:
        """Soft-delete a category."""
        _require_id(category_id)
        dao = CategoryDao(session)
        try:
            dao.select_by_id(category_id)
        except CategoryNotFoundError as exc:
            raise CategoryNotFoundError("找不到指定的分类") from exc
        dao.delete(category_id)

    def list(
        self,
        session: Session,
        user_id: Optional[int],
        income_expense: Optional[IncomeExpenseLike] = None,
    ) -> list[Category]:
        """The user's categories, newest first."""
        owner = _require_user(user_id)
        return CategoryDao(session).list(owner, income_expense)
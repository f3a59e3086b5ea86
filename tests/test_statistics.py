from datetime import datetime

import pytest
from sqlalchemy import create_engine, inspect, select
from sqlalchemy.orm import Session

from pocketledger.category import IncomeExpense
from pocketledger.database import init_schema
from pocketledger.statistics import (
    AmountCount,
    ExpenseCategoryStatistic,
    ExpenseUserStatistic,
    ExtensionCondition,
    ForeignKeyCondition,
    IncomeCategoryStatistic,
    IncomeUserStatistic,
    StatisticCondition,
    StatisticConditionBuilder,
    StatisticDao,
    TimeCondition,
    accumulate_category_statistic,
    accumulate_user_statistic,
)


@pytest.fixture
def session():
    engine = create_engine("sqlite://")
    init_schema(engine)
    with Session(engine) as db_session:
        yield db_session


def test_accumulate_user_creates_then_adds(session):
    moment = datetime(2024, 3, 5, 14, 30)
    accumulate_user_statistic(session, IncomeExpense.INCOME, moment, 1, 100, 1)
    accumulate_user_statistic(session, "income", moment.replace(hour=9), 1, 50, 1)
    rows = session.scalars(select(IncomeUserStatistic)).all()
    assert len(rows) == 1
    assert rows[0].amount == 100 + 50
    assert rows[0].count == 2
    assert rows[0].date == datetime(2024, 3, 5)


def test_accumulate_separate_days_and_kinds(session):
    accumulate_user_statistic(session, "expense", datetime(2024, 3, 5), 1, 10, 1)
    accumulate_user_statistic(session, "expense", datetime(2024, 3, 6), 1, 20, 1)
    accumulate_user_statistic(session, "income", datetime(2024, 3, 6), 1, 30, 1)
    expenses = session.scalars(select(ExpenseUserStatistic).order_by(ExpenseUserStatistic.date)).all()
    assert [row.amount for row in expenses] == [10, 20]
    assert len(session.scalars(select(IncomeUserStatistic)).all()) == 1


def test_accumulate_invalid_kind_raises(session):
    with pytest.raises(ValueError):
        accumulate_user_statistic(session, "gift", datetime(2024, 1, 1), 1, 10, 1)


def test_accumulate_category(session):
    day = datetime(2024, 2, 1, 8)
    accumulate_category_statistic(session, "expense", day, 1, 7, 40, 1)
    accumulate_category_statistic(session, "expense", day, 1, 7, -15, 1)
    accumulate_category_statistic(session, "income", day, 1, 9, 5, 1)
    row = session.scalars(select(ExpenseCategoryStatistic)).one()
    assert (row.category_id, row.amount, row.count) == (7, 40 - 15, 2)
    assert session.scalars(select(IncomeCategoryStatistic)).one().category_id == 9


def test_statistic_model_selection():
    by_user = ForeignKeyCondition(user_id=1)
    by_category = ForeignKeyCondition(user_id=1, category_ids=[2])
    assert by_user.statistic_model("income") is IncomeUserStatistic
    assert by_user.statistic_model(IncomeExpense.EXPENSE) is ExpenseUserStatistic
    assert by_category.statistic_model("income") is IncomeCategoryStatistic
    assert by_category.statistic_model("expense") is ExpenseCategoryStatistic


def test_schema_creates_statistic_tables():
    engine = create_engine("sqlite://")
    init_schema(engine)
    tables = set(inspect(engine).get_table_names())
    engine.dispose()
    assert {
        "transaction_income_account_statistic",
        "transaction_expense_account_statistic",
        "transaction_income_category_statistic",
        "transaction_expense_category_statistic",
    } <= tables


def test_extension_condition_is_set():
    assert ExtensionCondition().is_set() is False
    assert ExtensionCondition(min_amount=1).is_set() is True
    assert ExtensionCondition(max_amount=5).is_set() is True


def test_time_condition_set_trade_times():
    condition = TimeCondition()
    start, end = datetime(2024, 1, 1), datetime(2024, 1, 31)
    condition.set_trade_times(start, end)
    assert (condition.trade_start_time, condition.trade_end_time) == (start, end)


def test_check_availability():
    assert StatisticCondition(user_id=1).check_availability() is True
    assert StatisticCondition(user_id=1, category_ids=[3]).check_availability() is True
    assert StatisticCondition(user_id=1, category_ids=[]).check_availability() is False


def test_builder():
    start, end = datetime(2024, 1, 1), datetime(2024, 2, 1)
    ids = [4, 5]
    condition = StatisticConditionBuilder(3).with_category_ids(ids).with_date(start, end).build()
    assert condition.user_id == 3
    assert condition.category_ids == ids
    assert (condition.start, condition.end) == (start, end)


def test_day_statistic_grouped_by_date(session):
    accumulate_user_statistic(session, "expense", datetime(2024, 4, 1, 10), 1, 10, 1)
    accumulate_user_statistic(session, "expense", datetime(2024, 4, 2, 10), 1, 25, 1)
    accumulate_user_statistic(session, "expense", datetime(2024, 4, 9, 10), 1, 99, 1)
    accumulate_user_statistic(session, "expense", datetime(2024, 4, 2, 10), 2, 77, 1)
    condition = (
        StatisticConditionBuilder(1)
        .with_date(datetime(2024, 4, 1, 23), datetime(2024, 4, 5))
        .build()
    )
    days = StatisticDao(session).get_day_statistic_by_condition("expense", condition)
    assert [day.date for day in days] == [datetime(2024, 4, 1), datetime(2024, 4, 2)]
    assert [day.amount for day in days] == [10, 25]


def test_day_statistic_unavailable_is_empty(session):
    condition = StatisticCondition(user_id=1, category_ids=[])
    assert StatisticDao(session).get_day_statistic_by_condition("income", condition) == []


def test_amount_count_by_condition(session):
    accumulate_category_statistic(session, "income", datetime(2024, 5, 1), 1, 3, 60, 1)
    accumulate_category_statistic(session, "income", datetime(2024, 5, 2), 1, 4, 40, 1)
    dao = StatisticDao(session)
    only_three = StatisticConditionBuilder(1).with_category_ids([3]).build()
    assert dao.get_amount_count_by_condition(only_three, "income") == AmountCount(60, 1)
    empty = StatisticConditionBuilder(1).with_category_ids([]).build()
    assert dao.get_amount_count_by_condition(empty, "income") == AmountCount()


def test_ie_statistic_both_and_single(session):
    accumulate_user_statistic(session, "income", datetime(2024, 6, 1), 1, 500, 1)
    accumulate_user_statistic(session, "expense", datetime(2024, 6, 1), 1, 120, 1)
    dao = StatisticDao(session)
    condition = StatisticCondition(user_id=1)
    both = dao.get_ie_statistic_by_condition(None, condition)
    assert both.income == AmountCount(500, 1)
    assert both.expense == AmountCount(120, 1)
    income_only = dao.get_ie_statistic_by_condition("income", condition)
    assert income_only.income == AmountCount(500, 1)
    assert income_only.expense == AmountCount()


def test_ie_statistic_rejects_empty_categories(session):
    with pytest.raises(ValueError):
        StatisticDao(session).get_ie_statistic_by_condition(
            None, StatisticCondition(user_id=1, category_ids=[])
        )


def test_total_statistics(session):
    accumulate_user_statistic(session, "income", datetime(2023, 1, 1), 1, 300, 1)
    accumulate_user_statistic(session, "income", datetime(2024, 1, 1), 1, 200, 1)
    accumulate_user_statistic(session, "expense", datetime(2024, 1, 1), 2, 50, 1)
    dao = StatisticDao(session)
    totals = dao.get_total_statistics(1)
    assert totals.income == AmountCount(300 + 200, 2)
    assert totals.expense == AmountCount()
    assert dao.get_total_statistics(2).expense == AmountCount(50, 1)


def test_category_amount_rank(session):
    accumulate_category_statistic(session, "expense", datetime(2024, 1, 3), 1, 1, 30, 1)
    accumulate_category_statistic(session, "expense", datetime(2024, 1, 4), 1, 2, 70, 1)
    accumulate_category_statistic(session, "expense", datetime(2024, 1, 5), 1, 1, 20, 1)
    accumulate_category_statistic(session, "expense", datetime(2024, 3, 5), 1, 1, 500, 1)
    dao = StatisticDao(session)
    start, end = datetime(2024, 1, 1), datetime(2024, 1, 31)
    ranks = dao.get_category_amount_rank("expense", 1, start, end)
    assert [rank.category_id for rank in ranks] == [2, 1]
    assert ranks[1].amount == 30 + 20
    assert ranks[1].count == 2
    limited = dao.get_category_amount_rank("expense", 1, start, end, limit=1)
    assert [rank.category_id for rank in limited] == [2]
    assert dao.get_category_amount_rank("income", 1, start, end) == []
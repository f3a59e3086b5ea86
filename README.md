# pocketledger

The core of a personal bookkeeping service, built on SQLAlchemy. It stores
income and expense categories and records transactions. It keeps per-day
statistics for each user and each category up to date. It also handles
friendships and friend invitations, comments on transactions that friends
share, and stored AI chat records and financial reports. Amounts are whole
cents.

## Modules

| Module | Purpose |
| --- | --- |
| `pocketledger.timetools` | Day, week, month and year boundaries (`to_day`, `first_second_of_week`, `last_second_of_month`, ...) and `split_days`, `split_weeks`, `split_months`, `split_years` |
| `pocketledger.datatools` | `to_map`, `extract_values`, `copy_reverse`, and a lock-guarded `ConcurrentMap` |
| `pocketledger.textdata` | `not_empty_string` and `copy_not_empty_string_optional`, which trim text and raise `DataIsEmptyError` for blank values |
| `pocketledger.jwttools` | `create_token`, `parse_token` and `parse_user_id_from_token` for HS256 tokens; failures raise `TokenError` |
| `pocketledger.cache` | The `Cache` interface, an in-process `LocalCache` with per-entry expiry, a `RedisCache`, and `convert_to_int` |
| `pocketledger.database` | The declarative `Base`, `init_schema`, and `exists`, `first_by_primary_key` and `first_by_field`; lookups raise `RecordNotFoundError` |
| `pocketledger.category` | `Category`, `IncomeExpense`, `CategoryDao`, `ListOptions`, `create_default_categories` |
| `pocketledger.user` | `User`, `Friend`, `FriendInvitation`, `UserLog`/`LogDao`, `TransactionShareConfig` with `enable_sharing`/`disable_sharing`/`is_record_shared`, and `UserDao` |
| `pocketledger.statistics` | Per-day statistic tables, `accumulate_user_statistic`, `accumulate_category_statistic`, query conditions and `StatisticDao` |
| `pocketledger.transaction` | `Transaction`, `TransactionInfo` with `check_valid`, `RecordType`, `TransactionDao` |
| `pocketledger.comment` | `Comment`, `CommentDao`, `CommentListOptions` |
| `pocketledger.ai` | `ChatRecord`/`ChatDao`, `FinancialReport`, `ReportType`, `create_report`, `get_report`, `get_history_report` |
| `pocketledger.category_service` | `CategoryService` |
| `pocketledger.transaction_service` | `TransactionService`, `StatisticService`, `calculate_periods`, `PeriodType` |
| `pocketledger.friend_service` | `FriendService`, which sends, accepts and refuses friend invitations |
| `pocketledger.auth` | `hash_password`, `make_claims`, `generate_jwt`, `authenticate`, `check_int` |

## Setting up a database

```python
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from pocketledger.database import init_schema

engine = create_engine("sqlite:///ledger.db")
init_schema(engine)

with Session(engine) as session:
    ...
    session.commit()
```

The data access classes and services take a `Session`. They flush their
changes but never commit them, so the caller decides when to commit. Deletes
of categories, transactions, comments and chat records set `deleted_at`.
Every lookup skips rows that have been deleted this way.
`CategoryDao.hard_delete` removes a category row for good.

## Recording transactions

```python
from datetime import datetime

from pocketledger.category import CategoryDao, IncomeExpense
from pocketledger.transaction import TransactionInfo
from pocketledger.transaction_service import TransactionService

category = CategoryDao(session).create(1, "Food", "food", IncomeExpense.EXPENSE)
info = TransactionInfo(
    user_id=1,
    category_id=category.id,
    income_expense=IncomeExpense.EXPENSE,
    amount=1250,
    trade_time=datetime(2024, 5, 6, 12, 0),
)
TransactionService().create(session, info)
```

`TransactionInfo.check_valid` raises `InvalidTransactionError` in three
cases: the category is missing, the amount is not positive, or the income or
expense kind differs from the category's. `TransactionService.create` and
`delete` keep the per-day user and category totals in step: `create` adds
the amount, and `delete` subtracts it. `update` adds the new content to the
totals and does not subtract the old content.

## Period statistics

`calculate_periods(period_type, start, end)` divides a range of days into
daily, weekly, monthly or yearly `PeriodRange` items. An unknown period type
counts as daily. The first period begins at its natural start, and the last
one is cut off at `end`. Labels look like `2024-01-02`, `2024-01` and `2024`.
A weekly label is the year and the month number of the week's Monday, for
example `2024-W01`. `StatisticService.get_period_statistics` returns one
`PeriodStatistic` per range. Each holds the income and expense totals read
from the per-day statistic tables.

## Tokens

```python
from pocketledger.auth import AuthError, authenticate, generate_jwt, make_claims

key = "secret"
signed = generate_jwt(make_claims(42), key)

user_id = authenticate("Bearer " + signed, key)   # -> 42

try:
    authenticate("Bearer token", key)
except AuthError as exc:
    print(exc.message)   # "Invalid token: ..."
```

`make_claims` issues claims that expire after 90 days. `authenticate` raises
`AuthError` when the header is empty, when it does not use the `Bearer`
scheme, or when the token is invalid, has expired, or has no numeric subject.

## Caches

`LocalCache` keeps entries in memory. A duration of `None` or zero uses the
two-hour default, and a negative duration never expires.
`LocalCache.increment` always raises `CacheError`. `RedisCache` needs a
running Redis server. Call `init()` to connect and ping it.

## Splitting time ranges

```python
from datetime import datetime

from pocketledger.timetools import split_months, to_day

for start, end in split_months(datetime(2024, 1, 15), datetime(2024, 3, 10)):
    print(start, end)

to_day(datetime(2024, 5, 6, 13, 30))  # -> 2024-05-06 00:00:00
```

## What this package does not do

It is a library only. It has no HTTP server, no routes or request handlers,
and no command to run. It does not generate AI chat answers or reports
either: `pocketledger.ai` only stores and retrieves them. Any web layer,
configuration loading and database setup beyond `init_schema` is left to
the application that uses the package.

## Running the tests

Install the `test` extra, then run `pytest` from the project root.
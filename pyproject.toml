[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pocketledger"
version = "0.1.0"
description = "Personal bookkeeping core on SQLAlchemy: categories, transactions, daily statistics, friends, comments and AI report storage."
requires-python = ">=3.10"
keywords = [
    "accounting",
    "bookkeeping",
    "ledger",
    "personal-finance",
    "statistics",
    "sqlalchemy",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Accounting",
    "Topic :: Database",
]
dependencies = [
    "sqlalchemy>=2.0",
    "pyjwt>=2.8",
    "bcrypt>=4.0",
    "redis>=5.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
]

[tool.hatch.build.targets.wheel]
packages = ["pocketledger"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

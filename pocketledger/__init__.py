"""Personal bookkeeping core: categories, transactions, daily statistics, friends, comments and AI report storage."""

__version__ = "0.1.0"
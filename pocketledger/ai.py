"""Stored AI chat records and generated financial reports."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union

from sqlalchemy import DateTime, Enum as SAEnum, String, Text, select, update
from sqlalchemy.orm import Mapped, Session, mapped_column

from pocketledger.database import Base, RecordNotFoundError


class ChatRecord(Base):
    """One question and answer exchanged in a chat session."""

    __tablename__ = "chat_record"

    id: Mapped[int] = mapped_column(primary_key=True)
    session_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    request_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    user_id: Mapped[int] = mapped_column(index=True, default=0)
    input: Mapped[str] = mapped_column(Text, default="")
    response: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, index=True, default=None)


def _limited(stmt, offset: int = 0, limit: Optional[int] = None):
    if offset > 0:
        stmt = stmt.offset(offset)
    if limit is not None and limit >= 0:
        stmt = stmt.limit(limit)
    return stmt


@dataclass
class ChatDao:
    """Data access for chat records."""

    session: Session

    def _live(self):
        return select(ChatRecord).where(ChatRecord.deleted_at.is_(None))

    def create(self, record: ChatRecord) -> ChatRecord:
        self.session.add(record)
        self.session.flush()
        return record

    def by_session(self, session_id: str, limit: Optional[int] = None) -> list[ChatRecord]:
        """Records of one session, oldest first."""
        stmt = (
            self._live()
            .where(ChatRecord.session_id == session_id)
            .order_by(ChatRecord.created_at.asc(), ChatRecord.id.asc())
        )
        return list(self.session.scalars(_limited(stmt, limit=limit)))

    def by_user(
        self, user_id: int, offset: int = 0, limit: Optional[int] = None
    ) -> list[ChatRecord]:
        """Records of one user, newest first."""
        stmt = (
            self._live()
            .where(ChatRecord.user_id == user_id)
            .order_by(ChatRecord.created_at.desc(), ChatRecord.id.desc())
        )
        return list(self.session.scalars(_limited(stmt, offset, limit)))

    def by_request(self, request_id: str) -> ChatRecord:
        stmt = (
            self._live()
            .where(ChatRecord.request_id == request_id)
            .order_by(ChatRecord.id)
            .limit(1)
        )
        record = self.session.scalars(stmt).first()
        if record is None:
            raise RecordNotFoundError()
        return record

    def delete_session(self, session_id: str) -> int:
        """Soft-delete every record of a session; return how many were deleted."""
        result = self.session.execute(
            update(ChatRecord)
            .where(ChatRecord.session_id == session_id, ChatRecord.deleted_at.is_(None))
            .values(deleted_at=datetime.now())
        )
        return result.rowcount

    def recent_by_user(
        self, user_id: int, days: int, limit: Optional[int] = None
    ) -> list[ChatRecord]:
        """Records of one user from the last ``days`` days, newest first."""
        start = datetime.now() - timedelta(days=days)
        stmt = (
            self._live()
            .where(ChatRecord.user_id == user_id, ChatRecord.created_at >= start)
            .order_by(ChatRecord.created_at.desc(), ChatRecord.id.desc())
        )
        return list(self.session.scalars(_limited(stmt, limit=limit)))


class ReportType(str, enum.Enum):
    """The period a financial report covers."""

    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class FinancialReport(Base):
    """A generated summary of a user's finances for one period."""

    __tablename__ = "financial_report"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(index=True)
    type: Mapped[ReportType] = mapped_column(
        SAEnum(
            ReportType,
            native_enum=False,
            length=10,
            values_callable=lambda cls: [member.value for member in cls],
        ),
        index=True,
    )
    period: Mapped[str] = mapped_column(String(32), index=True)
    start_time: Mapped[Optional[datetime]] = mapped_column(DateTime, default=None)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime, default=None)
    summary: Mapped[str] = mapped_column(Text, default="")
    suggestion: Mapped[str] = mapped_column(Text, default="")
    tags: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )


def create_report(session: Session, report: FinancialReport) -> FinancialReport:
    session.add(report)
    session.flush()
    return report


def get_report(
    session: Session, user_id: int, report_type: Union[ReportType, str], period: str
) -> FinancialReport:
    """Return the user's report of a type and period; raise RecordNotFoundError if none."""
    stmt = (
        select(FinancialReport)
        .where(
            FinancialReport.user_id == user_id,
            FinancialReport.type == ReportType(report_type),
            FinancialReport.period == period,
        )
        .order_by(FinancialReport.id)
        .limit(1)
    )
    report = session.scalars(stmt).first()
    if report is None:
        raise RecordNotFoundError()
    return report


def get_history_report(
    session: Session, user_id: int, report_type: Union[ReportType, str], period: str
) -> FinancialReport:
    """Look up a previously generated report."""
    return get_report(session, user_id, report_type, period)
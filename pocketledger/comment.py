"""Comments that friends leave on shared transactions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, func, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from pocketledger.database import Base, RecordNotFoundError
from pocketledger.transaction import Transaction
from pocketledger.user import UserDao, is_record_shared


class CommentPermissionError(PermissionError):
    """Raised when a user may not comment on a transaction."""


class CommentNotFoundError(RecordNotFoundError):
    """Raised when a comment does not exist or belongs to someone else."""

    def __init__(self, message: str = "comment not found or not owned by the user") -> None:
        super().__init__(message)


class Comment(Base):
    """A user's remark on another user's transaction."""

    __tablename__ = "comment"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(index=True, comment="评论者ID")
    target_user_id: Mapped[int] = mapped_column(index=True, comment="目标用户ID")
    transaction_id: Mapped[int] = mapped_column(index=True, comment="交易记录ID")
    content: Mapped[str] = mapped_column(String(500), default="", comment="评论内容")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, index=True, default=None)


@dataclass
class CommentListOptions:
    """Filtering, ordering and paging for comment lists."""

    user_id: Optional[int] = None
    target_user_id: Optional[int] = None
    transaction_id: Optional[int] = None
    order_by: str = ""
    order_desc: bool = False
    limit: int = 0
    offset: int = 0


def _live():
    return select(Comment).where(Comment.deleted_at.is_(None))


@dataclass
class CommentDao:
    """Data access for comments."""

    session: Session

    def create(
        self, user_id: int, target_user_id: int, transaction_id: int, content: str
    ) -> Comment:
        self.check_comment_permission(user_id, target_user_id, transaction_id)
        comment = Comment(
            user_id=user_id,
            target_user_id=target_user_id,
            transaction_id=transaction_id,
            content=content,
        )
        self.session.add(comment)
        self.session.flush()
        return comment

    def check_comment_permission(
        self, user_id: int, target_user_id: int, transaction_id: int
    ) -> None:
        """Raise unless the users are friends and the target shares this transaction.

        RecordNotFoundError is raised when the target has no sharing settings.
        """
        if not UserDao(self.session).is_real_friend(user_id, target_user_id):
            raise CommentPermissionError("not friend relationship")
        if not is_record_shared(self.session, target_user_id):
            raise CommentPermissionError("target user has not shared transactions")
        owned = self.session.scalars(
            select(Transaction.id)
            .where(
                Transaction.id == transaction_id,
                Transaction.user_id == target_user_id,
                Transaction.deleted_at.is_(None),
            )
            .limit(1)
        ).first()
        if owned is None:
            raise CommentPermissionError("transaction not found or not owned by target user")

    def _owned(self, comment_id: int, user_id: int) -> Comment:
        comment = self.session.scalars(
            _live().where(Comment.id == comment_id, Comment.user_id == user_id).limit(1)
        ).first()
        if comment is None:
            raise CommentNotFoundError()
        return comment

    def delete(self, comment_id: int, user_id: int) -> None:
        """Soft-delete a comment written by ``user_id``."""
        comment = self._owned(comment_id, user_id)
        comment.deleted_at = datetime.now()
        self.session.flush()

    def update(self, comment_id: int, user_id: int, content: str) -> None:
        """Replace the text of a comment written by ``user_id``."""
        comment = self._owned(comment_id, user_id)
        comment.content = content
        self.session.flush()

    def list(self, options: CommentListOptions) -> list[Comment]:
        stmt = _live()
        if options.user_id is not None:
            stmt = stmt.where(Comment.user_id == options.user_id)
        if options.target_user_id is not None:
            stmt = stmt.where(Comment.target_user_id == options.target_user_id)
        if options.transaction_id is not None:
            stmt = stmt.where(Comment.transaction_id == options.transaction_id)
        column = Comment.__table__.c.get(options.order_by or "created_at")
        if column is None:
            raise ValueError(f"unknown order field: {options.order_by}")
        if options.order_desc:
            stmt = stmt.order_by(column.desc(), Comment.id.desc())
        else:
            stmt = stmt.order_by(column.asc(), Comment.id.asc())
        if options.limit > 0:
            stmt = stmt.limit(options.limit)
        if options.offset > 0:
            stmt = stmt.offset(options.offset)
        return list(self.session.scalars(stmt))

    def get_transaction_comments(self, transaction_id: int) -> list[Comment]:
        """Comments on a transaction, newest first."""
        stmt = (
            _live()
            .where(Comment.transaction_id == transaction_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        )
        return list(self.session.scalars(stmt))

    def get_comment_by_id(self, comment_id: int) -> Comment:
        comment = self.session.scalars(_live().where(Comment.id == comment_id).limit(1)).first()
        if comment is None:
            raise CommentNotFoundError("comment not found")
        return comment

    def count_by_transaction(self, transaction_id: int) -> int:
        return self.session.scalar(
            select(func.count())
            .select_from(Comment)
            .where(Comment.transaction_id == transaction_id, Comment.deleted_at.is_(None))
        )
"""Users, friendships, friend invitations, activity logs and sharing settings."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SAEnum,
    Integer,
    String,
    UniqueConstraint,
    and_,
    func,
    or_,
    select,
    update,
)
from sqlalchemy.orm import Mapped, Session, mapped_column

from pocketledger.database import Base, RecordNotFoundError


class EmailExistsError(ValueError):
    """Raised when an e-mail address is already registered."""

    def __init__(self, message: str = "The email have already exists.") -> None:
        super().__init__(message)


class DuplicateInvitationError(ValueError):
    """Raised when an invitation between the same two users already exists."""

    def __init__(self, message: str = "friend invitation already exists") -> None:
        super().__init__(message)


class AddMode(str, enum.Enum):
    """How a friendship came about."""

    FRIEND_INVITATION = "frinedInvitation"


class FriendInvitationStatus(enum.IntEnum):
    """Lifecycle of a friend invitation."""

    WAITING = 0
    ACCEPT = 1
    REFUSE = 2


def _enum_values(enum_class: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_class]


class User(Base):
    """A registered account."""

    __tablename__ = "user"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(128), default="")
    password: Mapped[str] = mapped_column(String(64), default="")
    email: Mapped[str] = mapped_column(String(64), unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, index=True, default=None)


@dataclass(frozen=True)
class UserInfo:
    """The public part of a user."""

    id: int
    username: str
    email: str


@dataclass
class UserCondition:
    """Filter and paging for user lookups.

    ``like_prefix_username`` is used as an SQL LIKE pattern; a ``limit`` of
    None means no limit.
    """

    id: Optional[int] = None
    like_prefix_username: Optional[str] = None
    offset: int = 0
    limit: Optional[int] = None


class Friend(Base):
    """One direction of a friendship: ``friend_id`` is a friend of ``user_id``."""

    __tablename__ = "user_friend"
    __table_args__ = (UniqueConstraint("user_id", "friend_id", name="idx_friend_mapping"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column()
    friend_id: Mapped[int] = mapped_column()
    add_mode: Mapped[AddMode] = mapped_column(
        SAEnum(AddMode, native_enum=False, length=32, values_callable=_enum_values),
        default=AddMode.FRIEND_INVITATION,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, index=True, default=None)


class FriendInvitation(Base):
    """A request from ``inviter`` to become friends with ``invitee``."""

    __tablename__ = "user_friend_invitation"
    __table_args__ = (
        UniqueConstraint("inviter", "invitee", name="idx_invitation_mapping"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    inviter: Mapped[int] = mapped_column()
    invitee: Mapped[int] = mapped_column()
    status: Mapped[int] = mapped_column(Integer, default=FriendInvitationStatus.WAITING)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, index=True, default=None)

    def _reload_shared(self, session: Session) -> None:
        session.refresh(self, with_for_update={"read": True})

    def _require_waiting(self) -> None:
        if FriendInvitationStatus(self.status) is not FriendInvitationStatus.WAITING:
            raise ValueError("unexpected invitation status")

    def update_status(self, status: FriendInvitationStatus, session: Session) -> None:
        """Store a new status for this invitation."""
        self.status = FriendInvitationStatus(status)
        session.flush()

    def add_friends(self, session: Session) -> tuple[Friend, Friend]:
        """Record the friendship in both directions; return (inviter's, invitee's)."""
        self._reload_shared(session)
        dao = UserDao(session)
        inviter_friend = dao.add_friend(self.inviter, self.invitee, AddMode.FRIEND_INVITATION)
        invitee_friend = dao.add_friend(self.invitee, self.inviter, AddMode.FRIEND_INVITATION)
        return inviter_friend, invitee_friend

    def accept(self, session: Session) -> tuple[Friend, Friend]:
        """Accept a waiting invitation and make both users friends."""
        self._reload_shared(session)
        self._require_waiting()
        self.update_status(FriendInvitationStatus.ACCEPT, session)
        return self.add_friends(session)

    def refuse(self, session: Session) -> None:
        """Refuse a waiting invitation."""
        self._reload_shared(session)
        self._require_waiting()
        self.update_status(FriendInvitationStatus.REFUSE, session)


class UserLog(Base):
    """A record of an action a user took."""

    __tablename__ = "user_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(nullable=False, comment="用户id")
    action: Mapped[str] = mapped_column(String(32), nullable=False, comment="操作")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)


@dataclass
class LogDao:
    """Data access for user activity logs."""

    session: Session

    def add(self, user: User, action: Any) -> UserLog:
        entry = UserLog(user_id=user.id, action=str(getattr(action, "value", action)))
        self.session.add(entry)
        self.session.flush()
        return entry


class TransactionShareConfig(Base):
    """Whether a user shares their transactions with friends."""

    __tablename__ = "transaction_share_config"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(unique=True)
    is_shared: Mapped[bool] = mapped_column(
        Boolean, default=False, comment="whether is shared to friends"
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, index=True, default=None)


def is_record_shared(session: Session, user_id: int) -> bool:
    """Return the user's sharing flag; raise RecordNotFoundError if unset."""
    stmt = (
        select(TransactionShareConfig)
        .where(
            TransactionShareConfig.user_id == user_id,
            TransactionShareConfig.deleted_at.is_(None),
        )
        .order_by(TransactionShareConfig.id)
        .limit(1)
    )
    config = session.scalars(stmt).first()
    if config is None:
        raise RecordNotFoundError()
    return config.is_shared


def _set_sharing(session: Session, user_id: int, shared: bool) -> None:
    session.execute(
        update(TransactionShareConfig)
        .where(
            TransactionShareConfig.user_id == user_id,
            TransactionShareConfig.deleted_at.is_(None),
        )
        .values(is_shared=shared, updated_at=datetime.now())
        .execution_options(synchronize_session="fetch")
    )


def enable_sharing(session: Session, user_id: int) -> None:
    """Turn sharing on for an existing configuration."""
    _set_sharing(session, user_id, True)


def disable_sharing(session: Session, user_id: int) -> None:
    """Turn sharing off for an existing configuration."""
    _set_sharing(session, user_id, False)


@dataclass
class UserDao:
    """Data access for users, friends and friend invitations."""

    session: Session

    def _first_user(self, *criteria: Any) -> User:
        stmt = (
            select(User)
            .where(*criteria, User.deleted_at.is_(None))
            .order_by(User.id)
            .limit(1)
        )
        user = self.session.scalars(stmt).first()
        if user is None:
            raise RecordNotFoundError()
        return user

    def add_user(self, username: str, password: str, email: str) -> User:
        user = User(username=username, password=password, email=email)
        self.session.add(user)
        self.session.flush()
        return user

    def select_by_id(self, user_id: int) -> User:
        return self._first_user(User.id == user_id)

    def check_email(self, email: str) -> None:
        """Raise EmailExistsError when a live user already has ``email``."""
        stmt = select(User.id).where(User.email == email, User.deleted_at.is_(None)).limit(1)
        if self.session.scalars(stmt).first() is not None:
            raise EmailExistsError()

    def select_user_info_by_id(self, user_id: int) -> UserInfo:
        user = self._first_user(User.id == user_id)
        return UserInfo(id=user.id, username=user.username, email=user.email)

    def pluck_name_by_id(self, user_id: int) -> str:
        """Return the user's name, or an empty string when there is no such user."""
        stmt = (
            select(User.username)
            .where(User.id == user_id, User.deleted_at.is_(None))
            .limit(1)
        )
        name = self.session.scalars(stmt).first()
        return name or ""

    def select_by_email(self, email: str) -> User:
        return self._first_user(User.email == email)

    def select_user_info_by_condition(self, condition: UserCondition) -> list[UserInfo]:
        stmt = select(User.id, User.username, User.email).where(User.deleted_at.is_(None))
        if condition.id is not None:
            stmt = stmt.where(User.id == condition.id)
        if condition.like_prefix_username is not None:
            stmt = stmt.where(User.username.like(condition.like_prefix_username))
        stmt = stmt.order_by(User.id)
        if condition.offset > 0:
            stmt = stmt.offset(condition.offset)
        if condition.limit is not None and condition.limit >= 0:
            stmt = stmt.limit(condition.limit)
        return [
            UserInfo(id=row.id, username=row.username, email=row.email)
            for row in self.session.execute(stmt)
        ]

    def create_friend_invitation(self, inviter: int, invitee: int) -> FriendInvitation:
        """Create a waiting invitation; raise DuplicateInvitationError if one exists."""
        existing = self.session.scalars(
            select(FriendInvitation.id)
            .where(FriendInvitation.inviter == inviter, FriendInvitation.invitee == invitee)
            .limit(1)
        ).first()
        if existing is not None:
            raise DuplicateInvitationError()
        invitation = FriendInvitation(
            inviter=inviter, invitee=invitee, status=FriendInvitationStatus.WAITING
        )
        self.session.add(invitation)
        self.session.flush()
        return invitation

    def select_friend_invitation(
        self, inviter: int, invitee: int
    ) -> Optional[FriendInvitation]:
        """Return the live invitation between the two users, or None."""
        stmt = (
            select(FriendInvitation)
            .where(
                FriendInvitation.inviter == inviter,
                FriendInvitation.invitee == invitee,
                FriendInvitation.deleted_at.is_(None),
            )
            .order_by(FriendInvitation.id)
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def select_friend_invitation_list(
        self, inviter: Optional[int] = None, invitee: Optional[int] = None
    ) -> list[FriendInvitation]:
        stmt = select(FriendInvitation).where(FriendInvitation.deleted_at.is_(None))
        if inviter is not None:
            stmt = stmt.where(FriendInvitation.inviter == inviter)
        if invitee is not None:
            stmt = stmt.where(FriendInvitation.invitee == invitee)
        return list(self.session.scalars(stmt.order_by(FriendInvitation.id)))

    def select_friend(self, user_id: int, friend_id: int) -> Friend:
        stmt = (
            select(Friend)
            .where(
                Friend.user_id == user_id,
                Friend.friend_id == friend_id,
                Friend.deleted_at.is_(None),
            )
            .order_by(Friend.id)
            .limit(1)
        )
        friend = self.session.scalars(stmt).first()
        if friend is None:
            raise RecordNotFoundError()
        return friend

    def is_real_friend(self, user_id: int, friend_id: int) -> bool:
        """Return whether the friendship is recorded in both directions."""
        count = self.session.scalar(
            select(func.count())
            .select_from(Friend)
            .where(
                Friend.deleted_at.is_(None),
                or_(
                    and_(Friend.user_id == user_id, Friend.friend_id == friend_id),
                    and_(Friend.friend_id == user_id, Friend.user_id == friend_id),
                ),
            )
        )
        return count == 2

    def add_friend(self, user_id: int, friend_id: int, add_mode: AddMode) -> Friend:
        """Record ``friend_id`` as a friend of ``user_id``; return the existing row if any."""
        existing = self.session.scalars(
            select(Friend)
            .where(Friend.user_id == user_id, Friend.friend_id == friend_id)
            .limit(1)
        ).first()
        if existing is not None:
            return self.select_friend(user_id, friend_id)
        friend = Friend(user_id=user_id, friend_id=friend_id, add_mode=AddMode(add_mode))
        self.session.add(friend)
        self.session.flush()
        return friend

    def select_friend_list(self, user_id: int) -> list[Friend]:
        stmt = (
            select(Friend)
            .where(Friend.user_id == user_id, Friend.deleted_at.is_(None))
            .order_by(Friend.id)
        )
        return list(self.session.scalars(stmt))

    def update_username(self, user_id: int, username: str) -> None:
        if username == "":
            raise ValueError("username cannot be empty")
        self.session.execute(
            update(User)
            .where(User.id == user_id, User.deleted_at.is_(None))
            .values(username=username, updated_at=datetime.now())
            .execution_options(synchronize_session="fetch")
        )
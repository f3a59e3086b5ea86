"""Sending, accepting and refusing friend invitations."""

from __future__ import annotations

from sqlalchemy.orm import Session

from pocketledger.database import RecordNotFoundError
from pocketledger.user import (
    DuplicateInvitationError,
    Friend,
    FriendInvitation,
    FriendInvitationStatus,
    User,
    UserDao,
)


class FriendService:
    """Friend invitation workflows, each run in its own savepoint."""

    def create_invitation(
        self, session: Session, inviter: User, invitee: User
    ) -> FriendInvitation:
        """Invite ``invitee``; an earlier invitation that was answered is reopened."""
        with session.begin_nested():
            dao = UserDao(session)
            try:
                return dao.create_friend_invitation(inviter.id, invitee.id)
            except DuplicateInvitationError:
                pass
            invitation = dao.select_friend_invitation(inviter.id, invitee.id)
            if invitation is None:
                raise RecordNotFoundError("friend invitation not found")
            if dao.is_real_friend(inviter.id, invitee.id):
                return invitation
            if FriendInvitationStatus(invitation.status) is not FriendInvitationStatus.WAITING:
                invitation.update_status(FriendInvitationStatus.WAITING, session)
            return invitation

    def accept_invitation(
        self, session: Session, invitation: FriendInvitation
    ) -> tuple[Friend, Friend]:
        """Accept the invitation; return the inviter's and the invitee's friend rows."""
        with session.begin_nested():
            return invitation.accept(session)

    def refuse_invitation(self, session: Session, invitation: FriendInvitation) -> None:
        with session.begin_nested():
            invitation.refuse(session)
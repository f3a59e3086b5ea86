import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from pocketledger.database import init_schema
from pocketledger.friend_service import FriendService
from pocketledger.user import FriendInvitationStatus, UserDao


@pytest.fixture
def session():
    engine = create_engine("sqlite://")
    init_schema(engine)
    with Session(engine) as db:
        yield db


@pytest.fixture
def users(session):
    dao = UserDao(session)
    password = "password"
    alice = dao.add_user("alice", password, "alice@example.com")
    bob = dao.add_user("bob", password, "bob@example.com")
    return alice, bob


def test_create_invitation_waits(session, users):
    alice, bob = users
    invitation = FriendService().create_invitation(session, alice, bob)
    assert invitation.inviter == alice.id
    assert invitation.invitee == bob.id
    assert invitation.status == FriendInvitationStatus.WAITING


def test_accept_makes_friends(session, users):
    alice, bob = users
    service = FriendService()
    invitation = service.create_invitation(session, alice, bob)
    inviter_friend, invitee_friend = service.accept_invitation(session, invitation)
    assert (inviter_friend.user_id, inviter_friend.friend_id) == (alice.id, bob.id)
    assert (invitee_friend.user_id, invitee_friend.friend_id) == (bob.id, alice.id)
    assert UserDao(session).is_real_friend(alice.id, bob.id)
    assert invitation.status == FriendInvitationStatus.ACCEPT


def test_accept_twice_fails(session, users):
    alice, bob = users
    service = FriendService()
    invitation = service.create_invitation(session, alice, bob)
    service.accept_invitation(session, invitation)
    with pytest.raises(ValueError):
        service.accept_invitation(session, invitation)


def test_refuse(session, users):
    alice, bob = users
    service = FriendService()
    invitation = service.create_invitation(session, alice, bob)
    service.refuse_invitation(session, invitation)
    assert invitation.status == FriendInvitationStatus.REFUSE
    assert not UserDao(session).is_real_friend(alice.id, bob.id)
    with pytest.raises(ValueError):
        service.refuse_invitation(session, invitation)


def test_reinvite_after_refusal_reopens(session, users):
    alice, bob = users
    service = FriendService()
    first = service.create_invitation(session, alice, bob)
    service.refuse_invitation(session, first)
    second = service.create_invitation(session, alice, bob)
    assert second.id == first.id
    assert second.status == FriendInvitationStatus.WAITING


def test_reinvite_existing_friends_keeps_status(session, users):
    alice, bob = users
    service = FriendService()
    first = service.create_invitation(session, alice, bob)
    service.accept_invitation(session, first)
    again = service.create_invitation(session, alice, bob)
    assert again.id == first.id
    assert again.status == FriendInvitationStatus.ACCEPT
from __future__ import annotations

import datetime
from uuid import uuid4

import pytest

from learnhub.core.errors import AccessDeniedError, InvalidInputError, NotFoundError
from learnhub.models.message import Message
from learnhub.models.user import User
from learnhub.repos.bundle import Repos
from learnhub.services import message_service
from tests.conftest import run


def _user(repos: Repos, phone: str = "+15550000001") -> User:
    user = User.new(phone_number=phone, password_hash="x")
    run(repos.users.add(user))
    return user


def _direct(repos: Repos, recipient: User, title: str = "Hi") -> Message:
    return run(
        message_service.create_direct_message(
            repos,
            recipient_id=recipient.id,
            title=title,
            content="Hello there",
            created_by_id=None,
        )
    )


def _announce(repos: Repos, title: str = "News") -> Message:
    return run(
        message_service.create_announcement(
            repos, title=title, content="For everyone", created_by_id=None
        )
    )


def test_unread_counts_announcements_and_own_direct(repos: Repos) -> None:
    ada, bo = _user(repos), _user(repos, "+15550000002")
    _announce(repos)
    _direct(repos, ada)
    _direct(repos, bo)

    assert run(message_service.get_unread_count(repos, ada.id)) == 2
    assert run(message_service.get_unread_count(repos, bo.id)) == 2


def test_system_messages_are_private(repos: Repos) -> None:
    ada, bo = _user(repos), _user(repos, "+15550000002")
    run(
        message_service.create_system_message(
            repos, recipient_id=ada.id, title="Done", content="Well done"
        )
    )

    assert run(message_service.get_unread_count(repos, ada.id)) == 1
    assert run(message_service.get_unread_count(repos, bo.id)) == 0


def test_mark_as_read_twice_keeps_one_receipt(repos: Repos) -> None:
    ada = _user(repos)
    m = _announce(repos)

    assert run(message_service.mark_as_read(repos, m.id, ada.id)) is False
    assert run(message_service.mark_as_read(repos, m.id, ada.id)) is True

    assert run(message_service.get_unread_count(repos, ada.id)) == 0
    assert run(repos.messages.read_counts([m.id])) == {m.id: 1}


def test_announcement_read_state_is_per_user(repos: Repos) -> None:
    ada, bo = _user(repos), _user(repos, "+15550000002")
    m = _announce(repos)

    run(message_service.mark_as_read(repos, m.id, ada.id))

    assert run(message_service.get_unread_count(repos, ada.id)) == 0
    assert run(message_service.get_unread_count(repos, bo.id)) == 1


def test_mark_as_read_someone_elses_direct_message(repos: Repos) -> None:
    ada, bo = _user(repos), _user(repos, "+15550000002")
    m = _direct(repos, ada)

    with pytest.raises(AccessDeniedError):
        run(message_service.mark_as_read(repos, m.id, bo.id))
    assert run(repos.messages.read_counts([m.id])) == {m.id: 0}


def test_mark_as_read_unknown_message(repos: Repos) -> None:
    with pytest.raises(NotFoundError, match="Message not found"):
        run(message_service.mark_as_read(repos, uuid4(), uuid4()))


def test_direct_message_to_unknown_user(repos: Repos) -> None:
    with pytest.raises(NotFoundError, match="Recipient not found"):
        run(
            message_service.create_direct_message(
                repos, recipient_id=uuid4(), title="Hi", content="x", created_by_id=None
            )
        )


@pytest.mark.parametrize(("title", "content"), [("", "body"), ("Title", "   ")])
def test_blank_text_is_rejected(repos: Repos, title: str, content: str) -> None:
    with pytest.raises(InvalidInputError):
        run(
            message_service.create_announcement(
                repos, title=title, content=content, created_by_id=None
            )
        )


def test_inbox_is_newest_first_with_read_flags(repos: Repos) -> None:
    ada = _user(repos)
    base = datetime.datetime(2026, 6, 1, tzinfo=datetime.UTC)
    old = Message.new(type="ANNOUNCEMENT", title="Old", content="x", created_at=base)
    new = Message.new(
        type="DIRECT",
        title="New",
        content="x",
        recipient_id=ada.id,
        created_at=base + datetime.timedelta(days=1),
    )
    run(repos.messages.add(old))
    run(repos.messages.add(new))
    run(message_service.mark_as_read(repos, old.id, ada.id))

    page = run(message_service.list_user_messages(repos, ada.id))

    assert page.total == 2
    assert [(m.message.title, m.is_read) for m in page.items] == [
        ("New", False),
        ("Old", True),
    ]
    assert page.items[1].read_at is not None


def test_inbox_pagination(repos: Repos) -> None:
    ada = _user(repos)
    for i in range(5):
        _announce(repos, f"News {i}")

    page = run(message_service.list_user_messages(repos, ada.id, page=2, page_size=2))

    assert page.total == 5
    assert len(page.items) == 2


def test_list_all_messages_reports_read_counts(repos: Repos) -> None:
    ada, bo = _user(repos), _user(repos, "+15550000002")
    m = _announce(repos)
    run(message_service.mark_as_read(repos, m.id, ada.id))
    run(message_service.mark_as_read(repos, m.id, bo.id))

    page = run(message_service.list_all_messages(repos))

    assert [(s.message.id, s.read_count) for s in page.items] == [(m.id, 2)]

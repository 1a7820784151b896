# Test fixtures: in-memory SQLite and fake channels

import asyncio
from decimal import Decimal
from typing import Optional

import pytest
from aiogram.exceptions import TelegramBadRequest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from database import Base, Group, Parent, Student, create_session_factory
from sms import SmsError


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def group(session_factory):
    async with session_factory() as db:
        group = Group(title="Ingliz tili A1", price=Decimal("50000"))
        db.add(group)
        await db.commit()
        return group


async def create_student(
    session_factory,
    group: Optional[Group] = None,
    balance: Decimal = Decimal(0),
    parents: tuple = (("1001", "998901234567"),),
    frozen: bool = False,
    is_deleted: bool = False,
    first_name: str = "Ali",
    last_name: str = "Valiyev",
) -> Student:
    """Ученик с родителями: parents = ((chat_id, phone), ...)."""
    async with session_factory() as db:
        student = Student(
            first_name=first_name,
            last_name=last_name,
            balance=balance,
            frozen=frozen,
            is_deleted=is_deleted,
            group_id=group.id if group else None,
        )
        student.parents = [
            Parent(full_name="Ota-ona", telegram_id=chat_id, phone_number=phone)
            for chat_id, phone in parents
        ]
        db.add(student)
        await db.commit()
        return student


@pytest.fixture
def make_student(session_factory):
    async def _make(**kwargs) -> Student:
        return await create_student(session_factory, **kwargs)
    return _make


class FakeBot:
    """Заменяет aiogram Bot: запоминает отправленное, умеет падать и зависать."""

    def __init__(self, fail_for: tuple = (), delay: float = 0):
        self.sent: list[tuple[str, str]] = []
        self.fail_for = set(fail_for)
        self.delay = delay

    async def send_message(self, chat_id, text, parse_mode=None):
        if self.delay:
            await asyncio.sleep(self.delay)
        if chat_id in self.fail_for:
            raise TelegramBadRequest(method=None, message="Bad Request: chat not found")
        self.sent.append((chat_id, text))


class FakeSms:
    """Заменяет SmsClient в dispatcher."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[dict] = []

    async def send_notification(self, notification_type, recipient, fields=None, variant=None):
        self.calls.append({
            "type": notification_type,
            "recipient": recipient,
            "fields": fields,
            "variant": variant,
        })
        if self.fail:
            raise SmsError("SMS provider error: HTTP 500")
        return True


@pytest.fixture
def fake_bot():
    return FakeBot()


@pytest.fixture
def fake_sms():
    return FakeSms()

# Database models

import datetime as dt
import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Базовый класс для всех моделей."""
    pass


# Получатель-заглушка: уведомление для всех родителей
BROADCAST_TELEGRAM_ID = "ALL"


class SalaryType(str, enum.Enum):
    """Тип зарплаты преподавателя."""
    FIXED = "FIXED"                # Фиксированная сумма
    PER_STUDENT = "PER_STUDENT"    # Ставка за ученика


class AttendanceStatus(str, enum.Enum):
    """Статус посещения."""
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"


class PerformanceStatus(str, enum.Enum):
    """Успеваемость на уроке."""
    GOOD = "GOOD"
    NORMAL = "NORMAL"
    BAD = "BAD"
    ABSENT = "ABSENT"   # Не было на уроке


class NotificationType(str, enum.Enum):
    """Причина уведомления."""
    ATTENDANCE_REMINDER = "ATTENDANCE_REMINDER"      # Пропуск урока
    PERFORMANCE_REMINDER = "PERFORMANCE_REMINDER"    # Серия хороших/плохих оценок
    PAYMENT_REMINDER = "PAYMENT_REMINDER"            # Долг по оплате
    TEST_RESULT_REMINDER = "TEST_RESULT_REMINDER"    # Результат теста
    BROADCAST = "BROADCAST"                          # Рассылка всем родителям
    OTHER = "OTHER"


class NotificationStatus(str, enum.Enum):
    """Статусы уведомления: WAITING → SENDING → SENT | ERROR."""
    WAITING = "WAITING"
    SENDING = "SENDING"
    SENT = "SENT"
    ERROR = "ERROR"


class Teacher(Base):
    """Преподаватель (только чтение для ядра)."""

    __tablename__ = "teachers"

    id: Mapped[int] = mapped_column(primary_key=True)

    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))
    phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    salary_type: Mapped[SalaryType] = mapped_column(Enum(SalaryType), default=SalaryType.FIXED)
    salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    groups: Mapped[list["Group"]] = relationship(back_populates="teacher")

    def __repr__(self) -> str:
        return f"<Teacher {self.id}: {self.first_name} {self.last_name}>"


class Group(Base):
    """Учебная группа."""

    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(primary_key=True)

    title: Mapped[str] = mapped_column(String(255))
    teacher_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("teachers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Цена урока для группы (если не задана, берётся DEFAULT_LESSON_PRICE)
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    teacher: Mapped[Optional["Teacher"]] = relationship(back_populates="groups")
    students: Mapped[list["Student"]] = relationship(back_populates="group")

    def __repr__(self) -> str:
        return f"<Group {self.id}: {self.title}>"


class Student(Base):
    """Ученик. Баланс может уходить в минус; удаление только мягкое."""

    __tablename__ = "students"

    id: Mapped[int] = mapped_column(primary_key=True)

    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))
    phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    frozen: Mapped[bool] = mapped_column(Boolean, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)

    group_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("groups.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    came_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    group: Mapped[Optional["Group"]] = relationship(back_populates="students")
    parents: Mapped[list["Parent"]] = relationship(
        back_populates="student",
        cascade="all, delete-orphan",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Student {self.id}: {self.full_name} balance={self.balance}>"


class Parent(Base):
    """Родитель (получатель уведомлений)."""

    __tablename__ = "parents"

    id: Mapped[int] = mapped_column(primary_key=True)

    student_id: Mapped[int] = mapped_column(
        ForeignKey("students.id", ondelete="CASCADE"),
        index=True,
    )
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Telegram chat id (строкой, как приходит от бота)
    telegram_id: Mapped[str] = mapped_column(String(64), index=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    student: Mapped["Student"] = relationship(back_populates="parents")

    def __repr__(self) -> str:
        return f"<Parent {self.id}: student={self.student_id} chat={self.telegram_id}>"


class Attendance(Base):
    """Отметка посещения: одна на ученика, группу и календарный день."""

    __tablename__ = "attendances"
    __table_args__ = (
        UniqueConstraint("student_id", "group_id", "date", name="uq_attendance_student_group_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    student_id: Mapped[int] = mapped_column(
        ForeignKey("students.id", ondelete="CASCADE"),
        index=True,
    )
    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        index=True,
    )

    # Календарный день в часовом поясе центра
    date: Mapped[dt.date] = mapped_column(Date, index=True)

    status: Mapped[AttendanceStatus] = mapped_column(Enum(AttendanceStatus))
    performance: Mapped[PerformanceStatus] = mapped_column(
        Enum(PerformanceStatus),
        default=PerformanceStatus.NORMAL,
    )

    # Серия оценок уже отправлена родителям
    performance_reported: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return (
            f"<Attendance {self.id}: student={self.student_id} group={self.group_id} "
            f"{self.date} {self.status.value}/{self.performance.value}>"
        )


class Notification(Base):
    """Исходящее уведомление. Журнал только на добавление, строки не удаляются."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True)

    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType),
        default=NotificationType.OTHER,
        index=True,
    )

    # Готовый текст, при отправке больше не шаблонизируется
    message: Mapped[str] = mapped_column(Text)

    # Chat id получателя или BROADCAST_TELEGRAM_ID
    telegram_id: Mapped[str] = mapped_column(String(64))

    # Телефон для SMS-дубля (если нужен)
    phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    # Именованные поля для SMS-шаблона
    sms_fields: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    # GOOD / BAD для выбора SMS-шаблона успеваемости
    sms_variant: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    status: Mapped[NotificationStatus] = mapped_column(
        Enum(NotificationStatus),
        default=NotificationStatus.WAITING,
        index=True,
    )
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    student_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("students.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    @property
    def is_broadcast(self) -> bool:
        return self.telegram_id == BROADCAST_TELEGRAM_ID

    def __repr__(self) -> str:
        return f"<Notification {self.id}: {self.type.value} -> {self.telegram_id} ({self.status.value})>"


class Config(Base):
    """Настройка ключ/значение (user_id = 0: глобальная)."""

    __tablename__ = "configs"
    __table_args__ = (
        UniqueConstraint("key", "user_id", name="uq_config_key_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    key: Mapped[str] = mapped_column(String(100), index=True)
    user_id: Mapped[int] = mapped_column(Integer, default=0)
    value: Mapped[str] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Config {self.key}[{self.user_id}]={self.value!r}>"

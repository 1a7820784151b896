# Pydantic schemas for notifications and config API

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from database.models import NotificationStatus, NotificationType, PerformanceStatus


class NotificationCreate(BaseModel):
    """Уведомление одному получателю (текст уже готов)."""

    type: NotificationType = Field(default=NotificationType.OTHER)
    telegram_id: str = Field(min_length=1, max_length=64, description="Chat ID получателя")
    message: str = Field(min_length=1, description="Готовый текст")
    phone_number: Optional[str] = Field(default=None, description="Телефон для SMS-дубля")
    sms_fields: Optional[dict[str, str]] = Field(default=None, description="Поля SMS-шаблона")
    sms_variant: Optional[PerformanceStatus] = Field(default=None, description="GOOD или BAD для PERFORMANCE_REMINDER")
    student_id: Optional[int] = None

    @field_validator("telegram_id", mode="before")
    @classmethod
    def coerce_chat_id(cls, v):
        """Chat ID может прийти числом."""
        if isinstance(v, int):
            return str(v)
        return v


class BroadcastCreate(BaseModel):
    """Рассылка всем родителям."""

    message: str = Field(min_length=1)


class PaymentReminderCreate(BaseModel):
    """Напоминание об оплате; без message берётся шаблон PAYMENT_REMINDER."""

    message: Optional[str] = None


class NotificationOut(BaseModel):
    """Строка журнала уведомлений."""

    id: int
    type: NotificationType
    message: str
    telegram_id: str
    phone_number: Optional[str] = None
    sms_variant: Optional[str] = None
    status: NotificationStatus
    error: Optional[str] = None
    student_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationPage(BaseModel):
    """Страница журнала."""

    total: int
    items: List[NotificationOut]


class ConfigSet(BaseModel):
    """Значение настройки (user_id=0: глобальная)."""

    key: str = Field(min_length=1, max_length=100)
    value: str
    user_id: int = Field(default=0, ge=0)

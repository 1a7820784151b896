# SMS provider client

import asyncio
import enum
import logging
import time
import uuid
from typing import Optional

import httpx

from config.settings import CHANNEL_SEND_TIMEOUT, SMS_BASE_URL, SMS_BASIC_AUTH_LOGIN, SMS_BASIC_AUTH_PASSWORD
from database.models import NotificationType, PerformanceStatus
from utils.metrics import api_request_duration
from utils.retry import api_retry, raise_for_retryable_status

from .phone import is_valid_phone_number, normalize_phone_number

logger = logging.getLogger(__name__)


class SmsTemplateId(str, enum.Enum):
    """ID шаблонов у SMS-провайдера."""
    ABSENT_NOTIFICATION = "82248"        # field1=имя, field2=дата
    GOOD_ATTENDANCE = "82249"            # field1=имя, ...
    POOR_ATTENDANCE = "82250"            # field1=имя, field2/3=даты
    TEST_RESULT_NOTIFICATION = "82251"
    DEBT_NOTIFICATION = "82252"          # field1=имя, field2=долг, field3=порог


# None: SMS для этого типа не отправляется
NOTIFICATION_TO_SMS_TEMPLATE: dict[NotificationType, Optional[SmsTemplateId]] = {
    NotificationType.ATTENDANCE_REMINDER: SmsTemplateId.ABSENT_NOTIFICATION,
    NotificationType.PAYMENT_REMINDER: SmsTemplateId.DEBT_NOTIFICATION,
    NotificationType.PERFORMANCE_REMINDER: SmsTemplateId.POOR_ATTENDANCE,
    NotificationType.TEST_RESULT_REMINDER: SmsTemplateId.TEST_RESULT_NOTIFICATION,
    NotificationType.BROADCAST: None,
    NotificationType.OTHER: None,
}


class SmsError(Exception):
    """Ошибка отправки SMS."""
    pass


class InvalidPhoneNumberError(SmsError):
    """Номер не приводится к 998XXXXXXXXX."""
    pass


def template_for(
    notification_type: NotificationType,
    variant: Optional[str] = None,
) -> Optional[SmsTemplateId]:
    """
    Шаблон SMS для типа уведомления.

    Для PERFORMANCE_REMINDER variant=GOOD выбирает шаблон хорошей успеваемости.
    """
    if notification_type == NotificationType.PERFORMANCE_REMINDER and variant == PerformanceStatus.GOOD.value:
        return SmsTemplateId.GOOD_ATTENDANCE
    return NOTIFICATION_TO_SMS_TEMPLATE.get(notification_type)


def pack_fields(fields: Optional[dict]) -> dict[str, str]:
    """
    Именованные поля → field1..fieldN провайдера.

    Порядок слотов = лексикографический порядок имён, поэтому имена
    выбираются так, чтобы сортировка совпадала с порядком в шаблоне
    (p1_name, p2_date, ...).
    """
    if not fields:
        return {}
    return {
        f"field{index}": "" if fields[key] is None else str(fields[key])
        for index, key in enumerate(sorted(fields), start=1)
    }


class SmsClient:
    """
    Клиент SMS-провайдера (JSON + Basic Auth).

    Без SMS_BASE_URL / логина / пароля клиент выключен: send_notification
    ничего не делает.
    """

    def __init__(
        self,
        base_url: str = SMS_BASE_URL,
        login: str = SMS_BASIC_AUTH_LOGIN,
        password: str = SMS_BASIC_AUTH_PASSWORD,
        timeout: float = CHANNEL_SEND_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.login = login
        self.password = password
        self.timeout = timeout
        self._transport = transport

        if not self.configured:
            logger.error("SMS configuration is missing (SMS_BASE_URL / SMS_BASIC_AUTH_*), SMS disabled")

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.login and self.password)

    @api_retry(max_attempts=3, min_wait=1, max_wait=5)
    async def _post(self, payload: dict) -> httpx.Response:
        async with httpx.AsyncClient(
            auth=(self.login, self.password),
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            transport=self._transport,
        ) as client:
            response = await client.post(self.base_url, json=payload)
            raise_for_retryable_status(response)
            return response

    async def send(
        self,
        template_id: SmsTemplateId,
        recipient: str,
        variables: Optional[dict[str, str]] = None,
    ) -> dict:
        """
        Отправить SMS по шаблону.

        Номер нормализуется и проверяется до запроса. Все попытки вместе
        ограничены self.timeout.
        """
        phone = normalize_phone_number(recipient)
        if not is_valid_phone_number(phone):
            raise InvalidPhoneNumberError(f"Invalid phone number format: {recipient} -> {phone}")

        payload = {
            "messages": [
                {
                    "template-id": SmsTemplateId(template_id).value,
                    "recipient": phone,
                    "message-id": uuid.uuid4().hex,
                    "variables": variables or {},
                }
            ]
        }

        logger.info(f"Sending SMS template {template_id.value} to {phone}")
        start = time.time()
        try:
            response = await asyncio.wait_for(self._post(payload), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise SmsError(f"SMS send timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise SmsError(f"SMS network error: {e}") from e
        except Exception as e:
            raise SmsError(str(e)) from e
        finally:
            api_request_duration.labels(service="sms").observe(time.time() - start)

        if response.status_code >= 400:
            raise SmsError(f"SMS provider error: HTTP {response.status_code} - {response.text[:200]}")

        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    async def send_notification(
        self,
        notification_type: NotificationType,
        recipient: str,
        fields: Optional[dict] = None,
        variant: Optional[str] = None,
    ) -> bool:
        """
        SMS-дубль уведомления.

        False: SMS не положено (нет шаблона для типа или клиент выключен).
        Ошибки отправки пробрасываются как SmsError.
        """
        template_id = template_for(notification_type, variant)
        if template_id is None:
            logger.debug(f"No SMS template for {notification_type.value}")
            return False
        if not self.configured:
            logger.warning(f"SMS disabled, {notification_type.value} SMS to {recipient} skipped")
            return False

        variables = pack_fields(fields)
        logger.info(f"SMS field mapping for template {template_id.value}: {variables}")
        await self.send(template_id, recipient, variables)
        return True

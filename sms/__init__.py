# SMS module

from .client import (
    NOTIFICATION_TO_SMS_TEMPLATE,
    InvalidPhoneNumberError,
    SmsClient,
    SmsError,
    SmsTemplateId,
    pack_fields,
    template_for,
)
from .phone import format_for_display, is_valid_phone_number, normalize_phone_number

__all__ = [
    "NOTIFICATION_TO_SMS_TEMPLATE",
    "InvalidPhoneNumberError",
    "SmsClient",
    "SmsError",
    "SmsTemplateId",
    "pack_fields",
    "template_for",
    "format_for_display",
    "is_valid_phone_number",
    "normalize_phone_number",
]

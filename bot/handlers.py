# Bot handlers

from aiogram import Router, types
from aiogram.filters import CommandStart

router = Router()


def chat_id_message(chat_id: int) -> str:
    return (
        "Assalomu alaykum! Bu bot orqali farzandingizning davomati va "
        "o'zlashtirishi haqida xabarlar keladi.\n\n"
        f"Sizning chat ID: <code>{chat_id}</code>\n"
        "Ushbu raqamni o'quv markazi administratoriga yuboring."
    )


@router.message(CommandStart())
async def cmd_start(message: types.Message):
    """Родитель узнаёт свой chat id для регистрации у администратора."""
    await message.answer(chat_id_message(message.chat.id), parse_mode="HTML")

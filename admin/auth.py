# Admin API authentication

import secrets
from collections import defaultdict
from datetime import datetime, timedelta

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from config.settings import ADMIN_PASSWORD, ADMIN_USERNAME

security = HTTPBasic()

# ═══════════════════════════════════════════════════════════════════
# Brute-force Protection
# ═══════════════════════════════════════════════════════════════════

# Хранилище неудачных попыток: IP -> [timestamps]
_failed_attempts: dict[str, list[datetime]] = defaultdict(list)

MAX_FAILED_ATTEMPTS = 5
ATTEMPT_WINDOW = timedelta(minutes=15)


def _get_client_ip(request: Request) -> str:
    """Получить IP клиента (учитывая прокси)."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


def _is_locked_out(ip: str) -> bool:
    """Проверить, заблокирован ли IP."""
    now = datetime.now()
    _failed_attempts[ip] = [t for t in _failed_attempts[ip] if now - t < ATTEMPT_WINDOW]
    return len(_failed_attempts[ip]) >= MAX_FAILED_ATTEMPTS


def verify_credentials(
    request: Request,
    credentials: HTTPBasicCredentials = Depends(security),
) -> str:
    """Dependency: проверка логина и пароля (HTTP Basic)."""
    ip = _get_client_ip(request)
    if _is_locked_out(ip):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Слишком много неудачных попыток. Попробуйте позже.",
        )

    correct_username = secrets.compare_digest(credentials.username, ADMIN_USERNAME)
    correct_password = secrets.compare_digest(credentials.password, ADMIN_PASSWORD)

    if not (correct_username and correct_password):
        _failed_attempts[ip].append(datetime.now())
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Неверный логин или пароль",
            headers={"WWW-Authenticate": "Basic"},
        )

    _failed_attempts.pop(ip, None)
    return credentials.username

# quillpost/services/google_service.py

"""
Проверка Google ID-токена через tokeninfo endpoint.
"""
import logging
from typing import Optional

import requests

from quillpost.config import settings

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10


def verify_google_id_token(id_token: str) -> Optional[dict]:
    """
    Вернуть профиль (email, name, picture) или None, если токен не принят.

    Токен должен быть выпущен для нашего GOOGLE_CLIENT_ID и с подтверждённой почтой.
    """
    if not settings.GOOGLE_CLIENT_ID:
        logger.warning("Google sign-in attempted but GOOGLE_CLIENT_ID is not set")
        return None

    try:
        response = requests.get(
            settings.GOOGLE_TOKENINFO_URL,
            params={"id_token": id_token},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as exc:
        logger.error("Google tokeninfo request failed: %s", exc)
        return None

    if response.status_code != 200:
        return None

    claims = response.json()
    if claims.get("aud") != settings.GOOGLE_CLIENT_ID:
        return None
    # tokeninfo отдаёт булевы значения строками
    if str(claims.get("email_verified")).lower() != "true" or not claims.get("email"):
        return None

    return {
        "email": claims["email"],
        "name": claims.get("name") or claims["email"].split("@")[0],
        "picture": claims.get("picture"),
    }

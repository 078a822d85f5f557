# quizhub/services/security.py
"""
Хэширование паролей, токены сессии и одноразовые коды сброса пароля
"""
import hashlib
import secrets
from datetime import datetime, timedelta, timezone

import jwt
from werkzeug.security import generate_password_hash, check_password_hash


class PasswordHasher:
    """
    Хэширование паролей через werkzeug.security

    Args:
        method (str): Метод и стоимость, например 'pbkdf2:sha256:600000' или 'scrypt:32768:8:1'
    """

    def __init__(self, method='pbkdf2:sha256:600000'):
        self.method = method

    def hash(self, secret):
        return generate_password_hash(secret, method=self.method)

    def verify(self, secret, digest):
        if not isinstance(secret, str) or not secret or not digest:
            return False
        return check_password_hash(digest, secret)


class TokenIssuer:
    """
    Выдача и проверка токенов сессии (JWT, HS256)

    Args:
        secret_key (str): Ключ подписи
        expires (timedelta): Срок действия токена
        algorithm (str): Алгоритм подписи
    """

    def __init__(self, secret_key, expires=timedelta(days=7), algorithm='HS256'):
        self.secret_key = secret_key
        self.expires = expires
        self.algorithm = algorithm

    def issue(self, user_id, now=None):
        now = now or datetime.now(timezone.utc)
        payload = {
            'sub': str(user_id),
            'iat': now,
            'exp': now + self.expires,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token):
        """
        Проверка токена

        Args:
            token (str): Токен сессии

        Returns:
            int: ID пользователя или None, если токен недействителен
        """
        if not token:
            return None
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
            return int(payload['sub'])
        except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
            return None


def generate_otp():
    """Шестизначный одноразовый код"""
    return f'{secrets.randbelow(900000) + 100000}'


def hash_otp(otp):
    return hashlib.sha256(otp.encode('utf-8')).hexdigest()

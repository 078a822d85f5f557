# config.py
import os
from datetime import timedelta


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Базовый класс конфигурации приложения"""

    # Название приложения
    APP_NAME = 'QuizHub'

    # Настройки безопасности
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'your-secret-key-here'
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or SECRET_KEY
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRES = timedelta(days=7)
    TOKEN_COOKIE_NAME = 'token'

    # Алгоритм хэширования паролей и его стоимость (см. werkzeug.security)
    PASSWORD_HASH_METHOD = os.environ.get('PASSWORD_HASH_METHOD') or 'pbkdf2:sha256:600000'
    PASSWORD_MIN_LENGTH = 6

    # Одноразовый код для сброса пароля
    RESET_OTP_TTL = timedelta(minutes=10)

    # Настройки базы данных
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///quizhub.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Повторы при конфликте параллельных отправок попыток
    SUBMIT_MAX_RETRIES = int(os.environ.get('SUBMIT_MAX_RETRIES', 5))

    # Почта
    MAIL_SERVER = os.environ.get('SMTP_HOST') or 'smtp.gmail.com'
    MAIL_PORT = int(os.environ.get('SMTP_PORT', 587))
    MAIL_USERNAME = os.environ.get('SMTP_USER')
    MAIL_PASSWORD = os.environ.get('SMTP_PASS')
    MAIL_USE_TLS = _env_bool('SMTP_USE_TLS', True)
    MAIL_DEFAULT_SENDER = '{} <{}>'.format(
        os.environ.get('FROM_NAME') or 'QuizHub',
        os.environ.get('FROM_EMAIL') or 'noreply@quizhub.local',
    )
    MAIL_SUPPRESS_SEND = _env_bool('MAIL_SUPPRESS_SEND', False)
    MAIL_TIMEOUT = 10

    # Указываем путь к каталогу с переводами
    BABEL_TRANSLATION_DIRECTORIES = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'translations')
    BABEL_DEFAULT_LOCALE = 'ru'  # Язык по умолчанию
    BABEL_DEFAULT_TIMEZONE = 'UTC'
    # Поддерживаемые языки
    LANGUAGES = {
        'ru': 'Русский',
        'en': 'English'
    }

    # Администратор по умолчанию создаётся только если заданы оба значения
    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL')
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD')

    # Показывать текст внутренних ошибок в ответах
    EXPOSE_ERROR_DETAILS = False

    # Постраничный вывод
    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100

    # Аналитика
    RECENT_ITEMS_SHORT = 5
    RECENT_ITEMS_LONG = 10
    PERFORMANCE_ATTEMPTS_LIMIT = 50


class DevelopmentConfig(Config):
    """Конфигурация для локальной разработки"""
    DEBUG = True
    EXPOSE_ERROR_DETAILS = True
    MAIL_SUPPRESS_SEND = True


class TestingConfig(Config):
    """Конфигурация для тестов: БД в памяти, быстрый хэш, без отправки почты"""
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    PASSWORD_HASH_METHOD = 'pbkdf2:sha256:1000'
    MAIL_SUPPRESS_SEND = True
    EXPOSE_ERROR_DETAILS = True
    ADMIN_EMAIL = None
    ADMIN_PASSWORD = None

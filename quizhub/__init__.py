# quizhub/__init__.py
"""
Инициализация Flask-приложения QuizHub
Создание экземпляра приложения, инициализация расширений и сервисов
"""
import sqlite3

from flask import Flask, current_app, session, has_request_context, request
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_babel import Babel
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from config import Config


# Инициализация расширений Flask (до create_app)
db = SQLAlchemy()
login_manager = LoginManager()
babel = Babel()


def get_services(app):
    """Сервисы приложения, собранные в create_app"""
    return app.extensions['quizhub']


def _token_from_request(cookie_name):
    """Токен из заголовка 'Authorization: Bearer ...' или из cookie"""
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header[len('Bearer '):].strip()
    return request.cookies.get(cookie_name)


def _set_sqlite_pragma(dbapi_connection, connection_record):
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_app(config_class=Config):
    """
    Создание и настройка экземпляра Flask-приложения

    Args:
        config_class: Класс конфигурации приложения

    Returns:
        app: Настроенный экземпляр Flask-приложения
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Инициализация расширений
    db.init_app(app)
    # === Включение внешних ключей для SQLite ===
    if 'sqlite' in app.config.get('SQLALCHEMY_DATABASE_URI'):
        if not event.contains(Engine, "connect", _set_sqlite_pragma):
            event.listen(Engine, "connect", _set_sqlite_pragma)

    # Сервисы получают сессию и внешние компоненты явно
    from quizhub.services import ServiceRegistry
    services = ServiceRegistry.from_config(db.session, app.config)
    app.extensions['quizhub'] = services

    # Аутентификация по токену сессии, без cookie-сессии Flask-Login
    login_manager.init_app(app)

    # === Babel: выбор языка ===
    def get_locale():
        languages = app.config.get('LANGUAGES', {})
        if not has_request_context():
            return app.config.get('BABEL_DEFAULT_LOCALE', 'ru')

        # 1. Сессия
        lang = session.get('language')
        if lang in languages:
            return lang

        # 2. Текущий пользователь (если есть и авторизован)
        from flask_login import current_user
        if current_user.is_authenticated and current_user.language in languages:
            return current_user.language

        # 3. Заголовок Accept-Language, затем язык по умолчанию
        return request.accept_languages.best_match(list(languages)) or app.config.get('BABEL_DEFAULT_LOCALE', 'ru')

    babel.init_app(app, locale_selector=get_locale)

    # === Регистрация Blueprints и обработчиков ошибок ===
    from quizhub.routes import register_routes
    register_routes(app)

    # === Инициализация БД ===
    with app.app_context():
        # Импорт моделей (чтобы SQLAlchemy их увидел)
        from quizhub import models  # noqa: F401

        db.create_all()
        _create_default_admin(app, services)

    return app


def _create_default_admin(app, services):
    """Администратор по умолчанию, если заданы ADMIN_EMAIL и ADMIN_PASSWORD"""
    from quizhub.models.user import User, ROLE_ADMIN

    email = User.normalize_email(app.config.get('ADMIN_EMAIL'))
    password = app.config.get('ADMIN_PASSWORD')
    if not email or not password:
        return

    if User.query.filter_by(email=email).first():
        return

    admin_user = User(
        name='Администратор',
        email=email,
        password_hash=services.users.hasher.hash(password),
        role=ROLE_ADMIN,
        email_verified=True,
    )
    db.session.add(admin_user)
    try:
        db.session.commit()
        app.logger.info("Создан администратор: %s", email)
    except SQLAlchemyError as e:
        db.session.rollback()
        app.logger.error("Ошибка создания администратора: %s", e)


# Функция загрузки пользователя по токену для Flask-Login
@login_manager.request_loader
def load_user_from_request(req):
    services = get_services(current_app)
    user_id = services.users.tokens.verify(_token_from_request(current_app.config.get('TOKEN_COOKIE_NAME', 'token')))
    if user_id is None:
        return None
    return services.users.load_user(user_id)

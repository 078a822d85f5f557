# quizhub/routes/auth.py
"""
Маршруты аутентификации: регистрация, вход, выход, сброс и смена пароля
"""
from flask import Blueprint, current_app
from flask_babel import _
from flask_login import current_user, login_required

from quizhub.routes import actor, json_body, services, success

# Создание Blueprint для маршрутов аутентификации
bp = Blueprint('auth', __name__)


def _with_token_cookie(response, token):
    """Токен дублируется в httpOnly cookie для браузерных клиентов"""
    body, status = response
    body.set_cookie(
        current_app.config.get('TOKEN_COOKIE_NAME', 'token'),
        token,
        max_age=int(current_app.config['JWT_EXPIRES'].total_seconds()),
        httponly=True,
        secure=not current_app.debug and not current_app.testing,
        samesite='Lax',
    )
    return body, status


@bp.route('/register', methods=['POST'])
def register():
    """Регистрация нового пользователя (всегда студент)"""
    data = json_body()
    result = services().users.register(
        data.get('name'), data.get('email'), data.get('password'), language=data.get('language'),
    )
    response = success(201, message=_('Пользователь успешно зарегистрирован'), **result)
    return _with_token_cookie(response, result['token'])


@bp.route('/login', methods=['POST'])
def login():
    data = json_body()
    result = services().users.login(data.get('email'), data.get('password'))
    response = success(message=_('Вход выполнен успешно'), **result)
    return _with_token_cookie(response, result['token'])


@bp.route('/logout', methods=['POST'])
def logout():
    body, status = success(message=_('Выход выполнен успешно'))
    body.delete_cookie(current_app.config.get('TOKEN_COOKIE_NAME', 'token'))
    return body, status


@bp.route('/me')
@login_required
def me():
    return success(user=current_user.to_dict())


@bp.route('/forgot-password', methods=['POST'])
def forgot_password():
    data = json_body()
    services().users.request_password_reset(data.get('email'))
    return success(message=_('Код для сброса пароля отправлен на почту'))


@bp.route('/reset-password', methods=['POST'])
def reset_password():
    data = json_body()
    services().users.reset_password(data.get('email'), data.get('otp'), data.get('password'))
    return success(message=_('Пароль успешно изменён'))


@bp.route('/change-password', methods=['POST'])
@login_required
def change_password():
    data = json_body()
    services().users.change_password(actor(), data.get('current_password'), data.get('new_password'))
    return success(message=_('Пароль успешно изменён'))

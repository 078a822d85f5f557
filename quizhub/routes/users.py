# quizhub/routes/users.py
"""
Маршруты управления пользователями
"""
from flask import Blueprint, request
from flask_babel import _
from flask_login import login_required

from quizhub.routes import actor, json_body, services, success

bp = Blueprint('users', __name__)


@bp.route('/')
@login_required
def list_users():
    """Список пользователей с фильтром по роли и поиском по имени и email"""
    result = services().users.list_users(
        actor(),
        role=request.args.get('role'),
        search=request.args.get('search'),
        page=request.args.get('page'),
        per_page=request.args.get('limit'),
    )
    return success(users=result.pop('items'), **result)


@bp.route('/<int:user_id>')
@login_required
def get_user(user_id):
    return success(user=services().users.get_user(actor(), user_id))


@bp.route('/', methods=['POST'])
@login_required
def create_user():
    data = json_body()
    user = services().users.create_user(
        actor(), data.get('name'), data.get('email'), data.get('password'), data.get('role'),
    )
    return success(201, message=_('Пользователь успешно создан'), user=user)


@bp.route('/<int:user_id>', methods=['PUT'])
@login_required
def update_user(user_id):
    user = services().users.update_user(actor(), user_id, json_body())
    return success(message=_('Пользователь успешно обновлён'), user=user)


@bp.route('/<int:user_id>', methods=['DELETE'])
@login_required
def delete_user(user_id):
    services().users.delete_user(actor(), user_id)
    return success(message=_('Пользователь успешно удалён'))

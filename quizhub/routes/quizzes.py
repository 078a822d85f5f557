# quizhub/routes/quizzes.py
"""
Маршруты квизов: управление, прохождение и просмотр попыток
"""
from flask import Blueprint, request
from flask_babel import _
from flask_login import login_required

from quizhub.routes import actor, json_body, services, success

bp = Blueprint('quizzes', __name__)


def _bool_arg(name):
    value = request.args.get(name)
    if value is None or value == '':
        return None
    return value.strip().lower() in ('1', 'true', 'yes')


@bp.route('/')
@login_required
def list_quizzes():
    """Список квизов с учётом роли"""
    result = services().quizzes.list_quizzes(
        actor(),
        subject=request.args.get('subject'),
        is_published=_bool_arg('is_published'),
        page=request.args.get('page'),
        per_page=request.args.get('limit'),
    )
    return success(quizzes=result.pop('items'), **result)


@bp.route('/<int:quiz_id>')
@login_required
def get_quiz(quiz_id):
    return success(**services().quizzes.get_quiz(actor(), quiz_id))


@bp.route('/', methods=['POST'])
@login_required
def create_quiz():
    quiz = services().quizzes.create_quiz(actor(), json_body())
    return success(201, message=_('Квиз успешно создан'), quiz=quiz)


@bp.route('/<int:quiz_id>', methods=['PUT'])
@login_required
def update_quiz(quiz_id):
    quiz = services().quizzes.update_quiz(actor(), quiz_id, json_body())
    return success(message=_('Квиз успешно обновлён'), quiz=quiz)


@bp.route('/<int:quiz_id>', methods=['DELETE'])
@login_required
def delete_quiz(quiz_id):
    services().quizzes.delete_quiz(actor(), quiz_id)
    return success(message=_('Квиз успешно удалён'))


@bp.route('/<int:quiz_id>/submit', methods=['POST'])
@login_required
def submit_quiz(quiz_id):
    """Отправка попытки; в ответе только итог, без разбора по вопросам"""
    data = json_body()
    result = services().scoring.submit(actor(), quiz_id, data.get('answers'), data.get('time_spent'))
    return success(message=_('Квиз успешно отправлен'), attempt=result)


@bp.route('/<int:quiz_id>/attempts')
@login_required
def list_attempts(quiz_id):
    result = services().quizzes.list_attempts(
        actor(), quiz_id, page=request.args.get('page'), per_page=request.args.get('limit'),
    )
    return success(attempts=result.pop('items'), **result)

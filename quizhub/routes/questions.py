# quizhub/routes/questions.py
"""
Маршруты банка вопросов
"""
from flask import Blueprint, request
from flask_babel import _
from flask_login import login_required

from quizhub.routes import actor, json_body, services, success

bp = Blueprint('questions', __name__)


@bp.route('/')
@login_required
def list_questions():
    result = services().questions.list_questions(
        actor(),
        subject=request.args.get('subject'),
        difficulty=request.args.get('difficulty'),
        search=request.args.get('search'),
        page=request.args.get('page'),
        per_page=request.args.get('limit'),
    )
    return success(questions=result.pop('items'), **result)


@bp.route('/subjects')
@login_required
def list_subjects():
    """Список предметов для выпадающих списков"""
    return success(subjects=services().questions.list_subjects(actor()))


@bp.route('/<int:question_id>')
@login_required
def get_question(question_id):
    return success(question=services().questions.get_question(actor(), question_id))


@bp.route('/', methods=['POST'])
@login_required
def create_question():
    question = services().questions.create_question(actor(), json_body())
    return success(201, message=_('Вопрос успешно создан'), question=question)


@bp.route('/<int:question_id>', methods=['PUT'])
@login_required
def update_question(question_id):
    question = services().questions.update_question(actor(), question_id, json_body())
    return success(message=_('Вопрос успешно обновлён'), question=question)


@bp.route('/<int:question_id>', methods=['DELETE'])
@login_required
def delete_question(question_id):
    services().questions.delete_question(actor(), question_id)
    return success(message=_('Вопрос успешно удалён'))

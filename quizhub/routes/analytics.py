# quizhub/routes/analytics.py
"""
Маршруты аналитики
"""
from flask import Blueprint, request
from flask_login import login_required

from quizhub.routes import actor, services, success

bp = Blueprint('analytics', __name__)


@bp.route('/dashboard')
@login_required
def dashboard():
    return success(stats=services().analytics.dashboard(actor()))


@bp.route('/student-performance')
@login_required
def student_performance():
    data = services().analytics.student_performance(
        actor(),
        student_id=request.args.get('student_id', type=int),
        quiz_id=request.args.get('quiz_id', type=int),
    )
    return success(performance_data=data)


@bp.route('/quiz-analytics/<int:quiz_id>')
@login_required
def quiz_analytics(quiz_id):
    return success(analytics=services().analytics.quiz_analytics(actor(), quiz_id))


@bp.route('/question-analytics/<int:question_id>')
@login_required
def question_analytics(question_id):
    return success(analytics=services().analytics.question_analytics(actor(), question_id))

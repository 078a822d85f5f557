# quizhub/services/analytics.py
"""
Аналитика: панели по ролям, успеваемость студентов, статистика квизов и вопросов
Все значения только читаются; агрегаты поддерживает движок подсчёта попыток
"""
from flask_babel import _
from sqlalchemy import or_

from quizhub.models.attempt import QuizAttempt, AttemptAnswer
from quizhub.models.question import Question
from quizhub.models.quiz import Quiz
from quizhub.models.user import User, ROLE_TEACHER, ROLE_STUDENT
from quizhub.services import policy
from quizhub.services.base import BaseService
from quizhub.utils.stats import mean, percent, round_half_up

# Корзины распределения процентов: (метка, нижняя граница включительно, верхняя исключительно)
SCORE_BUCKETS = (
    ('0-20', 0, 21),
    ('21-40', 21, 41),
    ('41-60', 41, 61),
    ('61-80', 61, 81),
    ('81-100', 81, 101),
)


def bucket_label(percentage):
    """
    Метка корзины для процента

    Args:
        percentage (int): Процент 0-100

    Returns:
        str: Метка корзины; ValueError для значения вне [0, 100]
    """
    for label, low, high in SCORE_BUCKETS:
        if low <= percentage < high:
            return label
    raise ValueError(f'percentage out of range: {percentage}')


def score_distribution(percentages):
    distribution = {label: 0 for label, _low, _high in SCORE_BUCKETS}
    for value in percentages:
        distribution[bucket_label(value)] += 1
    return distribution


def _attempt_row(attempt):
    return {
        'id': attempt.id,
        'student': attempt.student.to_summary() if attempt.student else None,
        'quiz': {'id': attempt.quiz.id, 'title': attempt.quiz.title} if attempt.quiz else None,
        'score': attempt.percentage,
        'passed': attempt.passed,
        'submitted_at': attempt.submitted_at.isoformat() if attempt.submitted_at else None,
    }


def _newest_first(query):
    return query.order_by(QuizAttempt.submitted_at.desc(), QuizAttempt.id.desc())


class AnalyticsService(BaseService):
    """Аналитика с учётом роли актора"""

    @property
    def _short(self):
        return self.config.get('RECENT_ITEMS_SHORT', 5)

    @property
    def _long(self):
        return self.config.get('RECENT_ITEMS_LONG', 10)

    # === Панель ===

    def dashboard(self, actor):
        """
        Сводка для панели пользователя

        Returns:
            dict: Набор показателей зависит от роли
        """
        policy.authorize(actor, policy.ANALYTICS_DASHBOARD)
        if actor.is_admin:
            return self._admin_dashboard()
        if actor.is_teacher:
            return self._teacher_dashboard(actor)
        return self._student_dashboard(actor)

    def _admin_dashboard(self):
        session = self.session
        return {
            'total_users': session.query(User).count(),
            'total_teachers': session.query(User).filter_by(role=ROLE_TEACHER).count(),
            'total_students': session.query(User).filter_by(role=ROLE_STUDENT).count(),
            'total_quizzes': session.query(Quiz).count(),
            'total_questions': session.query(Question).count(),
            'total_attempts': session.query(QuizAttempt).count(),
            'recent_users': [u.to_dict() for u in session.query(User)
                             .order_by(User.created_at.desc(), User.id.desc()).limit(self._short)],
            'recent_quizzes': [q.to_dict() for q in session.query(Quiz)
                               .order_by(Quiz.created_at.desc(), Quiz.id.desc()).limit(self._short)],
            'recent_questions': [q.to_dict() for q in session.query(Question)
                                 .order_by(Question.created_at.desc(), Question.id.desc()).limit(self._short)],
        }

    def _teacher_dashboard(self, actor):
        own_quizzes = self.session.query(Quiz).filter(Quiz.created_by == actor.id)
        own_attempts = (self.session.query(QuizAttempt).join(Quiz, QuizAttempt.quiz_id == Quiz.id)
                        .filter(Quiz.created_by == actor.id))
        top = own_quizzes.order_by(Quiz.average_score.desc(), Quiz.id.desc()).limit(self._short)
        return {
            'total_quizzes': own_quizzes.count(),
            'total_questions': self.session.query(Question).filter(Question.created_by == actor.id).count(),
            'total_attempts': own_attempts.count(),
            'published_quizzes': own_quizzes.filter(Quiz.is_published.is_(True)).count(),
            'recent_attempts': [_attempt_row(a) for a in _newest_first(own_attempts).limit(self._long)],
            'top_performing_quizzes': [
                {'id': q.id, 'title': q.title, 'average_score': q.average_score, 'total_attempts': q.total_attempts}
                for q in top
            ],
        }

    def _student_dashboard(self, actor):
        attempts = self.session.query(QuizAttempt).filter(QuizAttempt.student_id == actor.id)
        available = self.session.query(Quiz).filter(
            Quiz.is_published.is_(True),
            or_(~Quiz.allowed_students.any(), Quiz.allowed_students.any(User.id == actor.id)),
        )
        return {
            'total_attempts': attempts.count(),
            'average_score': actor.average_score or 0,
            'passed_quizzes': attempts.filter(QuizAttempt.passed.is_(True)).count(),
            'recent_attempts': [_attempt_row(a) for a in _newest_first(attempts).limit(self._long)],
            'available_quizzes': available.count(),
        }

    # === Успеваемость ===

    def student_performance(self, actor, student_id=None, quiz_id=None):
        """
        Успеваемость студентов по последним попыткам

        Область видимости: администратор все попытки, преподаватель попытки по своим квизам,
        студент только свои.

        Args:
            actor (User): Кто запрашивает
            student_id (int): Фильтр по студенту
            quiz_id (int): Фильтр по квизу

        Returns:
            list: [{'student', 'attempts', 'total_attempts', 'average_score', 'pass_rate'}]
        """
        policy.authorize(actor, policy.ANALYTICS_PERFORMANCE)

        student = None
        if actor.is_student and student_id is None:
            student_id = actor.id
        if student_id is not None:
            student = self._get_or_404(User, student_id, _('Пользователь не найден'))
            policy.authorize(actor, policy.ANALYTICS_PERFORMANCE, policy.Resource.of_user(student))

        query = self.session.query(QuizAttempt)
        if quiz_id is not None:
            quiz = self._get_or_404(Quiz, quiz_id, _('Квиз не найден'))
            if actor.is_teacher:
                policy.authorize(actor, policy.QUIZ_ANALYTICS, policy.Resource.of_quiz(quiz))
            query = query.filter(QuizAttempt.quiz_id == quiz.id)
        elif actor.is_teacher:
            query = query.join(Quiz, QuizAttempt.quiz_id == Quiz.id).filter(Quiz.created_by == actor.id)
        if student is not None:
            query = query.filter(QuizAttempt.student_id == student.id)

        limit = self.config.get('PERFORMANCE_ATTEMPTS_LIMIT', 50)
        attempts = _newest_first(query).limit(limit).all()

        grouped = {}
        if student is not None:
            grouped[student.id] = {'student': student.to_summary(), 'attempts': []}
        for attempt in attempts:
            entry = grouped.setdefault(attempt.student_id, {
                'student': attempt.student.to_summary(), 'attempts': [],
            })
            entry['attempts'].append({
                'quiz': {'id': attempt.quiz.id, 'title': attempt.quiz.title,
                         'subject': attempt.quiz.subject, 'passing_score': attempt.quiz.passing_score},
                'score': attempt.percentage,
                'passed': attempt.passed,
                'submitted_at': attempt.submitted_at.isoformat(),
            })

        for entry in grouped.values():
            rows = entry['attempts']
            entry['total_attempts'] = len(rows)
            entry['average_score'] = mean(row['score'] for row in rows)
            # Для студента без попыток доля сдачи не определена
            entry['pass_rate'] = 100 * sum(row['passed'] for row in rows) / len(rows) if rows else None
        return list(grouped.values())

    # === Квизы и вопросы ===

    def quiz_analytics(self, actor, quiz_id):
        """
        Статистика квиза: показатели по вопросам, распределение процентов, последние попытки

        Returns:
            dict: quiz, question_analytics, score_distribution, recent_attempts
        """
        quiz = self._get_or_404(Quiz, quiz_id, _('Квиз не найден'))
        policy.authorize(actor, policy.QUIZ_ANALYTICS, policy.Resource.of_quiz(quiz))

        attempts = _newest_first(quiz.attempts).all()
        answers_by_question = {}
        for attempt in attempts:
            for answer in attempt.answers:
                answers_by_question.setdefault(answer.question_id, []).append(answer)

        question_analytics = []
        for question in quiz.questions:
            answers = answers_by_question.get(question.id, [])
            correct = sum(1 for answer in answers if answer.is_correct)
            average_time = mean(answer.time_spent or 0 for answer in answers)
            question_analytics.append({
                'question': {'id': question.id, 'title': question.title, 'difficulty': question.difficulty},
                'total_attempts': len(answers),
                'correct_answers': correct,
                'correct_percentage': percent(correct, len(answers)),
                'average_time_spent': round_half_up(average_time) if average_time is not None else 0,
            })

        return {
            'quiz': {
                'id': quiz.id,
                'title': quiz.title,
                'total_attempts': len(attempts),
                'average_score': quiz.average_score,
                'pass_rate': percent(sum(1 for a in attempts if a.passed), len(attempts)),
            },
            'question_analytics': question_analytics,
            'score_distribution': score_distribution(a.percentage for a in attempts),
            'recent_attempts': [_attempt_row(a) for a in attempts[:self._long]],
        }

    def question_analytics(self, actor, question_id):
        """Статистика ответов на вопрос по всем попыткам"""
        question = self._get_or_404(Question, question_id, _('Вопрос не найден'))
        policy.authorize(actor, policy.QUESTION_ANALYTICS, policy.Resource.of_question(question))

        rows = (self.session.query(QuizAttempt, AttemptAnswer.is_correct)
                .join(AttemptAnswer, AttemptAnswer.attempt_id == QuizAttempt.id)
                .filter(AttemptAnswer.question_id == question.id)
                .order_by(QuizAttempt.submitted_at.desc(), QuizAttempt.id.desc())
                .all())
        correct = sum(1 for _attempt, is_correct in rows if is_correct)
        return {
            'question': {
                'id': question.id,
                'title': question.title,
                'total_attempts': len(rows),
                'correct_answers': correct,
                'incorrect_answers': len(rows) - correct,
            },
            'recent_attempts': [_attempt_row(attempt) for attempt, _is_correct in rows[:self._long]],
        }

# quizhub/services/quizzes.py
"""
Сервис квизов: создание, чтение, изменение, удаление и списки попыток
"""
import logging

from flask_babel import _
from sqlalchemy import or_

from quizhub.models.attempt import QuizAttempt, AttemptAnswer
from quizhub.models.question import Question
from quizhub.models.quiz import Quiz
from quizhub.models.user import User
from quizhub.services import policy
from quizhub.services.base import BaseService
from quizhub.services.errors import FieldErrors
from quizhub.services.scoring import (
    recompute_question_usage, recompute_user_aggregates,
)
from quizhub.services.visibility import full_quiz_view, student_quiz_summary, student_quiz_view
from quizhub.utils.pagination import paginate_query

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    'title', 'description', 'subject', 'questions', 'time_limit',
    'max_attempts', 'passing_score', 'is_published', 'allowed_students',
)

# (поле, минимум, максимум, значение по умолчанию)
INT_LIMITS = (
    ('time_limit', 5, 300, 30),
    ('max_attempts', 1, 10, 3),
    ('passing_score', 0, 100, 60),
)


def _text(value):
    return value.strip() if isinstance(value, str) else ''


def _as_id_list(value):
    """Список целых ID или None, если значение нельзя разобрать"""
    if not isinstance(value, (list, tuple)):
        return None
    try:
        return [int(item) for item in value]
    except (TypeError, ValueError):
        return None


class QuizService(BaseService):
    """Операции с квизами"""

    # === Валидация ===

    def _validate(self, data, errors):
        if not 5 <= len(_text(data.get('title'))) <= 200:
            errors.add('title', _('Название должно содержать от 5 до 200 символов'))
        if len(_text(data.get('subject'))) < 2:
            errors.add('subject', _('Предмет должен содержать не менее 2 символов'))

        for field, low, high, _default in INT_LIMITS:
            value = data.get(field)
            if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
                errors.add(field, _('Значение должно быть целым числом от %(low)d до %(high)d', low=low, high=high))

        description = data.get('description')
        if description is not None and not isinstance(description, str):
            errors.add('description', _('Описание должно быть строкой'))
        published = data.get('is_published')
        if published is not None and not isinstance(published, bool):
            errors.add('is_published', _('Значение должно быть true или false'))

        question_ids = _as_id_list(data.get('questions'))
        if not question_ids:
            errors.add('questions', _('Квиз должен содержать хотя бы один вопрос'))
        elif len(set(question_ids)) != len(question_ids):
            errors.add('questions', _('Вопросы в квизе не должны повторяться'))

        if _as_id_list(data.get('allowed_students') or []) is None:
            errors.add('allowed_students', _('Список допуска должен состоять из ID студентов'))

    def _resolve_questions(self, actor, question_ids, errors):
        """Вопросы в заданном порядке; все должны существовать и быть доступны актору"""
        found = {q.id: q for q in self.session.query(Question).filter(Question.id.in_(question_ids))}
        missing = [qid for qid in question_ids if qid not in found]
        if missing:
            errors.add('questions', _('Некоторые вопросы не найдены'))
            return []
        for question in found.values():
            if not policy.is_allowed(actor, policy.QUESTION_READ, policy.Resource.of_question(question)):
                errors.add('questions', _('Нельзя использовать чужие вопросы'))
                return []
        return [found[qid] for qid in question_ids]

    def _resolve_students(self, student_ids, errors):
        if not student_ids:
            return []
        students = self.session.query(User).filter(User.id.in_(student_ids)).all()
        if len(students) != len(set(student_ids)) or any(not s.is_student for s in students):
            errors.add('allowed_students', _('Список допуска может содержать только студентов'))
            return []
        return students

    def _prepare(self, actor, data):
        """
        Проверка итоговых полей и разрешение ссылок на вопросы и студентов

        Returns:
            tuple: (questions, students)
        """
        errors = FieldErrors()
        self._validate(data, errors)
        errors.raise_if_any()

        questions = self._resolve_questions(actor, _as_id_list(data['questions']), errors)
        students = self._resolve_students(_as_id_list(data.get('allowed_students') or []), errors)
        errors.raise_if_any()
        return questions, students

    # === Операции ===

    def create_quiz(self, actor, data):
        """
        Создание квиза

        Args:
            actor (User): Создатель
            data (dict): Поля квиза; questions: упорядоченный список ID вопросов,
                allowed_students: ID студентов (пустой список означает публичный квиз)

        Returns:
            dict: Созданный квиз
        """
        policy.authorize(actor, policy.QUIZ_CREATE)
        data = {key: value for key, value in (data or {}).items() if key in EDITABLE_FIELDS}
        for field, _low, _high, default in INT_LIMITS:
            if data.get(field) is None:
                data[field] = default

        questions, students = self._prepare(actor, data)

        quiz = Quiz(
            title=data['title'].strip(),
            description=data.get('description'),
            subject=data['subject'].strip(),
            created_by=actor.id,
            time_limit=data['time_limit'],
            max_attempts=data['max_attempts'],
            passing_score=data['passing_score'],
            is_published=bool(data.get('is_published', False)),
        )
        quiz.questions.extend(questions)
        quiz.allowed_students = students
        self.session.add(quiz)
        self._commit()
        logger.info("Quiz %s created by user %s", quiz.id, actor.id)
        return full_quiz_view(quiz)

    def _load(self, actor, quiz_id, action):
        quiz = self._get_or_404(Quiz, quiz_id, _('Квиз не найден'))
        policy.authorize(actor, action, policy.Resource.of_quiz(quiz))
        return quiz

    def get_quiz(self, actor, quiz_id):
        """
        Квиз по ID
        Студент получает представление без правильных ответов и свои прошлые попытки

        Returns:
            dict: {'quiz': ..., 'user_attempts': [...]}
        """
        quiz = self._load(actor, quiz_id, policy.QUIZ_READ)
        if not actor.is_student:
            return {'quiz': full_quiz_view(quiz), 'user_attempts': []}

        attempts = (quiz.attempts
                    .filter(QuizAttempt.student_id == actor.id)
                    .order_by(QuizAttempt.attempt_number.desc())
                    .all())
        return {
            'quiz': student_quiz_view(quiz, actor),
            'user_attempts': [attempt.to_dict() for attempt in attempts],
        }

    def update_quiz(self, actor, quiz_id, data):
        """Частичное обновление квиза; итоговое состояние проверяется целиком"""
        quiz = self._load(actor, quiz_id, policy.QUIZ_UPDATE)
        changes = {key: value for key, value in (data or {}).items() if key in EDITABLE_FIELDS}

        merged = {
            'title': quiz.title,
            'subject': quiz.subject,
            'time_limit': quiz.time_limit,
            'max_attempts': quiz.max_attempts,
            'passing_score': quiz.passing_score,
            'questions': quiz.question_ids,
            'allowed_students': sorted(quiz.allowed_student_ids),
        }
        merged.update(changes)
        questions, students = self._prepare(actor, merged)

        for field in ('title', 'subject'):
            if field in changes:
                setattr(quiz, field, changes[field].strip())
        for field in ('description', 'time_limit', 'max_attempts', 'passing_score'):
            if field in changes:
                setattr(quiz, field, changes[field])
        if 'is_published' in changes:
            quiz.is_published = bool(changes['is_published'])
        if 'questions' in changes:
            # Составной ключ связи: сначала удаляем старые строки, затем вставляем новые
            quiz.question_links.clear()
            self.session.flush()
            quiz.questions.extend(questions)
        if 'allowed_students' in changes:
            quiz.allowed_students = students

        self._commit()
        return full_quiz_view(quiz)

    def delete_quiz(self, actor, quiz_id):
        """
        Удаление квиза вместе с попытками
        Агрегаты затронутых студентов и счётчики вопросов пересчитываются
        """
        quiz = self._load(actor, quiz_id, policy.QUIZ_DELETE)

        attempt_ids = self.session.query(QuizAttempt.id).filter(QuizAttempt.quiz_id == quiz.id)
        student_ids = {sid for (sid,) in attempt_ids.with_entities(QuizAttempt.student_id).distinct()}
        question_ids = {
            qid for (qid,) in self.session.query(AttemptAnswer.question_id)
            .filter(AttemptAnswer.attempt_id.in_(attempt_ids.scalar_subquery())).distinct()
        }

        self.session.query(AttemptAnswer).filter(
            AttemptAnswer.attempt_id.in_(attempt_ids.scalar_subquery())
        ).delete(synchronize_session=False)
        self.session.query(QuizAttempt).filter(
            QuizAttempt.quiz_id == quiz.id
        ).delete(synchronize_session=False)
        self.session.delete(quiz)
        self.session.flush()

        for student in self.session.query(User).filter(User.id.in_(student_ids)):
            recompute_user_aggregates(self.session, student)
        recompute_question_usage(self.session, question_ids)

        self._commit()
        logger.info("Quiz %s deleted by user %s, %d students affected", quiz_id, actor.id, len(student_ids))

    def list_quizzes(self, actor, subject=None, is_published=None, page=None, per_page=None):
        """
        Список квизов с учётом роли:
        администратор видит все, преподаватель свои, студент опубликованные и доступные ему

        Args:
            is_published (bool): Фильтр по публикации (None без фильтра)
        """
        policy.authorize(actor, policy.QUIZ_LIST)
        query = self.session.query(Quiz)
        if actor.is_student:
            query = query.filter(
                Quiz.is_published.is_(True),
                or_(~Quiz.allowed_students.any(), Quiz.allowed_students.any(User.id == actor.id)),
            )
        elif not actor.is_admin:
            query = query.filter(Quiz.created_by == actor.id)

        if subject:
            query = query.filter(Quiz.subject == subject)
        if is_published is not None:
            query = query.filter(Quiz.is_published.is_(bool(is_published)))

        query = query.order_by(Quiz.created_at.desc(), Quiz.id.desc())
        page, per_page = self._page_args(page, per_page)
        if actor.is_student:
            return paginate_query(query, page, per_page, lambda quiz: student_quiz_summary(quiz, actor))
        return paginate_query(query, page, per_page, lambda quiz: quiz.to_dict())

    def list_attempts(self, actor, quiz_id, page=None, per_page=None):
        """Попытки по квизу для создателя или администратора, новые первыми"""
        quiz = self._load(actor, quiz_id, policy.QUIZ_ATTEMPTS)
        query = quiz.attempts.order_by(QuizAttempt.submitted_at.desc(), QuizAttempt.id.desc())
        page, per_page = self._page_args(page, per_page)
        return paginate_query(query, page, per_page, lambda attempt: attempt.to_dict())

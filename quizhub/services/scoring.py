# quizhub/services/scoring.py
"""
Движок отправки и подсчёта попыток
Проверяет попытку по правилам квиза, оценивает ответы, сохраняет попытку
и пересчитывает агрегаты квиза, студента и вопросов в одной транзакции
"""
import logging
from datetime import datetime, timedelta

from flask_babel import _
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from quizhub.models.attempt import QuizAttempt, AttemptAnswer
from quizhub.models.question import Question
from quizhub.models.quiz import Quiz
from quizhub.models.user import User
from quizhub.services import policy
from quizhub.services.base import BaseService
from quizhub.services.errors import (
    AttemptLimitExceeded, FieldErrors, InvalidAnswer, NotFound, ServiceError, StoreUnavailable,
    ValidationError,
)
from quizhub.services.grading import grade_answer
from quizhub.utils.stats import percent

logger = logging.getLogger(__name__)


# === Пересчёт агрегатов по полному набору попыток ===

def _count_and_mean(session, *criteria):
    count, average = session.query(
        func.count(QuizAttempt.id), func.avg(QuizAttempt.percentage)
    ).filter(*criteria).one()
    return count or 0, float(average) if average is not None else 0.0


def recompute_quiz_aggregates(session, quiz):
    quiz.total_attempts, quiz.average_score = _count_and_mean(session, QuizAttempt.quiz_id == quiz.id)


def recompute_user_aggregates(session, user):
    user.total_quizzes_taken, user.average_score = _count_and_mean(session, QuizAttempt.student_id == user.id)


def recompute_question_usage(session, question_ids):
    """
    Пересчёт счётчиков использования вопросов

    Args:
        session: Сессия SQLAlchemy
        question_ids (iterable): ID вопросов; удалённые вопросы пропускаются
    """
    question_ids = set(question_ids)
    if not question_ids:
        return
    rows = session.query(
        AttemptAnswer.question_id,
        func.count(AttemptAnswer.id),
        func.sum(case((AttemptAnswer.is_correct, 1), else_=0)),
    ).filter(AttemptAnswer.question_id.in_(question_ids)).group_by(AttemptAnswer.question_id).all()
    usage = {question_id: (total, correct or 0) for question_id, total, correct in rows}

    for question in session.query(Question).filter(Question.id.in_(question_ids)):
        total, correct = usage.get(question.id, (0, 0))
        question.times_used = total
        question.average_score = float(percent(correct, total))


class ScoringService(BaseService):
    """
    Отправка попыток прохождения квиза

    Проверки выполняются до любых изменений в порядке:
    право роли, существование и публикация квиза, список допуска,
    лимит попыток, принадлежность вопросов квизу.
    """

    def _clean_answers(self, answers, time_spent):
        errors = FieldErrors()
        if not isinstance(answers, (list, tuple)):
            errors.add('answers', _('Ответы должны быть списком'))
        if isinstance(time_spent, bool) or not isinstance(time_spent, int) or time_spent < 0:
            errors.add('time_spent', _('Время прохождения должно быть неотрицательным целым числом'))
        errors.raise_if_any()

        cleaned = []
        for index, answer in enumerate(answers):
            if not isinstance(answer, dict) or 'question_id' not in answer:
                errors.add(f'answers[{index}]', _('Ответ должен содержать question_id'))
                continue
            answer_time = answer.get('time_spent', 0) or 0
            if isinstance(answer_time, bool) or not isinstance(answer_time, int) or answer_time < 0:
                errors.add(f'answers[{index}].time_spent', _('Время ответа должно быть неотрицательным целым числом'))
                continue
            selected = answer.get('selected_answer')
            cleaned.append({
                'question_id': answer['question_id'],
                'selected_answer': None if selected is None else str(selected),
                'time_spent': answer_time,
            })
        errors.raise_if_any()
        return cleaned

    def _load_quiz(self, quiz_id):
        """Квиз с блокировкой строки (FOR UPDATE там, где диалект поддерживает)"""
        return (self.session.query(Quiz)
                .filter(Quiz.id == quiz_id)
                .with_for_update()
                .populate_existing()
                .first())

    def _load_student(self, student_id):
        return (self.session.query(User)
                .filter(User.id == student_id)
                .with_for_update()
                .populate_existing()
                .one())

    def _prior_attempt_count(self, quiz_id, student_id):
        return (self.session.query(func.count(QuizAttempt.id))
                .filter(QuizAttempt.quiz_id == quiz_id, QuizAttempt.student_id == student_id)
                .scalar()) or 0

    @staticmethod
    def _resolve_question_ids(quiz, answers):
        """
        Сопоставление question_id ответов с вопросами квиза

        Returns:
            tuple: (словарь вопросов квиза по ID, список ID в порядке ответов)
        """
        questions = {question.id: question for question in quiz.questions}
        question_ids = []
        for answer in answers:
            try:
                question_id = int(answer['question_id'])
            except (TypeError, ValueError):
                question_id = None
            if question_id not in questions:
                raise InvalidAnswer(_('Ответ ссылается на вопрос, которого нет в квизе'))
            if question_id in question_ids:
                raise ValidationError(_('На один вопрос можно дать только один ответ'))
            question_ids.append(question_id)
        return questions, question_ids

    def _submit_once(self, student_id, quiz_id, answers, time_spent, now):
        quiz = self._load_quiz(quiz_id)
        if quiz is None or not quiz.is_published:
            raise NotFound(_('Квиз не найден или не опубликован'))
        student = self._load_student(student_id)
        policy.authorize(student, policy.QUIZ_SUBMIT, policy.Resource.of_quiz(quiz))

        prior = self._prior_attempt_count(quiz.id, student.id)
        if prior >= quiz.max_attempts:
            raise AttemptLimitExceeded(_('Превышено максимальное количество попыток'))

        questions, question_ids = self._resolve_question_ids(quiz, answers)
        if not questions:
            raise ValidationError(_('В квизе нет вопросов'))

        records = []
        correct = 0
        for answer, question_id in zip(answers, question_ids):
            is_correct = grade_answer(questions[question_id], answer['selected_answer'])
            correct += int(is_correct)
            records.append(AttemptAnswer(
                question_id=question_id,
                selected_answer=answer['selected_answer'],
                is_correct=is_correct,
                time_spent=answer['time_spent'],
            ))

        percentage = percent(correct, len(questions))
        attempt = QuizAttempt(
            quiz_id=quiz.id,
            student_id=student.id,
            score=correct,
            percentage=percentage,
            time_spent=time_spent,
            started_at=now - timedelta(seconds=time_spent),
            submitted_at=now,
            attempt_number=prior + 1,
            passed=percentage >= quiz.passing_score,
        )
        attempt.answers = records
        self.session.add(attempt)
        self.session.flush()

        recompute_quiz_aggregates(self.session, quiz)
        recompute_user_aggregates(self.session, student)
        recompute_question_usage(self.session, [record.question_id for record in records])
        self.session.flush()

        return {
            'score': attempt.score,
            'percentage': attempt.percentage,
            'passed': attempt.passed,
            'time_spent': attempt.time_spent,
            'attempt_number': attempt.attempt_number,
        }

    def submit(self, actor, quiz_id, answers, time_spent, now=None):
        """
        Отправка попытки прохождения квиза

        Args:
            actor (User): Студент
            quiz_id (int): ID квиза
            answers (list): [{'question_id', 'selected_answer', 'time_spent'}]
            time_spent (int): Общее время прохождения в секундах
            now (datetime): Момент отправки (по умолчанию текущее время UTC)

        Returns:
            dict: score, percentage, passed, time_spent, attempt_number

        Raises:
            NotFound, PermissionDenied, AttemptLimitExceeded, InvalidAnswer, ValidationError,
            StoreUnavailable (если попытку не удалось сохранить после повторов)
        """
        policy.authorize(actor, policy.QUIZ_SUBMIT)
        answers = self._clean_answers(answers, time_spent)
        student_id = actor.id
        max_retries = max(1, self.config.get('SUBMIT_MAX_RETRIES', 5))

        for retry in range(1, max_retries + 1):
            try:
                result = self._submit_once(student_id, quiz_id, answers, time_spent, now or datetime.utcnow())
                self.session.commit()
            except ServiceError:
                self.session.rollback()
                raise
            except (IntegrityError, StaleDataError) as e:
                # Параллельная отправка заняла номер попытки или изменила агрегаты
                self.session.rollback()
                logger.warning("Submit conflict on quiz %s for user %s (try %d/%d): %s",
                               quiz_id, student_id, retry, max_retries, e)
                continue
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.exception("Submit failed on quiz %s for user %s", quiz_id, student_id)
                raise StoreUnavailable(_('Ошибка сохранения попытки'), detail=str(e))

            logger.info("Attempt #%d on quiz %s by user %s: %d%%",
                        result['attempt_number'], quiz_id, student_id, result['percentage'])
            return result

        logger.error("Submit on quiz %s for user %s gave up after %d tries", quiz_id, student_id, max_retries)
        raise StoreUnavailable(_('Не удалось сохранить попытку, попробуйте ещё раз'))

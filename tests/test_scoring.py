# tests/test_scoring.py
"""
Тесты движка отправки попыток: подсчёт, лимиты, проверки и агрегаты
"""
from datetime import datetime, timedelta

import pytest

from quizhub import db
from quizhub.models import Question, QuizAttempt, User
from quizhub.models.question import TYPE_SHORT_ANSWER, TYPE_TRUE_FALSE
from quizhub.services.errors import (
    AttemptLimitExceeded, InvalidAnswer, NotFound, PermissionDenied, StoreUnavailable, ValidationError,
)
from quizhub.services.scoring import ScoringService
from tests.conftest import right, wrong


@pytest.fixture
def four_questions(teacher, make_question):
    return [make_question(teacher, title=f'Вопрос номер {n}') for n in range(1, 5)]


def answers_for(questions, correct_count):
    return [
        {'question_id': q.id, 'selected_answer': right(q) if index < correct_count else wrong(q), 'time_spent': 10}
        for index, q in enumerate(questions)
    ]


class TestSubmitResult:
    """Итог попытки"""

    def test_three_of_four_correct(self, services, teacher, student, four_questions, make_quiz):
        quiz = make_quiz(teacher, four_questions, passing_score=60)

        result = services.scoring.submit(student, quiz.id, answers_for(four_questions, 3), 120)

        assert result == {
            'score': 3,
            'percentage': 75,
            'passed': True,
            'time_spent': 120,
            'attempt_number': 1,
        }

    def test_missing_answers_count_as_wrong(self, services, teacher, student, four_questions, make_quiz):
        quiz = make_quiz(teacher, four_questions, passing_score=50)

        result = services.scoring.submit(student, quiz.id, answers_for(four_questions[:1], 1), 30)

        assert result['score'] == 1
        assert result['percentage'] == 25
        assert result['passed'] is False

    def test_percentage_rounds_half_up(self, services, teacher, student, make_question, make_quiz):
        questions = [make_question(teacher, title=f'Вопрос номер {n}') for n in range(1, 9)]
        quiz = make_quiz(teacher, questions)

        # 7 из 8 = 87.5%
        result = services.scoring.submit(student, quiz.id, answers_for(questions, 7), 60)

        assert result['percentage'] == 88

    def test_attempt_record_is_stored(self, services, teacher, student, four_questions, make_quiz):
        quiz = make_quiz(teacher, four_questions)
        now = datetime(2024, 5, 1, 12, 0, 0)

        services.scoring.submit(student, quiz.id, answers_for(four_questions, 2), 90, now=now)

        attempt = QuizAttempt.query.filter_by(quiz_id=quiz.id, student_id=student.id).one()
        assert attempt.submitted_at == now
        assert attempt.started_at == now - timedelta(seconds=90)
        assert [a.question_id for a in attempt.answers] == [q.id for q in four_questions]
        assert [a.is_correct for a in attempt.answers] == [True, True, False, False]

    def test_mixed_question_types(self, services, teacher, student, make_question, make_quiz):
        true_false = make_question(teacher, title='Земля круглая', question_type=TYPE_TRUE_FALSE,
                                   options=[{'text': 'True', 'is_correct': True},
                                            {'text': 'False', 'is_correct': False}])
        short = make_question(teacher, title='Столица Франции', question_type=TYPE_SHORT_ANSWER,
                              options=[], correct_answer='Париж')
        quiz = make_quiz(teacher, [true_false, short])

        result = services.scoring.submit(student, quiz.id, [
            {'question_id': true_false.id, 'selected_answer': 'TRUE'},
            {'question_id': short.id, 'selected_answer': '  париж '},
        ], 40)

        assert result['score'] == 2
        assert result['percentage'] == 100


class TestSubmitChecks:
    """Проверки выполняются до любых изменений"""

    def test_attempt_limit(self, services, teacher, student, four_questions, make_quiz):
        quiz = make_quiz(teacher, four_questions, max_attempts=1)

        first = services.scoring.submit(student, quiz.id, answers_for(four_questions, 4), 60)
        assert first['attempt_number'] == 1

        with pytest.raises(AttemptLimitExceeded):
            services.scoring.submit(student, quiz.id, answers_for(four_questions, 4), 60)

        db.session.refresh(quiz)
        assert quiz.total_attempts == 1
        assert QuizAttempt.query.filter_by(quiz_id=quiz.id).count() == 1

    def test_attempt_numbers_are_sequential(self, services, teacher, student, four_questions, make_quiz):
        quiz = make_quiz(teacher, four_questions, max_attempts=3)
        numbers = [services.scoring.submit(student, quiz.id, [], 5)['attempt_number'] for _ in range(3)]
        assert numbers == [1, 2, 3]

    def test_unpublished_quiz_is_not_found(self, services, teacher, student, four_questions, make_quiz):
        quiz = make_quiz(teacher, four_questions, is_published=False)
        with pytest.raises(NotFound):
            services.scoring.submit(student, quiz.id, [], 10)

    def test_missing_quiz_is_not_found(self, services, student):
        with pytest.raises(NotFound):
            services.scoring.submit(student, 9999, [], 10)

    def test_allow_list_excludes_student(self, services, teacher, student, make_user, four_questions, make_quiz):
        listed = make_user()
        quiz = make_quiz(teacher, four_questions, allowed_students=[listed.id])

        with pytest.raises(PermissionDenied):
            services.scoring.submit(student, quiz.id, [], 10)
        assert services.scoring.submit(listed, quiz.id, [], 10)['attempt_number'] == 1

    def test_teacher_cannot_submit(self, services, teacher, four_questions, make_quiz):
        quiz = make_quiz(teacher, four_questions)
        with pytest.raises(PermissionDenied):
            services.scoring.submit(teacher, quiz.id, [], 10)

    def test_foreign_question_is_invalid_answer(self, services, teacher, student, four_questions,
                                                make_question, make_quiz):
        quiz = make_quiz(teacher, four_questions[:2])
        outsider = four_questions[3]

        with pytest.raises(InvalidAnswer):
            services.scoring.submit(student, quiz.id, answers_for([outsider], 1), 10)
        assert QuizAttempt.query.count() == 0

    def test_malformed_input(self, services, teacher, student, four_questions, make_quiz):
        quiz = make_quiz(teacher, four_questions)
        with pytest.raises(ValidationError):
            services.scoring.submit(student, quiz.id, 'not a list', 10)
        with pytest.raises(ValidationError):
            services.scoring.submit(student, quiz.id, [], -1)
        with pytest.raises(ValidationError):
            services.scoring.submit(student, quiz.id, [{'selected_answer': 'x'}], 10)

    def test_duplicate_answers_rejected(self, services, teacher, student, four_questions, make_quiz):
        quiz = make_quiz(teacher, four_questions)
        question = four_questions[0]
        answers = [{'question_id': question.id, 'selected_answer': right(question)}] * 2
        with pytest.raises(ValidationError):
            services.scoring.submit(student, quiz.id, answers, 10)


class TestAggregates:
    """Агрегаты пересчитываются по полному набору попыток"""

    def test_quiz_and_user_aggregates(self, services, teacher, student, four_questions, make_quiz):
        quiz = make_quiz(teacher, four_questions)

        services.scoring.submit(student, quiz.id, answers_for(four_questions, 2), 30)  # 50%
        services.scoring.submit(student, quiz.id, answers_for(four_questions, 4), 30)  # 100%

        db.session.refresh(quiz)
        db.session.refresh(student)
        assert quiz.total_attempts == 2
        assert quiz.average_score == pytest.approx(75.0)
        assert student.total_quizzes_taken == 2
        assert student.average_score == pytest.approx(75.0)

    def test_user_average_spans_quizzes(self, services, teacher, student, make_question, make_quiz):
        first_questions = [make_question(teacher, title=f'Первый вопрос {n}') for n in range(3)]
        second_questions = [make_question(teacher, title=f'Второй вопрос {n}') for n in range(2)]
        first = make_quiz(teacher, first_questions)
        second = make_quiz(teacher, second_questions)

        services.scoring.submit(student, first.id, answers_for(first_questions, 1), 10)  # 33%
        services.scoring.submit(student, second.id, answers_for(second_questions, 1), 10)  # 50%

        user = db.session.get(User, student.id)
        assert user.total_quizzes_taken == 2
        assert user.average_score == pytest.approx((33 + 50) / 2)

    def test_question_usage_counters(self, services, teacher, student, make_user, four_questions, make_quiz):
        quiz = make_quiz(teacher, four_questions)
        other = make_user()
        target = four_questions[0]

        services.scoring.submit(student, quiz.id, [{'question_id': target.id, 'selected_answer': right(target)}], 5)
        services.scoring.submit(other, quiz.id, [{'question_id': target.id, 'selected_answer': wrong(target)}], 5)

        question = db.session.get(Question, target.id)
        db.session.refresh(question)
        assert question.times_used == 2
        assert question.average_score == pytest.approx(50.0)

    def test_empty_quiz_is_rejected(self, services, teacher, student, four_questions, make_quiz):
        quiz = make_quiz(teacher, four_questions[:1])
        services.questions.delete_question(teacher, four_questions[0].id)

        with pytest.raises(ValidationError):
            services.scoring.submit(student, quiz.id, [], 10)


class TestConcurrencyRetry:
    """Конфликт номера попытки откатывает транзакцию и повторяет отправку"""

    def test_conflicting_number_is_retried(self, services, teacher, student, four_questions, make_quiz,
                                           monkeypatch):
        quiz = make_quiz(teacher, four_questions, max_attempts=3)
        services.scoring.submit(student, quiz.id, answers_for(four_questions, 4), 10)

        real_count = ScoringService._prior_attempt_count
        calls = []

        def stale_once(self, quiz_id, student_id):
            calls.append(quiz_id)
            count = real_count(self, quiz_id, student_id)
            # Первая попытка видит устаревшее значение, как при параллельной отправке
            return count - 1 if len(calls) == 1 else count

        monkeypatch.setattr(ScoringService, '_prior_attempt_count', stale_once)

        result = services.scoring.submit(student, quiz.id, answers_for(four_questions, 2), 10)

        assert len(calls) == 2
        assert result['attempt_number'] == 2
        db.session.refresh(quiz)
        assert quiz.total_attempts == 2
        assert quiz.average_score == pytest.approx(75.0)

    def test_gives_up_after_max_retries(self, services, teacher, student, four_questions, make_quiz,
                                        monkeypatch):
        quiz = make_quiz(teacher, four_questions, max_attempts=3)
        services.scoring.submit(student, quiz.id, answers_for(four_questions, 4), 10)

        monkeypatch.setattr(ScoringService, '_prior_attempt_count', lambda self, quiz_id, student_id: 0)

        with pytest.raises(StoreUnavailable):
            services.scoring.submit(student, quiz.id, answers_for(four_questions, 2), 10)
        assert QuizAttempt.query.filter_by(quiz_id=quiz.id).count() == 1
        db.session.refresh(quiz)
        assert quiz.total_attempts == 1

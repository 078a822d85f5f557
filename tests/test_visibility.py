# tests/test_visibility.py
"""
Тесты фильтра видимости: студент не получает правильные ответы
"""
import pytest

from quizhub import db
from quizhub.models import Question
from quizhub.models.question import TYPE_SHORT_ANSWER
from quizhub.services.errors import PermissionDenied
from quizhub.services.visibility import student_question_view


@pytest.fixture
def quiz_with_answers(teacher, make_question, make_quiz):
    choice = make_question(teacher)
    short = make_question(teacher, title='Столица Франции', question_type=TYPE_SHORT_ANSWER,
                          options=[], correct_answer='Париж', explanation='Париж является столицей Франции')
    return make_quiz(teacher, [choice, short])


class TestStudentView:

    def test_student_never_sees_answer_key(self, services, student, quiz_with_answers):
        data = services.quizzes.get_quiz(student, quiz_with_answers.id)

        for question in data['quiz']['questions']:
            assert 'correct_answer' not in question
            assert 'explanation' not in question
            for option in question['options']:
                assert set(option) == {'id', 'text'}

    def test_stored_question_is_untouched(self, services, student, quiz_with_answers):
        services.quizzes.get_quiz(student, quiz_with_answers.id)

        short = db.session.get(Question, quiz_with_answers.question_ids[1])
        assert short.correct_answer == 'Париж'
        assert short.explanation

    def test_student_gets_own_previous_attempts(self, services, student, make_user, quiz_with_answers):
        other = make_user()
        services.scoring.submit(student, quiz_with_answers.id, [], 5)
        services.scoring.submit(student, quiz_with_answers.id, [], 5)
        services.scoring.submit(other, quiz_with_answers.id, [], 5)

        data = services.quizzes.get_quiz(student, quiz_with_answers.id)

        assert [a['attempt_number'] for a in data['user_attempts']] == [2, 1]
        assert {a['student']['id'] for a in data['user_attempts']} == {student.id}

    def test_owner_sees_full_questions(self, services, teacher, quiz_with_answers):
        data = services.quizzes.get_quiz(teacher, quiz_with_answers.id)

        assert data['user_attempts'] == []
        assert data['quiz']['questions'][1]['correct_answer'] == 'Париж'
        assert any(option['is_correct'] for option in data['quiz']['questions'][0]['options'])

    def test_unpublished_quiz_is_hidden(self, services, teacher, student, make_question, make_quiz):
        draft = make_quiz(teacher, [make_question(teacher)], is_published=False)
        with pytest.raises(PermissionDenied):
            services.quizzes.get_quiz(student, draft.id)

    def test_allow_list_shows_only_own_entry(self, services, teacher, student, make_user,
                                             make_question, make_quiz):
        classmate = make_user(email='secret.classmate@example.com')
        quiz = make_quiz(teacher, [make_question(teacher)], allowed_students=[student.id, classmate.id])

        view = services.quizzes.get_quiz(student, quiz.id)['quiz']
        listed = services.quizzes.list_quizzes(student)['items'][0]

        for data in (view, listed):
            assert [entry['id'] for entry in data['allowed_students']] == [student.id]
            assert 'secret.classmate@example.com' not in str(data)

        full = services.quizzes.get_quiz(teacher, quiz.id)['quiz']
        assert {entry['id'] for entry in full['allowed_students']} == {student.id, classmate.id}


class TestQuestionView:

    def test_view_of_single_question(self, teacher, make_question):
        view = student_question_view(make_question(teacher))
        assert 'correct_answer' not in view
        assert 'explanation' not in view
        assert [set(option) for option in view['options']] == [{'id', 'text'}] * 3

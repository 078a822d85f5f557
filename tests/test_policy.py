# tests/test_policy.py
"""
Тесты политики доступа
"""
from types import SimpleNamespace

import pytest

from quizhub.models.user import ROLE_ADMIN, ROLE_STUDENT, ROLE_TEACHER
from quizhub.services import policy
from quizhub.services.errors import PermissionDenied
from quizhub.services.policy import Resource


def person(user_id, role, is_active=True):
    return SimpleNamespace(id=user_id, role=role, is_active=is_active)


class TestPolicyTable:
    """Решения таблицы без базы данных"""

    def test_admin_is_allowed_everything(self):
        admin = person(1, ROLE_ADMIN)
        foreign = Resource(id=10, owner_id=99)
        for action in policy.ACTIONS:
            assert policy.is_allowed(admin, action, foreign)

    def test_teacher_owner_rule(self):
        teacher = person(2, ROLE_TEACHER)
        own = Resource(id=10, owner_id=2)
        foreign = Resource(id=11, owner_id=3)
        for action in (policy.QUESTION_READ, policy.QUESTION_UPDATE, policy.QUESTION_DELETE,
                       policy.QUIZ_READ, policy.QUIZ_UPDATE, policy.QUIZ_DELETE, policy.QUIZ_ANALYTICS):
            assert policy.is_allowed(teacher, action, own)
            assert not policy.is_allowed(teacher, action, foreign)

    def test_teacher_cannot_submit(self):
        teacher = person(2, ROLE_TEACHER)
        public_quiz = Resource(id=5, owner_id=2, published=True)
        assert not policy.is_allowed(teacher, policy.QUIZ_SUBMIT)
        assert not policy.is_allowed(teacher, policy.QUIZ_SUBMIT, public_quiz)

    def test_student_visibility(self):
        student = person(7, ROLE_STUDENT)
        public = Resource(id=1, owner_id=2, published=True)
        listed = Resource(id=2, owner_id=2, published=True, allowed_ids=frozenset({7, 8}))
        unlisted = Resource(id=3, owner_id=2, published=True, allowed_ids=frozenset({8}))
        draft = Resource(id=4, owner_id=2, published=False)

        assert policy.is_allowed(student, policy.QUIZ_READ, public)
        assert policy.is_allowed(student, policy.QUIZ_SUBMIT, listed)
        assert not policy.is_allowed(student, policy.QUIZ_READ, unlisted)
        assert not policy.is_allowed(student, policy.QUIZ_SUBMIT, draft)

    def test_student_denied_content_management(self):
        student = person(7, ROLE_STUDENT)
        for action in (policy.QUESTION_CREATE, policy.QUESTION_LIST, policy.QUIZ_CREATE,
                       policy.QUIZ_ATTEMPTS, policy.USER_LIST, policy.USER_DELETE):
            assert not policy.is_allowed(student, action)

    def test_self_rule_for_profiles(self):
        student = person(7, ROLE_STUDENT)
        assert policy.is_allowed(student, policy.USER_UPDATE, Resource(id=7, owner_id=7))
        assert not policy.is_allowed(student, policy.USER_READ, Resource(id=8, owner_id=8))

    def test_inactive_actor_is_denied(self):
        admin = person(1, ROLE_ADMIN, is_active=False)
        assert not policy.is_allowed(admin, policy.QUIZ_LIST)

    def test_unknown_role_is_denied(self):
        assert not policy.is_allowed(person(1, 'guest'), policy.QUIZ_LIST)

    def test_authorize_raises_permission_denied(self):
        with pytest.raises(PermissionDenied):
            policy.authorize(person(7, ROLE_STUDENT), policy.QUESTION_CREATE)


class TestOwnershipScenario:
    """Преподаватель B не может работать с вопросом преподавателя A"""

    def test_other_teacher_gets_permission_denied(self, services, teacher, other_teacher, make_question):
        question = make_question(teacher)

        with pytest.raises(PermissionDenied):
            services.questions.get_question(other_teacher, question.id)
        with pytest.raises(PermissionDenied):
            services.questions.update_question(other_teacher, question.id, {'title': 'Чужой заголовок'})
        with pytest.raises(PermissionDenied):
            services.questions.delete_question(other_teacher, question.id)

        assert services.questions.get_question(teacher, question.id)['title'] == 'Сложение чисел'

    def test_admin_reads_any_question(self, services, admin, teacher, make_question):
        question = make_question(teacher)
        assert services.questions.get_question(admin, question.id)['id'] == question.id

# quizhub/services/policy.py
"""
Политика доступа: единая таблица (роль, действие) -> правило
Все сервисы проверяют права только через authorize()/is_allowed()
"""
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from flask_babel import _

from quizhub.models.user import ROLE_ADMIN, ROLE_TEACHER, ROLE_STUDENT
from quizhub.services.errors import PermissionDenied

# === Действия ===
QUESTION_CREATE = 'question:create'
QUESTION_READ = 'question:read'
QUESTION_UPDATE = 'question:update'
QUESTION_DELETE = 'question:delete'
QUESTION_LIST = 'question:list'
QUESTION_ANALYTICS = 'question:analytics'

QUIZ_CREATE = 'quiz:create'
QUIZ_READ = 'quiz:read'
QUIZ_UPDATE = 'quiz:update'
QUIZ_DELETE = 'quiz:delete'
QUIZ_LIST = 'quiz:list'
QUIZ_SUBMIT = 'quiz:submit'
QUIZ_ATTEMPTS = 'quiz:attempts'
QUIZ_ANALYTICS = 'quiz:analytics'

USER_CREATE = 'user:create'
USER_READ = 'user:read'
USER_UPDATE = 'user:update'
USER_DELETE = 'user:delete'
USER_LIST = 'user:list'

ANALYTICS_DASHBOARD = 'analytics:dashboard'
ANALYTICS_PERFORMANCE = 'analytics:performance'

ACTIONS = (
    QUESTION_CREATE, QUESTION_READ, QUESTION_UPDATE, QUESTION_DELETE, QUESTION_LIST, QUESTION_ANALYTICS,
    QUIZ_CREATE, QUIZ_READ, QUIZ_UPDATE, QUIZ_DELETE, QUIZ_LIST, QUIZ_SUBMIT, QUIZ_ATTEMPTS, QUIZ_ANALYTICS,
    USER_CREATE, USER_READ, USER_UPDATE, USER_DELETE, USER_LIST,
    ANALYTICS_DASHBOARD, ANALYTICS_PERFORMANCE,
)


@dataclass(frozen=True)
class Resource:
    """
    Сведения о ресурсе, достаточные для решения о доступе

    Attributes:
        id: ID ресурса (для пользователя совпадает с его ID)
        owner_id: ID создателя ресурса
        published: Опубликован ли квиз
        allowed_ids: Список допуска квиза (пустой означает публичный квиз)
    """
    id: Optional[int] = None
    owner_id: Optional[int] = None
    published: bool = False
    allowed_ids: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def of_user(cls, user):
        return cls(id=user.id, owner_id=user.id)

    @classmethod
    def of_question(cls, question):
        return cls(id=question.id, owner_id=question.created_by)

    @classmethod
    def of_quiz(cls, quiz):
        return cls(id=quiz.id, owner_id=quiz.created_by, published=bool(quiz.is_published),
                   allowed_ids=quiz.allowed_student_ids)


# === Правила: (actor_id, resource) -> bool ===

def ALWAYS(actor_id, resource):
    return True


def NEVER(actor_id, resource):
    return False


def OWNER(actor_id, resource):
    return resource.owner_id == actor_id


def SELF(actor_id, resource):
    return resource.id == actor_id


def VISIBLE(actor_id, resource):
    return resource.published and (not resource.allowed_ids or actor_id in resource.allowed_ids)


POLICY = {
    ROLE_ADMIN: {action: ALWAYS for action in ACTIONS},
    ROLE_TEACHER: {
        QUESTION_CREATE: ALWAYS,
        QUESTION_READ: OWNER,
        QUESTION_UPDATE: OWNER,
        QUESTION_DELETE: OWNER,
        QUESTION_LIST: ALWAYS,  # выборка ограничивается собственными вопросами
        QUESTION_ANALYTICS: OWNER,
        QUIZ_CREATE: ALWAYS,
        QUIZ_READ: OWNER,
        QUIZ_UPDATE: OWNER,
        QUIZ_DELETE: OWNER,
        QUIZ_LIST: ALWAYS,  # выборка ограничивается собственными квизами
        QUIZ_SUBMIT: NEVER,
        QUIZ_ATTEMPTS: OWNER,
        QUIZ_ANALYTICS: OWNER,
        USER_CREATE: NEVER,
        USER_READ: ALWAYS,
        USER_UPDATE: SELF,
        USER_DELETE: NEVER,
        USER_LIST: ALWAYS,  # только студенты и преподаватели
        ANALYTICS_DASHBOARD: ALWAYS,
        ANALYTICS_PERFORMANCE: ALWAYS,  # только по собственным квизам
    },
    ROLE_STUDENT: {
        QUIZ_READ: VISIBLE,
        QUIZ_LIST: ALWAYS,  # только опубликованные и доступные квизы
        QUIZ_SUBMIT: VISIBLE,
        USER_READ: SELF,
        USER_UPDATE: SELF,
        ANALYTICS_DASHBOARD: ALWAYS,
        ANALYTICS_PERFORMANCE: SELF,
    },
}


def rule_for(role, action):
    return POLICY.get(role, {}).get(action, NEVER)


def is_allowed(actor, action, resource=None):
    """
    Решение о доступе

    Args:
        actor (User): Пользователь, выполняющий действие
        action (str): Действие из ACTIONS
        resource (Resource): Ресурс; если не указан, проверяется только право роли на действие

    Returns:
        bool: True если действие разрешено
    """
    if actor is None or not actor.is_active:
        return False
    rule = rule_for(actor.role, action)
    if resource is None:
        return rule is not NEVER
    return rule(actor.id, resource)


def authorize(actor, action, resource=None):
    """То же, что is_allowed(), но при отказе выбрасывает PermissionDenied"""
    if not is_allowed(actor, action, resource):
        raise PermissionDenied(_('Доступ запрещён'))

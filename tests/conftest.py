# tests/conftest.py
"""
Общие фикстуры: приложение над SQLite в памяти, сервисы и фабрики данных
"""
import itertools
import re

import pytest

from config import TestingConfig
from quizhub import create_app, db, get_services
from quizhub.models import Question, Quiz, User
from quizhub.models.question import TYPE_MULTIPLE_CHOICE
from quizhub.models.user import ROLE_ADMIN, ROLE_STUDENT, ROLE_TEACHER

PASSWORD = 'secret123'


class RecordingMailer:
    """Почта для тестов: письма сохраняются в списке sent"""

    def __init__(self):
        self.sent = []

    def send(self, to_address, subject, body):
        self.sent.append({'to': to_address, 'subject': subject, 'body': body})

    def last_otp(self):
        match = re.search(r'\b(\d{6})\b', self.sent[-1]['body'])
        return match.group(1) if match else None


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def services(app, mailer):
    registry = get_services(app)
    registry.users.mailer = mailer
    return registry


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(services):
    counter = itertools.count(1)

    def _make(role=ROLE_STUDENT, name=None, email=None, password=PASSWORD, is_active=True):
        number = next(counter)
        user = User(
            name=name or f'{role.title()} {number}',
            email=email or f'{role}{number}@example.com',
            password_hash=services.users.hasher.hash(password),
            role=role,
            is_active=is_active,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(ROLE_ADMIN)


@pytest.fixture
def teacher(make_user):
    return make_user(ROLE_TEACHER)


@pytest.fixture
def other_teacher(make_user):
    return make_user(ROLE_TEACHER)


@pytest.fixture
def student(make_user):
    return make_user(ROLE_STUDENT)


def question_data(**overrides):
    data = {
        'title': 'Сложение чисел',
        'question_text': 'Сколько будет два плюс два?',
        'question_type': TYPE_MULTIPLE_CHOICE,
        'subject': 'Математика',
        'difficulty': 'easy',
        'options': [
            {'text': 'Четыре', 'is_correct': True},
            {'text': 'Пять', 'is_correct': False},
            {'text': 'Три', 'is_correct': False},
        ],
        'explanation': 'Два плюс два равно четырём',
        'tags': ['арифметика'],
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_question(services):
    def _make(owner, **overrides):
        created = services.questions.create_question(owner, question_data(**overrides))
        return db.session.get(Question, created['id'])

    return _make


@pytest.fixture
def make_quiz(services):
    def _make(owner, questions, **overrides):
        data = {
            'title': 'Контрольная работа',
            'description': 'Проверка базовых знаний',
            'subject': 'Математика',
            'questions': [q.id for q in questions],
            'is_published': True,
            'max_attempts': 3,
            'passing_score': 60,
        }
        data.update(overrides)
        created = services.quizzes.create_quiz(owner, data)
        return db.session.get(Quiz, created['id'])

    return _make


def right(question):
    """Верный ответ на вопрос с выбором: ID верного варианта"""
    return str(question.correct_option.id)


def wrong(question):
    return str(next(o.id for o in question.options if not o.is_correct))


def auth_header(services, user):
    return {'Authorization': f'Bearer {services.users.tokens.issue(user.id)}'}

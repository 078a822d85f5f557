# tests/test_api.py
"""
Тесты JSON API через тестовый клиент Flask
"""
import pytest

from tests.conftest import PASSWORD, auth_header, question_data, right


@pytest.fixture
def call(app, client):
    """
    Запрос в собственном контексте приложения
    Flask-Login кэширует пользователя в g, поэтому каждый запрос получает новый g
    """
    def _call(method, url, **kwargs):
        with app.app_context():
            return client.open(url, method=method, **kwargs)

    return _call


class TestHealth:

    def test_health(self, call):
        response = call('GET', '/api/health')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'OK'


class TestAuthApi:

    def test_register_returns_token_and_cookie(self, call):
        response = call('POST', '/api/auth/register', json={
            'name': 'Ivan Petrov', 'email': 'Ivan@Example.com', 'password': PASSWORD, 'role': 'admin',
        })
        body = response.get_json()

        assert response.status_code == 201
        assert body['success'] is True
        assert body['user']['email'] == 'ivan@example.com'
        assert body['user']['role'] == 'student'
        assert 'password_hash' not in body['user']
        assert body['token']
        assert 'token=' in response.headers.get('Set-Cookie', '')

    def test_login_then_me(self, call):
        call('POST', '/api/auth/register', json={'name': 'Ivan Petrov', 'email': 'ivan@example.com',
                                                 'password': PASSWORD})

        login = call('POST', '/api/auth/login', json={'email': 'ivan@example.com', 'password': PASSWORD})
        token = login.get_json()['token']
        me = call('GET', '/api/auth/me', headers={'Authorization': f'Bearer {token}'})

        assert me.status_code == 200
        assert me.get_json()['user']['email'] == 'ivan@example.com'

    def test_wrong_password(self, call, student):
        response = call('POST', '/api/auth/login', json={'email': student.email, 'password': 'wrong-pass'})
        assert response.status_code == 401
        assert response.get_json()['kind'] == 'InvalidCredential'

    def test_me_requires_token(self, call):
        response = call('GET', '/api/auth/me')
        assert response.status_code == 401
        assert response.get_json() == {
            'success': False, 'kind': 'InvalidCredential', 'message': 'Требуется авторизация',
        }

    def test_garbage_token(self, call):
        response = call('GET', '/api/auth/me', headers={'Authorization': 'Bearer not-a-token'})
        assert response.status_code == 401

    def test_validation_errors_by_field(self, call):
        response = call('POST', '/api/auth/register', json={'name': 'I', 'email': 'nope', 'password': '1'})
        body = response.get_json()
        assert response.status_code == 400
        assert body['kind'] == 'ValidationError'
        assert {item['field'] for item in body['errors']} == {'name', 'email', 'password'}

    def test_numeric_name_is_a_field_error(self, call):
        response = call('POST', '/api/auth/register', json={'name': 123, 'email': 'ivan@example.com',
                                                            'password': PASSWORD})
        body = response.get_json()
        assert response.status_code == 400
        assert body['kind'] == 'ValidationError'
        assert [item['field'] for item in body['errors']] == ['name']

    def test_body_must_be_object(self, call):
        response = call('POST', '/api/auth/login', json=['email', 'password'])
        assert response.status_code == 400

    def test_password_reset_flow(self, call, services, mailer, student):
        assert call('POST', '/api/auth/forgot-password', json={'email': student.email}).status_code == 200

        response = call('POST', '/api/auth/reset-password', json={
            'email': student.email, 'otp': mailer.last_otp(), 'password': 'brand-new-pass',
        })
        assert response.status_code == 200

        login = call('POST', '/api/auth/login', json={'email': student.email, 'password': 'brand-new-pass'})
        assert login.status_code == 200


class TestAccessApi:

    def test_student_cannot_list_users(self, call, services, student):
        response = call('GET', '/api/users/', headers=auth_header(services, student))
        assert response.status_code == 403
        assert response.get_json()['kind'] == 'PermissionDenied'

    def test_admin_lists_users(self, call, services, admin, teacher, student):
        response = call('GET', '/api/users/?role=student', headers=auth_header(services, admin))
        body = response.get_json()
        assert response.status_code == 200
        assert [user['id'] for user in body['users']] == [student.id]
        assert body['total'] == 1

    def test_missing_quiz(self, call, services, admin):
        response = call('GET', '/api/quizzes/4242', headers=auth_header(services, admin))
        assert response.status_code == 404
        assert response.get_json()['kind'] == 'NotFound'

    def test_unknown_route_is_json(self, call):
        response = call('GET', '/api/nothing-here')
        assert response.status_code == 404
        assert response.get_json()['success'] is False

    def test_deactivated_user_is_rejected(self, call, services, make_user):
        blocked = make_user(is_active=False)
        response = call('GET', '/api/auth/me', headers=auth_header(services, blocked))
        assert response.status_code == 401


class TestQuizApi:

    def test_teacher_builds_quiz_and_student_submits(self, call, services, teacher, student):
        teacher_headers = auth_header(services, teacher)
        student_headers = auth_header(services, student)

        created = call('POST', '/api/questions/', json=question_data(), headers=teacher_headers)
        assert created.status_code == 201
        question = created.get_json()['question']

        quiz_response = call('POST', '/api/quizzes/', headers=teacher_headers, json={
            'title': 'Контрольная работа', 'subject': 'Математика',
            'questions': [question['id']], 'is_published': True,
        })
        assert quiz_response.status_code == 201
        quiz_id = quiz_response.get_json()['quiz']['id']

        view = call('GET', f'/api/quizzes/{quiz_id}', headers=student_headers).get_json()
        assert 'correct_answer' not in view['quiz']['questions'][0]
        assert view['user_attempts'] == []

        correct_option = next(o for o in question['options'] if o['is_correct'])
        submitted = call('POST', f'/api/quizzes/{quiz_id}/submit', headers=student_headers, json={
            'answers': [{'question_id': question['id'], 'selected_answer': str(correct_option['id'])}],
            'time_spent': 42,
        })
        assert submitted.status_code == 200
        attempt = submitted.get_json()['attempt']
        assert attempt['percentage'] == 100
        assert attempt['passed'] is True
        assert attempt['attempt_number'] == 1

        attempts = call('GET', f'/api/quizzes/{quiz_id}/attempts', headers=teacher_headers).get_json()
        assert attempts['total'] == 1

    def test_attempt_limit_over_http(self, call, services, teacher, student, make_question, make_quiz):
        question = make_question(teacher)
        quiz = make_quiz(teacher, [question], max_attempts=1)
        headers = auth_header(services, student)
        payload = {'answers': [{'question_id': question.id, 'selected_answer': right(question)}], 'time_spent': 5}

        assert call('POST', f'/api/quizzes/{quiz.id}/submit', headers=headers, json=payload).status_code == 200
        response = call('POST', f'/api/quizzes/{quiz.id}/submit', headers=headers, json=payload)

        assert response.status_code == 400
        assert response.get_json()['kind'] == 'AttemptLimitExceeded'

    def test_student_dashboard(self, call, services, student):
        response = call('GET', '/api/analytics/dashboard', headers=auth_header(services, student))
        assert response.status_code == 200
        assert response.get_json()['stats']['total_attempts'] == 0

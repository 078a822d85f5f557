# quizhub/models/user.py
"""
Модель пользователя системы тестирования
Содержит информацию о пользователях системы (администраторы, преподаватели, студенты)
"""
from flask_login import UserMixin
from quizhub import db
from datetime import datetime
from sqlalchemy import String, Integer, DateTime, Float, Boolean
import re

ROLE_ADMIN = 'admin'
ROLE_TEACHER = 'teacher'
ROLE_STUDENT = 'student'
ROLES = (ROLE_ADMIN, ROLE_TEACHER, ROLE_STUDENT)


class User(UserMixin, db.Model):
    """
    Модель пользователя системы

    Attributes:
        id (int): Уникальный идентификатор пользователя
        name (str): Отображаемое имя
        email (str): Email пользователя (уникальный, хранится в нижнем регистре)
        password_hash (str): Хеш пароля пользователя
        role (str): Роль пользователя ('admin', 'teacher', 'student')
        is_active (bool): Активна ли учётная запись
        language (str): Язык интерфейса ('ru', 'en')
        last_login (datetime): Время последнего входа
        email_verified (bool): Подтверждён ли email
        reset_password_token (str): sha256 от одноразового кода сброса пароля
        reset_password_expires (datetime): Срок действия кода сброса
        total_quizzes_taken (int): Количество попыток пользователя
        average_score (float): Средний процент по всем попыткам пользователя
        version (int): Счётчик версии для оптимистической блокировки
        created_at (datetime): Дата создания пользователя
    """

    __tablename__ = 'users'

    # Основные поля
    id = db.Column(Integer, primary_key=True)
    name = db.Column(String(50), nullable=False)
    email = db.Column(String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(String(256), nullable=False)
    role = db.Column(String(20), default=ROLE_STUDENT, nullable=False)
    is_active = db.Column(Boolean, default=True, nullable=False)
    language = db.Column(String(5), default='ru')  # Язык интерфейса
    last_login = db.Column(DateTime)
    email_verified = db.Column(Boolean, default=False, nullable=False)
    reset_password_token = db.Column(String(64))
    reset_password_expires = db.Column(DateTime)

    # Агрегаты обновляются только движком подсчёта попыток
    total_quizzes_taken = db.Column(Integer, default=0, nullable=False)
    average_score = db.Column(Float, default=0.0, nullable=False)

    version = db.Column(Integer, nullable=False)
    created_at = db.Column(DateTime, default=datetime.utcnow)
    updated_at = db.Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Связи с другими моделями
    attempts = db.relationship('QuizAttempt', back_populates='student', lazy='dynamic',
                               foreign_keys='QuizAttempt.student_id')
    created_questions = db.relationship('Question', back_populates='creator', lazy='dynamic',
                                        foreign_keys='Question.created_by')
    created_quizzes = db.relationship('Quiz', back_populates='creator', lazy='dynamic',
                                      foreign_keys='Quiz.created_by')

    __mapper_args__ = {'version_id_col': version}

    def __repr__(self):
        """
        Строковое представление объекта пользователя

        Returns:
            str: Строковое представление пользователя
        """
        return f'<User {self.email} ({self.role})>'

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    @property
    def is_teacher(self):
        return self.role == ROLE_TEACHER

    @property
    def is_student(self):
        return self.role == ROLE_STUDENT

    def to_summary(self):
        """Краткое представление для вложенных ответов (создатель, студент)"""
        return {'id': self.id, 'name': self.name, 'email': self.email}

    def to_dict(self):
        """
        Сериализация пользователя без хеша пароля и полей сброса

        Returns:
            dict: Публичные поля пользователя
        """
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'is_active': self.is_active,
            'language': self.language,
            'email_verified': self.email_verified,
            'last_login': self.last_login.isoformat() if self.last_login else None,
            'total_quizzes_taken': self.total_quizzes_taken,
            'average_score': self.average_score,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    @staticmethod
    def normalize_email(email):
        """Email в нижнем регистре без пробелов; для не-строки пустая строка"""
        if not isinstance(email, str):
            return ''
        return email.strip().lower()

    @staticmethod
    def is_valid_email(email):
        """
        Проверяет корректность формата email

        Args:
            email (str): Email для проверки

        Returns:
            bool: True если формат корректен, иначе False
        """
        pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        return re.match(pattern, email or '') is not None

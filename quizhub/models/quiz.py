# quizhub/models/quiz.py
"""
Модели теста (квиза) системы тестирования
Содержит информацию о квизах, их составе и списке допущенных студентов
"""
from quizhub import db
from datetime import datetime
from sqlalchemy import String, Integer, Text, DateTime, Float, Boolean, ForeignKey
from sqlalchemy.ext.associationproxy import association_proxy
from sqlalchemy.ext.orderinglist import ordering_list


# Список допущенных студентов: пустой список означает публичный квиз
quiz_allowed_students = db.Table(
    'quiz_allowed_students',
    db.Column('quiz_id', Integer, ForeignKey('quizzes.id', ondelete='CASCADE'), primary_key=True),
    db.Column('user_id', Integer, ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
)


class Quiz(db.Model):
    """
    Модель квиза

    Attributes:
        id (int): Уникальный идентификатор квиза
        title (str): Название квиза
        description (str): Описание квиза
        subject (str): Предмет
        created_by (int): ID создателя квиза
        time_limit (int): Ограничение по времени, минуты
        max_attempts (int): Максимальное число попыток на студента
        passing_score (int): Проходной процент (0-100)
        is_published (bool): Опубликован ли квиз
        total_attempts (int): Количество попыток по квизу
        average_score (float): Средний процент по всем попыткам
        version (int): Счётчик версии для оптимистической блокировки
        question_links (relationship): Упорядоченные связи с вопросами (каскадное удаление)
        questions (proxy): Упорядоченный список вопросов
        allowed_students (relationship): Допущенные студенты
        attempts (relationship): Попытки прохождения
    """

    __tablename__ = 'quizzes'

    id = db.Column(Integer, primary_key=True)
    title = db.Column(String(200), nullable=False)
    description = db.Column(Text)
    subject = db.Column(String(100), nullable=False, index=True)
    created_by = db.Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    time_limit = db.Column(Integer, default=30, nullable=False)  # в минутах
    max_attempts = db.Column(Integer, default=3, nullable=False)
    passing_score = db.Column(Integer, default=60, nullable=False)  # в процентах
    is_published = db.Column(Boolean, default=False, nullable=False)

    # Агрегаты обновляются только движком подсчёта попыток
    total_attempts = db.Column(Integer, default=0, nullable=False)
    average_score = db.Column(Float, default=0.0, nullable=False)

    version = db.Column(Integer, nullable=False)
    created_at = db.Column(DateTime, default=datetime.utcnow)
    updated_at = db.Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Связи
    creator = db.relationship('User', back_populates='created_quizzes', foreign_keys=[created_by])
    question_links = db.relationship('QuizQuestion', back_populates='quiz',
                                     order_by='QuizQuestion.position',
                                     collection_class=ordering_list('position'),
                                     cascade='all, delete-orphan', passive_deletes=True)
    questions = association_proxy('question_links', 'question',
                                  creator=lambda question: QuizQuestion(question=question))
    allowed_students = db.relationship('User', secondary=quiz_allowed_students, lazy='selectin',
                                       passive_deletes=True)
    # Попытки удаляются явно сервисом квизов вместе с пересчётом агрегатов студентов
    attempts = db.relationship('QuizAttempt', back_populates='quiz', lazy='dynamic',
                               passive_deletes='all')

    __mapper_args__ = {'version_id_col': version}

    def __repr__(self):
        """
        Строковое представление объекта квиза

        Returns:
            str: Строковое представление квиза
        """
        return f'<Quiz {self.title}>'

    @property
    def question_ids(self):
        return [link.question_id for link in self.question_links]

    @property
    def question_count(self):
        """
        Количество вопросов в квизе

        Returns:
            int: Количество вопросов
        """
        return len(self.question_links)

    def is_visible_to(self, user_id):
        """
        Доступен ли квиз студенту: опубликован и список допуска пуст либо содержит студента

        Args:
            user_id (int): ID студента

        Returns:
            bool: True если квиз доступен
        """
        if not self.is_published:
            return False
        allowed = self.allowed_student_ids
        return not allowed or user_id in allowed

    @property
    def allowed_student_ids(self):
        return frozenset(student.id for student in self.allowed_students)

    def to_dict(self, questions=None):
        """
        Представление квиза

        Args:
            questions (list): Уже подготовленные представления вопросов;
                по умолчанию выводятся краткие сведения (id, заголовок, сложность)

        Returns:
            dict: Поля квиза
        """
        if questions is None:
            questions = [
                {'id': q.id, 'title': q.title, 'difficulty': q.difficulty}
                for q in self.questions
            ]
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'subject': self.subject,
            'questions': questions,
            'created_by': self.creator.to_summary() if self.creator else None,
            'time_limit': self.time_limit,
            'max_attempts': self.max_attempts,
            'passing_score': self.passing_score,
            'is_published': self.is_published,
            'allowed_students': [student.to_summary() for student in self.allowed_students],
            'total_attempts': self.total_attempts,
            'average_score': self.average_score,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class QuizQuestion(db.Model):
    """
    Связь квиза с вопросом с сохранением порядка

    Attributes:
        quiz_id (int): ID квиза
        question_id (int): ID вопроса
        position (int): Порядковый номер вопроса в квизе
    """

    __tablename__ = 'quiz_questions'

    quiz_id = db.Column(Integer, ForeignKey('quizzes.id', ondelete='CASCADE'), primary_key=True)
    question_id = db.Column(Integer, ForeignKey('questions.id', ondelete='CASCADE'), primary_key=True)
    position = db.Column(Integer)

    quiz = db.relationship('Quiz', back_populates='question_links')
    question = db.relationship('Question', back_populates='quiz_links')

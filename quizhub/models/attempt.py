# quizhub/models/attempt.py
"""
Модели попытки прохождения квиза
Попытка и её ответы не изменяются после создания
"""
from quizhub import db
from datetime import datetime
from sqlalchemy import Integer, Text, DateTime, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.ext.orderinglist import ordering_list


class QuizAttempt(db.Model):
    """
    Модель попытки прохождения квиза

    Attributes:
        id (int): Уникальный идентификатор попытки
        quiz_id (int): ID квиза (внешний ключ с ON DELETE CASCADE)
        student_id (int): ID студента
        score (int): Количество верных ответов
        percentage (int): Процент верных ответов от числа вопросов квиза (0-100)
        time_spent (int): Общее время прохождения в секундах
        started_at (datetime): Время начала попытки
        submitted_at (datetime): Время отправки попытки
        attempt_number (int): Порядковый номер попытки студента по квизу (с 1)
        passed (bool): Набран ли проходной процент
        answers (relationship): Упорядоченные ответы по вопросам
    """

    __tablename__ = 'quiz_attempts'
    # Один номер попытки не может достаться двум параллельным отправкам
    __table_args__ = (
        UniqueConstraint('quiz_id', 'student_id', 'attempt_number', name='uq_attempt_number'),
    )

    id = db.Column(Integer, primary_key=True)
    quiz_id = db.Column(Integer, ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False, index=True)
    student_id = db.Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    score = db.Column(Integer, nullable=False)
    percentage = db.Column(Integer, nullable=False)
    time_spent = db.Column(Integer, nullable=False)
    started_at = db.Column(DateTime, nullable=False)
    submitted_at = db.Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    attempt_number = db.Column(Integer, nullable=False)
    passed = db.Column(Boolean, nullable=False)

    quiz = db.relationship('Quiz', back_populates='attempts')
    student = db.relationship('User', back_populates='attempts', foreign_keys=[student_id])
    answers = db.relationship('AttemptAnswer', back_populates='attempt',
                              order_by='AttemptAnswer.position',
                              collection_class=ordering_list('position'),
                              cascade='all, delete-orphan', passive_deletes=True)

    def __repr__(self):
        """
        Строковое представление объекта попытки

        Returns:
            str: Строковое представление попытки
        """
        return f'<QuizAttempt quiz_id={self.quiz_id}, student_id={self.student_id}, #{self.attempt_number}, {self.percentage}%>'

    def to_dict(self, include_answers=False):
        """
        Представление попытки

        Args:
            include_answers (bool): Включать ли ответы по вопросам

        Returns:
            dict: Поля попытки
        """
        data = {
            'id': self.id,
            'quiz': {'id': self.quiz.id, 'title': self.quiz.title, 'subject': self.quiz.subject} if self.quiz else None,
            'student': self.student.to_summary() if self.student else None,
            'score': self.score,
            'percentage': self.percentage,
            'time_spent': self.time_spent,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None,
            'attempt_number': self.attempt_number,
            'passed': self.passed,
        }
        if include_answers:
            data['answers'] = [answer.to_dict() for answer in self.answers]
        return data


class AttemptAnswer(db.Model):
    """
    Ответ студента на один вопрос в рамках попытки

    Attributes:
        id (int): Уникальный идентификатор ответа
        attempt_id (int): ID попытки
        question_id (int): ID вопроса (сохраняется как есть, даже если вопрос удалён)
        selected_answer (str): Ответ студента (ID варианта, текст варианта или свободный текст)
        is_correct (bool): Верен ли ответ
        time_spent (int): Время на вопрос в секундах
        position (int): Порядковый номер ответа в попытке
    """

    __tablename__ = 'attempt_answers'

    id = db.Column(Integer, primary_key=True)
    attempt_id = db.Column(Integer, ForeignKey('quiz_attempts.id', ondelete='CASCADE'), nullable=False, index=True)
    question_id = db.Column(Integer, nullable=False, index=True)
    selected_answer = db.Column(Text)
    is_correct = db.Column(Boolean, nullable=False, default=False)
    time_spent = db.Column(Integer, nullable=False, default=0)
    position = db.Column(Integer)

    attempt = db.relationship('QuizAttempt', back_populates='answers')

    def to_dict(self):
        return {
            'question_id': self.question_id,
            'selected_answer': self.selected_answer,
            'is_correct': self.is_correct,
            'time_spent': self.time_spent,
        }

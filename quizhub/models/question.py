# quizhub/models/question.py
"""
Модель вопроса системы тестирования
Содержит информацию о вопросах (с выбором варианта, верно/неверно, с кратким ответом)
"""
from quizhub import db
from datetime import datetime
from sqlalchemy import String, Integer, Text, DateTime, Float, Boolean, ForeignKey
from sqlalchemy.ext.orderinglist import ordering_list
import json

TYPE_MULTIPLE_CHOICE = 'multiple-choice'
TYPE_TRUE_FALSE = 'true-false'
TYPE_SHORT_ANSWER = 'short-answer'
QUESTION_TYPES = (TYPE_MULTIPLE_CHOICE, TYPE_TRUE_FALSE, TYPE_SHORT_ANSWER)
CHOICE_TYPES = (TYPE_MULTIPLE_CHOICE, TYPE_TRUE_FALSE)

DIFFICULTIES = ('easy', 'medium', 'hard')


class Question(db.Model):
    """
    Модель вопроса

    Attributes:
        id (int): Уникальный идентификатор вопроса
        title (str): Краткий заголовок вопроса
        question_text (str): Текст вопроса
        question_type (str): Тип вопроса ('multiple-choice', 'true-false', 'short-answer')
        correct_answer (str): Эталонный ответ для вопросов с кратким ответом
        explanation (str): Пояснение к правильному ответу
        difficulty (str): Сложность ('easy', 'medium', 'hard')
        subject (str): Предмет
        tags_json (str): JSON-список тегов
        created_by (int): ID создателя вопроса
        is_active (bool): Активен ли вопрос
        times_used (int): Сколько раз на вопрос отвечали
        average_score (float): Процент верных ответов на вопрос
        options (relationship): Упорядоченные варианты ответа
        creator (relationship): Связь с создателем
    """

    __tablename__ = 'questions'

    # Основные поля
    id = db.Column(Integer, primary_key=True)
    title = db.Column(String(200), nullable=False)
    question_text = db.Column(Text, nullable=False)
    question_type = db.Column(String(20), default=TYPE_MULTIPLE_CHOICE, nullable=False)
    correct_answer = db.Column(Text)  # Только для вопросов с кратким ответом
    explanation = db.Column(Text)
    difficulty = db.Column(String(10), default='medium', nullable=False)
    subject = db.Column(String(100), nullable=False, index=True)
    # Для SQLite используем Text + сериализацию в JSON
    tags_json = db.Column(Text, default='[]')
    created_by = db.Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    is_active = db.Column(Boolean, default=True, nullable=False)

    # Счётчики использования обновляются движком подсчёта попыток
    times_used = db.Column(Integer, default=0, nullable=False)
    average_score = db.Column(Float, default=0.0, nullable=False)

    version = db.Column(Integer, nullable=False)
    created_at = db.Column(DateTime, default=datetime.utcnow)
    updated_at = db.Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    creator = db.relationship('User', back_populates='created_questions', foreign_keys=[created_by])
    options = db.relationship('QuestionOption', back_populates='question',
                              order_by='QuestionOption.position',
                              collection_class=ordering_list('position'),
                              cascade='all, delete-orphan', passive_deletes=True)
    quiz_links = db.relationship('QuizQuestion', back_populates='question',
                                 cascade='all, delete-orphan', passive_deletes=True)

    __mapper_args__ = {'version_id_col': version}

    def __repr__(self):
        """
        Строковое представление объекта вопроса

        Returns:
            str: Строковое представление вопроса
        """
        return f'<Question {self.question_type}: {self.title[:50]}>'

    @property
    def tags(self):
        try:
            return json.loads(self.tags_json) if self.tags_json else []
        except (TypeError, ValueError):
            return []

    @tags.setter
    def tags(self, value):
        self.tags_json = json.dumps(list(value or []), ensure_ascii=False)

    @property
    def correct_option(self):
        """
        Первый вариант, отмеченный как верный

        Returns:
            QuestionOption: Верный вариант или None
        """
        for option in self.options:
            if option.is_correct:
                return option
        return None

    def to_dict(self):
        """
        Полное представление вопроса, включая правильные ответы

        Returns:
            dict: Поля вопроса
        """
        return {
            'id': self.id,
            'title': self.title,
            'question_text': self.question_text,
            'question_type': self.question_type,
            'options': [option.to_dict() for option in self.options],
            'correct_answer': self.correct_answer,
            'explanation': self.explanation,
            'difficulty': self.difficulty,
            'subject': self.subject,
            'tags': self.tags,
            'created_by': self.creator.to_summary() if self.creator else None,
            'is_active': self.is_active,
            'times_used': self.times_used,
            'average_score': self.average_score,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class QuestionOption(db.Model):
    """
    Вариант ответа на вопрос с выбором

    Attributes:
        id (int): Уникальный идентификатор варианта (по нему сверяется выбор студента)
        question_id (int): ID вопроса
        text (str): Текст варианта
        is_correct (bool): Является ли вариант верным
        position (int): Порядковый номер варианта в вопросе
    """

    __tablename__ = 'question_options'

    id = db.Column(Integer, primary_key=True)
    question_id = db.Column(Integer, ForeignKey('questions.id', ondelete='CASCADE'), nullable=False, index=True)
    text = db.Column(Text, nullable=False)
    is_correct = db.Column(Boolean, default=False, nullable=False)
    position = db.Column(Integer)

    question = db.relationship('Question', back_populates='options')

    def to_dict(self):
        return {'id': self.id, 'text': self.text, 'is_correct': self.is_correct}

# quizhub/models/__init__.py
"""
Инициализация моделей данных приложения
Объединение всех моделей в одном месте
"""
from .user import User
from .question import Question, QuestionOption
from .quiz import Quiz, QuizQuestion, quiz_allowed_students
from .attempt import QuizAttempt, AttemptAnswer

__all__ = ['User', 'Question', 'QuestionOption', 'Quiz', 'QuizQuestion',
           'quiz_allowed_students', 'QuizAttempt', 'AttemptAnswer']

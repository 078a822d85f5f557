# quizhub/services/questions.py
"""
Сервис банка вопросов
"""
import logging

from flask_babel import _
from sqlalchemy import or_

from quizhub.models.question import (
    Question, QuestionOption, QUESTION_TYPES, CHOICE_TYPES, DIFFICULTIES, TYPE_SHORT_ANSWER,
)
from quizhub.services import policy
from quizhub.services.base import BaseService
from quizhub.services.errors import FieldErrors
from quizhub.utils.pagination import paginate_query

logger = logging.getLogger(__name__)

# Поля, которые можно передать при создании и обновлении
EDITABLE_FIELDS = (
    'title', 'question_text', 'question_type', 'options', 'correct_answer',
    'explanation', 'difficulty', 'subject', 'tags', 'is_active',
)


def _text(value):
    """Строка без пробелов по краям; для не-строки пустая строка"""
    return value.strip() if isinstance(value, str) else ''


def _clean_options(raw_options):
    """Приведение списка вариантов к виду [{'text': str, 'is_correct': ...}]; тип признака проверяется отдельно"""
    options = []
    for raw in raw_options or []:
        if isinstance(raw, dict):
            text = str(raw.get('text') or '').strip()
            is_correct = raw.get('is_correct', False)
        else:
            text, is_correct = str(raw or '').strip(), False
        options.append({'text': text, 'is_correct': is_correct})
    return options


def validate_question(data):
    """
    Проверка полей вопроса и инварианта вариантов ответа

    Args:
        data (dict): Итоговые значения полей вопроса

    Raises:
        ValidationError: Если хотя бы одно поле некорректно
    """
    errors = FieldErrors()

    if not 5 <= len(_text(data.get('title'))) <= 200:
        errors.add('title', _('Заголовок должен содержать от 5 до 200 символов'))
    if len(_text(data.get('question_text'))) < 10:
        errors.add('question_text', _('Текст вопроса должен содержать не менее 10 символов'))
    if len(_text(data.get('subject'))) < 2:
        errors.add('subject', _('Предмет должен содержать не менее 2 символов'))
    if data.get('difficulty') not in DIFFICULTIES:
        errors.add('difficulty', _('Недопустимая сложность'))
    tags = data.get('tags')
    if tags is not None and not isinstance(tags, (list, tuple)):
        errors.add('tags', _('Теги должны быть списком'))
    explanation = data.get('explanation')
    if explanation is not None and not isinstance(explanation, str):
        errors.add('explanation', _('Пояснение должно быть строкой'))
    if 'is_active' in data and not isinstance(data['is_active'], bool):
        errors.add('is_active', _('Значение должно быть true или false'))

    question_type = data.get('question_type')
    if question_type not in QUESTION_TYPES:
        errors.add('question_type', _('Недопустимый тип вопроса'))
    elif question_type in CHOICE_TYPES:
        options = data.get('options') or []
        if len(options) < 2:
            errors.add('options', _('Вопрос с выбором должен иметь не менее 2 вариантов'))
        elif any(not option['text'] for option in options):
            errors.add('options', _('Текст варианта не может быть пустым'))
        elif any(not isinstance(option['is_correct'], bool) for option in options):
            errors.add('options', _('Признак верности варианта должен быть true или false'))
        elif not any(option['is_correct'] for option in options):
            errors.add('options', _('Хотя бы один вариант должен быть отмечен как верный'))
    elif question_type == TYPE_SHORT_ANSWER:
        if not _text(data.get('correct_answer')):
            errors.add('correct_answer', _('Для вопроса с кратким ответом нужен эталонный ответ'))

    errors.raise_if_any()


class QuestionService(BaseService):
    """Операции с вопросами; каждая проверяет права через политику доступа"""

    def _apply(self, question, data):
        if 'title' in data:
            question.title = data['title'].strip()
        if 'question_text' in data:
            question.question_text = data['question_text'].strip()
        if 'question_type' in data:
            question.question_type = data['question_type']
        if 'subject' in data:
            question.subject = data['subject'].strip()
        if 'difficulty' in data:
            question.difficulty = data['difficulty']
        if 'explanation' in data:
            question.explanation = data['explanation']
        if 'tags' in data:
            question.tags = [str(tag).strip() for tag in data['tags'] or [] if str(tag).strip()]
        if 'is_active' in data:
            question.is_active = data['is_active']

        if question.question_type in CHOICE_TYPES:
            if 'options' in data:
                question.options = [QuestionOption(text=o['text'], is_correct=o['is_correct'])
                                    for o in data['options']]
            question.correct_answer = None
        else:
            question.options = []
            question.correct_answer = (data.get('correct_answer') or question.correct_answer or '').strip()

    def create_question(self, actor, data):
        """
        Создание вопроса

        Args:
            actor (User): Создатель (преподаватель или администратор)
            data (dict): Поля вопроса; options: список {'text', 'is_correct'}

        Returns:
            dict: Созданный вопрос
        """
        policy.authorize(actor, policy.QUESTION_CREATE)
        data = {key: value for key, value in (data or {}).items() if key in EDITABLE_FIELDS}
        data.setdefault('difficulty', 'medium')
        data['options'] = _clean_options(data.get('options'))
        validate_question(data)

        question = Question(created_by=actor.id)
        self._apply(question, data)
        self.session.add(question)
        self._commit()
        logger.info("Question %s created by user %s", question.id, actor.id)
        return question.to_dict()

    def _load(self, actor, question_id, action):
        question = self._get_or_404(Question, question_id, _('Вопрос не найден'))
        policy.authorize(actor, action, policy.Resource.of_question(question))
        return question

    def get_question(self, actor, question_id):
        return self._load(actor, question_id, policy.QUESTION_READ).to_dict()

    def update_question(self, actor, question_id, data):
        """Частичное обновление вопроса; итоговое состояние проверяется целиком"""
        question = self._load(actor, question_id, policy.QUESTION_UPDATE)
        changes = {key: value for key, value in (data or {}).items() if key in EDITABLE_FIELDS}
        if 'options' in changes:
            changes['options'] = _clean_options(changes['options'])

        merged = {
            'title': question.title,
            'question_text': question.question_text,
            'question_type': question.question_type,
            'subject': question.subject,
            'difficulty': question.difficulty,
            'correct_answer': question.correct_answer,
            'options': [{'text': o.text, 'is_correct': o.is_correct} for o in question.options],
        }
        merged.update(changes)
        validate_question(merged)

        self._apply(question, changes)
        self._commit()
        return question.to_dict()

    def delete_question(self, actor, question_id):
        """
        Удаление вопроса
        Вопрос исключается из квизов; записи ответов в попытках сохраняют его ID
        """
        question = self._load(actor, question_id, policy.QUESTION_DELETE)
        self.session.delete(question)
        self._commit()
        logger.info("Question %s deleted by user %s", question_id, actor.id)

    def _scoped_query(self, actor):
        query = self.session.query(Question)
        if not actor.is_admin:
            query = query.filter(Question.created_by == actor.id)
        return query

    def list_questions(self, actor, subject=None, difficulty=None, search=None, page=None, per_page=None):
        """
        Список вопросов: преподаватель видит только свои

        Returns:
            dict: items, total, total_pages, current_page, per_page
        """
        policy.authorize(actor, policy.QUESTION_LIST)
        query = self._scoped_query(actor)
        if subject:
            query = query.filter(Question.subject == subject)
        if difficulty:
            query = query.filter(Question.difficulty == difficulty)
        search = (search or '').strip()
        if search:
            query = query.filter(or_(
                Question.title.icontains(search, autoescape=True),
                Question.question_text.icontains(search, autoescape=True),
            ))
        query = query.order_by(Question.created_at.desc(), Question.id.desc())
        page, per_page = self._page_args(page, per_page)
        return paginate_query(query, page, per_page, lambda question: question.to_dict())

    def list_subjects(self, actor):
        """Отсортированный список предметов доступных актору вопросов"""
        policy.authorize(actor, policy.QUESTION_LIST)
        query = self._scoped_query(actor).with_entities(Question.subject).distinct()
        return sorted(subject for (subject,) in query)

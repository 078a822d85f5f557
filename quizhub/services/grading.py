# quizhub/services/grading.py
"""
Проверка ответа на отдельный вопрос
Функции чистые: одинаковые (вопрос, ответ) всегда дают одинаковый результат,
некорректные данные вопроса дают «неверно», а не исключение
"""
from quizhub.models.question import TYPE_MULTIPLE_CHOICE, TYPE_TRUE_FALSE, TYPE_SHORT_ANSWER


def _normalize(value):
    if value is None:
        return None
    return str(value).strip().lower()


def grade_multiple_choice(question, selected_answer):
    """Верно, если выбран ID варианта, отмеченного как верный"""
    option = question.correct_option
    if option is None or option.id is None or selected_answer is None:
        return False
    return str(option.id) == str(selected_answer).strip()


def grade_true_false(question, selected_answer):
    """Верно, если текст выбора без учёта регистра совпадает с текстом верного варианта"""
    option = question.correct_option
    if option is None or option.text is None or selected_answer is None:
        return False
    return option.text.lower() == str(selected_answer).lower()


def grade_short_answer(question, selected_answer):
    """Верно, если ответ после обрезки пробелов и приведения к нижнему регистру совпадает с эталоном"""
    expected = _normalize(question.correct_answer)
    given = _normalize(selected_answer)
    if not expected or given is None:
        return False
    return expected == given


GRADERS = {
    TYPE_MULTIPLE_CHOICE: grade_multiple_choice,
    TYPE_TRUE_FALSE: grade_true_false,
    TYPE_SHORT_ANSWER: grade_short_answer,
}


def grade_answer(question, selected_answer):
    """
    Проверка ответа на вопрос

    Args:
        question (Question): Вопрос
        selected_answer: Ответ студента (ID варианта, текст варианта или свободный текст)

    Returns:
        bool: True если ответ верный
    """
    grader = GRADERS.get(question.question_type)
    if grader is None:
        return False
    try:
        return bool(grader(question, selected_answer))
    except (AttributeError, TypeError, ValueError):
        return False

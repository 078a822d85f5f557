# quizhub/services/visibility.py
"""
Фильтр видимости содержимого при чтении
Студент не получает признаки верности вариантов, эталонный ответ, пояснение
и чужие записи списка допуска.
Хранимые данные не изменяются: фильтр работает над сериализованным представлением.
"""

HIDDEN_QUESTION_FIELDS = ('correct_answer', 'explanation')


def student_question_view(question):
    """
    Представление вопроса для студента

    Args:
        question (Question): Вопрос

    Returns:
        dict: Вопрос без правильных ответов; варианты только в виде {id, text}
    """
    data = question.to_dict()
    for key in HIDDEN_QUESTION_FIELDS:
        data.pop(key, None)
    data['options'] = [{'id': option['id'], 'text': option['text']} for option in data.get('options', [])]
    return data


def _own_allow_entry(data, student):
    """Из списка допуска студент видит только собственную запись"""
    data['allowed_students'] = [entry for entry in data.get('allowed_students', []) if entry['id'] == student.id]
    return data


def student_quiz_view(quiz, student):
    """Представление квиза для студента с отфильтрованными вопросами"""
    return _own_allow_entry(quiz.to_dict(questions=[student_question_view(q) for q in quiz.questions]), student)


def student_quiz_summary(quiz, student):
    """Элемент списка квизов для студента"""
    return _own_allow_entry(quiz.to_dict(), student)


def full_quiz_view(quiz):
    """Представление квиза для создателя и администратора, вопросы целиком"""
    return quiz.to_dict(questions=[q.to_dict() for q in quiz.questions])

# quizhub/utils/pagination.py
"""
Вспомогательные функции постраничного вывода
"""


def parse_page_args(page=None, per_page=None, default_per_page=10, max_per_page=100):
    """
    Приведение параметров страницы к допустимым значениям

    Args:
        page: Номер страницы (с 1), строка или число
        per_page: Размер страницы, строка или число
        default_per_page (int): Размер страницы по умолчанию
        max_per_page (int): Максимальный размер страницы

    Returns:
        tuple: (page, per_page)
    """
    try:
        page = int(page) if page is not None else 1
    except (TypeError, ValueError):
        page = 1
    try:
        per_page = int(per_page) if per_page is not None else default_per_page
    except (TypeError, ValueError):
        per_page = default_per_page

    page = max(1, page)
    per_page = min(max_per_page, max(1, per_page))
    return page, per_page


def paginate_query(query, page, per_page, serialize):
    """
    Выполнение запроса с пагинацией Flask-SQLAlchemy

    Args:
        query: flask_sqlalchemy.query.Query
        page (int): Номер страницы
        per_page (int): Размер страницы
        serialize: Функция преобразования объекта в dict

    Returns:
        dict: items, total, total_pages, current_page, per_page
    """
    pagination = query.paginate(page=page, per_page=per_page, error_out=False)
    return {
        'items': [serialize(item) for item in pagination.items],
        'total': pagination.total,
        'total_pages': pagination.pages,
        'current_page': pagination.page,
        'per_page': pagination.per_page,
    }

# quizhub/utils/__init__.py
"""
Инициализация вспомогательных утилит
Объединение всех утилит в одном месте
"""
from .pagination import parse_page_args, paginate_query
from .stats import round_half_up, percent, mean

__all__ = ['parse_page_args', 'paginate_query', 'round_half_up', 'percent', 'mean']

# quizhub/services/base.py
"""
Общая основа сервисов: сессия БД, конфигурация, фиксация транзакций
"""
import logging

from flask_babel import _
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from quizhub.services.errors import AlreadyExists, NotFound, StoreUnavailable
from quizhub.utils.pagination import parse_page_args

logger = logging.getLogger(__name__)


class BaseService:
    """
    Базовый сервис

    Args:
        session: Сессия SQLAlchemy (db.session приложения или тестовая)
        config (dict): Конфигурация приложения
    """

    def __init__(self, session, config=None):
        self.session = session
        self.config = config or {}

    def _get_or_404(self, model, object_id, message):
        obj = self.session.get(model, object_id) if object_id is not None else None
        if obj is None:
            raise NotFound(message)
        return obj

    def _page_args(self, page, per_page):
        return parse_page_args(
            page, per_page,
            default_per_page=self.config.get('DEFAULT_PAGE_SIZE', 10),
            max_per_page=self.config.get('MAX_PAGE_SIZE', 100),
        )

    def _commit(self, conflict_message=None):
        """
        Фиксация транзакции с откатом при ошибке

        Args:
            conflict_message (str): Сообщение AlreadyExists при нарушении уникальности;
                если не задано, нарушение считается отказом хранилища
        """
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            if conflict_message:
                raise AlreadyExists(conflict_message, detail=str(e.orig))
            logger.exception("Integrity error on commit")
            raise StoreUnavailable(_('Ошибка сохранения данных'), detail=str(e.orig))
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Database error on commit")
            raise StoreUnavailable(_('Ошибка сохранения данных'), detail=str(e))

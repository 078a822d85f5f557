# quizhub/services/errors.py
"""
Типизированные ошибки сервисного слоя
Каждая ошибка имеет стабильный вид (kind) и человекочитаемое сообщение
"""


class ServiceError(Exception):
    """
    Базовая ошибка сервисного слоя

    Attributes:
        kind (str): Стабильный идентификатор вида ошибки
        status_code (int): HTTP-статус, который использует транспортный слой
        message (str): Сообщение для пользователя
        errors (list): Ошибки по полям (для ValidationError)
        detail (str): Внутренние подробности (выводятся только вне production)
    """

    kind = 'ServiceError'
    status_code = 500

    def __init__(self, message, errors=None, detail=None):
        super().__init__(message)
        self.message = str(message)
        self.errors = errors or []
        self.detail = detail

    def to_dict(self, expose_detail=False):
        data = {
            'success': False,
            'kind': self.kind,
            'message': self.message,
        }
        if self.errors:
            data['errors'] = self.errors
        if expose_detail and self.detail:
            data['error'] = self.detail
        return data


class ValidationError(ServiceError):
    kind = 'ValidationError'
    status_code = 400


class NotFound(ServiceError):
    kind = 'NotFound'
    status_code = 404


class PermissionDenied(ServiceError):
    kind = 'PermissionDenied'
    status_code = 403


class AlreadyExists(ServiceError):
    kind = 'AlreadyExists'
    status_code = 409


class AttemptLimitExceeded(ServiceError):
    kind = 'AttemptLimitExceeded'
    status_code = 400


class InvalidAnswer(ServiceError):
    kind = 'InvalidAnswer'
    status_code = 400


class InvalidCredential(ServiceError):
    kind = 'InvalidCredential'
    status_code = 401


class StoreUnavailable(ServiceError):
    """Отказ внешнего компонента (хранилище, почта); сервисы его не повторяют"""
    kind = 'StoreUnavailable'
    status_code = 503


class FieldErrors:
    """
    Накопитель ошибок валидации по полям

    Пример:
        errors = FieldErrors()
        errors.add('title', _('Слишком короткое название'))
        errors.raise_if_any()
    """

    def __init__(self):
        self.items = []

    def add(self, field, message):
        self.items.append({'field': field, 'message': str(message)})

    def __bool__(self):
        return bool(self.items)

    def raise_if_any(self, message=None):
        if self.items:
            raise ValidationError(message or self.items[0]['message'], errors=self.items)

# quizhub/services/__init__.py
"""
Сервисный слой QuizHub
ServiceRegistry собирает сервисы над общей сессией и внешними компонентами
"""
from quizhub.services.analytics import AnalyticsService
from quizhub.services.mail import MailSender
from quizhub.services.questions import QuestionService
from quizhub.services.quizzes import QuizService
from quizhub.services.scoring import ScoringService
from quizhub.services.security import PasswordHasher, TokenIssuer
from quizhub.services.users import UserService


class ServiceRegistry:
    """
    Набор сервисов приложения

    Args:
        session: Сессия SQLAlchemy
        hasher (PasswordHasher): Хэширование паролей
        tokens (TokenIssuer): Токены сессии
        mailer (MailSender): Отправка писем
        config (dict): Конфигурация приложения
    """

    def __init__(self, session, hasher, tokens, mailer, config=None):
        config = config or {}
        self.users = UserService(session, hasher, tokens, mailer, config)
        self.questions = QuestionService(session, config)
        self.quizzes = QuizService(session, config)
        self.scoring = ScoringService(session, config)
        self.analytics = AnalyticsService(session, config)

    @classmethod
    def from_config(cls, session, config):
        """Сборка сервисов по конфигурации Flask"""
        return cls(
            session=session,
            hasher=PasswordHasher(config.get('PASSWORD_HASH_METHOD', 'pbkdf2:sha256:600000')),
            tokens=TokenIssuer(
                secret_key=config.get('JWT_SECRET_KEY') or config['SECRET_KEY'],
                expires=config['JWT_EXPIRES'],
                algorithm=config.get('JWT_ALGORITHM', 'HS256'),
            ),
            mailer=MailSender.from_config(config),
            config=config,
        )

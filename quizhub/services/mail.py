# quizhub/services/mail.py
"""
Отправка писем по SMTP
Ошибки доставки передаются вызывающему коду, повторов здесь нет
"""
import logging
import smtplib
from email.message import EmailMessage

from flask_babel import _

from quizhub.services.errors import StoreUnavailable

logger = logging.getLogger(__name__)


class MailSender:
    """
    Отправитель писем

    Args:
        server (str): SMTP-сервер
        port (int): Порт
        username (str): Логин SMTP
        password (str): Пароль SMTP
        use_tls (bool): Использовать STARTTLS
        sender (str): Адрес отправителя
        suppress (bool): Не отправлять, только записать в журнал
        timeout (int): Таймаут соединения в секундах
    """

    def __init__(self, server, port=587, username=None, password=None, use_tls=True,
                 sender=None, suppress=False, timeout=10):
        self.server = server
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.suppress = suppress
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            server=config.get('MAIL_SERVER'),
            port=config.get('MAIL_PORT', 587),
            username=config.get('MAIL_USERNAME'),
            password=config.get('MAIL_PASSWORD'),
            use_tls=config.get('MAIL_USE_TLS', True),
            sender=config.get('MAIL_DEFAULT_SENDER'),
            suppress=config.get('MAIL_SUPPRESS_SEND', False),
            timeout=config.get('MAIL_TIMEOUT', 10),
        )

    def send(self, to_address, subject, body):
        message = EmailMessage()
        message['From'] = self.sender
        message['To'] = to_address
        message['Subject'] = subject
        message.set_content(body)

        if self.suppress:
            logger.info("Mail suppressed: to=%s subject=%s", to_address, subject)
            return

        try:
            with smtplib.SMTP(self.server, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Mail delivery to %s failed: %s", to_address, e)
            raise StoreUnavailable(_('Ошибка отправки письма'), detail=str(e))
        logger.info("Mail sent: to=%s subject=%s", to_address, subject)

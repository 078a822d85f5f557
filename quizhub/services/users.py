# quizhub/services/users.py
"""
Сервис пользователей: регистрация, вход, токены, сброс пароля и управление профилями
"""
import logging
from datetime import datetime, timedelta

from flask_babel import _
from sqlalchemy import false, or_

from quizhub.models.user import User, ROLES, ROLE_STUDENT, ROLE_TEACHER, ROLE_ADMIN
from quizhub.models.question import Question
from quizhub.models.quiz import Quiz
from quizhub.models.attempt import QuizAttempt
from quizhub.services import policy
from quizhub.services.base import BaseService
from quizhub.services.errors import (
    FieldErrors, InvalidCredential, NotFound, ValidationError, AlreadyExists,
)
from quizhub.services.security import generate_otp, hash_otp
from quizhub.utils.pagination import paginate_query

logger = logging.getLogger(__name__)


class UserService(BaseService):
    """
    Сервис пользователей

    Args:
        session: Сессия SQLAlchemy
        hasher (PasswordHasher): Хэширование паролей
        tokens (TokenIssuer): Токены сессии
        mailer (MailSender): Отправка писем
        config (dict): Конфигурация приложения
    """

    def __init__(self, session, hasher, tokens, mailer, config=None):
        super().__init__(session, config)
        self.hasher = hasher
        self.tokens = tokens
        self.mailer = mailer

    # === Валидация ===

    def _validate(self, errors, name=None, email=None, password=None, role=None, language=None,
                  check_name=True, check_email=True, check_password=True):
        if check_name:
            if not isinstance(name, str) or not 2 <= len(name.strip()) <= 50:
                errors.add('name', _('Имя должно содержать от 2 до 50 символов'))
        if check_email and not User.is_valid_email(User.normalize_email(email)):
            errors.add('email', _('Некорректный формат email'))
        if check_password:
            min_length = self.config.get('PASSWORD_MIN_LENGTH', 6)
            if not isinstance(password, str) or len(password) < min_length:
                errors.add('password', _('Пароль должен содержать не менее %(num)d символов', num=min_length))
        if role is not None and (not isinstance(role, str) or role not in ROLES):
            errors.add('role', _('Недопустимая роль'))
        languages = self.config.get('LANGUAGES', {'ru': '', 'en': ''})
        if language is not None and (not isinstance(language, str) or language not in languages):
            errors.add('language', _('Неподдерживаемый язык'))

    def _ensure_email_free(self, email, exclude_id=None):
        query = self.session.query(User).filter(User.email == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first() is not None:
            raise AlreadyExists(_('Пользователь с таким email уже существует'))

    def _create(self, name, email, password, role, language=None):
        errors = FieldErrors()
        self._validate(errors, name=name, email=email, password=password, role=role, language=language)
        errors.raise_if_any()

        email = User.normalize_email(email)
        self._ensure_email_free(email)

        user = User(
            name=name.strip(),
            email=email,
            password_hash=self.hasher.hash(password),
            role=role,
            language=language or self.config.get('BABEL_DEFAULT_LOCALE', 'ru'),
        )
        self.session.add(user)
        self._commit(conflict_message=_('Пользователь с таким email уже существует'))
        logger.info("User created: %s (%s)", user.email, user.role)
        return user

    # === Регистрация и вход ===

    def register(self, name, email, password, language=None):
        """
        Регистрация нового пользователя; роль всегда 'student'

        Returns:
            dict: {'user': ..., 'token': ...}
        """
        user = self._create(name, email, password, ROLE_STUDENT, language=language)
        return {'user': user.to_dict(), 'token': self.tokens.issue(user.id)}

    def create_user(self, actor, name, email, password, role):
        """Создание пользователя с явной ролью (только администратор)"""
        policy.authorize(actor, policy.USER_CREATE)
        if role is None:
            raise ValidationError(_('Роль обязательна'), errors=[{'field': 'role', 'message': _('Роль обязательна')}])
        user = self._create(name, email, password, role)
        return user.to_dict()

    def login(self, email, password, now=None):
        """
        Вход по email и паролю

        Returns:
            dict: {'user': ..., 'token': ...}
        """
        user = self.session.query(User).filter_by(email=User.normalize_email(email)).first()
        if user is None or not user.is_active or not self.hasher.verify(password, user.password_hash):
            raise InvalidCredential(_('Неверные учетные данные'))

        user.last_login = now or datetime.utcnow()
        self._commit()
        return {'user': user.to_dict(), 'token': self.tokens.issue(user.id)}

    def load_user(self, user_id):
        """Активный пользователь по ID или None"""
        try:
            user = self.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None
        if user is None or not user.is_active:
            return None
        return user

    def authenticate(self, token):
        """
        Пользователь по токену сессии

        Raises:
            InvalidCredential: Токен недействителен или пользователь неактивен
        """
        user_id = self.tokens.verify(token)
        user = self.load_user(user_id) if user_id is not None else None
        if user is None:
            raise InvalidCredential(_('Недействительный токен'))
        return user

    # === Пароли ===

    def request_password_reset(self, email, now=None):
        """Генерация одноразового кода сброса пароля и отправка его на почту"""
        email = User.normalize_email(email)
        if not User.is_valid_email(email):
            raise ValidationError(_('Некорректный формат email'),
                                  errors=[{'field': 'email', 'message': _('Некорректный формат email')}])
        user = self.session.query(User).filter_by(email=email).first()
        if user is None:
            raise NotFound(_('Пользователь не найден'))

        now = now or datetime.utcnow()
        otp = generate_otp()
        user.reset_password_token = hash_otp(otp)
        user.reset_password_expires = now + self.config.get('RESET_OTP_TTL', timedelta(minutes=10))
        self._commit()

        minutes = int(self.config.get('RESET_OTP_TTL', timedelta(minutes=10)).total_seconds() // 60)
        self.mailer.send(
            user.email,
            _('Сброс пароля'),
            _('Ваш код для сброса пароля: %(otp)s. Код действителен %(minutes)d минут.', otp=otp, minutes=minutes),
        )
        logger.info("Password reset requested for user %s", user.id)

    def reset_password(self, email, otp, new_password, now=None):
        """Установка нового пароля по одноразовому коду"""
        errors = FieldErrors()
        if not otp or len(str(otp)) != 6:
            errors.add('otp', _('Код должен состоять из 6 цифр'))
        self._validate(errors, password=new_password, check_name=False, check_email=False)
        errors.raise_if_any()

        now = now or datetime.utcnow()
        user = self.session.query(User).filter_by(
            email=User.normalize_email(email),
            reset_password_token=hash_otp(str(otp)),
        ).first()
        if user is None or user.reset_password_expires is None or user.reset_password_expires <= now:
            raise ValidationError(_('Неверный или просроченный код'))

        user.password_hash = self.hasher.hash(new_password)
        user.reset_password_token = None
        user.reset_password_expires = None
        self._commit()
        logger.info("Password reset completed for user %s", user.id)

    def change_password(self, actor, current_password, new_password):
        if not self.hasher.verify(current_password, actor.password_hash):
            raise InvalidCredential(_('Текущий пароль введён неверно'))
        errors = FieldErrors()
        self._validate(errors, password=new_password, check_name=False, check_email=False)
        errors.raise_if_any()
        actor.password_hash = self.hasher.hash(new_password)
        self._commit()

    # === Профили ===

    def get_user(self, actor, user_id):
        user = self._get_or_404(User, user_id, _('Пользователь не найден'))
        policy.authorize(actor, policy.USER_READ, policy.Resource.of_user(user))
        data = user.to_dict()
        if user.role in (ROLE_TEACHER, ROLE_ADMIN):
            data['questions_created'] = user.created_questions.count()
            data['quizzes_created'] = user.created_quizzes.count()
        return data

    def update_user(self, actor, user_id, data):
        """
        Обновление профиля

        Args:
            actor (User): Кто обновляет
            user_id (int): Чей профиль
            data (dict): name, email, language; администратор также role и is_active
        """
        user = self._get_or_404(User, user_id, _('Пользователь не найден'))
        policy.authorize(actor, policy.USER_UPDATE, policy.Resource.of_user(user))

        allowed_fields = {'name', 'email', 'language'}
        if actor.is_admin:
            allowed_fields |= {'role', 'is_active'}
        changes = {key: value for key, value in (data or {}).items() if key in allowed_fields}

        errors = FieldErrors()
        self._validate(
            errors,
            name=changes.get('name'), email=changes.get('email'),
            role=changes.get('role'), language=changes.get('language'),
            check_name='name' in changes, check_email='email' in changes, check_password=False,
        )
        if 'role' in changes and changes['role'] is None:
            errors.add('role', _('Недопустимая роль'))
        if 'language' in changes and changes['language'] is None:
            errors.add('language', _('Неподдерживаемый язык'))
        if 'is_active' in changes and not isinstance(changes['is_active'], bool):
            errors.add('is_active', _('Значение должно быть true или false'))
        errors.raise_if_any()

        if 'email' in changes:
            changes['email'] = User.normalize_email(changes['email'])
            self._ensure_email_free(changes['email'], exclude_id=user.id)
        if 'name' in changes:
            changes['name'] = changes['name'].strip()

        for field, value in changes.items():
            setattr(user, field, value)
        self._commit(conflict_message=_('Пользователь с таким email уже существует'))
        return user.to_dict()

    def delete_user(self, actor, user_id):
        """
        Удаление пользователя (только администратор)
        Пользователя с созданным содержимым или попытками нужно деактивировать, а не удалять
        """
        user = self._get_or_404(User, user_id, _('Пользователь не найден'))
        policy.authorize(actor, policy.USER_DELETE, policy.Resource.of_user(user))
        if user.id == actor.id:
            raise ValidationError(_('Нельзя удалить собственную учётную запись'))

        has_content = (
            self.session.query(Question.id).filter_by(created_by=user.id).first() is not None
            or self.session.query(Quiz.id).filter_by(created_by=user.id).first() is not None
            or self.session.query(QuizAttempt.id).filter_by(student_id=user.id).first() is not None
        )
        if has_content:
            raise ValidationError(_('У пользователя есть вопросы, квизы или попытки; деактивируйте его вместо удаления'))

        self.session.delete(user)
        self._commit()
        logger.info("User deleted: %s", user_id)

    def list_users(self, actor, role=None, search=None, page=None, per_page=None):
        """
        Список пользователей: администратор видит всех, преподаватель только студентов и преподавателей
        """
        policy.authorize(actor, policy.USER_LIST)
        visible_roles = list(ROLES) if actor.is_admin else [ROLE_STUDENT, ROLE_TEACHER]

        query = self.session.query(User)
        role = (role or '').strip().lower() or None
        if role:
            query = query.filter(User.role == role) if role in visible_roles else query.filter(false())
        else:
            query = query.filter(User.role.in_(visible_roles))

        search = (search or '').strip()
        if search:
            query = query.filter(or_(
                User.name.icontains(search, autoescape=True),
                User.email.icontains(search, autoescape=True),
            ))

        query = query.order_by(User.created_at.desc(), User.id.desc())
        page, per_page = self._page_args(page, per_page)
        result = paginate_query(query, page, per_page, lambda user: user.to_dict())
        result['applied_filters'] = {'role': role, 'search': search or None}
        return result

# quizhub/routes/__init__.py
"""
Маршруты JSON API QuizHub
Регистрация Blueprints, общие помощники и обработка ошибок сервисного слоя
"""
from flask import current_app, jsonify, request
from flask_babel import _
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from quizhub import db, get_services, login_manager
from quizhub.services.errors import InvalidCredential, ServiceError, StoreUnavailable, ValidationError


def services():
    return get_services(current_app)


def actor():
    """Текущий пользователь как объект модели (не прокси)"""
    return current_user._get_current_object()


def json_body():
    """Тело запроса как dict; иначе ValidationError"""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError(_('Тело запроса должно быть JSON-объектом'))
    return data


def success(status_code=200, **payload):
    return jsonify({'success': True, **payload}), status_code


def _error_response(error):
    expose = current_app.config.get('EXPOSE_ERROR_DETAILS', False)
    return jsonify(error.to_dict(expose_detail=expose)), error.status_code


def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def handle_service_error(error):
        if error.status_code >= 500:
            app.logger.error("%s: %s (%s)", error.kind, error.message, error.detail)
        return _error_response(error)

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        app.logger.exception("Необработанная ошибка базы данных")
        return _error_response(StoreUnavailable(_('Ошибка сервера'), detail=str(error)))

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({
            'success': False,
            'kind': error.name.replace(' ', ''),
            'message': error.description,
        }), error.code


@login_manager.unauthorized_handler
def unauthorized():
    return _error_response(InvalidCredential(_('Требуется авторизация')))


def register_routes(app):
    """Регистрация Blueprints и обработчиков ошибок"""
    from quizhub.routes.auth import bp as auth_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    from quizhub.routes.users import bp as users_bp
    app.register_blueprint(users_bp, url_prefix='/api/users')

    from quizhub.routes.questions import bp as questions_bp
    app.register_blueprint(questions_bp, url_prefix='/api/questions')

    from quizhub.routes.quizzes import bp as quizzes_bp
    app.register_blueprint(quizzes_bp, url_prefix='/api/quizzes')

    from quizhub.routes.analytics import bp as analytics_bp
    app.register_blueprint(analytics_bp, url_prefix='/api/analytics')

    @app.route('/api/health')
    def health():
        return success(status='OK', app=app.config.get('APP_NAME', 'QuizHub'))

    register_error_handlers(app)

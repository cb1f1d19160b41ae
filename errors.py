"""
Ошибки API.

Доменный код бросает наследников ApiError, а обработчики, которые
регистрирует register_error_handlers, превращают их в JSON вида
{"message": "..."} с нужным HTTP-статусом.
"""
from flask import jsonify
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    status_code = 500
    message = "Внутренняя ошибка сервера"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class InvalidArgument(ApiError):
    status_code = 400
    message = "Некорректные данные"


class Conflict(ApiError):
    # бизнес-правило нарушено (книга недоступна, email занят)
    status_code = 400
    message = "Конфликт данных"


class Unauthenticated(ApiError):
    status_code = 401
    message = "Токен не предоставлен"


class PermissionDenied(ApiError):
    status_code = 403
    message = "Доступ запрещен. Только для администраторов"


class NotFound(ApiError):
    status_code = 404
    message = "Не найдено"


class Transient(ApiError):
    status_code = 503
    message = "Сервис временно недоступен, повторите запрос позже"


def error_response(status_code, message):
    resp = jsonify({"message": message})
    resp.status_code = status_code
    return resp


def register_error_handlers(app, db):
    @app.errorhandler(ApiError)
    def handle_api_error(exc):
        db.session.rollback()
        return error_response(exc.status_code, exc.message)

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        messages = {
            404: "Ресурс не найден",
            405: "Метод не поддерживается",
        }
        return error_response(exc.code, messages.get(exc.code, exc.description))

    @app.errorhandler(OperationalError)
    @app.errorhandler(PoolTimeoutError)
    def handle_store_unavailable(exc):
        db.session.rollback()
        app.logger.error("Store unavailable: %s", exc, exc_info=exc)
        return error_response(Transient.status_code, Transient.message)

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        db.session.rollback()
        app.logger.exception("Unhandled error: %s", exc)
        return error_response(ApiError.status_code, ApiError.message)

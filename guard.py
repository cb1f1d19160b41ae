"""
Аутентификация по bearer-токену и проверка ролей.

Токен подписан SECRET_KEY и несет {sub, email, isAdmin}. Flask-Login
достает из него Principal на каждый запрос; сессии и cookies не
используются.
"""
from flask import current_app, g, request
from flask_login import LoginManager, current_user
from itsdangerous import BadData, URLSafeTimedSerializer

from errors import PermissionDenied, Unauthenticated

TOKEN_SALT = "auth-token"

login_manager = LoginManager()
login_manager.session_protection = None


class Principal:
    """Пользователь запроса, восстановленный из токена без обращения к БД."""

    is_authenticated = True
    is_active = True
    is_anonymous = False

    def __init__(self, user_id: int, email: str, is_admin: bool):
        self.id = user_id
        self.email = email
        self.is_admin = is_admin

    def get_id(self):
        return str(self.id)


def _serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def issue_token(user) -> str:
    claims = {"sub": user.id, "email": user.email, "isAdmin": bool(user.is_admin)}
    return _serializer().dumps(claims)


def verify_token(token: str) -> Principal:
    try:
        claims = _serializer().loads(token, max_age=current_app.config["TOKEN_TTL_SECONDS"])
    except BadData:
        raise Unauthenticated("Недействительный токен")
    return Principal(claims["sub"], claims["email"], claims["isAdmin"])


@login_manager.request_loader
def load_principal(req):
    header = req.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        g.auth_error = "Токен не предоставлен"
        return None
    try:
        return verify_token(token.strip())
    except Unauthenticated as exc:
        g.auth_error = exc.message
        return None


@login_manager.unauthorized_handler
def unauthorized():
    current_app.logger.info("Unauthenticated request to %s", request.path)
    raise Unauthenticated(g.get("auth_error"))


def admin_required():
    if not current_user.is_authenticated:
        unauthorized()
    if not current_user.is_admin:
        raise PermissionDenied()

"""
Identidade da sessão e decorators de permissão.

A sessão fica no servidor (Flask-Session); o cookie só carrega o id.
Aqui guardamos apenas o `user_id` e resolvemos o usuário sob demanda.
"""

from functools import wraps
from typing import Optional

from flask import flash, redirect, request, session, url_for
from werkzeug.security import check_password_hash, generate_password_hash

from .models import User, UserDirectory, get_catalog


SESSION_USER_KEY = "user_id"


class SessionIdentity:
    """Visão da sessão atual: flag de login, handle da sessão e usuário."""

    def __init__(self, current_session, users: UserDirectory) -> None:
        self._session = current_session
        self._users = users
        self._user: Optional[User] = None
        self._resolved = False

    @property
    def current_session(self):
        return self._session

    @property
    def current_user(self) -> Optional[User]:
        if not self._resolved:
            user_id = self._session.get(SESSION_USER_KEY)
            self._user = self._users.find_by_id(user_id) if user_id else None
            if user_id and self._user is None:
                # Id órfão (usuário removido): a sessão volta a ser anônima
                self._session.pop(SESSION_USER_KEY, None)
            self._resolved = True
        return self._user

    def is_authenticated(self) -> bool:
        return self.current_user is not None


def login_user(user: User) -> None:
    session[SESSION_USER_KEY] = user.id


def logout_user() -> None:
    session.pop(SESSION_USER_KEY, None)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def authenticate(email: str, password: str) -> Optional[User]:
    user = get_catalog().users.find_by_email(email)
    if user and check_password_hash(user.password_hash, password):
        return user
    return None


def _is_logged_in() -> bool:
    return bool(session.get(SESSION_USER_KEY))


def login_required(f):
    """
    Exige usuário autenticado; senão manda para o login guardando o destino.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_logged_in():
            flash("Please sign in first.", "warning")
            return redirect(url_for("user.signin", next=request.path))
        return f(*args, **kwargs)

    return decorated_function


def guest_only(f):
    """Páginas de login/cadastro não fazem sentido para quem já entrou."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if _is_logged_in():
            return redirect(url_for("home.index"))
        return f(*args, **kwargs)

    return decorated_function

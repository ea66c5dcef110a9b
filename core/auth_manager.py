"""Admin and cron authentication for the web endpoints."""

import functools
import hmac
import os
from typing import Mapping, Optional

from flask import g, jsonify, request, session

from core.database import session_scope
from models.user import User


def bearer_token(header: Optional[str]) -> str:
    value = (header or "").strip()
    if value.lower().startswith("bearer "):
        return value[7:].strip()
    return ""


def token_matches(header: Optional[str], secret: Optional[str]) -> bool:
    """Constant-time comparison; an unset secret never matches."""
    secret = (secret or "").strip()
    if not secret:
        return False
    return hmac.compare_digest(bearer_token(header), secret)


class AuthManager:
    """Session login for admins plus bearer-token checks for automation."""

    def __init__(self, db_session_factory, environ: Optional[Mapping[str, str]] = None):
        self.db_session_factory = db_session_factory
        self.environ = os.environ if environ is None else environ

    def login(self, username, password) -> bool:
        with session_scope(self.db_session_factory) as db_sess:
            user = db_sess.query(User).filter_by(username=username).first()
            if not user or not user.check_password(password):
                return False
            user_id, name = user.id, user.username
        session.clear()
        session["user_id"] = user_id
        session["username"] = name
        return True

    def logout(self):
        session.clear()

    def change_password(self, user_id, old_password, new_password) -> bool:
        with session_scope(self.db_session_factory) as db_sess:
            user = db_sess.get(User, user_id)
            if not user or not user.check_password(old_password):
                return False
            user.set_password(new_password)
        return True

    def is_admin_request(self) -> bool:
        """A logged-in admin session or the internal API key as a bearer token."""
        if getattr(g, "user", None):
            return True
        return token_matches(request.headers.get("Authorization"), self.environ.get("INTERNAL_API_KEY"))

    def is_cron_request(self) -> bool:
        return token_matches(request.headers.get("Authorization"), self.environ.get("CRON_SECRET"))

    def admin_required(self, view):
        @functools.wraps(view)
        def wrapped_view(**kwargs):
            if not self.is_admin_request():
                return jsonify({"error": "Forbidden: Admin access required"}), 403
            return view(**kwargs)
        return wrapped_view

    def login_required(self, view):
        @functools.wraps(view)
        def wrapped_view(**kwargs):
            if not getattr(g, "user", None):
                return jsonify({"success": False, "message": "Login required"}), 401
            return view(**kwargs)
        return wrapped_view

    def load_logged_in_user(self):
        user_id = session.get("user_id")
        if user_id is None:
            g.user = None
        else:
            g.user = {"id": user_id, "username": session.get("username")}

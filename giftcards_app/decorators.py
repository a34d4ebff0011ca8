# giftcards_app/decorators.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from functools import wraps
from flask import session, abort, g

from .extensions import db
from .models import User
from .services.access import user_can


def current_user():
    data = session.get("user")
    if not data:
        return None
    user_id = data.get("id")
    if not user_id:
        return None
    if getattr(g, "_current_user", None) is not None and g._current_user.id == user_id:
        return g._current_user
    u = db.session.get(User, user_id)
    g._current_user = u
    return u


def login_required(view_func):
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        u = current_user()
        if not u:
            abort(401, description="Faça login para acessar.")
        if not u.is_active:
            abort(403, description="Usuário inativo. Entre em contato com o administrador.")
        return view_func(*args, **kwargs)
    return wrapper


def permission_required(permission: str):
    def decorator(view_func):
        @wraps(view_func)
        @login_required
        def wrapper(*args, **kwargs):
            if not user_can(current_user(), permission):
                abort(403, description="Você não tem permissão para acessar este recurso.")
            return view_func(*args, **kwargs)
        return wrapper
    return decorator

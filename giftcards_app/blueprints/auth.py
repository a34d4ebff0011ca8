# giftcards_app/blueprints/auth.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import datetime

from flask import Blueprint, request, session, jsonify, abort, current_app

from giftcards_app.extensions import db
from giftcards_app.decorators import current_user, login_required
from giftcards_app.models import User

bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _user_payload(u: User) -> dict:
    return {
        "id": u.id,
        "username": u.username,
        "email": u.email,
        "empresa_id": u.empresa_id,
        "empresa_nome": u.empresa.nome if u.empresa else None,
        "perfil_id": u.perfil_id,
        "perfil_nome": u.perfil.nome if u.perfil else None,
        "permissoes": list(u.perfil.permissoes or []) if u.perfil else [],
    }


@bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or request.form
    username = (data.get("username") or "").strip()
    pwd = data.get("password") or ""

    u = User.query.filter_by(username=username).first()
    if not u or not u.check_password(pwd):
        current_app.logger.warning("Login recusado para '%s'", username)
        abort(401, description="Credenciais inválidas.")
    if not u.is_active:
        abort(403, description="Usuário inativo. Entre em contato com o administrador.")
    if not u.empresa or u.empresa.status != "ativo":
        abort(403, description="Empresa do usuário não encontrada ou inativa.")

    u.ultimo_login = datetime.utcnow()
    db.session.commit()

    session["user"] = {"id": u.id, "username": u.username, "empresa_id": u.empresa_id, "perfil_id": u.perfil_id}
    return jsonify(_user_payload(u))


@bp.route("/logout", methods=["POST"])
def logout():
    session.clear()
    return jsonify(ok=True)


@bp.route("/me")
@login_required
def me():
    return jsonify(_user_payload(current_user()))

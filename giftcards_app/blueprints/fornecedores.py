# giftcards_app/blueprints/fornecedores.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, request, jsonify, abort
from sqlalchemy.exc import IntegrityError

from giftcards_app.extensions import db
from giftcards_app.decorators import current_user, permission_required
from giftcards_app.models import Fornecedor, GiftCard
from giftcards_app.services.access import can_access_fornecedor, fornecedores_query

bp = Blueprint("fornecedores", __name__, url_prefix="/api")

STATUS_VALIDOS = {"ativo", "inativo"}
CAMPOS_EDITAVEIS = {"nome", "descricao", "website", "logo", "status"}


def _get_owned(fornecedor_id: int) -> Fornecedor:
    f = db.session.get(Fornecedor, fornecedor_id)
    if not f:
        abort(404, description="Fornecedor não encontrado.")
    if not can_access_fornecedor(current_user(), f):
        abort(403, description="Você não tem permissão para acessar este recurso.")
    return f


def _apply_fields(f: Fornecedor, data: dict) -> None:
    for k, v in data.items():
        if k not in CAMPOS_EDITAVEIS:
            continue
        if k == "nome":
            v = (v or "").strip()
            if not v:
                abort(400, description="Nome do fornecedor obrigatório.")
        if k == "status" and v not in STATUS_VALIDOS:
            abort(400, description="Status inválido (ativo|inativo).")
        setattr(f, k, v)


@bp.route("/fornecedores", methods=["GET"])
@permission_required("fornecedor.visualizar")
def listar():
    q = fornecedores_query(current_user())
    status = request.args.get("status")
    if status:
        q = q.filter(Fornecedor.status == status)
    return jsonify([f.to_dict() for f in q.order_by(Fornecedor.nome.asc()).all()])


@bp.route("/fornecedores", methods=["POST"])
@permission_required("fornecedor.criar")
def criar():
    data = request.get_json(silent=True) or {}
    u = current_user()
    f = Fornecedor(empresa_id=u.empresa_id, user_id=u.id, status="ativo", nome="")
    _apply_fields(f, {"nome": data.get("nome"), **data})
    db.session.add(f)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        abort(409, description="Já existe um fornecedor com esse nome.")
    return jsonify(f.to_dict()), 201


@bp.route("/fornecedores/<int:fornecedor_id>", methods=["GET"])
@permission_required("fornecedor.visualizar")
def detalhe(fornecedor_id: int):
    return jsonify(_get_owned(fornecedor_id).to_dict())


@bp.route("/fornecedores/<int:fornecedor_id>", methods=["PUT"])
@permission_required("fornecedor.editar")
def atualizar(fornecedor_id: int):
    f = _get_owned(fornecedor_id)
    _apply_fields(f, request.get_json(silent=True) or {})
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        abort(409, description="Já existe um fornecedor com esse nome.")
    return jsonify(f.to_dict())


@bp.route("/fornecedores/<int:fornecedor_id>", methods=["DELETE"])
@permission_required("fornecedor.excluir")
def excluir(fornecedor_id: int):
    f = _get_owned(fornecedor_id)
    if GiftCard.query.filter_by(fornecedor_id=f.id).first():
        abort(409, description="Fornecedor possui gift cards; inative-o em vez de excluir.")
    db.session.delete(f)
    db.session.commit()
    return "", 204


@bp.route("/collections", methods=["GET"])
@permission_required("fornecedor.visualizar")
def collections():
    """Fornecedores ativos no formato enxuto usado pelo menu lateral."""
    ativos = fornecedores_query(current_user()).filter(Fornecedor.status == "ativo") \
        .order_by(Fornecedor.nome.asc()).all()
    return jsonify([{"id": f.id, "nome": f.nome, "logo": f.logo} for f in ativos])

# giftcards_app/blueprints/transacoes.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, request, jsonify, abort

from giftcards_app.extensions import db
from giftcards_app.decorators import current_user, permission_required
from giftcards_app.models import GiftCard, Transacao
from giftcards_app.services.access import can_access_resource, can_access_transacao, transacoes_query
from giftcards_app.services.ledger import (
    AllocationMismatch, apply_transaction, cancel_transaction, create_transaction, refund_transaction,
)

bp = Blueprint("transacoes", __name__, url_prefix="/api")


def _get_owned(transacao_id: int) -> Transacao:
    t = db.session.get(Transacao, transacao_id)
    if not t:
        abort(404, description="Transação não encontrada.")
    if not can_access_transacao(current_user(), t):
        abort(403, description="Você não tem permissão para acessar este recurso.")
    return t


def _parse_cartoes(data: dict) -> list:
    """
    Aceita "cartoes": [{"gift_card_id": 1, "valor": "30.00"}, ...]
    ou, para um único cartão, "gift_card_id" + "valor" da transação.
    """
    cartoes = data.get("cartoes")
    if cartoes is None and data.get("gift_card_id") is not None:
        cartoes = [{"gift_card_id": data.get("gift_card_id"), "valor": data.get("valor")}]
    if not isinstance(cartoes, list) or not cartoes:
        raise AllocationMismatch("Informe ao menos um gift card em 'cartoes'.")

    u = current_user()
    for item in cartoes:
        if not isinstance(item, dict):
            raise AllocationMismatch("Cada item de 'cartoes' deve ter gift_card_id e valor.")
        gc = db.session.get(GiftCard, item.get("gift_card_id")) if item.get("gift_card_id") else None
        if not gc:
            raise AllocationMismatch(f"Gift card inexistente: {item.get('gift_card_id')}")
        if not can_access_resource(u, gc.user):
            abort(403, description="Você não tem permissão para usar este gift card.")
    return cartoes


@bp.route("/transacoes", methods=["GET"])
@permission_required("transacao.visualizar")
def listar():
    q = transacoes_query(current_user())
    status = request.args.get("status")
    if status:
        q = q.filter(Transacao.status == status)
    rows = q.order_by(Transacao.data_transacao.desc(), Transacao.id.desc()).limit(500).all()
    return jsonify([t.to_dict() for t in rows])


@bp.route("/transacoes", methods=["POST"])
@permission_required("transacao.criar")
def criar():
    data = request.get_json(silent=True) or {}
    cartoes = _parse_cartoes(data)
    status = data.get("status", "completed")
    if status not in ("completed", "pending"):
        abort(400, description="Status inicial deve ser 'completed' ou 'pending'.")

    t = create_transaction(
        current_user(),
        data.get("valor"),
        cartoes,
        descricao=data.get("descricao") or "",
        concluir=(status == "completed"),
        ordem_interna=data.get("ordem_interna"),
        ordem_compra=data.get("ordem_compra"),
        comprovante=data.get("comprovante"),
    )
    return jsonify(t.to_dict()), 201


@bp.route("/transacoes/<int:transacao_id>", methods=["GET"])
@permission_required("transacao.visualizar")
def detalhe(transacao_id: int):
    return jsonify(_get_owned(transacao_id).to_dict(with_refunds=True))


@bp.route("/transacoes/<int:transacao_id>/concluir", methods=["POST"])
@permission_required("transacao.editar")
def concluir(transacao_id: int):
    t = _get_owned(transacao_id)
    data = request.get_json(silent=True) or {}
    cartoes = _parse_cartoes(data) if data.get("cartoes") is not None else None
    apply_transaction(t, cartoes, user=current_user())
    return jsonify(t.to_dict())


@bp.route("/transacoes/<int:transacao_id>/cancelar", methods=["POST"])
@permission_required("transacao.editar")
def cancelar(transacao_id: int):
    t = _get_owned(transacao_id)
    data = request.get_json(silent=True) or {}
    cancel_transaction(t, data.get("motivo"), user=current_user())
    return jsonify(t.to_dict())


@bp.route("/transacoes/<int:transacao_id>/reembolso", methods=["POST"])
@permission_required("transacao.reembolsar")
def reembolso(transacao_id: int):
    t = _get_owned(transacao_id)
    data = request.get_json(silent=True) or {}
    motivo = (data.get("motivo") or "").strip()
    if len(motivo) < 3:
        abort(400, description="Descreva o motivo do reembolso.")
    refund = refund_transaction(t, data.get("valor"), motivo, user=current_user())
    return jsonify({"reembolso": refund.to_dict(), "original": t.to_dict()}), 201

# giftcards_app/blueprints/gift_cards.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import date
from decimal import Decimal, InvalidOperation

from flask import Blueprint, request, jsonify, abort, current_app
from sqlalchemy import or_

from giftcards_app.extensions import db
from giftcards_app.decorators import current_user, permission_required
from giftcards_app.models import Fornecedor, GiftCard, Transacao, TransacaoGiftCard
from giftcards_app.models.money import ZERO, as_money
from giftcards_app.services.access import (
    can_access_fornecedor, can_access_resource, gift_cards_query, is_guest,
)
from giftcards_app.services.expiry import expiring_gift_cards

bp = Blueprint("gift_cards", __name__, url_prefix="/api")

# saldo_atual só muda pelo ledger; aqui só metadados
CAMPOS_EDITAVEIS = {
    "codigo", "data_validade", "observacoes", "desconto", "valor_pago", "valor_pendente",
    "codigo_ordem_compra", "data_compra", "gc_number", "gc_pass", "fornecedor_id",
}


def _money_or_400(value, campo: str):
    if value is None or value == "":
        return None
    try:
        v = as_money(value)
    except (InvalidOperation, ValueError):
        abort(400, description=f"Valor inválido em '{campo}'.")
    if v < ZERO:
        abort(400, description=f"'{campo}' não pode ser negativo.")
    return v


def _date_or_400(value, campo: str):
    if value is None or value == "":
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        abort(400, description=f"Data inválida em '{campo}' (use AAAA-MM-DD).")


def _desconto_or_400(value):
    if value is None or value == "":
        return None
    try:
        d = Decimal(str(value))
    except InvalidOperation:
        abort(400, description="Desconto inválido.")
    if not d.is_finite():
        abort(400, description="Desconto inválido.")
    if d < 0 or d > 100:
        abort(400, description="Desconto deve estar entre 0 e 100%.")
    return d


def _fornecedor_or_400(fornecedor_id) -> Fornecedor:
    f = db.session.get(Fornecedor, fornecedor_id) if fornecedor_id else None
    if not f or not can_access_fornecedor(current_user(), f):
        abort(400, description="Fornecedor inválido.")
    return f


def _get_owned(gift_card_id: int) -> GiftCard:
    gc = db.session.get(GiftCard, gift_card_id)
    if not gc:
        abort(404, description="Gift card não encontrado.")
    if not can_access_resource(current_user(), gc.user):
        abort(403, description="Você não tem permissão para acessar este recurso.")
    return gc


def _serialize(cards):
    mask = is_guest(current_user())
    return [gc.to_dict(mask_credentials=mask) for gc in cards]


def _apply_fields(gc: GiftCard, data: dict) -> None:
    for k, v in data.items():
        if k not in CAMPOS_EDITAVEIS:
            continue
        if k in ("valor_pago", "valor_pendente"):
            v = _money_or_400(v, k)
        elif k in ("data_validade", "data_compra"):
            v = _date_or_400(v, k)
        elif k == "desconto":
            v = _desconto_or_400(v)
        elif k == "fornecedor_id":
            v = _fornecedor_or_400(v).id
        elif k == "codigo":
            v = (v or "").strip()
            if not v:
                abort(400, description="Código do gift card obrigatório.")
        setattr(gc, k, v)
    gc.refresh_status()


@bp.route("/gift-cards", methods=["GET"])
@permission_required("giftcard.visualizar")
def listar():
    q = gift_cards_query(current_user())
    fornecedor_id = request.args.get("fornecedor_id", type=int)
    if fornecedor_id:
        q = q.filter(GiftCard.fornecedor_id == fornecedor_id)
    status = request.args.get("status")
    if status:
        q = q.filter(GiftCard.status == status)
    search = (request.args.get("search") or "").strip()
    if search:
        like = f"%{search.lower()}%"
        q = q.filter(or_(
            db.func.lower(GiftCard.codigo).like(like),
            db.func.lower(GiftCard.observacoes).like(like),
            db.func.lower(GiftCard.codigo_ordem_compra).like(like),
        ))
    return jsonify(_serialize(q.order_by(GiftCard.id.asc()).all()))


@bp.route("/gift-cards", methods=["POST"])
@permission_required("giftcard.criar")
def criar():
    data = request.get_json(silent=True) or {}
    valor_inicial = _money_or_400(data.get("valor_inicial"), "valor_inicial")
    if not valor_inicial or valor_inicial <= ZERO:
        abort(400, description="Valor inicial deve ser positivo.")
    saldo = _money_or_400(data.get("saldo_atual"), "saldo_atual")
    if saldo is not None and saldo > valor_inicial:
        abort(400, description="Saldo atual não pode exceder o valor inicial.")
    fornecedor = _fornecedor_or_400(data.get("fornecedor_id"))

    gc = GiftCard(
        codigo="-",
        valor_inicial=valor_inicial,
        saldo_atual=saldo if saldo is not None else valor_inicial,
        fornecedor_id=fornecedor.id,
        user_id=current_user().id,
    )
    _apply_fields(gc, {"codigo": data.get("codigo"), **{k: v for k, v in data.items() if k != "fornecedor_id"}})
    db.session.add(gc)
    db.session.commit()
    current_app.logger.info("Gift card %s criado (valor=%s)", gc.id, gc.valor_inicial)
    return jsonify(gc.to_dict()), 201


@bp.route("/gift-cards/<int:gift_card_id>", methods=["GET"])
@permission_required("giftcard.visualizar")
def detalhe(gift_card_id: int):
    gc = _get_owned(gift_card_id)
    return jsonify(gc.to_dict(mask_credentials=is_guest(current_user())))


@bp.route("/gift-cards/<int:gift_card_id>", methods=["PUT"])
@permission_required("giftcard.editar")
def atualizar(gift_card_id: int):
    gc = _get_owned(gift_card_id)
    _apply_fields(gc, request.get_json(silent=True) or {})
    db.session.commit()
    return jsonify(gc.to_dict())


@bp.route("/gift-cards/<int:gift_card_id>", methods=["DELETE"])
@permission_required("giftcard.excluir")
def excluir(gift_card_id: int):
    gc = _get_owned(gift_card_id)
    if TransacaoGiftCard.query.filter_by(gift_card_id=gc.id).first():
        abort(409, description="Gift card possui transações e não pode ser excluído.")
    db.session.delete(gc)
    db.session.commit()
    return "", 204


@bp.route("/gift-cards/vencimento", methods=["GET"])
@bp.route("/gift-cards/vencimento/<int:dias>", methods=["GET"])
@permission_required("giftcard.visualizar")
def vencimento(dias: int | None = None):
    if dias is None:
        dias = current_app.config.get("EXPIRY_WARNING_DAYS", 30)
    cards = expiring_gift_cards(gift_cards_query(current_user()), dias)
    return jsonify(_serialize(cards))


@bp.route("/gift-cards/<int:gift_card_id>/transacoes", methods=["GET"])
@permission_required("transacao.visualizar")
def transacoes(gift_card_id: int):
    gc = _get_owned(gift_card_id)
    rows = (Transacao.query
            .join(TransacaoGiftCard, TransacaoGiftCard.transacao_id == Transacao.id)
            .filter(TransacaoGiftCard.gift_card_id == gc.id)
            .order_by(Transacao.data_transacao.desc(), Transacao.id.desc())
            .all())
    return jsonify([t.to_dict() for t in rows])

# giftcards_app/blueprints/tags.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, request, jsonify, abort, current_app
from sqlalchemy.exc import IntegrityError

from giftcards_app.extensions import db
from giftcards_app.decorators import current_user, permission_required
from giftcards_app.models import GiftCard, GiftCardTag, Tag
from giftcards_app.services.access import (
    can_access_resource, can_access_tag, gift_cards_query, is_guest, tags_query,
)

bp = Blueprint("tags", __name__, url_prefix="/api")

NOME_MAX = 60


def _get_tag(tag_id: int) -> Tag:
    tag = db.session.get(Tag, tag_id)
    if not tag:
        abort(404, description="Tag não encontrada.")
    if not can_access_tag(current_user(), tag):
        abort(403, description="Você não tem permissão para acessar este recurso.")
    return tag


def _get_card(gift_card_id: int) -> GiftCard:
    gc = db.session.get(GiftCard, gift_card_id)
    if not gc:
        abort(404, description="Gift card não encontrado.")
    if not can_access_resource(current_user(), gc.user):
        abort(403, description="Você não tem permissão para acessar este recurso.")
    return gc


@bp.route("/tags", methods=["GET"])
@permission_required("giftcard.visualizar")
def listar():
    return jsonify([t.to_dict() for t in tags_query(current_user()).order_by(Tag.nome.asc()).all()])


@bp.route("/tags", methods=["POST"])
@permission_required("giftcard.editar")
def criar():
    data = request.get_json(silent=True) or {}
    nome = data.get("nome")
    nome = nome.strip() if isinstance(nome, str) else ""
    if not nome:
        abort(400, description="Nome da tag obrigatório.")
    if len(nome) > NOME_MAX:
        abort(400, description=f"Nome da tag com no máximo {NOME_MAX} caracteres.")
    tag = Tag(nome=nome, empresa_id=current_user().empresa_id)
    db.session.add(tag)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        abort(409, description="Já existe uma tag com esse nome.")
    return jsonify(tag.to_dict()), 201


@bp.route("/tags/<int:tag_id>", methods=["GET"])
@permission_required("giftcard.visualizar")
def detalhe(tag_id: int):
    return jsonify(_get_tag(tag_id).to_dict())


@bp.route("/gift-cards/tag/<int:tag_id>", methods=["GET"])
@permission_required("giftcard.visualizar")
def cartoes_da_tag(tag_id: int):
    tag = _get_tag(tag_id)
    u = current_user()
    cards = (gift_cards_query(u)
             .join(GiftCardTag, GiftCardTag.gift_card_id == GiftCard.id)
             .filter(GiftCardTag.tag_id == tag.id)
             .order_by(GiftCard.id.asc())
             .all())
    mask = is_guest(u)
    return jsonify([gc.to_dict(mask_credentials=mask) for gc in cards])


@bp.route("/gift-cards/<int:gift_card_id>/tags", methods=["GET"])
@permission_required("giftcard.visualizar")
def tags_do_cartao(gift_card_id: int):
    gc = _get_card(gift_card_id)
    tags = (Tag.query
            .join(GiftCardTag, GiftCardTag.tag_id == Tag.id)
            .filter(GiftCardTag.gift_card_id == gc.id)
            .order_by(Tag.nome.asc())
            .all())
    return jsonify([t.to_dict() for t in tags])


@bp.route("/gift-cards/<int:gift_card_id>/tags/<int:tag_id>", methods=["POST"])
@permission_required("giftcard.editar")
def marcar(gift_card_id: int, tag_id: int):
    gc = _get_card(gift_card_id)
    tag = _get_tag(tag_id)
    existente = GiftCardTag.query.filter_by(gift_card_id=gc.id, tag_id=tag.id).first()
    if existente:
        return jsonify(existente.to_dict()), 200
    link = GiftCardTag(gift_card_id=gc.id, tag_id=tag.id)
    db.session.add(link)
    try:
        db.session.commit()
    except IntegrityError:
        # outra requisição marcou o mesmo par entre a leitura e o commit
        db.session.rollback()
        link = GiftCardTag.query.filter_by(gift_card_id=gc.id, tag_id=tag.id).one()
        return jsonify(link.to_dict()), 200
    current_app.logger.info("Tag %s adicionada ao gift card %s", tag.id, gc.id)
    return jsonify(link.to_dict()), 201


@bp.route("/gift-cards/<int:gift_card_id>/tags/<int:tag_id>", methods=["DELETE"])
@permission_required("giftcard.editar")
def desmarcar(gift_card_id: int, tag_id: int):
    gc = _get_card(gift_card_id)
    link = GiftCardTag.query.filter_by(gift_card_id=gc.id, tag_id=tag_id).first()
    if not link:
        abort(404, description="Tag não associada a este gift card.")
    db.session.delete(link)
    db.session.commit()
    return "", 204

# giftcards_app/models/tag.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime
from ..extensions import db

class Tag(db.Model):
    __tablename__ = "tags"

    id = db.Column(db.Integer, primary_key=True)
    nome = db.Column(db.String(60), nullable=False)
    empresa_id = db.Column(db.Integer, db.ForeignKey("empresas.id"), index=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("empresa_id", "nome", name="uq_tags_empresa_nome"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nome": self.nome,
            "empresa_id": self.empresa_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class GiftCardTag(db.Model):
    """Marcação de um gift card; um par (cartão, tag) aparece uma vez só."""
    __tablename__ = "gift_card_tags"

    id = db.Column(db.Integer, primary_key=True)
    gift_card_id = db.Column(db.Integer, db.ForeignKey("gift_cards.id", ondelete="CASCADE"),
                             index=True, nullable=False)
    tag_id = db.Column(db.Integer, db.ForeignKey("tags.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # excluir o cartão leva junto as marcações
    gift_card = db.relationship("GiftCard", backref=db.backref("tag_links", cascade="all, delete-orphan"))
    tag = db.relationship("Tag", backref=db.backref("card_links", lazy="dynamic"))

    __table_args__ = (
        db.UniqueConstraint("gift_card_id", "tag_id", name="uq_gift_card_tags_par"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "gift_card_id": self.gift_card_id,
            "tag_id": self.tag_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

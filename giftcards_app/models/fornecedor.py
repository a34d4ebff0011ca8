# giftcards_app/models/fornecedor.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime
from ..extensions import db

class Fornecedor(db.Model):
    __tablename__ = "fornecedores"

    id = db.Column(db.Integer, primary_key=True)
    nome = db.Column(db.String(120), nullable=False)
    descricao = db.Column(db.Text)
    website = db.Column(db.String(255))
    logo = db.Column(db.String(512))
    status = db.Column(db.String(10), nullable=False, default="ativo", index=True)  # ativo, inativo
    empresa_id = db.Column(db.Integer, db.ForeignKey("empresas.id"), index=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True)  # quem cadastrou
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    gift_cards = db.relationship("GiftCard", backref="fornecedor", lazy="dynamic")

    __table_args__ = (
        db.UniqueConstraint("empresa_id", "nome", name="uq_fornecedores_empresa_nome"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nome": self.nome,
            "descricao": self.descricao,
            "website": self.website,
            "logo": self.logo,
            "status": self.status,
            "empresa_id": self.empresa_id,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

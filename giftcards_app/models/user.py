# giftcards_app/models/user.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime
from ..extensions import db, bcrypt

class Perfil(db.Model):
    __tablename__ = "perfis"

    id = db.Column(db.Integer, primary_key=True)
    nome = db.Column(db.String(40), unique=True, nullable=False, index=True)  # admin, gerente, usuario, convidado
    descricao = db.Column(db.String(255))
    permissoes = db.Column(db.JSON, nullable=False, default=list)           # ["*"], ["giftcard.*", "transacao.visualizar"]
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    usuarios = db.relationship("User", backref="perfil", lazy="dynamic")


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(180), nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    empresa_id = db.Column(db.Integer, db.ForeignKey("empresas.id"), index=True, nullable=False)
    perfil_id = db.Column(db.Integer, db.ForeignKey("perfis.id"), index=True, nullable=False)
    status = db.Column(db.String(10), nullable=False, default="ativo")  # ativo, inativo
    ultimo_login = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    gift_cards = db.relationship("GiftCard", backref="user", lazy="dynamic")

    def set_password(self, raw: str) -> None:
        self.password_hash = bcrypt.generate_password_hash(raw).decode("utf-8")

    def check_password(self, raw: str) -> bool:
        return bcrypt.check_password_hash(self.password_hash, raw)

    @property
    def is_active(self) -> bool:
        return self.status == "ativo"

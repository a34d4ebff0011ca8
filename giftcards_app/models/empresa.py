# giftcards_app/models/empresa.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime
from ..extensions import db

class Empresa(db.Model):
    __tablename__ = "empresas"

    id = db.Column(db.Integer, primary_key=True)
    nome = db.Column(db.String(180), nullable=False)
    cnpj = db.Column(db.String(20), unique=True, index=True)
    status = db.Column(db.String(10), nullable=False, default="ativo")  # ativo, inativo
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    usuarios = db.relationship("User", backref="empresa", lazy="dynamic")
    fornecedores = db.relationship("Fornecedor", backref="empresa", lazy="dynamic")

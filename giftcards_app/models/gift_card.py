# giftcards_app/models/gift_card.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import validates

from ..extensions import db
from .money import MONEY, ZERO, as_money

STATUS_ATIVO = "ativo"
STATUS_EXPIRADO = "expirado"
STATUS_ZERADO = "zerado"


def derive_status(saldo, data_validade: Optional[date], hoje: Optional[date] = None) -> str:
    """zerado tem precedência; expirado só sinaliza (o saldo continua utilizável)."""
    if as_money(saldo) == ZERO:
        return STATUS_ZERADO
    hoje = hoje or date.today()
    if data_validade is not None and data_validade < hoje:
        return STATUS_EXPIRADO
    return STATUS_ATIVO


class GiftCard(db.Model):
    __tablename__ = "gift_cards"

    id = db.Column(db.Integer, primary_key=True)
    codigo = db.Column(db.String(80), nullable=False, index=True)
    valor_inicial = db.Column(MONEY, nullable=False)
    saldo_atual = db.Column(MONEY, nullable=False)
    data_validade = db.Column(db.Date, index=True)
    status = db.Column(db.String(10), nullable=False, default=STATUS_ATIVO, index=True)  # ativo, expirado, zerado
    fornecedor_id = db.Column(db.Integer, db.ForeignKey("fornecedores.id"), index=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    observacoes = db.Column(db.Text)

    # dados de compra
    desconto = db.Column(db.Numeric(5, 2))          # percentual pago abaixo do valor de face
    valor_pago = db.Column(MONEY)
    valor_pendente = db.Column(MONEY)
    codigo_ordem_compra = db.Column(db.String(80), index=True)
    data_compra = db.Column(db.Date)

    # credenciais de resgate
    gc_number = db.Column(db.String(120))
    gc_pass = db.Column(db.String(120))

    data_ultimo_uso = db.Column(db.DateTime)
    version = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # lock otimista: UPDATE ... WHERE version = :v
    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        db.CheckConstraint("saldo_atual >= 0", name="ck_gift_cards_saldo_nao_negativo"),
        db.CheckConstraint("saldo_atual <= valor_inicial", name="ck_gift_cards_saldo_ate_inicial"),
        db.CheckConstraint("valor_inicial > 0", name="ck_gift_cards_valor_inicial_positivo"),
    )

    def __init__(self, **kwargs):
        if kwargs.get("saldo_atual") is None and kwargs.get("valor_inicial") is not None:
            kwargs["saldo_atual"] = kwargs["valor_inicial"]
        super().__init__(**kwargs)
        self.refresh_status()

    @validates("valor_inicial", "saldo_atual", "valor_pago", "valor_pendente")
    def _val_money(self, key, value):
        if value is None and key in ("valor_pago", "valor_pendente"):
            return None
        return as_money(value)

    def refresh_status(self, hoje: Optional[date] = None) -> str:
        self.status = derive_status(self.saldo_atual, self.data_validade, hoje)
        return self.status

    @property
    def vencido(self) -> bool:
        return self.data_validade is not None and self.data_validade < date.today()

    def to_dict(self, mask_credentials: bool = False) -> dict:
        return {
            "id": self.id,
            "codigo": self.codigo,
            "valor_inicial": str(self.valor_inicial),
            "saldo_atual": str(self.saldo_atual),
            "data_validade": self.data_validade.isoformat() if self.data_validade else None,
            "status": self.status,
            "fornecedor_id": self.fornecedor_id,
            "user_id": self.user_id,
            "observacoes": self.observacoes,
            "desconto": str(self.desconto) if self.desconto is not None else None,
            "valor_pago": str(self.valor_pago) if self.valor_pago is not None else None,
            "valor_pendente": str(self.valor_pendente) if self.valor_pendente is not None else None,
            "codigo_ordem_compra": self.codigo_ordem_compra,
            "data_compra": self.data_compra.isoformat() if self.data_compra else None,
            "gc_number": "********" if mask_credentials else self.gc_number,
            "gc_pass": "********" if mask_credentials else self.gc_pass,
            "data_ultimo_uso": self.data_ultimo_uso.isoformat() if self.data_ultimo_uso else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

# giftcards_app/models/transacao.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import validates

from ..extensions import db
from .money import MONEY, ZERO, as_money

PENDING = "pending"
COMPLETED = "completed"
CANCELLED = "cancelled"
REFUND = "refund"        # registro de reembolso (aponta para a original via refund_de)
REFUNDED = "refunded"    # original totalmente reembolsada

STATUSES = (PENDING, COMPLETED, CANCELLED, REFUND, REFUNDED)


class Transacao(db.Model):
    __tablename__ = "transacoes"

    id = db.Column(db.Integer, primary_key=True)
    valor = db.Column(MONEY, nullable=False)
    descricao = db.Column(db.String(255), nullable=False, default="")
    status = db.Column(db.String(12), nullable=False, default=PENDING, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    data_transacao = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    # cancelamento
    motivo_cancelamento = db.Column(db.String(255))
    data_cancelamento = db.Column(db.DateTime)

    # reembolso: na original acumula o total devolvido; no registro de refund guarda valor/motivo
    valor_reembolsado = db.Column(MONEY, nullable=False, default=ZERO)
    refund_de = db.Column(db.Integer, db.ForeignKey("transacoes.id"), index=True)
    valor_refund = db.Column(MONEY)
    motivo_refund = db.Column(db.String(255))

    ordem_interna = db.Column(db.String(80))
    ordem_compra = db.Column(db.String(80))
    comprovante = db.Column(db.String(512))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship("User", backref=db.backref("transacoes", lazy="dynamic"))
    alocacoes = db.relationship(
        "TransacaoGiftCard", backref="transacao",
        cascade="all, delete-orphan", order_by="TransacaoGiftCard.id",
    )
    original = db.relationship("Transacao", remote_side=[id], backref="reembolsos")

    __table_args__ = (
        db.CheckConstraint("valor > 0", name="ck_transacoes_valor_positivo"),
        db.CheckConstraint("valor_reembolsado <= valor", name="ck_transacoes_reembolso_ate_valor"),
    )

    @validates("valor", "valor_reembolsado", "valor_refund")
    def _val_money(self, key, value):
        if value is None and key == "valor_refund":
            return None
        return as_money(value)

    @property
    def saldo_reembolsavel(self) -> Decimal:
        return as_money(self.valor) - as_money(self.valor_reembolsado)

    @property
    def refund_state(self) -> str:
        """none | partial | full"""
        reembolsado = as_money(self.valor_reembolsado)
        if reembolsado == ZERO:
            return "none"
        return "full" if reembolsado >= as_money(self.valor) else "partial"

    @property
    def gift_card_ids(self) -> list[int]:
        return [a.gift_card_id for a in self.alocacoes]

    def to_dict(self, with_refunds: bool = False) -> dict:
        data = {
            "id": self.id,
            "valor": str(self.valor),
            "descricao": self.descricao,
            "status": self.status,
            "user_id": self.user_id,
            "data_transacao": self.data_transacao.isoformat() if self.data_transacao else None,
            "gift_card_ids": self.gift_card_ids,
            "alocacoes": [a.to_dict() for a in self.alocacoes],
            "valor_reembolsado": str(self.valor_reembolsado),
            "refund_state": self.refund_state,
            "refund_de": self.refund_de,
            "valor_refund": str(self.valor_refund) if self.valor_refund is not None else None,
            "motivo_refund": self.motivo_refund,
            "motivo_cancelamento": self.motivo_cancelamento,
            "ordem_interna": self.ordem_interna,
            "ordem_compra": self.ordem_compra,
        }
        if with_refunds:
            data["reembolsos"] = [r.to_dict() for r in self.reembolsos]
        return data


class TransacaoGiftCard(db.Model):
    """Quanto de cada cartão uma transação consome (e quanto já voltou em reembolsos)."""
    __tablename__ = "transacao_gift_cards"

    id = db.Column(db.Integer, primary_key=True)
    transacao_id = db.Column(db.Integer, db.ForeignKey("transacoes.id", ondelete="CASCADE"), index=True, nullable=False)
    gift_card_id = db.Column(db.Integer, db.ForeignKey("gift_cards.id"), index=True, nullable=False)
    valor = db.Column(MONEY, nullable=False)
    valor_reembolsado = db.Column(MONEY, nullable=False, default=ZERO)

    gift_card = db.relationship("GiftCard", backref=db.backref("alocacoes", lazy="dynamic"))

    __table_args__ = (
        db.UniqueConstraint("transacao_id", "gift_card_id", name="uq_transacao_gift_card"),
        db.CheckConstraint("valor > 0", name="ck_transacao_gift_cards_valor_positivo"),
    )

    @validates("valor", "valor_reembolsado")
    def _val_money(self, key, value):
        return as_money(value)

    def to_dict(self) -> dict:
        return {
            "gift_card_id": self.gift_card_id,
            "valor": str(self.valor),
            "valor_reembolsado": str(self.valor_reembolsado),
        }

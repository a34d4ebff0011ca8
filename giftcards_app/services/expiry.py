# giftcards_app/services/expiry.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import date, timedelta
from typing import Optional

from flask import current_app

from ..extensions import db, scheduler
from ..models import AuditLog, GiftCard
from ..models.gift_card import STATUS_EXPIRADO, STATUS_ZERADO

JOB_ID = "flag_expired_gift_cards"


def expiring_gift_cards(query, dias: int, hoje: Optional[date] = None):
    """Cartões com validade até hoje + `dias` (inclui os já vencidos)."""
    hoje = hoje or date.today()
    limite = hoje + timedelta(days=dias)
    return (query
            .filter(GiftCard.data_validade.isnot(None))
            .filter(GiftCard.data_validade <= limite)
            .order_by(GiftCard.data_validade.asc())
            .all())


def flag_expired_gift_cards(hoje: Optional[date] = None, dry_run: bool = False) -> int:
    """Marca como 'expirado' cartões vencidos que ainda têm saldo. Retorna quantos."""
    hoje = hoje or date.today()
    cards = (GiftCard.query
             .filter(GiftCard.data_validade.isnot(None))
             .filter(GiftCard.data_validade < hoje)
             .filter(GiftCard.status.notin_([STATUS_EXPIRADO, STATUS_ZERADO]))
             .all())
    if dry_run:
        return len(cards)
    for gc in cards:
        gc.refresh_status(hoje)
        db.session.add(AuditLog(user_id=None, action="expire", ref=f"gift_card:{gc.id}",
                                description=f"vencido em {gc.data_validade.isoformat()}"))
    db.session.commit()
    if cards:
        current_app.logger.info("%d gift card(s) marcados como expirados", len(cards))
    return len(cards)


def schedule_expiry_job(app) -> None:
    def _run():
        with app.app_context():
            try:
                flag_expired_gift_cards()
            except Exception:
                db.session.rollback()
                current_app.logger.exception("Falha no job de vencimento de gift cards")

    scheduler.add_job(
        _run, "cron", hour=app.config.get("EXPIRY_CHECK_HOUR", 3), minute=0,
        id=JOB_ID, replace_existing=True,
    )

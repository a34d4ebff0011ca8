# tests/test_expiry.py
# -*- coding: utf-8 -*-
from datetime import date, timedelta
from decimal import Decimal

from giftcards_app.extensions import scheduler
from giftcards_app.models import AuditLog, GiftCard
from giftcards_app.models.gift_card import derive_status
from giftcards_app.services.expiry import (
    JOB_ID, expiring_gift_cards, flag_expired_gift_cards, schedule_expiry_job,
)

HOJE = date(2030, 6, 15)


def test_derive_status():
    assert derive_status(Decimal("10"), None, HOJE) == "ativo"
    assert derive_status(Decimal("10"), HOJE, HOJE) == "ativo"
    assert derive_status(Decimal("10"), HOJE - timedelta(days=1), HOJE) == "expirado"
    # zerado tem precedência sobre vencido
    assert derive_status(Decimal("0"), HOJE - timedelta(days=1), HOJE) == "zerado"


def test_card_created_past_due_is_flagged(make_card):
    gc = make_card("40", data_validade=date.today() - timedelta(days=3))
    assert gc.status == "expirado"
    assert gc.vencido


def test_flag_expired(db_session, make_card):
    vence = make_card("40", data_validade=HOJE - timedelta(days=1))
    valido = make_card("40", data_validade=HOJE + timedelta(days=1))
    zerado = make_card("40", saldo_atual="0", data_validade=HOJE - timedelta(days=1))
    assert vence.status == "ativo"

    assert flag_expired_gift_cards(hoje=HOJE, dry_run=True) >= 1
    db_session.refresh(vence)
    assert vence.status == "ativo"

    assert flag_expired_gift_cards(hoje=HOJE) >= 1
    for gc in (vence, valido, zerado):
        db_session.refresh(gc)
    assert vence.status == "expirado"
    assert valido.status == "ativo"
    assert zerado.status == "zerado"
    assert AuditLog.query.filter_by(action="expire", ref=f"gift_card:{vence.id}").count() == 1

    # segunda rodada não marca de novo
    flag_expired_gift_cards(hoje=HOJE)
    assert AuditLog.query.filter_by(action="expire", ref=f"gift_card:{vence.id}").count() == 1


def test_expiring_gift_cards(db_session, make_card, user_normal):
    perto = make_card("10", data_validade=HOJE + timedelta(days=5))
    longe = make_card("10", data_validade=HOJE + timedelta(days=90))
    sem_data = make_card("10")

    q = GiftCard.query.filter(GiftCard.user_id == user_normal.id)
    ids = [c.id for c in expiring_gift_cards(q, 30, hoje=HOJE)]
    assert ids == [perto.id]
    assert longe.id not in ids and sem_data.id not in ids


def test_schedule_expiry_job_registers_cron(app):
    schedule_expiry_job(app)
    try:
        job = scheduler.get_job(JOB_ID)
        assert job is not None
        assert "cron" in str(job.trigger)
    finally:
        scheduler.remove_job(JOB_ID)


def test_cli_flag_expired_dry_run(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["flag-expired", "--dry-run"])
    assert result.exit_code == 0
    assert "vencido(s)" in result.output


def test_cli_seed_perfis(app):
    result = app.test_cli_runner().invoke(args=["seed-perfis"])
    assert result.exit_code == 0
    assert "0 perfil(is) criado(s)." in result.output

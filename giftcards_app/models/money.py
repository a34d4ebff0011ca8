# giftcards_app/models/money.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP

from ..extensions import db

MONEY = db.Numeric(12, 2)   # 999.999.999,99 máx
CENT = Decimal("0.01")
ZERO = Decimal("0.00")

def as_money(value) -> Decimal:
    if value is None:
        return ZERO
    d = value if isinstance(value, Decimal) else Decimal(str(value))
    # NaN/Infinity não comparam; ValueError para o chamador virar 400
    if not d.is_finite():
        raise ValueError(f"valor monetário não finito: {value!r}")
    return d.quantize(CENT, rounding=ROUND_HALF_UP)

def fmt_brl(value) -> str:
    """R$ 1.234,56"""
    v = as_money(value)
    return "R$ " + f"{v:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")

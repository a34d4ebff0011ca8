# giftcards_app/services/export.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from typing import Any, Dict, Iterable

import pandas as pd

TRANSACAO_COLUMNS: Dict[str, str] = {
    "ID": "id",
    "DATA": "data_transacao",
    "DESCRICAO": "descricao",
    "VALOR": "valor",
    "STATUS": "status",
    "REEMBOLSADO": "valor_reembolsado",
    "REFUND_DE": "refund_de",
    "ORDEM_INTERNA": "ordem_interna",
    "ORDEM_COMPRA": "ordem_compra",
}

GIFT_CARD_COLUMNS: Dict[str, str] = {
    "ID": "id",
    "CODIGO": "codigo",
    "FORNECEDOR_ID": "fornecedor_id",
    "VALOR_INICIAL": "valor_inicial",
    "SALDO_ATUAL": "saldo_atual",
    "DESCONTO": "desconto",
    "VALIDADE": "data_validade",
    "STATUS": "status",
}


def _coerce(value: Any) -> Any:
    if value is None:
        return ""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value) if not isinstance(value, (int, str)) else value


def rows_to_dataframe(rows: Iterable[Any], mapping: Dict[str, str]) -> pd.DataFrame:
    data = []
    for row in rows:
        record = {column: _coerce(getattr(row, attribute, None)) for column, attribute in mapping.items()}
        data.append(record)
    return pd.DataFrame(data, columns=list(mapping.keys()))


def transacoes_dataframe(transacoes: Iterable[Any]) -> pd.DataFrame:
    transacoes = list(transacoes)
    df = rows_to_dataframe(transacoes, TRANSACAO_COLUMNS)
    # cartões envolvidos, "id:valor" separados por '|'
    df["CARTOES"] = ["|".join(f"{a.gift_card_id}:{a.valor}" for a in t.alocacoes) for t in transacoes]
    return df


def to_csv_bytes(df: pd.DataFrame) -> bytes:
    return df.to_csv(index=False, sep=";").encode("utf-8-sig")

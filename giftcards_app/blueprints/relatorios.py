# giftcards_app/blueprints/relatorios.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import io
from datetime import datetime

from flask import Blueprint, request, jsonify, send_file

from giftcards_app.decorators import current_user, permission_required
from giftcards_app.models import Fornecedor, Transacao
from giftcards_app.services.access import fornecedores_query, gift_cards_query, transacoes_query
from giftcards_app.services.export import GIFT_CARD_COLUMNS, rows_to_dataframe, to_csv_bytes, transacoes_dataframe
from giftcards_app.services.ledger import compute_supplier_summary
from giftcards_app.services.report import gerar_pdf_resumo

bp = Blueprint("relatorios", __name__, url_prefix="/api/relatorios")


def _resumo():
    u = current_user()
    fornecedores = fornecedores_query(u)
    if request.args.get("todos") != "1":
        fornecedores = fornecedores.filter(Fornecedor.status == "ativo")
    return compute_supplier_summary(gift_cards_query(u).all(), fornecedores.all())


@bp.route("/fornecedores")
@permission_required("relatorio.visualizar")
def resumo_fornecedores():
    return jsonify(_resumo().to_dict())


@bp.route("/fornecedores.pdf")
@permission_required("relatorio.visualizar")
def resumo_fornecedores_pdf():
    u = current_user()
    pdf = gerar_pdf_resumo(_resumo(), empresa_nome=u.empresa.nome if u.empresa else "")
    fname = f"resumo_fornecedores_{datetime.utcnow():%Y%m%d}.pdf"
    return send_file(io.BytesIO(pdf), mimetype="application/pdf", as_attachment=True, download_name=fname)


@bp.route("/transacoes.csv")
@permission_required("relatorio.visualizar")
def transacoes_csv():
    q = transacoes_query(current_user())
    status = request.args.get("status")
    if status:
        q = q.filter(Transacao.status == status)
    df = transacoes_dataframe(q.order_by(Transacao.data_transacao.asc(), Transacao.id.asc()).all())
    return send_file(io.BytesIO(to_csv_bytes(df)), mimetype="text/csv", as_attachment=True,
                     download_name="transacoes.csv")


@bp.route("/gift-cards.csv")
@permission_required("relatorio.visualizar")
def gift_cards_csv():
    df = rows_to_dataframe(gift_cards_query(current_user()).all(), GIFT_CARD_COLUMNS)
    return send_file(io.BytesIO(to_csv_bytes(df)), mimetype="text/csv", as_attachment=True,
                     download_name="gift_cards.csv")

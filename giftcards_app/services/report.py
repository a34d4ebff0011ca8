# giftcards_app/services/report.py
# -*- coding: utf-8 -*-
"""PDF do resumo por fornecedor (mesma tabela da tela de relatórios)."""
from __future__ import annotations

from datetime import datetime
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..models.money import fmt_brl
from .ledger import ResumoFornecedores

PAGE = landscape(A4)
MARGEM = 14 * mm
CABECALHO = ["Fornecedor", "Qtd.", "Disponível", "Desconto médio", "Valor médio", "Maior saldo", "Menor saldo"]
ZEBRA = colors.HexColor("#f4f6f8")
HEADER_BG = colors.HexColor("#1f3b57")


def _money(v) -> str:
    # "N/A" passa direto
    return v if isinstance(v, str) else fmt_brl(v)


def _rodape(canvas, doc):
    largura, _ = PAGE
    canvas.saveState()
    canvas.setFont("Helvetica", 7.5)
    canvas.setFillColor(colors.grey)
    canvas.drawString(MARGEM, 8 * mm, f"Emitido em {datetime.now():%d/%m/%Y %H:%M}")
    canvas.drawRightString(largura - MARGEM, 8 * mm, f"pág. {doc.page}")
    canvas.restoreState()


def _linhas(resumo: ResumoFornecedores) -> list:
    dados = [CABECALHO]
    for l in resumo.linhas:
        dados.append([
            l.fornecedor or f"#{l.fornecedor_id}",
            l.quantidade,
            _money(l.disponivel),
            f"{l.media_desconto}%",
            _money(l.valor_medio),
            _money(l.maior_valor),
            _money(l.menor_valor),
        ])
    dados.append(["Total", resumo.total_quantidade, _money(resumo.total_disponivel), "", "", "", ""])
    return dados


def _tabela(resumo: ResumoFornecedores) -> Table:
    dados = _linhas(resumo)
    ultima = len(dados) - 1
    estilo = [
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTNAME", (0, ultima), (-1, ultima), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8.5),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("LINEABOVE", (0, ultima), (-1, ultima), 0.8, HEADER_BG),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 5),
    ]
    for i in range(1, ultima):
        if i % 2 == 0:
            estilo.append(("BACKGROUND", (0, i), (-1, i), ZEBRA))

    largura_util = PAGE[0] - 2 * MARGEM
    primeira = largura_util * 0.28
    resto = (largura_util - primeira) / (len(CABECALHO) - 1)
    t = Table(dados, colWidths=[primeira] + [resto] * (len(CABECALHO) - 1), repeatRows=1)
    t.setStyle(TableStyle(estilo))
    return t


def gerar_pdf_resumo(resumo: ResumoFornecedores, empresa_nome: str = "") -> bytes:
    base = getSampleStyleSheet()
    titulo = ParagraphStyle("titulo", parent=base["Title"], fontSize=15, alignment=0, spaceAfter=2)
    sub = ParagraphStyle("sub", parent=base["Normal"], fontSize=9, textColor=colors.grey)

    story = [Paragraph("Gift cards por fornecedor", titulo)]
    if empresa_nome:
        story.append(Paragraph(empresa_nome, sub))
    story += [Spacer(1, 6 * mm), _tabela(resumo)]

    out = BytesIO()
    doc = SimpleDocTemplate(out, pagesize=PAGE, leftMargin=MARGEM, rightMargin=MARGEM,
                            topMargin=MARGEM, bottomMargin=16 * mm, title="Resumo por fornecedor")
    doc.build(story, onFirstPage=_rodape, onLaterPages=_rodape)
    return out.getvalue()

# tests/test_relatorios_blueprint.py
# -*- coding: utf-8 -*-
from giftcards_app.services.ledger import create_transaction


def test_supplier_summary_json(logged_client_user, fornecedor, make_fornecedor, make_card):
    amazon = fornecedor
    steam = make_fornecedor("Steam")
    make_fornecedor("Antigo", status="inativo")
    make_card("50", fornecedor_obj=amazon, desconto="10")
    make_card("30", fornecedor_obj=amazon, desconto="20")

    r = logged_client_user.get("/api/relatorios/fornecedores")
    assert r.status_code == 200
    data = r.get_json()
    linhas = {l["fornecedor"]: l for l in data["linhas"]}
    assert set(linhas) == {"Amazon", "Steam"}
    assert linhas["Amazon"]["quantidade"] == 2
    assert linhas["Amazon"]["disponivel"] == "80.00"
    assert linhas["Amazon"]["media_desconto"] == "15.00"
    assert linhas["Amazon"]["maior_valor"] == "50.00"
    assert linhas["Amazon"]["menor_valor"] == "30.00"
    assert linhas["Steam"]["quantidade"] == 0
    assert linhas["Steam"]["maior_valor"] == "N/A"
    assert data["total_disponivel"] == "80.00"
    assert steam.id in [l["fornecedor_id"] for l in data["linhas"]]

    todos = logged_client_user.get("/api/relatorios/fornecedores?todos=1").get_json()
    assert "Antigo" in [l["fornecedor"] for l in todos["linhas"]]


def test_supplier_summary_pdf(logged_client_user, card):
    r = logged_client_user.get("/api/relatorios/fornecedores.pdf")
    assert r.status_code == 200
    assert r.mimetype == "application/pdf"
    assert r.data.startswith(b"%PDF")


def test_transacoes_csv(logged_client_user, user_normal, card):
    t = create_transaction(user_normal, "30", {card: "30"}, descricao="Fone")
    r = logged_client_user.get("/api/relatorios/transacoes.csv")
    assert r.status_code == 200
    assert r.mimetype == "text/csv"
    texto = r.data.decode("utf-8-sig")
    assert texto.splitlines()[0].startswith("ID;DATA;DESCRICAO")
    assert f"{card.id}:30.00" in texto
    assert any(linha.startswith(f"{t.id};") for linha in texto.splitlines())


def test_gift_cards_csv(logged_client_user, card):
    r = logged_client_user.get("/api/relatorios/gift-cards.csv")
    assert r.status_code == 200
    assert card.codigo in r.data.decode("utf-8-sig")


def test_reports_require_login(client):
    assert client.get("/api/relatorios/fornecedores").status_code == 401

# tests/test_tags_blueprint.py
# -*- coding: utf-8 -*-
import uuid

from giftcards_app.models import GiftCardTag, Tag


def _tag(db_session, empresa_id, nome=None):
    t = Tag(nome=nome or f"tag-{uuid.uuid4().hex[:6]}", empresa_id=empresa_id)
    db_session.add(t); db_session.commit()
    return t


def test_create_list_and_detail(logged_client_user):
    r = logged_client_user.post("/api/tags", json={"nome": "  presente "})
    assert r.status_code == 201
    tag = r.get_json()
    assert tag["nome"] == "presente"

    nomes = [t["nome"] for t in logged_client_user.get("/api/tags").get_json()]
    assert nomes == ["presente"]

    r = logged_client_user.get(f"/api/tags/{tag['id']}")
    assert r.status_code == 200
    assert r.get_json()["nome"] == "presente"


def test_create_validations(logged_client_user):
    assert logged_client_user.post("/api/tags", json={"nome": " "}).status_code == 400
    assert logged_client_user.post("/api/tags", json={}).status_code == 400
    assert logged_client_user.post("/api/tags", json={"nome": 42}).status_code == 400
    assert logged_client_user.post("/api/tags", json={"nome": "x" * 61}).status_code == 400

    assert logged_client_user.post("/api/tags", json={"nome": "natal"}).status_code == 201
    assert logged_client_user.post("/api/tags", json={"nome": "natal"}).status_code == 409


def test_tag_not_found(logged_client_user):
    r = logged_client_user.get("/api/tags/999999")
    assert r.status_code == 404
    assert r.get_json()["error"] == "not_found"
    assert logged_client_user.get("/api/gift-cards/tag/999999").status_code == 404


def test_tags_are_scoped_by_empresa(logged_client_user, db_session, make_empresa, empresa):
    minha = _tag(db_session, empresa.id)
    de_outra = _tag(db_session, make_empresa().id)

    ids = [t["id"] for t in logged_client_user.get("/api/tags").get_json()]
    assert minha.id in ids and de_outra.id not in ids
    assert logged_client_user.get(f"/api/tags/{de_outra.id}").status_code == 403


def test_tag_card_lifecycle(logged_client_user, db_session, empresa, card):
    tag = _tag(db_session, empresa.id, "trabalho")
    url = f"/api/gift-cards/{card.id}/tags/{tag.id}"

    r = logged_client_user.post(url)
    assert r.status_code == 201
    assert r.get_json()["tag_id"] == tag.id
    # marcar de novo não duplica
    assert logged_client_user.post(url).status_code == 200
    assert GiftCardTag.query.filter_by(gift_card_id=card.id, tag_id=tag.id).count() == 1

    tags = logged_client_user.get(f"/api/gift-cards/{card.id}/tags").get_json()
    assert [t["nome"] for t in tags] == ["trabalho"]
    cards = logged_client_user.get(f"/api/gift-cards/tag/{tag.id}").get_json()
    assert [c["id"] for c in cards] == [card.id]

    assert logged_client_user.delete(url).status_code == 204
    assert logged_client_user.delete(url).status_code == 404
    assert logged_client_user.get(f"/api/gift-cards/{card.id}/tags").get_json() == []


def test_cards_by_tag_follow_card_visibility(client, login, db_session, empresa, make_user, make_card, card):
    tag = _tag(db_session, empresa.id)
    colega = make_card("10", user=make_user("usuario"))
    for gc in (card, colega):
        db_session.add(GiftCardTag(gift_card_id=gc.id, tag_id=tag.id))
    db_session.commit()

    login(card.user)
    ids = [c["id"] for c in client.get(f"/api/gift-cards/tag/{tag.id}").get_json()]
    assert ids == [card.id]

    login(make_user("gerente"))
    ids = [c["id"] for c in client.get(f"/api/gift-cards/tag/{tag.id}").get_json()]
    assert ids == sorted([card.id, colega.id])


def test_cannot_tag_someone_elses_card(logged_client_user, db_session, empresa, make_user, make_card):
    tag = _tag(db_session, empresa.id)
    alheio = make_card("10", user=make_user("usuario"))
    assert logged_client_user.post(f"/api/gift-cards/{alheio.id}/tags/{tag.id}").status_code == 403
    assert logged_client_user.get(f"/api/gift-cards/{alheio.id}/tags").status_code == 403
    assert logged_client_user.post(f"/api/gift-cards/999999/tags/{tag.id}").status_code == 404


def test_guest_reads_but_cannot_tag(client, login, db_session, empresa, make_user, make_card):
    convidado = make_user("convidado")
    gc = make_card("10", user=convidado, gc_pass="segredo")
    tag = _tag(db_session, empresa.id)
    db_session.add(GiftCardTag(gift_card_id=gc.id, tag_id=tag.id)); db_session.commit()

    login(convidado)
    assert client.get("/api/tags").status_code == 200
    assert client.post("/api/tags", json={"nome": "nova"}).status_code == 403
    assert client.post(f"/api/gift-cards/{gc.id}/tags/{tag.id}").status_code == 403
    listed = client.get(f"/api/gift-cards/tag/{tag.id}").get_json()
    assert listed[0]["gc_pass"] == "********"


def test_deleting_card_drops_its_tags(logged_client_user, db_session, empresa, make_card):
    gc = make_card("10")
    tag = _tag(db_session, empresa.id)
    assert logged_client_user.post(f"/api/gift-cards/{gc.id}/tags/{tag.id}").status_code == 201

    assert logged_client_user.delete(f"/api/gift-cards/{gc.id}").status_code == 204
    assert GiftCardTag.query.filter_by(tag_id=tag.id).count() == 0
    assert db_session.get(Tag, tag.id) is not None

# tests/test_auth_blueprint.py
# -*- coding: utf-8 -*-


def test_login_ok_and_me(client, db_session, user_normal):
    r = client.post("/api/auth/login", json={"username": user_normal.username, "password": "secret123"})
    assert r.status_code == 200
    data = r.get_json()
    assert data["perfil_nome"] == "usuario"
    assert "giftcard.*" in data["permissoes"]

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.get_json()["id"] == user_normal.id

    db_session.refresh(user_normal)
    assert user_normal.ultimo_login is not None


def test_login_wrong_password(client, user_normal):
    r = client.post("/api/auth/login", json={"username": user_normal.username, "password": "errada"})
    assert r.status_code == 401
    assert r.get_json()["error"] == "unauthorized"


def test_login_unknown_user(client, db_session):
    r = client.post("/api/auth/login", json={"username": "ninguem", "password": "x"})
    assert r.status_code == 401


def test_login_inactive_user(client, make_user):
    u = make_user("usuario", status="inativo")
    r = client.post("/api/auth/login", json={"username": u.username, "password": "secret123"})
    assert r.status_code == 403


def test_login_inactive_company(client, make_user, make_empresa):
    u = make_user("usuario", empresa_obj=make_empresa(status="inativo"))
    r = client.post("/api/auth/login", json={"username": u.username, "password": "secret123"})
    assert r.status_code == 403


def test_logout(logged_client_user):
    assert logged_client_user.get("/api/auth/me").status_code == 200
    assert logged_client_user.post("/api/auth/logout").get_json() == {"ok": True}
    assert logged_client_user.get("/api/auth/me").status_code == 401


def test_inactive_session_is_blocked(client, login, db_session, user_normal):
    login(user_normal)
    user_normal.status = "inativo"
    db_session.commit()
    assert client.get("/api/gift-cards").status_code == 403

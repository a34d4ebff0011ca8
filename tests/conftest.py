# tests/conftest.py
# -*- coding: utf-8 -*-
import os
import sys
import uuid
import pathlib
import tempfile
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import event


# =====================================================================================
# Localização do projeto (garante que "giftcards_app" esteja no sys.path)
# =====================================================================================
def _add_project_root():
    here = pathlib.Path(__file__).resolve()
    for candidate in [here.parent, *here.parents]:
        if (candidate / "giftcards_app").is_dir():
            if str(candidate) not in sys.path:
                sys.path.insert(0, str(candidate))
            return candidate
    return None


PROJECT_ROOT = _add_project_root()


# =====================================================================================
# Ambiente de testes (sem scheduler)
# =====================================================================================
@pytest.fixture(autouse=True, scope="session")
def _testing_env():
    os.environ["APP_ENV"] = "testing"
    os.environ["FLASK_ENV"] = "testing"
    os.environ["DISABLE_SCHEDULER"] = "1"
    os.environ.setdefault("SECRET_KEY", "testing-secret")
    yield


def _set_sqlite_pragmas(dbapi_conn, _conn_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=30000")
    cursor.close()


# =====================================================================================
# App Flask com SQLite temporário e schema criado uma vez por sessão
# =====================================================================================
@pytest.fixture(scope="session")
def app(_testing_env):
    from config import TestingConfig
    from giftcards_app import create_app
    from giftcards_app.extensions import db
    from giftcards_app.services.access import ensure_default_perfis

    fd, db_path = tempfile.mkstemp(prefix="giftcards_test_", suffix=".sqlite")
    os.close(fd)

    app = create_app(TestingConfig, {
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}?check_same_thread=0&timeout=30",
        "BCRYPT_LOG_ROUNDS": 4,
    })

    with app.app_context():
        event.listen(db.engine, "connect", _set_sqlite_pragmas)
        db.create_all()
        ensure_default_perfis()

    yield app

    with app.app_context():
        db.session.remove()
        db.engine.dispose()
    try:
        os.remove(db_path)
    except OSError:
        pass


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db_session(app):
    from giftcards_app.extensions import db
    with app.app_context():
        try:
            yield db.session
        finally:
            db.session.rollback()
            db.session.close()


# =====================================================================================
# Factories: empresa, usuários por perfil, fornecedor e gift cards
# (dados únicos por teste; o banco é compartilhado na sessão)
# =====================================================================================
def _uid() -> str:
    return uuid.uuid4().hex[:8]


@pytest.fixture
def make_empresa(db_session):
    from giftcards_app.models import Empresa

    def _make(nome=None, status="ativo"):
        e = Empresa(nome=nome or f"Empresa {_uid()}", cnpj=_uid(), status=status)
        db_session.add(e); db_session.commit()
        return e
    return _make


@pytest.fixture
def empresa(make_empresa):
    return make_empresa()


@pytest.fixture
def make_user(db_session, empresa):
    from giftcards_app.models import Perfil, User

    def _make(perfil="usuario", empresa_obj=None, status="ativo", password="secret123"):
        p = Perfil.query.filter_by(nome=perfil).one()
        emp = empresa_obj or empresa
        username = f"{perfil}_{_uid()}"
        u = User(username=username, email=f"{username}@test.com", empresa_id=emp.id,
                 perfil_id=p.id, status=status)
        u.set_password(password)
        db_session.add(u); db_session.commit()
        return u
    return _make


@pytest.fixture
def user_normal(make_user):
    return make_user("usuario")


@pytest.fixture
def user_admin(make_user):
    return make_user("admin")


@pytest.fixture
def user_gerente(make_user):
    return make_user("gerente")


@pytest.fixture
def user_guest(make_user):
    return make_user("convidado")


@pytest.fixture
def make_fornecedor(db_session, empresa):
    from giftcards_app.models import Fornecedor

    def _make(nome=None, empresa_obj=None, status="ativo"):
        f = Fornecedor(nome=nome or f"Fornecedor {_uid()}", empresa_id=(empresa_obj or empresa).id, status=status)
        db_session.add(f); db_session.commit()
        return f
    return _make


@pytest.fixture
def fornecedor(make_fornecedor):
    return make_fornecedor("Amazon")


@pytest.fixture
def make_card(db_session, user_normal, fornecedor):
    from giftcards_app.models import GiftCard

    def _make(valor_inicial="100.00", saldo_atual=None, user=None, fornecedor_obj=None,
              data_validade=None, desconto=None, **extra):
        gc = GiftCard(
            codigo=f"GC-{_uid()}",
            valor_inicial=Decimal(str(valor_inicial)),
            saldo_atual=Decimal(str(saldo_atual)) if saldo_atual is not None else None,
            fornecedor_id=(fornecedor_obj or fornecedor).id,
            user_id=(user or user_normal).id,
            data_validade=data_validade,
            desconto=Decimal(str(desconto)) if desconto is not None else None,
            **extra,
        )
        db_session.add(gc); db_session.commit()
        return gc
    return _make


@pytest.fixture
def card(make_card):
    return make_card("100.00", data_validade=date(2099, 12, 31), gc_number="1111-2222", gc_pass="9999")


# =====================================================================================
# Clientes logados
# =====================================================================================
def login_as(client, user):
    with client.session_transaction() as sess:
        sess["user"] = {"id": user.id, "username": user.username,
                        "empresa_id": user.empresa_id, "perfil_id": user.perfil_id}
    return client


@pytest.fixture
def logged_client_user(client, user_normal):
    return login_as(client, user_normal)


@pytest.fixture
def logged_client_admin(client, user_admin):
    return login_as(client, user_admin)


@pytest.fixture
def logged_client_gerente(client, user_gerente):
    return login_as(client, user_gerente)


@pytest.fixture
def logged_client_guest(client, user_guest):
    return login_as(client, user_guest)


@pytest.fixture
def login(client):
    """login(user) -> client com a sessão do usuário."""
    return lambda user: login_as(client, user)

# giftcards_app/extensions.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import click
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_migrate import Migrate
from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy import text



db = SQLAlchemy()
bcrypt = Bcrypt()
migrate = Migrate()
scheduler = BackgroundScheduler(daemon=True)

def init_extensions(app):
    # DB/Bcrypt/Migrate
    db.init_app(app)
    bcrypt.init_app(app)
    migrate.init_app(app, db)

def register_cli(app):
    @app.cli.command("init-db")
    def init_db_cmd():
        """Cria as tabelas iniciais (DEV/MVP). Para produção: use flask db upgrade."""
        with app.app_context():
            # sanity check
            db.session.execute(text("SELECT 1"))
            db.create_all()
            print("Tabelas criadas.")

    @app.cli.command("seed-perfis")
    def seed_perfis_cmd():
        """Cria os perfis padrão (admin, gerente, usuario, convidado)."""
        from .services.access import ensure_default_perfis
        with app.app_context():
            criados = ensure_default_perfis()
            print(f"{len(criados)} perfil(is) criado(s).")

    @app.cli.command("flag-expired")
    @click.option("--dry-run", is_flag=True, help="Só lista, não altera.")
    def flag_expired_cmd(dry_run):
        """Marca como expirados os gift cards vencidos com saldo."""
        from .services.expiry import flag_expired_gift_cards
        with app.app_context():
            total = flag_expired_gift_cards(dry_run=dry_run)
            print(f"{total} gift card(s) vencido(s).")

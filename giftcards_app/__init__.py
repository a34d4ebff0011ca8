# giftcards_app/__init__.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import os
from datetime import datetime
from typing import Optional

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import Config, TestingConfig, StagingConfig, ProductionConfig
from .extensions import db, scheduler, init_extensions, register_cli
from .services.ledger import LedgerError
from .services.expiry import schedule_expiry_job
from .blueprints.auth import bp as auth_bp
from .blueprints.fornecedores import bp as fornecedores_bp
from .blueprints.gift_cards import bp as gift_cards_bp
from .blueprints.transacoes import bp as transacoes_bp
from .blueprints.relatorios import bp as relatorios_bp
from .blueprints.tags import bp as tags_bp

CONFIGS = {
    "testing": TestingConfig,
    "staging": StagingConfig,
    "production": ProductionConfig,
}


def create_app(config_object: Optional[type[Config]] = None, overrides: Optional[dict] = None) -> Flask:
    app = Flask(__name__)
    if config_object is None:
        app_env = os.getenv("APP_ENV", "").lower()
        config_object = CONFIGS.get(app_env, Config)
    app.config.from_object(config_object)
    if overrides:
        app.config.update(overrides)

    # Extensões (DB/Bcrypt/Migrate/Scheduler)
    init_extensions(app)
    app.config["STARTED_AT"] = datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S UTC")

    # Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(fornecedores_bp)
    app.register_blueprint(gift_cards_bp)
    app.register_blueprint(transacoes_bp)
    app.register_blueprint(relatorios_bp)
    app.register_blueprint(tags_bp)
    # CLI (ex.: flask init-db)
    register_cli(app)

    @app.get("/health")
    def health():
        return jsonify(ok=True, started_at=app.config["STARTED_AT"])

    @app.errorhandler(LedgerError)
    def ledger_error(e: LedgerError):
        app.logger.warning("Operação recusada pelo ledger: %s", e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        return jsonify(error=e.name.lower().replace(" ", "_"), message=e.description), e.code

    @app.errorhandler(Exception)
    def unexpected_error(e: Exception):
        db.session.rollback()
        app.logger.exception("Erro inesperado")
        return jsonify(error="internal_server_error", message="Erro interno."), 500

    # Scheduler: todo dia às EXPIRY_CHECK_HOUR marca cartões vencidos
    if not app.config.get("TESTING") and not app.config.get("DISABLE_SCHEDULER"):
        schedule_expiry_job(app)
        if not scheduler.running:
            scheduler.start()

    return app

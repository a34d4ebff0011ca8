# giftcards_app/models/audit.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime
from ..extensions import db

class AuditLog(db.Model):
    __tablename__ = "audit_logs"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=True)  # NULL = job/CLI
    action = db.Column(db.String(80), nullable=False)   # apply, cancel, refund, expire
    ref = db.Column(db.String(120))                     # e.g., transacao:<id> / gift_card:<id>
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    user = db.relationship("User", backref=db.backref("audit_logs", lazy="dynamic"))

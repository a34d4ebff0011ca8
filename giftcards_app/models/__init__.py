# giftcards_app/models/__init__.py
# -*- coding: utf-8 -*-
from .empresa import Empresa
from .user import Perfil, User
from .fornecedor import Fornecedor
from .gift_card import GiftCard
from .transacao import Transacao, TransacaoGiftCard
from .tag import Tag, GiftCardTag
from .audit import AuditLog


__all__ = [
    "Empresa",
    "Perfil",
    "User",
    "Fornecedor",
    "GiftCard",
    "Transacao",
    "TransacaoGiftCard",
    "Tag",
    "GiftCardTag",
    "AuditLog",
]

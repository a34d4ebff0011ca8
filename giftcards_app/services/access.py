# giftcards_app/services/access.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import Iterable, List, Optional

from ..extensions import db
from ..models import Fornecedor, GiftCard, Perfil, Tag, Transacao, TransacaoGiftCard, User

ADMIN = "admin"
GERENTE = "gerente"
USUARIO = "usuario"
CONVIDADO = "convidado"

DEFAULT_PERFIS = {
    ADMIN: ("Acesso total", ["*"]),
    GERENTE: ("Gerencia os recursos da empresa", ["fornecedor.*", "giftcard.*", "transacao.*", "relatorio.*"]),
    USUARIO: ("Usuário regular", ["fornecedor.visualizar", "giftcard.*", "transacao.*", "relatorio.visualizar"]),
    CONVIDADO: ("Somente leitura, sem credenciais", [
        "fornecedor.visualizar", "giftcard.visualizar", "transacao.visualizar", "relatorio.visualizar",
    ]),
}


def ensure_default_perfis() -> List[Perfil]:
    criados = []
    for nome, (descricao, permissoes) in DEFAULT_PERFIS.items():
        if Perfil.query.filter_by(nome=nome).first():
            continue
        p = Perfil(nome=nome, descricao=descricao, permissoes=list(permissoes))
        db.session.add(p)
        criados.append(p)
    db.session.commit()
    return criados


def has_permission(permissoes: Iterable[str], permission: str) -> bool:
    """'*' concede tudo; 'giftcard.*' concede 'giftcard.editar'."""
    permissoes = list(permissoes or [])
    if "*" in permissoes:
        return True
    recurso, _, _acao = permission.partition(".")
    for p in permissoes:
        if p == permission:
            return True
        base, _, acao = p.partition(".")
        if acao == "*" and base == recurso:
            return True
    return False


def user_can(user: Optional[User], permission: str) -> bool:
    if not user or not user.is_active or not user.perfil:
        return False
    return has_permission(user.perfil.permissoes, permission)


def is_admin(user: User) -> bool:
    return bool(user.perfil and user.perfil.nome == ADMIN)


def is_guest(user: User) -> bool:
    return bool(user.perfil and user.perfil.nome == CONVIDADO)


def can_access_resource(user: User, owner: Optional[User]) -> bool:
    """admin: tudo; dono: sempre; gerente: mesma empresa; demais: só os próprios."""
    if owner is None:
        return False
    if is_admin(user) or user.id == owner.id:
        return True
    if user.perfil and user.perfil.nome == GERENTE:
        return owner.empresa_id == user.empresa_id
    return False


def can_access_fornecedor(user: User, fornecedor: Fornecedor) -> bool:
    return is_admin(user) or fornecedor.empresa_id == user.empresa_id


def can_access_tag(user: User, tag: Tag) -> bool:
    return is_admin(user) or tag.empresa_id == user.empresa_id


def can_access_transacao(user: User, transacao: Transacao) -> bool:
    if can_access_resource(user, transacao.user):
        return True
    # também quem é dono de algum cartão envolvido
    return any(can_access_resource(user, a.gift_card.user) for a in transacao.alocacoes)


def gift_cards_query(user: User):
    q = GiftCard.query
    if is_admin(user):
        return q
    if user.perfil and user.perfil.nome == GERENTE:
        return q.join(User, GiftCard.user_id == User.id).filter(User.empresa_id == user.empresa_id)
    return q.filter(GiftCard.user_id == user.id)


def fornecedores_query(user: User):
    if is_admin(user):
        return Fornecedor.query
    return Fornecedor.query.filter(Fornecedor.empresa_id == user.empresa_id)


def tags_query(user: User):
    if is_admin(user):
        return Tag.query
    return Tag.query.filter(Tag.empresa_id == user.empresa_id)


def transacoes_query(user: User):
    q = Transacao.query
    if is_admin(user):
        return q
    if user.perfil and user.perfil.nome == GERENTE:
        return q.join(User, Transacao.user_id == User.id).filter(User.empresa_id == user.empresa_id)
    visiveis = (
        db.select(TransacaoGiftCard.transacao_id)
        .join(GiftCard, TransacaoGiftCard.gift_card_id == GiftCard.id)
        .where(GiftCard.user_id == user.id)
    )
    return q.filter((Transacao.user_id == user.id) | (Transacao.id.in_(visiveis)))

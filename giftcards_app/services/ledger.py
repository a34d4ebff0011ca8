# giftcards_app/services/ledger.py
# -*- coding: utf-8 -*-
"""
Motor de saldo dos gift cards.

Toda movimentação de saldo passa por aqui:
- apply_transaction: debita os cartões alocados e conclui a transação
- cancel_transaction: cancela uma transação ainda pendente (não mexe em saldo)
- refund_transaction: devolve (parcial ou total) o valor de uma transação concluída
- compute_supplier_summary: agregação pura por fornecedor

Cada operação pública roda numa única transação de banco (commit no sucesso,
rollback em qualquer erro). A transação e os cartões envolvidos são relidos
com SELECT ... FOR UPDATE (nessa ordem) e o mapper de GiftCard usa lock
otimista (coluna version), então duas requisições concorrentes não concluem
a mesma transação duas vezes nem deixam saldo negativo.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_DOWN
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import AuditLog, GiftCard, Transacao, TransacaoGiftCard, User
from ..models.money import CENT, ZERO, as_money
from ..models.transacao import CANCELLED, COMPLETED, PENDING, REFUND, REFUNDED

DEFAULT_MAX_CARDS = 10
NA = "N/A"

# =============================================================================
# Erros
# =============================================================================

class LedgerError(Exception):
    """Erro recuperável pelo chamador; a API devolve `status_code`."""
    status_code = 400
    code = "ledger_error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        data = {"error": self.code, "message": self.message}
        if self.details:
            data["details"] = {k: str(v) if isinstance(v, Decimal) else v for k, v in self.details.items()}
        return data


class InsufficientBalance(LedgerError):
    status_code = 422
    code = "insufficient_balance"


class AllocationMismatch(LedgerError):
    status_code = 400
    code = "allocation_mismatch"


class RefundExceedsOriginal(LedgerError):
    status_code = 422
    code = "refund_exceeds_original"


class InvalidStateTransition(LedgerError):
    status_code = 409
    code = "invalid_state_transition"


class InvalidAmount(LedgerError):
    status_code = 400
    code = "invalid_amount"


class ConcurrentUpdate(LedgerError):
    status_code = 409
    code = "concurrent_update"


class ConstraintViolation(LedgerError):
    status_code = 409
    code = "constraint_violation"


# =============================================================================
# Infra
# =============================================================================

@contextmanager
def ledger_transaction():
    try:
        yield
        db.session.commit()
    except StaleDataError as e:
        db.session.rollback()
        current_app.logger.warning("Conflito de versão em gift card: %s", e)
        raise ConcurrentUpdate("Gift card alterado por outra operação; tente novamente.") from e
    except IntegrityError as ie:
        db.session.rollback()
        current_app.logger.warning("Violação de integridade no ledger: %s", ie.orig)
        raise ConstraintViolation(f"Violação de integridade: {ie.orig}") from ie
    except Exception:
        db.session.rollback()
        raise


def _audit(action: str, ref: str, description: str, user: Optional[User]) -> None:
    db.session.add(AuditLog(
        user_id=user.id if user else None,
        action=action,
        ref=ref,
        description=description,
    ))


def _amount(valor) -> Decimal:
    try:
        return as_money(valor)
    except (TypeError, ValueError, ArithmeticError) as e:
        raise InvalidAmount(f"Valor inválido: {valor!r}") from e


def _max_cards() -> int:
    return int(current_app.config.get("MAX_CARDS_PER_TRANSACTION", DEFAULT_MAX_CARDS))


def _lock_cards(ids: Iterable[int]) -> Dict[int, GiftCard]:
    # ordem fixa de lock evita deadlock entre transações multi-cartão
    stmt = (
        select(GiftCard)
        .where(GiftCard.id.in_(sorted(set(ids))))
        .order_by(GiftCard.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return {gc.id: gc for gc in db.session.execute(stmt).scalars().all()}


def _lock_transacao(transacao: Transacao) -> Transacao:
    """
    Relê a transação (e suas alocações) com SELECT ... FOR UPDATE.
    Status e valor_reembolsado só são confiáveis depois disso: outra
    requisição pode ter concluído ou reembolsado a mesma transação.
    """
    if transacao.id is None:
        return transacao
    stmt = (
        select(Transacao)
        .where(Transacao.id == transacao.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    locked = db.session.execute(stmt).scalar_one()
    db.session.execute(
        select(TransacaoGiftCard)
        .where(TransacaoGiftCard.transacao_id == locked.id)
        .order_by(TransacaoGiftCard.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalars().all()
    db.session.expire(locked, ["alocacoes"])
    return locked


AlocacoesIn = Union[Mapping[Any, Any], Iterable[Any]]


def _normalize_alocacoes(alocacoes: AlocacoesIn) -> Dict[int, Decimal]:
    """Aceita {card|id: valor} ou [(card|id, valor)] / [{"gift_card_id": .., "valor": ..}]."""
    pares = alocacoes.items() if isinstance(alocacoes, Mapping) else alocacoes
    result: Dict[int, Decimal] = {}
    for par in pares:
        if isinstance(par, Mapping):
            chave, valor = par.get("gift_card_id"), par.get("valor")
        else:
            chave, valor = par
        card_id = chave.id if isinstance(chave, GiftCard) else chave
        try:
            card_id = int(card_id)
            valor = as_money(valor)
        except (TypeError, ValueError, ArithmeticError) as e:
            raise AllocationMismatch(f"Alocação inválida: {par!r}") from e
        if card_id in result:
            raise AllocationMismatch(f"Gift card {card_id} alocado mais de uma vez.", gift_card_id=card_id)
        result[card_id] = valor
    return result


# =============================================================================
# Operações
# =============================================================================

def _apply(transacao: Transacao, alocacoes: Optional[AlocacoesIn], user: Optional[User]) -> Transacao:
    transacao = _lock_transacao(transacao)
    if transacao.status != PENDING:
        raise InvalidStateTransition(
            f"Transação {transacao.id} está '{transacao.status}'; só transações pendentes podem ser concluídas.",
            status=transacao.status,
        )

    if alocacoes is None:
        alocacoes = [(a.gift_card_id, a.valor) for a in transacao.alocacoes]
    pedidas = _normalize_alocacoes(alocacoes)

    if not pedidas:
        raise AllocationMismatch("Transação sem gift cards.")
    limite = _max_cards()
    if len(pedidas) > limite:
        raise AllocationMismatch(f"Máximo de {limite} gift cards por transação.", quantidade=len(pedidas))
    for card_id, valor in pedidas.items():
        if valor <= ZERO:
            raise AllocationMismatch(f"Valor alocado ao gift card {card_id} deve ser positivo.", gift_card_id=card_id)

    total = as_money(transacao.valor)
    soma = sum(pedidas.values(), ZERO)
    if soma != total:
        raise AllocationMismatch(
            f"Alocações somam {soma} mas a transação é de {total}.",
            soma=soma, valor=total,
        )

    cards = _lock_cards(pedidas)
    faltando = sorted(set(pedidas) - set(cards))
    if faltando:
        raise AllocationMismatch(f"Gift card(s) inexistente(s): {faltando}", gift_card_ids=faltando)

    for card_id, valor in pedidas.items():
        card = cards[card_id]
        if valor > as_money(card.saldo_atual):
            current_app.logger.warning(
                "Saldo insuficiente no gift card %s: pedido %s, disponível %s", card_id, valor, card.saldo_atual
            )
            raise InsufficientBalance(
                f"Gift card {card.codigo} tem saldo {card.saldo_atual}; pedido {valor}.",
                gift_card_id=card_id, saldo=as_money(card.saldo_atual), pedido=valor,
            )

    agora = datetime.utcnow()
    existentes = {a.gift_card_id: a for a in transacao.alocacoes}
    for card_id, a in list(existentes.items()):
        if card_id not in pedidas:
            transacao.alocacoes.remove(a)

    for card_id, valor in pedidas.items():
        card = cards[card_id]
        card.saldo_atual = as_money(card.saldo_atual) - valor
        card.data_ultimo_uso = agora
        card.refresh_status()
        if card_id in existentes:
            existentes[card_id].valor = valor
        else:
            transacao.alocacoes.append(TransacaoGiftCard(gift_card_id=card_id, valor=valor))

    transacao.status = COMPLETED
    db.session.flush()

    desc = ", ".join(f"{cid}:{v}" for cid, v in pedidas.items())
    _audit("apply", f"transacao:{transacao.id}", f"valor={total} cartoes={desc}", user)
    current_app.logger.info("Transação %s concluída (valor=%s, cartões=%s)", transacao.id, total, desc)
    return transacao


def apply_transaction(transacao: Transacao, alocacoes: Optional[AlocacoesIn] = None,
                      user: Optional[User] = None) -> Transacao:
    """
    Debita cada cartão pelo valor alocado e marca a transação como concluída.

    `alocacoes` mapeia cartão (ou id) -> valor. Sem `alocacoes`, usa as já
    gravadas na transação pendente.

    Levanta AllocationMismatch se a soma difere de `transacao.valor`,
    InsufficientBalance se algum cartão não cobre sua parte e
    InvalidStateTransition se a transação não está pendente.
    """
    with ledger_transaction():
        return _apply(transacao, alocacoes, user)


def create_transaction(user: User, valor, alocacoes: AlocacoesIn, descricao: str = "",
                       concluir: bool = True, **extra: Any) -> Transacao:
    """Cria a transação (pendente) e, se `concluir`, aplica na mesma transação de banco."""
    valor = _amount(valor)
    if valor <= ZERO:
        raise InvalidAmount("Valor da transação deve ser positivo.", valor=valor)
    pedidas = _normalize_alocacoes(alocacoes)

    with ledger_transaction():
        transacao = Transacao(
            valor=valor,
            descricao=(descricao or "").strip()[:255],
            status=PENDING,
            user_id=user.id,
            ordem_interna=extra.get("ordem_interna"),
            ordem_compra=extra.get("ordem_compra"),
            comprovante=extra.get("comprovante"),
        )
        db.session.add(transacao)
        if concluir:
            _apply(transacao, pedidas, user)
        else:
            # pendente: só registra a intenção; a validação completa acontece ao concluir
            if len(pedidas) > _max_cards():
                raise AllocationMismatch(f"Máximo de {_max_cards()} gift cards por transação.")
            for card_id, v in pedidas.items():
                transacao.alocacoes.append(TransacaoGiftCard(gift_card_id=card_id, valor=v))
            db.session.flush()
            _audit("create", f"transacao:{transacao.id}", f"pendente valor={valor}", user)
        return transacao


def cancel_transaction(transacao: Transacao, motivo: Optional[str] = None,
                       user: Optional[User] = None) -> Transacao:
    """pending -> cancelled. Pendentes nunca debitaram saldo, então nada a devolver."""
    with ledger_transaction():
        transacao = _lock_transacao(transacao)
        if transacao.status != PENDING:
            raise InvalidStateTransition(
                f"Transação {transacao.id} está '{transacao.status}'; só transações pendentes podem ser canceladas.",
                status=transacao.status,
            )
        transacao.status = CANCELLED
        transacao.motivo_cancelamento = (motivo or "").strip()[:255] or None
        transacao.data_cancelamento = datetime.utcnow()
        _audit("cancel", f"transacao:{transacao.id}", motivo or "", user)
        current_app.logger.info("Transação %s cancelada", transacao.id)
        return transacao


def split_refund(alocacoes: List[TransacaoGiftCard], valor: Decimal) -> Dict[int, Decimal]:
    """
    Divide `valor` entre os cartões na proporção da alocação original.
    Arredonda para baixo no centavo e distribui a sobra começando pela maior
    alocação; nenhum cartão recebe mais do que ainda lhe foi debitado.
    """
    valor = as_money(valor)
    total = sum((as_money(a.valor) for a in alocacoes), ZERO)
    if total <= ZERO:
        return {}
    capacidade = {a.gift_card_id: as_money(a.valor) - as_money(a.valor_reembolsado) for a in alocacoes}

    partes: Dict[int, Decimal] = {}
    for a in alocacoes:
        parte = (valor * as_money(a.valor) / total).quantize(CENT, rounding=ROUND_DOWN)
        partes[a.gift_card_id] = min(parte, capacidade[a.gift_card_id])

    resto = valor - sum(partes.values(), ZERO)
    for a in sorted(alocacoes, key=lambda x: (-as_money(x.valor), x.gift_card_id)):
        if resto <= ZERO:
            break
        folga = capacidade[a.gift_card_id] - partes[a.gift_card_id]
        extra = min(folga, resto)
        partes[a.gift_card_id] += extra
        resto -= extra

    if resto > ZERO:
        raise RefundExceedsOriginal("Reembolso maior que o saldo reembolsável dos cartões.", sobra=resto)
    return partes


def refund_transaction(transacao: Transacao, valor, motivo: str,
                       user: Optional[User] = None) -> Transacao:
    """
    Reembolsa `valor` de uma transação concluída e devolve o saldo aos cartões.

    Cria um novo registro com status `refund` apontando para a original
    (`refund_de`). Reembolsos acumulados nunca passam do valor original; ao
    atingir o total a original vira `refunded`.
    """
    valor = _amount(valor)
    with ledger_transaction():
        transacao = _lock_transacao(transacao)
        if transacao.status != COMPLETED:
            raise InvalidStateTransition(
                f"Transação {transacao.id} está '{transacao.status}'; só transações concluídas podem ser reembolsadas.",
                status=transacao.status,
            )
        if valor <= ZERO:
            raise InvalidAmount("Valor do reembolso deve ser positivo.", valor=valor)
        original = as_money(transacao.valor)
        if valor > original:
            raise RefundExceedsOriginal(
                f"Reembolso de {valor} excede o valor original {original}.",
                valor=valor, original=original,
            )
        disponivel = transacao.saldo_reembolsavel
        if valor > disponivel:
            raise RefundExceedsOriginal(
                f"Reembolso de {valor} excede o saldo ainda reembolsável {disponivel}.",
                valor=valor, reembolsavel=disponivel,
            )

        partes = split_refund(transacao.alocacoes, valor)
        cards = _lock_cards(partes)
        por_card = {a.gift_card_id: a for a in transacao.alocacoes}

        refund = Transacao(
            valor=valor,
            descricao=f"REEMBOLSO: {motivo}"[:255],
            status=REFUND,
            user_id=user.id if user else transacao.user_id,
            refund_de=transacao.id,
            valor_refund=valor,
            motivo_refund=(motivo or "")[:255],
        )
        for card_id, parte in partes.items():
            if parte <= ZERO:
                continue
            card = cards[card_id]
            card.saldo_atual = as_money(card.saldo_atual) + parte
            card.refresh_status()
            por_card[card_id].valor_reembolsado = as_money(por_card[card_id].valor_reembolsado) + parte
            refund.alocacoes.append(TransacaoGiftCard(gift_card_id=card_id, valor=parte))

        transacao.valor_reembolsado = as_money(transacao.valor_reembolsado) + valor
        if transacao.valor_reembolsado >= original:
            transacao.status = REFUNDED

        db.session.add(refund)
        db.session.flush()
        _audit("refund", f"transacao:{transacao.id}", f"refund={refund.id} valor={valor} motivo={motivo}", user)
        current_app.logger.info(
            "Reembolso %s de %s na transação %s (%s)", refund.id, valor, transacao.id, transacao.refund_state
        )
        return refund


# =============================================================================
# Resumo por fornecedor
# =============================================================================

@dataclass
class LinhaResumo:
    fornecedor_id: int
    fornecedor: Optional[str]
    quantidade: int = 0
    disponivel: Decimal = ZERO
    media_desconto: Decimal = ZERO
    valor_medio: Decimal = ZERO
    maior_valor: Union[Decimal, str] = NA
    menor_valor: Union[Decimal, str] = NA

    def to_dict(self) -> dict:
        def _s(v):
            return v if isinstance(v, str) else str(v)
        return {
            "fornecedor_id": self.fornecedor_id,
            "fornecedor": self.fornecedor,
            "quantidade": self.quantidade,
            "disponivel": _s(self.disponivel),
            "media_desconto": _s(self.media_desconto),
            "valor_medio": _s(self.valor_medio),
            "maior_valor": _s(self.maior_valor),
            "menor_valor": _s(self.menor_valor),
        }


@dataclass
class ResumoFornecedores:
    linhas: List[LinhaResumo] = field(default_factory=list)
    total_quantidade: int = 0
    total_disponivel: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "linhas": [l.to_dict() for l in self.linhas],
            "total_quantidade": self.total_quantidade,
            "total_disponivel": str(self.total_disponivel),
        }


def compute_supplier_summary(cards: Iterable[Any], fornecedores: Optional[Iterable[Any]] = None) -> ResumoFornecedores:
    """
    Por fornecedor: quantidade, disponível (soma dos saldos), média de desconto,
    valor médio e maior/menor saldo entre os cartões com saldo > 0.

    Com `fornecedores`, todos aparecem (inclusive sem cartões) e cartões de
    fornecedores fora da lista são ignorados. Sem cartões com saldo, maior/menor
    ficam "N/A"; os demais campos ficam 0.
    """
    por_fornecedor: Dict[int, List[Any]] = {}
    nomes: Dict[int, Optional[str]] = {}
    if fornecedores is not None:
        for f in fornecedores:
            por_fornecedor.setdefault(f.id, [])
            nomes[f.id] = f.nome
    for c in cards:
        if fornecedores is not None and c.fornecedor_id not in por_fornecedor:
            continue
        por_fornecedor.setdefault(c.fornecedor_id, []).append(c)
        if c.fornecedor_id not in nomes:
            forn = getattr(c, "fornecedor", None)
            nomes[c.fornecedor_id] = getattr(forn, "nome", None)

    resumo = ResumoFornecedores()
    for fid, lista in por_fornecedor.items():
        linha = LinhaResumo(fornecedor_id=fid, fornecedor=nomes.get(fid))
        linha.quantidade = len(lista)
        if lista:
            linha.disponivel = sum((as_money(c.saldo_atual) for c in lista), ZERO)
            linha.valor_medio = as_money(linha.disponivel / len(lista))
            descontos = [Decimal(str(c.desconto)) for c in lista if c.desconto is not None]
            if descontos:
                linha.media_desconto = as_money(sum(descontos, Decimal(0)) / len(descontos))
            positivos = [as_money(c.saldo_atual) for c in lista if as_money(c.saldo_atual) > ZERO]
            if positivos:
                linha.maior_valor = max(positivos)
                linha.menor_valor = min(positivos)
        resumo.linhas.append(linha)
        resumo.total_quantidade += linha.quantidade
        resumo.total_disponivel += linha.disponivel

    resumo.linhas.sort(key=lambda l: (-l.disponivel, l.fornecedor or ""))
    return resumo

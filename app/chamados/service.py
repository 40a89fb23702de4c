import logging
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.core.dates import parse_date
from app.core.errors import ReferentialError, ValidationError
from app.db import models

logger = logging.getLogger("rollout.chamados")

ABERTO = "aberto"
RESOLVIDO = "resolvido"
TICKET_STATUSES = (ABERTO, RESOLVIDO)


def open_ticket(
    db: Session,
    codigo_loja: str,
    descricao: str,
    nome_instalador: Optional[str] = None,
    data_ocorrencia=None,
    fornecedor_id: Optional[str] = None,
) -> models.Ticket:
    codigo_loja = (codigo_loja or "").strip()
    descricao = (descricao or "").strip()
    if not codigo_loja:
        raise ValidationError("Codigo da loja obrigatorio", field="codigo_loja")
    if not descricao:
        raise ValidationError("Descricao obrigatoria", field="descricao")
    occurred_on = parse_date(data_ocorrencia, "data_ocorrencia") or date.today()

    store = db.query(models.Store).filter(models.Store.codigo_loja == codigo_loja).first()
    if not store:
        raise ReferentialError("Loja nao encontrada", keys=[codigo_loja])
    if fornecedor_id:
        supplier = db.query(models.Supplier).filter(models.Supplier.id == fornecedor_id).first()
        if not supplier:
            raise ReferentialError("Fornecedor nao encontrado", keys=[fornecedor_id])

    ticket = models.Ticket(
        codigo_loja=codigo_loja,
        fornecedor_id=fornecedor_id or None,
        descricao=descricao,
        nome_instalador=(nome_instalador or "").strip() or None,
        data_ocorrencia=occurred_on,
        status=ABERTO,
    )
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    logger.info("ticket opened id=%s loja=%s fornecedor=%s", ticket.id, codigo_loja, fornecedor_id)
    return ticket


def resolve_ticket(db: Session, ticket_id: str) -> Optional[models.Ticket]:
    ticket = db.query(models.Ticket).filter(models.Ticket.id == ticket_id).first()
    if not ticket:
        return None
    if ticket.status != RESOLVIDO:
        ticket.status = RESOLVIDO
        ticket.data_resolucao = datetime.utcnow()
        db.commit()
        db.refresh(ticket)
        logger.info("ticket resolved id=%s loja=%s", ticket.id, ticket.codigo_loja)
    return ticket


def list_tickets(
    db: Session,
    status: Optional[str] = None,
    codigo_loja: Optional[str] = None,
) -> list[models.Ticket]:
    query = db.query(models.Ticket)
    if status:
        if status not in TICKET_STATUSES:
            raise ValidationError("Status de chamado invalido", field="status")
        query = query.filter(models.Ticket.status == status)
    if codigo_loja:
        query = query.filter(models.Ticket.codigo_loja == codigo_loja)
    return query.order_by(models.Ticket.data_abertura.desc()).all()


def stores_with_open_tickets(db: Session, codigos: Optional[Iterable[str]] = None) -> set[str]:
    query = db.query(models.Ticket.codigo_loja).filter(models.Ticket.status == ABERTO)
    if codigos is not None:
        codigos = list(codigos)
        if not codigos:
            return set()
        query = query.filter(models.Ticket.codigo_loja.in_(codigos))
    return {codigo for (codigo,) in query.distinct().all()}

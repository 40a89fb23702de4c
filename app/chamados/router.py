import logging
from datetime import date
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.errors import http_error
from app.chamados import service
from app.core.security import get_current_admin
from app.db import models
from app.db.serializers import serialize_ticket
from app.db.session import get_db

logger = logging.getLogger("rollout.chamados")

router = APIRouter(tags=["Chamados"])


class TicketCreate(BaseModel):
    loja_id: str
    descricao: str
    nome_instalador: Optional[str] = None
    data_ocorrencia: Optional[Union[date, str]] = None
    fornecedor_id: Optional[str] = None


def _internal_error():
    logger.exception("Erro interno em chamados")
    return JSONResponse(status_code=500, content={"message": "Ocorreu um erro, tente novamente mais tarde"})


@router.post("/chamados", status_code=status.HTTP_201_CREATED)
def open_ticket(payload: TicketCreate, db: Session = Depends(get_db)):
    try:
        ticket = service.open_ticket(
            db,
            payload.loja_id,
            payload.descricao,
            nome_instalador=payload.nome_instalador,
            data_ocorrencia=payload.data_ocorrencia,
            fornecedor_id=payload.fornecedor_id,
        )
        return serialize_ticket(ticket)
    except HTTPException:
        raise
    except ValueError as exc:
        raise http_error(exc) from exc
    except Exception:
        return _internal_error()


@router.get("/chamados")
def list_tickets(
    status_chamado: Optional[str] = Query(default=None, alias="status"),
    loja_id: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
):
    try:
        tickets = service.list_tickets(db, status=status_chamado, codigo_loja=loja_id)
        return {"items": [serialize_ticket(ticket) for ticket in tickets]}
    except ValueError as exc:
        raise http_error(exc) from exc
    except Exception:
        return _internal_error()


@router.patch("/chamados/{ticket_id}/resolver")
def resolve_ticket(
    ticket_id: str,
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    try:
        ticket = service.resolve_ticket(db, ticket_id)
        if not ticket:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chamado nao encontrado")
        return serialize_ticket(ticket)
    except HTTPException:
        raise
    except Exception:
        return _internal_error()

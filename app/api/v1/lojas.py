import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.security import get_current_admin
from app.db import models
from app.db.serializers import serialize_store
from app.db.session import get_db
from app.instalacoes import service as instalacoes

logger = logging.getLogger("rollout")

router = APIRouter(tags=["Lojas"])


class StorePayload(BaseModel):
    codigo_loja: str
    nome_loja: str
    nome_operador: Optional[str] = None
    logradouro: Optional[str] = None
    numero: Optional[str] = None
    complemento: Optional[str] = None
    bairro: Optional[str] = None
    cidade: Optional[str] = None
    uf: Optional[str] = None
    cep: Optional[str] = None
    regiao: Optional[str] = None
    telefone_loja: Optional[str] = None


@router.get("/lojas")
def list_stores(
    q: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
):
    query = db.query(models.Store)
    if q and q.strip():
        pattern = f"%{q.strip()}%"
        query = query.filter(
            or_(
                models.Store.codigo_loja.ilike(pattern),
                models.Store.nome_loja.ilike(pattern),
                models.Store.cidade.ilike(pattern),
            )
        )
    items = query.order_by(models.Store.codigo_loja.asc()).all()
    return {"items": [serialize_store(item) for item in items]}


@router.post("/lojas", status_code=status.HTTP_201_CREATED)
def create_store(
    payload: StorePayload,
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    codigo = payload.codigo_loja.strip()
    if not codigo or not payload.nome_loja.strip():
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Codigo e nome da loja obrigatorios")
    if db.query(models.Store).filter(models.Store.codigo_loja == codigo).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Codigo de loja ja cadastrado")
    store = models.Store(**{**payload.model_dump(), "codigo_loja": codigo})
    db.add(store)
    db.commit()
    db.refresh(store)
    logger.info("store created codigo=%s admin=%s", store.codigo_loja, admin.id)
    return serialize_store(store)


@router.get("/lojas/{codigo_loja}")
def get_store(codigo_loja: str, db: Session = Depends(get_db)):
    store = db.query(models.Store).filter(models.Store.codigo_loja == codigo_loja).first()
    if not store:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Loja nao encontrada")
    return serialize_store(store)


@router.get("/lojas/{codigo_loja}/installation-status")
def store_installation_status(codigo_loja: str, db: Session = Depends(get_db)):
    return instalacoes.get_installation_status(db, codigo_loja)


@router.get("/lojas/{codigo_loja}/complete-info")
def store_complete_info(codigo_loja: str, db: Session = Depends(get_db)):
    info = instalacoes.get_store_complete_info(db, codigo_loja)
    if not info:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Loja nao encontrada")
    return info

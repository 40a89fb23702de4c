from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.security import get_current_admin
from app.db import models
from app.db.serializers import serialize_kit
from app.db.session import get_db

router = APIRouter(tags=["Kits"])


class KitPayload(BaseModel):
    nome_peca: str
    descricao: Optional[str] = None
    image_url: Optional[str] = None
    ordem: Optional[int] = Field(default=None, ge=0)


@router.get("/kits")
def list_kits(db: Session = Depends(get_db)):
    items = db.query(models.Kit).order_by(models.Kit.ordem.asc(), models.Kit.created_at.asc()).all()
    return {"items": [serialize_kit(item) for item in items]}


@router.post("/kits", status_code=status.HTTP_201_CREATED)
def create_kit(
    payload: KitPayload,
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    nome = payload.nome_peca.strip()
    if not nome:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Nome da peca obrigatorio")
    ordem = payload.ordem
    if ordem is None:
        ordem = (db.query(func.max(models.Kit.ordem)).scalar() or 0) + 1
    kit = models.Kit(nome_peca=nome, descricao=payload.descricao, image_url=payload.image_url, ordem=ordem)
    db.add(kit)
    db.commit()
    db.refresh(kit)
    return serialize_kit(kit)

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.security import get_current_admin
from app.db import models
from app.db.serializers import serialize_employee, serialize_supplier
from app.db.session import get_db
from app.rotas.service import EMPLOYEE, SUPPLIER

logger = logging.getLogger("rollout")

router = APIRouter(tags=["Fornecedores"])

SEARCH_LIMIT = 20


class SupplierPayload(BaseModel):
    nome_fornecedor: str
    cnpj: Optional[str] = None
    cpf: Optional[str] = None
    nome_responsavel: Optional[str] = None
    telefone: Optional[str] = None
    email: Optional[str] = None
    endereco: Optional[str] = None
    estado: Optional[str] = None
    valor_orcamento: Optional[float] = Field(default=None, ge=0)


class EmployeePayload(BaseModel):
    nome_funcionario: str
    cpf: Optional[str] = None
    telefone: Optional[str] = None


def _get_supplier_or_404(db: Session, fornecedor_id: str) -> models.Supplier:
    supplier = db.query(models.Supplier).filter(models.Supplier.id == fornecedor_id).first()
    if not supplier:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Fornecedor nao encontrado")
    return supplier


@router.get("/fornecedores")
def list_suppliers(
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    items = db.query(models.Supplier).order_by(models.Supplier.nome_fornecedor.asc()).all()
    return {"items": [serialize_supplier(item) for item in items]}


@router.post("/fornecedores", status_code=status.HTTP_201_CREATED)
def create_supplier(
    payload: SupplierPayload,
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    nome = payload.nome_fornecedor.strip()
    if not nome:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Nome do fornecedor obrigatorio")
    cnpj = (payload.cnpj or "").strip() or None
    if cnpj and db.query(models.Supplier).filter(models.Supplier.cnpj == cnpj).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="CNPJ ja cadastrado")
    supplier = models.Supplier(**{**payload.model_dump(), "nome_fornecedor": nome, "cnpj": cnpj})
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    logger.info("supplier created id=%s admin=%s", supplier.id, admin.id)
    return serialize_supplier(supplier)


@router.get("/fornecedores/search")
def search_actors(q: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    """Field login lookup: suppliers and employees whose name or document matches."""
    term = q.strip()
    if not term:
        return {"items": []}
    pattern = f"%{term}%"
    suppliers = (
        db.query(models.Supplier)
        .filter(
            or_(
                models.Supplier.nome_fornecedor.ilike(pattern),
                models.Supplier.cnpj == term,
                models.Supplier.cpf == term,
            )
        )
        .order_by(models.Supplier.nome_fornecedor.asc())
        .limit(SEARCH_LIMIT)
        .all()
    )
    employees = (
        db.query(models.SupplierEmployee)
        .filter(
            or_(
                models.SupplierEmployee.nome_funcionario.ilike(pattern),
                models.SupplierEmployee.cpf == term,
            )
        )
        .order_by(models.SupplierEmployee.nome_funcionario.asc())
        .limit(SEARCH_LIMIT)
        .all()
    )
    items = [{"type": SUPPLIER, "data": serialize_supplier(item)} for item in suppliers]
    items.extend({"type": EMPLOYEE, "data": serialize_employee(item)} for item in employees)
    return {"items": items}


@router.get("/fornecedores/{fornecedor_id}/funcionarios")
def list_employees(
    fornecedor_id: str,
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    supplier = _get_supplier_or_404(db, fornecedor_id)
    items = (
        db.query(models.SupplierEmployee)
        .filter(models.SupplierEmployee.fornecedor_id == supplier.id)
        .order_by(models.SupplierEmployee.nome_funcionario.asc())
        .all()
    )
    return {"items": [serialize_employee(item) for item in items]}


@router.post("/fornecedores/{fornecedor_id}/funcionarios", status_code=status.HTTP_201_CREATED)
def create_employee(
    fornecedor_id: str,
    payload: EmployeePayload,
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    supplier = _get_supplier_or_404(db, fornecedor_id)
    nome = payload.nome_funcionario.strip()
    if not nome:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Nome do funcionario obrigatorio")
    employee = models.SupplierEmployee(
        fornecedor_id=supplier.id,
        nome_funcionario=nome,
        cpf=(payload.cpf or "").strip() or None,
        telefone=payload.telefone,
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    logger.info("employee created id=%s fornecedor=%s", employee.id, supplier.id)
    return serialize_employee(employee)

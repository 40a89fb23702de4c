from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.security import create_access_token, verify_password
from app.db import models
from app.db.session import get_db

router = APIRouter(tags=["Auth"])


class LoginRequest(BaseModel):
    email: str
    senha: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str
    nome: str


def _authenticate(db: Session, email: str, password: str) -> models.Admin:
    normalized = (email or "").strip().lower()
    admin = db.query(models.Admin).filter(func.lower(models.Admin.email) == normalized).first()
    if not admin or not verify_password(password, admin.senha_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Email ou senha invalidos")
    if admin.status != "active":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Administrador inativo")
    return admin


def _issue(admin: models.Admin) -> dict:
    token = create_access_token({"sub": admin.id, "role": "admin"})
    return {"access_token": token, "token_type": "bearer", "nome": admin.nome}


@router.post("/auth/login", response_model=LoginResponse, summary="Login JSON (painel admin)")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    """
    Uso tipico via painel administrativo:
    - POST /api/auth/login
    - body: {"email": "...", "senha": "..."}
    """
    return _issue(_authenticate(db, payload.email, payload.senha))


@router.post(
    "/auth/token",
    response_model=LoginResponse,
    summary="Login para Swagger (OAuth2PasswordBearer)",
)
def login_swagger(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """
    Uso via Swagger UI (botao Authorize):
    - tokenUrl aponta para este endpoint.
    - Campos esperados: username (email) / password.
    """
    return _issue(_authenticate(db, form_data.username, form_data.password))

from datetime import date
from typing import Optional, Union

from pydantic import BaseModel, Field


class RouteCreate(BaseModel):
    nome: str
    fornecedor_id: str
    status: str = "ativa"
    observacoes: Optional[str] = None
    data_prevista: Optional[Union[date, str]] = None
    lojas: list[str] = Field(default_factory=list)
    funcionarios: list[str] = Field(default_factory=list)


class RouteUpdate(BaseModel):
    nome: Optional[str] = None
    observacoes: Optional[str] = None
    data_prevista: Optional[Union[date, str]] = None
    data_execucao: Optional[Union[date, str]] = None
    status: Optional[str] = None


class RouteStoresPayload(BaseModel):
    lojas: list[str]


class RouteStoreAppend(BaseModel):
    loja_id: str
    data_prevista: Optional[Union[date, str]] = None
    observacoes: Optional[str] = None
    tempo_estimado: Optional[int] = Field(default=None, ge=0)


class RouteEmployeesPayload(BaseModel):
    funcionarios: list[str]


class RouteStatusPayload(BaseModel):
    status: str


class RouteItemUpdate(BaseModel):
    status: Optional[str] = None
    data_prevista: Optional[Union[date, str]] = None
    data_execucao: Optional[Union[date, str]] = None
    observacoes: Optional[str] = None
    tempo_estimado: Optional[int] = Field(default=None, ge=0)

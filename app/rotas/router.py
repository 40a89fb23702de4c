import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.errors import http_error
from app.core.security import get_current_admin
from app.db import models
from app.db.serializers import serialize_route, serialize_route_item
from app.db.session import get_db
from app.rotas import service
from app.rotas.schemas import (
    RouteCreate,
    RouteEmployeesPayload,
    RouteItemUpdate,
    RouteStatusPayload,
    RouteStoreAppend,
    RouteStoresPayload,
    RouteUpdate,
)

logger = logging.getLogger("rollout.rotas")

router = APIRouter(tags=["Rotas"])


def _internal_error():
    logger.exception("Erro interno em rotas")
    return JSONResponse(status_code=500, content={"message": "Ocorreu um erro, tente novamente mais tarde"})


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rota nao encontrada")


def _route_payload(db: Session, route: models.Route) -> dict:
    return {
        **serialize_route(route),
        "itens": [serialize_route_item(item) for item in service.ordered_items(db, route.id)],
        "funcionarios": [link.funcionario_id for link in route.funcionarios],
    }


@router.get("/rotas")
def list_routes(
    fornecedor_id: Optional[str] = Query(default=None),
    status_rota: Optional[str] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
):
    try:
        return {"items": service.list_routes(db, fornecedor_id, status_rota)}
    except Exception:
        return _internal_error()


@router.get("/rotas/estatisticas")
def route_stats(db: Session = Depends(get_db)):
    try:
        return service.get_route_stats(db)
    except Exception:
        return _internal_error()


@router.get("/rotas/fornecedor/{fornecedor_id}")
def routes_for_supplier(fornecedor_id: str, db: Session = Depends(get_db)):
    try:
        routes = service.resolve_routes_for_actor(db, fornecedor_id, service.SUPPLIER)
        if routes is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Fornecedor nao encontrado")
        return {"items": routes}
    except HTTPException:
        raise
    except Exception:
        return _internal_error()


@router.get("/rotas/funcionario/{funcionario_id}")
def routes_for_employee(funcionario_id: str, db: Session = Depends(get_db)):
    try:
        routes = service.resolve_routes_for_actor(db, funcionario_id, service.EMPLOYEE)
        if routes is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Funcionario nao encontrado")
        return {"items": routes}
    except HTTPException:
        raise
    except Exception:
        return _internal_error()


@router.post("/rotas", status_code=status.HTTP_201_CREATED)
def create_route(
    payload: RouteCreate,
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    try:
        route = service.create_route(
            db,
            nome=payload.nome,
            fornecedor_id=payload.fornecedor_id,
            status=payload.status,
            observacoes=payload.observacoes,
            data_prevista=payload.data_prevista,
            created_by=admin.id,
            loja_codigos=payload.lojas,
            funcionario_ids=payload.funcionarios,
        )
        return _route_payload(db, route)
    except HTTPException:
        raise
    except ValueError as exc:
        raise http_error(exc) from exc
    except Exception:
        return _internal_error()


@router.get("/rotas/{route_id}")
def get_route(route_id: str, db: Session = Depends(get_db)):
    try:
        details = service.get_route_details(db, route_id)
        if not details:
            raise _not_found()
        return details
    except HTTPException:
        raise
    except Exception:
        return _internal_error()


@router.put("/rotas/{route_id}")
def update_route(
    route_id: str,
    payload: RouteUpdate,
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    try:
        route = service.update_route(db, route_id, **payload.model_dump(exclude_unset=True))
        if not route:
            raise _not_found()
        return _route_payload(db, route)
    except HTTPException:
        raise
    except ValueError as exc:
        raise http_error(exc) from exc
    except Exception:
        return _internal_error()


@router.delete("/rotas/{route_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_route(
    route_id: str,
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    try:
        if not service.delete_route(db, route_id):
            raise _not_found()
        return None
    except HTTPException:
        raise
    except Exception:
        return _internal_error()


@router.get("/rotas/{route_id}/lojas")
def get_route_stores(route_id: str, db: Session = Depends(get_db)):
    try:
        rows = service.get_route_items(db, route_id)
        if rows is None:
            raise _not_found()
        return {"items": rows}
    except HTTPException:
        raise
    except Exception:
        return _internal_error()


@router.put("/rotas/{route_id}/lojas")
def replace_route_stores(
    route_id: str,
    payload: RouteStoresPayload,
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    try:
        items = service.set_route_stores(db, route_id, payload.lojas)
        if items is None:
            raise _not_found()
        return {"items": [serialize_route_item(item) for item in items]}
    except HTTPException:
        raise
    except ValueError as exc:
        raise http_error(exc) from exc
    except Exception:
        return _internal_error()


@router.post("/rotas/{route_id}/lojas", status_code=status.HTTP_201_CREATED)
def append_route_store(
    route_id: str,
    payload: RouteStoreAppend,
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    try:
        item = service.add_route_store(
            db,
            route_id,
            payload.loja_id,
            data_prevista=payload.data_prevista,
            observacoes=payload.observacoes,
            tempo_estimado=payload.tempo_estimado,
        )
        if item is None:
            raise _not_found()
        return serialize_route_item(item)
    except HTTPException:
        raise
    except ValueError as exc:
        raise http_error(exc) from exc
    except Exception:
        return _internal_error()


@router.put("/rotas/{route_id}/funcionarios")
def replace_route_employees(
    route_id: str,
    payload: RouteEmployeesPayload,
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    try:
        links = service.set_route_employees(db, route_id, payload.funcionarios)
        if links is None:
            raise _not_found()
        return {"funcionarios": [link.funcionario_id for link in links]}
    except HTTPException:
        raise
    except ValueError as exc:
        raise http_error(exc) from exc
    except Exception:
        return _internal_error()


@router.patch("/rotas/{route_id}/status")
def change_route_status(
    route_id: str,
    payload: RouteStatusPayload,
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    try:
        route = service.change_route_status(db, route_id, payload.status)
        if not route:
            raise _not_found()
        return serialize_route(route)
    except HTTPException:
        raise
    except ValueError as exc:
        raise http_error(exc) from exc
    except Exception:
        return _internal_error()


@router.post("/rotas/{route_id}/finalizar")
def finish_route(
    route_id: str,
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    try:
        route = service.finish_route(db, route_id)
        if not route:
            raise _not_found()
        return serialize_route(route)
    except HTTPException:
        raise
    except ValueError as exc:
        raise http_error(exc) from exc
    except Exception:
        return _internal_error()


@router.patch("/rotas/itens/{item_id}")
def update_route_item(
    item_id: str,
    payload: RouteItemUpdate,
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    try:
        item = service.update_route_item(db, item_id, **payload.model_dump(exclude_unset=True))
        if not item:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item de rota nao encontrado")
        return serialize_route_item(item)
    except HTTPException:
        raise
    except ValueError as exc:
        raise http_error(exc) from exc
    except Exception:
        return _internal_error()

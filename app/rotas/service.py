"""Route lifecycle: route status, store membership and visit order, employee
binding, and the read models built on top of them.

Stored RouteItem.status drives the field workflow. The display status shown on
dashboards is derived at read time from tickets and installations and is never
written back.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.chamados.service import stores_with_open_tickets
from app.core.dates import parse_date
from app.core.errors import (
    InvalidTransitionError,
    PersistenceError,
    ReferentialError,
    RouteLockedError,
    ValidationError,
)
from app.db import models
from app.db.serializers import serialize_route, serialize_route_item, serialize_store

logger = logging.getLogger("rollout.rotas")

ATIVA = "ativa"
INATIVA = "inativa"
CONCLUIDA = "concluida"
FINALIZADA = "finalizada"
ROUTE_STATUSES = (ATIVA, INATIVA, CONCLUIDA, FINALIZADA)
CREATABLE_STATUSES = (ATIVA, INATIVA)
LOCKED_STATUSES = (CONCLUIDA, FINALIZADA)

ROUTE_TRANSITIONS = {
    ATIVA: {INATIVA, FINALIZADA, CONCLUIDA},
    INATIVA: {ATIVA, CONCLUIDA},
    CONCLUIDA: set(),
    FINALIZADA: set(),
}

PENDENTE = "pendente"
EM_PROGRESSO = "em_progresso"
CONCLUIDO = "concluido"
ITEM_STATUSES = (PENDENTE, EM_PROGRESSO, CONCLUIDO)

ITEM_TRANSITIONS = {
    PENDENTE: {EM_PROGRESSO, CONCLUIDO},
    EM_PROGRESSO: {CONCLUIDO},
    CONCLUIDO: set(),
}

DISPLAY_CHAMADO_ABERTO = "chamado_aberto"
DISPLAY_FINALIZADA = "finalizada"
DISPLAY_PENDENTE = "pendente"

SUPPLIER = "supplier"
EMPLOYEE = "employee"


def derive_display_status(tem_chamado_aberto: bool, instalacao_finalizada: bool) -> str:
    if tem_chamado_aberto:
        return DISPLAY_CHAMADO_ABERTO
    if instalacao_finalizada:
        return DISPLAY_FINALIZADA
    return DISPLAY_PENDENTE


def get_route(db: Session, route_id: str) -> Optional[models.Route]:
    return db.query(models.Route).filter(models.Route.id == route_id).first()


def _ensure_editable(route: models.Route) -> None:
    if route.status in LOCKED_STATUSES:
        raise RouteLockedError(
            f"Rota com status '{route.status}' nao aceita alteracoes de lojas ou funcionarios",
            rota_id=route.id,
            status=route.status,
        )


def _normalize_codes(values: Iterable[str], field: str) -> list[str]:
    normalized: list[str] = []
    for value in values or []:
        code = str(value or "").strip()
        if not code:
            raise ValidationError("Identificador vazio na lista", field=field)
        normalized.append(code)
    seen: set[str] = set()
    duplicated: set[str] = set()
    for code in normalized:
        if code in seen:
            duplicated.add(code)
        seen.add(code)
    if duplicated:
        raise ValidationError("Itens duplicados na lista", field=field, duplicados=sorted(duplicated))
    return normalized


def _validate_store_codes(db: Session, loja_codigos: Iterable[str]) -> list[str]:
    codigos = _normalize_codes(loja_codigos, "lojas")
    if not codigos:
        return codigos
    found = {
        codigo
        for (codigo,) in db.query(models.Store.codigo_loja).filter(models.Store.codigo_loja.in_(codigos)).all()
    }
    missing = [codigo for codigo in codigos if codigo not in found]
    if missing:
        raise ReferentialError("Lojas nao encontradas", keys=missing)
    return codigos


def _validate_employees(db: Session, fornecedor_id: str, funcionario_ids: Iterable[str]) -> list[str]:
    ids = _normalize_codes(funcionario_ids, "funcionarios")
    if not ids:
        return ids
    employees = db.query(models.SupplierEmployee).filter(models.SupplierEmployee.id.in_(ids)).all()
    by_id = {employee.id: employee for employee in employees}
    missing = [employee_id for employee_id in ids if employee_id not in by_id]
    if missing:
        raise ReferentialError("Funcionarios nao encontrados", keys=missing)
    foreign = [employee_id for employee_id in ids if by_id[employee_id].fornecedor_id != fornecedor_id]
    if foreign:
        raise ReferentialError("Funcionarios pertencem a outro fornecedor", keys=foreign)
    return ids


def _insert_items(db: Session, route_id: str, codigos: list[str]) -> None:
    for ordem, codigo in enumerate(codigos, start=1):
        db.add(
            models.RouteItem(
                rota_id=route_id,
                codigo_loja=codigo,
                ordem_visita=ordem,
                status=PENDENTE,
            )
        )


def _insert_employees(db: Session, route_id: str, funcionario_ids: list[str]) -> None:
    for funcionario_id in funcionario_ids:
        db.add(models.RouteEmployee(rota_id=route_id, funcionario_id=funcionario_id))


def _fail_atomic(db: Session, action: str, route_id: Optional[str]) -> PersistenceError:
    db.rollback()
    logger.exception("route %s failed rota=%s", action, route_id)
    return PersistenceError(f"Falha ao gravar {action} da rota")


def create_route(
    db: Session,
    nome: str,
    fornecedor_id: str,
    status: str = ATIVA,
    observacoes: Optional[str] = None,
    data_prevista=None,
    created_by: Optional[str] = None,
    loja_codigos: Optional[Iterable[str]] = None,
    funcionario_ids: Optional[Iterable[str]] = None,
) -> models.Route:
    nome = (nome or "").strip()
    if not nome:
        raise ValidationError("Nome da rota obrigatorio", field="nome")
    status = status or ATIVA
    if status not in CREATABLE_STATUSES:
        raise ValidationError("Status inicial da rota invalido", field="status", permitidos=list(CREATABLE_STATUSES))
    planned = parse_date(data_prevista, "data_prevista")
    supplier = db.query(models.Supplier).filter(models.Supplier.id == fornecedor_id).first()
    if not supplier:
        raise ReferentialError("Fornecedor nao encontrado", keys=[fornecedor_id])
    codigos = _validate_store_codes(db, loja_codigos or [])
    employee_ids = _validate_employees(db, supplier.id, funcionario_ids or [])

    route = models.Route(
        nome=nome,
        fornecedor_id=supplier.id,
        status=status,
        observacoes=observacoes,
        data_prevista=planned,
        created_by=created_by,
    )
    try:
        db.add(route)
        db.flush()
        _insert_items(db, route.id, codigos)
        _insert_employees(db, route.id, employee_ids)
        db.commit()
    except Exception as exc:
        raise _fail_atomic(db, "criacao", None) from exc
    db.refresh(route)
    logger.info(
        "route created id=%s fornecedor=%s lojas=%s funcionarios=%s",
        route.id,
        supplier.id,
        len(codigos),
        len(employee_ids),
    )
    return route


def set_route_stores(db: Session, route_id: str, loja_codigos: Iterable[str]) -> Optional[list[models.RouteItem]]:
    """Replace the whole store list of a route; visit order follows the list order."""
    route = get_route(db, route_id)
    if not route:
        return None
    _ensure_editable(route)
    codigos = _validate_store_codes(db, loja_codigos)
    try:
        db.query(models.RouteItem).filter(models.RouteItem.rota_id == route.id).delete(synchronize_session=False)
        _insert_items(db, route.id, codigos)
        db.commit()
    except Exception as exc:
        raise _fail_atomic(db, "lojas", route.id) from exc
    logger.info("route stores replaced rota=%s lojas=%s", route.id, len(codigos))
    return ordered_items(db, route.id)


def add_route_store(
    db: Session,
    route_id: str,
    codigo_loja: str,
    data_prevista=None,
    observacoes: Optional[str] = None,
    tempo_estimado: Optional[int] = None,
) -> Optional[models.RouteItem]:
    route = get_route(db, route_id)
    if not route:
        return None
    _ensure_editable(route)
    (codigo,) = _validate_store_codes(db, [codigo_loja])
    already = (
        db.query(models.RouteItem)
        .filter(models.RouteItem.rota_id == route.id, models.RouteItem.codigo_loja == codigo)
        .first()
    )
    if already:
        raise ValidationError("Loja ja faz parte da rota", field="loja_id", duplicados=[codigo])
    current_max = (
        db.query(func.max(models.RouteItem.ordem_visita)).filter(models.RouteItem.rota_id == route.id).scalar()
    )
    item = models.RouteItem(
        rota_id=route.id,
        codigo_loja=codigo,
        ordem_visita=(current_max or 0) + 1,
        status=PENDENTE,
        data_prevista=parse_date(data_prevista, "data_prevista"),
        observacoes=observacoes,
        tempo_estimado=tempo_estimado,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info("route store appended rota=%s loja=%s ordem=%s", route.id, codigo, item.ordem_visita)
    return item


def set_route_employees(
    db: Session, route_id: str, funcionario_ids: Iterable[str]
) -> Optional[list[models.RouteEmployee]]:
    route = get_route(db, route_id)
    if not route:
        return None
    _ensure_editable(route)
    employee_ids = _validate_employees(db, route.fornecedor_id, funcionario_ids)
    try:
        db.query(models.RouteEmployee).filter(models.RouteEmployee.rota_id == route.id).delete(
            synchronize_session=False
        )
        _insert_employees(db, route.id, employee_ids)
        db.commit()
    except Exception as exc:
        raise _fail_atomic(db, "funcionarios", route.id) from exc
    logger.info("route employees replaced rota=%s funcionarios=%s", route.id, len(employee_ids))
    return db.query(models.RouteEmployee).filter(models.RouteEmployee.rota_id == route.id).all()


def _apply_status(route: models.Route, new_status: str) -> bool:
    if new_status not in ROUTE_STATUSES:
        raise ValidationError("Status de rota invalido", field="status", permitidos=list(ROUTE_STATUSES))
    if new_status == route.status:
        return False
    if new_status not in ROUTE_TRANSITIONS[route.status]:
        raise InvalidTransitionError(
            f"Transicao de '{route.status}' para '{new_status}' nao permitida",
            rota_id=route.id,
            de=route.status,
            para=new_status,
        )
    route.status = new_status
    if new_status == FINALIZADA and route.data_execucao is None:
        route.data_execucao = date.today()
    return True


def change_route_status(db: Session, route_id: str, new_status: str) -> Optional[models.Route]:
    route = get_route(db, route_id)
    if not route:
        return None
    previous = route.status
    if _apply_status(route, new_status):
        db.commit()
        db.refresh(route)
        logger.info("route status changed rota=%s de=%s para=%s", route.id, previous, route.status)
    return route


def finish_route(db: Session, route_id: str) -> Optional[models.Route]:
    """Close a route for good. Item statuses are left exactly as they are."""
    route = get_route(db, route_id)
    if not route:
        return None
    if route.status == FINALIZADA:
        return route
    if route.status != ATIVA:
        raise InvalidTransitionError(
            "Somente rotas ativas podem ser finalizadas",
            rota_id=route.id,
            de=route.status,
            para=FINALIZADA,
        )
    return change_route_status(db, route_id, FINALIZADA)


def update_route(
    db: Session,
    route_id: str,
    nome: Optional[str] = None,
    observacoes: Optional[str] = None,
    data_prevista=None,
    data_execucao=None,
    status: Optional[str] = None,
) -> Optional[models.Route]:
    route = get_route(db, route_id)
    if not route:
        return None
    if nome is not None:
        nome = nome.strip()
        if not nome:
            raise ValidationError("Nome da rota obrigatorio", field="nome")
        route.nome = nome
    if observacoes is not None:
        route.observacoes = observacoes
    if data_prevista is not None:
        route.data_prevista = parse_date(data_prevista, "data_prevista")
    if data_execucao is not None:
        route.data_execucao = parse_date(data_execucao, "data_execucao")
    if status:
        _apply_status(route, status)
    db.commit()
    db.refresh(route)
    return route


def update_route_item(
    db: Session,
    item_id: str,
    status: Optional[str] = None,
    data_prevista=None,
    data_execucao=None,
    observacoes: Optional[str] = None,
    tempo_estimado: Optional[int] = None,
) -> Optional[models.RouteItem]:
    item = db.query(models.RouteItem).filter(models.RouteItem.id == item_id).first()
    if not item:
        return None
    _ensure_editable(item.rota)
    if status and status != item.status:
        if status not in ITEM_STATUSES:
            raise ValidationError("Status de item invalido", field="status", permitidos=list(ITEM_STATUSES))
        if status not in ITEM_TRANSITIONS[item.status]:
            raise InvalidTransitionError(
                f"Transicao de '{item.status}' para '{status}' nao permitida",
                item_id=item.id,
                de=item.status,
                para=status,
            )
        item.status = status
    if data_prevista is not None:
        item.data_prevista = parse_date(data_prevista, "data_prevista")
    if data_execucao is not None:
        item.data_execucao = parse_date(data_execucao, "data_execucao")
    if item.status == CONCLUIDO and item.data_execucao is None:
        item.data_execucao = date.today()
    if observacoes is not None:
        item.observacoes = observacoes
    if tempo_estimado is not None:
        item.tempo_estimado = tempo_estimado
    db.commit()
    db.refresh(item)
    logger.info("route item updated id=%s rota=%s status=%s", item.id, item.rota_id, item.status)
    return item


def delete_route(db: Session, route_id: str) -> bool:
    route = get_route(db, route_id)
    if not route:
        return False
    try:
        db.delete(route)
        db.commit()
    except Exception as exc:
        raise _fail_atomic(db, "exclusao", route_id) from exc
    logger.info("route deleted id=%s", route_id)
    return True


def ordered_items(db: Session, route_id: str) -> list[models.RouteItem]:
    return (
        db.query(models.RouteItem)
        .filter(models.RouteItem.rota_id == route_id)
        .order_by(models.RouteItem.ordem_visita.asc())
        .all()
    )


def list_routes(
    db: Session,
    fornecedor_id: Optional[str] = None,
    status: Optional[str] = None,
) -> list[dict]:
    query = db.query(models.Route)
    if fornecedor_id:
        query = query.filter(models.Route.fornecedor_id == fornecedor_id)
    if status:
        query = query.filter(models.Route.status == status)
    routes = query.order_by(models.Route.data_criacao.desc()).all()
    counts = dict(
        db.query(models.RouteItem.rota_id, func.count(models.RouteItem.id))
        .group_by(models.RouteItem.rota_id)
        .all()
    )
    return [{**serialize_route(route), "total_lojas": counts.get(route.id, 0)} for route in routes]


def _store_rows(db: Session, items: list[models.RouteItem]) -> list[dict]:
    codigos = [item.codigo_loja for item in items]
    stores = {
        store.codigo_loja: store
        for store in db.query(models.Store).filter(models.Store.codigo_loja.in_(codigos)).all()
    }
    installations = {
        inst.codigo_loja: inst
        for inst in db.query(models.Installation).filter(models.Installation.codigo_loja.in_(codigos)).all()
    }
    blocked = stores_with_open_tickets(db, codigos)
    last_ticket = dict(
        db.query(models.Ticket.codigo_loja, func.max(models.Ticket.data_abertura))
        .filter(models.Ticket.codigo_loja.in_(codigos))
        .group_by(models.Ticket.codigo_loja)
        .all()
    )
    rows = []
    for item in items:
        installation = installations.get(item.codigo_loja)
        finalizada = bool(installation and installation.finalizada)
        tem_chamado = item.codigo_loja in blocked
        ultimo = last_ticket.get(item.codigo_loja)
        row = {
            **(serialize_store(stores.get(item.codigo_loja)) or {"codigo_loja": item.codigo_loja}),
            **serialize_route_item(item),
            "status_item": item.status,
            "status": derive_display_status(tem_chamado, finalizada),
            "instalacao_finalizada": finalizada,
            "tem_chamado_aberto": tem_chamado,
            "data_instalacao": installation.data_instalacao.isoformat() if installation else None,
            "ultimo_chamado": ultimo.isoformat() if ultimo else None,
        }
        rows.append(row)
    return rows


def get_route_items(db: Session, route_id: str) -> Optional[list[dict]]:
    route = get_route(db, route_id)
    if not route:
        return None
    return _store_rows(db, ordered_items(db, route.id))


def get_route_details(db: Session, route_id: str) -> Optional[dict]:
    route = get_route(db, route_id)
    if not route:
        return None
    lojas = _store_rows(db, ordered_items(db, route.id))
    codigos = [row["loja_id"] for row in lojas]
    funcionarios = [
        link.funcionario.nome_funcionario
        for link in route.funcionarios
        if link.funcionario is not None
    ]
    instaladores: set[str] = set()
    if codigos:
        instaladores.update(
            name
            for (name,) in db.query(models.Installation.responsavel)
            .filter(models.Installation.codigo_loja.in_(codigos))
            .all()
            if name
        )
        instaladores.update(
            name
            for (name,) in db.query(models.Ticket.nome_instalador)
            .filter(models.Ticket.codigo_loja.in_(codigos))
            .all()
            if name
        )
    supplier = route.fornecedor
    resumo = defaultdict(int)
    for row in lojas:
        resumo[row["status"]] += 1
    return {
        **serialize_route(route),
        "fornecedor_nome": supplier.nome_fornecedor if supplier else None,
        "fornecedor_telefone": supplier.telefone if supplier else None,
        "fornecedor_email": supplier.email if supplier else None,
        "lojas": lojas,
        "funcionarios": sorted(funcionarios),
        "instaladores": sorted(instaladores),
        "resumo": {
            "finalizadas": resumo[DISPLAY_FINALIZADA],
            "pendentes": resumo[DISPLAY_PENDENTE],
            "chamados": resumo[DISPLAY_CHAMADO_ABERTO],
            "total": len(lojas),
        },
    }


def get_route_stats(db: Session) -> dict:
    rotas_finalizadas = db.query(models.Route).filter(models.Route.status == FINALIZADA).count()
    rotas_ativas = db.query(models.Route).filter(models.Route.status == ATIVA).count()
    route_codes = {codigo for (codigo,) in db.query(models.RouteItem.codigo_loja).distinct().all()}
    finalized_codes = {
        codigo
        for (codigo,) in db.query(models.Installation.codigo_loja)
        .filter(models.Installation.finalizada.is_(True))
        .distinct()
        .all()
    }
    lojas_finalizadas = len(route_codes & finalized_codes)
    return {
        "rotas_finalizadas": rotas_finalizadas,
        "rotas_ativas": rotas_ativas,
        "lojas_finalizadas": lojas_finalizadas,
        "lojas_nao_finalizadas": len(route_codes) - lojas_finalizadas,
    }


def resolve_routes_for_actor(db: Session, actor_id: str, actor_type: str) -> Optional[list[dict]]:
    if actor_type == SUPPLIER:
        supplier = db.query(models.Supplier).filter(models.Supplier.id == actor_id).first()
        fornecedor_id = supplier.id if supplier else None
    elif actor_type == EMPLOYEE:
        employee = db.query(models.SupplierEmployee).filter(models.SupplierEmployee.id == actor_id).first()
        fornecedor_id = employee.fornecedor_id if employee else None
    else:
        raise ValidationError("Tipo de ator invalido", field="tipo", permitidos=[SUPPLIER, EMPLOYEE])
    if not fornecedor_id:
        return None
    routes = (
        db.query(models.Route)
        .filter(models.Route.fornecedor_id == fornecedor_id, models.Route.status == ATIVA)
        .order_by(models.Route.data_criacao.asc())
        .all()
    )
    return [
        {**serialize_route(route), "lojas": _store_rows(db, ordered_items(db, route.id))}
        for route in routes
    ]

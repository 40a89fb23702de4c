from typing import Optional

from app.db import models


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def serialize_supplier(supplier: Optional[models.Supplier]) -> Optional[dict]:
    if supplier is None:
        return None
    return {
        "id": supplier.id,
        "nome_fornecedor": supplier.nome_fornecedor,
        "cnpj": supplier.cnpj,
        "cpf": supplier.cpf,
        "nome_responsavel": supplier.nome_responsavel,
        "telefone": supplier.telefone,
        "email": supplier.email,
        "endereco": supplier.endereco,
        "estado": supplier.estado,
        "valor_orcamento": supplier.valor_orcamento,
    }


def serialize_employee(employee: models.SupplierEmployee) -> dict:
    return {
        "id": employee.id,
        "fornecedor_id": employee.fornecedor_id,
        "nome_funcionario": employee.nome_funcionario,
        "cpf": employee.cpf,
        "telefone": employee.telefone,
    }


def serialize_store(store: Optional[models.Store]) -> Optional[dict]:
    if store is None:
        return None
    return {
        "id": store.id,
        "codigo_loja": store.codigo_loja,
        "nome_loja": store.nome_loja,
        "nome_operador": store.nome_operador,
        "logradouro": store.logradouro,
        "numero": store.numero,
        "complemento": store.complemento,
        "bairro": store.bairro,
        "cidade": store.cidade,
        "uf": store.uf,
        "cep": store.cep,
        "regiao": store.regiao,
        "telefone_loja": store.telefone_loja,
    }


def serialize_kit(kit: models.Kit) -> dict:
    return {
        "id": kit.id,
        "nome_peca": kit.nome_peca,
        "descricao": kit.descricao,
        "image_url": kit.image_url,
        "ordem": kit.ordem,
    }


def serialize_ticket(ticket: models.Ticket) -> dict:
    return {
        "id": ticket.id,
        "codigo_loja": ticket.codigo_loja,
        "fornecedor_id": ticket.fornecedor_id,
        "descricao": ticket.descricao,
        "nome_instalador": ticket.nome_instalador,
        "data_ocorrencia": _iso(ticket.data_ocorrencia),
        "status": ticket.status,
        "data_abertura": _iso(ticket.data_abertura),
        "data_resolucao": _iso(ticket.data_resolucao),
    }


def serialize_route(route: models.Route) -> dict:
    return {
        "id": route.id,
        "nome": route.nome,
        "fornecedor_id": route.fornecedor_id,
        "status": route.status,
        "observacoes": route.observacoes,
        "data_criacao": _iso(route.data_criacao),
        "data_prevista": _iso(route.data_prevista),
        "data_execucao": _iso(route.data_execucao),
        "created_by": route.created_by,
    }


def serialize_route_item(item: models.RouteItem) -> dict:
    return {
        "id": item.id,
        "rota_id": item.rota_id,
        "loja_id": item.codigo_loja,
        "ordem_visita": item.ordem_visita,
        "status": item.status,
        "data_prevista": _iso(item.data_prevista),
        "data_execucao": _iso(item.data_execucao),
        "observacoes": item.observacoes,
        "tempo_estimado": item.tempo_estimado,
    }

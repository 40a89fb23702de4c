from datetime import date

import pytest

from app.chamados import service
from app.core.errors import ReferentialError, ValidationError


def test_open_ticket_defaults(db_session, seed):
    seed.store("L001")

    ticket = service.open_ticket(db_session, " L001 ", "Letreiro apagado", nome_instalador="Pedro")

    assert ticket.status == service.ABERTO
    assert ticket.codigo_loja == "L001"
    assert ticket.data_ocorrencia == date.today()
    assert ticket.data_resolucao is None


def test_open_ticket_validations(db_session, seed):
    supplier = seed.supplier()
    seed.store("L001")

    with pytest.raises(ValidationError):
        service.open_ticket(db_session, "L001", "   ")
    with pytest.raises(ReferentialError):
        service.open_ticket(db_session, "L999", "Problema")
    with pytest.raises(ReferentialError):
        service.open_ticket(db_session, "L001", "Problema", fornecedor_id="nao-existe")
    with pytest.raises(ValidationError):
        service.open_ticket(db_session, "L001", "Problema", data_ocorrencia="ontem")

    ticket = service.open_ticket(db_session, "L001", "Problema", fornecedor_id=supplier.id, data_ocorrencia="2024-03-01")
    assert ticket.fornecedor_id == supplier.id
    assert ticket.data_ocorrencia == date(2024, 3, 1)


def test_resolve_ticket_is_idempotent(db_session, seed):
    seed.store("L001")
    ticket = service.open_ticket(db_session, "L001", "Problema")

    resolved = service.resolve_ticket(db_session, ticket.id)
    first_resolution = resolved.data_resolucao
    again = service.resolve_ticket(db_session, ticket.id)

    assert resolved.status == service.RESOLVIDO
    assert first_resolution is not None
    assert again.data_resolucao == first_resolution
    assert service.resolve_ticket(db_session, "nao-existe") is None


def test_stores_with_open_tickets(db_session, seed):
    seed.store("L001")
    seed.store("L002")
    seed.store("L003")
    service.open_ticket(db_session, "L001", "A")
    service.open_ticket(db_session, "L001", "B")
    closed = service.open_ticket(db_session, "L002", "C")
    service.resolve_ticket(db_session, closed.id)

    assert service.stores_with_open_tickets(db_session) == {"L001"}
    assert service.stores_with_open_tickets(db_session, ["L002", "L003"]) == set()
    assert service.stores_with_open_tickets(db_session, []) == set()


def test_list_tickets_filters(db_session, seed):
    seed.store("L001")
    seed.store("L002")
    service.open_ticket(db_session, "L001", "A")
    closed = service.open_ticket(db_session, "L002", "B")
    service.resolve_ticket(db_session, closed.id)

    assert [t.codigo_loja for t in service.list_tickets(db_session, status=service.ABERTO)] == ["L001"]
    assert len(service.list_tickets(db_session, codigo_loja="L002")) == 1
    with pytest.raises(ValidationError):
        service.list_tickets(db_session, status="cancelado")

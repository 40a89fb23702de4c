import base64
import json
from io import BytesIO

from PIL import Image

from app.instalacoes.evidence import ORIGINAL_SLOTS


def _image_bytes(fmt="JPEG"):
    out = BytesIO()
    Image.new("RGB", (8, 8), "white").save(out, format=fmt)
    return out.getvalue()


JPEG = _image_bytes()
PNG = _image_bytes("PNG")
DATA_URL = "data:image/jpeg;base64," + base64.b64encode(JPEG).decode()


def _legacy_body(supplier_id, **overrides):
    body = {
        "loja_id": "L001",
        "fornecedor_id": supplier_id,
        "responsible": "Carlos",
        "installationDate": "2024-05-10",
        "fotosOriginais": [DATA_URL] * 4,
        "fotosFinais": [],
    }
    body.update(overrides)
    return body


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_login_issues_token_for_admin_routes(client, seed):
    seed.admin(email="ops@example.com", senha="segredo1")

    assert client.get("/api/dashboard/metrics").status_code == 401
    bad = client.post("/api/auth/login", json={"email": "ops@example.com", "senha": "errada"})
    assert bad.status_code == 401

    res = client.post("/api/auth/login", json={"email": "OPS@example.com", "senha": "segredo1"})
    assert res.status_code == 200
    token = res.json()["access_token"]

    metrics = client.get("/api/dashboard/metrics", headers={"Authorization": f"Bearer {token}"})
    assert metrics.status_code == 200
    assert metrics.json()["rotas"]["rotas_ativas"] == 0


def test_legacy_json_submission_and_justification_gate(client, seed):
    supplier = seed.supplier()
    seed.store("L001")
    seed.kits(2)

    blocked = client.post("/api/instalacoes", json=_legacy_body(supplier.id, fotosFinais=[DATA_URL, None]))
    assert blocked.status_code == 422
    detail = blocked.json()["detail"]
    assert detail["code"] == "JUSTIFICATIVA_OBRIGATORIA"
    assert detail["missing_count"] == 1
    assert client.get("/api/instalacoes/loja/L001").status_code == 404

    res = client.post(
        "/api/instalacoes",
        json=_legacy_body(supplier.id, fotosFinais=[DATA_URL, None], justificativaFotos="kit em falta"),
    )
    assert res.status_code == 200
    data = res.json()
    assert data["fotos_faltando"] == 1
    assert all(url.startswith("file://") for url in data["fotos_originais"].values())

    stored = client.get("/api/instalacoes/loja/L001").json()
    assert stored["fotos_originais"] == data["fotos_originais"]


def test_legacy_submission_echoing_stored_references(client, seed):
    supplier = seed.supplier()
    seed.store("L001")
    first = client.post("/api/instalacoes", json=_legacy_body(supplier.id)).json()
    references = [first["fotos_originais"][slot] for slot in ORIGINAL_SLOTS]

    res = client.post("/api/instalacoes", json=_legacy_body(supplier.id, fotosOriginais=references, responsible="Ana"))

    assert res.status_code == 200
    assert res.json()["fotos_originais"] == first["fotos_originais"]
    assert res.json()["responsible"] == "Ana"
    assert len(client.get("/api/instalacoes").json()["items"]) == 1


def test_invalid_submission_inputs(client, seed):
    supplier = seed.supplier()
    seed.store("L001")

    bad_image = client.post(
        "/api/instalacoes",
        json=_legacy_body(supplier.id, fotosOriginais=["data:image/jpeg;base64,@@@"] * 4),
    )
    assert bad_image.status_code == 422

    unknown_store = client.post("/api/instalacoes", json=_legacy_body(supplier.id, loja_id="L999"))
    assert unknown_store.status_code == 422
    assert unknown_store.json()["detail"]["keys"] == ["L999"]

    missing_field = client.post("/api/instalacoes", json={"loja_id": "L001"})
    assert missing_field.status_code == 422


def test_multipart_submission(client, seed):
    supplier = seed.supplier()
    seed.store("L001")
    seed.kits(1)

    files = [
        ("original_frente_loja", ("frente.jpg", JPEG, "image/jpeg")),
        ("original_interna_loja", ("interna.jpg", JPEG, "image/jpeg")),
        ("final_0", ("kit.png", PNG, "image/png")),
    ]
    form = {
        "loja_id": "L001",
        "fornecedor_id": supplier.id,
        "responsible": "Carlos",
        "installationDate": "2024-05-10",
        "fotosOriginais": json.dumps([None, None, "gs://legado/direito.jpg", "gs://legado/esquerdo.jpg"]),
        "latitude": "-23.55",
        "longitude": "-46.63",
        "endereco_geolocalizacao": "Rua A, 123",
        "finalizar": "true",
    }

    res = client.post("/api/instalacoes", data=form, files=files)

    assert res.status_code == 200
    data = res.json()
    assert data["finalizada"] is True
    assert data["fotos_originais"]["frente_loja"].startswith("file://")
    assert data["fotos_originais"]["interna_lado_direito"] == "gs://legado/direito.jpg"
    assert data["fotos_finais"][0].endswith("kit.png")
    assert data["endereco_geolocalizacao"] == "Rua A, 123"
    assert data["latitude"] == -23.55


def test_finalize_and_installation_status(client, seed):
    supplier = seed.supplier()
    seed.store("L001")
    client.post("/api/instalacoes", json=_legacy_body(supplier.id))

    assert client.patch("/api/instalacoes/loja/L001/finalizar").json()["finalizada"] is True
    assert client.patch("/api/instalacoes/loja/L001/finalizar").status_code == 200
    assert client.patch("/api/instalacoes/loja/L999/finalizar").status_code == 404

    status = client.get("/api/lojas/L001/installation-status").json()
    assert status["is_installed"] is True
    assert status["supplier"]["id"] == supplier.id


def test_route_admin_flow(admin_client, seed):
    supplier = seed.supplier()
    employee = seed.employee(supplier, "Ana")
    for codigo in ("A", "B", "C", "D"):
        seed.store(codigo)

    created = admin_client.post(
        "/api/rotas",
        json={"nome": "Rota 1", "fornecedor_id": supplier.id, "lojas": ["A", "B", "C"], "funcionarios": [employee.id]},
    )
    assert created.status_code == 201
    route_id = created.json()["id"]
    assert [item["loja_id"] for item in created.json()["itens"]] == ["A", "B", "C"]

    replaced = admin_client.put(f"/api/rotas/{route_id}/lojas", json={"lojas": ["B", "D"]})
    assert [(i["loja_id"], i["ordem_visita"]) for i in replaced.json()["items"]] == [("B", 1), ("D", 2)]

    duplicated = admin_client.put(f"/api/rotas/{route_id}/lojas", json={"lojas": ["B", "B"]})
    assert duplicated.status_code == 422

    details = admin_client.get(f"/api/rotas/{route_id}").json()
    assert details["resumo"]["total"] == 2
    assert details["funcionarios"] == ["Ana"]

    for_employee = admin_client.get(f"/api/rotas/funcionario/{employee.id}").json()["items"]
    assert [route["id"] for route in for_employee] == [route_id]
    assert admin_client.get("/api/rotas/funcionario/ninguem").status_code == 404

    finished = admin_client.post(f"/api/rotas/{route_id}/finalizar")
    assert finished.json()["status"] == "finalizada"

    locked = admin_client.put(f"/api/rotas/{route_id}/lojas", json={"lojas": ["A"]})
    assert locked.status_code == 409
    assert locked.json()["detail"]["code"] == "ROTA_ENCERRADA"

    reopen = admin_client.patch(f"/api/rotas/{route_id}/status", json={"status": "ativa"})
    assert reopen.status_code == 409

    stats = admin_client.get("/api/rotas/estatisticas").json()
    assert stats["rotas_finalizadas"] == 1
    assert stats["lojas_finalizadas"] + stats["lojas_nao_finalizadas"] == 2

    assert admin_client.delete(f"/api/rotas/{route_id}").status_code == 204
    assert admin_client.get(f"/api/rotas/{route_id}").status_code == 404


def test_route_rejects_foreign_employee(admin_client, seed):
    supplier = seed.supplier()
    other = seed.supplier(nome="Outro")
    foreign = seed.employee(other, "Bruno")

    res = admin_client.post(
        "/api/rotas",
        json={"nome": "Rota", "fornecedor_id": supplier.id, "funcionarios": [foreign.id]},
    )

    assert res.status_code == 422
    assert res.json()["detail"]["keys"] == [foreign.id]


def test_route_item_update(admin_client, seed):
    supplier = seed.supplier()
    seed.store("A")
    route = admin_client.post("/api/rotas", json={"nome": "R", "fornecedor_id": supplier.id, "lojas": ["A"]}).json()
    item_id = route["itens"][0]["id"]

    res = admin_client.patch(f"/api/rotas/itens/{item_id}", json={"status": "em_progresso", "tempo_estimado": 30})
    assert res.status_code == 200
    assert res.json()["status"] == "em_progresso"

    back = admin_client.patch(f"/api/rotas/itens/{item_id}", json={"status": "pendente"})
    assert back.status_code == 409


def test_ticket_flow_changes_store_display_status(admin_client, seed):
    supplier = seed.supplier()
    seed.store("L001")
    admin_client.post("/api/instalacoes", json=_legacy_body(supplier.id, finalizar=True))

    opened = admin_client.post(
        "/api/chamados",
        json={"loja_id": "L001", "descricao": "Vidro trincado", "nome_instalador": "Carlos"},
    )
    assert opened.status_code == 201
    ticket_id = opened.json()["id"]
    assert admin_client.get("/api/lojas/L001/complete-info").json()["status"] == "chamado_aberto"

    resolved = admin_client.patch(f"/api/chamados/{ticket_id}/resolver")
    assert resolved.json()["status"] == "resolvido"
    assert admin_client.patch(f"/api/chamados/{ticket_id}/resolver").status_code == 200
    assert admin_client.get("/api/lojas/L001/complete-info").json()["status"] == "finalizada"

    missing_store = admin_client.post("/api/chamados", json={"loja_id": "L999", "descricao": "x"})
    assert missing_store.status_code == 422


def test_actor_search(client, seed):
    supplier = seed.supplier(nome="Instaladora Paulista", cnpj="12345678000190")
    seed.employee(supplier, "Paula Souza")

    items = client.get("/api/fornecedores/search", params={"q": "paul"}).json()["items"]
    assert {item["type"] for item in items} == {"supplier", "employee"}

    by_cnpj = client.get("/api/fornecedores/search", params={"q": "12345678000190"}).json()["items"]
    assert [item["data"]["id"] for item in by_cnpj] == [supplier.id]


def test_admin_catalog_endpoints(admin_client):
    supplier = admin_client.post("/api/fornecedores", json={"nome_fornecedor": "Fornecedor X", "cnpj": "1"})
    assert supplier.status_code == 201
    assert admin_client.post("/api/fornecedores", json={"nome_fornecedor": "Y", "cnpj": "1"}).status_code == 409

    employee = admin_client.post(
        f"/api/fornecedores/{supplier.json()['id']}/funcionarios", json={"nome_funcionario": "Rafa"}
    )
    assert employee.status_code == 201

    assert admin_client.post("/api/lojas", json={"codigo_loja": "L100", "nome_loja": "Centro"}).status_code == 201
    assert admin_client.post("/api/lojas", json={"codigo_loja": "L100", "nome_loja": "Dup"}).status_code == 409
    assert admin_client.get("/api/lojas/L100").json()["nome_loja"] == "Centro"

    admin_client.post("/api/kits", json={"nome_peca": "Totem"})
    admin_client.post("/api/kits", json={"nome_peca": "Banner"})
    kits = admin_client.get("/api/kits").json()["items"]
    assert [kit["nome_peca"] for kit in kits] == ["Totem", "Banner"]

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import get_current_admin, get_password_hash
from app.db import models
from app.db.session import get_db
from app.main import app


class Seeder:
    def __init__(self, db):
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def admin(self, email="admin@example.com", senha="admin123", nome="Admin"):
        return self._save(models.Admin(nome=nome, email=email, senha_hash=get_password_hash(senha), status="active"))

    def supplier(self, nome="Fornecedor A", **fields):
        return self._save(models.Supplier(nome_fornecedor=nome, **fields))

    def employee(self, supplier, nome="Joao"):
        return self._save(models.SupplierEmployee(fornecedor_id=supplier.id, nome_funcionario=nome))

    def store(self, codigo, nome=None, cidade="Sao Paulo"):
        return self._save(models.Store(codigo_loja=codigo, nome_loja=nome or f"Loja {codigo}", cidade=cidade))

    def kits(self, count):
        return [self._save(models.Kit(nome_peca=f"Peca {index}", ordem=index)) for index in range(count)]


@pytest.fixture()
def engine(tmp_path, monkeypatch):
    monkeypatch.setenv("LOCAL_STORAGE", "1")
    monkeypatch.setenv("LOCAL_STORAGE_DIR", str(tmp_path / "storage"))
    monkeypatch.delenv("GOOGLE_MAPS_API_KEY", raising=False)
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = SessionLocal()
    yield db
    db.close()


@pytest.fixture()
def seed(db_session):
    return Seeder(db_session)


@pytest.fixture()
def client(engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def admin_client(client, seed):
    admin = seed.admin()
    app.dependency_overrides[get_current_admin] = lambda: admin
    return client

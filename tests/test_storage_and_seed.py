import pathlib

from app.core.config import settings
from app.core.security import verify_password
from app.db import models
from app.db.init_db import init_schema, seed_initial_data
from app.services.storage import StorageClient


def test_local_storage_upload_and_delete(tmp_path, monkeypatch):
    monkeypatch.setenv("LOCAL_STORAGE", "1")
    monkeypatch.setenv("LOCAL_STORAGE_DIR", str(tmp_path))
    storage = StorageClient()
    assert storage.use_local

    url = storage.upload_bytes(b"conteudo", "instalacoes/L001/originais/frente.jpg", "image/jpeg")

    path = pathlib.Path(url.replace("file://", "", 1))
    assert url.startswith("file://")
    assert path.read_bytes() == b"conteudo"
    storage.delete(url)
    assert not path.exists()
    storage.delete(url)


def test_init_schema_is_repeatable(engine):
    init_schema(engine)
    init_schema(engine)


def test_seed_admin_from_settings(db_session, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_BOOTSTRAP_EMAIL", "Root@Example.com")
    monkeypatch.setattr(settings, "ADMIN_BOOTSTRAP_PASSWORD", "trocar123")

    admin = seed_initial_data(db_session)
    again = seed_initial_data(db_session)

    assert admin.email == "root@example.com"
    assert again.id == admin.id
    assert verify_password("trocar123", admin.senha_hash)
    assert db_session.query(models.Admin).count() == 1


def test_seed_skipped_without_credentials(db_session, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_BOOTSTRAP_EMAIL", "")
    monkeypatch.setattr(settings, "ADMIN_BOOTSTRAP_PASSWORD", "")
    assert seed_initial_data(db_session) is None


def test_local_storage_deletes_accented_file_names(tmp_path, monkeypatch):
    monkeypatch.setenv("LOCAL_STORAGE", "1")
    monkeypatch.setenv("LOCAL_STORAGE_DIR", str(tmp_path))
    storage = StorageClient()

    url = storage.upload_bytes(b"x", "instalacoes/L001/originais/fachada_ção.jpg", "image/jpeg")
    stored = storage.base_dir / "instalacoes/L001/originais/fachada_ção.jpg"

    assert stored.exists()
    assert storage.owns(url)
    storage.delete(url)
    assert not stored.exists()


def test_storage_owns_only_its_own_objects(tmp_path, monkeypatch):
    monkeypatch.setenv("LOCAL_STORAGE", "1")
    monkeypatch.setenv("LOCAL_STORAGE_DIR", str(tmp_path / "fotos"))
    storage = StorageClient()

    assert not storage.owns("gs://legado/frente.jpg")
    assert not storage.owns((tmp_path / "outro" / "frente.jpg").as_uri())
    assert not storage.owns("")

import pathlib

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from app.core.config import settings
from app.db import models

ALEMBIC_DIR = pathlib.Path(__file__).resolve().parents[1] / "alembic"


def _indexes(engine, table):
    return {index["name"]: (tuple(index["column_names"]), bool(index["unique"])) for index in inspect(engine).get_indexes(table)}


def test_initial_migration_matches_model_indexes(tmp_path, monkeypatch):
    migrated_url = f"sqlite:///{tmp_path / 'migrated.db'}"
    monkeypatch.setattr(settings, "SQLALCHEMY_DATABASE_URI", migrated_url)
    config = Config()
    config.set_main_option("script_location", str(ALEMBIC_DIR))
    command.upgrade(config, "head")

    migrated = create_engine(migrated_url)
    declared = create_engine(f"sqlite:///{tmp_path / 'declared.db'}")
    models.Base.metadata.create_all(declared)

    try:
        assert set(inspect(migrated).get_table_names()) >= set(models.Base.metadata.tables)
        assert _indexes(migrated, "lojas")["ix_lojas_codigo_loja"] == (("codigo_loja",), True)
        for table in ("lojas", "chamados", "rota_itens", "rota_funcionarios", "fotos_originais_loja", "fotos_finais"):
            assert _indexes(migrated, table) == _indexes(declared, table), table
    finally:
        migrated.dispose()
        declared.dispose()

"""rollout schema: suppliers, stores, kits, routes, installations, photos, tickets

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

NOW = sa.text("(CURRENT_TIMESTAMP)")


def upgrade() -> None:
    op.create_table(
        "admins",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("nome", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("senha_hash", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
        sa.UniqueConstraint("email", name="uq_admin_email"),
    )

    op.create_table(
        "fornecedores",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("nome_fornecedor", sa.String(), nullable=False),
        sa.Column("cnpj", sa.String(), nullable=True, unique=True),
        sa.Column("cpf", sa.String(), nullable=True),
        sa.Column("nome_responsavel", sa.String(), nullable=True),
        sa.Column("telefone", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("endereco", sa.String(), nullable=True),
        sa.Column("estado", sa.String(), nullable=True),
        sa.Column("valor_orcamento", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
    )

    op.create_table(
        "funcionarios_fornecedor",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("fornecedor_id", sa.String(), sa.ForeignKey("fornecedores.id"), nullable=False),
        sa.Column("nome_funcionario", sa.String(), nullable=False),
        sa.Column("cpf", sa.String(), nullable=True),
        sa.Column("telefone", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
    )

    op.create_table(
        "lojas",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("codigo_loja", sa.String(), nullable=False),
        sa.Column("nome_loja", sa.String(), nullable=False),
        sa.Column("nome_operador", sa.String(), nullable=True),
        sa.Column("logradouro", sa.String(), nullable=True),
        sa.Column("numero", sa.String(), nullable=True),
        sa.Column("complemento", sa.String(), nullable=True),
        sa.Column("bairro", sa.String(), nullable=True),
        sa.Column("cidade", sa.String(), nullable=True),
        sa.Column("uf", sa.String(), nullable=True),
        sa.Column("cep", sa.String(), nullable=True),
        sa.Column("regiao", sa.String(), nullable=True),
        sa.Column("telefone_loja", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
    )
    op.create_index("ix_lojas_codigo_loja", "lojas", ["codigo_loja"], unique=True)

    op.create_table(
        "kits",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("nome_peca", sa.String(), nullable=False),
        sa.Column("descricao", sa.String(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("ordem", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
    )

    op.create_table(
        "chamados",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("codigo_loja", sa.String(), sa.ForeignKey("lojas.codigo_loja"), nullable=False),
        sa.Column("fornecedor_id", sa.String(), sa.ForeignKey("fornecedores.id"), nullable=True),
        sa.Column("descricao", sa.Text(), nullable=False),
        sa.Column("nome_instalador", sa.String(), nullable=True),
        sa.Column("data_ocorrencia", sa.Date(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="aberto"),
        sa.Column("data_abertura", sa.DateTime(), nullable=False, server_default=NOW),
        sa.Column("data_resolucao", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_chamados_codigo_loja", "chamados", ["codigo_loja"])

    op.create_table(
        "rotas",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("nome", sa.String(), nullable=False),
        sa.Column("fornecedor_id", sa.String(), sa.ForeignKey("fornecedores.id"), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="ativa"),
        sa.Column("observacoes", sa.Text(), nullable=True),
        sa.Column("data_criacao", sa.DateTime(), nullable=False, server_default=NOW),
        sa.Column("data_prevista", sa.Date(), nullable=True),
        sa.Column("data_execucao", sa.Date(), nullable=True),
        sa.Column("created_by", sa.String(), sa.ForeignKey("admins.id"), nullable=True),
    )

    op.create_table(
        "rota_itens",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("rota_id", sa.String(), sa.ForeignKey("rotas.id"), nullable=False),
        sa.Column("codigo_loja", sa.String(), sa.ForeignKey("lojas.codigo_loja"), nullable=False),
        sa.Column("ordem_visita", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pendente"),
        sa.Column("data_prevista", sa.Date(), nullable=True),
        sa.Column("data_execucao", sa.Date(), nullable=True),
        sa.Column("observacoes", sa.Text(), nullable=True),
        sa.Column("tempo_estimado", sa.Integer(), nullable=True),
        sa.UniqueConstraint("rota_id", "ordem_visita", name="uq_rota_ordem_visita"),
    )
    op.create_index("ix_rota_itens_rota_id", "rota_itens", ["rota_id"])

    op.create_table(
        "rota_funcionarios",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("rota_id", sa.String(), sa.ForeignKey("rotas.id"), nullable=False),
        sa.Column("funcionario_id", sa.String(), sa.ForeignKey("funcionarios_fornecedor.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
        sa.UniqueConstraint("rota_id", "funcionario_id", name="uq_rota_funcionario"),
    )
    op.create_index("ix_rota_funcionarios_rota_id", "rota_funcionarios", ["rota_id"])

    op.create_table(
        "instalacoes",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("codigo_loja", sa.String(), sa.ForeignKey("lojas.codigo_loja"), nullable=False),
        sa.Column("fornecedor_id", sa.String(), sa.ForeignKey("fornecedores.id"), nullable=False),
        sa.Column("responsavel", sa.String(), nullable=False),
        sa.Column("data_instalacao", sa.Date(), nullable=False),
        sa.Column("finalizada", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("justificativa_fotos", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("endereco_geolocalizacao", sa.String(), nullable=True),
        sa.Column("geolocalizacao_timestamp", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=NOW),
        sa.UniqueConstraint("codigo_loja", name="uq_instalacao_loja"),
    )

    op.create_table(
        "fotos_originais_loja",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("codigo_loja", sa.String(), sa.ForeignKey("lojas.codigo_loja"), nullable=False),
        sa.Column("slot", sa.String(), nullable=False),
        sa.Column("foto_url", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
        sa.UniqueConstraint("codigo_loja", "slot", name="uq_foto_original_slot"),
    )
    op.create_index("ix_fotos_originais_loja_codigo_loja", "fotos_originais_loja", ["codigo_loja"])

    op.create_table(
        "fotos_finais",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("codigo_loja", sa.String(), sa.ForeignKey("lojas.codigo_loja"), nullable=False),
        sa.Column("kit_index", sa.Integer(), nullable=False),
        sa.Column("kit_id", sa.String(), sa.ForeignKey("kits.id", ondelete="SET NULL"), nullable=True),
        sa.Column("foto_url", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=NOW),
        sa.UniqueConstraint("codigo_loja", "kit_index", name="uq_foto_final_kit"),
    )
    op.create_index("ix_fotos_finais_codigo_loja", "fotos_finais", ["codigo_loja"])


def downgrade() -> None:
    op.drop_index("ix_fotos_finais_codigo_loja", table_name="fotos_finais")
    op.drop_table("fotos_finais")
    op.drop_index("ix_fotos_originais_loja_codigo_loja", table_name="fotos_originais_loja")
    op.drop_table("fotos_originais_loja")
    op.drop_table("instalacoes")
    op.drop_index("ix_rota_funcionarios_rota_id", table_name="rota_funcionarios")
    op.drop_table("rota_funcionarios")
    op.drop_index("ix_rota_itens_rota_id", table_name="rota_itens")
    op.drop_table("rota_itens")
    op.drop_table("rotas")
    op.drop_index("ix_chamados_codigo_loja", table_name="chamados")
    op.drop_table("chamados")
    op.drop_table("kits")
    op.drop_index("ix_lojas_codigo_loja", table_name="lojas")
    op.drop_table("lojas")
    op.drop_table("funcionarios_fornecedor")
    op.drop_table("fornecedores")
    op.drop_table("admins")

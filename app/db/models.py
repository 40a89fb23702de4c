import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Admin(Base):
    __tablename__ = "admins"
    __table_args__ = (UniqueConstraint("email", name="uq_admin_email"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    nome = Column(String, nullable=False)
    email = Column(String, nullable=False)
    senha_hash = Column(String, nullable=False)
    status = Column(String, nullable=False, default="active")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Supplier(Base):
    __tablename__ = "fornecedores"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    nome_fornecedor = Column(String, nullable=False)
    cnpj = Column(String, nullable=True, unique=True)
    cpf = Column(String, nullable=True)
    nome_responsavel = Column(String, nullable=True)
    telefone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    endereco = Column(String, nullable=True)
    estado = Column(String, nullable=True)
    valor_orcamento = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    funcionarios = relationship("SupplierEmployee", back_populates="fornecedor", cascade="all, delete-orphan")
    rotas = relationship("Route", back_populates="fornecedor")


class SupplierEmployee(Base):
    __tablename__ = "funcionarios_fornecedor"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    fornecedor_id = Column(String, ForeignKey("fornecedores.id"), nullable=False)
    nome_funcionario = Column(String, nullable=False)
    cpf = Column(String, nullable=True)
    telefone = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    fornecedor = relationship("Supplier", back_populates="funcionarios")


class Store(Base):
    __tablename__ = "lojas"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    codigo_loja = Column(String, nullable=False, unique=True, index=True)
    nome_loja = Column(String, nullable=False)
    nome_operador = Column(String, nullable=True)
    logradouro = Column(String, nullable=True)
    numero = Column(String, nullable=True)
    complemento = Column(String, nullable=True)
    bairro = Column(String, nullable=True)
    cidade = Column(String, nullable=True)
    uf = Column(String, nullable=True)
    cep = Column(String, nullable=True)
    regiao = Column(String, nullable=True)
    telefone_loja = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Kit(Base):
    __tablename__ = "kits"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    nome_peca = Column(String, nullable=False)
    descricao = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    ordem = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Ticket(Base):
    __tablename__ = "chamados"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    codigo_loja = Column(String, ForeignKey("lojas.codigo_loja"), nullable=False, index=True)
    fornecedor_id = Column(String, ForeignKey("fornecedores.id"), nullable=True)
    descricao = Column(Text, nullable=False)
    nome_instalador = Column(String, nullable=True)
    data_ocorrencia = Column(Date, nullable=True)
    status = Column(String, nullable=False, default="aberto")
    data_abertura = Column(DateTime, default=datetime.utcnow, nullable=False)
    data_resolucao = Column(DateTime, nullable=True)


class Route(Base):
    __tablename__ = "rotas"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    nome = Column(String, nullable=False)
    fornecedor_id = Column(String, ForeignKey("fornecedores.id"), nullable=False)
    status = Column(String, nullable=False, default="ativa")
    observacoes = Column(Text, nullable=True)
    data_criacao = Column(DateTime, default=datetime.utcnow, nullable=False)
    data_prevista = Column(Date, nullable=True)
    data_execucao = Column(Date, nullable=True)
    created_by = Column(String, ForeignKey("admins.id"), nullable=True)

    fornecedor = relationship("Supplier", back_populates="rotas")
    itens = relationship(
        "RouteItem",
        back_populates="rota",
        cascade="all, delete-orphan",
        order_by="RouteItem.ordem_visita",
    )
    funcionarios = relationship("RouteEmployee", back_populates="rota", cascade="all, delete-orphan")


class RouteItem(Base):
    __tablename__ = "rota_itens"
    __table_args__ = (UniqueConstraint("rota_id", "ordem_visita", name="uq_rota_ordem_visita"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    rota_id = Column(String, ForeignKey("rotas.id"), nullable=False, index=True)
    codigo_loja = Column(String, ForeignKey("lojas.codigo_loja"), nullable=False)
    ordem_visita = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default="pendente")
    data_prevista = Column(Date, nullable=True)
    data_execucao = Column(Date, nullable=True)
    observacoes = Column(Text, nullable=True)
    tempo_estimado = Column(Integer, nullable=True)

    rota = relationship("Route", back_populates="itens")
    loja = relationship("Store")


class RouteEmployee(Base):
    __tablename__ = "rota_funcionarios"
    __table_args__ = (UniqueConstraint("rota_id", "funcionario_id", name="uq_rota_funcionario"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    rota_id = Column(String, ForeignKey("rotas.id"), nullable=False, index=True)
    funcionario_id = Column(String, ForeignKey("funcionarios_fornecedor.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    rota = relationship("Route", back_populates="funcionarios")
    funcionario = relationship("SupplierEmployee")


class Installation(Base):
    __tablename__ = "instalacoes"
    __table_args__ = (UniqueConstraint("codigo_loja", name="uq_instalacao_loja"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    codigo_loja = Column(String, ForeignKey("lojas.codigo_loja"), nullable=False)
    fornecedor_id = Column(String, ForeignKey("fornecedores.id"), nullable=False)
    responsavel = Column(String, nullable=False)
    data_instalacao = Column(Date, nullable=False)
    finalizada = Column(Boolean, nullable=False, default=False)
    justificativa_fotos = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    endereco_geolocalizacao = Column(String, nullable=True)
    geolocalizacao_timestamp = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    fornecedor = relationship("Supplier")


class OriginalPhoto(Base):
    __tablename__ = "fotos_originais_loja"
    __table_args__ = (UniqueConstraint("codigo_loja", "slot", name="uq_foto_original_slot"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    codigo_loja = Column(String, ForeignKey("lojas.codigo_loja"), nullable=False, index=True)
    slot = Column(String, nullable=False)
    foto_url = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class FinalPhoto(Base):
    __tablename__ = "fotos_finais"
    __table_args__ = (UniqueConstraint("codigo_loja", "kit_index", name="uq_foto_final_kit"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    codigo_loja = Column(String, ForeignKey("lojas.codigo_loja"), nullable=False, index=True)
    kit_index = Column(Integer, nullable=False)
    kit_id = Column(String, ForeignKey("kits.id", ondelete="SET NULL"), nullable=True)
    foto_url = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

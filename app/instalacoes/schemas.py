from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, Field, model_validator


class CapturedPhoto(BaseModel):
    content: bytes
    filename: str = "foto.jpg"
    content_type: str = "image/jpeg"


class PhotoSlotInput(BaseModel):
    nova: Optional[CapturedPhoto] = None
    existente: Optional[str] = None
    limpar: bool = False

    @model_validator(mode="after")
    def _single_source(self):
        if self.nova is not None and self.existente:
            raise ValueError("Slot de foto recebeu imagem nova e referencia existente ao mesmo tempo")
        return self


class GeoLocation(BaseModel):
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    endereco: Optional[str] = None
    timestamp: Optional[datetime] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class InstallationSubmission(BaseModel):
    """Legacy JSON body: photo arrays indexed by slot, each entry a data URL or a stored reference."""

    loja_id: str
    fornecedor_id: str
    responsible: str
    installationDate: Union[date, str]
    fotosOriginais: list[Optional[str]] = Field(default_factory=list)
    fotosFinais: list[Optional[str]] = Field(default_factory=list)
    justificativaFotos: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    endereco_geolocalizacao: Optional[str] = None
    geolocalizacao_timestamp: Optional[datetime] = None
    finalizar: bool = False

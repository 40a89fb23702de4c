import base64
import binascii
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.errors import http_error
from app.core.errors import ValidationError
from app.core.security import get_current_admin
from app.db import models
from app.db.session import get_db
from app.instalacoes import service
from app.instalacoes.evidence import ORIGINAL_SLOTS
from app.instalacoes.schemas import CapturedPhoto, GeoLocation, InstallationSubmission, PhotoSlotInput

logger = logging.getLogger("rollout.instalacoes")

router = APIRouter(tags=["Instalacoes"])


def _internal_error():
    logger.exception("Erro interno em instalacoes")
    return JSONResponse(status_code=500, content={"message": "Ocorreu um erro, tente novamente mais tarde"})


def _parse_json_list(raw: Optional[str]) -> list:
    if not raw:
        return []
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise ValidationError("Lista JSON invalida", value=raw[:50]) from exc
    if isinstance(payload, list):
        return payload
    return []


def _decode_data_url(value: str, field: str) -> CapturedPhoto:
    header, _, data = value.partition(",")
    content_type = header[len("data:"):].split(";", 1)[0] or "image/jpeg"
    try:
        content = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Imagem em base64 invalida", field=field) from exc
    extension = content_type.split("/")[-1]
    return CapturedPhoto(content=content, filename=f"{field}.{extension}", content_type=content_type)


def _slot_from_legacy(value, field: str) -> Optional[PhotoSlotInput]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Valor de foto invalido", field=field)
    if value.startswith("data:"):
        return PhotoSlotInput(nova=_decode_data_url(value, field))
    return PhotoSlotInput(existente=value)


def _geo(latitude, longitude, endereco, timestamp) -> Optional[GeoLocation]:
    latitude = None if latitude in (None, "") else latitude
    longitude = None if longitude in (None, "") else longitude
    if latitude is None and longitude is None and not endereco:
        return None
    return GeoLocation(latitude=latitude, longitude=longitude, endereco=endereco or None, timestamp=timestamp or None)


def _from_json(body: dict) -> dict:
    payload = InstallationSubmission.model_validate(body)
    originals = {}
    for index, value in enumerate(payload.fotosOriginais[: len(ORIGINAL_SLOTS)]):
        slot = _slot_from_legacy(value, ORIGINAL_SLOTS[index])
        if slot is not None:
            originals[ORIGINAL_SLOTS[index]] = slot
    finals = {}
    for index, value in enumerate(payload.fotosFinais):
        slot = _slot_from_legacy(value, f"final_{index}")
        if slot is not None:
            finals[index] = slot
    return {
        "codigo_loja": payload.loja_id,
        "fornecedor_id": payload.fornecedor_id,
        "responsavel": payload.responsible,
        "data_instalacao": payload.installationDate,
        "fotos_originais": originals,
        "fotos_finais": finals,
        "justificativa": payload.justificativaFotos,
        "geolocalizacao": _geo(
            payload.latitude,
            payload.longitude,
            payload.endereco_geolocalizacao,
            payload.geolocalizacao_timestamp,
        ),
        "finalizar": payload.finalizar,
    }


async def _capture(upload, field: str) -> CapturedPhoto:
    content = await upload.read()
    return CapturedPhoto(
        content=content,
        filename=upload.filename or f"{field}.jpg",
        content_type=upload.content_type or "application/octet-stream",
    )


async def _from_form(request: Request) -> dict:
    """Multipart: files under original_<slot> / final_<n>, stored references in the
    fotosOriginais / fotosFinais JSON arrays, cleared slots listed in limpar."""
    form = await request.form()
    cleared = {str(key) for key in _parse_json_list(form.get("limpar"))}
    references_original = _parse_json_list(form.get("fotosOriginais"))
    references_final = _parse_json_list(form.get("fotosFinais"))

    originals = {}
    for index, slot in enumerate(ORIGINAL_SLOTS):
        upload = form.get(f"original_{slot}")
        reference = references_original[index] if index < len(references_original) else None
        if f"original_{slot}" in cleared:
            originals[slot] = PhotoSlotInput(limpar=True)
        elif upload is not None and hasattr(upload, "read"):
            originals[slot] = PhotoSlotInput(nova=await _capture(upload, slot))
        elif reference:
            originals[slot] = PhotoSlotInput(existente=str(reference))

    final_indexes = set(range(len(references_final)))
    for key in form.keys():
        if key.startswith("final_") and key[len("final_"):].isdigit():
            final_indexes.add(int(key[len("final_"):]))
    for key in cleared:
        if key.startswith("final_") and key[len("final_"):].isdigit():
            final_indexes.add(int(key[len("final_"):]))

    finals = {}
    for index in sorted(final_indexes):
        field = f"final_{index}"
        upload = form.get(field)
        reference = references_final[index] if index < len(references_final) else None
        if field in cleared:
            finals[index] = PhotoSlotInput(limpar=True)
        elif upload is not None and hasattr(upload, "read"):
            finals[index] = PhotoSlotInput(nova=await _capture(upload, field))
        elif reference:
            finals[index] = PhotoSlotInput(existente=str(reference))

    return {
        "codigo_loja": form.get("loja_id") or "",
        "fornecedor_id": form.get("fornecedor_id") or "",
        "responsavel": form.get("responsible") or "",
        "data_instalacao": form.get("installationDate") or "",
        "fotos_originais": originals,
        "fotos_finais": finals,
        "justificativa": form.get("justificativaFotos"),
        "geolocalizacao": _geo(
            form.get("latitude"),
            form.get("longitude"),
            form.get("endereco_geolocalizacao"),
            form.get("geolocalizacao_timestamp"),
        ),
        "finalizar": str(form.get("finalizar") or "").lower() in {"1", "true", "sim"},
    }


@router.post("/instalacoes")
async def submit_installation(request: Request, db: Session = Depends(get_db)):
    try:
        content_type = (request.headers.get("content-type") or "").lower()
        if "multipart/form-data" in content_type:
            submission = await _from_form(request)
        else:
            body = await request.json()
            if not isinstance(body, dict):
                raise HTTPException(status_code=422, detail="Corpo da requisicao invalido")
            submission = _from_json(body)
        return service.submit_installation(db, **submission)
    except HTTPException:
        raise
    except ValueError as exc:
        raise http_error(exc) from exc
    except Exception:
        return _internal_error()


@router.get("/instalacoes")
def list_installations(fornecedor_id: Optional[str] = Query(default=None), db: Session = Depends(get_db)):
    try:
        return {"items": service.list_installations(db, fornecedor_id)}
    except Exception:
        return _internal_error()


@router.get("/instalacoes/loja/{codigo_loja}")
def get_installation(codigo_loja: str, db: Session = Depends(get_db)):
    try:
        installation = service.get_installation(db, codigo_loja)
        if not installation:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Instalacao nao encontrada")
        return installation
    except HTTPException:
        raise
    except Exception:
        return _internal_error()


@router.patch("/instalacoes/loja/{codigo_loja}/finalizar")
def finalize_installation(codigo_loja: str, db: Session = Depends(get_db)):
    try:
        installation = service.finalize_installation(db, codigo_loja)
        if not installation:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Instalacao nao encontrada")
        return installation
    except HTTPException:
        raise
    except Exception:
        return _internal_error()


@router.delete("/instalacoes/loja/{codigo_loja}", status_code=status.HTTP_204_NO_CONTENT)
def delete_installation(
    codigo_loja: str,
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    try:
        if not service.delete_installation(db, codigo_loja):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Instalacao nao encontrada")
        logger.info("installation removed by admin loja=%s admin=%s", codigo_loja, admin.id)
        return None
    except HTTPException:
        raise
    except Exception:
        return _internal_error()

import logging
import uuid
from io import BytesIO
from typing import Mapping, Optional, Sequence, Union

from PIL import Image
from sqlalchemy.orm import Session

from app.chamados.service import ABERTO, list_tickets
from app.core.config import settings
from app.core.dates import parse_date
from app.core.errors import PersistenceError, ReferentialError, ValidationError
from app.db import models
from app.db.serializers import serialize_store, serialize_supplier, serialize_ticket
from app.instalacoes.evidence import ORIGINAL_SLOTS, check_evidence, count_missing, is_filled
from app.instalacoes.schemas import CapturedPhoto, GeoLocation, PhotoSlotInput
from app.rotas.service import derive_display_status
from app.services.geocode import reverse_geocode
from app.services.storage import StorageClient

logger = logging.getLogger("rollout.instalacoes")

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp"}

FinalSlotInputs = Union[Mapping[int, PhotoSlotInput], Sequence[Optional[PhotoSlotInput]]]


def _list_kits(db: Session) -> list[models.Kit]:
    return db.query(models.Kit).order_by(models.Kit.ordem.asc(), models.Kit.created_at.asc()).all()


def _stored_originals(db: Session, codigo_loja: str) -> dict[str, str]:
    rows = db.query(models.OriginalPhoto).filter(models.OriginalPhoto.codigo_loja == codigo_loja).all()
    return {row.slot: row.foto_url for row in rows}


def _stored_finals(db: Session, codigo_loja: str) -> dict[int, str]:
    rows = db.query(models.FinalPhoto).filter(models.FinalPhoto.codigo_loja == codigo_loja).all()
    return {row.kit_index: row.foto_url for row in rows}


def _resolve_slot(slot: Optional[PhotoSlotInput], stored: Optional[str]):
    if slot is not None:
        if slot.limpar:
            return None
        if slot.nova is not None:
            return slot.nova
        if is_filled(slot.existente):
            return slot.existente.strip()
    return stored if is_filled(stored) else None


def _index_final_inputs(fotos_finais: Optional[FinalSlotInputs]) -> dict[int, PhotoSlotInput]:
    if not fotos_finais:
        return {}
    if isinstance(fotos_finais, Mapping):
        indexed = {}
        for key, value in fotos_finais.items():
            try:
                index = int(key)
            except (TypeError, ValueError) as exc:
                raise ValidationError("Indice de foto final invalido", field="fotos_finais", indice=key) from exc
            if index < 0:
                raise ValidationError("Indice de foto final invalido", field="fotos_finais", indice=key)
            indexed[index] = value
        return indexed
    return {index: value for index, value in enumerate(fotos_finais) if value is not None}


def _check_capture(photo: CapturedPhoto, field: str) -> None:
    if photo.content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError("Tipo de arquivo invalido", field=field, content_type=photo.content_type)
    if not photo.content:
        raise ValidationError("Arquivo vazio", field=field)
    if len(photo.content) > settings.MAX_PHOTO_BYTES:
        raise ValidationError("Arquivo acima do tamanho maximo", field=field, max_bytes=settings.MAX_PHOTO_BYTES)
    try:
        with Image.open(BytesIO(photo.content)) as image:
            image.verify()
    except Exception as exc:
        raise ValidationError("Arquivo nao e uma imagem valida", field=field) from exc


def _object_name(codigo_loja: str, folder: str, slot: str, filename: str) -> str:
    safe = (filename or "foto").replace(" ", "_").replace("/", "_")
    return f"instalacoes/{codigo_loja}/{folder}/{slot}_{uuid.uuid4().hex}_{safe}"


def _discard_photos(storage: Optional[StorageClient], urls: list[str], codigo_loja: str) -> None:
    """Best-effort removal of photo objects no row references anymore."""
    if not urls:
        return
    try:
        storage = storage or StorageClient()
    except Exception:
        logger.warning("stale photo cleanup skipped loja=%s count=%s", codigo_loja, len(urls), exc_info=True)
        return
    for url in urls:
        if not storage.owns(url):
            logger.info("photo reference kept in storage loja=%s url=%s", codigo_loja, url)
            continue
        try:
            storage.delete(url)
        except Exception:
            logger.warning("stale photo cleanup failed loja=%s url=%s", codigo_loja, url, exc_info=True)


def _resolve_address(geo: Optional[GeoLocation]) -> Optional[str]:
    if geo is None:
        return None
    if geo.endereco and geo.endereco.strip():
        return geo.endereco.strip()
    if not geo.has_coordinates:
        return None
    try:
        result = reverse_geocode(geo.latitude, geo.longitude)
    except Exception:
        logger.warning("reverse geocode raised lat=%s lng=%s", geo.latitude, geo.longitude, exc_info=True)
        return None
    if result.get("status") != "OK":
        return None
    return result.get("address")


def submit_installation(
    db: Session,
    codigo_loja: str,
    fornecedor_id: str,
    responsavel: str,
    data_instalacao,
    fotos_originais: Optional[Mapping[str, PhotoSlotInput]] = None,
    fotos_finais: Optional[FinalSlotInputs] = None,
    justificativa: Optional[str] = None,
    geolocalizacao: Optional[GeoLocation] = None,
    finalizar: bool = False,
    storage: Optional[StorageClient] = None,
) -> dict:
    """Record the current installation state of a store.

    Photos are resolved slot by slot: a new capture wins, then a reference the
    client echoed back, then whatever is already stored. The resolved set
    replaces every photo row of the store in a single transaction, so the last
    submission is always the full picture for that store.

    Raises JustificationRequiredError (nothing written) when photos are missing
    and no justification was given.
    """
    codigo_loja = (codigo_loja or "").strip()
    responsavel = (responsavel or "").strip()
    if not codigo_loja:
        raise ValidationError("Codigo da loja obrigatorio", field="loja_id")
    if not responsavel:
        raise ValidationError("Responsavel obrigatorio", field="responsible")
    installed_on = parse_date(data_instalacao, "installationDate")
    if installed_on is None:
        raise ValidationError("Data de instalacao obrigatoria", field="installationDate")

    originals_in = dict(fotos_originais or {})
    unknown = sorted(set(originals_in) - set(ORIGINAL_SLOTS))
    if unknown:
        raise ValidationError("Slot de foto original desconhecido", field="fotos_originais", slots=unknown)
    finals_in = _index_final_inputs(fotos_finais)

    store = db.query(models.Store).filter(models.Store.codigo_loja == codigo_loja).first()
    if not store:
        raise ReferentialError("Loja nao encontrada", keys=[codigo_loja])
    supplier = db.query(models.Supplier).filter(models.Supplier.id == fornecedor_id).first()
    if not supplier:
        raise ReferentialError("Fornecedor nao encontrado", keys=[fornecedor_id])

    kits = _list_kits(db)
    ignored = sorted(index for index in finals_in if index >= len(kits))
    if ignored:
        logger.warning("final photos beyond kit inventory ignored loja=%s indices=%s kits=%s", codigo_loja, ignored, len(kits))

    stored_originals = _stored_originals(db, codigo_loja)
    stored_finals = _stored_finals(db, codigo_loja)
    originals = {slot: _resolve_slot(originals_in.get(slot), stored_originals.get(slot)) for slot in ORIGINAL_SLOTS}
    finals = [_resolve_slot(finals_in.get(index), stored_finals.get(index)) for index in range(len(kits))]

    report = check_evidence(originals.values(), finals, justificativa)

    for slot, value in originals.items():
        if isinstance(value, CapturedPhoto):
            _check_capture(value, slot)
    for index, value in enumerate(finals):
        if isinstance(value, CapturedPhoto):
            _check_capture(value, f"final_{index}")

    address = _resolve_address(geolocalizacao)

    uploaded: list[str] = []
    has_captures = any(isinstance(value, CapturedPhoto) for value in [*originals.values(), *finals])
    if has_captures and storage is None:
        storage = StorageClient()
    try:
        for slot, value in list(originals.items()):
            if isinstance(value, CapturedPhoto):
                url = storage.upload_bytes(
                    value.content, _object_name(codigo_loja, "originais", slot, value.filename), value.content_type
                )
                uploaded.append(url)
                originals[slot] = url
        for index, value in enumerate(finals):
            if isinstance(value, CapturedPhoto):
                url = storage.upload_bytes(
                    value.content, _object_name(codigo_loja, "finais", str(index), value.filename), value.content_type
                )
                uploaded.append(url)
                finals[index] = url

        installation = (
            db.query(models.Installation).filter(models.Installation.codigo_loja == codigo_loja).first()
        )
        created = installation is None
        if created:
            installation = models.Installation(codigo_loja=codigo_loja, finalizada=False)
            db.add(installation)
        installation.fornecedor_id = supplier.id
        installation.responsavel = responsavel
        installation.data_instalacao = installed_on
        installation.justificativa_fotos = (justificativa or "").strip() or None
        if finalizar:
            installation.finalizada = True
        if geolocalizacao is not None and geolocalizacao.has_coordinates:
            installation.latitude = geolocalizacao.latitude
            installation.longitude = geolocalizacao.longitude
            installation.endereco_geolocalizacao = address
            installation.geolocalizacao_timestamp = geolocalizacao.timestamp
        elif address:
            installation.endereco_geolocalizacao = address

        db.query(models.OriginalPhoto).filter(models.OriginalPhoto.codigo_loja == codigo_loja).delete(
            synchronize_session=False
        )
        db.query(models.FinalPhoto).filter(models.FinalPhoto.codigo_loja == codigo_loja).delete(
            synchronize_session=False
        )
        for slot, url in originals.items():
            if url:
                db.add(models.OriginalPhoto(codigo_loja=codigo_loja, slot=slot, foto_url=url))
        for index, url in enumerate(finals):
            if url:
                db.add(models.FinalPhoto(codigo_loja=codigo_loja, kit_index=index, kit_id=kits[index].id, foto_url=url))
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.exception("installation save failed loja=%s", codigo_loja)
        for url in uploaded:
            try:
                storage.delete(url)
            except Exception:
                logger.warning("cleanup of uploaded photo failed url=%s", url, exc_info=True)
        raise PersistenceError("Falha ao gravar instalacao") from exc

    current = {url for url in [*originals.values(), *finals] if url}
    stale = [url for url in [*stored_originals.values(), *stored_finals.values()] if url not in current]
    _discard_photos(storage, stale, codigo_loja)

    logger.info(
        "installation saved loja=%s fornecedor=%s novo=%s faltando=%s uploads=%s finalizada=%s",
        codigo_loja,
        supplier.id,
        created,
        report.missing_count,
        len(uploaded),
        installation.finalizada,
    )
    return get_installation(db, codigo_loja)


def _serialize_installation(
    installation: models.Installation,
    originals: dict[str, str],
    finals: dict[int, str],
    kit_count: int,
) -> dict:
    slots = max([kit_count, *[index + 1 for index in finals]])
    fotos_originais = {slot: originals.get(slot) for slot in ORIGINAL_SLOTS}
    fotos_finais = [finals.get(index) for index in range(slots)]
    return {
        "id": installation.id,
        "loja_id": installation.codigo_loja,
        "fornecedor_id": installation.fornecedor_id,
        "responsible": installation.responsavel,
        "installationDate": installation.data_instalacao.isoformat(),
        "finalizada": bool(installation.finalizada),
        "justificativaFotos": installation.justificativa_fotos,
        "latitude": installation.latitude,
        "longitude": installation.longitude,
        "endereco_geolocalizacao": installation.endereco_geolocalizacao,
        "geolocalizacao_timestamp": (
            installation.geolocalizacao_timestamp.isoformat() if installation.geolocalizacao_timestamp else None
        ),
        "fotos_originais": fotos_originais,
        "fotos_finais": fotos_finais,
        "fotos_faltando": count_missing(fotos_originais.values(), fotos_finais[:kit_count]),
        "createdAt": installation.created_at.isoformat() if installation.created_at else None,
        "updatedAt": installation.updated_at.isoformat() if installation.updated_at else None,
    }


def get_installation(db: Session, codigo_loja: str) -> Optional[dict]:
    installation = db.query(models.Installation).filter(models.Installation.codigo_loja == codigo_loja).first()
    if not installation:
        return None
    return _serialize_installation(
        installation,
        _stored_originals(db, codigo_loja),
        _stored_finals(db, codigo_loja),
        len(_list_kits(db)),
    )


def get_installation_status(db: Session, codigo_loja: str) -> dict:
    installation = get_installation(db, codigo_loja)
    supplier = None
    if installation:
        supplier = db.query(models.Supplier).filter(models.Supplier.id == installation["fornecedor_id"]).first()
    return {
        "is_installed": installation is not None,
        "installation": installation,
        "supplier": serialize_supplier(supplier),
    }


def finalize_installation(db: Session, codigo_loja: str) -> Optional[dict]:
    installation = db.query(models.Installation).filter(models.Installation.codigo_loja == codigo_loja).first()
    if not installation:
        return None
    if not installation.finalizada:
        installation.finalizada = True
        db.commit()
        logger.info("installation finalized loja=%s", codigo_loja)
    return get_installation(db, codigo_loja)


def list_installations(db: Session, fornecedor_id: Optional[str] = None) -> list[dict]:
    query = db.query(models.Installation)
    if fornecedor_id:
        query = query.filter(models.Installation.fornecedor_id == fornecedor_id)
    installations = query.order_by(models.Installation.updated_at.desc()).all()
    codigos = [inst.codigo_loja for inst in installations]
    originals: dict[str, dict[str, str]] = {codigo: {} for codigo in codigos}
    finals: dict[str, dict[int, str]] = {codigo: {} for codigo in codigos}
    if codigos:
        for row in db.query(models.OriginalPhoto).filter(models.OriginalPhoto.codigo_loja.in_(codigos)).all():
            originals[row.codigo_loja][row.slot] = row.foto_url
        for row in db.query(models.FinalPhoto).filter(models.FinalPhoto.codigo_loja.in_(codigos)).all():
            finals[row.codigo_loja][row.kit_index] = row.foto_url
    kit_count = len(_list_kits(db))
    return [
        _serialize_installation(inst, originals[inst.codigo_loja], finals[inst.codigo_loja], kit_count)
        for inst in installations
    ]


def delete_installation(db: Session, codigo_loja: str, storage: Optional[StorageClient] = None) -> bool:
    installation = db.query(models.Installation).filter(models.Installation.codigo_loja == codigo_loja).first()
    if not installation:
        return False
    photo_urls = [*_stored_originals(db, codigo_loja).values(), *_stored_finals(db, codigo_loja).values()]
    try:
        db.query(models.OriginalPhoto).filter(models.OriginalPhoto.codigo_loja == codigo_loja).delete(
            synchronize_session=False
        )
        db.query(models.FinalPhoto).filter(models.FinalPhoto.codigo_loja == codigo_loja).delete(
            synchronize_session=False
        )
        db.delete(installation)
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.exception("installation delete failed loja=%s", codigo_loja)
        raise PersistenceError("Falha ao excluir instalacao") from exc
    _discard_photos(storage, photo_urls, codigo_loja)
    logger.info("installation deleted loja=%s photos=%s", codigo_loja, len(photo_urls))
    return True


def get_store_complete_info(db: Session, codigo_loja: str) -> Optional[dict]:
    store = db.query(models.Store).filter(models.Store.codigo_loja == codigo_loja).first()
    if not store:
        return None
    status = get_installation_status(db, codigo_loja)
    open_tickets = list_tickets(db, status=ABERTO, codigo_loja=codigo_loja)
    installation = status["installation"]
    return {
        "loja": serialize_store(store),
        **status,
        "chamados_abertos": [serialize_ticket(ticket) for ticket in open_tickets],
        "status": derive_display_status(bool(open_tickets), bool(installation and installation["finalizada"])),
    }

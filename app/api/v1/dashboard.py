from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.chamados.service import ABERTO
from app.core.security import get_current_admin
from app.db import models
from app.db.session import get_db
from app.rotas.service import get_route_stats

router = APIRouter(tags=["Dashboard"])


@router.get("/dashboard/metrics")
def dashboard_metrics(
    admin: models.Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    instalacoes_total = db.query(models.Installation).count()
    instalacoes_finalizadas = (
        db.query(models.Installation).filter(models.Installation.finalizada.is_(True)).count()
    )
    chamados_abertos = db.query(models.Ticket).filter(models.Ticket.status == ABERTO).count()
    return {
        "fornecedores_total": db.query(models.Supplier).count(),
        "funcionarios_total": db.query(models.SupplierEmployee).count(),
        "lojas_total": db.query(models.Store).count(),
        "kits_total": db.query(models.Kit).count(),
        "instalacoes_total": instalacoes_total,
        "instalacoes_finalizadas": instalacoes_finalizadas,
        "instalacoes_pendentes": instalacoes_total - instalacoes_finalizadas,
        "chamados_abertos": chamados_abertos,
        "rotas": get_route_stats(db),
    }

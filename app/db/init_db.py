import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import get_password_hash
from app.db import models

logger = logging.getLogger("rollout.db")


def init_schema(engine) -> None:
    """Create missing tables. Safe to run repeatedly; meant for deploy time, not request time."""
    models.Base.metadata.create_all(bind=engine)


def seed_initial_data(db: Session) -> models.Admin | None:
    email = (settings.ADMIN_BOOTSTRAP_EMAIL or "").strip().lower()
    password = settings.ADMIN_BOOTSTRAP_PASSWORD
    if not email or not password:
        logger.info("admin bootstrap skipped: ADMIN_BOOTSTRAP_EMAIL/ADMIN_BOOTSTRAP_PASSWORD not set")
        return None
    admin = db.query(models.Admin).filter(models.Admin.email == email).first()
    if admin:
        return admin
    admin = models.Admin(
        nome=settings.ADMIN_BOOTSTRAP_NAME,
        email=email,
        senha_hash=get_password_hash(password),
        status="active",
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("admin bootstrap created email=%s", email)
    return admin

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.models.member import Member
from app.models.report import Report
from app.schemas.report import ReportCreate
from app.services import tenant
from app.services.celulas import load_celula
from app.services.permissions import FullPermission

logger = logging.getLogger(__name__)


def _local_day_bounds(day: date) -> tuple[datetime, datetime]:
    """UTC bounds (naive, as stored) of a calendar day in the reporting timezone."""

    zone = ZoneInfo(settings.REPORT_TIMEZONE)
    start = datetime.combine(day, time.min, tzinfo=zone).astimezone(timezone.utc).replace(tzinfo=None)
    return start, start + timedelta(days=1)


def _today() -> date:
    return datetime.now(ZoneInfo(settings.REPORT_TIMEZONE)).date()


def create_report(db: Session, celula_id: int, payload: ReportCreate, permission: FullPermission) -> Report:
    """Record attendance for a celula meeting; a second report for the same day replaces the first."""

    load_celula(db, celula_id, permission)
    tenant.validate_members_belong_to_matrix(db, payload.member_ids, permission.matrix_id)

    day = payload.report_date or _today()
    start, end = _local_day_bounds(day)
    try:
        replaced = (
            db.query(Report)
            .filter(Report.celula_id == celula_id, Report.created_at >= start, Report.created_at < end)
            .all()
        )
        for previous in replaced:
            db.delete(previous)

        report = Report(celula_id=celula_id, matrix_id=permission.matrix_id)
        if payload.report_date is not None:
            report.created_at = start
        if payload.member_ids:
            report.attendees = db.query(Member).filter(Member.id.in_(payload.member_ids)).all()
        db.add(report)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "report_created",
        extra={"celula_id": celula_id, "report_id": report.id, "attendees": len(payload.member_ids), "replaced": len(replaced)},
    )
    return report


def list_reports(db: Session, celula_id: int, permission: FullPermission) -> list[Report]:
    load_celula(db, celula_id, permission)
    return (
        db.query(Report)
        .options(selectinload(Report.attendees))
        .filter(Report.celula_id == celula_id)
        .order_by(Report.created_at.desc())
        .all()
    )

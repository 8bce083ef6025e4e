from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy import select, or_
from . import models, schemas
from .errors import TemplateAccessError, TemplateConflictError, TemplateNotFoundError
from .runner import ReportRun


def _dump(items) -> list:
    return [i.model_dump(by_alias=True, mode="json") for i in items]


def create_template(
    db: Session, user_id: str, payload: schemas.TemplateCreate, is_predefined: bool = False
) -> models.ReportTemplate:
    tpl = models.ReportTemplate(
        name=payload.name,
        description=payload.description,
        category=payload.category,
        widgets=_dump(payload.widgets),
        global_filters=_dump(payload.global_filters),
        layout=payload.layout.model_dump(by_alias=True, mode="json"),
        styling=payload.styling.model_dump(by_alias=True, mode="json") if payload.styling else None,
        tags=list(payload.tags),
        is_public=payload.is_public or is_predefined,
        is_predefined=is_predefined,
        created_by=user_id,
        version=1,
    )
    db.add(tpl)
    db.commit()
    db.refresh(tpl)
    return tpl


def list_templates(db: Session, user_id: str, category: Optional[str] = None, tags: Optional[list[str]] = None):
    stmt = select(models.ReportTemplate).where(
        or_(models.ReportTemplate.created_by == user_id, models.ReportTemplate.is_public.is_(True))
    )
    if category:
        stmt = stmt.where(models.ReportTemplate.category == category)
    stmt = stmt.order_by(models.ReportTemplate.updated_at.desc())
    templates = db.execute(stmt).scalars().all()

    if tags:
        wanted = set(tags)
        templates = [t for t in templates if wanted.intersection(t.tags or [])]
    return templates


def get_template(db: Session, template_id: int):
    return db.get(models.ReportTemplate, template_id)


def get_template_by_name(db: Session, name: str):
    stmt = select(models.ReportTemplate).where(models.ReportTemplate.name == name)
    return db.execute(stmt).scalars().first()


def get_visible_template(db: Session, user_id: str, template_id: int) -> models.ReportTemplate:
    tpl = get_template(db, template_id)
    if not tpl:
        raise TemplateNotFoundError(template_id)
    if tpl.created_by != user_id and not tpl.is_public:
        raise TemplateAccessError("Access denied to this template")
    return tpl


def _check_writable(tpl: models.ReportTemplate, user_id: str) -> None:
    if tpl.is_predefined:
        raise TemplateAccessError("Predefined templates are read-only")
    if tpl.created_by != user_id:
        raise TemplateAccessError("Only the template creator can modify it")


def update_template(
    db: Session, user_id: str, tpl: models.ReportTemplate, payload: schemas.TemplateUpdate
) -> models.ReportTemplate:
    _check_writable(tpl, user_id)
    if payload.version is not None and payload.version != tpl.version:
        raise TemplateConflictError(payload.version, tpl.version)

    data = payload.model_dump(exclude_unset=True, exclude={"version"}, by_alias=False, mode="json")
    for k in ("widgets", "global_filters"):
        if k in data:
            data[k] = _dump(getattr(payload, k) or [])
    for k in ("layout", "styling"):
        if data.get(k) is not None:
            data[k] = getattr(payload, k).model_dump(by_alias=True, mode="json")
    for k, v in data.items():
        setattr(tpl, k, v)

    tpl.version += 1
    tpl.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(tpl)
    return tpl


def delete_template(db: Session, user_id: str, tpl: models.ReportTemplate) -> None:
    _check_writable(tpl, user_id)
    db.delete(tpl)
    db.commit()


def to_template_schema(tpl: models.ReportTemplate) -> schemas.TemplateOut:
    return schemas.TemplateOut(
        id=tpl.id,
        name=tpl.name,
        description=tpl.description or "",
        category=tpl.category,
        widgets=tpl.widgets or [],
        global_filters=tpl.global_filters or [],
        layout=tpl.layout or {},
        styling=tpl.styling,
        is_public=bool(tpl.is_public),
        tags=tpl.tags or [],
        is_predefined=bool(tpl.is_predefined),
        created_by=tpl.created_by,
        created_at=tpl.created_at,
        updated_at=tpl.updated_at,
        version=tpl.version,
    )


def save_report(db: Session, tpl: models.ReportTemplate, user_id: str, run: ReportRun) -> models.GeneratedReport:
    report = models.GeneratedReport(
        template_id=tpl.id,
        template_name=run.template_name,
        generated_by=user_id,
        time_range=run.time_range,
        status=run.status,
        filters=_dump(run.filters),
        data=_dump(run.widgets),
        report_metadata=run_metadata(run).model_dump(by_alias=True, mode="json"),
        notices=list(run.notices),
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    return report


def get_report(db: Session, report_id: int):
    return db.get(models.GeneratedReport, report_id)


def run_metadata(run: ReportRun) -> schemas.ReportMetadata:
    return schemas.ReportMetadata(
        total_records=run.total_records,
        alerts_in_range=run.alerts_in_range,
        execution_time=run.execution_time_ms,
        data_sources_used=run.data_sources_used,
        filters_summary=run.filters_summary,
        fallback_widgets=run.fallback_widgets,
    )

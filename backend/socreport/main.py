# backend/socreport/main.py
from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Optional

from fastapi import FastAPI, Depends, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from .config import settings
from .db import Base, engine, get_db
from . import crud
from .errors import (
    DataSourceError,
    EmptyTemplateError,
    InvalidTimeRangeError,
    ReportError,
    TemplateAccessError,
    TemplateConflictError,
    TemplateNotFoundError,
)
from .models import GeneratedReport
from .predefined import PREDEFINED_TEMPLATES
from .runner import ReportRun, run_report
from .schemas import (
    GenerateReportRequest,
    GeneratedReportOut,
    PredefinedTemplate,
    PreviewRequest,
    QueryDataRequest,
    QueryDataResponse,
    ReportRunOut,
    TemplateCreate,
    TemplateOut,
    TemplateUpdate,
    TimeRangeOut,
)
from .sources import AVAILABLE_SOURCES, DataSourceService
from .timeranges import TIME_RANGES

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache
def get_data_source() -> DataSourceService:
    return DataSourceService.from_settings(settings)


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    # authentication lives in front of this service; it forwards the caller id
    return x_user_id or "anonymous"


def _http_error(e: ReportError) -> HTTPException:
    if isinstance(e, TemplateNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, TemplateAccessError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, TemplateConflictError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, (EmptyTemplateError, InvalidTimeRangeError)):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, DataSourceError):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


def _run_out(run: ReportRun) -> dict:
    return {
        "template_name": run.template_name,
        "time_range": run.time_range,
        "status": run.status,
        "filters": run.filters,
        "data": run.widgets,
        "metadata": crud.run_metadata(run),
        "notices": run.notices,
    }


def _report_out(report: GeneratedReport) -> GeneratedReportOut:
    return GeneratedReportOut(
        id=report.id,
        template_id=report.template_id,
        template_name=report.template_name,
        generated_at=report.generated_at,
        generated_by=report.generated_by,
        time_range=report.time_range,
        status=report.status,
        filters=report.filters or [],
        data=report.data or [],
        metadata=report.report_metadata,
        notices=report.notices or [],
    )


@app.get("/health")
def health():
    return {"ok": True}


# ---------------------------
# Vocabularies
# ---------------------------

@app.get("/reports/time-ranges", response_model=List[TimeRangeOut])
def list_time_ranges():
    return [TimeRangeOut(label=label, hours=hours) for label, hours in TIME_RANGES.items()]


@app.get("/reports/data/sources")
def list_data_sources():
    return {"success": True, "data": AVAILABLE_SOURCES}


# ---------------------------
# Templates
# ---------------------------

@app.get("/reports/templates/predefined", response_model=List[PredefinedTemplate])
def list_predefined_templates():
    return PREDEFINED_TEMPLATES


@app.get("/reports/templates", response_model=List[TemplateOut])
def list_templates(
    category: Optional[str] = None,
    tags: Optional[List[str]] = Query(default=None),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    templates = crud.list_templates(db, user_id, category=category, tags=tags)
    logger.debug("Retrieved %d templates for %s", len(templates), user_id)
    return [crud.to_template_schema(t) for t in templates]


@app.post("/reports/templates", response_model=TemplateOut, status_code=201)
def create_template(
    payload: TemplateCreate,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    tpl = crud.create_template(db, user_id, payload)
    logger.info("Report template created: %s (%s)", tpl.id, tpl.name)
    return crud.to_template_schema(tpl)


@app.get("/reports/templates/{template_id}", response_model=TemplateOut)
def get_template(template_id: int, user_id: str = Depends(get_user_id), db: Session = Depends(get_db)):
    try:
        tpl = crud.get_visible_template(db, user_id, template_id)
    except ReportError as e:
        raise _http_error(e)
    return crud.to_template_schema(tpl)


@app.put("/reports/templates/{template_id}", response_model=TemplateOut)
def update_template(
    template_id: int,
    patch: TemplateUpdate,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    try:
        tpl = crud.get_visible_template(db, user_id, template_id)
        tpl = crud.update_template(db, user_id, tpl, patch)
    except ReportError as e:
        raise _http_error(e)
    logger.info("Template updated: %s (version %s)", template_id, tpl.version)
    return crud.to_template_schema(tpl)


@app.delete("/reports/templates/{template_id}")
def delete_template(template_id: int, user_id: str = Depends(get_user_id), db: Session = Depends(get_db)):
    try:
        tpl = crud.get_visible_template(db, user_id, template_id)
        crud.delete_template(db, user_id, tpl)
    except ReportError as e:
        raise _http_error(e)
    logger.info("Template deleted: %s", template_id)
    return {"deleted": True, "template_id": template_id}


# ---------------------------
# Report generation
# ---------------------------

@app.post("/reports/generate", response_model=GeneratedReportOut)
def generate_report(
    request: GenerateReportRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    source: DataSourceService = Depends(get_data_source),
):
    try:
        tpl = crud.get_visible_template(db, user_id, request.template_id)
        run = run_report(crud.to_template_schema(tpl), request.time_range, source.query, filters=request.filters)
    except ReportError as e:
        logger.error("Report generation failed: %s", e)
        raise _http_error(e)

    report = crud.save_report(db, tpl, user_id, run)
    return _report_out(report)


@app.get("/reports/generated/{report_id}", response_model=GeneratedReportOut)
def get_generated_report(report_id: int, user_id: str = Depends(get_user_id), db: Session = Depends(get_db)):
    report = crud.get_report(db, report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    try:
        crud.get_visible_template(db, user_id, report.template_id)
    except ReportError as e:
        raise _http_error(e)
    return _report_out(report)


@app.post("/reports/preview", response_model=ReportRunOut)
def preview_report(request: PreviewRequest, source: DataSourceService = Depends(get_data_source)):
    """
    Run an unsaved template (report builder preview). Nothing is persisted.
    """
    try:
        run = run_report(request.template, request.time_range, source.query, filters=request.filters)
    except ReportError as e:
        raise _http_error(e)
    return _run_out(run)


# ---------------------------
# Raw data queries
# ---------------------------

@app.post("/reports/data/query", response_model=QueryDataResponse)
def query_data(request: QueryDataRequest, source: DataSourceService = Depends(get_data_source)):
    try:
        data = source.query(request)
    except DataSourceError as e:
        logger.error("Data query against %s failed: %s", request.data_source, e)
        raise _http_error(e)
    return QueryDataResponse(data=data, total=len(data))

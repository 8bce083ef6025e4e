from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Boolean, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from .db import Base

class ReportTemplate(Base):
    __tablename__ = "report_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(256), nullable=False, index=True)
    description = Column(Text, default="")
    category = Column(String(32), default="custom")        # security/compliance/operational/executive/custom

    widgets = Column(JSON, default=list)                   # WidgetConfig dicts, camelCase
    global_filters = Column(JSON, default=list)
    layout = Column(JSON, default=lambda: {"columns": 12, "rowHeight": 100})
    styling = Column(JSON, nullable=True)
    tags = Column(JSON, default=list)

    is_public = Column(Boolean, default=False)
    is_predefined = Column(Boolean, default=False)         # system-owned, read-only
    created_by = Column(String(128), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow)
    version = Column(Integer, default=1, nullable=False)

    reports = relationship("GeneratedReport", back_populates="template", cascade="all, delete-orphan")


class GeneratedReport(Base):
    __tablename__ = "generated_reports"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("report_templates.id"), nullable=False)
    template_name = Column(String(256), nullable=False)

    generated_at = Column(DateTime, default=datetime.utcnow, index=True)
    generated_by = Column(String(128), nullable=False)
    time_range = Column(String(8), nullable=False)
    status = Column(String(32), default="ready")           # ready/ready-with-partial-errors

    filters = Column(JSON, default=list)
    data = Column(JSON, default=list)                      # WidgetData dicts
    report_metadata = Column(JSON, default=dict)
    notices = Column(JSON, default=list)

    template = relationship("ReportTemplate", back_populates="reports")

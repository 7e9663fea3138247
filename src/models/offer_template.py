"""Offer template models."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class AnalysisStatus(str, Enum):
    PENDING = "pending"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_ANALYSIS_STATUSES = {AnalysisStatus.COMPLETED.value, AnalysisStatus.FAILED.value}


class TemplateFileType(str, Enum):
    PDF = "pdf"
    DOCX = "docx"

    @property
    def media_type(self) -> str:
        if self is TemplateFileType.PDF:
            return "application/pdf"
        return "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class FieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


class FieldDataSource(str, Enum):
    BUYER = "buyer"
    PROPERTY = "property"
    AGENT = "agent"
    MANUAL = "manual"


class DetectedField(BaseModel):
    """Fillable field detected in an uploaded offer template."""
    model_config = ConfigDict(use_enum_values=True)

    field_name: str = Field(..., min_length=1)
    field_label: str = ""
    field_type: FieldType = FieldType.TEXT
    data_source: FieldDataSource = FieldDataSource.MANUAL
    is_required: bool = False
    source_field: Optional[str] = None

    @field_validator("field_type", "data_source", "is_required", mode="before")
    @classmethod
    def _null_to_default(cls, value, info):
        if value is None or value == "":
            return cls.model_fields[info.field_name].default
        return value

    def to_row(self, template_id: str) -> dict:
        return {
            "template_id": template_id,
            "field_name": self.field_name,
            "field_label": self.field_label or self.field_name,
            "field_type": self.field_type,
            "data_source": self.data_source,
            "is_required": self.is_required,
            "source_field": self.source_field or None,
        }


class OfferTemplate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    name: Optional[str] = None
    file_url: Optional[str] = None
    file_type: Optional[TemplateFileType] = None
    analysis_status: AnalysisStatus = AnalysisStatus.PENDING
    analysis_error: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class AnalyzeTemplateRequest(BaseModel):
    """Body of the template analysis endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    template_id: str = Field(..., min_length=1)
    file_url: str = Field(..., min_length=1)
    file_type: TemplateFileType
    run_async: bool = Field(False, alias="async")

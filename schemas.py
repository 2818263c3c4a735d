"""
Database Schemas for the Form Builder

Each Pydantic model corresponds to a MongoDB collection (lowercased class name).
- Form -> "form"
- Submission -> "submission"

Field names are camelCase because they are stored and served as-is.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FieldType(str, Enum):
    text = "text"
    email = "email"
    number = "number"
    textarea = "textarea"
    select = "select"
    radio = "radio"
    checkbox = "checkbox"
    date = "date"


class FormStatus(str, Enum):
    draft = "draft"
    published = "published"
    archived = "archived"


class FieldValidation(BaseModel):
    minLength: Optional[int] = Field(None, ge=0)
    maxLength: Optional[int] = Field(None, ge=0)
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = Field(None, description="Reserved, not applied by the validation rules")


class FieldStyling(BaseModel):
    width: str = "100%"
    margin: str = "0 0 1rem 0"
    padding: Optional[str] = None
    backgroundColor: Optional[str] = None
    borderColor: Optional[str] = None
    textColor: Optional[str] = None
    fontSize: Optional[str] = None


class FieldPosition(BaseModel):
    x: float
    y: float


class FormField(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    type: FieldType = Field(..., description="text, email, number, textarea, select, radio, checkbox, date")
    label: str
    placeholder: Optional[str] = None
    required: bool = False
    options: List[str] = Field(default_factory=list, description="Choices for select, radio and checkbox")
    validation: FieldValidation = Field(default_factory=FieldValidation)
    styling: FieldStyling = Field(default_factory=FieldStyling)
    position: Optional[FieldPosition] = None


class FormStyling(BaseModel):
    backgroundColor: str = "#ffffff"
    primaryColor: str = "#3B82F6"
    secondaryColor: str = "#8B5CF6"
    fontFamily: str = "Inter, sans-serif"
    fontSize: str = "16px"
    borderRadius: str = "8px"
    spacing: str = "1rem"


class FormSettings(BaseModel):
    submitText: str = "Submit"
    successMessage: str = "Thank you for your submission!"
    allowMultiple: bool = True
    requireLogin: bool = False


def _check_unique_field_ids(fields: Optional[List[FormField]]) -> None:
    if not fields:
        return
    seen = set()
    for f in fields:
        if f.id in seen:
            raise ValueError(f"Duplicate field id: {f.id}")
        seen.add(f.id)


class Form(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    fields: List[FormField] = Field(default_factory=list)
    styling: FormStyling = Field(default_factory=FormStyling)
    settings: FormSettings = Field(default_factory=FormSettings)
    status: FormStatus = FormStatus.draft
    createdBy: Optional[str] = None
    createdAt: datetime = Field(default_factory=utcnow)
    updatedAt: datetime = Field(default_factory=utcnow)
    submissionsCount: int = 0

    @model_validator(mode="after")
    def unique_field_ids(self):
        _check_unique_field_ids(self.fields)
        return self


class FormUpdate(BaseModel):
    """Partial update body; only the attributes sent are written."""

    model_config = ConfigDict(use_enum_values=True)

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    fields: Optional[List[FormField]] = None
    styling: Optional[FormStyling] = None
    settings: Optional[FormSettings] = None
    status: Optional[FormStatus] = None
    createdBy: Optional[str] = None

    @model_validator(mode="after")
    def unique_field_ids(self):
        _check_unique_field_ids(self.fields)
        return self


class Submission(BaseModel):
    formId: str
    data: Dict[str, Any]
    submittedAt: datetime = Field(default_factory=utcnow)
    ipAddress: Optional[str] = None
    userAgent: Optional[str] = None
    submittedBy: Optional[str] = None


class SubmissionRequest(BaseModel):
    data: Dict[str, Any] = Field(default_factory=dict)

"""
Scheme Records
Multi-language scheme model; a record is rejected unless every text carries every supported language
"""
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..config import SupportedLanguage

LocalizedText = Dict[SupportedLanguage, str]


def check_localized(value: LocalizedText, what: str) -> LocalizedText:
    missing = [lang.value for lang in SupportedLanguage if not (value.get(lang) or "").strip()]
    if missing:
        raise ValueError(f"{what} is missing languages: {', '.join(missing)}")
    return value


class CriterionKind(str, Enum):
    RANGE = "range"
    MEMBERSHIP = "membership"
    CUSTOM = "custom"


class CriterionSpec(BaseModel):
    """One named eligibility predicate over a single profile field"""
    model_config = ConfigDict(frozen=True)

    name: str
    field: str
    kind: CriterionKind
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    allowed: Tuple[str, ...] = ()
    predicate: Optional[str] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "CriterionSpec":
        if self.kind == CriterionKind.RANGE and self.minimum is None and self.maximum is None:
            raise ValueError(f"range criterion '{self.name}' needs a minimum or a maximum")
        if self.kind == CriterionKind.MEMBERSHIP and not self.allowed:
            raise ValueError(f"membership criterion '{self.name}' needs allowed values")
        if self.kind == CriterionKind.CUSTOM and not self.predicate:
            raise ValueError(f"custom criterion '{self.name}' needs a predicate name")
        return self


class ApplicationStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    instruction: LocalizedText

    @field_validator("instruction")
    @classmethod
    def _complete(cls, v: LocalizedText) -> LocalizedText:
        return check_localized(v, "instruction")


class Scheme(BaseModel):
    """
    Full multi-language scheme record.
    Immutable: updates go through the repository, which stores a new version.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: LocalizedText
    description: LocalizedText
    category: str = Field(min_length=1)
    criteria: Tuple[CriterionSpec, ...] = ()
    application_steps: Tuple[ApplicationStep, ...] = ()
    documents: Tuple[LocalizedText, ...] = ()
    deadline: Optional[date] = None
    website: Optional[str] = None
    version: int = Field(default=1, ge=1)

    @field_validator("name", "description")
    @classmethod
    def _complete(cls, v: LocalizedText, info) -> LocalizedText:
        return check_localized(v, info.field_name)

    @field_validator("documents")
    @classmethod
    def _complete_documents(cls, v: Tuple[LocalizedText, ...]) -> Tuple[LocalizedText, ...]:
        for doc in v:
            check_localized(doc, "document")
        return v

    @model_validator(mode="after")
    def _unique_criteria(self) -> "Scheme":
        names = [c.name for c in self.criteria]
        if len(names) != len(set(names)):
            raise ValueError("criterion names must be unique within a scheme")
        return self

    def localized(self, language: SupportedLanguage) -> "LocalizedScheme":
        """Project the record onto a single language"""
        return LocalizedScheme(
            id=self.id,
            version=self.version,
            language=language,
            name=self.name[language],
            description=self.description[language],
            category=self.category,
            criteria=self.criteria,
            application_steps=tuple(s.instruction[language] for s in self.application_steps),
            documents=tuple(d[language] for d in self.documents),
            deadline=self.deadline,
            website=self.website,
        )

    def snapshot(self) -> "Scheme":
        """Deep copy whose text maps share nothing with this record"""
        return self.model_copy(deep=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class LocalizedScheme(BaseModel):
    """Single-language view handed to the conversation layer"""
    model_config = ConfigDict(frozen=True)

    id: str
    version: int
    language: SupportedLanguage
    name: str
    description: str
    category: str
    criteria: Tuple[CriterionSpec, ...] = ()
    application_steps: Tuple[str, ...] = ()
    documents: Tuple[str, ...] = ()
    deadline: Optional[date] = None
    website: Optional[str] = None

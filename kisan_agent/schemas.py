from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _item_text(item) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        return " ".join(str(v) for v in item.values() if v is not None)
    return str(item)


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime


class ChatQuery(BaseModel):
    query: Optional[str] = ""
    language: Optional[str] = "en"


class ChatReply(BaseModel):
    response: str


class PlantDiseaseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_base64: Optional[str] = Field(default=None, alias="imageBase64")
    language: Optional[str] = "en"


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class VisionFindings(BaseModel):
    """Structured reply of the vision stage, before any narrative is added."""

    disease: str
    confidence: float = 0.0
    description: str = ""
    symptoms: List[str]
    treatment: List[str] = Field(default_factory=list)
    prevention: List[str] = Field(default_factory=list)

    @field_validator("disease")
    @classmethod
    def _disease_present(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("disease must not be empty")
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence_number(cls, v):
        if v is None:
            return 0.0
        if isinstance(v, bool):
            raise ValueError("confidence must be numeric")
        return v

    @field_validator("confidence")
    @classmethod
    def _confidence_range(cls, v: float) -> float:
        # models sometimes answer 85 instead of 0.85; 1 < v < 2 stays out of range
        if 2.0 <= v <= 100.0:
            v = v / 100.0
        if not 0.0 <= v <= 1.0:
            raise ValueError("confidence must be within [0, 1]")
        return v

    @field_validator("description", mode="before")
    @classmethod
    def _description_text(cls, v):
        return "" if v is None else v

    @field_validator("symptoms", "treatment", "prevention", mode="before")
    @classmethod
    def _items_as_text(cls, v, info):
        if v is None and info.field_name != "symptoms":
            return []
        if isinstance(v, str) and info.field_name != "symptoms":
            return [v]
        if not isinstance(v, (list, tuple)):
            # symptoms must arrive as a sequence
            return v
        return [_item_text(item) for item in v if item is not None]


class DiseaseAnalysis(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    disease: str
    confidence: float
    description: str = ""
    symptoms: List[str] = Field(default_factory=list)
    treatment: List[str] = Field(default_factory=list)
    prevention: List[str] = Field(default_factory=list)
    ai_generated_treatment: str = ""
    analysis_timestamp: str
    language: str = "en"
    fallback_mode: bool = False

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

SearchType = Literal["rag", "web"]


class ChatRequest(BaseModel):
    message: StrictStr = Field(..., min_length=1, description="User question")
    search_type: SearchType = Field(
        default="rag",
        alias="searchType",
        description="'web' for the general research assistant, anything else for the space biology corpus",
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @field_validator("search_type", mode="before")
    @classmethod
    def _normalize_search_type(cls, value: Any) -> SearchType:
        return "web" if value == "web" else "rag"


class ErrorResponse(BaseModel):
    error: str

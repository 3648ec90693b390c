"""Wire models for the analyze endpoint."""

from pydantic import BaseModel

from recipe_ingest.domain.recipes import Ingredient


class AnalyzeResponse(BaseModel):
    """Successful extraction result."""

    data: list[Ingredient]


class ErrorBody(BaseModel):
    """Error payload returned for every failure."""

    error: str
    code: str | None = None
    details: str | None = None

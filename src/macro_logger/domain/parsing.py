"""Models for AI parse results."""

from pydantic import BaseModel, Field, field_validator

from macro_logger.domain.entries import DEFAULT_MEAL_LABEL


class ParsedItem(BaseModel):
    """Single food item returned by the AI parser."""

    description: str
    calories: float = Field(ge=0)
    protein_g: float = Field(ge=0)
    carbs_g: float = Field(ge=0)
    fat_g: float = Field(ge=0)
    warning: str | None = None


class ParseResult(BaseModel):
    """Structured output of a parse or refine request."""

    meal_label: str = DEFAULT_MEAL_LABEL
    items: list[ParsedItem]

    @field_validator("meal_label", mode="before")
    @classmethod
    def _default_label(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_MEAL_LABEL
        return value

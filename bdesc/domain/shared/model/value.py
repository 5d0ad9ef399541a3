from pydantic import BaseModel, ConfigDict


class ValueObject(BaseModel):
    """Immutable pydantic model, equal by value."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

from pydantic import BaseModel, ConfigDict


class Entity(BaseModel):
    """Domain object with identity. Field assignments are re-validated."""

    model_config = ConfigDict(validate_assignment=True)


class Aggregate(Entity):
    """Consistency boundary persisted as a single document/row."""

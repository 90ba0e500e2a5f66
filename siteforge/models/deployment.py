"""Deployment data models."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# Owner and project ids become path segments and key segments
SCOPE_ID_PATTERN = r"^[A-Za-z0-9_-][A-Za-z0-9._-]{0,99}$"


class DeploymentRequest(BaseModel):
    """A deploy call, immutable once accepted."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source_location: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("sourceLocation", "source_location", "repoUrl"),
    )
    owner_id: str = Field(
        default="anon",
        pattern=SCOPE_ID_PATTERN,
        validation_alias=AliasChoices("ownerId", "owner_id", "user"),
    )
    project_id: str = Field(
        default="demo",
        pattern=SCOPE_ID_PATTERN,
        validation_alias=AliasChoices("projectId", "project_id", "project"),
    )

    @field_validator("source_location")
    @classmethod
    def _strip_source(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("sourceLocation must not be blank")
        return value

    @property
    def scope(self) -> tuple[str, str]:
        return (self.owner_id, self.project_id)


class DeploymentResult(BaseModel):
    """Result of a completed deployment."""

    owner_id: str
    project_id: str
    url: str
    degraded: bool = False
    strategy: str | None = None
    uploaded: int = 0
    duration_ms: int = 0


class DeployResponse(BaseModel):
    """Response body for POST /deploy."""

    message: str
    url: str
    degraded: bool = False


class ErrorResponse(BaseModel):
    """Terse failure body; never carries internal detail."""

    error: str

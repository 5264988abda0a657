"""Domain models using Pydantic for validation."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ServiceInstance(BaseModel):
    """One running copy of a named service.

    The JSON shape (``id``, ``name``, ``version``, ``metadata``,
    ``endpoints``) is shared with every other process reading the registry,
    so field names double as the wire keys.
    """

    model_config = ConfigDict(
        extra="ignore",  # Records written by newer peers may carry more fields
        validate_assignment=True,
        json_schema_extra={
            "example": {
                "id": "orders-7f9c",
                "name": "orders",
                "version": "v1.4.2",
                "metadata": {"region": "eu-west-1"},
                "endpoints": ["grpc://10.0.0.12:9000", "http://10.0.0.12:8000"],
            }
        },
    )

    id: str = Field(default="", description="Instance identifier, unique within a service")
    name: str = Field(default="", description="Service name")
    version: str = Field(default="", description="Service version")
    metadata: dict[str, str] = Field(default_factory=dict, description="Instance metadata")
    endpoints: list[str] = Field(default_factory=list, description="Endpoint URLs")

    @field_validator("metadata", mode="before")
    @classmethod
    def validate_metadata(cls, v: object) -> object:
        """Treat a JSON ``null`` metadata map as empty."""
        return {} if v is None else v

    @field_validator("endpoints", mode="before")
    @classmethod
    def validate_endpoints(cls, v: object) -> object:
        """Treat a JSON ``null`` endpoint list as empty."""
        return [] if v is None else v

    def is_addressable(self) -> bool:
        """Check the instance carries the identity needed to be registered."""
        return bool(self.name) and bool(self.id)

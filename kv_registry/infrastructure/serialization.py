"""JSON serialization of service instances."""

import json

from pydantic import ValidationError as PydanticValidationError

from ..domain.exceptions import SerializationError
from ..domain.models import ServiceInstance


def encode_instance(instance: ServiceInstance) -> str:
    """Serialize a service instance to its stored JSON text."""
    try:
        return instance.model_dump_json()
    except Exception as e:
        raise SerializationError(f"Failed to serialize instance {instance.id!r}: {e}") from e


def decode_instance(data: str | bytes) -> ServiceInstance:
    """Deserialize stored JSON text into a service instance."""
    try:
        text = data.decode() if isinstance(data, bytes) else data
    except UnicodeDecodeError as e:
        raise SerializationError(f"Stored value is not valid UTF-8: {e}") from e
    if not text or text.isspace():
        raise SerializationError("Empty or whitespace-only JSON data")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise SerializationError(f"Invalid JSON format: {e}") from e
    if not isinstance(payload, dict):
        raise SerializationError(f"Expected a JSON object, got {type(payload).__name__}")
    try:
        return ServiceInstance.model_validate(payload)
    except PydanticValidationError as e:
        raise SerializationError(f"Failed to deserialize service instance: {e}") from e

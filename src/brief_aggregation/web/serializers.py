"""
Serializer functions for converting models to dictionaries.

ORM rows are turned into plain dicts here; pydantic responses are dumped
with ``model_dump(mode="json")``.
"""

from datetime import datetime
from typing import Any, Callable, Optional

from flask import jsonify
from pydantic import BaseModel

from brief_aggregation.logger import get_logger

logger = get_logger(__name__)


def serialize_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to ISO format string, or None."""
    return dt.isoformat() if dt else None


def feed_source_to_dict(source) -> dict:
    """Convert FeedSourceModel to dictionary."""
    return {
        "id": source.id,
        "name": source.name,
        "url": source.url,
        "type": source.type,
        "category": source.category,
        "favicon_url": source.favicon_url,
        "channel_id": source.channel_id,
        "is_active": source.is_active,
        "disabled_reason": source.disabled_reason,
        "last_fetched_at": serialize_datetime(source.last_fetched_at),
        "created_at": serialize_datetime(source.created_at),
        "updated_at": serialize_datetime(source.updated_at),
    }


def subscription_to_dict(subscription) -> dict:
    return {
        "id": subscription.id,
        "subscriber_id": subscription.subscriber_id,
        "feed_source_id": subscription.feed_source_id,
        "is_active": subscription.is_active,
        "created_at": serialize_datetime(subscription.created_at),
    }


def content_error_to_dict(error) -> dict:
    return {
        "id": error.id,
        "feed_source_id": error.feed_source_id,
        "error_type": error.error_type,
        "error_message": error.error_message,
        "timestamp": serialize_datetime(error.timestamp),
        "retry_count": error.retry_count,
    }


def feed_health_to_dict(health) -> dict:
    """Convert a FeedHealth report to dictionary."""
    return {
        "feed_source_id": health.feed_source_id,
        "is_active": health.is_active,
        "should_disable": health.should_disable,
        "disabled_reason": health.disabled_reason,
        "recent_errors": [content_error_to_dict(e) for e in health.recent_errors],
    }


def source_health_to_dict(health) -> dict:
    return {
        "total_sources": health.total_sources,
        "active_sources": health.active_sources,
        "error_sources": health.error_sources,
        "checked_at": serialize_datetime(health.checked_at),
    }


def ingest_result_to_dict(result) -> dict:
    """Fetch trigger payload: raw items processed and items newly stored."""
    return {
        "processed": result.processed,
        "newItems": result.new_items,
        "duplicates": result.duplicates,
        "errors": result.errors,
        "feedSources": result.sources,
        "suspended": list(result.suspended),
    }


def schema_to_dict(schema: BaseModel) -> dict:
    """Dump a pydantic response model with JSON-safe values."""
    return schema.model_dump(mode="json")


def api_response(
    success: bool = True,
    data: Any = None,
    message: Optional[str] = None,
    error: Optional[str] = None,
    status: int = 200,
) -> tuple:
    """Standard API response format.

    Args:
        success: Whether the request was successful
        data: Response data
        message: Success message
        error: Error message
        status: HTTP status code

    Returns:
        Flask response with JSON data
    """
    response_data = {
        "success": success,
        "data": data,
        "message": message,
        "error": error,
    }
    return jsonify(response_data), status


class SerializerRegistry:
    """Registry of model serializers keyed by model type.

    Usage:
        data = SerializerRegistry.serialize("feed_source", source)
    """

    _serializers: dict[str, Callable] = {
        "feed_source": feed_source_to_dict,
        "subscription": subscription_to_dict,
        "content_error": content_error_to_dict,
    }

    @classmethod
    def register(cls, model_type: str, serializer_func: Callable) -> None:
        """Register or replace the serializer for ``model_type``."""
        if model_type in cls._serializers:
            logger.warning(f"Serializer for '{model_type}' is being overwritten")
        cls._serializers[model_type] = serializer_func

    @classmethod
    def serialize(cls, model_type: str, model: Any, **kwargs) -> dict:
        """Serialize a model using the registered serializer.

        Raises:
            ValueError: If no serializer is registered for the model type
        """
        serializer = cls._serializers.get(model_type)
        if not serializer:
            raise ValueError(f"No serializer registered for model type: '{model_type}'")
        return serializer(model, **kwargs)

    @classmethod
    def serialize_list(cls, model_type: str, models: list[Any], **kwargs) -> list[dict]:
        return [cls.serialize(model_type, model, **kwargs) for model in models]

    @classmethod
    def has_serializer(cls, model_type: str) -> bool:
        return model_type in cls._serializers

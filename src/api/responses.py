"""JSON response shapes shared by the routes."""

from typing import Any, Iterable

from pydantic import BaseModel

from src.db.crud import PageResult


def serialize(schema: type[BaseModel], instance: Any) -> dict[str, Any]:
    return schema.model_validate(instance).model_dump(mode="json")


def serialize_many(schema: type[BaseModel], instances: Iterable[Any]) -> list[dict[str, Any]]:
    return [serialize(schema, instance) for instance in instances]


def envelope(data: Any = None, message: str = "Operation completed successfully", success: bool = True) -> dict[str, Any]:
    """Wrap a single-object result as `{success, message, data}`."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    return {"success": success, "message": message, "data": data}


def paginated(page: PageResult, schema: type[BaseModel]) -> dict[str, Any]:
    return page.to_dict(lambda item: serialize(schema, item))

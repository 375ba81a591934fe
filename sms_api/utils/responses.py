# sms_api/utils/responses.py
"""Success envelopes shared by every router."""
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel


def serialize(schema: Type[BaseModel], obj: Any) -> Dict[str, Any]:
    return schema.model_validate(obj).model_dump(mode="json")


def success_response(data: Any, message: Optional[str] = None, **extra) -> Dict[str, Any]:
    response = {"status": "success", "data": {"data": data}}
    if message:
        response["message"] = message
    response.update(extra)
    return response

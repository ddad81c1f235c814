# app/schemas/common.py
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class Envelope(BaseModel, Generic[DataT]):
    """
    Success envelope shared by every endpoint:

        {"status": "success", "data": ...}
    """

    status: Literal["success"] = "success"
    data: DataT


class MessageResponse(BaseModel):
    """Success envelope for endpoints that only report an outcome."""

    status: Literal["success"] = "success"
    message: str


def ok(data) -> dict:
    return {"status": "success", "data": data}


def message(text: str) -> dict:
    return {"status": "success", "message": text}

"""Response envelope shared by every endpoint."""

from typing import Generic, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """`{success, message, data}` wrapper for successful responses."""

    success: bool = True
    message: str | None = None
    data: DataT | None = None

from typing import Optional, TypeVar, Generic

from pydantic import BaseModel, Field


T = TypeVar("T")


class ResponseCommon(BaseModel, Generic[T]):
    """
    Standard API response wrapper
    """

    code: int = Field(default=200, description="HTTP status code")
    success: bool = Field(default=True, description="Whether request was successful")
    message: str = Field(default="SUCCESSFULLY", description="Response message")
    data: Optional[T] = Field(default=None, description="Response data")

import json
from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import Response

from cnote.common.exceptions import CnoteError
from cnote.schemas.response import ResponseCommon as ResponseCommonSchema


class ResponseCommon(ResponseCommonSchema):
    data: Optional[Any] = None

    def to_json(self) -> dict:
        return jsonable_encoder(self)

    def to_response(self) -> Response:
        return Response(
            content=json.dumps(self.to_json()),
            status_code=self.code,
            media_type="application/json",
        )

    @classmethod
    def success_response(
        cls,
        data: Optional[Any] = None,
        message: str = "SUCCESSFULLY",
        code: int = status.HTTP_200_OK,
    ) -> "ResponseCommon":
        return cls(code=code, success=True, message=message, data=data)

    @classmethod
    def error_response(
        cls,
        message: str,
        code: int = status.HTTP_400_BAD_REQUEST,
        data: Optional[Any] = None,
    ) -> "ResponseCommon":
        return cls(code=code, success=False, message=message, data=data)

    @classmethod
    def from_exception(cls, exc: CnoteError) -> "ResponseCommon":
        data = dict(exc.details) or None
        if getattr(exc, "retryable", False):
            data = {**(data or {}), "retryable": True}
        return cls.error_response(message=exc.message, code=exc.http_status, data=data)

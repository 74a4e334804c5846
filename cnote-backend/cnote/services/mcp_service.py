import logging
from typing import Any, Callable, Dict, Type

from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from cnote.common.exceptions import CnoteError, InvalidRequestError, ToolExecutionError
from cnote.schemas.mcp import McpRequest, PromptGetParams, ResourceReadParams, ToolCallParams
from cnote.services.note_tools_service import SCOPE_CLASSES, NoteToolScope, ToolScope

logger = logging.getLogger(__name__)


def _parse_params(model: Type[BaseModel], params: Dict[str, Any]) -> BaseModel:
    try:
        return model.model_validate(params or {})
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise InvalidRequestError(
            f"Invalid params: {first.get('msg')}",
            field=f"params.{field}" if field else "params",
        ) from exc


class McpService:
    """Method dispatch for the tool-protocol endpoint of one scope."""

    def __init__(self):
        self._methods: Dict[str, Callable[[NoteToolScope, Dict[str, Any]], Any]] = {
            "initialize": self._initialize,
            "resources/list": self._list_resources,
            "resources/read": self._read_resource,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
            "prompts/list": self._list_prompts,
            "prompts/get": self._get_prompt,
        }

    def server_info(self, scope: ToolScope) -> dict:
        return SCOPE_CLASSES[scope](None, None).server_info()

    def handle(self, db: Session, user_id: int, scope: ToolScope, request: McpRequest) -> Any:
        handler = self._methods.get(request.method)
        if handler is None:
            raise InvalidRequestError(f"Unknown method: {request.method}", field="method")
        logger.info("Tool-protocol %s/%s for user %s", scope.value, request.method, user_id)
        return handler(SCOPE_CLASSES[scope](db, user_id), request.params)

    @staticmethod
    def _initialize(tools: NoteToolScope, params: Dict[str, Any]) -> dict:
        return tools.server_info()

    @staticmethod
    def _list_resources(tools: NoteToolScope, params: Dict[str, Any]) -> dict:
        return {"resources": tools.list_resources()}

    @staticmethod
    def _read_resource(tools: NoteToolScope, params: Dict[str, Any]) -> dict:
        parsed = _parse_params(ResourceReadParams, params)
        return tools.read_resource(parsed.uri)

    @staticmethod
    def _list_tools(tools: NoteToolScope, params: Dict[str, Any]) -> dict:
        return {"tools": tools.list_tools()}

    @staticmethod
    def _call_tool(tools: NoteToolScope, params: Dict[str, Any]) -> Any:
        parsed = _parse_params(ToolCallParams, params)
        try:
            return tools.call_tool(parsed.name, parsed.arguments)
        except (InvalidRequestError, ToolExecutionError):
            raise
        except CnoteError as exc:
            raise ToolExecutionError(exc.message, tool=parsed.name, details=exc.details) from exc

    @staticmethod
    def _list_prompts(tools: NoteToolScope, params: Dict[str, Any]) -> dict:
        return {"prompts": tools.list_prompts()}

    @staticmethod
    def _get_prompt(tools: NoteToolScope, params: Dict[str, Any]) -> dict:
        parsed = _parse_params(PromptGetParams, params)
        return tools.get_prompt(parsed.name, parsed.arguments)


mcp_service = McpService()

"""
Note tools exposed to the chat model and the tool-protocol endpoint.

Two capability sets share one interface (``NoteToolScope``): the private
scope reads the caller's own notes, the shared scope reads notes other users
shared with the caller. ``ToolRegistry`` binds every namespaced tool name to
its scope and spec once, at construction.
"""
import abc
import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Type

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy import or_
from sqlalchemy.orm import Session

from cnote.common.constants import AIPrompts, Common, McpConfig
from cnote.common.exceptions import (
    AccessDeniedError,
    CnoteError,
    InvalidRequestError,
    NotFoundOrForbiddenError,
    ToolExecutionError,
)
from cnote.common.utils import make_excerpt
from cnote.config import settings
from cnote.db.session import SessionLocal
from cnote.models import Note, NoteShare, User
from cnote.schemas.chat import ToolError, ToolInvocation, ToolResult

logger = logging.getLogger(__name__)


class ToolScope(str, Enum):
    PRIVATE = "private"
    SHARED = "shared"


# Argument models

class SearchNotesArgs(BaseModel):
    query: str = Field(..., min_length=1, description="Search query (keywords)")
    limit: int = Field(
        Common.DEFAULT_SEARCH_LIMIT,
        ge=1,
        le=Common.MAX_TOOL_LIMIT,
        description="Maximum number of results (default: 5)",
    )


class GetNoteArgs(BaseModel):
    note_id: int = Field(..., description="The ID of the note to retrieve")


class ListRecentNotesArgs(BaseModel):
    limit: int = Field(
        Common.DEFAULT_RECENT_LIMIT,
        ge=1,
        le=Common.MAX_TOOL_LIMIT,
        description="Number of notes to return (default: 10)",
    )


class ListSharedNotesArgs(BaseModel):
    limit: int = Field(
        Common.DEFAULT_SHARED_LIMIT,
        ge=1,
        le=Common.MAX_TOOL_LIMIT,
        description="Number of notes to return (default: 20)",
    )


class ListByFriendArgs(BaseModel):
    friend_handle: str = Field(..., min_length=1, description="Username of the friend")
    limit: int = Field(
        Common.DEFAULT_SHARED_LIMIT,
        ge=1,
        le=Common.MAX_TOOL_LIMIT,
        description="Number of notes to return (default: 20)",
    )


_JSON_TYPES = {"string", "integer", "number", "boolean", "array", "object"}


class ToolSpec:
    """Name, description and argument model of one tool."""

    def __init__(self, name: str, description: str, args_model: Type[BaseModel], handler: str):
        self.name = name
        self.description = description
        self.args_model = args_model
        self.handler = handler

    def parameters_schema(self) -> dict:
        schema = self.args_model.model_json_schema()
        properties = {}
        for field_name, field_schema in schema.get("properties", {}).items():
            field_type = field_schema.get("type")
            properties[field_name] = {
                "type": field_type if field_type in _JSON_TYPES else "string",
                "description": field_schema.get("description", ""),
            }
        return {
            "type": "object",
            "properties": properties,
            "required": list(schema.get("required", [])),
        }

    def parse_arguments(self, arguments: Optional[Dict[str, Any]]) -> BaseModel:
        try:
            return self.args_model.model_validate(arguments or {})
        except ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ())) or None
            raise InvalidRequestError(
                f"Invalid arguments for {self.name}: {first.get('msg')}",
                field=field,
            ) from exc


def _note_summary(note: Note) -> dict:
    return {
        "id": note.id,
        "title": note.title,
        "excerpt": make_excerpt(note.content),
        "updated_at": note.updated_at,
    }


def _like_pattern(query: str) -> str:
    """Substring pattern with LIKE wildcards in the query taken literally."""
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _parse_resource_id(uri: str, scheme: str) -> int:
    if not uri or not uri.startswith(scheme):
        raise NotFoundOrForbiddenError("Resource not found or access denied")
    try:
        return int(uri[len(scheme):])
    except ValueError:
        raise NotFoundOrForbiddenError("Resource not found or access denied")


class NoteToolScope(abc.ABC):
    """One capability set, bound to a database session and a caller."""

    scope: ToolScope
    server_name: str
    uri_scheme: str
    TOOLS: tuple = ()
    PROMPTS: tuple = ()

    def __init__(self, db: Session, user_id: int):
        self.db = db
        self.user_id = user_id

    @classmethod
    def get_tool(cls, name: str) -> ToolSpec:
        for spec in cls.TOOLS:
            if spec.name == name:
                return spec
        raise ToolExecutionError(f"Unknown tool: {name}", tool=name)

    @classmethod
    def list_tools(cls) -> List[dict]:
        return [
            {
                "name": spec.name,
                "description": spec.description,
                "inputSchema": spec.parameters_schema(),
            }
            for spec in cls.TOOLS
        ]

    @classmethod
    def list_prompts(cls) -> List[dict]:
        return [dict(prompt) for prompt in cls.PROMPTS]

    def server_info(self) -> dict:
        return {
            "name": self.server_name,
            "version": McpConfig.SERVER_VERSION,
            "protocolVersion": McpConfig.PROTOCOL_VERSION,
            "capabilities": {"resources": True, "tools": True, "prompts": True},
        }

    def run(self, spec: ToolSpec, arguments: Optional[Dict[str, Any]]) -> Any:
        args = spec.parse_arguments(arguments)
        handler: Callable[[BaseModel], Any] = getattr(self, spec.handler)
        return jsonable_encoder(handler(args))

    def call_tool(self, name: str, arguments: Optional[Dict[str, Any]]) -> Any:
        return self.run(self.get_tool(name), arguments)

    def get_prompt(self, name: str, arguments: Optional[Dict[str, Optional[str]]]) -> dict:
        prompt = next((p for p in self.PROMPTS if p["name"] == name), None)
        if prompt is None:
            raise InvalidRequestError(f"Unknown prompt: {name}", field="name")
        arguments = arguments or {}
        for argument in prompt["arguments"]:
            if argument["required"] and not arguments.get(argument["name"]):
                raise InvalidRequestError(
                    f"Missing required argument: {argument['name']}",
                    field=f"arguments.{argument['name']}",
                )
        content = getattr(self, f"_prompt_{name}")(arguments)
        return {"messages": [{"role": "user", "content": content}]}

    @abc.abstractmethod
    def list_resources(self) -> List[dict]:
        """Resources of this scope readable by the caller."""

    @abc.abstractmethod
    def read_resource(self, uri: str) -> dict:
        """Markdown rendering of one resource; unknown or unreadable URIs raise."""


class PrivateNoteTools(NoteToolScope):
    """Tools over the caller's own notes."""

    scope = ToolScope.PRIVATE
    server_name = McpConfig.PRIVATE_SERVER_NAME
    uri_scheme = McpConfig.PRIVATE_URI_SCHEME

    TOOLS = (
        ToolSpec(
            "search_notes",
            "Search personal notes by keyword in title or content",
            SearchNotesArgs,
            "search_notes",
        ),
        ToolSpec(
            "get_note",
            "Get full content of a specific personal note by ID",
            GetNoteArgs,
            "get_note",
        ),
        ToolSpec(
            "list_recent_notes",
            "List most recently updated personal notes",
            ListRecentNotesArgs,
            "list_recent_notes",
        ),
    )

    PROMPTS = (
        {
            "name": "summarize_notes",
            "description": "Generate a summary of all notes",
            "arguments": [
                {"name": "focus", "description": "Optional focus area for the summary", "required": False},
            ],
        },
        {
            "name": "find_related",
            "description": "Find notes related to a specific topic",
            "arguments": [
                {"name": "topic", "description": "The topic to find related notes for", "required": True},
            ],
        },
    )

    def _own_notes(self):
        return self.db.query(Note).filter(Note.user_id == self.user_id)

    def _get_own_note(self, note_id: int) -> Note:
        note = self._own_notes().filter(Note.id == note_id).first()
        if not note:
            raise NotFoundOrForbiddenError("Note not found", details={"note_id": note_id})
        return note

    def search_notes(self, args: SearchNotesArgs) -> dict:
        pattern = _like_pattern(args.query)
        notes = (
            self._own_notes()
            .filter(
                or_(
                    Note.title.ilike(pattern, escape="\\"),
                    Note.content.ilike(pattern, escape="\\"),
                )
            )
            .order_by(Note.updated_at.desc(), Note.id.desc())
            .limit(args.limit)
            .all()
        )
        return {"results": [_note_summary(note) for note in notes]}

    def get_note(self, args: GetNoteArgs) -> dict:
        note = self._get_own_note(args.note_id)
        return {
            "id": note.id,
            "title": note.title,
            "content": note.content,
            "is_shared": note.is_shared,
            "created_at": note.created_at,
            "updated_at": note.updated_at,
        }

    def list_recent_notes(self, args: ListRecentNotesArgs) -> dict:
        notes = (
            self._own_notes()
            .order_by(Note.updated_at.desc(), Note.id.desc())
            .limit(args.limit)
            .all()
        )
        return {"notes": [_note_summary(note) for note in notes]}

    def list_resources(self) -> List[dict]:
        notes = self._own_notes().order_by(Note.updated_at.desc()).all()
        return [
            {
                "uri": f"{self.uri_scheme}{note.id}",
                "name": note.title,
                "description": f"Personal note created {note.created_at:%Y-%m-%d}",
                "mimeType": McpConfig.MARKDOWN_MIME_TYPE,
            }
            for note in notes
        ]

    def read_resource(self, uri: str) -> dict:
        note = self._get_own_note(_parse_resource_id(uri, self.uri_scheme))
        markdown = (
            f"# {note.title}\n\n"
            f"{note.content}\n\n"
            "---\n"
            f"*Created: {note.created_at:%Y-%m-%d %H:%M:%S}*\n"
            f"*Updated: {note.updated_at:%Y-%m-%d %H:%M:%S}*\n"
        )
        return {"contents": markdown, "mimeType": McpConfig.MARKDOWN_MIME_TYPE}

    def _prompt_summarize_notes(self, arguments: dict) -> str:
        notes = (
            self._own_notes()
            .order_by(Note.updated_at.desc())
            .limit(McpConfig.SUMMARY_NOTES_LIMIT)
            .all()
        )
        notes_text = "\n\n".join(f"## {note.title}\n{note.content}" for note in notes)
        return AIPrompts.SUMMARIZE_NOTES_PROMPT.format(
            focus=arguments.get("focus") or "all topics",
            notes_text=notes_text,
        )

    def _prompt_find_related(self, arguments: dict) -> str:
        return AIPrompts.FIND_RELATED_PROMPT.format(topic=arguments["topic"])


class SharedNoteTools(NoteToolScope):
    """Tools over notes other users shared with the caller."""

    scope = ToolScope.SHARED
    server_name = McpConfig.SHARED_SERVER_NAME
    uri_scheme = McpConfig.SHARED_URI_SCHEME

    TOOLS = (
        ToolSpec(
            "search_notes",
            "Search notes shared with you by keyword",
            SearchNotesArgs,
            "search_notes",
        ),
        ToolSpec(
            "get_shared_note",
            "Get full content of a specific shared note by ID",
            GetNoteArgs,
            "get_shared_note",
        ),
        ToolSpec(
            "list_shared_notes",
            "List all notes shared with you",
            ListSharedNotesArgs,
            "list_shared_notes",
        ),
        ToolSpec(
            "list_by_friend",
            "List notes shared with you by a specific friend",
            ListByFriendArgs,
            "list_by_friend",
        ),
    )

    PROMPTS = (
        {
            "name": "summarize_shared",
            "description": "Generate a summary of notes shared with you",
            "arguments": [
                {
                    "name": "friend_handle",
                    "description": "Optional: focus on notes from a specific friend",
                    "required": False,
                },
            ],
        },
        {
            "name": "compare_perspectives",
            "description": "Compare your notes with shared notes on a topic",
            "arguments": [
                {"name": "topic", "description": "The topic to compare", "required": True},
            ],
        },
    )

    def _shared_rows(self):
        return (
            self.db.query(Note, NoteShare, User)
            .select_from(Note)
            .join(NoteShare, NoteShare.note_id == Note.id)
            .join(User, Note.user_id == User.id)
            .filter(NoteShare.shared_with_user_id == self.user_id)
            .order_by(Note.updated_at.desc(), Note.id.desc())
        )

    def _get_shared_row(self, note_id: int):
        row = self._shared_rows().filter(Note.id == note_id).first()
        if row is None:
            raise AccessDeniedError(
                "You do not have access to this note",
                details={"note_id": note_id},
            )
        return row

    @staticmethod
    def _shared_summary(note: Note, share: NoteShare, owner: User, with_owner: bool = True) -> dict:
        summary = _note_summary(note)
        if with_owner:
            summary["owner"] = owner.username
        summary["permission"] = share.permission
        return summary

    def search_notes(self, args: SearchNotesArgs) -> dict:
        pattern = _like_pattern(args.query)
        rows = (
            self._shared_rows()
            .filter(
                or_(
                    Note.title.ilike(pattern, escape="\\"),
                    Note.content.ilike(pattern, escape="\\"),
                )
            )
            .limit(args.limit)
            .all()
        )
        return {"results": [self._shared_summary(*row) for row in rows]}

    def get_shared_note(self, args: GetNoteArgs) -> dict:
        note, share, owner = self._get_shared_row(args.note_id)
        return {
            "id": note.id,
            "title": note.title,
            "content": note.content,
            "owner": owner.username,
            "owner_display_name": owner.display_name,
            "permission": share.permission,
            "created_at": note.created_at,
            "updated_at": note.updated_at,
        }

    def list_shared_notes(self, args: ListSharedNotesArgs) -> dict:
        rows = self._shared_rows().limit(args.limit).all()
        return {"notes": [self._shared_summary(*row) for row in rows]}

    def list_by_friend(self, args: ListByFriendArgs) -> dict:
        rows = (
            self._shared_rows()
            .filter(User.username == args.friend_handle)
            .limit(args.limit)
            .all()
        )
        return {"notes": [self._shared_summary(*row, with_owner=False) for row in rows]}

    def list_resources(self) -> List[dict]:
        return [
            {
                "uri": f"{self.uri_scheme}{note.id}",
                "name": note.title,
                "description": f"Shared by {owner.username} ({share.permission})",
                "mimeType": McpConfig.MARKDOWN_MIME_TYPE,
            }
            for note, share, owner in self._shared_rows().all()
        ]

    def read_resource(self, uri: str) -> dict:
        note, share, owner = self._get_shared_row(_parse_resource_id(uri, self.uri_scheme))
        markdown = (
            f"# {note.title}\n\n"
            f"{note.content}\n\n"
            "---\n"
            f"*Shared by: {owner.display_name or owner.username} (@{owner.username})*\n"
            f"*Permission: {share.permission}*\n"
            f"*Created: {note.created_at:%Y-%m-%d %H:%M:%S}*\n"
            f"*Updated: {note.updated_at:%Y-%m-%d %H:%M:%S}*\n"
        )
        return {"contents": markdown, "mimeType": McpConfig.MARKDOWN_MIME_TYPE}

    def _prompt_summarize_shared(self, arguments: dict) -> str:
        friend_handle = arguments.get("friend_handle")
        query = self._shared_rows()
        if friend_handle:
            query = query.filter(User.username == friend_handle)
        notes_text = "\n\n".join(
            f"## {note.title} (by @{owner.username})\n{note.content}"
            for note, _share, owner in query.limit(McpConfig.SUMMARY_NOTES_LIMIT).all()
        )
        focus = f"notes shared by @{friend_handle}" if friend_handle else "all shared notes"
        return AIPrompts.SUMMARIZE_SHARED_PROMPT.format(focus=focus, notes_text=notes_text)

    def _prompt_compare_perspectives(self, arguments: dict) -> str:
        return AIPrompts.COMPARE_PERSPECTIVES_PROMPT.format(topic=arguments["topic"])


SCOPE_CLASSES: Dict[ToolScope, Type[NoteToolScope]] = {
    ToolScope.PRIVATE: PrivateNoteTools,
    ToolScope.SHARED: SharedNoteTools,
}


class ToolBinding(NamedTuple):
    scope: ToolScope
    spec: ToolSpec


class ToolRegistry:
    """
    Namespaced view over every scope, used by the chat orchestrator.

    Each call runs in a worker thread with its own session and never raises:
    failures come back as the error payload of that call's ``ToolResult``.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        timeout_seconds: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.timeout_seconds = timeout_seconds or settings.TOOL_TIMEOUT_SECONDS
        self._bindings: Dict[str, ToolBinding] = {}
        for scope, scope_class in SCOPE_CLASSES.items():
            for spec in scope_class.TOOLS:
                self._bindings[f"{scope.value}_{spec.name}"] = ToolBinding(scope, spec)

    @property
    def tool_names(self) -> List[str]:
        return list(self._bindings)

    def binding_for(self, name: str) -> Optional[ToolBinding]:
        return self._bindings.get(name)

    def schemas(self) -> List[dict]:
        return [
            {
                "name": name,
                "description": f"[{binding.scope.value}] {binding.spec.description}",
                "parameters": binding.spec.parameters_schema(),
            }
            for name, binding in self._bindings.items()
        ]

    def _run(self, binding: ToolBinding, user_id: int, arguments: Dict[str, Any]) -> Any:
        db = self.session_factory()
        try:
            return SCOPE_CLASSES[binding.scope](db, user_id).run(binding.spec, arguments)
        finally:
            db.close()

    async def execute(self, user_id: int, invocation: ToolInvocation) -> ToolResult:
        started = time.time()
        binding = self._bindings.get(invocation.name)
        try:
            if binding is None:
                raise ToolExecutionError(f"Unknown tool: {invocation.name}", tool=invocation.name)
            payload = await asyncio.wait_for(
                asyncio.to_thread(self._run, binding, user_id, invocation.arguments),
                timeout=self.timeout_seconds,
            )
            error = None
        except asyncio.TimeoutError:
            payload = None
            error = ToolError(
                type="ToolTimeoutError",
                message=f"Tool {invocation.name} timed out after {self.timeout_seconds:.0f}s",
            )
        except CnoteError as exc:
            payload = None
            error = ToolError(type=type(exc).__name__, message=exc.message)
        except Exception as exc:
            logger.error("Tool %s crashed: %s", invocation.name, exc, exc_info=True)
            payload = None
            error = ToolError(type=ToolExecutionError.__name__, message=str(exc))

        logger.info(
            "Tool call %s (user=%s) %s in %dms",
            invocation.name,
            user_id,
            "failed" if error else "succeeded",
            int((time.time() - started) * 1000),
        )
        return ToolResult(
            id=invocation.id,
            tool=invocation.name,
            arguments=invocation.arguments,
            result=payload,
            error=error,
        )

    async def execute_all(self, user_id: int, invocations: List[ToolInvocation]) -> List[ToolResult]:
        """Run all invocations concurrently; results keep request order."""
        return list(await asyncio.gather(*(self.execute(user_id, inv) for inv in invocations)))


tool_registry = ToolRegistry()

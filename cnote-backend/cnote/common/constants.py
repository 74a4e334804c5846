class AIPrompts:
    """AI-related prompts for various operations."""

    CHAT_SYSTEM_PROMPT = """You are a helpful AI assistant for a note-taking application.
You have access to the user's personal notes AND notes that have been shared with them by friends.
You can help them find information, answer questions, and provide insights based on both their own notes and shared notes.

{context_section}

{tools_section}When answering:
- Be concise and helpful
- Reference specific notes when applicable
- Clearly indicate if information comes from a shared note (e.g., "According to a note shared by @username...")
- If you don't have enough information in the notes, say so
- Provide actionable suggestions when appropriate"""

    CONTEXT_INTRO = "Here is some context from notes (personal and shared) that might be relevant:\n\n"

    CONTEXT_HEADER = "Relevant information from notes:\n\n"

    NO_CONTEXT = "No relevant notes found for this query."

    TOOLS_SECTION = """You can call tools to look further:
- Tools prefixed with "private_" read the user's own notes.
- Tools prefixed with "shared_" read notes friends have shared with the user.
Call a tool only when the context above is not enough to answer.

"""

    FALLBACK_RESPONSE = "I'm sorry, I was unable to generate a response. Please try rephrasing your question."

    # Tool-protocol prompt templates
    SUMMARIZE_NOTES_PROMPT = "Please summarize the following notes, focusing on {focus}:\n\n{notes_text}"

    FIND_RELATED_PROMPT = "Search my notes for anything related to: {topic}"

    SUMMARIZE_SHARED_PROMPT = "Please summarize the following {focus}:\n\n{notes_text}"

    COMPARE_PERSPECTIVES_PROMPT = (
        "Compare my notes with notes shared by friends on the topic: {topic}. "
        "Highlight different perspectives and insights."
    )


class StatusCodes:
    """Status values stored on TaskJob rows."""

    JOB_PENDING = "pending"
    JOB_QUEUED = "queued"
    JOB_PROCESSING = "processing"
    JOB_RETRYING = "retrying"
    JOB_COMPLETED = "completed"
    JOB_FAILED = "failed"


class TaskTypes:
    """arq task names."""

    REINDEX_NOTE = "reindex_note"


class McpConfig:
    """Tool-protocol server constants."""

    PROTOCOL_VERSION = "2024-11-05"
    SERVER_VERSION = "1.0.0"
    MARKDOWN_MIME_TYPE = "text/markdown"

    PRIVATE_SERVER_NAME = "cnote-private"
    SHARED_SERVER_NAME = "cnote-shared"

    PRIVATE_URI_SCHEME = "note://"
    SHARED_URI_SCHEME = "shared://"

    SUMMARY_NOTES_LIMIT = 20


class Common:

    EXCERPT_LENGTH = 200
    DEFAULT_SEARCH_LIMIT = 5
    DEFAULT_RECENT_LIMIT = 10
    DEFAULT_SHARED_LIMIT = 20
    MAX_TOOL_LIMIT = 50

class CommonMessage:
    """Response messages shared by endpoints and services."""

    # Auth
    NOT_AUTHENTICATED = "Not authenticated"
    INVALID_TOKEN = "Could not validate credentials"
    INACTIVE_USER = "Inactive user"

    # Notes
    NOTE_NOT_FOUND = "Note not found"
    NOTE_RETRIEVED_SUCCESS = "Note retrieved successfully"
    NOTE_CREATED_SUCCESS = "Note created successfully"
    NOTE_UPDATED_SUCCESS = "Note updated successfully"
    NOTE_DELETED_SUCCESS = "Note deleted successfully"

    # Shares
    SHARE_CREATED_SUCCESS = "Note shared successfully"
    SHARE_UPDATED_SUCCESS = "Share permission updated"
    SHARE_DELETED_SUCCESS = "Note unshared successfully"
    SHARE_NOT_FOUND = "Share not found"
    SHARE_TARGET_NOT_FOUND = "User to share with not found"
    SHARE_WITH_SELF = "Cannot share a note with yourself"

    # Chat
    CHAT_MESSAGE_PROCESSED = "Message processed"
    CHAT_HISTORY_RETRIEVED = "Chat history retrieved"
    CHAT_HISTORY_CLEARED = "Chat history cleared"

    # Tasks
    JOB_NOT_FOUND = "Job not found"
    JOB_STATUS_RETRIEVED = "Job status retrieved successfully"
    JOB_QUEUED = "Task queued successfully. Use job_id to check status."
    QUEUE_NOT_INITIALIZED = "ARQ pool not initialized"

    # Errors
    REQUEST_VALIDATION_FAILED = "Request validation failed"
    UPSTREAM_SERVICE_FAILED = "Upstream service unavailable, please retry"
    INTERNAL_ERROR = "Internal server error"

"""URL constants for the assistant domain."""

CHAT_BASE = "/api/chat"

CHAT_STREAM = f"{CHAT_BASE}/stream"
CHAT_THREADS = f"{CHAT_BASE}/threads"
CHAT_THREAD_DETAIL = f"{CHAT_THREADS}/{{thread_id:uuid}}"
CHAT_THREAD_MESSAGES = f"{CHAT_THREAD_DETAIL}/messages"

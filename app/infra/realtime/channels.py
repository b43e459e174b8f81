OUTREACH_CHANNEL = "outreach:queue"


def chat_session_channel(session_id: str) -> str:
    return f"chat-session:{session_id}"

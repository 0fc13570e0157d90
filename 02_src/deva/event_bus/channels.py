"""Standard channel names."""

LOADED = "loaded"
LOGOUT = "logout"
STATUS = "status"
ERROR = "error"


def question_channel(key: str) -> str:
    return f"{key}:question"


def answer_channel(key: str, packet_id) -> str:
    """Correlation channel carrying the single answer for one packet."""
    return f"{key}:question:{packet_id}"


def start_channel(key: str) -> str:
    return f"{key}:start"


def stop_channel(key: str) -> str:
    return f"{key}:stop"


def status_channel(key: str) -> str:
    return f"{key}:status"

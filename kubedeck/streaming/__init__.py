"""Interactive exec and log-follow sessions relayed over a client channel."""

from kubedeck.streaming.bridge import (
    ClientChannel,
    SessionMode,
    SessionState,
    StreamSession,
    bridge_deployment_log_stream,
    bridge_log_stream,
    bridge_terminal,
)

__all__ = [
    "ClientChannel",
    "SessionMode",
    "SessionState",
    "StreamSession",
    "bridge_deployment_log_stream",
    "bridge_log_stream",
    "bridge_terminal",
]

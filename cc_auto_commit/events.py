#!/usr/bin/env python3

"""Hook event payloads sent by the host agent runtime.

Only two hook events are understood, selected by the ``hook_event_name``
discriminator.  Enumerated fields inside a payload (``source``,
``tool_name``) are open-ended on the host side, so unrecognized values map
to an ``UNKNOWN`` member instead of failing the parse.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Union

from .errors import MalformedEventError

__all__ = [
    "SessionSource",
    "ToolName",
    "ToolInput",
    "ToolResponse",
    "SessionStart",
    "PostToolUse",
    "HookEvent",
    "parse_hook_event",
    "event_cwd",
]


class SessionSource(str, Enum):
    CLEAR = "clear"
    COMPACT = "compact"
    RESUME = "resume"
    STARTUP = "startup"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> "SessionSource":
        return cls.UNKNOWN


class ToolName(str, Enum):
    TASK = "Task"
    BASH = "Bash"
    GLOB = "Glob"
    GREP = "Grep"
    READ = "Read"
    EDIT = "Edit"
    MULTI_EDIT = "MultiEdit"
    WRITE = "Write"
    WEB_FETCH = "WebFetch"
    WEB_SEARCH = "WebSearch"
    UNKNOWN = "Unknown"

    @classmethod
    def _missing_(cls, value: object) -> "ToolName":
        return cls.UNKNOWN


@dataclass(frozen=True)
class ToolInput:
    file_path: str


@dataclass(frozen=True)
class ToolResponse:
    success: bool = True


@dataclass(frozen=True)
class SessionStart:
    """A new agent session began, or an existing one was cleared/compacted/resumed."""

    session_id: str
    cwd: str
    source: Optional[SessionSource] = None
    transcript_path: Optional[str] = None


@dataclass(frozen=True)
class PostToolUse:
    """A tool invocation finished."""

    cwd: str
    tool_name: ToolName
    tool_input: ToolInput
    tool_response: ToolResponse
    session_id: Optional[str] = None
    transcript_path: Optional[str] = None


HookEvent = Union[SessionStart, PostToolUse]


def event_cwd(event: HookEvent) -> str:
    """Return the working directory the host reported for the event."""
    return event.cwd


def _require(payload: Mapping[str, Any], key: str, kind: type, where: str) -> Any:
    if key not in payload:
        raise MalformedEventError(f"{where}: missing required field '{key}'")
    value = payload[key]
    if not isinstance(value, kind) or (kind is not bool and isinstance(value, bool)):
        raise MalformedEventError(
            f"{where}: field '{key}' must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


def _optional(payload: Mapping[str, Any], key: str, kind: type, where: str) -> Any:
    if payload.get(key) is None:
        return None
    return _require(payload, key, kind, where)


def _parse_session_start(payload: Mapping[str, Any]) -> SessionStart:
    where = "SessionStart"
    source = _optional(payload, "source", str, where)
    return SessionStart(
        session_id=_require(payload, "session_id", str, where),
        cwd=_require(payload, "cwd", str, where),
        source=SessionSource(source) if source is not None else None,
        transcript_path=_optional(payload, "transcript_path", str, where),
    )


def _parse_post_tool_use(payload: Mapping[str, Any]) -> PostToolUse:
    where = "PostToolUse"
    tool_input = _require(payload, "tool_input", dict, where)
    tool_response = _require(payload, "tool_response", dict, where)
    success = _optional(tool_response, "success", bool, f"{where}.tool_response")
    return PostToolUse(
        cwd=_require(payload, "cwd", str, where),
        tool_name=ToolName(_require(payload, "tool_name", str, where)),
        tool_input=ToolInput(
            file_path=_require(tool_input, "file_path", str, f"{where}.tool_input")
        ),
        tool_response=ToolResponse(success=True if success is None else success),
        session_id=_optional(payload, "session_id", str, where),
        transcript_path=_optional(payload, "transcript_path", str, where),
    )


_PARSERS = {
    "SessionStart": _parse_session_start,
    "PostToolUse": _parse_post_tool_use,
}


def parse_hook_event(raw: Union[str, bytes, Mapping[str, Any]]) -> HookEvent:
    """Decode a hook event from its JSON text or an already-decoded mapping.

    Args:
        raw: JSON text, or a mapping as produced by json.loads

    Returns:
        A SessionStart or PostToolUse instance

    Raises:
        MalformedEventError: If the input is not a JSON object, the
            ``hook_event_name`` discriminator is missing or unrecognized, or a
            required field of the selected variant is absent or mistyped
    """
    if isinstance(raw, (str, bytes)):
        try:
            payload = json.loads(raw)
        except ValueError as e:
            raise MalformedEventError(f"Input is not valid JSON: {e}") from e
    else:
        payload = raw

    if not isinstance(payload, Mapping):
        raise MalformedEventError("Hook event must be a JSON object")

    name = payload.get("hook_event_name")
    parser = _PARSERS.get(name) if isinstance(name, str) else None
    if parser is None:
        raise MalformedEventError(f"Unrecognized hook_event_name: {name!r}")
    return parser(payload)

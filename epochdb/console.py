"""Server status tracking and the JSON control API of a node."""

from __future__ import annotations

import json
import threading
from enum import IntEnum
from typing import Any, Callable


class ServerStatus(IntEnum):
    BOOTING = 0
    CONFIGURING = 1
    LISTENING = 2
    CONNECTING = 3
    RUNNING = 4
    EXITING = 5

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> ServerStatus | None:
        for status in cls:
            if status.label == label:
                return status
        return None


class ConfigSectionMissing(LookupError):
    """The configuration sent by the controller lacks a section."""


def _error() -> dict[str, str]:
    return {"type": "error"}


def _string_value(value: Any) -> str:
    return value if isinstance(value, str) else ""


class Console:
    """Holds the node's status and configuration and answers API requests."""

    def __init__(self, node_name: str = "") -> None:
        self.node_name = node_name
        self.conf: Any = {}
        self._cond = threading.Condition()
        self._status = ServerStatus.BOOTING
        self._handlers: dict[str, Callable[[dict], dict]] = {
            "status_change": self._handle_status_change,
            "get_status": self._handle_get_status,
        }

    @property
    def server_status(self) -> ServerStatus:
        with self._cond:
            return self._status

    def update_server_status(self, status: ServerStatus) -> None:
        with self._cond:
            self._status = ServerStatus(status)
            self._cond.notify_all()

    def wait_for_server_status(self, status: ServerStatus, timeout: float | None = None) -> bool:
        """Block until the status equals the one given; False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._status == status, timeout)

    def find_config_section(self, name: str) -> Any:
        conf = self.conf
        if not isinstance(conf, dict) or name not in conf:
            raise ConfigSectionMissing(
                f"Configuration section {name} cannot be found. "
                "Check controller server's configuration"
            )
        return conf[name]

    def handle_api(self, request: Any) -> str:
        """Answer a parsed request with a serialized JSON response."""
        return json.dumps(self.handle_json_api(request), sort_keys=True, ensure_ascii=False)

    def handle_json_api(self, request: Any) -> dict[str, Any]:
        if not isinstance(request, dict) or "type" not in request:
            return _error()
        handler = self._handlers.get(_string_value(request["type"]))
        if handler is None:
            return _error()
        return handler(request)

    def _response(self) -> dict[str, Any]:
        return {"type": "OK", "host": self.node_name}

    def _handle_status_change(self, request: dict) -> dict[str, Any]:
        proposed = _string_value(request.get("status"))
        status = ServerStatus.from_label(proposed)
        if status is None:
            return _error()
        # Configuring replaces the whole configuration with the request.
        if status is ServerStatus.CONFIGURING:
            self.conf = request
        self.update_server_status(status)
        return self._response()

    def _handle_get_status(self, request: dict) -> dict[str, Any]:
        return {"status": self.server_status.label, **self._response()}
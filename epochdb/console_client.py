"""Connection to the controller that carries console API requests.

Each request is a JSON document followed by a NUL byte, and so is each
response.  Requests are answered one at a time; there is no pipelining.
"""

from __future__ import annotations

import json
import socket
import sys
import threading

from .console import Console

MAX_BUFFER_SIZE = (32 << 10) - 8
DEFAULT_CONTROLLER_PORT = 3144


class ConsoleClient:
    """Reads NUL-terminated requests from a socket and answers them."""

    def __init__(self, sock: socket.socket, console: Console) -> None:
        self.sock = sock
        self.console = console

    def read_requests(self) -> None:
        """Serve requests until the peer closes, an error occurs or the buffer fills."""
        buffer = bytearray()
        try:
            while True:
                try:
                    chunk = self.sock.recv(MAX_BUFFER_SIZE - len(buffer))
                except OSError as exc:
                    print(f"read: {exc}", file=sys.stderr)
                    break
                if not chunk:
                    break
                buffer += chunk
                if len(buffer) >= MAX_BUFFER_SIZE:
                    break
                if buffer[-1] != 0:
                    continue
                text = bytes(buffer).split(b"\0", 1)[0]
                buffer.clear()
                try:
                    request = json.loads(text)
                except ValueError as exc:
                    print(f"Cannot parse request {exc}", file=sys.stderr)
                    continue
                if not self.write_response(self.console.handle_api(request)):
                    break
        finally:
            self.sock.close()

    def write_response(self, response: str) -> bool:
        """Send a response with its NUL terminator; False if the socket failed."""
        try:
            self.sock.sendall(response.encode("utf-8") + b"\0")
        except OSError:
            return False
        return True


def parse_controller_address(arg: str, default_port: int = DEFAULT_CONTROLLER_PORT) -> tuple[str, int]:
    """Split "host[:port]" into host and port."""
    host, sep, port = arg.partition(":")
    if not sep:
        return arg, default_port
    return host, int(port)


def connect_console(host: str, port: int, console: Console) -> threading.Thread:
    """Connect to the controller and serve its requests on a daemon thread."""
    print(f"Console Client connecting to controller {host} on port {port}")
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.connect((host, port))
    except OSError:
        sock.close()
        raise
    client = ConsoleClient(sock, console)
    thread = threading.Thread(target=client.read_requests, name="console-client", daemon=True)
    thread.start()
    return thread
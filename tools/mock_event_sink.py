"""
Lightweight mock analytics event sink for live forwarding tests.

Endpoints:
- POST /v1/track   -> stores event, returns 200 (or MOCK_SINK_STATUS)
- GET  /_events    -> returns received events
- POST /_reset     -> clears stored events
- GET  /_health    -> returns 200
"""
import base64
import json
import os
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import List, Tuple


EVENTS: List[dict] = []
EVENTS_LOCK = threading.Lock()


class Handler(BaseHTTPRequestHandler):
    response_status = int(os.getenv("MOCK_SINK_STATUS", "200"))

    def _send_json(self, status_code: int, payload) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status_code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _write_key(self) -> str:
        auth = self.headers.get("Authorization", "")
        if not auth.lower().startswith("basic "):
            return ""
        decoded = base64.b64decode(auth.split(" ", 1)[1]).decode("utf-8", errors="replace")
        return decoded.split(":", 1)[0]

    def do_GET(self):  # noqa: N802
        if self.path == "/_health":
            return self._send_json(200, {"status": "ok"})

        if self.path == "/_events":
            with EVENTS_LOCK:
                return self._send_json(200, {"events": list(EVENTS)})

        return self._send_json(404, {"error": "not_found"})

    def do_POST(self):  # noqa: N802
        if self.path == "/_reset":
            with EVENTS_LOCK:
                EVENTS.clear()
            return self._send_json(200, {"status": "reset"})

        if self.path.startswith("/v1/track"):
            length = int(self.headers.get("Content-Length", "0"))
            raw = self.rfile.read(length).decode("utf-8") if length else ""
            try:
                event = json.loads(raw) if raw else {}
            except json.JSONDecodeError:
                return self._send_json(400, {"error": "invalid_json"})

            with EVENTS_LOCK:
                EVENTS.append({"write_key": self._write_key(), "event": event})
            return self._send_json(self.response_status, {"success": self.response_status < 300})

        return self._send_json(404, {"error": "not_found"})

    def log_message(self, format, *args):  # noqa: A003
        # Silence default logging to keep test output clean.
        return


def start_in_thread(host: str = "127.0.0.1", port: int = 0) -> Tuple[ThreadingHTTPServer, str]:
    """Start the sink on a daemon thread; returns the server and its track URL."""
    server = ThreadingHTTPServer((host, port), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    bound_host, bound_port = server.server_address[:2]
    return server, f"http://{bound_host}:{bound_port}/v1/track"


def main() -> None:
    server = ThreadingHTTPServer(("0.0.0.0", int(os.getenv("MOCK_SINK_PORT", "8090"))), Handler)
    server.serve_forever()


if __name__ == "__main__":
    main()

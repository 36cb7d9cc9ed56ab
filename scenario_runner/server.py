import functools
import logging
import os
import threading
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional

from scenario_runner.errors import RunnerError

LOGGER = logging.getLogger("scenario_runner.server")


class _QuietHandler(SimpleHTTPRequestHandler):
    def log_message(self, format, *args):
        LOGGER.debug("%s - " + format, self.address_string(), *args)


class StaticServer:
    """Serves a directory over HTTP from a background thread, e.g. the sample page."""

    def __init__(self, directory: str, host: str = "127.0.0.1", port: int = 0):
        if not os.path.isdir(directory):
            raise RunnerError(f"Cannot serve {directory}: not a directory")
        self.directory = os.path.abspath(directory)
        self.host = host
        self.port = port
        self._httpd: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def start(self) -> str:
        handler = functools.partial(_QuietHandler, directory=self.directory)
        self._httpd = ThreadingHTTPServer((self.host, self.port), handler)
        self.port = self._httpd.server_address[1]
        self._thread = threading.Thread(target=self._httpd.serve_forever, name="static-server", daemon=True)
        self._thread.start()
        LOGGER.info("Serving %s at %s", self.directory, self.url)
        return self.url

    def stop(self) -> None:
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def __enter__(self) -> "StaticServer":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

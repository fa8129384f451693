"""Lifecycle of a throwaway ``mongod`` process used by the demo."""
from __future__ import annotations

import atexit
import logging
import os
import shutil
import signal
import socket
import subprocess
import sys
import tempfile
from typing import Any, Callable, Iterable, Optional

from pymongo import MongoClient
from pymongo.errors import PyMongoError

LOGGER = logging.getLogger(__name__)

DEFAULT_STARTUP_TIMEOUT = 30.0
DEFAULT_CLEANUP_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class EmbeddedServerError(RuntimeError):
    """Raised when the embedded server can not be started."""


def find_free_port(host: str = "127.0.0.1") -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return sock.getsockname()[1]


class EmbeddedServer:
    """Start a private ``mongod`` on a free port with a temporary data directory.

    ``start()`` returns the connection string, ``dispose()`` stops the process
    and removes the data directory. ``dispose()`` is idempotent so it can be
    hooked to every exit path with :meth:`register_cleanup`.
    """

    def __init__(
        self,
        *,
        mongod_binary: Optional[str] = None,
        host: str = "127.0.0.1",
        port: Optional[int] = None,
        startup_timeout: float = DEFAULT_STARTUP_TIMEOUT,
        popen: Callable[..., Any] = subprocess.Popen,
        client_factory: Callable[..., Any] = MongoClient,
    ) -> None:
        self.mongod_binary = mongod_binary
        self.host = host
        self.port = port
        self.startup_timeout = startup_timeout
        self._popen = popen
        self._client_factory = client_factory
        self._process: Any = None
        self._data_dir: Optional[str] = None
        self._connection_string: Optional[str] = None
        self._cleanup_registered = False

    @property
    def is_running(self) -> bool:
        return self._process is not None

    @property
    def connection_string(self) -> Optional[str]:
        return self._connection_string

    def start(self) -> str:
        if self._process is not None and self._connection_string:
            return self._connection_string

        binary = self._resolve_binary()
        port = self.port or find_free_port(self.host)
        self._data_dir = tempfile.mkdtemp(prefix="contactmap-mongod-")
        command = [
            binary,
            "--port",
            str(port),
            "--bind_ip",
            self.host,
            "--dbpath",
            self._data_dir,
            "--quiet",
        ]
        LOGGER.info("Starting embedded mongod on %s:%s", self.host, port)
        LOGGER.debug("mongod command: %s", " ".join(command))
        self._process = self._popen(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        self._connection_string = f"mongodb://{self.host}:{port}/"
        self._wait_until_ready()
        return self._connection_string

    def dispose(self) -> None:
        process, self._process = self._process, None
        data_dir, self._data_dir = self._data_dir, None
        self._connection_string = None
        if process is not None:
            LOGGER.info("Stopping embedded mongod")
            if process.poll() is None:
                process.terminate()
                try:
                    process.wait(timeout=10)
                except subprocess.TimeoutExpired:
                    LOGGER.warning("mongod did not stop in time; killing it")
                    process.kill()
                    process.wait()
        if data_dir:
            shutil.rmtree(data_dir, ignore_errors=True)

    def register_cleanup(self, *, signals: Iterable[int] = DEFAULT_CLEANUP_SIGNALS) -> None:
        """Dispose on normal exit, on an unhandled exception and on termination signals."""
        if self._cleanup_registered:
            return
        atexit.register(self.dispose)

        previous_hook = sys.excepthook

        def _dispose_then_report(exc_type, exc_value, exc_traceback) -> None:
            try:
                self.dispose()
            finally:
                previous_hook(exc_type, exc_value, exc_traceback)

        sys.excepthook = _dispose_then_report
        for signum in signals:
            signal.signal(signum, self._handle_signal)
        self._cleanup_registered = True

    def _handle_signal(self, signum: int, _frame: Any) -> None:
        LOGGER.warning("Received signal %s; disposing embedded mongod", signum)
        self.dispose()
        raise SystemExit(128 + signum)

    def _resolve_binary(self) -> str:
        candidate = self.mongod_binary or os.getenv("MONGOD_BINARY") or "mongod"
        resolved = shutil.which(candidate)
        if resolved is None:
            raise EmbeddedServerError(
                f"mongod binary '{candidate}' was not found; install MongoDB or set MONGOD_BINARY."
            )
        return resolved

    def _wait_until_ready(self) -> None:
        client = self._client_factory(
            self._connection_string,
            serverSelectionTimeoutMS=int(self.startup_timeout * 1000),
        )
        try:
            client.admin.command("ping")
        except PyMongoError as exc:
            self.dispose()
            raise EmbeddedServerError(f"Embedded mongod did not become ready: {exc}") from exc
        finally:
            client.close()
        LOGGER.info("Embedded mongod ready at %s", self._connection_string)

    def __enter__(self) -> "EmbeddedServer":
        self.start()
        return self

    def __exit__(self, *_exc_info: Any) -> None:
        self.dispose()


__all__ = ["EmbeddedServer", "EmbeddedServerError", "find_free_port"]

from __future__ import annotations

import os
import signal
import subprocess
import sys
from typing import Any, Callable, Dict, List, Optional

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from contactmap.storage import server as server_module
from contactmap.storage.server import EmbeddedServer, EmbeddedServerError


class FakeProcess:
    def __init__(self, command: List[str], **kwargs: Any) -> None:
        self.command = command
        self.kwargs = kwargs
        self.returncode: Optional[int] = None
        self.terminated = 0

    def poll(self) -> Optional[int]:
        return self.returncode

    def terminate(self) -> None:
        self.terminated += 1
        self.returncode = 0

    def wait(self, timeout: Optional[float] = None) -> int:
        return self.returncode or 0

    def kill(self) -> None:
        self.returncode = -9


class FakeAdmin:
    def __init__(self, error: Optional[Exception]) -> None:
        self.error = error

    def command(self, name: str) -> Dict[str, Any]:
        if self.error is not None:
            raise self.error
        return {"ok": 1.0}


class FakeClient:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.admin = FakeAdmin(error)
        self.closed = False

    def close(self) -> None:
        self.closed = True


def _server(
    processes: List[FakeProcess],
    *,
    ping_error: Optional[Exception] = None,
    clients: Optional[List[FakeClient]] = None,
) -> EmbeddedServer:
    def popen(command: List[str], **kwargs: Any) -> FakeProcess:
        process = FakeProcess(command, **kwargs)
        processes.append(process)
        return process

    def client_factory(url: str, **_kwargs: Any) -> FakeClient:
        client = FakeClient(ping_error)
        if clients is not None:
            clients.append(client)
        return client

    return EmbeddedServer(
        mongod_binary=sys.executable,
        port=27999,
        popen=popen,
        client_factory=client_factory,
    )


def test_start_returns_connection_string_and_runs_mongod() -> None:
    processes: List[FakeProcess] = []
    clients: List[FakeClient] = []
    server = _server(processes, clients=clients)

    connection_string = server.start()

    assert connection_string == "mongodb://127.0.0.1:27999/"
    command = processes[0].command
    assert command[0] == sys.executable
    assert command[command.index("--port") + 1] == "27999"
    data_dir = command[command.index("--dbpath") + 1]
    assert os.path.isdir(data_dir)
    assert clients[0].closed
    server.dispose()
    assert not os.path.exists(data_dir)


def test_start_twice_reuses_the_running_process() -> None:
    processes: List[FakeProcess] = []
    server = _server(processes)

    first = server.start()
    second = server.start()

    assert first == second
    assert len(processes) == 1
    server.dispose()


def test_dispose_is_idempotent_and_safe_before_start() -> None:
    processes: List[FakeProcess] = []
    server = _server(processes)
    server.dispose()

    server.start()
    server.dispose()
    server.dispose()

    assert processes[0].terminated == 1
    assert not server.is_running
    assert server.connection_string is None


def test_failed_ping_disposes_and_raises() -> None:
    processes: List[FakeProcess] = []
    server = _server(processes, ping_error=ServerSelectionTimeoutError("no server"))

    with pytest.raises(EmbeddedServerError):
        server.start()

    assert processes[0].terminated == 1
    assert not server.is_running


def test_missing_binary_is_reported() -> None:
    server = EmbeddedServer(mongod_binary="definitely-not-a-mongod-binary")
    with pytest.raises(EmbeddedServerError, match="not found"):
        server.start()


def test_context_manager_starts_and_disposes() -> None:
    processes: List[FakeProcess] = []
    with _server(processes) as server:
        assert server.is_running
    assert not server.is_running


def test_register_cleanup_covers_every_exit_path(monkeypatch: pytest.MonkeyPatch) -> None:
    registered: List[Callable[[], None]] = []
    handlers: Dict[int, Any] = {}
    reported: List[Any] = []
    monkeypatch.setattr(server_module.atexit, "register", registered.append)
    monkeypatch.setattr(server_module.signal, "signal", lambda signum, handler: handlers.setdefault(signum, handler))
    monkeypatch.setattr(sys, "excepthook", lambda *args: reported.append(args))

    processes: List[FakeProcess] = []
    server = _server(processes)
    server.register_cleanup()
    server.register_cleanup()

    assert registered == [server.dispose]
    assert set(handlers) == {signal.SIGTERM, signal.SIGINT}

    server.start()
    error = RuntimeError("unhandled")
    sys.excepthook(RuntimeError, error, None)
    assert processes[0].terminated == 1
    assert reported == [(RuntimeError, error, None)]

    server.start()
    with pytest.raises(SystemExit) as exit_info:
        handlers[signal.SIGTERM](signal.SIGTERM, None)
    assert exit_info.value.code == 128 + signal.SIGTERM
    assert processes[1].terminated == 1


def test_dispose_kills_a_stuck_process() -> None:
    class StuckProcess(FakeProcess):
        def wait(self, timeout: Optional[float] = None) -> int:
            if timeout is not None:
                raise subprocess.TimeoutExpired(self.command, timeout)
            return -9

        def terminate(self) -> None:
            self.terminated += 1

    processes: List[FakeProcess] = []

    def popen(command: List[str], **kwargs: Any) -> FakeProcess:
        process = StuckProcess(command, **kwargs)
        processes.append(process)
        return process

    server = EmbeddedServer(
        mongod_binary=sys.executable,
        port=27998,
        popen=popen,
        client_factory=lambda url, **_kwargs: FakeClient(),
    )
    server.start()
    server.dispose()

    assert processes[0].returncode == -9

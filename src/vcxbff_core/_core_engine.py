from __future__ import annotations

import shlex
import subprocess
import threading
from collections.abc import Callable
from pathlib import Path
from typing import IO

from ._core_base import DEFAULT_FBUILD_PATH, EngineLaunchError, RunSettings, report_error
from ._core_fingerprint import graph_path_for

OutputSink = Callable[[str], None]


def default_sink(line: str) -> None:
    print(line, flush=True)


def engine_command(settings: RunSettings, graph_path: Path) -> list[str]:
    return [
        settings.fbuild_path or DEFAULT_FBUILD_PATH,
        "-summary",
        *shlex.split(settings.fbuild_args),
        "-config",
        str(graph_path),
    ]


def _drain(stream: IO[str], sink: OutputSink, failures: list[Exception]) -> None:
    # Reads to EOF regardless; after a sink failure lines are discarded.
    for line in iter(stream.readline, ""):
        if failures:
            continue
        try:
            sink(line.rstrip("\r\n"))
        except Exception as exc:
            failures.append(exc)
    stream.close()


def launch(command: list[str], cwd: Path) -> subprocess.Popen[str]:
    try:
        return subprocess.Popen(
            command,
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            bufsize=1,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as exc:
        raise EngineLaunchError(
            f"Exception launching '{command[0]}'. Is it in your PATH? ({exc})"
        ) from exc


class EngineInvoker:
    """Runs the build engine against a unit's graph file and streams its output.

    stdout and stderr are drained by two reader threads into ``sink``; lines
    keep their order within a stream but not across streams. There is no
    timeout: a hung engine blocks the caller. The first exception raised by
    ``sink`` is re-raised once the engine has exited.
    """

    def __init__(self, settings: RunSettings, sink: OutputSink = default_sink) -> None:
        self.settings = settings
        self.sink = sink

    def command_for(self, unit_path: Path, graph_path: Path | None = None) -> list[str]:
        graph = graph_path or graph_path_for(unit_path, self.settings.platform, self.settings.configuration)
        return engine_command(self.settings, graph)

    def execute(self, unit_path: Path, graph_path: Path | None = None) -> bool:
        command = self.command_for(unit_path, graph_path)
        print(f"Building {unit_path.stem}")
        print("RUN: " + " ".join(shlex.quote(item) for item in command))
        try:
            proc = launch(command, unit_path.parent)
        except EngineLaunchError as exc:
            report_error(str(exc))
            return False

        failures: list[Exception] = []
        readers = [
            threading.Thread(target=_drain, args=(proc.stdout, self.sink, failures), daemon=True),
            threading.Thread(target=_drain, args=(proc.stderr, self.sink, failures), daemon=True),
        ]
        for reader in readers:
            reader.start()
        exit_code = proc.wait()
        for reader in readers:
            reader.join()
        if failures:
            raise failures[0]
        return exit_code == 0

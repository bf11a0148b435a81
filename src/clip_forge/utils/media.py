from __future__ import annotations

import json
import subprocess
import threading
from collections import deque
from collections.abc import Callable
from pathlib import Path

from clip_forge.domain.errors import ProbeError
from clip_forge.utils.config import ToolsConfig

POLL_INTERVAL_SEC = 0.2
TERMINATE_GRACE_SEC = 3.0
STDERR_TAIL_LINES = 40


class CommandError(RuntimeError):
    def __init__(self, message: str, stderr: str = "", returncode: int | None = None) -> None:
        super().__init__(message)
        self.stderr = stderr
        self.returncode = returncode


class CommandCancelled(CommandError):
    pass


def run_command(cmd: list[str], cancel_event=None, text: bool = True) -> str | bytes:
    """Run ``cmd`` to completion and return its stdout.

    With a ``cancel_event`` the process is polled and terminated as soon as
    the event is set.
    """
    proc = _spawn(cmd, text=text)
    try:
        while True:
            if cancel_event is not None and cancel_event.is_set():
                _terminate(proc)
                raise CommandCancelled(f"Command cancelled: {_display(cmd)}")
            try:
                stdout, stderr = proc.communicate(timeout=POLL_INTERVAL_SEC if cancel_event is not None else None)
                break
            except subprocess.TimeoutExpired:
                continue

        if proc.returncode != 0:
            if cancel_event is not None and cancel_event.is_set():
                raise CommandCancelled(f"Command cancelled: {_display(cmd)}")
            stderr_text = stderr.decode("utf-8", "replace") if isinstance(stderr, bytes) else stderr
            raise CommandError(
                f"Command failed: {_display(cmd)}\n{stderr_text}",
                stderr=stderr_text or "",
                returncode=proc.returncode,
            )
        return stdout
    finally:
        if proc.poll() is None:
            proc.kill()


def run_streaming(cmd: list[str], on_line: Callable[[str], None], cancel_event=None) -> None:
    """Run ``cmd`` and hand every stdout line to ``on_line`` as it arrives.

    stderr is drained on a side thread; only its tail is kept for the error.
    """
    proc = _spawn(cmd, text=True)
    stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
    stderr_reader = threading.Thread(target=_drain, args=(proc.stderr, stderr_tail), daemon=True)
    stderr_reader.start()
    lines: deque[str] = deque()
    stdout_done = threading.Event()
    stdout_reader = threading.Thread(
        target=_pump,
        args=(proc.stdout, lines, stdout_done),
        daemon=True,
    )
    stdout_reader.start()

    try:
        while True:
            if cancel_event is not None and cancel_event.is_set():
                _terminate(proc)
                raise CommandCancelled(f"Command cancelled: {_display(cmd)}")
            while lines:
                on_line(lines.popleft())
            if stdout_done.is_set() and not lines:
                break
            stdout_done.wait(POLL_INTERVAL_SEC)

        ret = proc.wait()
        stderr_reader.join(timeout=TERMINATE_GRACE_SEC)
        if ret != 0:
            if cancel_event is not None and cancel_event.is_set():
                raise CommandCancelled(f"Command cancelled: {_display(cmd)}")
            stderr_text = "".join(stderr_tail)
            raise CommandError(
                f"Command failed (code={ret}): {_display(cmd)}\n{stderr_text}",
                stderr=stderr_text,
                returncode=ret,
            )
    finally:
        if proc.poll() is None:
            proc.kill()


def probe_duration(path: Path, tools: ToolsConfig, cancel_event=None) -> float:
    cmd = [
        tools.ffprobe_path,
        "-v",
        "error",
        "-show_entries",
        "format=duration",
        "-of",
        "json",
        str(path),
    ]
    try:
        stdout = run_command(cmd, cancel_event=cancel_event)
    except CommandCancelled:
        raise
    except CommandError as exc:
        raise ProbeError(f"ffprobe failed for {path}: {exc.stderr.strip() or exc}") from exc

    try:
        payload = json.loads(stdout or "{}")
        duration = float(payload["format"]["duration"])
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
        raise ProbeError(f"No decodable duration for {path}") from exc
    if duration <= 0:
        raise ProbeError(f"No decodable duration for {path}: {duration}")
    return duration


def probe_duration_or_zero(path: Path, tools: ToolsConfig, logger, cancel_event=None) -> float:
    try:
        return probe_duration(path, tools, cancel_event=cancel_event)
    except ProbeError as exc:
        logger.warning("probe.duration_defaulted", path=str(path), error=str(exc))
        return 0.0


def _spawn(cmd: list[str], text: bool) -> subprocess.Popen:
    try:
        return subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=text)
    except OSError as exc:
        raise CommandError(f"Command could not start: {_display(cmd)}: {exc}") from exc


def _terminate(proc: subprocess.Popen) -> None:
    proc.terminate()
    try:
        proc.wait(timeout=TERMINATE_GRACE_SEC)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()


def _pump(stream, lines: deque[str], done: threading.Event) -> None:
    try:
        for line in stream:
            lines.append(line.rstrip("\r\n"))
    except ValueError:
        # stream closed underneath us after kill
        pass
    finally:
        done.set()


def _drain(stream, tail: deque[str]) -> None:
    try:
        for line in stream:
            tail.append(line)
    except ValueError:
        pass


def _display(cmd: list[str]) -> str:
    return " ".join(str(part) for part in cmd)

"""Thin wrapper around a running capture subprocess."""

import subprocess
import threading
import time
from collections import deque
from typing import IO, Callable

OutputCallback = Callable[[str], None]

# Lines of recent subprocess output kept for error reporting
OUTPUT_TAIL_LINES = 50


class ProcessHandle:
    """One running capture subprocess: its streams and the ability to signal it.

    stdout and stderr are drained line by line on daemon threads so the pipes
    never fill up; each line goes to ``on_output`` and into ``output_tail``.
    """

    def __init__(
        self,
        process: subprocess.Popen,
        on_output: OutputCallback | None = None,
    ):
        self._process = process
        self._on_output = on_output
        self.output_tail: deque[str] = deque(maxlen=OUTPUT_TAIL_LINES)
        self._pumps: list[threading.Thread] = []

        for stream in (process.stdout, process.stderr):
            if stream is None:
                continue
            t = threading.Thread(target=self._pump, args=(stream,), daemon=True)
            t.start()
            self._pumps.append(t)

    def _pump(self, stream: IO[bytes]) -> None:
        try:
            for raw in iter(stream.readline, b""):
                line = raw.decode("utf-8", errors="replace").rstrip()
                if not line:
                    continue
                self.output_tail.append(line)
                if self._on_output:
                    self._on_output(line)
        except (OSError, ValueError):
            # Stream closed underneath us
            pass
        finally:
            try:
                stream.close()
            except OSError:
                pass

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def args(self) -> list[str]:
        return list(self._process.args)

    @property
    def returncode(self) -> int | None:
        return self._process.poll()

    @property
    def is_running(self) -> bool:
        return self._process.poll() is None

    def write_stdin(self, data: bytes) -> None:
        """Write to the subprocess's stdin. Raises OSError/ValueError if it is gone."""
        if self._process.stdin is None:
            raise ValueError("stdin is not piped")
        self._process.stdin.write(data)
        self._process.stdin.flush()

    def close_stdin(self) -> None:
        if self._process.stdin is not None and not self._process.stdin.closed:
            self._process.stdin.close()

    def send_signal(self, sig: int) -> None:
        self._process.send_signal(sig)

    def kill(self) -> None:
        self._process.kill()

    def wait(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds for exit. Returns True if exited."""
        try:
            self._process.wait(timeout=max(0.0, timeout))
            return True
        except subprocess.TimeoutExpired:
            return False

    def join_output(self, timeout: float = 0.5) -> None:
        """Give the output pumps up to ``timeout`` seconds in total to flush."""
        deadline = time.monotonic() + timeout
        for t in self._pumps:
            t.join(timeout=max(0.0, deadline - time.monotonic()))

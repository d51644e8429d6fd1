from __future__ import annotations

"""
Output Sinks.

Byte sinks a Logger can fan out to: the process console and any number
of rotating file writers.
"""

import sys
from typing import List, Protocol, Sequence, TextIO


class ByteSink(Protocol):
    def write(self, data: bytes) -> int:
        ...


class ConsoleWriter:
    """
    Writes to the current ``sys.stdout``.

    The stream is looked up on every write so replacements made after the
    logger was built (capture tools, redirection) are honoured.
    """

    def __init__(self, stream_name: str = "stdout") -> None:
        self._stream_name = stream_name

    def _stream(self) -> TextIO:
        return getattr(sys, self._stream_name)

    def write(self, data: bytes) -> int:
        stream = self._stream()
        buffer = getattr(stream, "buffer", None)
        if buffer is not None:
            stream.flush()
            buffer.write(data)
            buffer.flush()
        else:
            stream.write(data.decode("utf-8", errors="replace"))
            stream.flush()
        return len(data)


class MultiWriter:
    """
    Fan-out sink forwarding each write to every underlying sink in order.

    The first failing sink stops the fan-out and its exception propagates.
    """

    def __init__(self, sinks: Sequence[ByteSink]) -> None:
        self._sinks: List[ByteSink] = list(sinks)

    @property
    def sinks(self) -> List[ByteSink]:
        return list(self._sinks)

    def write(self, data: bytes) -> int:
        for sink in self._sinks:
            sink.write(data)
        return len(data)

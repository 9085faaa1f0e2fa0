"""Frame progress extraction from vspipe's stderr.

vspipe reports progress as carriage-return terminated records:

    Frame: 12/2400\rFrame: 13/2400\r...

so the stream is split on b"\\r" rather than on newlines. The scan holds only
the record being assembled and runs for as long as the render does.
"""

import re
from dataclasses import dataclass
from typing import BinaryIO, Callable, Iterator, Optional

RECORD_SEPARATOR = b"\r"
FRAME_PATTERN = re.compile(r"Frame: (?P<current>\d+)/(?P<total>\d+)")


@dataclass
class FrameProgress:
    """Progress state for one render."""
    total: Optional[int] = None  # Unknown until the first marker
    current: int = 0
    found: bool = False  # True once any marker has been seen


def iter_records(
    stream: BinaryIO, separator: bytes = RECORD_SEPARATOR, chunk_size: int = 4096
) -> Iterator[bytes]:
    """Yield records terminated by a single separator byte.

    Each record keeps its separator, except a trailing record cut short by
    end of stream. An empty read ends the iteration.
    """
    if len(separator) != 1:
        raise ValueError("separator must be a single byte")

    read = getattr(stream, "read1", stream.read)
    parts = []
    while True:
        chunk = read(chunk_size)
        if not chunk:
            break
        start = 0
        while True:
            end = chunk.find(separator, start)
            if end == -1:
                break
            parts.append(chunk[start:end + 1])
            yield b"".join(parts)
            parts = []
            start = end + 1
        if start < len(chunk):
            parts.append(chunk[start:])
    if parts:
        yield b"".join(parts)


class ProgressExtractor:
    """Turn `Frame: current/total` records into progress updates.

    The total is recorded from the first matching record only. The position
    follows every match, including backwards moves.

    Example:
        >>> extractor = ProgressExtractor()
        >>> state = extractor.consume(io.BytesIO(b"Frame: 1/10\\rFrame: 2/10\\r"))
        >>> state.current, state.total
        (2, 10)
    """

    def __init__(self, progress_callback: Optional[Callable[[FrameProgress], None]] = None):
        self.progress_callback = progress_callback
        self.state = FrameProgress()

    def feed(self, record: bytes) -> bool:
        """Scan one record. Returns True when it carried a progress marker."""
        match = FRAME_PATTERN.search(record.decode("utf-8", errors="replace"))
        if match is None:
            return False

        if not self.state.found:
            self.state.total = int(match.group("total"))
            self.state.found = True
        self.state.current = int(match.group("current"))

        if self.progress_callback:
            self.progress_callback(self.state)
        return True

    def consume(self, stream: BinaryIO) -> FrameProgress:
        """Scan a stream until EOF and return the final state."""
        for record in iter_records(stream):
            self.feed(record)
        return self.state


def tqdm_callback(bar) -> Callable[[FrameProgress], None]:
    """Adapt a tqdm bar into a progress callback."""
    def update(progress: FrameProgress) -> None:
        if bar.total != progress.total:
            bar.total = progress.total
        bar.n = progress.current
        bar.refresh()

    return update

"""
Playlist Transactions for CDJ Playlist
Serializes read-modify-write cycles on the JSON playlist across threads and processes
"""
import errno
import fcntl
import json
import logging
import os
import time
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Union

from .constants import LOCK_POLL_INTERVAL
from .presets import PresetTable
from .track import Track, TrackDecodeError, decode_tracks, encode_tracks


Transform = Callable[[List[Track]], List[Track]]


class TransactionState(Enum):
    """Transaction states"""
    CREATED = "created"
    LOCKED = "locked"
    COMMITTED = "committed"
    ABORTED = "aborted"


class TransactionError(Exception):
    """Base exception for transaction errors"""
    pass


class LockAcquisitionError(TransactionError):
    """Exception for failures to lock the playlist file"""
    pass


class PlaylistDecodeError(TransactionError):
    """Exception for malformed playlist contents"""
    pass


class JSONFileRepository:
    """
    Persists the whole playlist in a single JSON file.

    Every mutation runs as one transaction: exclusive ``flock`` on the file,
    decode, transform, truncate and rewrite, unlock. The lock is advisory and
    is taken on a fresh open file description each time, so it serializes
    concurrent threads of this process as well as other processes.
    """

    def __init__(self, path: Union[str, Path], presets: Optional[PresetTable] = None,
                 lock_timeout: Optional[float] = None):
        """
        Args:
            path: Location of the JSON file (created on first use)
            presets: Preset table used to decode track presets
            lock_timeout: Seconds to wait for the lock, ``None`` waits forever
        """
        self.path = Path(path)
        self.presets = presets or PresetTable.builtin()
        self.lock_timeout = lock_timeout
        self.logger = logging.getLogger(__name__)

    def transaction(self, transform: Transform) -> List[Track]:
        """
        Apply ``transform`` to the current playlist and persist its result.

        Nothing is written when ``transform`` raises; the exception propagates.

        Returns:
            The committed playlist
        """
        state = TransactionState.CREATED
        with self._locked(fcntl.LOCK_EX, os.O_RDWR | os.O_CREAT) as fd:
            state = TransactionState.LOCKED
            self.logger.debug(f"Transaction {state.value}: {self.path}")

            tracks = self._decode(fd)

            try:
                replacement = transform(tracks)
            except BaseException:
                state = TransactionState.ABORTED
                self.logger.debug(f"Transaction {state.value}: {self.path}")
                raise

            payload = encode_tracks(replacement).encode('utf-8')
            self._rewrite(fd, payload)
            state = TransactionState.COMMITTED
            self.logger.debug(f"Transaction {state.value}: {len(replacement)} tracks written to {self.path}")

            return list(replacement)

    def read(self) -> List[Track]:
        """Decode the playlist under a shared lock without writing"""
        if not self.path.exists():
            return []
        with self._locked(fcntl.LOCK_SH, os.O_RDONLY) as fd:
            return self._decode(fd)

    @contextmanager
    def _locked(self, operation: int, flags: int) -> Iterator[int]:
        try:
            fd = os.open(self.path, flags, 0o666)
        except OSError as e:
            raise TransactionError(f"could not open file at path {str(self.path)!r}: {e}") from e

        try:
            self._acquire(fd, operation)
            try:
                yield fd
            finally:
                fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

    def _acquire(self, fd: int, operation: int):
        try:
            if self.lock_timeout is None:
                fcntl.flock(fd, operation)
                return

            deadline = time.monotonic() + self.lock_timeout
            while True:
                try:
                    fcntl.flock(fd, operation | fcntl.LOCK_NB)
                    return
                except OSError as e:
                    if e.errno not in (errno.EAGAIN, errno.EACCES, errno.EWOULDBLOCK):
                        raise
                if time.monotonic() >= deadline:
                    raise LockAcquisitionError(
                        f"timed out after {self.lock_timeout}s waiting for lock on {str(self.path)!r}"
                    )
                time.sleep(LOCK_POLL_INTERVAL)
        except OSError as e:
            raise LockAcquisitionError(
                f"could not acquire lock on file at path {str(self.path)!r}: {e}"
            ) from e

    def _decode(self, fd: int) -> List[Track]:
        os.lseek(fd, 0, os.SEEK_SET)
        chunks = []
        while True:
            chunk = os.read(fd, 65536)
            if not chunk:
                break
            chunks.append(chunk)

        try:
            return decode_tracks(b"".join(chunks).decode('utf-8'), self.presets)
        except (UnicodeDecodeError, json.JSONDecodeError, TrackDecodeError) as e:
            raise PlaylistDecodeError(
                f"could not decode data in file at path {str(self.path)!r}: {e}"
            ) from e

    def _rewrite(self, fd: int, payload: bytes):
        os.ftruncate(fd, 0)
        os.lseek(fd, 0, os.SEEK_SET)
        view = memoryview(payload)
        while view:
            written = os.write(fd, view)
            view = view[written:]
        os.fsync(fd)

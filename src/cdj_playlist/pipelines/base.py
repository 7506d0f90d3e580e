"""
External Pipelines

A pipeline turns the bytes of an input stream into the bytes of an output
stream, typically by running an external tool. Diagnostics go to a
separate error stream. Every run is bounded by a timeout.
"""

import io
import logging
import os
import subprocess
from abc import ABC, abstractmethod
from enum import Enum
from typing import BinaryIO, Callable, List, Optional, Tuple, Union


logger = logging.getLogger(__name__)


class Codec(Enum):
    """The ways a track signal is transcoded"""
    ANALYZE = "analyze"      # raw f32le mono samples for tempo analysis
    CONVERT = "convert"      # final audio format
    WAVEFORM = "waveform"    # waveform picture
    SPECTRUM = "spectrum"    # spectrogram picture
    QUALITY = "quality"      # frequency gain dump


class PipelineError(Exception):
    """Raised when an external pipeline fails"""
    pass


class PipelineTimeoutError(PipelineError):
    """Raised when an external pipeline exceeds its time budget"""
    pass


class Pipeline(ABC):
    """Contract of an external pipeline"""

    @abstractmethod
    def run(self, stdin: Optional[BinaryIO], stdout: Optional[BinaryIO],
            stderr: Optional[BinaryIO], timeout: Optional[float] = None) -> None:
        """
        Feed ``stdin`` through the pipeline into ``stdout``.

        Raises:
            PipelineError: the pipeline failed
            PipelineTimeoutError: the pipeline did not finish in ``timeout`` seconds
        """


PipelineCallable = Callable[[Optional[BinaryIO], Optional[BinaryIO], Optional[BinaryIO], Optional[float]], None]


class PipelineFunc(Pipeline):
    """Adapts a plain function with the ``run`` signature to a Pipeline"""

    def __init__(self, func: PipelineCallable):
        self.func = func

    def run(self, stdin, stdout, stderr, timeout=None):
        self.func(stdin, stdout, stderr, timeout)

    def __repr__(self) -> str:
        return f"PipelineFunc({getattr(self.func, '__name__', self.func)!r})"


def as_pipeline(obj: Union[Pipeline, PipelineCallable]) -> Pipeline:
    if isinstance(obj, Pipeline):
        return obj
    if callable(obj):
        return PipelineFunc(obj)
    raise TypeError(f"not a pipeline: {obj!r}")


def run_pipeline(pipeline: Pipeline, stdin: Optional[BinaryIO], stdout: Optional[BinaryIO],
                 timeout: Optional[float] = None) -> None:
    """
    Run a pipeline with its diagnostics captured.

    The first line written to the error stream is logged, at warning level
    when the run failed.
    """
    stderr = io.BytesIO()
    failed = True
    try:
        pipeline.run(stdin, stdout, stderr, timeout)
        failed = False
    finally:
        line = stderr.getvalue().split(b"\n", 1)[0].decode('utf-8', errors='replace').strip()
        if line:
            if failed:
                logger.warning(f"{pipeline!r}: {line}")
            else:
                logger.debug(f"{pipeline!r}: {line}")


def file_name(stream) -> Optional[str]:
    """Path of a stream backed by a regular file, None for anything else"""
    name = getattr(stream, 'name', None)
    if not isinstance(name, str):
        return None
    try:
        stream.fileno()
    except (AttributeError, OSError, io.UnsupportedOperation):
        return None
    return name if os.path.isfile(name) else None


class CommandPipeline(Pipeline):
    """
    Pipeline backed by one external command.

    Streams backed by real files are handed to the tool by path, any other
    stream is piped through the process standard input and output.
    """

    executable: str = ""

    def __init__(self, args: Tuple[str, ...] = ()):
        self.args = tuple(args)
        self.logger = logging.getLogger(__name__)

    def command(self, source: str, destination: str) -> List[str]:
        raise NotImplementedError

    def run(self, stdin, stdout, stderr, timeout=None):
        source = file_name(stdin)
        destination = file_name(stdout)

        data = None
        if source is None:
            data = stdin.read() if stdin is not None else b""

        cmd = self.command(source or "pipe:0", destination or "pipe:1")
        self.logger.debug(f"Running: {' '.join(cmd)}")

        result = self._execute(cmd, data, timeout)
        self._forward(result, stdout if destination is None else None, stderr)

        if result.returncode != 0:
            raise PipelineError(f"{self.executable} exited with status {result.returncode}")

    def _execute(self, cmd: List[str], data: Optional[bytes], timeout: Optional[float]):
        try:
            return subprocess.run(
                cmd,
                input=data,
                stdin=subprocess.DEVNULL if data is None else None,
                capture_output=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise PipelineTimeoutError(f"{self.executable} timed out after {timeout}s") from e
        except FileNotFoundError as e:
            raise PipelineError(f"{self.executable} not found, please install it") from e

    def _forward(self, result, stdout, stderr):
        if stdout is not None and result.stdout:
            stdout.write(result.stdout)
        if stderr is not None and result.stderr:
            stderr.write(result.stderr)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.executable})"

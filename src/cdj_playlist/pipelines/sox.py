"""
sox pipeline for quality inspection

``sox <input> -n remix - stat -freq`` mixes the track down to mono and
prints a ``<frequency> <gain>`` line per spectrum bin. sox writes that dump
to its error stream; the pipeline forwards it to the output stream so the
quality parser can read it like any other pipeline output.
"""

from typing import List

from .base import CommandPipeline, PipelineError, file_name


FREQ_STAT_ARGS = ("-n", "remix", "-", "stat", "-freq")


class SoxQualityPipeline(CommandPipeline):

    executable = "sox"

    def __init__(self):
        super().__init__(FREQ_STAT_ARGS)

    def command(self, source: str, destination: str = "") -> List[str]:
        return [self.executable, source, *self.args]

    def run(self, stdin, stdout, stderr, timeout=None):
        source = file_name(stdin)

        data = None
        if source is None:
            data = stdin.read() if stdin is not None else b""

        # sox reads standard input from "-"
        cmd = self.command(source or "-")
        self.logger.debug(f"Running: {' '.join(cmd)}")

        result = self._execute(cmd, data, timeout)

        if result.returncode != 0:
            if stderr is not None:
                stderr.write(result.stderr)
            raise PipelineError(f"{self.executable} exited with status {result.returncode}")

        if stdout is not None:
            stdout.write(result.stderr)


def sox_quality() -> SoxQualityPipeline:
    return SoxQualityPipeline()

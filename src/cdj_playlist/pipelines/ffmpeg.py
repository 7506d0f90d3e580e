"""
ffmpeg pipelines: analysis samples, exported audio and pictures
"""

from typing import Dict, List

from .base import Codec, CommandPipeline, Pipeline


F32LE_ARGS = ("-v", "quiet", "-y", "-f", "f32le", "-ac", "1", "-ar", "44100")
AUDIO_OUT_ARGS = (
    "-v", "quiet", "-y", "-f", "wav", "-map_metadata", "-1", "-bitexact",
    "-ac", "2", "-ar", "44100", "-acodec", "pcm_s24le",
)
WAVEFORM_ARGS = ("-v", "quiet", "-y", "-lavfi", "showwavespic=s=4096x2048:colors=#5294E2", "-f", "image2")
SPECTRUM_ARGS = (
    "-v", "quiet", "-y", "-lavfi",
    "showspectrumpic=s=4096x2048:color=cool:start=0:stop=24000", "-f", "image2",
)


class FFmpegPipeline(CommandPipeline):
    """``ffmpeg -i <input> <args...> <output>``"""

    executable = "ffmpeg"

    def command(self, source: str, destination: str) -> List[str]:
        return [self.executable, "-i", source, *self.args, destination]


def f32le() -> FFmpegPipeline:
    """Mono 44.1 kHz float32 samples for tempo analysis"""
    return FFmpegPipeline(F32LE_ARGS)


def audio_out() -> FFmpegPipeline:
    """Stereo 44.1 kHz 24-bit WAV with metadata stripped"""
    return FFmpegPipeline(AUDIO_OUT_ARGS)


def png_waveform() -> FFmpegPipeline:
    return FFmpegPipeline(WAVEFORM_ARGS)


def png_spectrum() -> FFmpegPipeline:
    return FFmpegPipeline(SPECTRUM_ARGS)


def ffmpeg_pipelines() -> Dict[Codec, Pipeline]:
    return {
        Codec.ANALYZE: f32le(),
        Codec.CONVERT: audio_out(),
        Codec.WAVEFORM: png_waveform(),
        Codec.SPECTRUM: png_spectrum(),
    }

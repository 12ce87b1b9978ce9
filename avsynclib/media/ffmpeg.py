#!/usr/bin/env python3

from avsynclib.media.ffmpeg_probe import probe_duration
from avsynclib.media.ffmpeg_silence import detect_silence
from avsynclib.media.ffmpeg_silence import parse_silence_log
from avsynclib.media.ffmpeg_edit import make_silence
from avsynclib.media.ffmpeg_edit import extract_segment
from avsynclib.media.ffmpeg_edit import concatenate_audio
from avsynclib.media.ffmpeg_edit import loop_video
from avsynclib.media.ffmpeg_edit import mux_tracks

__all__ = [
	'probe_duration',
	'detect_silence',
	'parse_silence_log',
	'make_silence',
	'extract_segment',
	'concatenate_audio',
	'loop_video',
	'mux_tracks',
]

#!/usr/bin/env python3

from avsynclib.core import utils
from avsynclib.core.config import CHANNEL_LAYOUTS
from avsynclib.core.errors import MuxError
from avsynclib.core.errors import SegmentError

#============================================

FFMPEG_BASE = ["ffmpeg", "-y", "-hide_banner", "-nostats", "-loglevel", "error"]

#============================================

def make_silence(out_file: str, seconds: float, sample_rate: int = 44100,
	channel_layout: str = 'stereo', reporter=None) -> str:
	if seconds <= 0:
		raise SegmentError(f"silence duration must be positive: {seconds}")
	cmd = list(FFMPEG_BASE)
	cmd += ["-f", "lavfi", "-i", f"anullsrc=r={sample_rate}:cl={channel_layout}"]
	cmd += ["-t", utils.format_seconds(seconds)]
	cmd += ["-acodec", "pcm_s16le"]
	cmd.append(out_file)
	utils.run_process(cmd, reporter=reporter, error_class=SegmentError,
		failure_message="silence creation failed")
	utils.ensure_file_exists(out_file, SegmentError)
	return out_file

#============================================

def extract_segment(audio_file: str, out_file: str, start_seconds: float,
	duration: float, sample_rate: int = 44100, channel_layout: str = 'stereo',
	reporter=None) -> str:
	if duration <= 0:
		raise SegmentError(f"segment duration must be positive: {duration}")
	cmd = list(FFMPEG_BASE)
	cmd += ["-ss", utils.format_seconds(start_seconds)]
	cmd += ["-t", utils.format_seconds(duration)]
	cmd += ["-i", audio_file, "-vn", "-sn"]
	cmd += ["-acodec", "pcm_s16le", "-ar", str(sample_rate)]
	cmd += ["-ac", str(CHANNEL_LAYOUTS[channel_layout])]
	cmd.append(out_file)
	utils.run_process(cmd, reporter=reporter, error_class=SegmentError,
		failure_message=f"extract segment failed at {start_seconds:.3f}s")
	utils.ensure_file_exists(out_file, SegmentError)
	return out_file

#============================================

def build_concat_filter(input_count: int, sample_rate: int,
	channel_layout: str) -> str:
	"""
	Filter graph that normalizes each audio input and joins them in order.
	"""
	chains = []
	labels = ""
	for index in range(input_count):
		chains.append(
			f"[{index}:a]aresample={sample_rate},"
			f"aformat=sample_fmts=s16:channel_layouts={channel_layout}[a{index}]"
		)
		labels += f"[a{index}]"
	chains.append(f"{labels}concat=n={input_count}:v=0:a=1[out]")
	return ";".join(chains)

#============================================

def concatenate_audio(input_files: list, out_file: str, sample_rate: int = 44100,
	channel_layout: str = 'stereo', reporter=None) -> str:
	if len(input_files) == 0:
		raise SegmentError("no audio files to concatenate")
	cmd = list(FFMPEG_BASE)
	for input_file in input_files:
		cmd += ["-i", input_file]
	cmd += ["-filter_complex",
		build_concat_filter(len(input_files), sample_rate, channel_layout)]
	cmd += ["-map", "[out]", "-acodec", "pcm_s16le"]
	cmd.append(out_file)
	utils.run_process(cmd, reporter=reporter, error_class=SegmentError,
		failure_message=f"concatenate {len(input_files)} audio files failed")
	utils.ensure_file_exists(out_file, SegmentError)
	return out_file

#============================================

def loop_video(video_file: str, out_file: str, loop_count: int,
	trim_seconds: float, video_codec: str = 'libx264', crf: int = 23,
	preset: str = 'veryfast', reporter=None) -> str:
	if loop_count < 1:
		raise SegmentError(f"loop count must be at least 1: {loop_count}")
	cmd = list(FFMPEG_BASE)
	cmd += ["-stream_loop", str(loop_count - 1)]
	cmd += ["-i", video_file]
	cmd += ["-t", utils.format_seconds(trim_seconds)]
	cmd += ["-an", "-sn", "-map", "0:v:0"]
	if video_codec == 'copy':
		cmd += ["-codec:v", "copy"]
	else:
		cmd += ["-codec:v", video_codec, "-crf", str(crf), "-preset", preset]
		cmd += ["-pix_fmt", "yuv420p"]
	cmd.append(out_file)
	utils.run_process(cmd, reporter=reporter, error_class=SegmentError,
		failure_message=f"loop video {loop_count}x failed")
	utils.ensure_file_exists(out_file, SegmentError)
	return out_file

#============================================

def mux_tracks(video_file: str, audio_file: str, out_file: str,
	audio_codec: str = 'aac', audio_bitrate: str = '192k', reporter=None) -> str:
	cmd = list(FFMPEG_BASE)
	cmd += ["-i", video_file]
	cmd += ["-i", audio_file]
	cmd += ["-sn", "-map", "0:v:0", "-map", "1:a:0"]
	cmd += ["-codec:v", "copy"]
	cmd += ["-codec:a", audio_codec]
	if audio_codec != 'copy' and audio_bitrate:
		cmd += ["-b:a", audio_bitrate]
	cmd.append(out_file)
	utils.run_process(cmd, reporter=reporter, error_class=MuxError,
		failure_message="mux audio and video failed")
	utils.ensure_file_exists(out_file, MuxError)
	return out_file

#!/usr/bin/env python3

import math

#============================================

MODE_NO_CHANGE = 'no_change'
MODE_LOOP_VIDEO = 'loop_video'
MODE_PAD_AUDIO = 'pad_audio'

PAD_CHUNKED = 'chunked'
PAD_SIMPLE = 'simple'
PAD_TRAILING = 'trailing'

DEFAULT_MAX_GAP_SILENCE = 5.0
DEFAULT_EPSILON = 0.01

#============================================

def decide_mode(video_duration: float, audio_duration: float,
	epsilon: float = DEFAULT_EPSILON) -> str:
	if video_duration <= 0 or audio_duration <= 0:
		raise ValueError("durations must be positive")
	if abs(video_duration - audio_duration) <= epsilon:
		return MODE_NO_CHANGE
	if audio_duration > video_duration:
		return MODE_LOOP_VIDEO
	return MODE_PAD_AUDIO

#============================================

def compute_loop_count(video_duration: float, audio_duration: float) -> int:
	"""
	Smallest count of video repeats that covers the audio.
	"""
	if video_duration <= 0:
		raise ValueError("video duration must be positive")
	count = max(1, math.ceil(audio_duration / video_duration))
	# float division can land one step off in either direction
	while count > 1 and (count - 1) * video_duration >= audio_duration:
		count -= 1
	while count * video_duration < audio_duration:
		count += 1
	return count

#============================================

def _base_plan(mode: str, video_duration: float, audio_duration: float) -> dict:
	return {
		'mode': mode,
		'video_duration': video_duration,
		'audio_duration': audio_duration,
		'target_duration': max(video_duration, audio_duration),
		'loop_count': None,
		'strategy': None,
		'gap_count': 0,
		'silence_per_gap': None,
		'chunks': [],
		'trailing_silence': None,
		'expected_audio_duration': audio_duration,
		'shortfall': 0.0,
	}

#============================================

def plan_alignment(video_duration: float, audio_duration: float,
	analysis: dict = None, strategy: str = PAD_CHUNKED,
	max_gap_silence: float = DEFAULT_MAX_GAP_SILENCE,
	epsilon: float = DEFAULT_EPSILON) -> dict:
	"""
	Decide how to equalize the two track durations.

	Args:
		video_duration: Probed video duration in seconds.
		audio_duration: Probed audio duration in seconds.
		analysis: Silence analysis of the audio, required when padding.
		strategy: Padding strategy, chunked or simple.
		max_gap_silence: Cap on any single inserted silence block.
		epsilon: Durations closer than this are treated as equal.

	Returns:
		dict: Alignment plan.
	"""
	mode = decide_mode(video_duration, audio_duration, epsilon)
	plan = _base_plan(mode, video_duration, audio_duration)
	if mode == MODE_NO_CHANGE:
		return plan
	if mode == MODE_LOOP_VIDEO:
		plan['loop_count'] = compute_loop_count(video_duration, audio_duration)
		return plan
	if analysis is None:
		raise ValueError("silence analysis is required to pad audio")
	if max_gap_silence <= 0:
		raise ValueError("max_gap_silence must be positive")
	if strategy == PAD_SIMPLE:
		_plan_simple(plan, analysis, max_gap_silence)
	elif strategy == PAD_CHUNKED:
		_plan_chunked(plan, analysis, max_gap_silence)
	else:
		raise ValueError(f"unknown padding strategy: {strategy}")
	plan['shortfall'] = video_duration - plan['expected_audio_duration']
	return plan

#============================================

def _plan_simple(plan: dict, analysis: dict, max_gap_silence: float) -> None:
	plan['strategy'] = PAD_SIMPLE
	needed = plan['video_duration'] - analysis['total_silence']
	if needed <= 0:
		plan['trailing_silence'] = 0.0
		return
	silence = min(needed, max_gap_silence)
	plan['trailing_silence'] = silence
	plan['expected_audio_duration'] = plan['audio_duration'] + silence

#============================================

def _plan_chunked(plan: dict, analysis: dict, max_gap_silence: float) -> None:
	segments = analysis['segments']
	gap_count = len(segments)
	if gap_count == 0:
		# all-silent track, append the whole deficit once
		deficit = plan['video_duration'] - plan['audio_duration']
		plan['strategy'] = PAD_TRAILING
		plan['trailing_silence'] = deficit
		plan['expected_audio_duration'] = plan['audio_duration'] + deficit
		return
	content_duration = sum(segment['duration'] for segment in segments)
	deficit = max(0.0, plan['video_duration'] - content_duration)
	silence_per_gap = deficit / gap_count
	inserted = min(silence_per_gap, max_gap_silence)
	chunks = []
	for index, segment in enumerate(segments):
		chunks.append({
			'index': index,
			'start': segment['start'],
			'end': segment['end'],
			'duration': segment['duration'],
			'silence': inserted,
		})
	plan['strategy'] = PAD_CHUNKED
	plan['gap_count'] = gap_count
	plan['silence_per_gap'] = silence_per_gap
	plan['chunks'] = chunks
	plan['expected_audio_duration'] = content_duration + inserted * gap_count

#============================================

def has_shortfall(plan: dict, epsilon: float = DEFAULT_EPSILON) -> bool:
	return abs(plan['shortfall']) > epsilon

#============================================

def describe_plan(plan: dict) -> str:
	mode = plan['mode']
	if mode == MODE_NO_CHANGE:
		return "durations match, muxing inputs unchanged"
	if mode == MODE_LOOP_VIDEO:
		return (
			f"loop video {plan['loop_count']}x and trim to "
			f"{plan['audio_duration']:.3f}s"
		)
	if plan['strategy'] == PAD_CHUNKED:
		inserted = plan['chunks'][0]['silence']
		return (
			f"pad audio across {plan['gap_count']} segments with "
			f"{inserted:.3f}s silence each"
		)
	return f"pad audio with one {plan['trailing_silence']:.3f}s trailing silence"

#============================================

def plan_report(plan: dict) -> dict:
	"""
	Plan as plain rounded values for YAML dumps.
	"""
	report = {}
	for key, value in plan.items():
		if isinstance(value, float):
			value = round(value, 3)
		if key == 'chunks':
			value = [
				{k: round(v, 3) if isinstance(v, float) else v for k, v in chunk.items()}
				for chunk in value
			]
		report[key] = value
	return report

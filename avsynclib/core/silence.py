#!/usr/bin/env python3

#============================================

SILENCE_START = 'start'
SILENCE_END = 'end'

#============================================

def make_event(kind: str, time_seconds: float) -> dict:
	if kind not in (SILENCE_START, SILENCE_END):
		raise ValueError(f"unknown silence event kind: {kind}")
	return {'kind': kind, 'time': float(time_seconds)}

#============================================

def make_segment(start: float, end: float) -> dict:
	return {'start': start, 'end': end, 'duration': end - start}

#============================================

def build_segments(events: list, duration: float) -> list:
	"""
	Turn silence events into the non-silent spans between them.

	A start event closes the open span, an end event moves the reference
	point. A start that is never closed leaves the rest of the track silent.
	Times are clamped to the track duration.

	Args:
		events: Silence events in emission order.
		duration: Probed track duration in seconds.

	Returns:
		list: Segments with start/end/duration, in track order.
	"""
	segments = []
	reference = 0.0
	in_silence = False
	for event in events:
		event_time = min(max(0.0, event['time']), duration)
		if event['kind'] == SILENCE_START:
			# repeated starts stay inside the same silence
			if not in_silence and reference < event_time:
				segments.append(make_segment(reference, event_time))
			in_silence = True
		elif event['kind'] == SILENCE_END:
			reference = event_time
			in_silence = False
	if not in_silence and reference < duration:
		segments.append(make_segment(reference, duration))
	return segments

#============================================

def build_silences(events: list, duration: float) -> list:
	"""
	Silent spans from the same events; an unclosed start runs to the end.
	"""
	silences = []
	open_start = None
	for event in events:
		event_time = min(max(0.0, event['time']), duration)
		if event['kind'] == SILENCE_START:
			if open_start is None:
				open_start = event_time
		elif event['kind'] == SILENCE_END and open_start is not None:
			if event_time > open_start:
				silences.append(make_segment(open_start, event_time))
			open_start = None
	if open_start is not None and open_start < duration:
		silences.append(make_segment(open_start, duration))
	return silences

#============================================

def total_silence(events: list) -> float:
	total = 0.0
	for previous, current in zip(events, events[1:]):
		if previous['kind'] == SILENCE_START and current['kind'] == SILENCE_END:
			total += current['time'] - previous['time']
	return total

#============================================

def unmatched_start(events: list):
	"""
	Return the time of a trailing start event with no end, else None.
	"""
	if len(events) == 0:
		return None
	last_event = events[-1]
	if last_event['kind'] == SILENCE_START:
		return last_event['time']
	return None

#============================================

def analyze_silence(events: list, duration: float) -> dict:
	segments = build_segments(events, duration)
	content_duration = sum(segment['duration'] for segment in segments)
	return {
		'duration': duration,
		'events': list(events),
		'segments': segments,
		'total_silence': total_silence(events),
		'content_duration': content_duration,
		'unmatched_start': unmatched_start(events),
	}

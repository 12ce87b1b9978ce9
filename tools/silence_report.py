#!/usr/bin/env python3

"""
silence_report.py

Run ffmpeg silence detection on one audio or video file and report the
silent and non-silent ranges the aligner would work with.
"""

# Standard Library
import argparse
import os
import sys

script_dir = os.path.dirname(os.path.abspath(__file__))
repo_root = os.path.dirname(script_dir)
if repo_root not in sys.path:
	sys.path.insert(0, repo_root)

# PIP3 modules
import yaml

# local repo modules
from avsynclib.core import config
from avsynclib.core import silence
from avsynclib.core import utils
from avsynclib.core.errors import AvSyncError
from avsynclib.core.reporter import CommandReporter
from avsynclib.media import ffmpeg

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.

	Returns:
		argparse.Namespace: Parsed command-line arguments.
	"""
	defaults = config.build_settings()
	parser = argparse.ArgumentParser(
		description="Report silence ranges detected by ffmpeg silencedetect."
	)
	parser.add_argument(
		'-i', '--input', dest='input_file', required=True,
		help="Input audio or video file path."
	)
	parser.add_argument(
		'-t', '--threshold-db', dest='threshold_db', type=float,
		default=defaults['threshold_db'],
		help="Silence threshold in dBFS."
	)
	parser.add_argument(
		'-m', '--min-silence', dest='min_silence', type=float,
		default=defaults['min_silence'],
		help="Minimum silence seconds."
	)
	parser.add_argument(
		'-o', '--output', dest='output_file', default=None,
		help="Write a YAML report to this path."
	)
	parser.add_argument(
		'-q', '--quiet', dest='quiet', action='store_true',
		help="Do not print external commands."
	)
	args = parser.parse_args(argv)
	return args

#============================================

def add_timecodes(segments: list) -> list:
	"""
	Add timecode strings to segments.

	Args:
		segments: List of segments.

	Returns:
		list: Segments with timecode fields.
	"""
	decorated = []
	for segment in segments:
		segment_copy = dict(segment)
		segment_copy['start_tc'] = utils.format_timestamp(segment['start'])
		segment_copy['end_tc'] = utils.format_timestamp(segment['end'])
		segment_copy['duration_tc'] = utils.format_timestamp(segment['duration'])
		decorated.append(segment_copy)
	return decorated

#============================================

def build_segment_list(silences: list, contents: list) -> list:
	"""
	Build an ordered segment list with kind labels.

	Args:
		silences: Silence segments.
		contents: Content segments.

	Returns:
		list: Ordered segments with kind.
	"""
	segments = []
	for segment in silences:
		item = dict(segment)
		item['kind'] = 'silence'
		segments.append(item)
	for segment in contents:
		item = dict(segment)
		item['kind'] = 'content'
		segments.append(item)
	segments.sort(key=lambda entry: entry['start'])
	return segments

#============================================

def build_report(input_file: str, duration: float, events: list,
	threshold_db: float, min_silence: float) -> dict:
	"""
	Build the report dictionary.

	Args:
		input_file: Input file path.
		duration: Probed duration in seconds.
		events: Silence events.
		threshold_db: Threshold used.
		min_silence: Minimum silence used.

	Returns:
		dict: Report data.
	"""
	analysis = silence.analyze_silence(events, duration)
	silences = add_timecodes(silence.build_silences(events, duration))
	contents = add_timecodes(analysis['segments'])
	segments = build_segment_list(silences, contents)
	for segment in segments:
		for key in ('start', 'end', 'duration'):
			segment[key] = round(segment[key], 3)
	return {
		'input': input_file,
		'duration': round(duration, 3),
		'threshold_db': threshold_db,
		'min_silence': min_silence,
		'silence_total': round(sum(item['duration'] for item in silences), 3),
		'content_total': round(analysis['content_duration'], 3),
		'silence_ranges': len(silences),
		'content_ranges': len(contents),
		'unmatched_start': analysis['unmatched_start'],
		'segments': segments,
	}

#============================================

def print_summary(report: dict) -> None:
	"""
	Print a human-readable summary.

	Args:
		report: Report data.
	"""
	duration = report['duration']
	silence_pct = 0.0
	content_pct = 0.0
	if duration > 0:
		silence_pct = (report['silence_total'] / duration) * 100.0
		content_pct = (report['content_total'] / duration) * 100.0
	print("")
	print("Silence Report")
	print(f"Input: {report['input']}")
	print(f"Duration: {utils.format_timestamp(duration)} ({duration:.3f}s)")
	print(f"Silence: {utils.format_timestamp(report['silence_total'])} ({silence_pct:.2f}%)")
	print(f"Content: {utils.format_timestamp(report['content_total'])} ({content_pct:.2f}%)")
	print(f"Silence ranges: {report['silence_ranges']}")
	print(f"Content ranges: {report['content_ranges']}")
	for segment in report['segments']:
		print(f"  {segment['kind']:7s} {segment['start_tc']} - {segment['end_tc']}")
	if report['unmatched_start'] is not None:
		print(f"Unclosed silence from {report['unmatched_start']:.3f}s to end")
	print("")
	return

#============================================

def main(argv: list = None) -> int:
	"""
	Main entry point.
	"""
	args = parse_args(argv)
	reporter = CommandReporter(quiet=args.quiet)
	try:
		utils.check_dependency("ffmpeg")
		utils.check_dependency("ffprobe")
		duration = ffmpeg.probe_duration(args.input_file, reporter=reporter)
		events = ffmpeg.detect_silence(args.input_file,
			threshold_db=args.threshold_db, min_silence=args.min_silence,
			reporter=reporter)
	except AvSyncError as exc:
		reporter.error(exc.message, exc.diagnostics)
		return 1
	report = build_report(args.input_file, duration, events,
		args.threshold_db, args.min_silence)
	print_summary(report)
	if args.output_file is not None:
		with open(args.output_file, 'w', encoding='utf-8') as handle:
			yaml.safe_dump(report, handle, sort_keys=False)
		print(f"Report: {args.output_file}")
	return 0

#============================================

if __name__ == '__main__':
	sys.exit(main())

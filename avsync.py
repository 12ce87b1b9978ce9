#!/usr/bin/env python3

import argparse
import sys
import yaml
from avsynclib.core import aligner
from avsynclib.core import config
from avsynclib.core.errors import AvSyncError
from avsynclib.core.pipeline import SyncPipeline
from avsynclib.core.reporter import CommandReporter

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(
		description="Match audio and video durations, then mux them")
	parser.add_argument('-v', '--video', dest='video_file',
		help='input video file')
	parser.add_argument('-a', '--audio', dest='audio_file',
		help='input audio file')
	parser.add_argument('-o', '--output', dest='output_file',
		help='output file, default <video>.synced.mp4')
	parser.add_argument('-c', '--config', dest='config_file',
		help='avsync config yaml')
	parser.add_argument('-w', '--write-config', dest='write_config',
		help='write a default config yaml to this path and exit')
	parser.add_argument('-s', '--strategy', dest='strategy',
		choices=config.STRATEGIES, help='audio padding strategy')
	parser.add_argument('-g', '--max-gap-silence', dest='max_gap_silence',
		type=float, help='longest silence inserted at one gap, seconds')
	parser.add_argument('-t', '--threshold-db', dest='threshold_db', type=float,
		help='silence detection threshold in dBFS')
	parser.add_argument('-m', '--min-silence', dest='min_silence', type=float,
		help='minimum silence duration in seconds')
	parser.add_argument('-j', '--workers', dest='workers', type=int,
		help='parallel ffmpeg jobs for segment processing')
	parser.add_argument('-n', '--dry-run', dest='dry_run', action='store_true',
		help='probe and plan only, print the plan as yaml')
	parser.add_argument('-T', '--temp-dir', dest='temp_dir',
		help='parent directory for the run workspace')
	parser.add_argument('-k', '--keep-temp', dest='keep_temp',
		help='keep temporary files', action='store_true')
	parser.add_argument('-K', '--no-keep-temp', dest='keep_temp',
		help='remove temporary files', action='store_false')
	parser.add_argument('-q', '--quiet', dest='quiet', action='store_true',
		help='only print errors')
	parser.add_argument('-d', '--debug', dest='debug', action='store_true',
		help='verbose output and a debug log file')
	parser.add_argument('-l', '--log-file', dest='log_file',
		help='debug log path, default avsync.log with --debug')
	parser.set_defaults(keep_temp=False)
	args = parser.parse_args(argv)
	if args.write_config is None:
		if args.video_file is None or args.audio_file is None:
			parser.error("--video and --audio are required")
	return args

#============================================

def build_run_settings(args) -> dict:
	if args.config_file is not None:
		raw_config = config.load_config(args.config_file)
		settings = config.build_settings(raw_config, args.config_file)
	else:
		settings = config.build_settings()
	overrides = {
		'strategy': args.strategy,
		'max_gap_silence': args.max_gap_silence,
		'threshold_db': args.threshold_db,
		'min_silence': args.min_silence,
		'workers': args.workers,
	}
	return config.apply_overrides(settings, overrides)

#============================================

def main(argv: list = None) -> int:
	args = parse_args(argv)
	if args.write_config is not None:
		config.write_config_file(args.write_config)
		print(f"Wrote default config: {args.write_config}")
		return 0
	log_path = args.log_file
	if log_path is None and args.debug:
		log_path = "avsync.log"
	reporter = CommandReporter(quiet=args.quiet, debug=args.debug,
		log_path=log_path)
	try:
		settings = build_run_settings(args)
		pipeline = SyncPipeline(args.video_file, args.audio_file,
			output_file=args.output_file, settings=settings, reporter=reporter,
			keep_temp=args.keep_temp, temp_dir=args.temp_dir,
			dry_run=args.dry_run)
		pipeline.run()
	except AvSyncError as exc:
		reporter.error(exc.message, exc.diagnostics)
		return 1
	if args.dry_run:
		print(yaml.safe_dump(aligner.plan_report(pipeline.plan), sort_keys=False))
	return 0


if __name__ == '__main__':
	sys.exit(main())

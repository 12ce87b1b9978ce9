#!/usr/bin/env python3

"""
YAML configuration for avsync runs.
"""

# Standard Library
import copy
import os

# PIP3 modules
import yaml

# local repo modules
from avsynclib.core.errors import ConfigError

#============================================

STRATEGY_CHUNKED = 'chunked'
STRATEGY_SIMPLE = 'simple'
STRATEGIES = (STRATEGY_CHUNKED, STRATEGY_SIMPLE)
CHANNEL_LAYOUTS = {
	'mono': 1,
	'stereo': 2,
}

#============================================

def default_config() -> dict:
	"""
	Build the default config dictionary.

	Returns:
		dict: Default configuration values.
	"""
	return {
		'avsync': 1,
		'settings': {
			'detection': {
				'threshold_db': -50.0,
				'min_silence': 0.5,
			},
			'padding': {
				'strategy': STRATEGY_CHUNKED,
				'max_gap_silence': 5.0,
			},
			'alignment': {
				'epsilon': 0.01,
			},
			'audio': {
				'sample_rate': 44100,
				'channel_layout': 'stereo',
			},
			'output': {
				'audio_codec': 'aac',
				'audio_bitrate': '192k',
				'video_codec': 'libx264',
				'crf': 23,
				'preset': 'veryfast',
			},
			'workers': 4,
		},
	}

#============================================

def write_config_file(config_path: str, config: dict = None) -> None:
	"""
	Write a config file to disk.

	Args:
		config_path: Output file path.
		config: Config dictionary, defaults when None.
	"""
	if config is None:
		config = default_config()
	os.makedirs(os.path.dirname(config_path) or '.', exist_ok=True)
	with open(config_path, 'w', encoding='utf-8') as handle:
		yaml.safe_dump(config, handle, sort_keys=False)
	return

#============================================

def load_config(config_path: str) -> dict:
	"""
	Load a config file from disk.

	Args:
		config_path: Config file path.

	Returns:
		dict: Parsed config dictionary.
	"""
	if not os.path.isfile(config_path):
		raise ConfigError(f"config file not found: {config_path}")
	with open(config_path, 'r', encoding='utf-8') as handle:
		try:
			data = yaml.safe_load(handle)
		except yaml.YAMLError as exc:
			raise ConfigError(f"config {config_path}: invalid yaml",
				diagnostics=str(exc)) from exc
	if not isinstance(data, dict):
		raise ConfigError(f"config {config_path}: must be a mapping")
	if data.get('avsync') != 1:
		raise ConfigError(f"config {config_path}: must set avsync: 1")
	return data

#============================================

def coerce_float(value, config_path: str, key_path: str) -> float:
	if isinstance(value, bool):
		raise ConfigError(f"config {config_path}: {key_path} must be a number")
	if isinstance(value, (int, float)):
		return float(value)
	if isinstance(value, str):
		try:
			return float(value)
		except ValueError:
			pass
	raise ConfigError(f"config {config_path}: {key_path} must be a number")

#============================================

def coerce_int(value, config_path: str, key_path: str) -> int:
	if isinstance(value, bool):
		raise ConfigError(f"config {config_path}: {key_path} must be an integer")
	if isinstance(value, int):
		return value
	if isinstance(value, float):
		return int(value)
	if isinstance(value, str):
		try:
			return int(float(value))
		except ValueError:
			pass
	raise ConfigError(f"config {config_path}: {key_path} must be an integer")

#============================================

def coerce_str(value, config_path: str, key_path: str) -> str:
	if isinstance(value, (int, float)) and not isinstance(value, bool):
		return str(value)
	if isinstance(value, str) and value.strip() != "":
		return value.strip()
	raise ConfigError(f"config {config_path}: {key_path} must be a string")

#============================================

def build_settings(config: dict = None, config_path: str = "<defaults>") -> dict:
	"""
	Normalize settings with defaults into a flat dictionary.

	Args:
		config: Raw config dictionary, or None for defaults.
		config_path: Config file path used in error messages.

	Returns:
		dict: Normalized settings.
	"""
	defaults = default_config()['settings']
	overrides = {}
	if isinstance(config, dict):
		overrides = config.get('settings') or {}
	if not isinstance(overrides, dict):
		raise ConfigError(f"config {config_path}: settings must be a mapping")
	merged = copy.deepcopy(defaults)
	for section, values in overrides.items():
		if section not in merged:
			raise ConfigError(f"config {config_path}: unknown section settings.{section}")
		if isinstance(merged[section], dict):
			if not isinstance(values, dict):
				raise ConfigError(f"config {config_path}: settings.{section} must be a mapping")
			for key, value in values.items():
				if key not in merged[section]:
					raise ConfigError(
						f"config {config_path}: unknown key settings.{section}.{key}"
					)
				merged[section][key] = value
		else:
			merged[section] = values
	detection = merged['detection']
	padding = merged['padding']
	audio = merged['audio']
	output = merged['output']
	settings = {
		'threshold_db': coerce_float(detection['threshold_db'], config_path,
			"settings.detection.threshold_db"),
		'min_silence': coerce_float(detection['min_silence'], config_path,
			"settings.detection.min_silence"),
		'strategy': coerce_str(padding['strategy'], config_path,
			"settings.padding.strategy").lower(),
		'max_gap_silence': coerce_float(padding['max_gap_silence'], config_path,
			"settings.padding.max_gap_silence"),
		'epsilon': coerce_float(merged['alignment']['epsilon'], config_path,
			"settings.alignment.epsilon"),
		'sample_rate': coerce_int(audio['sample_rate'], config_path,
			"settings.audio.sample_rate"),
		'channel_layout': coerce_str(audio['channel_layout'], config_path,
			"settings.audio.channel_layout").lower(),
		'audio_codec': coerce_str(output['audio_codec'], config_path,
			"settings.output.audio_codec"),
		'audio_bitrate': coerce_str(output['audio_bitrate'], config_path,
			"settings.output.audio_bitrate"),
		'video_codec': coerce_str(output['video_codec'], config_path,
			"settings.output.video_codec"),
		'crf': coerce_int(output['crf'], config_path, "settings.output.crf"),
		'preset': coerce_str(output['preset'], config_path,
			"settings.output.preset"),
		'workers': coerce_int(merged['workers'], config_path, "settings.workers"),
	}
	validate_settings(settings, config_path)
	return settings

#============================================

def apply_overrides(settings: dict, overrides: dict,
	config_path: str = "<command line>") -> dict:
	"""
	Return a copy of settings with non-None override values applied.
	"""
	updated = dict(settings)
	for key, value in overrides.items():
		if value is None:
			continue
		if key not in updated:
			raise ConfigError(f"unknown setting: {key}")
		updated[key] = value
	if isinstance(updated['strategy'], str):
		updated['strategy'] = updated['strategy'].lower()
	validate_settings(updated, config_path)
	return updated

#============================================

def validate_settings(settings: dict, config_path: str) -> None:
	if settings['threshold_db'] > 0:
		raise ConfigError(f"config {config_path}: threshold_db must be 0 or negative dBFS")
	if settings['min_silence'] <= 0:
		raise ConfigError(f"config {config_path}: min_silence must be positive")
	if settings['strategy'] not in STRATEGIES:
		raise ConfigError(
			f"config {config_path}: strategy must be one of {', '.join(STRATEGIES)}"
		)
	if settings['max_gap_silence'] <= 0:
		raise ConfigError(f"config {config_path}: max_gap_silence must be positive")
	if settings['epsilon'] < 0:
		raise ConfigError(f"config {config_path}: epsilon must not be negative")
	if settings['sample_rate'] <= 0:
		raise ConfigError(f"config {config_path}: sample_rate must be positive")
	if settings['channel_layout'] not in CHANNEL_LAYOUTS:
		raise ConfigError(f"config {config_path}: channel_layout must be mono or stereo")
	if settings['crf'] < 0:
		raise ConfigError(f"config {config_path}: crf must not be negative")
	if settings['workers'] < 1:
		raise ConfigError(f"config {config_path}: workers must be at least 1")
	return

"""
Pipeline configuration.

Settings live in a JSON file (config.json next to the project, or the path in
the TRIPMAIL_CONFIG environment variable). Missing keys get defaults; invalid
values are logged and replaced by their default so a bad file never stops a
run.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional, Tuple

from .merge import MERGE_BONUS_POLICIES

logger = logging.getLogger(__name__)

# Default paths (can be overridden)
_DATA_DIR = Path(__file__).parent.parent
CONFIG_FILE = _DATA_DIR / "config.json"
CONFIG_ENV_VAR = "TRIPMAIL_CONFIG"


@dataclass(frozen=True)
class PipelineConfig:
    discard_threshold: float = 0.2
    consistency_penalty: float = 0.1
    merge_bonus: float = 0.05
    merge_bonus_policy: str = "once"
    apply_context: bool = True
    round_trip_window_days: int = 30
    past_window_days: int = 30
    future_window_years: int = 2
    max_workers: int = 1
    trusted_domains: Tuple[str, ...] = ()
    airport_codes_file: Optional[str] = None


DEFAULTS = asdict(PipelineConfig())


def _is_fraction(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and 0 <= value <= 1


def _is_positive_int(value):
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def _is_non_negative_int(value):
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


# key -> (validator, description used in warnings)
_VALIDATORS = {
    'discard_threshold': (_is_fraction, "a number between 0 and 1"),
    'consistency_penalty': (_is_fraction, "a number between 0 and 1"),
    'merge_bonus': (_is_fraction, "a number between 0 and 1"),
    'merge_bonus_policy': (lambda v: v in MERGE_BONUS_POLICIES, f"one of {', '.join(MERGE_BONUS_POLICIES)}"),
    'apply_context': (lambda v: isinstance(v, bool), "true or false"),
    'round_trip_window_days': (_is_non_negative_int, "a whole number of days"),
    'past_window_days': (_is_non_negative_int, "a whole number of days"),
    'future_window_years': (_is_positive_int, "a whole number of years"),
    'max_workers': (_is_positive_int, "a whole number of at least 1"),
    'trusted_domains': (lambda v: isinstance(v, list) and all(isinstance(d, str) for d in v), "a list of domains"),
    'airport_codes_file': (lambda v: v is None or isinstance(v, str), "a file path"),
}


def config_from_dict(data):
    """Build a PipelineConfig from a dict, replacing invalid values by defaults.

    Args:
        data: Dict as read from config.json (unknown keys are ignored)

    Returns:
        PipelineConfig
    """
    data = dict(data)
    for key, default in DEFAULTS.items():
        data.setdefault(key, list(default) if isinstance(default, tuple) else default)

    values = {}
    for key, (is_valid, expected) in _VALIDATORS.items():
        value = data[key]
        if not is_valid(value):
            logger.warning("Invalid config value for %s: %r (expected %s), using default %r",
                           key, value, expected, DEFAULTS[key])
            value = DEFAULTS[key]
        values[key] = value

    values['trusted_domains'] = tuple(values['trusted_domains'])
    return PipelineConfig(**values)


def load_config(config_file=None):
    """Load configuration from file with error handling.

    Args:
        config_file: Path to config file. Defaults to $TRIPMAIL_CONFIG, then config.json.

    Returns:
        PipelineConfig (all defaults when the file is missing or unreadable)
    """
    if config_file is None:
        config_file = os.environ.get(CONFIG_ENV_VAR) or CONFIG_FILE

    config_path = Path(config_file)
    if not config_path.exists():
        logger.debug("No config file at %s, using defaults", config_path)
        return PipelineConfig()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Config file %s is corrupted (%s), using defaults", config_path, e)
        return PipelineConfig()
    except OSError as e:
        logger.warning("Could not read config file %s (%s), using defaults", config_path, e)
        return PipelineConfig()

    if not isinstance(data, dict):
        logger.warning("Config file %s has invalid format, using defaults", config_path)
        return PipelineConfig()

    return config_from_dict(data)


def save_config(config, config_file=None):
    """Save configuration to file.

    Args:
        config: PipelineConfig to save.
        config_file: Path to config file. Defaults to config.json.
    """
    if config_file is None:
        config_file = CONFIG_FILE

    data = asdict(config)
    data['trusted_domains'] = list(config.trusted_domains)
    with open(config_file, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2)

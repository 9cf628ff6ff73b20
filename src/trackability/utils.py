"""
Shared helper functions and utilities.

Logging setup and JSON configuration handling used across the project.
"""

import copy
import json
import logging
import os


LOGGER = logging.getLogger(__name__)

VALID_ALGORITHMS = ("fast", "harris", "orb", "hybrid")
VALID_QUALITIES = ("low", "medium", "high", "auto")


def setup_logging(level=logging.INFO):
    """Set up logging configuration.

    Args:
        level: Logging level (default: INFO)
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    LOGGER.info("Logging initialized")


DEFAULT_CONFIG = {
    'feature_detection': {
        # Detector selection: 'fast', 'harris', 'orb', 'hybrid'
        'algorithm': 'hybrid',
        'max_features': 500,

        # FAST-specific
        'fast_threshold': 20,
        'nonmax_suppression': True,

        # Harris-specific
        'harris_k': 0.04,
        'harris_threshold': 0.01,

        # ORB-specific
        'orb_threshold': 15,
        'orb_patch_size': 31,
    },

    'marker_analysis': {
        'quality': 'medium',  # 'low', 'medium', 'high', 'auto'
        'algorithm': 'hybrid',
        'evaluate_quality': True,
        'optimize_for_performance': False,
        'optimization_grid_size': 16,
        'low_quality_threshold': 50,  # Warn below this overall score
        'detailed_report': False,
    },
}


def get_config(config_path=None):
    """Load configuration from file or return defaults.

    Args:
        config_path: Path to configuration file (optional)

    Returns:
        dict: Configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    # Load from file if provided
    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                loaded_config = json.load(f)
            config.update(loaded_config)
            LOGGER.info("Configuration loaded from %s", config_path)
        except (OSError, ValueError) as e:
            LOGGER.warning("Failed to load config from %s: %s", config_path, e)

    return config


def save_config(config, config_path):
    """Save configuration to file.

    Args:
        config: Configuration dictionary
        config_path: Path to save configuration file

    Returns:
        bool: True if save successful, False otherwise
    """
    try:
        with open(config_path, 'w') as f:
            json.dump(config, f, indent=4)
        LOGGER.info("Configuration saved to %s", config_path)
        return True
    except (OSError, TypeError) as e:
        LOGGER.error("Failed to save config to %s: %s", config_path, e)
        return False


def validate_config(config):
    """Validate configuration parameters.

    Args:
        config: Configuration dictionary

    Returns:
        bool: True if valid, False otherwise
    """
    required_keys = ['feature_detection', 'marker_analysis']

    for key in required_keys:
        if key not in config:
            LOGGER.error("Missing required config key: %s", key)
            return False

    detection = config['feature_detection']
    analysis = config['marker_analysis']
    valid = True

    if detection.get('algorithm', 'hybrid') not in VALID_ALGORITHMS:
        LOGGER.error("Unknown detection algorithm: %s", detection.get('algorithm'))
        valid = False
    if analysis.get('algorithm', 'hybrid') not in VALID_ALGORITHMS:
        LOGGER.error("Unknown analysis algorithm: %s", analysis.get('algorithm'))
        valid = False
    if analysis.get('quality', 'medium') not in VALID_QUALITIES:
        LOGGER.error("Unknown quality preset: %s", analysis.get('quality'))
        valid = False

    # Validate numeric values
    if detection.get('max_features', 1) < 1:
        LOGGER.error("max_features must be positive")
        valid = False
    for key in ('fast_threshold', 'harris_threshold', 'orb_threshold'):
        if detection.get(key, 0) < 0:
            LOGGER.error("%s must be non-negative", key)
            valid = False
    if detection.get('orb_patch_size', 3) < 3:
        LOGGER.error("orb_patch_size must be at least 3")
        valid = False

    if valid:
        LOGGER.info("Configuration validated successfully")
    return valid

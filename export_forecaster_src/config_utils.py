# export_forecaster_src/config_utils.py

import logging

logger = logging.getLogger(__name__)

# Initialize the global configuration manager
config_manager = None
CONFIG_AVAILABLE = False
try:
    from config import get_config  # use project configuration manager
    CONFIG_AVAILABLE = True
except ImportError as e:
    logger.warning("Configuration system NOT detected: %s - using defaults", e)


def initialize_config(config_path=None):
    """
    Initializes the global configuration manager.

    Loads and validates the project's YAML configuration. If the file is
    missing or invalid, the error is logged and defaults are used.
    """
    global config_manager
    if not CONFIG_AVAILABLE:
        return
    if config_manager is not None and config_path is None:
        return
    try:
        config_manager = get_config(config_path)
        validation_errors = config_manager.validate_configuration()
        if validation_errors:
            logger.warning("Configuration validation warnings: %s", validation_errors)
    except Exception as e:
        logger.error("Failed to initialize configuration: %s. Using defaults.", e)
        config_manager = None


def get_config_value(key_path: str, default=None, args=None, cli_param=None):
    """
    Retrieves a configuration value, providing support for command-line overrides.
    The function prioritizes values in the following order:
    1. CLI argument (if provided)
    2. Configuration file
    3. Default value
    """
    # First priority: CLI argument
    if args is not None and cli_param and hasattr(args, cli_param):
        cli_value = getattr(args, cli_param)
        if cli_value is not None:
            return cli_value

    # Second priority: Configuration file
    if config_manager:
        config_value = config_manager.get(key_path, None)
        if config_value is not None:
            return config_value

    # Third priority: Default value
    return default

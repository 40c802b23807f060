# export_forecaster_src/parsing_utils.py

import argparse
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


def parse_range_arg(s: Optional[str], default: str = "0-2", config_key: Optional[str] = None,
                    args: Optional[argparse.Namespace] = None, cli_param: Optional[str] = None) -> List[int]:
    """
    Parse a range argument like '0-2' or '0,1,2' into a list of integers.

    Parameters
    ----------
    s : str, optional
        CLI range argument string to parse
    default : str, default="0-2"
        Default range if no CLI arg or config value provided
    config_key : str, optional
        Configuration key path for fallback value
    args : argparse.Namespace, optional
        CLI arguments for precedence checking
    cli_param : str, optional
        Attribute of ``args`` holding the CLI override

    Returns
    -------
    List[int]
        Parsed range as sorted list of unique integers

    Examples
    --------
    >>> parse_range_arg("0-3")
    [0, 1, 2, 3]
    >>> parse_range_arg("0,2,4")
    [0, 2, 4]
    """
    from .config_utils import get_config_value

    if s is None and config_key:
        range_value = get_config_value(config_key, default, args, cli_param)
        if isinstance(range_value, list):
            return sorted(set(int(x) for x in range_value))
        txt = str(range_value).strip() if range_value is not None else default
    else:
        txt = (s or default).strip()

    out: List[int] = []
    try:
        if "-" in txt and "," not in txt:
            a, b = txt.split("-", 1)
            out = list(range(int(a.strip()), int(b.strip()) + 1))
        else:
            out = [int(x.strip()) for x in txt.split(",") if x.strip() != ""]
    except ValueError:
        out = []

    if not out:
        logger.warning("Could not parse range '%s'; using default '%s'", txt, default)
        return parse_range_arg(default) if txt != default else []

    return sorted(set(out))


def parse_float_list(s: Optional[str]) -> Optional[List[float]]:
    """
    Parse a comma-separated list of floats.

    Returns None for an empty argument so config defaults can apply.

    Examples
    --------
    >>> parse_float_list("1,0.1,0.01")
    [1.0, 0.1, 0.01]
    >>> parse_float_list(None) is None
    True
    """
    if s is None or not str(s).strip():
        return None
    try:
        return [float(x.strip()) for x in str(s).split(",") if x.strip() != ""]
    except ValueError:
        raise ValueError(f"Invalid numeric list '{s}'") from None


def parse_products(product_string: Optional[str]) -> List[str]:
    """
    Parse a comma-separated list of product identifiers.

    Examples
    --------
    >>> parse_products(" soy , coffee,beef ")
    ['soy', 'coffee', 'beef']
    >>> parse_products(None)
    []
    """
    if not product_string:
        return []
    return [p.strip() for p in product_string.split(",") if p.strip()]


def parse_intervals_arg(s: Optional[str], default: str = "80,95") -> List[int]:
    """
    Parse an intervals argument like '80,95' into sorted unique coverage levels.

    Values outside 1-99 are discarded; an unusable argument yields [80, 95].
    """
    txt = (s or default).strip()
    try:
        vals = sorted({int(x.strip()) for x in txt.split(",") if x.strip() != ""})
    except ValueError:
        return [80, 95]
    vals = [v for v in vals if 1 <= v < 100]
    return vals or [80, 95]


def validate_scoring(scoring: str) -> str:
    """
    Validate the validation-score name.

    Raises
    ------
    ValueError
        If the scoring is not supported
    """
    valid = ["rmse", "mean_residual"]
    if scoring not in valid:
        raise ValueError(f"Invalid scoring '{scoring}'. Must be one of: {valid}")
    return scoring


def validate_log_level(log_level: str) -> str:
    """
    Validate and normalize logging level specification.

    Raises
    ------
    ValueError
        If the logging level is not supported
    """
    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    level_upper = log_level.upper()
    if level_upper not in valid_levels:
        raise ValueError(f"Invalid log level '{log_level}'. Must be one of: {valid_levels}")
    return level_upper

"""Settings for the visualization facade, loaded from TOML and environment variables."""
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional

import toml

CONFIG_ENV_VAR = "POLYVIZ_CONFIG"
ENV_PREFIX = "POLYVIZ_"
DEFAULT_CONFIG_FILE = "polyviz.toml"

logger = logging.getLogger("PolyViz.config")


@dataclass(frozen=True)
class Settings:
    """Runtime settings shared by the orchestrator and its engines."""
    default_width: int = 800
    default_height: int = 400
    jpeg_quality: float = 0.95
    default_theme: str = "light"
    frame_rate: int = 60
    log_level: str = "INFO"
    force_alpha_min: float = 0.001
    force_alpha_decay: float = 1 - 0.001 ** (1 / 300)
    force_velocity_decay: float = 0.4
    tree_depth_spacing: float = 180.0


def _coerce(value: str, target_type):
    if target_type is bool:
        return value.strip().lower() in ("1", "true", "yes", "on")
    return target_type(value)


def load_settings(path: Optional[str] = None) -> Settings:
    """
    Load settings from a TOML file and POLYVIZ_* environment overrides.

    The file is looked up in ``path``, then the POLYVIZ_CONFIG environment
    variable, then ``polyviz.toml`` in the working directory. A missing file
    yields the defaults. Values may sit at the top level or under a
    ``[polyviz]`` table.
    """
    settings = Settings()
    config_path = Path(path or os.getenv(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILE)
    known = {f.name: f for f in fields(Settings)}

    if config_path.exists():
        raw = toml.load(config_path)
        section = raw.get("polyviz", raw)
        values = {}
        for key, value in section.items():
            if key not in known:
                logger.warning("Ignoring unknown setting '%s' in %s", key, config_path)
                continue
            values[key] = value
        settings = replace(settings, **values)
        logger.debug("Loaded settings from %s", config_path)

    overrides = {}
    for name in known:
        env_value = os.getenv(ENV_PREFIX + name.upper())
        if env_value is None:
            continue
        target_type = type(getattr(settings, name))
        try:
            overrides[name] = _coerce(env_value, target_type)
        except ValueError:
            logger.warning("Invalid value for %s%s: %s", ENV_PREFIX, name.upper(), env_value)
    if overrides:
        settings = replace(settings, **overrides)
    return settings

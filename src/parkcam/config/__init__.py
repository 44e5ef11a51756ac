"""parkcam configuration module.

Provides configuration management using pydantic-settings.

Usage:
    from parkcam.config import load_settings

    settings = load_settings(test_mode=True)
    print(settings.poll_interval)
"""

from typing import Any

from parkcam.config.settings import Settings

__all__ = ["Settings", "load_settings"]


def load_settings(**overrides: Any) -> Settings:
    """Build the immutable settings value for this process.

    Values come from the environment and ``.env``; keyword overrides (usually
    CLI flags) win. Overrides that are None are ignored so unset flags fall
    through to the environment.

    Returns:
        Frozen Settings instance.
    """
    return Settings(**{k: v for k, v in overrides.items() if v is not None})

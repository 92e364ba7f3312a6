"""Default configuration values for SubMiner."""

from .config import SubMinerConfig


def create_default_config(**overrides) -> SubMinerConfig:
    """Create a default configuration with optional overrides.

    Args:
        **overrides: Keyword arguments to override default values

    Returns:
        SubMinerConfig with defaults and overrides applied

    Example:
        config = create_default_config(
            field_grouping="auto",
            polling_rate=1.5
        )
    """
    return SubMinerConfig(**overrides)

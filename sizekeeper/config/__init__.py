"""
sizekeeper.config - Tracker configuration.

    - settings : TrackerConfig dataclass, timing constants, data file path
"""

from sizekeeper.config.settings import TrackerConfig, default_data_file

__all__ = ["TrackerConfig", "default_data_file"]

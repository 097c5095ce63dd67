"""
Utility Modules

Configuration loading.
"""

from golden_record.utils.config import load_config, Config

__all__ = ["load_config", "Config"]

"""
Utility modules for the catalog sync service
"""
from .config_loader import SyncConfig, load_sync_config
from .rate_limiter import RateLimiter

__all__ = [
    'SyncConfig',
    'load_sync_config',
    'RateLimiter',
]

"""
Utility modules for configuration and logging.
"""
from .logger import setup_logger

__all__ = ['config', 'setup_logger']

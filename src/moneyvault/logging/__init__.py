"""Centralized logging configuration for MoneyVault.

Standard usage:
    ```python
    import logging
    from moneyvault.logging import setup_logging

    # Configure once at startup, after the profile is selected
    setup_logging()

    logger = logging.getLogger(__name__)
    ```
"""

from .config import get_log_config_summary, setup_logging

__all__ = ["get_log_config_summary", "setup_logging"]

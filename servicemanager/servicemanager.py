"""
Service Manager — Main Reflex application entry point.

Boot sequence:
    1. _init_app()  — load servicemanager.yaml, start structured logging
    2. Create rx.App() and register the page
"""

import logging

import reflex as rx

from servicemanager.pages.service_manager import service_manager_page

logger = logging.getLogger("servicemanager.startup")

# Guard: only initialize once, even if the module is re-imported
_initialized = False


def _init_app() -> None:
    """Load config and start the JSONL event log."""
    global _initialized
    if _initialized:
        return
    _initialized = True

    from servicemanager.engine.config import load_config
    from servicemanager.engine.errors import ConfigError
    from servicemanager.engine.logging import init_logging

    try:
        config = load_config()
    except ConfigError as e:
        logger.error(f"Failed to load configuration: {e.message}")
        raise

    if config.logging.enabled:
        init_logging(
            log_dir=config.logging.directory,
            flush_interval_ms=config.logging.flush_interval_ms,
            flush_batch_size=config.logging.flush_batch_size,
            level=config.logging.level,
        )

    logger.info(
        f"{config.app.name} started (environment={config.app.environment}, "
        f"remote={config.remote.mode})"
    )


_init_app()

app = rx.App()
app.add_page(service_manager_page, route="/", title="Service Manager")

#!/usr/bin/env python3
"""
Main entry point for the Resonance Touch Interface service.

Parses command-line arguments, configures logging, wires the storage,
profile store and interface together, and serves the web application.
"""

import logging
import sys
from typing import Optional

import uvicorn

from resonance_touch.api.app import create_app
from resonance_touch.config import AppConfig, parse_arguments
from resonance_touch.errors import ConfigValidationError
from resonance_touch.modules.orchestrator import ResonanceTouchInterface
from resonance_touch.modules.personalization import PersonalizationStore
from resonance_touch.modules.storage import (
    EncryptedStorage,
    MemoryStorage,
    SqliteStorage,
    StorageBackend,
)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger("resonance_touch")


def setup_logging(level: str = "info", log_file: Optional[str] = None) -> None:
    """Configure application logging.

    Args:
        level: Level name for the resonance_touch loggers
        log_file: Optional path of an additional log file
    """
    # Reset existing handlers to avoid duplicate logs
    logger.handlers = []

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.WARNING)  # Set default level for all other loggers

    # Configure our application logger
    logger.setLevel(getattr(logging, level.upper()))

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)

    # File handler (optional)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)


def build_storage(config: AppConfig) -> StorageBackend:
    """Create the profile storage backend described by the configuration."""
    storage: StorageBackend
    if config.storage_path:
        storage = SqliteStorage(config.storage_path)
    else:
        logger.warning("No storage path configured, profiles are kept in memory only")
        storage = MemoryStorage()

    if config.rti.privacy.encrypt_data:
        if config.encryption_key:
            storage = EncryptedStorage(storage, config.encryption_key)
            logger.info("Profile encryption enabled")
        else:
            logger.warning(
                "privacy.encrypt_data is set but no encryption key was supplied, "
                "profiles are stored unencrypted"
            )
    return storage


def build_interface(config: AppConfig) -> ResonanceTouchInterface:
    privacy = config.rti.privacy
    store = PersonalizationStore(
        config.user_id,
        storage=build_storage(config),
        privacy_defaults={
            "local_processing_only": privacy.local_processing_only,
            "encrypt_data": privacy.encrypt_data,
            "retention_days": privacy.data_retention_days,
            "allow_anonymous_sharing": privacy.allow_anonymous_sharing,
        },
        caching=config.rti.performance.enable_caching,
    )
    return ResonanceTouchInterface(
        config=config.rti,
        profile=store,
        application=config.application,
        monitor_interval=config.monitor_interval_sec,
    )


def main() -> None:
    """Main entry point for the application."""
    try:
        config = parse_arguments()
    except ConfigValidationError as e:
        print(f"Invalid configuration: {'; '.join(e.errors)}", file=sys.stderr)
        sys.exit(2)

    setup_logging(config.log_level, config.log_file)

    interface = build_interface(config)
    app = create_app(interface, store=interface.profile)

    logger.info(f"Server starting on {config.host}:{config.port}")
    try:
        uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down")


if __name__ == "__main__":
    main()

"""Alembic migration utilities for ElkarBackup."""

import logging
import os
import subprocess
from importlib import resources

from elkarbackup.config_module import DATA_DIR

logger = logging.getLogger(__name__)


def get_alembic_config_path() -> str:
    """Location of the alembic.ini shipped inside the package"""
    config_path = str(resources.files("elkarbackup") / "alembic.ini")
    if os.path.exists(config_path):
        return config_path
    return "alembic.ini"


def run_migrations() -> bool:
    """Upgrade the database to the latest revision in a separate process."""
    try:
        os.makedirs(DATA_DIR, exist_ok=True)
        config_path = get_alembic_config_path()

        logger.info("Running database migrations...")
        subprocess.run(
            ["alembic", "-c", config_path, "upgrade", "head"],
            check=True,
            capture_output=True,
            text=True,
        )
        logger.info("Database migrations completed successfully")
        return True

    except subprocess.CalledProcessError as e:
        logger.error(f"Migration failed with exit code {e.returncode}")
        if e.stdout:
            logger.error(f"stdout: {e.stdout}")
        if e.stderr:
            logger.error(f"stderr: {e.stderr}")
        return False
    except FileNotFoundError:
        logger.error(
            "Alembic command not found! Make sure alembic is installed and available in your PATH"
        )
        return False

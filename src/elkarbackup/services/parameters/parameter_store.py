"""
Typed store for the administrator-editable parameters.

Parameters live in a JSON file that is replaced atomically on every save,
so readers never observe a half-written configuration.
"""

import json
import logging
import os
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from elkarbackup.utils.file_utils import atomic_write_text

logger = logging.getLogger(__name__)


class Parameters(BaseModel):
    model_config = ConfigDict(extra="forbid")

    home: str = "/var/lib/elkarbackup"
    backup_dirs: List[str] = Field(
        default_factory=lambda: ["/var/spool/elkarbackup/backups"], min_length=1
    )
    public_key: str = "/var/lib/elkarbackup/.ssh/id_rsa.pub"
    authorized_keys: str = "/var/lib/elkarbackup/.ssh/authorized_keys"
    upload_dir: str = "/var/spool/elkarbackup/uploads"
    url_prefix: str = ""
    max_log_age_days: int = Field(default=365, ge=1)
    warning_load_level: float = Field(default=0.8, gt=0, le=1)
    max_parallel_jobs: int = Field(default=1, ge=1)
    disable_background: bool = False

    @property
    def private_key(self) -> str:
        """Private key path, derived from the public key path"""
        if self.public_key.endswith(".pub"):
            return self.public_key[: -len(".pub")]
        return f"{self.public_key}.key"


class ParameterStore:
    """Loads and atomically saves Parameters as JSON"""

    def __init__(self, path: str) -> None:
        self.path = path

    def load(self) -> Parameters:
        """Read parameters, falling back to defaults when the file is missing."""
        if not os.path.exists(self.path):
            logger.info(f"No parameters file at {self.path}, using defaults")
            return Parameters()

        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return Parameters.model_validate(data)

    def save(self, parameters: Parameters) -> None:
        atomic_write_text(self.path, parameters.model_dump_json(indent=2) + "\n")
        logger.info(f"Parameters saved to {self.path}")

    def update(self, changes: Dict[str, object]) -> Parameters:
        """
        Apply a partial update and persist it.

        Raises:
            ValueError: If a key is unknown or a value has the wrong type.
                Nothing is written in that case.
        """
        current = self.load()
        merged = {**current.model_dump(), **changes}
        try:
            updated = Parameters.model_validate(merged)
        except ValidationError as e:
            raise ValueError(f"Invalid parameters: {e}") from e

        self.save(updated)
        return updated

import os

DATA_DIR = os.getenv("ELKARBACKUP_DATA_DIR", "/app/data")
DATABASE_URL = os.getenv(
    "ELKARBACKUP_DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(DATA_DIR, 'elkarbackup.db')}",
)
PARAMETERS_FILE = os.getenv(
    "ELKARBACKUP_PARAMETERS_FILE", os.path.join(DATA_DIR, "parameters.json")
)

# Tick interval of the background worker, in seconds
TICK_INTERVAL = int(os.getenv("ELKARBACKUP_TICK_INTERVAL", "60"))

# How often a running job re-reads its abort flag, in seconds
ABORT_CHECK_INTERVAL = float(os.getenv("ELKARBACKUP_ABORT_CHECK_INTERVAL", "5"))

# Command used to execute a queued job. "{job_id}" is replaced by the job id.
RUN_JOB_COMMAND = os.getenv("ELKARBACKUP_RUN_JOB_COMMAND", "")

# Target name of messages addressed to the background worker
TICK_COMMAND_TARGET = "TickCommand"


def get_sync_database_url() -> str:
    """Database URL with the async driver stripped, for Alembic."""
    return DATABASE_URL.replace("+aiosqlite", "")

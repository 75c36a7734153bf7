"""ElkarBackup background command mailbox and job queue."""

__version__ = "0.1.0"

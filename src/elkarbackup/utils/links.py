"""
Links attached to log records so entries can be traced to what they concern.
"""


def client_link(client_id: int, url_prefix: str = "") -> str:
    return f"{url_prefix}/client/{client_id}"


def job_link(client_id: int, job_id: int, url_prefix: str = "") -> str:
    return f"{url_prefix}/client/{client_id}/job/{job_id}"

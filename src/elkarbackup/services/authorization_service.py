"""
Authorization decisions for queue and mailbox requests.
"""

import logging
import secrets
from typing import Optional

from elkarbackup.exceptions import AuthorizationError
from elkarbackup.models.database import Client, Job, User

logger = logging.getLogger(__name__)


class AuthorizationService:
    """Grants access to administrators and to the owner of a client"""

    def is_admin(self, user: Optional[User]) -> bool:
        return bool(user is not None and user.is_active and user.is_admin)

    def is_granted(self, user: Optional[User], client: Client) -> bool:
        if user is None or not user.is_active:
            return False
        return self.is_admin(user) or client.owner_id == user.id

    def require_admin(self, user: Optional[User]) -> None:
        if not self.is_admin(user):
            raise AuthorizationError("Administrator privileges are required")

    def require_client_access(self, user: Optional[User], client: Client) -> None:
        if not self.is_granted(user, client):
            username = user.username if user is not None else "anonymous"
            logger.warning(f"User {username} denied access to client {client.id}")
            raise AuthorizationError("You are not allowed to manage this client")

    def token_matches(self, job: Job, token: Optional[str]) -> bool:
        """Constant-time comparison of a presented token with the job's token"""
        if not token or not job.token:
            return False
        return secrets.compare_digest(token.encode(), job.token.encode())

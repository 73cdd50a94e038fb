"""
Shared-secret authentication for the backup API.

The chat app sends the secret in the `X-Auth-Key` header. The expected value
comes from the application's BackupConfig (`BACKUP_AUTH_KEY`).

Usage:
  router = APIRouter(dependencies=[Depends(verify_auth_key)])
"""

import hmac
from typing import Optional

from fastapi import Header, Request
from loguru import logger

from backups.exceptions import UnauthorizedError

AUTH_HEADER = "X-Auth-Key"


def is_valid_key(provided: Optional[str], expected: str) -> bool:
    """Constant-time comparison of the provided key against the configured one."""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def verify_auth_key(
    request: Request,
    x_auth_key: Optional[str] = Header(None, alias=AUTH_HEADER)
) -> None:
    """
    Dependency: reject requests without the shared secret.

    Raises:
        UnauthorizedError: Header missing or wrong (401)
    """
    expected = request.app.state.config.auth_key

    if not is_valid_key(x_auth_key, expected):
        client = request.client.host if request.client else "unknown"
        logger.warning(f"[AUTH] Rejected {request.method} {request.url.path} from {client}")
        raise UnauthorizedError()

"""Resolution of the authenticated owner for a request."""

import logging
from typing import Optional

from notevault.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class PrincipalResolver:
    """Supplies the owner id the engine scopes every request by.

    The MCP transport carries no login, so the server process is the
    credential: it is started for one owner (``NOTEVAULT_OWNER_ID`` or
    ``--owner-id``) and every tool call acts as that owner. Callers cannot
    name a different owner.
    """

    def __init__(self, owner_id: Optional[str] = None):
        self.owner_id = (owner_id or "").strip() or None

    def resolve(self) -> str:
        """Return the owner for this request.

        Raises:
            AuthenticationError: The server was started without an owner.
        """
        if self.owner_id:
            return self.owner_id
        logger.warning("Request rejected: no owner configured")
        raise AuthenticationError()

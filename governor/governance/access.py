"""
Access control for proposal creation and cancellation.

One admin plus a set of governors may propose and cancel. Voting,
queueing, defeat finalization and execution are open to any caller.
"""

from typing import Iterable, List, Set

from eth_utils import is_hex_address, to_checksum_address

from ..exceptions import Unauthorized
from ..logger import get_logger

logger = get_logger(__name__)


def normalize_identity(identity: str) -> str:
    """
    Canonical form of a caller identity.

    Hex addresses are checksummed so case variants compare equal; any
    other non-empty string is used as given.
    """
    if not isinstance(identity, str) or not identity:
        raise ValueError(f"Caller identity must be a non-empty string (got {identity!r})")
    if is_hex_address(identity):
        return to_checksum_address(identity)
    return identity


class AccessControl:
    """Admin / governor capability checks."""

    def __init__(self, admin: str, governors: Iterable[str] = ()):
        self._admin = normalize_identity(admin)
        self._governors: Set[str] = {normalize_identity(g) for g in governors}

    @property
    def admin(self) -> str:
        return self._admin

    @property
    def governors(self) -> List[str]:
        return sorted(self._governors)

    def is_authorized(self, caller: str) -> bool:
        caller = normalize_identity(caller)
        return caller == self._admin or caller in self._governors

    def require_authorized(self, caller: str, action: str) -> str:
        """Return the normalised caller or raise Unauthorized."""
        if not self.is_authorized(caller):
            logger.warning(f"Unauthorized {action} attempt by {caller}")
            raise Unauthorized(f"{caller} is not an admin or governor ({action})")
        return normalize_identity(caller)

    def _require_admin(self, caller: str, action: str) -> None:
        if normalize_identity(caller) != self._admin:
            logger.warning(f"Unauthorized {action} attempt by {caller}")
            raise Unauthorized(f"Only the admin may {action}")

    def grant(self, caller: str, account: str) -> None:
        self._require_admin(caller, "grant the governor role")
        account = normalize_identity(account)
        self._governors.add(account)
        logger.info(f"Governor role granted to {account}")

    def revoke(self, caller: str, account: str) -> None:
        self._require_admin(caller, "revoke the governor role")
        account = normalize_identity(account)
        self._governors.discard(account)
        logger.info(f"Governor role revoked from {account}")

    def transfer_admin(self, caller: str, new_admin: str) -> None:
        self._require_admin(caller, "transfer the admin role")
        old = self._admin
        self._admin = normalize_identity(new_admin)
        logger.info(f"Admin role transferred: {old} → {self._admin}")

    def __repr__(self) -> str:
        return f"<AccessControl admin={self._admin} governors={len(self._governors)}>"

import hashlib
import hmac

from vidacure.domain.shared.service import Service


class SsnHasher(Service):
    """One-way keyed hash of national identity numbers.

    HMAC-SHA256 with the configured secret, lowercase hex. The same secret
    always yields the same hash, so rotating it orphans every existing account.
    """

    _secret: str

    def hash(self, national_id: str) -> str:
        return hmac.new(
            self._secret.encode(), national_id.encode(), hashlib.sha256
        ).hexdigest()

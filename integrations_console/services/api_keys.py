"""API key management for the Zapier bridge."""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging
import time

from integrations_console.core.backend import BackendClient, TABLES
from integrations_console.core.cache import QueryCache
from integrations_console.core.config import get_settings
from integrations_console.core.exceptions import AuthorizationError, BackendError, ValidationError
from integrations_console.models import ApiKey, ApiKeyScope, GeneratedApiKey
from integrations_console.services.mutations import MutationTracker, mutation_tracker
from integrations_console.utils.masking import key_preview, mask_key

logger = logging.getLogger(__name__)
settings = get_settings()

VALID_SCOPES = {scope.value for scope in ApiKeyScope}


class PendingReveals:
    """Secrets awaiting the operator's "I've copied it" acknowledgement.

    Held in process memory only, keyed by owner and key id, and never cached
    or logged. An entry is forgotten after ``ttl`` seconds whether or not it
    was acknowledged.
    """

    def __init__(self, ttl: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl if ttl is not None else settings.api_key_reveal_ttl
        self.clock = clock
        self._secrets: Dict[Tuple[str, str], Tuple[str, float]] = {}

    def __len__(self) -> int:
        self._expire()
        return len(self._secrets)

    def _expire(self) -> None:
        now = self.clock()
        for entry in [k for k, (_, expires) in self._secrets.items() if expires <= now]:
            del self._secrets[entry]

    def put(self, owner: str, key_id: str, secret: str) -> None:
        self._expire()
        self._secrets[(owner, key_id)] = (secret, self.clock() + self.ttl)

    def get(self, owner: str, key_id: str) -> Optional[str]:
        self._expire()
        entry = self._secrets.get((owner, key_id))
        return entry[0] if entry else None

    def pop(self, owner: str, key_id: str) -> Optional[str]:
        self._expire()
        entry = self._secrets.pop((owner, key_id), None)
        return entry[0] if entry else None

    def clear(self) -> None:
        self._secrets.clear()


_pending_reveals = PendingReveals()


def _unwrap(result: Any, failure_message: str) -> Dict[str, Any]:
    """Unwrap the ``{success, data, error}`` envelope of zapier-auth."""
    if not isinstance(result, dict):
        raise BackendError(failure_message, details={"response": result})
    if result.get("success") is False:
        raise BackendError(result.get("error") or failure_message)
    data = result.get("data", result)
    return data if isinstance(data, dict) else {}


def expiration_status(key: ApiKey, now: Optional[datetime] = None) -> str:
    """Classify a key by days left before expiry."""
    if key.expires_at is None:
        return "active"
    now = now or datetime.utcnow()
    expires_at = key.expires_at.replace(tzinfo=None)
    days_left = (expires_at - now).total_seconds() / 86400
    if days_left < 0:
        return "expired"
    if days_left <= 7:
        return "expiring"
    if days_left <= 30:
        return "soon"
    return "active"


class ApiKeyManager:
    """Issues, lists and revokes scoped API keys."""

    def __init__(
        self,
        backend: BackendClient,
        cache: QueryCache,
        tracker: MutationTracker = mutation_tracker,
        owner: str = "",
        reveals: PendingReveals = _pending_reveals,
    ):
        self.backend = backend
        self.cache = cache
        self.tracker = tracker
        self.owner = owner
        self.reveals = reveals

    async def generate(self, name: str, scopes: List[str]) -> GeneratedApiKey:
        """Request a new key. The secret in the result is shown once."""
        name = (name or "").strip()
        if not name or not scopes:
            raise ValidationError("Please provide a key name and select at least one scope.")
        unknown = [scope for scope in scopes if scope not in VALID_SCOPES]
        if unknown:
            raise ValidationError(f"Unknown scopes: {', '.join(unknown)}")

        async with self.tracker.track(f"generate-key:{name}"):
            result = await self.backend.invoke(
                "zapier-auth",
                {"action": "generate", "key_name": name, "scopes": list(scopes)},
            )
            data = _unwrap(result, "Failed to generate API key")

        secret = data.get("api_key")
        key_id = data.get("key_id") or data.get("id")
        if not secret or not key_id:
            raise BackendError("API key generation returned no key", details={"response": {"key_id": key_id}})

        self.reveals.put(self.owner, key_id, secret)
        await self.cache.invalidate("api_keys")
        logger.info(f"Generated API key {key_id} ({mask_key(secret)})")

        return GeneratedApiKey(
            key_id=key_id,
            api_key=secret,
            preview=mask_key(secret),
            expires_at=data.get("expires_at"),
        )

    def reveal(self, key_id: str) -> str:
        """Return a freshly generated secret until it is acknowledged."""
        secret = self.reveals.get(self.owner, key_id)
        if secret is None:
            raise ValidationError("This API key can no longer be displayed")
        return secret

    def acknowledge(self, key_id: str) -> GeneratedApiKey:
        """Record that the operator copied the secret, then forget it."""
        secret = self.reveals.pop(self.owner, key_id)
        if secret is None:
            raise ValidationError("No unacknowledged API key with that ID")
        return GeneratedApiKey(key_id=key_id, preview=mask_key(secret), acknowledged=True)

    async def revoke(self, key_id: str) -> None:
        """Soft-disable a key. Webhooks using it remain but stop delivering."""
        async with self.tracker.track(f"revoke-key:{key_id}"):
            result = await self.backend.invoke("zapier-auth", {"action": "revoke", "key_id": key_id})
            _unwrap(result, "Failed to revoke API key")

        self.reveals.pop(self.owner, key_id)
        await self.cache.invalidate("api_keys", "webhooks")
        logger.info(f"Revoked API key {key_id}")

    async def list_keys(self, active_only: bool = True) -> List[ApiKey]:
        """List keys, newest first."""
        filters = {"is_active": True} if active_only else {}
        rows = await self.cache.get_or_fetch(
            f"api_keys:{'active' if active_only else 'all'}",
            lambda: self.backend.select(TABLES["api_keys"], filters, order="created_at.desc"),
        )
        return [ApiKey(**row) for row in rows]

    async def get_key(self, key_id: str) -> Optional[ApiKey]:
        """Read one key straight from the backend."""
        rows = await self.backend.select(TABLES["api_keys"], {"id": key_id}, limit=1)
        return ApiKey(**rows[0]) if rows else None

    async def validate(self, api_key: str) -> Dict[str, Any]:
        """Ask the backend whether a raw key is valid."""
        if not api_key:
            raise ValidationError("Select or enter an API key to validate.")
        logger.info(f"Validating API key {key_preview(api_key)}")
        result = await self.backend.invoke("zapier-auth", {"action": "validate", "api_key": api_key})
        data = _unwrap(result, "Failed to validate API key")
        if not data.get("valid"):
            raise AuthorizationError("Invalid or expired API key", details={"response": data})
        return data

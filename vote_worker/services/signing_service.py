"""
Privy agentic wallet signing client.

Signs and submits a serialized transaction with an agent's custodial wallet
through the Privy wallet RPC endpoint. Spending policies are enforced by
Privy itself; this client only adds a local per-agent rate limit so a
runaway cycle cannot flood the wallet.
"""
import base64
import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from vote_worker.config import common_settings
from vote_worker.exceptions import ConfigurationError, RateLimitError, SigningError
from vote_worker.services.base_api_client import APIError, AsyncBaseAPIClient

logger = logging.getLogger(__name__)

MAX_TRANSACTIONS_PER_HOUR = 5
RATE_LIMIT_WINDOW_SECONDS = 3600.0


@dataclass
class _RateLimitEntry:
    count: int
    reset_at: float


class SigningRateLimiter:
    """Fixed-window transaction counter per agent."""

    def __init__(self, max_per_window: int = MAX_TRANSACTIONS_PER_HOUR,
                 window_seconds: float = RATE_LIMIT_WINDOW_SECONDS, clock=time.monotonic):
        self.max_per_window = max_per_window
        self.window_seconds = window_seconds
        self._clock = clock
        self._entries: Dict[str, _RateLimitEntry] = {}
        self._lock = threading.Lock()

    def check(self, agent_id: str) -> None:
        """Count one transaction for the agent.

        Raises:
            RateLimitError: If the agent already used its quota for this window
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(agent_id)
            if entry is None or now > entry.reset_at:
                self._entries[agent_id] = _RateLimitEntry(count=1, reset_at=now + self.window_seconds)
                return

            if entry.count >= self.max_per_window:
                retry_after = max(entry.reset_at - now, 0.0)
                raise RateLimitError(
                    f"Rate limit exceeded: {self.max_per_window} transactions per hour. "
                    f"Reset in {int(retry_after) + 1}s.",
                    retry_after=retry_after,
                )
            entry.count += 1


class PrivySigningClient(AsyncBaseAPIClient):
    """Sign-and-submit through Privy's wallet RPC API."""

    def __init__(
        self,
        app_id: Optional[str] = None,
        app_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        caip2: Optional[str] = None,
        rate_limiter: Optional[SigningRateLimiter] = None,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.app_id = app_id if app_id is not None else common_settings.PRIVY_APP_ID
        self.app_secret = app_secret if app_secret is not None else common_settings.PRIVY_APP_SECRET
        self.caip2 = caip2 or common_settings.SOLANA_CAIP2
        self.rate_limiter = rate_limiter or SigningRateLimiter()

        if not self.is_configured():
            logger.warning("⚠️ Privy credentials not configured. Agent wallets will be disabled.")

        super().__init__(
            base_url or common_settings.PRIVY_API_URL,
            timeout=timeout,
            headers=self._auth_headers(),
            client=client,
        )

    def is_configured(self) -> bool:
        return bool(self.app_id and self.app_secret)

    def _auth_headers(self) -> Dict[str, str]:
        credentials = f"{self.app_id}:{self.app_secret}".encode()
        return {
            "Authorization": "Basic " + base64.b64encode(credentials).decode(),
            "privy-app-id": self.app_id,
        }

    async def sign_and_send_transaction(self, wallet_id: str, agent_id: str,
                                        serialized_transaction: str) -> Optional[str]:
        """
        Sign and submit a transaction with the agent's wallet.

        Args:
            wallet_id: Privy wallet identifier
            agent_id: Agent the transaction is for (rate-limit key)
            serialized_transaction: Base64 unsigned transaction

        Returns:
            The transaction signature reported by Privy (may be None)

        Raises:
            ConfigurationError: If Privy credentials are missing
            RateLimitError: If the agent exceeded its local quota
            SigningError: If the payload is invalid or Privy rejects it
        """
        if not self.is_configured():
            raise ConfigurationError("Privy credentials not configured")

        self.rate_limiter.check(agent_id)

        if not serialized_transaction or len(serialized_transaction) < 10:
            raise SigningError("Invalid serialized transaction: too short or empty")

        body = {
            "method": "solana_signAndSendTransaction",
            "caip2": self.caip2,
            "params": {
                "transaction": serialized_transaction,
                "encoding": "base64",
            },
        }
        try:
            result = await self._request("POST", f"/wallets/{wallet_id}/rpc", json=body)
        except APIError as e:
            raise SigningError(f"Privy signAndSendTransaction failed: {e.status_code} {e.message}") from e

        data = result.get("data") if isinstance(result.get("data"), dict) else result
        tx_hash = data.get("hash") or data.get("signature") or data.get("tx_hash")

        logger.info(
            f"Audit: sign_and_send_transaction wallet={wallet_id} agent={agent_id} "
            f"tx={tx_hash or 'unknown'} status=submitted"
        )
        return tx_hash

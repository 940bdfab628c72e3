"""
Tapestry social graph client.

Publishes an agent's vote reasoning as a content node on the agent owner's
Tapestry profile. Calls go through a circuit breaker so a degraded social
API stops costing a full timeout on every pair of a cycle.
"""
import logging
import time
from typing import Any, Dict, Optional

import httpx

from vote_worker.config import common_settings
from vote_worker.exceptions import ConfigurationError, ServiceUnavailableError
from vote_worker.services.base_api_client import AsyncBaseAPIClient
from vote_worker.utils.circuit_breaker import CircuitBreaker, CircuitBreakerConfig, CircuitBreakerOpenError

logger = logging.getLogger(__name__)


def extract_content_id(content: Any) -> Optional[str]:
    """Content id from either `{id}` or `{content: {id}}` payloads."""
    if not isinstance(content, dict):
        return None
    content_id = content.get("id")
    if not content_id and isinstance(content.get("content"), dict):
        content_id = content["content"].get("id")
    return str(content_id) if content_id else None


class TapestryClient(AsyncBaseAPIClient):
    """Minimal Tapestry REST client: profiles and vote-reasoning contents."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 15.0,
        breaker: Optional[CircuitBreaker] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else common_settings.TAPESTRY_API_KEY
        self.breaker = breaker or CircuitBreaker(
            CircuitBreakerConfig(name="tapestry", failure_threshold=5, recovery_timeout=60.0)
        )
        super().__init__(base_url or common_settings.TAPESTRY_API_URL, timeout=timeout, client=client)

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        if not self.is_configured():
            raise ConfigurationError("TAPESTRY_API_KEY not configured")
        try:
            return await self.breaker.call(
                self._request, "POST", path, params={"apiKey": self.api_key}, json=body
            )
        except CircuitBreakerOpenError as e:
            raise ServiceUnavailableError(str(e), retry_after=e.retry_after) from e

    async def get_or_create_profile(self, wallet_address: str, username: str) -> Dict[str, Any]:
        """Find the profile bound to a wallet, creating it on first use."""
        return await self._post(
            "/profiles/findOrCreate",
            {"walletAddress": wallet_address, "username": username, "blockchain": "SOLANA"},
        )

    async def post_vote_reasoning(
        self,
        profile_id: str,
        proposal_address: str,
        agent_id: str,
        vote: str,
        reasoning: str,
        confidence: float,
    ) -> Dict[str, Any]:
        """
        Publish a vote reasoning content node.

        The content id embeds the proposal, the agent and a millisecond
        timestamp, so repeated posts for one pair never collide.
        """
        content_id = f"vote-{proposal_address}-{agent_id}-{int(time.time() * 1000)}"
        logger.debug(f"Posting vote reasoning {content_id} for profile {profile_id}")
        properties = [
            {"key": "type", "value": "vote_reasoning"},
            {"key": "vote", "value": vote},
            {"key": "reasoning", "value": reasoning},
            {"key": "confidence", "value": str(confidence)},
            {"key": "proposalAddress", "value": proposal_address},
            {"key": "agentId", "value": agent_id},
        ]
        return await self._post(
            "/contents/findOrCreate",
            {"id": content_id, "profileId": profile_id, "properties": properties},
        )

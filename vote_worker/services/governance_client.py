"""
Proposal source client.

Reads realms and their proposals from the governance API
(`GET /api/governance/realms/{address}`) and converts them into
SerializedProposal records.
"""
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from vote_worker.config import common_settings
from vote_worker.data_models.governance_schemas import SerializedProposal
from vote_worker.services.base_api_client import AsyncBaseAPIClient

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept ISO strings or unix seconds; zero and garbage mean unknown."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value <= 0:
            return None
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning(f"Unparseable proposal timestamp: {value!r}")
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def _number(value: Any) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def extract_voting_base_time(governances: List[Dict[str, Any]]) -> Optional[int]:
    """Voting duration (seconds) configured on the realm's first governance, if any."""
    if not governances:
        return None
    config = (governances[0] or {}).get("config") or {}
    base_time = config.get("votingBaseTime")
    if isinstance(base_time, (int, float)) and not isinstance(base_time, bool) and base_time > 0:
        return int(base_time)
    return None


def serialize_proposal(raw: Dict[str, Any], voting_base_time: Optional[int] = None) -> SerializedProposal:
    """
    Convert one proposal payload into a SerializedProposal.

    When the payload carries no voting end but has a voting start, the end is
    computed from the governance's configured voting duration.
    """
    voting_at = _parse_timestamp(raw.get("votingAt"))
    voting_end_at = _parse_timestamp(raw.get("votingEndAt"))
    max_voting_time = _number(raw.get("maxVotingTime"))
    if not math.isfinite(max_voting_time) or max_voting_time <= 0:
        max_voting_time = voting_base_time

    if voting_end_at is None and voting_at is not None and max_voting_time:
        voting_end_at = voting_at + timedelta(seconds=max_voting_time)

    return SerializedProposal(
        address=str(raw.get("address", "")),
        title=raw.get("title") or "",
        description_link=raw.get("descriptionLink") or raw.get("description") or "",
        status=raw.get("status") or "unknown",
        for_votes=_number(raw.get("forVotes")),
        against_votes=_number(raw.get("againstVotes")),
        abstain_votes=_number(raw.get("abstainVotes")),
        voting_at=voting_at,
        voting_end_at=voting_end_at,
    )


class GovernanceClient(AsyncBaseAPIClient):
    """Client for the governance (realm/proposal) API."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30.0,
                 client: Optional[httpx.AsyncClient] = None):
        super().__init__(base_url or common_settings.GOVERNANCE_API_URL, timeout=timeout, client=client)

    async def fetch_proposals_for_realm(self, realm_address: str) -> List[SerializedProposal]:
        """
        Fetch every proposal of a realm, regardless of status.

        Status filtering happens in the caller; the API's own active filter is
        not relied on.

        Raises:
            APIError: If the governance API responds with an error
            httpx.HTTPError: On transport failures
        """
        data = await self._request("GET", f"/api/governance/realms/{realm_address}")
        governances = data.get("governances") or []
        voting_base_time = extract_voting_base_time(governances)

        proposals = [serialize_proposal(raw, voting_base_time) for raw in data.get("proposals") or []]
        logger.debug(f"Fetched {len(proposals)} proposals for realm {realm_address}")
        return proposals

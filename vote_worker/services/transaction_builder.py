"""
Transaction construction client.

Asks the transaction builder to produce an unsigned cast-vote transaction
for one proposal/voter pair. The payload is opaque to the worker: it is
handed as-is to the signing service.
"""
import logging
from typing import Optional

import httpx

from vote_worker.config import common_settings
from vote_worker.data_models.governance_schemas import VoteDirection
from vote_worker.services.base_api_client import APIError, AsyncBaseAPIClient

logger = logging.getLogger(__name__)

# On-chain vote kinds understood by the governance program
ONCHAIN_VOTE_KINDS = {
    VoteDirection.FOR: "approve",
    VoteDirection.AGAINST: "deny",
    VoteDirection.ABSTAIN: "abstain",
}


class TransactionBuilderClient(AsyncBaseAPIClient):
    """Builds unsigned vote transactions via the transaction builder API."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30.0,
                 client: Optional[httpx.AsyncClient] = None):
        super().__init__(base_url or common_settings.TX_BUILDER_URL, timeout=timeout, client=client)

    async def build_cast_vote_transaction(
        self,
        proposal_address: str,
        voter_wallet_address: str,
        vote_direction: VoteDirection,
        realm_address: str,
        delegator_address: Optional[str] = None,
    ) -> str:
        """
        Build an unsigned cast-vote transaction.

        Args:
            proposal_address: Proposal being voted on
            voter_wallet_address: Agent's signing wallet address
            vote_direction: for / against / abstain
            realm_address: Realm owning the proposal
            delegator_address: Token owner whose voting power is used, if delegated

        Returns:
            Base64 serialized transaction

        Raises:
            APIError: If the builder rejects the request or returns no payload
        """
        payload = {
            "proposalAddress": proposal_address,
            "voterWalletAddress": voter_wallet_address,
            "voteDirection": vote_direction.value,
            "voteKind": ONCHAIN_VOTE_KINDS[vote_direction],
            "realmAddress": realm_address,
        }
        if delegator_address:
            payload["delegatorAddress"] = delegator_address

        data = await self._request("POST", "/api/transactions/cast-vote", json=payload)
        serialized = data.get("serializedTransaction")
        if not serialized:
            raise APIError("Transaction builder returned no serializedTransaction", 502, data)
        return serialized

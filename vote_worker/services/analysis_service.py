"""
AI proposal analysis.

Runs one chat completion per (agent, proposal) against an OpenAI-compatible
endpoint and validates the answer into a GovernanceAnalysis.
"""
import logging
from typing import Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import ValidationError

from vote_worker.config import common_settings
from vote_worker.config.analysis_settings import AnalysisConfig
from vote_worker.data_models.analysis_schemas import GovernanceAnalysis
from vote_worker.exceptions import AnalysisError, ConfigurationError
from vote_worker.utils.json_extractor import extract_json_from_text, extract_text_content

logger = logging.getLogger(__name__)


def create_analysis_model(api_key: Optional[str] = None, base_url: Optional[str] = None) -> BaseChatModel:
    """Build the chat model used for proposal analysis."""
    api_key = api_key or common_settings.ZAI_API_KEY
    if not api_key:
        raise ConfigurationError("ZAI_API_KEY not set")

    return ChatOpenAI(
        model=AnalysisConfig.get_model_name(),
        api_key=api_key,
        base_url=base_url or common_settings.ZAI_BASE_URL,
        temperature=AnalysisConfig.get_temperature(),
        max_tokens=AnalysisConfig.get_max_tokens(),
        timeout=AnalysisConfig.get_timeout_seconds(),
        max_retries=AnalysisConfig.get_max_retries(),
    )


class GovernanceAnalyzer:
    """Analyzes a proposal through the lens of one agent's values."""

    def __init__(self, llm: Optional[BaseChatModel] = None):
        self._llm = llm

    @property
    def llm(self) -> BaseChatModel:
        if self._llm is None:
            self._llm = create_analysis_model()
        return self._llm

    async def analyze_proposal(
        self,
        title: str,
        description: str,
        realm_name: str,
        for_votes: float,
        against_votes: float,
        agent_values: Optional[str] = None,
    ) -> GovernanceAnalysis:
        """
        Analyze a proposal and return a structured recommendation.

        Args:
            title: Proposal title
            description: Proposal description (already defaulted when empty)
            realm_name: Display name of the owning realm
            for_votes: Current FOR tally
            against_votes: Current AGAINST tally
            agent_values: Multi-line values block describing the agent

        Returns:
            Validated GovernanceAnalysis

        Raises:
            AnalysisError: If the model answer holds no valid analysis JSON
        """
        messages = [
            SystemMessage(content=AnalysisConfig.get_system_prompt(agent_values)),
            HumanMessage(content=AnalysisConfig.get_user_prompt(
                title=title,
                description=description,
                realm_name=realm_name,
                for_votes=for_votes,
                against_votes=against_votes,
            )),
        ]

        response = await self.llm.ainvoke(messages)
        text = extract_text_content(getattr(response, "content", response))

        payload = extract_json_from_text(text)
        if payload is None:
            raise AnalysisError("AI analysis returned no JSON object")

        try:
            return GovernanceAnalysis.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"AI analysis failed schema validation: {e}")
            raise AnalysisError(f"AI analysis failed schema validation: {e.error_count()} errors") from e

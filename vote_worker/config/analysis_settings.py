import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from vote_worker.config import common_settings

logger = logging.getLogger(__name__)


class AnalysisConfig:
    """Configuration for the AI proposal analysis step."""

    _config = None
    _config_path = Path(__file__).parent / "analysis_config.yaml"

    @classmethod
    def _load_config(cls) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if cls._config is None:
            try:
                with open(cls._config_path, 'r') as f:
                    cls._config = yaml.safe_load(f)
                if cls._config is None:
                    raise ValueError("Configuration file is empty or invalid")
            except FileNotFoundError:
                raise FileNotFoundError(f"Configuration file not found at {cls._config_path}. Please ensure analysis_config.yaml exists.")
            except yaml.YAMLError as e:
                raise ValueError(f"Error parsing YAML configuration file: {e}")
        return cls._config

    # LLM Configuration
    @classmethod
    def get_model_name(cls) -> str:
        """Model name; ANALYSIS_MODEL_NAME overrides the YAML value."""
        return common_settings.ANALYSIS_MODEL_NAME or cls._load_config()['llm']['model_name']

    @classmethod
    def get_temperature(cls) -> float:
        return cls._load_config()['llm'].get('temperature', 0.2)

    @classmethod
    def get_max_tokens(cls) -> int:
        return cls._load_config()['llm'].get('max_tokens', 1024)

    @classmethod
    def get_timeout_seconds(cls) -> float:
        return cls._load_config()['llm'].get('timeout_seconds', 120)

    @classmethod
    def get_max_retries(cls) -> int:
        return cls._load_config()['llm'].get('max_retries', 2)

    # Prompt templates
    @classmethod
    def get_system_prompt(cls, agent_values: Optional[str] = None) -> str:
        """Render the system prompt, embedding the agent's values when given."""
        config = cls._load_config()
        values_block = ""
        if agent_values:
            values_block = config['agent_values_template'].format(agent_values=agent_values)
        return config['system_prompt'].format(agent_values_block=values_block)

    @classmethod
    def get_user_prompt(
        cls,
        title: str,
        description: str,
        realm_name: str,
        for_votes: float,
        against_votes: float,
    ) -> str:
        """Render the per-proposal user prompt."""
        template = cls._load_config()['user_prompt']
        return template.format(
            title=title,
            description=description,
            realm_name=realm_name,
            for_votes=for_votes,
            against_votes=against_votes,
        )

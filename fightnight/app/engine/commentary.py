"""
Commentary Booth - narrative collaborator adapter

Hands a match's stat bundle to a chat model and gets back a short hype intro.
The model only ever receives numbers as numbers; how it phrases them is its
business. Any failure (missing API key, provider error, empty reply) degrades
to a placeholder line instead of failing the request.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

from langchain_anthropic import ChatAnthropic
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_mistralai import ChatMistralAI
from langchain_openai import ChatOpenAI

from fightnight.app.core.config import settings
from fightnight.app.core.model_registry import registry
from fightnight.app.schemas.stats_schema import StatBundle, Commentary

logger = logging.getLogger(__name__)

FALLBACK_COMMENTARY = "The crowd is ready!"


class AIProvider(ABC):
    """
    Builds a LangChain chat model for one vendor from a registry entry.
    `api_config` may set base_url, max_tokens and timeout.
    """
    api_key_env: Optional[str] = None
    default_base_url: Optional[str] = None

    @abstractmethod
    def chat_class(self):
        """LangChain chat model class for this vendor"""

    def chat_kwargs(self, model_id: str, config: dict, temperature: float) -> dict:
        kwargs = {"model": model_id, "temperature": temperature}
        base_url = config.get("base_url", self.default_base_url)
        if base_url:
            kwargs["base_url"] = base_url
        for option in ("max_tokens", "timeout"):
            if config.get(option) is not None:
                kwargs[option] = config[option]
        # Unset keys are left to the client's own environment lookup
        if self.api_key_env and os.getenv(self.api_key_env):
            kwargs["api_key"] = os.getenv(self.api_key_env)
        return kwargs

    def build(self, model_id: str, config: dict, temperature: float):
        return self.chat_class()(**self.chat_kwargs(model_id, config, temperature))


class OpenAIProvider(AIProvider):
    def chat_class(self):
        return ChatOpenAI


class AnthropicProvider(AIProvider):
    def chat_class(self):
        return ChatAnthropic


class GoogleProvider(AIProvider):
    def chat_class(self):
        return ChatGoogleGenerativeAI


class DeepSeekProvider(OpenAIProvider):
    """OpenAI-compatible endpoint with its own key."""
    api_key_env = "DEEPSEEK_API_KEY"
    default_base_url = "https://api.deepseek.com"


class MistralProvider(AIProvider):
    api_key_env = "MISTRAL_API_KEY"

    def chat_class(self):
        return ChatMistralAI


# Provider Registry
PROVIDERS = {
    "openai": OpenAIProvider(),
    "anthropic": AnthropicProvider(),
    "google": GoogleProvider(),
    "deepseek": DeepSeekProvider(),
    "mistral": MistralProvider()
}


def detect_provider(model_key: str) -> str:
    """Guesses the provider of a model missing from the registry."""
    if "gpt" in model_key:
        return "openai"
    if "claude" in model_key:
        return "anthropic"
    if "gemini" in model_key:
        return "google"
    if "deepseek" in model_key:
        return "deepseek"
    if "mistral" in model_key or "ministral" in model_key:
        return "mistral"
    raise ValueError(f"Cannot infer provider for unknown model {model_key}")


def get_llm(model_key: str, temperature: float = settings.commentary_temperature):
    """
    Factory function to return the correct LangChain Chat Model using provider strategy.
    """
    config = registry.get(model_key)
    if config:
        provider_key = config.provider
        # Use 'model_id' if present (for overrides), otherwise use the registry key
        api_model_name = config.model_id or model_key
        api_flags = config.api_config or {}
    else:
        provider_key = detect_provider(model_key)
        api_model_name = model_key
        api_flags = {}

    provider = PROVIDERS.get(provider_key)
    if not provider:
        raise ValueError(f"Unsupported provider: {provider_key}")
    return provider.build(api_model_name, api_flags, temperature)


# --- Prompt Template ---
SYSTEM_PROMPT = """
You are a high-energy pro-wrestling style commentator hyping up a fighting game match in a tournament.
"""

USER_TEMPLATE = """
Fighters:
- Fighter 1: {a_name} using {a_character}
- Fighter 2: {b_name} using {b_character}

Percentages (0-100):

Overall records:
- Player {a_name} overall win rate: {player_a}
- {a_name} as {a_character}: {fighter_a}
- Character {a_character} overall: {character_a}
- Player {b_name} overall win rate: {player_b}
- {b_name} as {b_character}: {fighter_b}
- Character {b_character} overall: {character_b}

Head-to-head:
- Player vs player: {player_h2h_a} / {player_h2h_b}
- Fighter vs fighter: {fighter_h2h_a} / {fighter_h2h_b}
- Character vs character: {character_h2h_a} / {character_h2h_b}

Guidelines:
- 1 to 3 sentences max.
- If one side is a clear favorite in a head-to-head stat, lean into the favorite vs underdog story.
- Give hope to the underdog by mentioning at least one impressive stat in their favor if possible.
- Do NOT mention percentages numerically. Refer to them qualitatively.

Now, give the hype intro for this upcoming match.
"""

prompt = ChatPromptTemplate.from_messages([
    ("system", SYSTEM_PROMPT),
    ("user", USER_TEMPLATE)
])


def prompt_variables(bundle: StatBundle) -> dict:
    stats = bundle.stats
    return {
        "a_name": bundle.fighter_a.display_name,
        "a_character": bundle.fighter_a.character_name,
        "b_name": bundle.fighter_b.display_name,
        "b_character": bundle.fighter_b.character_name,
        "player_a": stats.player_a,
        "player_b": stats.player_b,
        "fighter_a": stats.fighter_a,
        "fighter_b": stats.fighter_b,
        "character_a": stats.character_a,
        "character_b": stats.character_b,
        "player_h2h_a": stats.player_h2h.a,
        "player_h2h_b": stats.player_h2h.b,
        "fighter_h2h_a": stats.fighter_h2h.a,
        "fighter_h2h_b": stats.fighter_h2h.b,
        "character_h2h_a": stats.character_h2h.a,
        "character_h2h_b": stats.character_h2h.b,
    }


class Commentator:
    def __init__(self, model_name: str = settings.commentary_model, chain=None):
        self.model_name = model_name
        # Built on first use so a missing API key only degrades commentary
        self.chain = chain

    def _get_chain(self):
        if self.chain is None:
            self.chain = prompt | get_llm(self.model_name) | StrOutputParser()
        return self.chain

    async def generate(self, bundle: StatBundle) -> Commentary:
        try:
            text: Optional[str] = await self._get_chain().ainvoke(prompt_variables(bundle))
            text = (text or "").strip()
            if not text:
                raise ValueError("Model returned empty commentary")
            return Commentary(commentary=text, fallback=False)
        except Exception as e:
            error_msg = str(e)
            clean_error = (error_msg[:100] + '..') if len(error_msg) > 100 else error_msg
            logger.warning("Commentary model %s failed, using placeholder: %s", self.model_name, clean_error)
            return Commentary(commentary=FALLBACK_COMMENTARY, fallback=True)


# Singleton instance
commentator = Commentator()

"""OpenAI Chat-Completions Adapter.

Implements LanguageModelPort on the OpenAI chat-completions API in JSON mode
(``response_format={"type": "json_object"}``). The reply is returned as raw
text; parsing and validation belong to the reconciliation layer, which treats
it as untrusted.

No retry policy is applied. The only timeout is the configured client timeout
(the client default when unset).
"""

import logging
from typing import Optional

from openai import OpenAI, OpenAIError

from src.domain.ports import LanguageModelError, LanguageModelPort
from src.infrastructure.config_manager import LanguageModelConfig

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "OPENAI_API_KEY not configured"
EMPTY_RESPONSE_MESSAGE = "No response from AI"


class OpenAIChatAdapter(LanguageModelPort):
    """LanguageModelPort backed by OpenAI chat completions.

    Parameters:
        config: Model name, temperature, timeout and API key
        client: Pre-built OpenAI client (tests inject a mock here)

    Example Usage:
        ```python
        adapter = OpenAIChatAdapter(get_language_model_config())
        raw = adapter.complete_json(system_prompt, "Add a fruit snack at 3pm")
        ```
    """

    def __init__(self, config: Optional[LanguageModelConfig] = None, client: Optional[OpenAI] = None):
        self.config = config or LanguageModelConfig()
        self._client = client

    @property
    def client(self) -> OpenAI:
        """Lazily created OpenAI client.

        Raises:
            LanguageModelError: If no API key is configured
        """
        if self._client is None:
            if not self.config.is_configured():
                raise LanguageModelError(MISSING_KEY_MESSAGE)
            client_kwargs = {"api_key": self.config.api_key.get_secret_value()}
            if self.config.base_url:
                client_kwargs["base_url"] = self.config.base_url
            if self.config.timeout is not None:
                client_kwargs["timeout"] = self.config.timeout
            self._client = OpenAI(**client_kwargs)
        return self._client

    def complete_json(self, system_prompt: str, user_prompt: str) -> str:
        """Request a JSON-object completion and return its text.

        Raises:
            LanguageModelError: Missing key, transport/API failure or an
                empty reply
        """
        client = self.client
        try:
            completion = client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                response_format={"type": "json_object"},
                temperature=self.config.temperature,
            )
        except OpenAIError as e:
            logger.error(f"Language model request failed: {e}")
            raise LanguageModelError(f"Language model request failed: {e}") from e

        if getattr(completion, "usage", None):
            logger.debug(
                f"Model usage: {completion.usage.prompt_tokens} prompt / "
                f"{completion.usage.completion_tokens} completion tokens"
            )

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            logger.warning("Language model returned an empty response")
            raise LanguageModelError(EMPTY_RESPONSE_MESSAGE)
        return content

"""Text generation client backed by Ollama, with timeout and retry policy."""

import logging
import time

import httpx
import ollama

from advanced_rag.config import AppConfig, LLMConfig, PerformanceConfig
from advanced_rag.errors import ConfigurationError, GenerationError

logger = logging.getLogger(__name__)

# Failures worth retrying: service-side errors and transport problems.
_RETRYABLE_ERRORS = (ollama.ResponseError, httpx.HTTPError, ConnectionError)


class LLMClient:
    """Chat-style generation against a single Ollama model.

    One instance is built by the process entry point and shared by every
    pipeline component. The underlying ``ollama.Client`` is safe to use
    from concurrent requests.
    """

    def __init__(
        self,
        client: ollama.Client,
        model: str,
        max_tokens: int = 512,
        max_retries: int = 3,
        retry_delay_s: float = 1.0,
    ) -> None:
        if not model or not model.strip():
            raise ConfigurationError("LLM model name must not be empty")
        self._client = client
        self.model = model
        self.max_tokens = max_tokens
        self.max_retries = max_retries
        self.retry_delay_s = retry_delay_s

    @classmethod
    def from_config(
        cls,
        llm: LLMConfig | None = None,
        performance: PerformanceConfig | None = None,
    ) -> "LLMClient":
        """Build a client from configuration.

        The performance timeout becomes the HTTP timeout of every call;
        an API key, if configured, is sent as a bearer token.
        """
        llm = llm or LLMConfig()
        performance = performance or PerformanceConfig()

        headers = {}
        if llm.api_key:
            headers["Authorization"] = f"Bearer {llm.api_key}"

        client = ollama.Client(
            host=llm.host,
            timeout=performance.timeout_s,
            headers=headers,
        )
        return cls(
            client,
            model=llm.model,
            max_tokens=llm.max_tokens,
            max_retries=performance.max_retries,
            retry_delay_s=performance.retry_delay_s,
        )

    @classmethod
    def from_app_config(cls, config: AppConfig) -> "LLMClient":
        return cls.from_config(config.llm, config.performance)

    def generate(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        response_format: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Run one chat completion and return the stripped reply text.

        Args:
            messages: Ordered ``{"role", "content"}`` mappings.
            temperature: Sampling temperature for this call.
            response_format: ``"json"`` to request strict JSON output.
            max_tokens: Generation cap; defaults to the client's setting.

        Returns:
            The model's reply with surrounding whitespace removed. May be
            empty.

        Raises:
            GenerationError: If the call still fails after all retries.
        """
        kwargs = {
            "model": self.model,
            "messages": messages,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens or self.max_tokens,
            },
        }
        if response_format == "json":
            kwargs["format"] = "json"

        attempts = self.max_retries + 1
        for attempt in range(attempts):
            try:
                response = self._client.chat(**kwargs)
            except _RETRYABLE_ERRORS as exc:
                if attempt + 1 >= attempts:
                    raise GenerationError(
                        f"Generation failed after {attempts} attempt(s): {exc}"
                    ) from exc
                delay = self.retry_delay_s * (2**attempt)
                logger.warning(
                    "Generation call failed (%s), retrying in %.1fs (attempt %d/%d)",
                    type(exc).__name__,
                    delay,
                    attempt + 1,
                    self.max_retries,
                )
                time.sleep(delay)
                continue
            content = response["message"]["content"] or ""
            return content.strip()

        # Unreachable: the loop either returns or raises.
        raise GenerationError("Generation failed")

    def ping(self) -> bool:
        """Return True if the Ollama server answers a model listing."""
        try:
            self._client.list()
        except Exception:
            return False
        return True

"""CredentialSource implementations."""

import os
from collections.abc import Mapping, Sequence

from turnwise.backend.domain.credentials import CredentialSource

PROVIDER_ENV_VARS: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "vertex_ai": "GOOGLE_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "huggingface": "HUGGINGFACE_API_KEY",
    "groq": "GROQ_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
}


class EnvCredentialSource:
    """Reads the conventional ``<PROVIDER>_API_KEY`` environment variable."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def get_credential(self, provider_id: str) -> str | None:
        name = PROVIDER_ENV_VARS.get(provider_id, f"{provider_id.upper()}_API_KEY")
        value = self._environ.get(name)
        return value or None


class StaticCredentialSource:
    """Serves secrets handed over by the embedding application."""

    def __init__(self, credentials: Mapping[str, str]) -> None:
        self._credentials = dict(credentials)

    def get_credential(self, provider_id: str) -> str | None:
        return self._credentials.get(provider_id)


class ChainedCredentialSource:
    """Asks each source in turn and returns the first secret found.

    Subscription or OAuth-style providers plug in here as one more source.
    """

    def __init__(self, sources: Sequence[CredentialSource]) -> None:
        self._sources = list(sources)

    def get_credential(self, provider_id: str) -> str | None:
        for source in self._sources:
            credential = source.get_credential(provider_id)
            if credential is not None:
                return credential
        return None

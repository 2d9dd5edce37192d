"""LiteLLMBackendFactory — constructs LiteLLMBackend instances."""

import litellm

from turnwise.backend.domain.backend import ModelBackend
from turnwise.backend.domain.credentials import CredentialSource
from turnwise.backend.domain.errors import BackendNotConfiguredError
from turnwise.backend.domain.observer import BackendObserver
from turnwise.backend.infrastructure.litellm import LiteLLMBackend
from turnwise.config.domain.session import BackendConfig


class LiteLLMBackendFactory:
    """Creates one LiteLLMBackend per model, sharing config and credentials.

    Satisfies the BackendFactory protocol structurally.
    """

    def __init__(
        self,
        config: BackendConfig,
        credentials: CredentialSource,
        observer: BackendObserver,
    ) -> None:
        litellm.suppress_debug_info = True
        self._config = config
        self._credentials = credentials
        self._observer = observer

    def create(self, model: str) -> ModelBackend:
        """
        Raises:
            BackendNotConfiguredError: if the configured backend type is not litellm.
        """
        if self._config.type != "litellm":
            raise BackendNotConfiguredError(
                model=model, reason=f"unsupported backend type '{self._config.type}'"
            )
        return LiteLLMBackend(
            model=model,
            config=self._config,
            credentials=self._credentials,
            observer=self._observer,
        )

"""CredentialSource port — where provider secrets come from."""

from typing import Protocol


class CredentialSource(Protocol):
    """Looks up the secret for a provider; returns None when it has none.

    Implementations read from external storage; secrets are never persisted
    by the session.
    """

    def get_credential(self, provider_id: str) -> str | None: ...

"""Error taxonomy shared by every provider client.

Each error carries a ``kind`` so callers can branch without isinstance chains.
"""


class AuraError(RuntimeError):
    kind = "error"


class TransportError(AuraError):
    """A process could not be spawned or an HTTP request could not be sent."""

    kind = "transport"


class HttpStatusError(AuraError):
    kind = "http_status"

    def __init__(self, provider: str, status_code: int, body: str) -> None:
        self.provider = provider
        self.status_code = status_code
        self.body = body
        super().__init__(f"{provider} API error {status_code}: {body}")


class ParseError(AuraError):
    kind = "parse"


class ProviderApplicationError(AuraError):
    """The provider answered, but its own payload reports a failure."""

    kind = "provider"


class PreconditionError(AuraError):
    """Required configuration is missing before a query can be formed."""

    kind = "precondition"

"""Envelope published to the backend topic for each forwarded request."""

from urllib.parse import urlsplit

from relay.models.base import CamelCaseModel


class RequestEnvelope(CamelCaseModel):
    """Inbound HTTP request as seen by the backend."""

    method: str
    url: str
    headers: dict[str, str] = {}
    body: str = ""

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    def to_bytes(self) -> bytes:
        """Serialize to camelCase JSON bytes for publishing."""
        return self.model_dump_json(by_alias=True).encode("utf-8")

    def attributes(self) -> dict[str, str]:
        """Message attributes that let backends route without parsing the body."""
        return {"method": self.method, "path": self.path}

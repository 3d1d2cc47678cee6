from __future__ import annotations as _annotations

__all__ = (
    'C0ProtocolError',
    'UserError',
    'ArtifactDataError',
)


class C0ProtocolError(RuntimeError):
    """Base class for errors raised by c0_protocol."""

    message: str
    """The error message."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UserError(C0ProtocolError):
    """Error caused by a usage mistake by the application developer, as opposed to malformed model output."""


class ArtifactDataError(C0ProtocolError, ValueError):
    """Error raised when an artifact's body is explicitly decoded and turns out not to be valid JSON."""

    artifact_id: str
    """The id of the artifact whose body could not be decoded."""

    body: str
    """The raw body that failed to decode."""

    def __init__(self, artifact_id: str, body: str, message: str | None = None):
        self.artifact_id = artifact_id
        self.body = body
        super().__init__(message or f'Artifact {artifact_id!r} does not contain valid JSON')

    def __str__(self) -> str:
        if self.body:
            return f'{self.message}, body:\n{self.body}'
        else:
            return self.message

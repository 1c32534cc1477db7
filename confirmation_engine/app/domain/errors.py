from __future__ import annotations


class ConfirmationEngineError(Exception):
    """Base class for errors raised by the confirmation engine."""


class UnknownBackendError(ConfirmationEngineError, ValueError):
    def __init__(self, kind: str, backend: str) -> None:
        super().__init__(f"Unsupported {kind} backend: {backend!r}")
        self.kind = kind
        self.backend = backend

"""Structured errors raised while freezing a document.

Every failure of a freeze is fatal to that invocation: errors propagate
unrecovered to the orchestrator, which reports them and produces no output.
Each error carries a stable code so the CLI can emit machine-readable output
with ``--json-errors``.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable identifiers for freeze failures."""

    FREEZE_FAILED = "FREEZE_FAILED"
    UNRESOLVED_EMBED = "UNRESOLVED_EMBED"
    CYCLIC_EMBED = "CYCLIC_EMBED"
    EMBED_TOO_DEEP = "EMBED_TOO_DEEP"
    READ_FAILED = "READ_FAILED"
    WRITE_FAILED = "WRITE_FAILED"


class FreezeError(Exception):
    """Base class for every failure of a freeze invocation."""

    code: ErrorCode = ErrorCode.FREEZE_FAILED

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code.value, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class UnresolvedEmbedError(FreezeError):
    """An embed target could not be mapped to a file in the vault."""

    code = ErrorCode.UNRESOLVED_EMBED

    def __init__(self, target: str, source: str) -> None:
        self.target = target
        self.source = source
        super().__init__(
            f"File not found: {target} (embedded from {source})",
            details={"target": target, "source": source},
        )


class CyclicEmbedError(FreezeError):
    """An embed chain revisits a document that is already being resolved."""

    code = ErrorCode.CYCLIC_EMBED

    def __init__(self, chain: tuple[str, ...]) -> None:
        self.chain = chain
        super().__init__(
            f"Circular embed detected: {' -> '.join(chain)}",
            details={"chain": list(chain)},
        )


class EmbedDepthError(FreezeError):
    """Embeds are nested deeper than the configured limit."""

    code = ErrorCode.EMBED_TOO_DEEP

    def __init__(self, chain: tuple[str, ...], limit: int) -> None:
        self.chain = chain
        self.limit = limit
        super().__init__(
            f"Embeds nested deeper than {limit} levels: {' -> '.join(chain)}",
            details={"chain": list(chain), "limit": limit},
        )


class ReadError(FreezeError):
    """A resolved file could not be read (deleted, unreadable, not UTF-8)."""

    code = ErrorCode.READ_FAILED

    def __init__(self, path: str, cause: str) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Cannot read {path}: {cause}", details={"path": path})


class WriteError(FreezeError):
    """The frozen document could not be created at its destination."""

    code = ErrorCode.WRITE_FAILED

    def __init__(self, path: str, cause: str) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Cannot create {path}: {cause}", details={"path": path})

"""Coded, non-fatal decode diagnostics and the per-decode policy applied to them.

Each condition the decoder tolerates is reported under a stable code so callers
can silence it or promote it to a :class:`~gltfgraph.errors.FormatError`:

``W01``  an extension nobody decodes is kept as opaque data
``W02``  ``extensionsRequired`` names an extension nobody decodes
``W03``  a material carries both metallic-roughness and specular-glossiness
``W04``  POSITION min/max do not fit the accessor, so bounds come from a scan
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass

from gltfgraph.errors import FormatError

WARNING_CODES: dict[str, str] = {
    "W01": "unrecognized extension preserved as opaque data",
    "W02": "required extension is not recognized",
    "W03": "material declares two shading models",
    "W04": "declared accessor bounds ignored",
}
KNOWN_CODES: frozenset[str] = frozenset(WARNING_CODES)


class GltfGraphWarning(UserWarning):
    """A decode diagnostic; ``code`` is one of ``WARNING_CODES``."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.detail = message
        super().__init__(f"[{code}] {message}")


@dataclass(frozen=True)
class WarningPolicy:
    """Which codes are dropped and which abort the decode."""

    warn_as_error: frozenset[str] = frozenset()
    suppress: frozenset[str] = frozenset()

    @classmethod
    def from_code_lists(cls, warn_as_error: str | None = None, suppress: str | None = None) -> WarningPolicy:
        """Build a policy from comma-separated code lists such as ``"W01,W04"``."""
        return cls(
            warn_as_error=parse_code_list(warn_as_error) if warn_as_error else frozenset(),
            suppress=parse_code_list(suppress) if suppress else frozenset(),
        )


def emit_warning(code: str, message: str, *, policy: WarningPolicy | None = None) -> None:
    """Report ``message`` under ``code``.

    Suppressed codes are dropped; codes promoted by ``warn_as_error`` raise
    ``FormatError``, which aborts the decode like any other format problem.
    Suppression wins when a code is in both sets.
    """
    if policy is not None:
        if code in policy.suppress:
            return
        if code in policy.warn_as_error:
            raise FormatError(f"[{code}] {message}")

    warnings.warn(GltfGraphWarning(code, message), stacklevel=2)


def parse_code_list(raw: str) -> frozenset[str]:
    """Parse ``"W01, w04"`` into ``{"W01", "W04"}``.

    Raises ``ValueError`` naming the first code that is not in ``WARNING_CODES``.
    """
    codes: set[str] = set()
    for token in raw.split(","):
        token = token.strip().upper()
        if not token:
            continue
        if token not in WARNING_CODES:
            raise ValueError(f"Unknown warning code: {token!r} (known: {', '.join(sorted(WARNING_CODES))})")
        codes.add(token)
    return frozenset(codes)

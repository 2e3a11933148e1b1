"""Error taxonomy for manual builds."""

from __future__ import annotations

from typing import Mapping, Sequence


class ManualGenError(RuntimeError):
    """Base class for every failure raised by manualgen."""


class ConfigurationError(ManualGenError):
    """Raised when roots, templates or the configuration file are malformed."""


class EvaluationError(ManualGenError):
    """Raised when a module set cannot produce its options."""

    def __init__(
        self,
        message: str,
        *,
        failed_sets: Sequence[str] = (),
        documents: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message)
        self.failed_sets = list(failed_sets)
        self.documents = dict(documents or {})


class SubstitutionError(ManualGenError):
    """Raised when manual placeholders and supplied values do not line up."""


class ExternalToolError(ManualGenError):
    """Raised when an external renderer exits with a non-zero status."""

    def __init__(self, tool: str, returncode: int, output: str = "") -> None:
        message = f"{tool} exited with status {returncode}"
        if output:
            message = f"{message}\n{output}"
        super().__init__(message)
        self.tool = tool
        self.returncode = returncode
        self.output = output


__all__ = [
    "ConfigurationError",
    "EvaluationError",
    "ExternalToolError",
    "ManualGenError",
    "SubstitutionError",
]

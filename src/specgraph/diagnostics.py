"""Collector for non-fatal findings produced while resolving a document graph.

Best-effort consumers (discriminator mapping, security-requirement lookups,
link resolution, unparsable reference URIs during discovery) never raise.
Instead they record a :class:`~specgraph.models.Diagnostic` on the
:class:`Diagnostics` instance that was passed in, and log the same message
through the module logger of the component that produced it.
"""

from __future__ import annotations

import logging
from typing import Optional

from specgraph.models import Diagnostic, DiagnosticLevel


class Diagnostics:
    """An ordered, append-only list of :class:`~specgraph.models.Diagnostic` entries.

    Example::

        diagnostics = Diagnostics()
        options = polymorphic_options(schema, resolver, diagnostics=diagnostics)
        for entry in diagnostics.entries:
            print(entry.level.value, entry.message)
    """

    def __init__(self) -> None:
        self._entries: list[Diagnostic] = []

    def record(
        self,
        level: DiagnosticLevel,
        message: str,
        reference: Optional[str] = None,
        location: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> Diagnostic:
        entry = Diagnostic(level=level, message=message, reference=reference, location=location)
        self._entries.append(entry)
        if logger is not None:
            log_level = logging.WARNING if level is DiagnosticLevel.WARNING else logging.INFO
            logger.log(log_level, "%s", message)
        return entry

    def warn(
        self,
        message: str,
        reference: Optional[str] = None,
        location: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> Diagnostic:
        return self.record(DiagnosticLevel.WARNING, message, reference, location, logger)

    def info(
        self,
        message: str,
        reference: Optional[str] = None,
        location: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> Diagnostic:
        return self.record(DiagnosticLevel.INFO, message, reference, location, logger)

    @property
    def entries(self) -> list[Diagnostic]:
        return list(self._entries)

    @property
    def warnings(self) -> list[Diagnostic]:
        return [e for e in self._entries if e.level is DiagnosticLevel.WARNING]

    def messages(self) -> list[str]:
        return [e.message for e in self._entries]

    def count(self) -> int:
        return len(self._entries)

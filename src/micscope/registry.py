"""
Visualization registry and per-frame dispatcher.

Visualizations are plain objects with a required ``update(snapshot)``
method and optional ``initialize()`` / ``render_idle_frame()``
capabilities.  Capabilities are checked with runtime protocols, so a
visualization does not have to inherit from anything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Protocol, Tuple, runtime_checkable

from micscope.core.errors import VisualizationRuntimeError
from micscope.core.snapshot import AudioSnapshot

logger = logging.getLogger(__name__)


@runtime_checkable
class Visualization(Protocol):
    def update(self, snapshot: AudioSnapshot) -> None: ...


@runtime_checkable
class SupportsInitialize(Protocol):
    def initialize(self) -> None: ...


@runtime_checkable
class SupportsIdleFrame(Protocol):
    def render_idle_frame(self) -> None: ...


@dataclass
class _Entry:
    viz_id: str
    visualization: Visualization
    enabled: bool = True


class VisualizationRegistry:
    """
    Ordered collection of visualizations fed once per frame.

    Registration order is the only ordering guarantee.  A visualization
    that raises during :meth:`tick` is disabled for the rest of the
    session; the rest keep updating.
    """

    def __init__(self):
        self._entries: Dict[str, _Entry] = {}
        self.running = False
        self.errors: List[VisualizationRuntimeError] = []

    def register(self, viz_id: str, visualization: Visualization) -> None:
        if viz_id in self._entries:
            raise ValueError(f"Visualization id already registered: {viz_id!r}")
        if not isinstance(visualization, Visualization):
            raise TypeError(f"{viz_id!r} does not implement update(snapshot)")
        self._entries[viz_id] = _Entry(viz_id, visualization)

    def get(self, viz_id: str) -> Visualization:
        return self._entries[viz_id].visualization

    def ids(self) -> List[str]:
        return list(self._entries)

    def items(self) -> Iterator[Tuple[str, Visualization]]:
        for entry in self._entries.values():
            yield entry.viz_id, entry.visualization

    def is_enabled(self, viz_id: str) -> bool:
        return self._entries[viz_id].enabled

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, viz_id: str) -> bool:
        return viz_id in self._entries

    # ------------------------------------------------------------------
    # Frame protocol
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """
        Call ``initialize()`` on every visualization that supports it.

        A visualization whose ``initialize()`` raises is disabled; the rest
        are still initialized.
        """
        for entry in self._entries.values():
            if not entry.enabled:
                continue
            if isinstance(entry.visualization, SupportsInitialize):
                try:
                    entry.visualization.initialize()
                except Exception as exc:
                    self._fail(entry, exc)

    def start(self) -> None:
        """Resume dispatching frames (after initialize or a previous stop)."""
        self.running = True

    def _fail(self, entry: _Entry, exc: Exception) -> VisualizationRuntimeError:
        error = VisualizationRuntimeError(entry.viz_id, exc)
        error.__cause__ = exc
        entry.enabled = False
        self.errors.append(error)
        logger.error(
            "Visualization %r failed and was disabled",
            entry.viz_id,
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        return error

    def tick(self, snapshot: AudioSnapshot) -> List[VisualizationRuntimeError]:
        """
        Update every enabled visualization with the same snapshot.

        Returns:
            The errors raised during this tick (empty when all succeeded).
        """
        failures = []
        for entry in self._entries.values():
            if not entry.enabled:
                continue
            try:
                entry.visualization.update(snapshot)
            except Exception as exc:
                failures.append(self._fail(entry, exc))
        return failures

    def stop(self) -> None:
        """Render idle frames where supported and halt the frame loop."""
        for entry in self._entries.values():
            if not entry.enabled:
                continue
            if isinstance(entry.visualization, SupportsIdleFrame):
                try:
                    entry.visualization.render_idle_frame()
                except Exception as exc:
                    self._fail(entry, exc)
        self.running = False

"""
Animation loop.

Drives TrackEngine.tick() from an asyncio event loop at the configured frame
interval and pushes the vehicle collection to a display surface.

Frames are chained: the next frame is scheduled only after the current one
has finished, so two ticks never run at the same time. Replacing the vehicle
layer installs the new layer first and removes the old one a short moment
later, which avoids a frame with no vehicles on screen.
"""

import asyncio
import itertools
import logging
from typing import Any, Dict, Optional, Protocol

from trackengine.core.engine import TrackEngine
from trackengine.utils.constants import MS_PER_SECOND, VEHICLE_LAYER_PREFIX

logger = logging.getLogger(__name__)


class DisplaySurface(Protocol):
    """Whatever renders the collections: a map widget, a websocket, a test double."""

    def set_layer(self, layer_id: str, collection: Dict[str, Any]) -> None:
        ...

    def remove_layer(self, layer_id: str) -> None:
        ...


class AnimationLoop:
    """
    Cancellable per-frame vehicle animation.

    Args:
        engine: Engine to tick
        surface: Display surface receiving the vehicle layer
        loop: Event loop to schedule on; the running loop when omitted
    """

    def __init__(self, engine: TrackEngine, surface: DisplaySurface, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.engine = engine
        self.surface = surface
        self._loop = loop
        self._frame_handle: Optional[asyncio.TimerHandle] = None
        self._removals: Dict[str, asyncio.TimerHandle] = {}
        self._layer_ids = itertools.count()
        self.layer_id: Optional[str] = None
        self.frames = 0

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def running(self) -> bool:
        return self._frame_handle is not None

    def now_ms(self) -> float:
        return self.loop.time() * MS_PER_SECOND

    def start(self) -> None:
        """Install a vehicle layer and start ticking. No-op when already running."""
        if self.running:
            return
        if self.layer_id is None:
            self.swap_vehicle_layer()
        if not self.engine.settings.low_performance:
            self._schedule()

    def _schedule(self) -> None:
        self._frame_handle = self.loop.call_later(self.engine.settings.frame_interval_s, self._frame)

    def _frame(self) -> None:
        self._frame_handle = None
        collection = self.engine.tick(self.now_ms())
        if self.layer_id is not None:
            self.surface.set_layer(self.layer_id, collection)
        self.frames += 1
        if self.layer_id is not None and not self.engine.settings.low_performance:
            self._schedule()

    def swap_vehicle_layer(self) -> str:
        """
        Replace the vehicle layer with a fresh one.

        The new layer receives the current vehicle positions right away; the
        old layer is removed after the configured swap delay.

        Returns:
            Id of the new layer
        """
        new_layer_id = f"{VEHICLE_LAYER_PREFIX}{next(self._layer_ids)}"
        self.surface.set_layer(new_layer_id, self.engine.current_vehicles(self.now_ms()))

        old_layer_id, self.layer_id = self.layer_id, new_layer_id
        if old_layer_id is not None:
            self._removals[old_layer_id] = self.loop.call_later(
                self.engine.settings.vehicle_swap_delay_s, self._remove_layer, old_layer_id
            )
        logger.debug(f"Vehicle layer {old_layer_id} replaced by {new_layer_id}")
        return new_layer_id

    def _remove_layer(self, layer_id: str) -> None:
        self._removals.pop(layer_id, None)
        self.surface.remove_layer(layer_id)

    def set_low_performance(self, low_performance: bool) -> None:
        """Toggle vehicle animation, swapping the vehicle layer."""
        self.engine.set_low_performance(low_performance)
        if self.layer_id is None:
            return
        self.swap_vehicle_layer()
        if low_performance and self._frame_handle is not None:
            self._frame_handle.cancel()
            self._frame_handle = None
        elif not low_performance and not self.running:
            self._schedule()

    def cancel(self) -> None:
        """
        Tear down: drop the pending frame, remove every vehicle layer and
        release vehicle state.
        """
        if self._frame_handle is not None:
            self._frame_handle.cancel()
            self._frame_handle = None

        for layer_id, handle in list(self._removals.items()):
            handle.cancel()
            self.surface.remove_layer(layer_id)
        self._removals.clear()

        if self.layer_id is not None:
            self.surface.remove_layer(self.layer_id)
            self.layer_id = None

        self.engine.release()
        logger.info(f"Animation cancelled after {self.frames} frames")

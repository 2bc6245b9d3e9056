"""
Media transport controller.

Wraps one playable media element and presents a single transport state
machine (play/pause, seek, volume, rate, fullscreen, picture-in-picture,
theater mode, controls visibility) regardless of what actually renders
the media. The element and the platform are reached through protocols,
so a browser bridge, a desktop player or a test fake can all sit behind
the same controller.

Everything runs on one asyncio event loop. Element and platform
notifications arrive as plain callbacks and interleave with the async
transport requests, but never run concurrently with them.

Fullscreen and picture-in-picture are owned by the platform: the user can
leave either one through a keyboard shortcut or the OS chrome. The
controller therefore never sets those flags itself after a request; it
only mirrors the platform's change notifications.
"""

import asyncio
import logging
import math
from typing import Any, Callable, Optional, Protocol

from .models import PlaybackState

logger = logging.getLogger(__name__)

DEFAULT_HIDE_CONTROLS_AFTER = 3.0

Listener = Callable[[], None]


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class MediaElement(Protocol):
    """
    A playable element bound to one source URL.

    duration is NaN until metadata has loaded. play() may be rejected
    (autoplay policy, decode failure) by raising.
    """

    src: str
    current_time: float
    duration: float
    volume: float
    muted: bool
    playback_rate: float

    @property
    def paused(self) -> bool: ...

    async def play(self) -> None: ...

    async def pause(self) -> None: ...

    def add_listener(self, event: str, callback: Listener) -> None: ...

    def remove_listener(self, event: str, callback: Listener) -> None: ...


class PlatformSurface(Protocol):
    """
    Platform-level fullscreen and picture-in-picture.

    Emits "fullscreenchange" and "pipchange" whenever either mode is
    entered or left, whoever triggered it.
    """

    @property
    def fullscreen_element(self) -> Optional[Any]: ...

    @property
    def pip_element(self) -> Optional[Any]: ...

    async def request_fullscreen(self, target: Any) -> None: ...

    async def exit_fullscreen(self) -> None: ...

    async def request_pip(self, element: MediaElement) -> None: ...

    async def exit_pip(self) -> None: ...

    def add_listener(self, event: str, callback: Listener) -> None: ...

    def remove_listener(self, event: str, callback: Listener) -> None: ...


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class MediaTransportController:
    """
    Transport state machine for a single mounted player.

    Lifecycle:
        controller = MediaTransportController(element, platform, container, src)
        controller.attach()      # on mount
        ...
        controller.detach()      # on unmount

    or, equivalently, ``async with controller: ...``.

    The container is whatever the platform should make fullscreen. It is
    the surface holding both the media and the overlay controls, so the
    controls stay usable in fullscreen.
    """

    def __init__(
        self,
        element: MediaElement,
        platform: PlatformSurface,
        container: Any,
        src: str,
        on_time_update: Optional[Callable[[float], None]] = None,
        on_ended: Optional[Callable[[], None]] = None,
        hide_controls_after: float = DEFAULT_HIDE_CONTROLS_AFTER,
    ) -> None:
        if hide_controls_after <= 0:
            raise ValueError("hide_controls_after must be positive")

        self._element = element
        self._platform = platform
        self._container = container
        self._src = src
        self._on_time_update = on_time_update
        self._on_ended = on_ended
        self._hide_controls_after = hide_controls_after

        self.state = PlaybackState()
        self._hide_handle: Optional[asyncio.TimerHandle] = None
        self._attached = False

        # Keep the exact callables so detach() removes what attach() added
        self._element_listeners: dict[str, Listener] = {
            "timeupdate": self._handle_time_update,
            "loadedmetadata": self._handle_loaded_metadata,
            "ended": self._handle_ended,
        }
        self._platform_listeners: dict[str, Listener] = {
            "fullscreenchange": self._handle_fullscreen_change,
            "pipchange": self._handle_pip_change,
        }

    @property
    def src(self) -> str:
        return self._src

    @property
    def is_attached(self) -> bool:
        return self._attached

    # -- lifecycle ----------------------------------------------------------

    def attach(self) -> None:
        """Subscribe to element and platform notifications and load the source."""
        if self._attached:
            return

        for event, callback in self._element_listeners.items():
            self._element.add_listener(event, callback)
        for event, callback in self._platform_listeners.items():
            self._platform.add_listener(event, callback)

        self._element.src = self._src
        self._attached = True

        # The platform may already be in a mode we did not request
        self._handle_fullscreen_change()
        self._handle_pip_change()

        logger.debug("Attached media transport controller", extra={"src": self._src})

    def detach(self) -> None:
        """Remove every listener and cancel the pending hide timer."""
        if not self._attached:
            return

        self._cancel_hide_timer()
        for event, callback in self._element_listeners.items():
            self._element.remove_listener(event, callback)
        for event, callback in self._platform_listeners.items():
            self._platform.remove_listener(event, callback)

        self._attached = False
        logger.debug("Detached media transport controller", extra={"src": self._src})

    async def __aenter__(self) -> "MediaTransportController":
        self.attach()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.detach()

    def set_source(self, src: str) -> None:
        """
        Point the player at a different media resource.

        Source-scoped state (position, duration, play/ended flags) goes
        back to defaults. Volume, mute, rate and presentation flags are
        viewer preferences and carry over.
        """
        self._cancel_hide_timer()
        self._src = src
        self._element.src = src
        self.state.reset()
        self.state.controls_visible = True

        logger.info("Media source changed", extra={"src": src})

    # -- transport ----------------------------------------------------------

    async def toggle_playback(self) -> None:
        """
        Start playback when paused, pause when playing.

        The element is the source of truth for which way to go. A
        rejected start reverts to paused so the state never claims
        playback the element is not doing.
        """
        if self._element.paused:
            self.state.playing = True
            self.state.ended = False
            try:
                await self._element.play()
            except Exception as e:
                logger.warning(
                    "Playback start rejected",
                    extra={"src": self._src, "error": str(e)}
                )
                self.state.playing = False
        else:
            self.state.playing = False
            try:
                await self._element.pause()
            except Exception as e:
                logger.warning(
                    "Pause request failed",
                    extra={"src": self._src, "error": str(e)}
                )

    def seek_to_fraction(self, fraction: float) -> None:
        """Move the playback position to fraction * duration, clamped to [0, 1]."""
        duration = self.state.duration
        if not duration or math.isnan(fraction):
            logger.debug(
                "Ignoring seek",
                extra={"fraction": fraction, "duration": duration}
            )
            return

        position = min(max(fraction, 0.0), 1.0) * duration
        self._element.current_time = position
        self.state.current_time = position
        self.state.ended = False

    def seek_from_pointer(self, pointer_x: float, track_left: float, track_width: float) -> None:
        """Seek to where a pointer hit a progress track of the given pixel width."""
        if track_width <= 0:
            return
        self.seek_to_fraction((pointer_x - track_left) / track_width)

    def set_volume(self, volume: float) -> None:
        """
        Set the volume, clamped to [0, 1].

        Any audible volume clears mute. Zero only looks muted; the mute
        flag itself is toggle_mute()'s business.
        """
        volume = min(max(volume, 0.0), 1.0)
        self._element.volume = volume
        self.state.volume = volume

        if volume > 0 and self.state.muted:
            self._element.muted = False
            self.state.muted = False

    def toggle_mute(self) -> None:
        muted = not self.state.muted
        self._element.muted = muted
        self.state.muted = muted

    def set_playback_rate(self, rate: float) -> None:
        if not math.isfinite(rate) or rate <= 0:
            raise ValueError("Playback rate must be a positive number")
        self._element.playback_rate = rate
        self.state.playback_rate = rate

    # -- presentation -------------------------------------------------------

    async def toggle_fullscreen(self) -> None:
        """
        Ask the platform to enter or leave fullscreen on the container.

        State follows from the resulting "fullscreenchange" notification.
        """
        try:
            if self._platform.fullscreen_element is None:
                await self._platform.request_fullscreen(self._container)
            else:
                await self._platform.exit_fullscreen()
        except Exception as e:
            logger.error(
                "Error toggling fullscreen",
                extra={"src": self._src, "error": str(e)}
            )

    async def toggle_pip(self) -> None:
        """Best-effort picture-in-picture toggle. Never raises."""
        try:
            if self._platform.pip_element is not None:
                await self._platform.exit_pip()
            else:
                await self._platform.request_pip(self._element)
        except Exception as e:
            logger.error(
                "Error toggling picture-in-picture",
                extra={"src": self._src, "error": str(e)}
            )

    def toggle_theater_mode(self) -> None:
        self.state.theater_mode = not self.state.theater_mode

    # -- controls visibility ------------------------------------------------

    def pointer_move(self) -> None:
        """Show controls and, while playing, schedule them to hide again."""
        self._cancel_hide_timer()
        self.state.controls_visible = True

        if self.state.playing:
            loop = asyncio.get_running_loop()
            self._hide_handle = loop.call_later(
                self._hide_controls_after,
                self._hide_controls,
            )

    def pointer_leave(self) -> None:
        if self.state.playing:
            self._cancel_hide_timer()
            self.state.controls_visible = False

    def _hide_controls(self) -> None:
        self._hide_handle = None
        if self.state.playing:
            self.state.controls_visible = False

    def _cancel_hide_timer(self) -> None:
        if self._hide_handle is not None:
            self._hide_handle.cancel()
            self._hide_handle = None

    # -- notifications ------------------------------------------------------

    def _handle_time_update(self) -> None:
        current_time = self._element.current_time
        self.state.current_time = current_time
        if self._on_time_update is not None:
            self._on_time_update(current_time)

    def _handle_loaded_metadata(self) -> None:
        duration = self._element.duration
        # Live or broken streams report NaN/inf; keep duration unknown
        if duration is not None and math.isfinite(duration) and duration >= 0:
            self.state.duration = duration

    def _handle_ended(self) -> None:
        self._cancel_hide_timer()
        self.state.playing = False
        self.state.ended = True
        self.state.controls_visible = True

        logger.debug("Playback ended", extra={"src": self._src})

        if self._on_ended is not None:
            self._on_ended()

    def _handle_fullscreen_change(self) -> None:
        self.state.fullscreen = self._platform.fullscreen_element is self._container

    def _handle_pip_change(self) -> None:
        self.state.pip_active = self._platform.pip_element is self._element

"""
story_engine/timeline_layout.py -- Lane layout and pan/zoom maths for the timeline view.

Events are laid out left to right in timeline order, one column per
event.  Each event drops into the first lane whose previous card ends at
least half a column before this one starts, so neighbouring cards
alternate between lanes instead of overlapping.

World-time ordering is a plain string comparison: "Year 10" sorts before
"Year 9".  The view shows the order the writer typed, it does not parse
calendars.

Usage:
    from story_engine.timeline_layout import Viewport, layout_timeline

    placed = layout_timeline(events, "chapter")
    view = Viewport()
    view.zoom(+1, 400, 300)
    sx, sy = view.to_screen(placed[0].x, placed[0].y)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from story_engine.models import Event

MIN_SCALE = 0.5
MAX_SCALE = 3.0
ZOOM_STEP = 0.1


@dataclass(frozen=True)
class LayoutConfig:
    """Card size and spacing, in canvas units."""

    event_width: float = 250
    event_height: float = 120
    horizontal_spacing: float = 300
    vertical_spacing: float = 150
    start_x: float = 50
    start_y: float = 100


@dataclass(frozen=True)
class PlacedEvent:
    """An event with its card rectangle on the canvas."""

    event: Event
    x: float
    y: float
    width: float
    height: float
    lane: int

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + self.width and self.y <= y <= self.y + self.height


def sort_events(events: Iterable[Event], timeline: str) -> list[Event]:
    """Order events for *timeline* (``"world"`` or ``"chapter"``).

    The sort is stable, so events that tie keep their incoming order.
    """
    if timeline == "world":
        return sorted(events, key=lambda e: e.world_time or "")
    if timeline == "chapter":
        return sorted(events, key=lambda e: e.chapter_number or 0)
    raise ValueError(f"timeline must be 'world' or 'chapter', got {timeline!r}")


def layout_timeline(
    events: Iterable[Event],
    timeline: str,
    config: LayoutConfig = LayoutConfig(),
) -> list[PlacedEvent]:
    """Assign a card rectangle to every event."""
    placed: list[PlacedEvent] = []
    lanes: list[float] = []  # right edge of the last card in each lane

    for index, event in enumerate(sort_events(events, timeline)):
        x = config.start_x + index * config.horizontal_spacing
        threshold = x - config.horizontal_spacing * 0.5

        lane = 0
        while lane < len(lanes) and lanes[lane] > threshold:
            lane += 1
        if lane == len(lanes):
            lanes.append(x + config.event_width)
        else:
            lanes[lane] = x + config.event_width

        placed.append(PlacedEvent(
            event=event,
            x=x,
            y=config.start_y + lane * config.vertical_spacing,
            width=config.event_width,
            height=config.event_height,
            lane=lane,
        ))
    return placed


def content_size(placed: list[PlacedEvent], config: LayoutConfig = LayoutConfig()) -> tuple[float, float]:
    """Return the (width, height) needed to show every card plus margins."""
    if not placed:
        return (0.0, 0.0)
    right = max(p.x + p.width for p in placed) + config.start_x
    bottom = max(p.y + p.height for p in placed) + config.start_x
    return (right, bottom)


class Viewport:
    """Pan/zoom state mapping canvas coordinates onto the screen.

    ``screen = canvas * scale + offset``.  Zooming keeps the canvas point
    under the cursor fixed on screen.
    """

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.scale = 1.0
        self.offset_x = 0.0
        self.offset_y = 0.0
        self._drag_origin: tuple[float, float] | None = None

    # -- zoom ----------------------------------------------------------

    def zoom(self, delta: float, center_x: float, center_y: float) -> None:
        """Change the scale by ``delta * ZOOM_STEP`` around a screen point."""
        new_scale = max(MIN_SCALE, min(MAX_SCALE, self.scale + delta * ZOOM_STEP))
        ratio = new_scale / self.scale
        self.scale = new_scale
        self.offset_x = center_x - (center_x - self.offset_x) * ratio
        self.offset_y = center_y - (center_y - self.offset_y) * ratio

    def wheel(self, delta_y: float, center_x: float, center_y: float) -> None:
        """Zoom from a scroll delta; negative (scrolling up) zooms in."""
        self.zoom(-delta_y / 100, center_x, center_y)

    # -- pan -----------------------------------------------------------

    def pan(self, dx: float, dy: float) -> None:
        self.offset_x += dx
        self.offset_y += dy

    def begin_drag(self, x: float, y: float) -> None:
        self._drag_origin = (x - self.offset_x, y - self.offset_y)

    def drag_to(self, x: float, y: float) -> None:
        if self._drag_origin is None:
            return
        self.offset_x = x - self._drag_origin[0]
        self.offset_y = y - self._drag_origin[1]

    def end_drag(self) -> None:
        self._drag_origin = None

    @property
    def dragging(self) -> bool:
        return self._drag_origin is not None

    # -- mapping -------------------------------------------------------

    def to_screen(self, x: float, y: float) -> tuple[float, float]:
        return (x * self.scale + self.offset_x, y * self.scale + self.offset_y)

    def to_canvas(self, x: float, y: float) -> tuple[float, float]:
        return ((x - self.offset_x) / self.scale, (y - self.offset_y) / self.scale)

    def hit_test(self, placed: list[PlacedEvent], x: float, y: float) -> PlacedEvent | None:
        """Return the topmost card under screen point (x, y), if any."""
        cx, cy = self.to_canvas(x, y)
        for card in reversed(placed):
            if card.contains(cx, cy):
                return card
        return None

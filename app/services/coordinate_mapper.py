"""
Coordinate mapping for signature spots

Converts the stored spot geometry (page percentages or legacy absolute units)
into a drawing rectangle in PDF space, origin bottom-left, that fits the
signature raster inside the spot box without distorting it.
"""

import enum
from dataclasses import dataclass
from datetime import datetime

# Stored values at or below this are percentages of the page dimension
PERCENTAGE_MAX = 100.0

# Vertical gap between the image origin and the "Signed:" label baseline
LABEL_OFFSET = 12.0


class Scale(str, enum.Enum):
    PERCENTAGE = "percentage"
    ABSOLUTE = "absolute"


@dataclass(frozen=True)
class Placement:
    """A single geometric value together with the scale it is expressed in"""
    scale: Scale
    value: float

    @classmethod
    def detect(cls, value: float) -> "Placement":
        value = float(value)
        if value <= PERCENTAGE_MAX:
            return cls(Scale.PERCENTAGE, value)
        return cls(Scale.ABSOLUTE, value)

    @property
    def is_percentage(self) -> bool:
        return self.scale == Scale.PERCENTAGE

    def resolve(self, dimension: float) -> float:
        """Absolute length along an axis of the given page dimension"""
        if self.is_percentage:
            return self.value / 100.0 * dimension
        return self.value


@dataclass(frozen=True)
class SpotGeometry:
    """Spot position and size normalized at load time"""
    page_number: int
    x: Placement
    y: Placement
    width: Placement
    height: Placement

    @classmethod
    def from_spot(cls, spot) -> "SpotGeometry":
        return cls(
            page_number=int(spot.page_number or 1),
            x=Placement.detect(spot.x_position),
            y=Placement.detect(spot.y_position),
            width=Placement.detect(spot.width),
            height=Placement.detect(spot.height),
        )

    @property
    def page_index(self) -> int:
        return self.page_number - 1


@dataclass(frozen=True)
class DrawRect:
    """Where to draw the image and its date label, PDF coordinates"""
    x: float
    y: float
    width: float
    height: float
    label_x: float
    label_y: float

    @property
    def top(self) -> float:
        return self.y + self.height

    @property
    def right(self) -> float:
        return self.x + self.width

    def overlaps(self, other: "DrawRect") -> bool:
        return not (
            self.right <= other.x
            or other.right <= self.x
            or self.top <= other.y
            or other.top <= self.y
        )


def fit_to_box(box_width: float, box_height: float, image_width: float, image_height: float):
    """Scale the raster into the box keeping its aspect ratio.

    Width is tried first; height becomes the binding constraint only when the
    width-fitted image would overflow the box vertically.
    """
    if image_width <= 0 or image_height <= 0:
        raise ValueError(f"Invalid image size {image_width}x{image_height}")
    if box_width <= 0 or box_height <= 0:
        raise ValueError(f"Invalid spot box {box_width}x{box_height}")

    aspect_ratio = image_width / image_height
    draw_width = box_width
    draw_height = box_width / aspect_ratio

    if draw_height > box_height:
        draw_height = box_height
        draw_width = box_height * aspect_ratio

    return draw_width, draw_height


def compute_placement(
    geometry: SpotGeometry,
    page_width: float,
    page_height: float,
    image_width: float,
    image_height: float,
) -> DrawRect:
    """Compute the drawing rectangle for one spot on one page.

    Percentage x/y are the center of the spot, measured top-down in the UI.
    Legacy absolute x/y are the top-left corner, also measured top-down; they
    are kept that way for old records.
    """
    box_width = geometry.width.resolve(page_width)
    box_height = geometry.height.resolve(page_height)
    draw_width, draw_height = fit_to_box(box_width, box_height, image_width, image_height)

    if geometry.x.is_percentage:
        center_x = geometry.x.resolve(page_width)
        x = center_x - draw_width / 2
    else:
        x = geometry.x.value

    if geometry.y.is_percentage:
        center_y = geometry.y.resolve(page_height)
        y = page_height - center_y - draw_height / 2
    else:
        y = page_height - geometry.y.value - draw_height

    return DrawRect(
        x=x,
        y=y,
        width=draw_width,
        height=draw_height,
        label_x=x,
        label_y=y - LABEL_OFFSET,
    )


def format_signed_label(signed_on: datetime) -> str:
    """'Signed: January 9, 2026'"""
    return f"Signed: {signed_on:%B} {signed_on.day}, {signed_on.year}"

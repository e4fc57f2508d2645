from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

DEPTH_RANGE = (0, 5)
BRANCH_COUNT_RANGE = (0, 10)


class TreeParameters(BaseModel):
    """Structural and animation settings for a fractal tree.

    A single instance is shared between the parameter panel and the
    controller. Assignments are validated, so the integer fields can never
    leave their ranges.

    Attributes:
    -----------
    depth : int
        recursion limit, counted in levels below the trunk; children of the
        trunk are generated at depth 0
    branch_count : int
        number of child branches grown from every segment
    animated : bool
        whether each frame tick spins the branches about their own axes
    """

    model_config = ConfigDict(validate_assignment=True)

    depth: int = Field(default=4, ge=DEPTH_RANGE[0], le=DEPTH_RANGE[1])
    branch_count: int = Field(
        default=3, ge=BRANCH_COUNT_RANGE[0], le=BRANCH_COUNT_RANGE[1]
    )
    animated: bool = True


class TreeShape(BaseModel):
    """Fixed geometric and visual constants of the tree.

    Attributes:
    -----------
    trunk_length : numeric
        length of the permanent trunk segment
    base_radius : numeric
        radius at the base of every segment. The tip radius is the square of
        this value, so it must stay below 1 to produce a taper.
    branch_angle : numeric
        angle in radians used for both the azimuthal scatter (2 * i * angle)
        and the outward tilt of each branch
    spin_rate : numeric
        rotation in radians added to every node per animated frame
    radial_segments : int
        number of faces around the circumference of a segment
    color : string
        css-style rgb colour of the branches
    ground_size : numeric
        edge length of the square ground plane
    camera_position : tuple of numerics
        (x, y, z) position of the camera, y-up
    """

    model_config = ConfigDict(frozen=True)

    trunk_length: float = Field(default=40.0, gt=0)
    base_radius: float = Field(default=0.6, gt=0, lt=1)
    branch_angle: float = Field(default=math.pi / 3)
    spin_rate: float = Field(default=0.004)
    radial_segments: int = Field(default=32, ge=3)
    color: str = "rgb(165, 42, 42)"
    ground_size: float = Field(default=150.0, gt=0)
    camera_position: tuple[float, float, float] = (0.0, 100.0, 200.0)

    @field_validator("color")
    @classmethod
    def color_is_rgb(cls, value: str) -> str:
        """Checks that the colour can be parsed as rgb(r, g, b)."""
        _parse_rgb(value)
        return value

    @property
    def rgb(self) -> tuple[int, int, int]:
        """The branch colour as an (r, g, b) tuple of 0-255 integers."""
        return _parse_rgb(self.color)


def _parse_rgb(color: str) -> tuple[int, int, int]:
    text = color.strip()
    if not (text.startswith("rgb(") and text.endswith(")")):
        raise ValueError(f"color must look like 'rgb(r, g, b)', got {color!r}")
    try:
        channels = tuple(int(c) for c in text[4:-1].split(","))
    except ValueError:
        raise ValueError(f"color channels must be integers: {color!r}") from None
    if len(channels) != 3 or not all(0 <= c <= 255 for c in channels):
        raise ValueError(f"color channels must be three values in [0, 255]: {color!r}")
    return channels


class Segment(BaseModel):
    """A single tapered cylinder of the tree.

    The cylinder is modelled centred on its own origin and then shifted by
    half its length along the local y-axis, so that its base sits on the
    attachment point of its parent and its tip points outward.

    Attributes:
    -----------
    length : numeric
        length of the segment along its growth axis
    base_radius : numeric
        radius at the attachment end of the segment
    cast_shadow : bool
        whether a renderer should let this segment cast shadows
    radial_segments : int
        number of faces around the circumference
    """

    model_config = ConfigDict(frozen=True)

    length: float = Field(gt=0)
    base_radius: float = Field(default=0.6, gt=0, lt=1)
    cast_shadow: bool = True
    radial_segments: int = Field(default=32, ge=3)

    @property
    def tip_radius(self) -> float:
        """Radius at the outer end, the square of the base radius."""
        return self.base_radius**2

    tip_radius = computed_field(tip_radius)

    @property
    def position(self) -> tuple[float, float, float]:
        """Translation of the centred cylinder within its branch node."""
        return (0.0, self.length / 2, 0.0)

    position = computed_field(position)

"""
Parameters for the default map generator.

Values are validated on construction and never silently clamped, except for
smoothing iterations, which the smoothing pass itself caps at 10.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from .config import Settings, settings as default_settings

TunnelerKind = Literal["direct", "low_variance", "high_variance"]


class MapParameters(BaseModel):
    """Everything MapGenerator needs to build a map."""

    length: int = Field(80, ge=5, description="Number of tiles along x")
    width: int = Field(60, ge=5, description="Number of tiles along y")
    initial_density: float = Field(
        0.45, ge=0.0, le=1.0, description="Probability that a tile starts as a wall"
    )
    seed: int = Field(0, description="Seed for every random choice made while generating")
    smoothing_iterations: int = Field(5, ge=0, le=10, description="Number of smoothing passes")
    min_floor_size: int = Field(50, ge=0, description="Floor regions smaller than this are filled in")
    min_wall_size: int = Field(50, ge=0, description="Wall regions smaller than this are removed")
    tunnel_radius: int = Field(1, ge=0, description="Radius of tunnels carved between rooms")
    tunneler: TunnelerKind = Field("direct", description="Strategy used to lay out tunnels")
    expand_tunnels: bool = Field(True, description="Widen passages that are one tile wide")
    border_size: int = Field(1, ge=0, description="Thickness of the wall border added around the map")
    square_size: int = Field(1, ge=1, description="World-space size of one tile")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides) -> "MapParameters":
        """Build parameters with dimensions, density and seed taken from settings."""
        settings = settings or default_settings
        values = {
            "length": settings.default_map_length,
            "width": settings.default_map_width,
            "initial_density": settings.default_density,
            "seed": settings.default_seed,
        }
        values.update(overrides)
        return cls(**values)

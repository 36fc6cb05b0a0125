from .layout import (
    GeneratedWorld,
    IntersectionConnector,
    IntersectionData,
    LotData,
    RoadClass,
    RoadSegment,
    WorldLayout,
)

__all__ = [
    "GeneratedWorld",
    "IntersectionConnector",
    "IntersectionData",
    "LotData",
    "RoadClass",
    "RoadSegment",
    "WorldLayout",
]

from .edges import Box, best_available_edge, box_of, closest_edge, connection_point
from .routing import connection_path, generalization_paths, orthogonal_path

__all__ = [
    "Box",
    "best_available_edge",
    "box_of",
    "closest_edge",
    "connection_path",
    "connection_point",
    "generalization_paths",
    "orthogonal_path",
]

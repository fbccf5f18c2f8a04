from __future__ import annotations
import numpy as np
import logging

def get_logger(name: str = "terragrid") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(levelname)s] %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger

def planar_distances(xy: np.ndarray, qx: float, qy: float) -> np.ndarray:
    """Euclidean distance in the XY plane from every row of ``xy`` to ``(qx, qy)``."""
    dx = xy[:, 0] - qx
    dy = xy[:, 1] - qy
    return np.sqrt(dx * dx + dy * dy)

def order_by_distance(distances: np.ndarray, indices: np.ndarray) -> np.ndarray:
    # ties resolve to the lowest source index
    return np.lexsort((indices, distances))

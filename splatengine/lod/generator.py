"""
Single and multi-level LOD generation.
"""

import logging
from typing import List, Optional

from ..errors import InvalidInput
from ..frame import Frame
from .interface import LODMethod
from .registry import build_strategy, get_strategy_entry

logger = logging.getLogger(__name__)

# Level i keeps REDUCTION_BASE ** i of the source points
REDUCTION_BASE = 0.7


def reduction_factors(level_count: int) -> List[float]:
    """Fraction of points kept at each level: 1.0, 0.7, 0.49, ..."""
    return [REDUCTION_BASE ** i for i in range(level_count)]


def level_target(count: int, level: int) -> int:
    return max(1, int(count * REDUCTION_BASE ** level))


def generate_lod_level(
    frame: Optional[Frame],
    target: int,
    method: "str | LODMethod" = LODMethod.IMPORTANCE,
    seed: Optional[int] = None,
    config=None,
) -> Frame:
    """
    Reduce a frame with one strategy.

    Args:
        frame: Source frame; never modified.
        target: Desired point count.
        method: Strategy name or LODMethod.
        seed: Seed for seeded strategies (random, spatial). None keeps the
            strategy's configured seed.
        config: Optional strategy config instance.

    Returns:
        The source itself when ``target >= frame.count``, otherwise a frame
        with exactly ``max(1, target)`` points.

    Raises:
        InvalidInput: If ``frame`` is None or empty, or ``method`` is unknown.
    """
    if frame is None or frame.count == 0:
        raise InvalidInput("LOD source frame must be non-empty")
    strategy = build_strategy(method, config=config, seed=seed)
    return strategy.reduce(frame, target)


def generate_lod_levels(
    frame: Optional[Frame],
    level_count: int = 4,
    method: "str | LODMethod" = LODMethod.IMPORTANCE,
    seed: Optional[int] = None,
    config=None,
) -> List[Frame]:
    """
    Generate a list of progressively reduced frames.

    Level 0 is the source itself; level ``i`` targets
    ``max(1, floor(N * 0.7 ** i))`` points. Generation stops early, keeping
    the levels produced so far, if a level comes out invalid.

    Args:
        frame: Source frame.
        level_count: Number of levels including level 0.
        method: Strategy name or LODMethod.
        seed: Seed for seeded strategies. When None, per-level seeded
            strategies (random) use the level number as their seed.
        config: Optional strategy config instance.

    Raises:
        InvalidInput: If ``frame`` is None or empty, ``level_count < 1`` or
            ``method`` is unknown.
    """
    if frame is None or frame.count == 0:
        raise InvalidInput("LOD source frame must be non-empty")
    if level_count < 1:
        raise InvalidInput(f"level_count must be at least 1, got {level_count}")
    entry = get_strategy_entry(method)

    levels = [frame]
    for level in range(1, level_count):
        target = level_target(frame.count, level)
        level_seed = seed
        if level_seed is None and entry.seed_per_level:
            level_seed = level

        reduced = generate_lod_level(frame, target, entry.name, seed=level_seed, config=config)
        error = reduced.validate()
        if error is None and reduced.count == 0:
            error = "level is empty"
        if error is not None:
            logger.warning(f"Failed to generate LOD level {level}: {error}; keeping {len(levels)} levels")
            break

        logger.debug(f"LOD level {level}: {reduced.count} of {frame.count} points")
        levels.append(reduced)

    return levels

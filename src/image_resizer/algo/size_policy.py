"""Pure target-size computation for a source size and a ResizePolicy."""

import math

from ..common.errors import UsageError
from ..common.schemas import ResizeMode, ResizePolicy, ScaleMode, StretchMode, TargetSize


def compute_target_size(
    source_width: int,
    source_height: int,
    policy: ResizePolicy,
) -> TargetSize:
    """
    Resolve the output dimensions for a source of the given size.

    The larger of the two requested bounds always goes to the source's longer
    axis, whichever policy field held it.

    Args:
        source_width: Source width in pixels
        source_height: Source height in pixels
        policy: Resize policy to apply

    Returns:
        TargetSize with both dimensions >= 1

    Raises:
        UsageError: If the source size is not positive, the policy is
            ambiguous (ONE_SIDE) or the mode is unknown
    """
    if source_width <= 0 or source_height <= 0:
        raise UsageError(f"Source size must be positive, got {source_width}x{source_height}")

    match policy.mode:
        case ResizeMode.MAX_SIDES:
            small_side, big_side = policy.compare_sides()
            if policy.stretch_mode == StretchMode.PROPORTIONAL:
                factor = get_scale_factor(source_height, source_width, small_side, big_side)
                return _scaled(source_width, source_height, factor, policy.scale_mode)
            if source_height > source_width:
                box = (small_side, big_side)
            else:
                box = (big_side, small_side)
            return _exact(source_width, source_height, box, policy.scale_mode)

        case ResizeMode.ONE_SIDE:
            if policy.width > 0 and policy.height > 0:
                raise UsageError(
                    f"width: {policy.width}, height: {policy.height}. "
                    + "Only one side may be greater than zero"
                )
            if policy.height > 0:
                factor = policy.height / source_height
            elif policy.width > 0:
                factor = policy.width / source_width
            else:
                raise UsageError(
                    f"width: {policy.width}, height: {policy.height}. "
                    + "One side must be greater than zero"
                )
            return _scaled(source_width, source_height, factor, policy.scale_mode)

        case ResizeMode.RECTANGLE:
            if policy.stretch_mode == StretchMode.PROPORTIONAL:
                if source_height > source_width:
                    big_side, small_side = policy.height, policy.width
                else:
                    big_side, small_side = policy.width, policy.height
                factor = get_scale_factor(source_height, source_width, small_side, big_side)
                return _scaled(source_width, source_height, factor, policy.scale_mode)
            return _exact(
                source_width, source_height, (policy.width, policy.height), policy.scale_mode
            )

        case _:
            raise UsageError(f"Unsupported resize mode: {policy.mode!r}")


def get_scale_factor(height: int, width: int, small_side: int, big_side: int) -> float:
    """Largest factor fitting the source inside a big_side x small_side box."""
    if height > width:
        factor = big_side / height
        if width * factor > small_side:
            factor = small_side / width
        return factor

    factor = big_side / width
    if height * factor > small_side:
        factor = small_side / height
    return factor


def apply_scale_mode(factor: float, scale_mode: ScaleMode) -> float:
    """Filter a proportional factor through the scale mode (1.0 = identity)."""
    match scale_mode:
        case ScaleMode.UPSCALE_ONLY:
            return factor if factor > 1 else 1.0
        case ScaleMode.DOWNSCALE_ONLY:
            return factor if factor < 1 else 1.0
        case ScaleMode.BOTH:
            return factor
        case ScaleMode.NONE:
            return 1.0
        case _:
            raise UsageError(f"Unsupported scale mode: {scale_mode!r}")


def round_half_away_from_zero(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _scaled(width: int, height: int, factor: float, scale_mode: ScaleMode) -> TargetSize:
    if scale_mode == ScaleMode.NONE:
        return TargetSize(width=width, height=height)
    if factor <= 0:
        raise UsageError("Resize policy bounds must be greater than zero")

    factor = apply_scale_mode(factor, scale_mode)
    if factor == 1.0:
        return TargetSize(width=width, height=height)

    return TargetSize(
        width=max(1, round_half_away_from_zero(width * factor)),
        height=max(1, round_half_away_from_zero(height * factor)),
    )


def _exact(
    width: int,
    height: int,
    box: tuple[int, int],
    scale_mode: ScaleMode,
) -> TargetSize:
    if scale_mode == ScaleMode.NONE:
        return TargetSize(width=width, height=height)

    box_width, box_height = box
    if box_width <= 0 or box_height <= 0:
        raise UsageError(f"Exact stretch needs both sides, got {box_width}x{box_height}")

    match scale_mode:
        case ScaleMode.UPSCALE_ONLY if box_width < width or box_height < height:
            return TargetSize(width=width, height=height)
        case ScaleMode.DOWNSCALE_ONLY if box_width > width or box_height > height:
            return TargetSize(width=width, height=height)
        case ScaleMode.UPSCALE_ONLY | ScaleMode.DOWNSCALE_ONLY | ScaleMode.BOTH:
            return TargetSize(width=box_width, height=box_height)
        case _:
            raise UsageError(f"Unsupported scale mode: {scale_mode!r}")

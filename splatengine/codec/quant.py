"""
Fixed-width quantization of splat channels.

Positions and scales are mapped linearly from their bounding range to 16-bit
codes, rotation components from [-1, 1] to 16-bit codes, and colors and
opacities from [0, 1] to 8-bit codes. All maps round to the nearest code so
the reconstruction error is at most half a quantization step.
"""

from dataclasses import dataclass

import torch

# Padding added to the upper corner so a flat axis still has a usable range
BOUNDS_EPSILON = 0.001

QUANT16_MAX = 65535
QUANT8_MAX = 255


@dataclass
class RangeQuantConfig:
    """
    Per-axis linear quantization range.

    Attributes:
        minimum: Lower corner of the range, shape (3,), float32.
        maximum: Upper corner of the range, shape (3,), float32.
    """
    minimum: torch.Tensor  # shape (3,)
    maximum: torch.Tensor  # shape (3,)

    @property
    def step_size(self) -> torch.Tensor:
        """Width of one 16-bit quantization step per axis."""
        return (self.maximum.double() - self.minimum.double()) / QUANT16_MAX


def compute_range_config(values: torch.Tensor, epsilon: float = BOUNDS_EPSILON) -> RangeQuantConfig:
    """
    Compute the quantization range of a (N, 3) channel.

    Args:
        values: Channel values, shape (N, 3), N >= 1.
        epsilon: Padding added to the maximum only.

    Returns:
        RangeQuantConfig with float32 corners.
    """
    values = values.to(torch.float32)
    minimum = values.min(dim=0).values
    maximum = values.max(dim=0).values + epsilon
    return RangeQuantConfig(minimum=minimum, maximum=maximum)


def _span(config: RangeQuantConfig) -> torch.Tensor:
    span = config.maximum.double() - config.minimum.double()
    # epsilon can vanish in float32 for very large coordinates
    return torch.where(span > 0, span, torch.ones_like(span))


def quantize_range(values: torch.Tensor, config: RangeQuantConfig) -> torch.Tensor:
    """
    Quantize a (N, 3) channel to 16-bit codes.

    Applies the formula:
        code = round((value - min) / (max - min) * 65535)

    Returns:
        Codes as int64, shape (N, 3), clamped to [0, 65535].
    """
    normalized = (values.double() - config.minimum.double()) / _span(config)
    return torch.round(normalized * QUANT16_MAX).clamp(0, QUANT16_MAX).to(torch.int64)


def dequantize_range(
    codes: torch.Tensor,
    config: RangeQuantConfig,
    dtype: torch.dtype = torch.float32,
) -> torch.Tensor:
    """
    Map 16-bit codes back to values.

    Applies the formula:
        value = min + code / 65535 * (max - min)
    """
    normalized = codes.double() / QUANT16_MAX
    return (config.minimum.double() + normalized * _span(config)).to(dtype)


def quantize_signed_unit(values: torch.Tensor) -> torch.Tensor:
    """Quantize components in [-1, 1] to 16-bit codes."""
    normalized = values.double().clamp(-1.0, 1.0) * 0.5 + 0.5
    return torch.round(normalized * QUANT16_MAX).to(torch.int64)


def dequantize_signed_unit(codes: torch.Tensor, dtype: torch.dtype = torch.float32) -> torch.Tensor:
    return (codes.double() / QUANT16_MAX * 2.0 - 1.0).to(dtype)


def quantize_unorm8(values: torch.Tensor) -> torch.Tensor:
    """Quantize values in [0, 1] to 8-bit codes."""
    return torch.round(values.double().clamp(0.0, 1.0) * QUANT8_MAX).to(torch.int64)


def dequantize_unorm8(codes: torch.Tensor, dtype: torch.dtype = torch.float32) -> torch.Tensor:
    return (codes.double() / QUANT8_MAX).to(dtype)


def estimate_quantization_error(values: torch.Tensor, config: RangeQuantConfig) -> dict:
    """
    Estimate the quantization error statistics of a range-quantized channel.

    Useful for debugging and validating bounds.

    Args:
        values: Original channel values, shape (N, 3).
        config: Quantization range.

    Returns:
        Dictionary with error statistics:
            - 'max_error': Maximum absolute error across all components.
            - 'mean_error': Mean absolute error.
            - 'rmse': Root mean squared error.
            - 'relative_max_error': Max error relative to the largest step size.
    """
    reconstructed = dequantize_range(quantize_range(values, config), config, dtype=torch.float64)
    error = (values.double() - reconstructed).abs()

    return {
        'max_error': error.max().item(),
        'mean_error': error.mean().item(),
        'rmse': torch.sqrt((error ** 2).mean()).item(),
        'relative_max_error': error.max().item() / config.step_size.max().item(),
    }

"""Numeric precision formats and their storage/compute characteristics."""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType


class Quantization(str, Enum):
    FP32 = "FP32"
    FP16 = "FP16"
    INT8 = "INT8"
    INT4 = "INT4"


@dataclass(frozen=True)
class QuantizationInfo:
    """Bytes per stored parameter and throughput multiplier relative to FP16."""

    name: Quantization
    bytes_per_parameter: float
    compute_multiplier: float
    description: str


QUANTIZATION_TABLE = MappingProxyType({
    Quantization.FP32: QuantizationInfo(
        Quantization.FP32, 4, 0.5,
        "32-bit floating point - highest precision, largest size",
    ),
    Quantization.FP16: QuantizationInfo(
        Quantization.FP16, 2, 1.0,
        "16-bit floating point - good precision/performance balance",
    ),
    Quantization.INT8: QuantizationInfo(
        Quantization.INT8, 1, 2.0,
        "8-bit integer - smaller size, slight quality loss",
    ),
    Quantization.INT4: QuantizationInfo(
        Quantization.INT4, 0.5, 4.0,
        "4-bit integer - smallest size, noticeable quality loss",
    ),
})


def get_quantization_info(quantization: Quantization | str) -> QuantizationInfo:
    """Look up a precision format by enum member or name (e.g. ``"int8"``).

    Raises ValueError for names outside the table.
    """
    if isinstance(quantization, str) and not isinstance(quantization, Quantization):
        try:
            quantization = Quantization(quantization.upper())
        except ValueError:
            raise ValueError(
                f"Unknown quantization '{quantization}'; "
                f"expected one of {[q.value for q in Quantization]}"
            ) from None
    return QUANTIZATION_TABLE[quantization]

"""Kubernetes quantity parsing and CPU/memory normalisation.

All public functions are total: missing, empty or unparseable input is
treated as zero and nothing here ever raises.

CPU quantities are interpreted the way the API server does: ``n`` is
nanocores, ``u`` microcores, ``m`` millicores and an unsuffixed number is
whole cores (``"4"`` is 4000 millicores). Memory accepts binary suffixes
(``Ki`` .. ``Ei``), decimal suffixes (``k`` .. ``E``) and plain byte counts.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from kubedeck.models.resources import CpuUsage, MemoryUsage

_QUANTITY_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)\s*([a-zA-Z]*)\s*$")

_DECIMAL_SUFFIXES: dict[str, Decimal] = {
    "n": Decimal("1e-9"),
    "u": Decimal("1e-6"),
    "m": Decimal("1e-3"),
    "": Decimal(1),
    "k": Decimal("1e3"),
    "M": Decimal("1e6"),
    "G": Decimal("1e9"),
    "T": Decimal("1e12"),
    "P": Decimal("1e15"),
    "E": Decimal("1e18"),
}

_BINARY_SUFFIXES: dict[str, Decimal] = {
    "Ki": Decimal(2**10),
    "Mi": Decimal(2**20),
    "Gi": Decimal(2**30),
    "Ti": Decimal(2**40),
    "Pi": Decimal(2**50),
    "Ei": Decimal(2**60),
}

# Kubernetes quantities are bounded by int64; anything larger is rejected.
_MAX_EXPONENT = 18

_NANO = Decimal(1_000_000_000)
_MIB = 1024 * 1024
_GIB = 1024 * 1024 * 1024


def parse_quantity(raw: str | None) -> Decimal | None:
    """Parse a Kubernetes quantity string into base units.

    Returns None when *raw* is not a recognisable quantity.
    """
    if not raw:
        return None
    match = _QUANTITY_RE.match(str(raw))
    if match is None:
        return None
    number, suffix = match.groups()
    multiplier = _BINARY_SUFFIXES.get(suffix) or _DECIMAL_SUFFIXES.get(suffix)
    if multiplier is None:
        return None
    try:
        value = Decimal(number)
    except InvalidOperation:
        return None
    if value.adjusted() > _MAX_EXPONENT:
        return None
    return value * multiplier


def _to_int(value: Decimal) -> int:
    if value <= 0:
        return 0
    return int(value.to_integral_value(rounding=ROUND_HALF_UP))


def cpu_nanocores(raw: str | None) -> int:
    """Return the CPU quantity *raw* as integer nanocores (0 when invalid)."""
    value = parse_quantity(raw)
    if value is None:
        return 0
    return _to_int(value * _NANO)


def memory_bytes(raw: str | None) -> int:
    """Return the memory quantity *raw* as integer bytes (0 when invalid)."""
    value = parse_quantity(raw)
    if value is None:
        return 0
    return _to_int(value)


def cpu_from_nanocores(nanocores: int, raw: str | None = None) -> CpuUsage:
    """Build a CpuUsage from an already-summed nanocore count."""
    millicores = _to_int(Decimal(nanocores) / Decimal(1_000_000))
    return CpuUsage(
        raw=raw or "0",
        millicores=millicores,
        cores=round(millicores / 1000, 2),
    )


def memory_from_bytes(total_bytes: int, raw: str | None = None) -> MemoryUsage:
    """Build a MemoryUsage from an already-summed byte count."""
    total_bytes = max(total_bytes, 0)
    return MemoryUsage(
        raw=raw or "0",
        bytes=total_bytes,
        megabytes=round(total_bytes / _MIB, 2),
        gigabytes=round(total_bytes / _GIB, 2),
    )


def normalize_cpu(raw: str | None) -> CpuUsage:
    """Normalise a CPU quantity: ``"500000000n"`` -> 500 millicores, 0.5 cores."""
    return cpu_from_nanocores(cpu_nanocores(raw), raw)


def normalize_memory(raw: str | None) -> MemoryUsage:
    """Normalise a memory quantity: ``"1024Ki"`` -> 1048576 bytes, 1.0 MB."""
    return memory_from_bytes(memory_bytes(raw), raw)


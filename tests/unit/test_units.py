"""Tests for kubedeck.aggregation.units.

Covers:
  - CPU normalisation for every suffix (n, u, m, bare cores)
  - Memory normalisation for binary, decimal and plain byte quantities
  - Totality: empty, missing and garbage input yield zeroes, never errors
  - Derived units rounded to two decimals
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from kubedeck.aggregation.units import (
    cpu_from_nanocores,
    cpu_nanocores,
    memory_bytes,
    memory_from_bytes,
    normalize_cpu,
    normalize_memory,
    parse_quantity,
)

# ---------------------------------------------------------------------------
# CPU
# ---------------------------------------------------------------------------


class TestNormalizeCpu:
    def test_nanocores_to_millicores(self) -> None:
        cpu = normalize_cpu("500000000n")
        assert cpu.millicores == 500
        assert cpu.cores == 0.5
        assert cpu.raw == "500000000n"

    def test_nanocores_round_to_nearest_millicore(self) -> None:
        assert normalize_cpu("1499999n").millicores == 1
        assert normalize_cpu("1500000n").millicores == 2
        assert normalize_cpu("400000n").millicores == 0

    def test_microcores(self) -> None:
        assert normalize_cpu("250000u").millicores == 250

    def test_millicores_pass_through(self) -> None:
        cpu = normalize_cpu("100m")
        assert cpu.millicores == 100
        assert cpu.cores == 0.1

    def test_unsuffixed_value_is_whole_cores(self) -> None:
        assert normalize_cpu("4").millicores == 4000
        assert normalize_cpu("0.5").millicores == 500
        assert normalize_cpu("4").cores == 4.0

    def test_cores_rounded_to_two_decimals(self) -> None:
        assert normalize_cpu("1234m").cores == 1.23
        assert normalize_cpu("1750m").cores == 1.75

    @pytest.mark.parametrize("raw", ["", None, "abc", "12x", "m", "--1", "1.2.3n"])
    def test_invalid_input_is_zero(self, raw: str | None) -> None:
        cpu = normalize_cpu(raw)
        assert cpu.millicores == 0
        assert cpu.cores == 0.0

    def test_empty_raw_reported_as_zero(self) -> None:
        assert normalize_cpu("").raw == "0"
        assert normalize_cpu(None).raw == "0"

    def test_negative_quantity_clamped_to_zero(self) -> None:
        assert normalize_cpu("-500m").millicores == 0

    def test_summed_nanocores_normalised_once(self) -> None:
        # 3 x 0.4 millicore would round to 0 each; the sum rounds to 1.
        total = sum(cpu_nanocores("400000n") for _ in range(3))
        assert cpu_from_nanocores(total).millicores == 1


# ---------------------------------------------------------------------------
# Memory
# ---------------------------------------------------------------------------


class TestNormalizeMemory:
    def test_kibibytes(self) -> None:
        memory = normalize_memory("1024Ki")
        assert memory.bytes == 1048576
        assert memory.megabytes == 1.0
        assert memory.gigabytes == 0.0

    def test_binary_suffixes(self) -> None:
        assert normalize_memory("128Mi").bytes == 128 * 1024 * 1024
        assert normalize_memory("2Gi").gigabytes == 2.0

    def test_decimal_suffixes(self) -> None:
        assert normalize_memory("1k").bytes == 1000
        assert normalize_memory("1M").bytes == 1_000_000
        assert normalize_memory("1G").bytes == 1_000_000_000

    def test_plain_bytes(self) -> None:
        memory = normalize_memory("1048576")
        assert memory.bytes == 1048576
        assert memory.megabytes == 1.0

    def test_fractional_megabytes_rounded(self) -> None:
        assert normalize_memory("1500Ki").megabytes == 1.46

    @pytest.mark.parametrize("raw", ["", None, "lots", "12Qi", "Ki"])
    def test_invalid_input_is_zero(self, raw: str | None) -> None:
        memory = normalize_memory(raw)
        assert memory.bytes == 0
        assert memory.megabytes == 0.0
        assert memory.gigabytes == 0.0

    def test_memory_from_bytes_clamps_negative(self) -> None:
        assert memory_from_bytes(-5).bytes == 0


# ---------------------------------------------------------------------------
# Quantity parser
# ---------------------------------------------------------------------------


class TestParseQuantity:
    def test_exponent_notation(self) -> None:
        assert parse_quantity("1e3") == Decimal(1000)

    def test_surrounding_whitespace(self) -> None:
        assert parse_quantity(" 2Gi ") == Decimal(2 * 2**30)

    def test_unknown_suffix_is_none(self) -> None:
        assert parse_quantity("5Zi") is None

    def test_out_of_range_exponent_is_none(self) -> None:
        assert parse_quantity("1e40") is None
        assert normalize_cpu("9e999999999").millicores == 0


# ---------------------------------------------------------------------------
# Totality properties
# ---------------------------------------------------------------------------


class TestTotality:
    @given(raw=st.one_of(st.none(), st.text(max_size=40)))
    @settings(max_examples=200)
    def test_normalizers_never_raise(self, raw: str | None) -> None:
        cpu = normalize_cpu(raw)
        memory = normalize_memory(raw)
        assert cpu.millicores >= 0
        assert cpu.cores >= 0
        assert memory.bytes >= 0
        assert memory.megabytes >= 0

    @given(nanocores=st.integers(min_value=0, max_value=10**15))
    @settings(max_examples=100)
    def test_nanocore_strings_agree_with_integer_division(self, nanocores: int) -> None:
        millicores = normalize_cpu(f"{nanocores}n").millicores
        assert abs(millicores - nanocores / 1_000_000) <= 0.5

    @given(kib=st.integers(min_value=0, max_value=10**12))
    @settings(max_examples=100)
    def test_kibibytes_are_exact(self, kib: int) -> None:
        assert memory_bytes(f"{kib}Ki") == kib * 1024

"""Property-based tests for duration parsing."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from svidhelper.config.duration import parse_duration

_UNIT_SECONDS = {"h": 3600, "m": 60, "s": 1, "ms": 0.001}


@pytest.mark.property
@pytest.mark.unit
class TestParseDurationProperties:
    """Property-based tests for parse_duration."""

    @given(
        value=st.integers(min_value=0, max_value=10_000),
        unit=st.sampled_from(sorted(_UNIT_SECONDS)),
    )
    def test_single_unit(self, value: int, unit: str) -> None:
        assert parse_duration(f"{value}{unit}") == pytest.approx(
            value * _UNIT_SECONDS[unit]
        )

    @given(
        hours=st.integers(min_value=0, max_value=99),
        minutes=st.integers(min_value=0, max_value=59),
        seconds=st.integers(min_value=0, max_value=59),
    )
    def test_compound_is_sum(self, hours: int, minutes: int, seconds: int) -> None:
        """Compound durations add up their components."""
        text = f"{hours}h{minutes}m{seconds}s"

        assert parse_duration(text) == hours * 3600 + minutes * 60 + seconds


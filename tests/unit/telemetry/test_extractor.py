"""Unit tests for the combined power line extractor."""

import pytest

from power_bench.telemetry.extractor import extract_all, extract_milliwatts


class TestExtractMilliwatts:
    """Test extract_milliwatts function."""

    def test_full_label_with_ane(self):
        assert extract_milliwatts("Combined Power (CPU + GPU + ANE): 1234 mW") == 1234

    def test_label_without_ane(self):
        assert extract_milliwatts("Combined Power (CPU + GPU): 987 mW") == 987

    def test_case_and_spacing_variations(self):
        assert extract_milliwatts("combined power (cpu + gpu + ane):1500mW") == 1500

    def test_fallback_for_reworded_label(self):
        assert extract_milliwatts("Combined Power (CPU + GPU + ANE + Neural): 42 mW") == 42
        assert extract_milliwatts("Combined Power estimate: 7 mW") == 7

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "CPU Power: 812 mW",
            "GPU Power: 35 mW",
            "Combined Power (CPU + GPU + ANE): N/A",
            "Combined Power (CPU + GPU + ANE): -5 mW",
            "*** Sampled system activity ***",
        ],
    )
    def test_non_matching_lines_yield_nothing(self, line):
        assert extract_milliwatts(line) is None

    def test_leading_zeros_parse_base_ten(self):
        assert extract_milliwatts("Combined Power (CPU + GPU + ANE): 0010 mW") == 10

    def test_zero_reading_is_a_value(self):
        assert extract_milliwatts("Combined Power (CPU + GPU + ANE): 0 mW") == 0

    def test_non_ascii_digits_rejected(self):
        assert extract_milliwatts("Combined Power (CPU + GPU + ANE): ١٢ mW") is None


class TestExtractAll:
    """Test extract_all over multi-line text."""

    def test_readings_in_line_order(self, powermetrics_excerpt):
        assert list(extract_all(powermetrics_excerpt)) == [847, 1202]

    def test_mixed_lines(self):
        lines = [
            "Combined Power (CPU + GPU + ANE): 1000 mW",
            "noise",
            "Combined Power (CPU + GPU + ANE): 2000 mW",
            "CPU Power: 3 mW",
            "Combined Power (CPU + GPU + ANE): 3000 mW",
        ]
        assert list(extract_all("\n".join(lines))) == [1000, 2000, 3000]

    def test_empty_text(self):
        assert list(extract_all("")) == []

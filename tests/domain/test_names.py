"""Tests for NameNormalizer."""

from __future__ import annotations

import pytest

from stategraft.domain.names import NameNormalizer


class TestMakeName:
    @pytest.mark.parametrize(
        ("text", "want"),
        [
            ("_", "_"),
            ("--", "_-"),
            ("-_-", "_-"),
            ("_--", "_--"),
            ("_/a/b-1//2.3$", "_a_b-1_2_3_"),
            ("web-1", "web-1"),
        ],
    )
    def test_default_pattern(self, text: str, want: str) -> None:
        assert NameNormalizer().make_name(text) == want

    def test_empty_raises(self) -> None:
        with pytest.raises(ValueError):
            NameNormalizer().make_name("")

    def test_custom_pattern(self) -> None:
        normalizer = NameNormalizer(pattern=r"[^a-z]+", replacement="-")
        assert normalizer.make_name("Web Server 01") == "-eb-erver-"

    def test_result_is_valid_name_segment(self) -> None:
        name = NameNormalizer().make_name("provider.aws_i-0abc/def")
        assert "." not in name
        assert "/" not in name

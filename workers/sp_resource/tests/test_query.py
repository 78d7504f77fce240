"""
Tests for sp_resource.core.query — GET interface filtering.
"""
import pytest

from sp_resource.core.query import iter_query, validate_query


class TestIterQuery:

    def test_both_separators(self):
        assert list(iter_query("if=a;rt=b&x")) == [("if", "a"), ("rt", "b"), ("x", "")]

    def test_empty_parts_skipped(self):
        assert list(iter_query("&&if=a;;")) == [("if", "a")]


class TestValidateQuery:

    @pytest.mark.parametrize("query, expected", [
        (None, True),
        ("", True),
        ("rt=oic.r.sp", True),
        ("if=oic.if.baseline", True),
        ("IF=OIC.IF.BASELINE", True),
        ("if=oic.if.rw", False),
        ("if=", False),
        ("if=oic.if.rw;if=oic.if.baseline", True),
        ("rt=oic.r.sp&if=oic.if.r", False),
    ])
    def test_interface_match(self, policy, query, expected):
        assert validate_query(query, policy) is expected

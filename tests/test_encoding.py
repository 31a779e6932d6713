"""
Tests for /select parameter encoding.
"""
from solr_mcp.encoding import encode_scalar, encode_select_params


def test_encode_scalar():
    assert encode_scalar(True) == "true"
    assert encode_scalar(False) == "false"
    assert encode_scalar(10) == "10"
    assert encode_scalar(3.0) == "3"
    assert encode_scalar(0.5) == "0.5"
    assert encode_scalar("price asc") == "price asc"


def test_lists_repeat_their_key():
    pairs = encode_select_params({"q": "gpu", "fq": ["a:1", "b:2"], "facet.field": ["brand_s"]})
    assert pairs == [
        ("q", "gpu"),
        ("fq", "a:1"),
        ("fq", "b:2"),
        ("facet.field", "brand_s"),
        ("wt", "json"),
    ]


def test_wt_is_always_json_and_last():
    pairs = encode_select_params({"wt": "xml", "rows": 10, "facet": True})
    assert pairs == [("rows", "10"), ("facet", "true"), ("wt", "json")]


def test_nested_maps_are_flattened_and_none_dropped():
    pairs = encode_select_params({"q": "*:*", "extra": {"hl": True, "hl.fl": "title_txt"}, "sort": None})
    assert pairs == [("q", "*:*"), ("hl", "true"), ("hl.fl", "title_txt"), ("wt", "json")]

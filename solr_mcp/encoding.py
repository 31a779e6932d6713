"""Wire encoders for the two Solr request formats.

``/select`` takes form-encoded pairs; ``/query`` takes a JSON body. The keyword compiler
produces a map of ``ParamValue`` entries and this module turns it into form pairs.
"""

from __future__ import annotations

from typing import Any

__all__ = ["encode_scalar", "encode_select_params"]


def encode_scalar(value: Any) -> str:
    """Render one scalar parameter value the way Solr expects it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    return str(value)


def encode_select_params(params: dict[str, Any]) -> list[tuple[str, str]]:
    """Flatten a parameter map into ordered form pairs, forcing ``wt=json``.

    Lists repeat their key; nested maps contribute their own keys.
    """
    pairs: list[tuple[str, str]] = []

    def add(key: str, value: Any) -> None:
        if value is None:
            return
        if isinstance(value, (list, tuple)):
            pairs.extend((key, encode_scalar(v)) for v in value if v is not None)
        elif isinstance(value, dict):
            for sub_key, sub_value in value.items():
                add(sub_key, sub_value)
        else:
            pairs.append((key, encode_scalar(value)))

    for key, value in params.items():
        if key == "wt":
            continue
        add(key, value)
    pairs.append(("wt", "json"))
    return pairs

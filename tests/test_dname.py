"""Tests for dname.py — comma escaping + distinguished name rendering."""

import pytest

from genkey.dname import DistinguishedName, DnameParam, decode, encode


def test_encode_no_comma_returns_same_object():
    s = "Jane Doe"
    assert encode(s) is s


def test_encode_empty():
    assert encode("") == ""


def test_encode_single_comma():
    assert encode("Example, Inc") == "Example\\, Inc"


def test_encode_edges_and_consecutive():
    assert encode(",a,,b,") == "\\,a\\,\\,b\\,"


def test_encode_leaves_no_unescaped_comma():
    out = encode(",,x,")
    for idx, char in enumerate(out):
        if char == ",":
            assert out[idx - 1] == "\\"


@pytest.mark.parametrize(
    "s",
    ["", "plain", ",", ",lead", "trail,", "a,,b", ",,,", "x, y, z"]
    + ["a\\,b", "x\\", "\\", "\\,\\,", "end\\,"],
)
def test_decode_inverts_encode(s):
    assert decode(encode(s)) == s


def test_render_example():
    dn = DistinguishedName.of(("CN", "Jane Doe"), ("O", "Example, Inc"))
    assert dn.render() == "CN=Jane Doe ,O=Example\\, Inc"
    assert str(dn) == dn.render()


def test_render_escapes_names_too():
    assert DnameParam("A,B", "c").render() == "A\\,B=c"


def test_render_empty_value_kept():
    assert DistinguishedName.of(("OU", "")).render() == "OU="


def test_render_empty_set():
    assert DistinguishedName().render() == ""


def test_order_preserved():
    dn = DistinguishedName.of(("O", "x"), ("CN", "y"), ("C", "US"))
    assert [p.name for p in dn] == ["O", "CN", "C"]


def test_params_are_immutable():
    param = DnameParam("CN", "a")
    with pytest.raises(AttributeError):
        param.value = "b"


def test_parse_rendered():
    text = "CN=Jane Doe ,O=Example\\, Inc"
    dn = DistinguishedName.parse(text)
    assert dn == DistinguishedName.of(("CN", "Jane Doe"), ("O", "Example, Inc"))
    assert dn.render() == text


def test_parse_hand_written():
    dn = DistinguishedName.parse("CN=Jane, O=Acme, C=US")
    assert [(p.name, p.value) for p in dn] == [("CN", "Jane"), ("O", "Acme"), ("C", "US")]


def test_parse_entry_without_value():
    dn = DistinguishedName.parse("CN")
    assert dn == DistinguishedName.of(("CN", ""))


def test_parse_blank():
    assert len(DistinguishedName.parse("   ")) == 0

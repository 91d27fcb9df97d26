import pytest

from image_converter.gravity import Gravity


def test_nine_anchors():
    assert {g.value for g in Gravity} == {
        "center",
        "north",
        "northeast",
        "east",
        "southeast",
        "south",
        "southwest",
        "west",
        "northwest",
    }


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("NorthEast", Gravity.NORTHEAST),
        ("top", Gravity.NORTH),
        ("bottom-left", Gravity.SOUTHWEST),
        ("right_top", Gravity.NORTHEAST),
        ("centre", Gravity.CENTER),
        ("south east", Gravity.SOUTHEAST),
    ],
)
def test_parse_aliases(raw, expected):
    assert Gravity.parse(raw) is expected


def test_parse_empty_uses_default():
    assert Gravity.parse(None) is Gravity.CENTER
    assert Gravity.parse("", default=Gravity.WEST) is Gravity.WEST


def test_parse_unknown():
    with pytest.raises(ValueError):
        Gravity.parse("up")

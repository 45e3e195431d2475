import pytest

from cctracker.datatypes.discord_datatypes import ChannelID, GuildID, RoleID


def test_snowflake_from_int_and_str_and_equality_and_hash():
    c1 = ChannelID(12345)
    assert c1.to_int() == 12345
    assert str(c1) == "12345"

    c2 = ChannelID(" 12345 ")
    assert c1 == c2
    assert hash(c1) == hash(c2)
    assert c1 == 12345
    assert c1 == "12345"
    assert repr(c1) == "ChannelID('12345')"


def test_copy_constructor_and_distinct_types():
    g = GuildID(1)
    assert GuildID(g) == g
    assert (GuildID(1) == ChannelID(1)) is False


@pytest.mark.parametrize("bad", [True, 1.5, None, "abc"])
def test_invalid_values_raise(bad):
    with pytest.raises(ValueError):
        ChannelID(bad)


def test_role_mention():
    assert RoleID(555).mention == "<@&555>"


def test_usable_as_dict_keys():
    seen = {ChannelID(1): "a"}
    assert ChannelID("1") in seen

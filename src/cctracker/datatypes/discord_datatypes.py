"""
Type-safe wrapper classes for Discord identifiers.

Discord snowflakes are 64-bit integers but are often stored or transmitted as
strings. These wrappers give guilds, channels and roles distinct types so a
channel id cannot be passed where a role id is expected.
"""

from __future__ import annotations

from typing import Union


class _Snowflake:
    """
    Shared behaviour for snowflake wrappers.

    The value is stored as a normalized decimal string; equality accepts the
    same wrapper type, a str, or an int.

    Example:
        >>> cid = ChannelID(123456789012345678)
        >>> cid.to_int()
        123456789012345678
        >>> ChannelID(" 42 ") == 42
        True
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "_Snowflake"]) -> None:
        """
        Args:
            value: The snowflake ID as a string, int, or wrapper of the same type.

        Raises:
            ValueError: If the value cannot be converted to a valid snowflake.
        """
        if isinstance(value, type(self)):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool")
        elif isinstance(value, int):
            self._value = str(value)
        elif isinstance(value, str):
            self._value = str(int(value.strip()))
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    def to_int(self) -> int:
        """Convert to an integer for Discord API calls."""
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, type(self)):
            return self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class GuildID(_Snowflake):
    """Type-safe wrapper for Discord guild (server) snowflake IDs."""

    __slots__ = ()


class ChannelID(_Snowflake):
    """Type-safe wrapper for Discord channel and thread snowflake IDs."""

    __slots__ = ()


class RoleID(_Snowflake):
    """Type-safe wrapper for Discord role snowflake IDs."""

    __slots__ = ()

    @property
    def mention(self) -> str:
        """Role mention markup, e.g. ``<@&123>``."""
        return f"<@&{self._value}>"

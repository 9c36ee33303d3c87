"""Pure helpers behind the group administration commands."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime

MAX_BAN_MINUTES = 43199
MAX_CARD_BYTES = 60
MAX_TITLE_BYTES = 18

VERIFY_FLAG = 0x1
GIST_FLAG = 0x10

_DATA_MASK = 0x7FFFFFFF_FFFFFFFF
_ENABLE_WORDS = frozenset({"开启", "打开", "启用"})
_DISABLE_WORDS = frozenset({"关闭", "关掉", "禁用"})

_BAN_UNITS = {"分钟": 1, "小时": 60, "天": 60 * 24}
_SELF_BAN_UNITS = {
    **{word: 1 for word in ("分钟", "min", "mins", "m")},
    **{word: 60 for word in ("小时", "hour", "hours", "h")},
    **{word: 60 * 24 for word in ("天", "day", "days", "d")},
}

_TIME_FORMAT = "%Y/%m/%d %H:%M:%S"


def _capped(minutes: int) -> int:
    # A ban may last at most just under one month.
    return MAX_BAN_MINUTES if minutes >= MAX_BAN_MINUTES + 1 else minutes


def ban_minutes(amount: int, unit: str) -> int:
    """Length in minutes of a ban given by an admin; unknown units mean minutes."""
    return _capped(amount * _BAN_UNITS.get(unit, 1))


def self_ban_minutes(amount: int, unit: str) -> int:
    """Length in minutes of a ban a member asks for; English units are accepted too."""
    return _capped(amount * _SELF_BAN_UNITS.get(unit, 1))


def unescape_forward(content: str) -> str:
    """Undo the bracket escaping of CQ codes in a message to forward."""
    return content.replace("&#91;", "[").replace("&#93;", "]")


def toggle_flag(data: int, option: str, flag: int) -> int:
    """Set or clear ``flag`` in a group's plugin data according to ``option``.

    Raises ValueError when ``option`` is neither an enabling nor a disabling word.
    """
    if option in _ENABLE_WORDS:
        return data | flag
    if option in _DISABLE_WORDS:
        return data & (_DATA_MASK ^ flag)
    raise ValueError(f"unknown option: {option}")


def _format_time(value: object) -> str:
    return datetime.fromtimestamp(int(value)).strftime(_TIME_FORMAT)  # type: ignore[arg-type]


def format_essence(info: Mapping[str, object]) -> str:
    """Describe one entry of a group's essence message list."""
    return (
        f"信息ID: {int(info.get('message_id', 0))}\n"  # type: ignore[arg-type]
        f"发送者昵称: {info.get('sender_nick', '')}\n"
        f"发送者QQ 号: {int(info.get('sender_id', 0))}\n"  # type: ignore[arg-type]
        f"消息发送时间: {_format_time(info.get('sender_time', 0))}\n"
        f"操作者昵称: {info.get('operator_nick', '')}\n"
        f"操作者QQ 号: {int(info.get('operator_id', 0))}\n"  # type: ignore[arg-type]
        f"精华设置时间: {_format_time(info.get('operator_time', 0))}"
    )


def check_card_length(card: str) -> str:
    """Return ``card`` if it fits a group card, else raise ValueError."""
    if len(card.encode("utf-8")) > MAX_CARD_BYTES:
        raise ValueError("名字太长啦！")
    return card


def check_title_length(title: str) -> str:
    """Return ``title`` if it fits a special title, else raise ValueError."""
    if len(title.encode("utf-8")) > MAX_TITLE_BYTES:
        raise ValueError("头衔太长啦！")
    return title
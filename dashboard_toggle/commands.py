from __future__ import annotations

import enum


class Command(enum.Enum):
    START = "start"
    STOP = "stop"
    STATUS = "status"
    UNRECOGNIZED = "unrecognized"


_COMMANDS = {
    "start": Command.START,
    "stop": Command.STOP,
    "status": Command.STATUS,
}

MSG_ACTIVE = "稼働しています"
MSG_INACTIVE = "停止しています"
MSG_HELP = "stop, start, status を指定してください"
MSG_ALREADY_RUNNING = "既に稼働しています"
MSG_STARTED = "稼働を開始しました"
MSG_START_FAILED = "稼働の開始に失敗しました"
MSG_ALREADY_STOPPED = "既に停止しています"
MSG_STOPPED = "停止しました"
MSG_STOP_FAILED = "停止に失敗しました"


def command_token(text: str) -> str:
    """
    The command is the last of the first two whitespace-separated tokens, so both
    "status" and "<@U123> status" resolve to "status".
    """
    tokens = str(text or "").split()[:2]
    return tokens[-1] if tokens else ""


def parse_command(text: str) -> Command:
    return _COMMANDS.get(command_token(text), Command.UNRECOGNIZED)

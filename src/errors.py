class LuvoraError(Exception):
    """插件内所有业务异常的基类"""


class PoolFormatError(LuvoraError):
    """消息池文件缺失、JSON 损坏或记录字段非法"""


class EmptyCandidatePoolError(LuvoraError):
    """某个时段在给定对象下没有任何可选消息"""

    def __init__(self, slot: str, target: str, detail: str = ""):
        self.slot = slot
        self.target = target
        message = f"No eligible messages for slot={slot!r} target={target!r}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class InvalidDateError(LuvoraError):
    """无法解析的日期输入，不会静默回退到今天"""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid date: {value!r}")

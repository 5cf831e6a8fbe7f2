"""
通用类型：节点属性中使用的枚举
所有枚举按整数值序列化，与设备端的属性结构保持一致
"""

from enum import IntEnum
from typing import Any, Dict, Tuple, Type, TypeVar


E = TypeVar("E", bound=IntEnum)


class ProcessorType(IntEnum):
    """设备处理器类型"""
    LEON_CSS = 0
    LEON_MSS = 1


class CameraBoardSocket(IntEnum):
    """相机板载接口"""
    AUTO = -1
    RGB = 0
    LEFT = 1
    RIGHT = 2


class MedianFilter(IntEnum):
    """视差中值滤波核大小"""
    MEDIAN_OFF = 0
    KERNEL_3x3 = 3
    KERNEL_5x5 = 5
    KERNEL_7x7 = 7


class DepthAlign(IntEnum):
    """深度图对齐方式"""
    RECTIFIED_RIGHT = 0
    RECTIFIED_LEFT = 1
    CENTER = 2


class SensorResolution(IntEnum):
    """黑白相机传感器分辨率"""
    THE_720_P = 0
    THE_800_P = 1
    THE_400_P = 2

    @property
    def size(self) -> Tuple[int, int]:
        """分辨率 (宽, 高)"""
        return _RESOLUTION_SIZES[self]


_RESOLUTION_SIZES: Dict[SensorResolution, Tuple[int, int]] = {
    SensorResolution.THE_720_P: (1280, 720),
    SensorResolution.THE_800_P: (1280, 800),
    SensorResolution.THE_400_P: (640, 400),
}


def parse_enum(enum_cls: Type[E], value: Any) -> E:
    """
    将成员、名称或整数值转换为枚举成员

    Args:
        enum_cls: 枚举类型
        value: 枚举成员、名称字符串（不区分大小写）或整数值

    Returns:
        枚举成员
    """
    if isinstance(value, enum_cls):
        return value

    if isinstance(value, str):
        for member in enum_cls:
            if member.name.lower() == value.strip().lower():
                return member
        raise ValueError(f"{enum_cls.__name__}不支持的名称: {value}")

    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return enum_cls(value)
        except ValueError:
            raise ValueError(f"{enum_cls.__name__}不支持的值: {value}")

    raise ValueError(f"无法转换为{enum_cls.__name__}: {value!r}")

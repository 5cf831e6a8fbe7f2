"""
视差预览工具：视差帧的归一化着色，以及离线运行用的仿真视差帧
"""

import time
from typing import Optional, Tuple

import cv2
import numpy as np

from .core.datatypes import ImgFrame
from .core.types import CameraBoardSocket


def disparity_multiplier(max_disparity: int) -> float:
    """视差值映射到0..255的倍率"""
    if max_disparity <= 0:
        raise ValueError(f"最大视差必须大于0: {max_disparity}")
    return 255.0 / max_disparity


def normalize_disparity(disparity: np.ndarray, max_disparity: int) -> np.ndarray:
    """
    将视差图归一化为8位灰度图

    Args:
        disparity: 视差图 (H, W)，uint8或uint16
        max_disparity: 最大视差值

    Returns:
        (H, W) uint8
    """
    return cv2.convertScaleAbs(disparity, alpha=disparity_multiplier(max_disparity))


def colorize_disparity(
    disparity: np.ndarray,
    max_disparity: int,
    colormap: int = cv2.COLORMAP_JET
) -> np.ndarray:
    """
    视差图着色

    Returns:
        (H, W, 3) BGR图像
    """
    return cv2.applyColorMap(normalize_disparity(disparity, max_disparity), colormap)


def generate_disparity_frame(
    size: Tuple[int, int] = (640, 400),
    max_disparity: int = 95,
    sequence_num: int = 0,
    timestamp: Optional[float] = None
) -> ImgFrame:
    """
    生成仿真视差帧（渐变背景 + 近处圆形物体）

    Args:
        size: (宽, 高)
        max_disparity: 最大视差，超过255时输出RAW16
        sequence_num: 序列号
        timestamp: 时间戳，默认当前时间

    Returns:
        视差ImgFrame
    """
    width, height = size
    x = np.linspace(0, 1, width)
    y = np.linspace(0, 1, height)
    X, Y = np.meshgrid(x, y)

    # 背景随高度变近，圆形物体位置随序列号移动
    base = 0.2 + 0.3 * Y
    center_x = 0.3 + 0.4 * ((sequence_num % 20) / 20.0)
    circle_mask = ((X - center_x) ** 2 + (Y - 0.5) ** 2) < 0.15 ** 2
    base[circle_mask] = 0.9

    disparity = np.clip(base * max_disparity, 0, max_disparity)
    frame_type = ImgFrame.Type.RAW8 if max_disparity <= 255 else ImgFrame.Type.RAW16

    frame = ImgFrame(
        frame_type=frame_type,
        sequence_num=sequence_num,
        timestamp=time.monotonic() if timestamp is None else timestamp,
        instance_num=int(CameraBoardSocket.RIGHT)
    )
    frame.set_frame(disparity)
    return frame

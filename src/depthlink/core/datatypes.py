"""
消息数据模型：设备与主机之间传输的消息类型
包含数据类型层级、原始Buffer、图像帧和相机控制消息
"""

import numpy as np
import cv2
from typing import Dict, Any, Optional, Union, List
from dataclasses import dataclass, field
from enum import Enum


class DatatypeEnum(Enum):
    """消息数据类型枚举"""
    ADatatype = "ADatatype"
    Buffer = "Buffer"
    ImgFrame = "ImgFrame"
    CameraControl = "CameraControl"


# 子类型 -> 父类型
_DATATYPE_PARENT: Dict[DatatypeEnum, Optional[DatatypeEnum]] = {
    DatatypeEnum.ADatatype: None,
    DatatypeEnum.Buffer: DatatypeEnum.ADatatype,
    DatatypeEnum.ImgFrame: DatatypeEnum.Buffer,
    DatatypeEnum.CameraControl: DatatypeEnum.Buffer,
}


def is_datatype_subclass_of(parent: DatatypeEnum, child: DatatypeEnum) -> bool:
    """
    检查child是否等于parent或是其后代类型

    Args:
        parent: 父类型
        child: 待检查类型

    Returns:
        是否为子类型
    """
    current: Optional[DatatypeEnum] = child
    while current is not None:
        if current == parent:
            return True
        current = _DATATYPE_PARENT[current]
    return False


@dataclass
class DatatypeHierarchy:
    """端口可接受的数据类型"""
    datatype: DatatypeEnum
    descendants: bool = True

    def accepts(self, datatype: DatatypeEnum) -> bool:
        """是否接受指定类型"""
        if self.descendants:
            return is_datatype_subclass_of(self.datatype, datatype)
        return self.datatype == datatype


class Buffer:
    """原始数据消息"""

    datatype = DatatypeEnum.Buffer

    def __init__(self, data: Union[bytes, bytearray, np.ndarray, None] = None):
        self._data = np.zeros(0, dtype=np.uint8)
        if data is not None:
            self.set_data(data)

    def get_data(self) -> np.ndarray:
        """获取数据（uint8一维数组）"""
        return self._data

    def set_data(self, data: Union[bytes, bytearray, np.ndarray]):
        """设置数据"""
        if isinstance(data, np.ndarray):
            self._data = np.ascontiguousarray(data).reshape(-1).view(np.uint8)
        else:
            self._data = np.frombuffer(bytes(data), dtype=np.uint8).copy()

    @property
    def nbytes(self) -> int:
        """数据字节数"""
        return int(self._data.nbytes)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(size={self.nbytes})"


class ImgFrame(Buffer):
    """图像帧消息"""

    datatype = DatatypeEnum.ImgFrame

    class Type(Enum):
        """图像帧像素格式"""
        RAW8 = "RAW8"
        RAW16 = "RAW16"
        GRAY8 = "GRAY8"
        BGR888p = "BGR888p"
        BGR888i = "BGR888i"
        NV12 = "NV12"

    def __init__(
        self,
        data: Union[bytes, bytearray, np.ndarray, None] = None,
        frame_type: "ImgFrame.Type" = Type.RAW8,
        width: int = 0,
        height: int = 0,
        sequence_num: int = 0,
        timestamp: float = 0.0,
        instance_num: int = 0
    ):
        """
        初始化ImgFrame

        Args:
            data: 原始像素数据
            frame_type: 像素格式
            width: 图像宽度
            height: 图像高度
            sequence_num: 序列号
            timestamp: 设备时间戳（秒）
            instance_num: 来源相机接口
        """
        super().__init__(data)
        self.type = frame_type
        self.width = width
        self.height = height
        self.sequence_num = sequence_num
        self.timestamp = timestamp
        self.instance_num = instance_num

    def _expected_size(self) -> int:
        """按格式计算期望字节数"""
        pixels = self.width * self.height
        if self.type in (ImgFrame.Type.RAW8, ImgFrame.Type.GRAY8):
            return pixels
        if self.type == ImgFrame.Type.RAW16:
            return pixels * 2
        if self.type in (ImgFrame.Type.BGR888p, ImgFrame.Type.BGR888i):
            return pixels * 3
        if self.type == ImgFrame.Type.NV12:
            return pixels * 3 // 2
        raise ValueError(f"不支持的图像格式: {self.type}")

    def get_frame(self) -> np.ndarray:
        """
        按像素格式将数据整形为numpy数组

        Returns:
            RAW8/GRAY8为(H, W)，RAW16为(H, W) uint16，BGR888p为(3, H, W)，
            BGR888i为(H, W, 3)，NV12为(H*3/2, W)
        """
        expected = self._expected_size()
        if self.nbytes != expected:
            raise ValueError(f"数据大小{self.nbytes}与格式{self.type.value} "
                             f"{self.width}x{self.height}不符，期望{expected}")

        h, w = self.height, self.width
        if self.type in (ImgFrame.Type.RAW8, ImgFrame.Type.GRAY8):
            return self._data.reshape(h, w)
        if self.type == ImgFrame.Type.RAW16:
            return self._data.view(np.uint16).reshape(h, w)
        if self.type == ImgFrame.Type.BGR888p:
            return self._data.reshape(3, h, w)
        if self.type == ImgFrame.Type.BGR888i:
            return self._data.reshape(h, w, 3)
        return self._data.reshape(h * 3 // 2, w)

    def get_cv_frame(self) -> np.ndarray:
        """获取可直接用于OpenCV的图像"""
        frame = self.get_frame()
        if self.type == ImgFrame.Type.BGR888p:
            return np.ascontiguousarray(frame.transpose(1, 2, 0))
        if self.type == ImgFrame.Type.NV12:
            return cv2.cvtColor(frame, cv2.COLOR_YUV2BGR_NV12)
        return frame

    def set_frame(self, frame: np.ndarray):
        """
        设置图像数据并推断尺寸

        Args:
            frame: (H, W)、(H, W, 3) 或 BGR888p 的 (3, H, W) 数组
        """
        frame = np.asarray(frame)
        if frame.ndim not in [2, 3]:
            raise ValueError(f"数据维度必须是2或3，当前为{frame.ndim}")

        if self.type == ImgFrame.Type.BGR888p:
            _, self.height, self.width = frame.shape
        elif self.type == ImgFrame.Type.NV12:
            self.height, self.width = frame.shape[0] * 2 // 3, frame.shape[1]
        else:
            self.height, self.width = frame.shape[:2]

        if self.type == ImgFrame.Type.RAW16:
            frame = frame.astype(np.uint16)
        else:
            frame = frame.astype(np.uint8)
        self.set_data(frame)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式（不含像素数据）"""
        return {
            "type": self.type.value,
            "width": self.width,
            "height": self.height,
            "sequenceNum": self.sequence_num,
            "timestamp": self.timestamp,
            "instanceNum": self.instance_num,
            "size": self.nbytes
        }

    def __repr__(self) -> str:
        return (f"ImgFrame(type={self.type.value}, size={self.width}x{self.height}, "
                f"seq={self.sequence_num}, timestamp={self.timestamp:.3f}s)")


@dataclass
class CameraControl(Buffer):
    """相机控制消息"""
    capture_still: bool = False
    auto_exposure: bool = True
    exposure_time_us: Optional[int] = None
    sensitivity_iso: Optional[int] = None
    manual_focus: Optional[int] = None
    commands: List[str] = field(default_factory=list)

    datatype = DatatypeEnum.CameraControl

    def __post_init__(self):
        super().__init__()

    def set_capture_still(self, capture: bool):
        """请求拍摄静态图像"""
        self.capture_still = capture
        self.commands.append("captureStill")

    def set_manual_exposure(self, exposure_time_us: int, sensitivity_iso: int):
        """设置手动曝光"""
        if exposure_time_us <= 0:
            raise ValueError("曝光时间必须大于0")
        if sensitivity_iso < 100 or sensitivity_iso > 1600:
            raise ValueError(f"ISO超出范围[100, 1600]: {sensitivity_iso}")
        self.auto_exposure = False
        self.exposure_time_us = exposure_time_us
        self.sensitivity_iso = sensitivity_iso
        self.commands.append("manualExposure")

    def set_auto_exposure_enable(self):
        """启用自动曝光"""
        self.auto_exposure = True
        self.exposure_time_us = None
        self.sensitivity_iso = None
        self.commands.append("autoExposure")

    def set_manual_focus(self, lens_position: int):
        """设置手动对焦位置（0..255）"""
        if not 0 <= lens_position <= 255:
            raise ValueError(f"对焦位置超出范围[0, 255]: {lens_position}")
        self.manual_focus = lens_position
        self.commands.append("manualFocus")

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "captureStill": self.capture_still,
            "autoExposure": self.auto_exposure,
            "exposureTimeUs": self.exposure_time_us,
            "sensitivityIso": self.sensitivity_iso,
            "manualFocus": self.manual_focus,
            "commands": list(self.commands)
        }

"""
XLinkOut节点：设备 -> 主机的数据流出口
"""

from dataclasses import dataclass
from typing import Dict, Any, List

from ...core.datatypes import DatatypeEnum
from ...core.node import Node, Input, Output, InputType


@dataclass
class XLinkOutProperties:
    """XLinkOut属性"""
    stream_name: str = ""
    max_fps_limit: float = -1  # -1 不限制
    metadata_only: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "streamName": self.stream_name,
            "maxFpsLimit": self.max_fps_limit,
            "metadataOnly": self.metadata_only,
        }


class XLinkOut(Node):
    """主机输出流节点"""

    def __init__(self, pipeline, node_id: int):
        super().__init__(pipeline, node_id)
        self.input = Input(self, "in", InputType.SReceiver, True, 8, [(DatatypeEnum.Buffer, True)])

    def _default_properties(self) -> XLinkOutProperties:
        return XLinkOutProperties()

    def get_name(self) -> str:
        return "XLinkOut"

    def get_inputs(self) -> List[Input]:
        return [self.input]

    def get_outputs(self) -> List[Output]:
        return []

    def set_stream_name(self, name: str):
        self.properties.stream_name = name

    def get_stream_name(self) -> str:
        return self.properties.stream_name

    def set_fps_limit(self, fps: float):
        """限制发送帧率，-1表示不限制"""
        if fps <= 0 and fps != -1:
            raise ValueError(f"帧率限制必须大于0或为-1: {fps}")
        self.properties.max_fps_limit = fps

    def get_fps_limit(self) -> float:
        return self.properties.max_fps_limit

    def set_metadata_only(self, metadata_only: bool):
        """只发送元数据，不发送像素数据"""
        self.properties.metadata_only = bool(metadata_only)

    def get_metadata_only(self) -> bool:
        return self.properties.metadata_only

    def validate(self) -> List[str]:
        if not self.properties.stream_name:
            return ["未设置流名"]
        return []

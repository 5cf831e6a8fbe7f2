"""
XLinkIn节点：主机 -> 设备的数据流入口
"""

from dataclasses import dataclass
from typing import Dict, Any, List

from ...core.datatypes import DatatypeEnum
from ...core.node import Node, Input, Output, OutputType


@dataclass
class XLinkInProperties:
    """XLinkIn属性"""
    stream_name: str = ""
    max_data_size: int = 5 * 1024 * 1024
    num_frames: int = 8

    def to_dict(self) -> Dict[str, Any]:
        return {
            "streamName": self.stream_name,
            "maxDataSize": self.max_data_size,
            "numFrames": self.num_frames,
        }


class XLinkIn(Node):
    """主机输入流节点"""

    def __init__(self, pipeline, node_id: int):
        super().__init__(pipeline, node_id)
        self.out = Output(self, "out", OutputType.MSender, [(DatatypeEnum.Buffer, True)])

    def _default_properties(self) -> XLinkInProperties:
        return XLinkInProperties()

    def get_name(self) -> str:
        return "XLinkIn"

    def get_inputs(self) -> List[Input]:
        return []

    def get_outputs(self) -> List[Output]:
        return [self.out]

    def set_stream_name(self, name: str):
        self.properties.stream_name = name

    def get_stream_name(self) -> str:
        return self.properties.stream_name

    def set_max_data_size(self, max_data_size: int):
        """设置单条消息的最大字节数"""
        if max_data_size <= 0:
            raise ValueError(f"最大数据大小必须大于0: {max_data_size}")
        self.properties.max_data_size = max_data_size

    def get_max_data_size(self) -> int:
        return self.properties.max_data_size

    def set_num_frames(self, num_frames: int):
        """设置设备端缓冲帧数"""
        if num_frames <= 0:
            raise ValueError(f"缓冲帧数必须大于0: {num_frames}")
        self.properties.num_frames = num_frames

    def get_num_frames(self) -> int:
        return self.properties.num_frames

    def validate(self) -> List[str]:
        if not self.properties.stream_name:
            return ["未设置流名"]
        return []

"""
MonoCamera节点：板载黑白相机输入
"""

from dataclasses import dataclass
from typing import Dict, Any, List, Tuple, Union

from ...core.datatypes import DatatypeEnum
from ...core.node import Node, Input, Output, InputType, OutputType
from ...core.types import CameraBoardSocket, SensorResolution, parse_enum


@dataclass
class MonoCameraProperties:
    """MonoCamera属性"""
    board_socket: CameraBoardSocket = CameraBoardSocket.AUTO
    resolution: SensorResolution = SensorResolution.THE_720_P
    fps: float = 30.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "boardSocket": int(self.board_socket),
            "resolution": int(self.resolution),
            "fps": self.fps,
        }


class MonoCamera(Node):
    """黑白相机节点"""

    def __init__(self, pipeline, node_id: int):
        super().__init__(pipeline, node_id)

        self.input_control = Input(self, "inputControl", InputType.SReceiver, False, 8,
                                   [(DatatypeEnum.CameraControl, False)])

        self.out = Output(self, "out", OutputType.MSender, [(DatatypeEnum.ImgFrame, False)])
        self.raw = Output(self, "raw", OutputType.MSender, [(DatatypeEnum.ImgFrame, False)])

    def _default_properties(self) -> MonoCameraProperties:
        return MonoCameraProperties()

    def get_name(self) -> str:
        return "MonoCamera"

    def get_inputs(self) -> List[Input]:
        return [self.input_control]

    def get_outputs(self) -> List[Output]:
        return [self.out, self.raw]

    def set_board_socket(self, socket: Union[CameraBoardSocket, str, int]):
        """设置相机接口"""
        self.properties.board_socket = parse_enum(CameraBoardSocket, socket)

    def get_board_socket(self) -> CameraBoardSocket:
        return self.properties.board_socket

    def set_resolution(self, resolution: Union[SensorResolution, str, int]):
        """设置传感器分辨率"""
        self.properties.resolution = parse_enum(SensorResolution, resolution)

    def get_resolution(self) -> SensorResolution:
        return self.properties.resolution

    def set_fps(self, fps: float):
        """设置帧率"""
        if fps <= 0:
            raise ValueError(f"帧率必须大于0: {fps}")
        self.properties.fps = float(fps)

    def get_fps(self) -> float:
        return self.properties.fps

    def get_resolution_size(self) -> Tuple[int, int]:
        """分辨率 (宽, 高)"""
        return self.properties.resolution.size

    def get_resolution_width(self) -> int:
        return self.get_resolution_size()[0]

    def get_resolution_height(self) -> int:
        return self.get_resolution_size()[1]

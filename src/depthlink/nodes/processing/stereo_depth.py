"""
StereoDepth节点：由左右黑白图像在设备上计算视差与深度
主机端只负责属性配置、标定数据与校正网格资源的打包
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional, List, Union

from ...core.datatypes import DatatypeEnum
from ...core.node import Node, Input, Output, InputType, OutputType
from ...core.types import CameraBoardSocket, DepthAlign, MedianFilter, parse_enum


logger = logging.getLogger(__name__)

# 普通模式下的视差范围 0..95
BASE_MAX_DISPARITY = 95


@dataclass
class MeshProperties:
    """校正网格属性"""
    mesh_left_uri: str = ""
    mesh_right_uri: str = ""
    mesh_size: Optional[int] = None
    step_width: int = 16
    step_height: int = 16

    def to_dict(self) -> Dict[str, Any]:
        return {
            "meshLeftUri": self.mesh_left_uri,
            "meshRightUri": self.mesh_right_uri,
            "meshSize": self.mesh_size,
            "stepWidth": self.step_width,
            "stepHeight": self.step_height,
        }


@dataclass
class StereoDepthProperties:
    """StereoDepth属性"""
    calibration: List[int] = field(default_factory=list)  # 空表示使用设备EEPROM中的标定
    mesh: MeshProperties = field(default_factory=MeshProperties)
    median: MedianFilter = MedianFilter.KERNEL_5x5
    depth_align: DepthAlign = DepthAlign.RECTIFIED_RIGHT
    depth_align_camera: CameraBoardSocket = CameraBoardSocket.AUTO
    confidence_threshold: int = 200
    enable_left_right_check: bool = False
    enable_subpixel: bool = False
    enable_extended_disparity: bool = False
    rectify_mirror_frame: bool = True
    rectify_edge_fill_color: int = -1
    width: Optional[int] = None
    height: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "calibration": list(self.calibration),
            "mesh": self.mesh.to_dict(),
            "median": int(self.median),
            "depthAlign": int(self.depth_align),
            "depthAlignCamera": int(self.depth_align_camera),
            "confidenceThreshold": self.confidence_threshold,
            "enableLeftRightCheck": self.enable_left_right_check,
            "enableSubpixel": self.enable_subpixel,
            "enableExtendedDisparity": self.enable_extended_disparity,
            "rectifyMirrorFrame": self.rectify_mirror_frame,
            "rectifyEdgeFillColor": self.rectify_edge_fill_color,
            "width": self.width,
            "height": self.height,
        }


def _read_file(path: Union[str, Path]) -> bytes:
    with open(path, "rb") as f:
        return f.read()


class StereoDepth(Node):
    """双目深度节点"""

    def __init__(self, pipeline, node_id: int):
        super().__init__(pipeline, node_id)

        frame_types = [(DatatypeEnum.ImgFrame, False)]

        # 输入端口
        self.left = Input(self, "left", InputType.SReceiver, False, 8, frame_types)
        self.right = Input(self, "right", InputType.SReceiver, False, 8, frame_types)

        # 输出端口
        self.disparity = Output(self, "disparity", OutputType.MSender, frame_types)
        self.depth = Output(self, "depth", OutputType.MSender, frame_types)
        self.synced_left = Output(self, "syncedLeft", OutputType.MSender, frame_types)
        self.synced_right = Output(self, "syncedRight", OutputType.MSender, frame_types)
        self.rectified_left = Output(self, "rectifiedLeft", OutputType.MSender, frame_types)
        self.rectified_right = Output(self, "rectifiedRight", OutputType.MSender, frame_types)

    def _default_properties(self) -> StereoDepthProperties:
        return StereoDepthProperties()

    def get_name(self) -> str:
        return "StereoDepth"

    def get_inputs(self) -> List[Input]:
        return [self.left, self.right]

    def get_outputs(self) -> List[Output]:
        return [self.disparity, self.depth, self.synced_left, self.synced_right,
                self.rectified_left, self.rectified_right]

    def load_calibration_data(self, data: Union[bytes, bytearray, List[int]]):
        """
        加载标定数据

        Args:
            data: 标定数据，空数据表示使用设备EEPROM中的标定
        """
        if len(data) == 0:
            self.properties.calibration = []
        else:
            self.properties.calibration = list(bytes(data))

    def load_calibration_file(self, path: Union[str, Path]):
        """从文件加载标定数据，空路径表示使用设备EEPROM中的标定"""
        data = b""
        if path:
            try:
                data = _read_file(path)
            except OSError:
                raise RuntimeError(f"StereoDepth node | Unable to open calibration file: {path}")
        self.load_calibration_data(data)

    def set_empty_calibration(self):
        """使用空标定（单字节0），设备端跳过校正"""
        self.properties.calibration = [0]

    def load_mesh_data(self, data_left: Union[bytes, bytearray], data_right: Union[bytes, bytearray]):
        """
        加载左右校正网格

        Args:
            data_left: 左网格数据
            data_right: 右网格数据
        """
        if len(data_left) != len(data_right):
            raise RuntimeError("StereoDepth | left and right mesh sizes must match")

        mesh = self.properties.mesh

        self.asset_manager.set("meshLeft", bytes(data_left))
        mesh.mesh_left_uri = self.asset_manager.get("meshLeft").get_relative_uri()

        self.asset_manager.set("meshRight", bytes(data_right))
        mesh.mesh_right_uri = self.asset_manager.get("meshRight").get_relative_uri()

        mesh.mesh_size = len(data_right)

    def load_mesh_files(self, path_left: Union[str, Path], path_right: Union[str, Path]):
        """从文件加载左右校正网格"""
        data = []
        for path in (path_left, path_right):
            try:
                data.append(_read_file(path))
            except OSError:
                raise RuntimeError(f"StereoDepth | Cannot open mesh at path: {path}")
        self.load_mesh_data(data[0], data[1])

    def set_mesh_step(self, width: int, height: int):
        """设置网格步长"""
        if width <= 0 or height <= 0:
            raise ValueError(f"网格步长必须大于0: {width}x{height}")
        self.properties.mesh.step_width = width
        self.properties.mesh.step_height = height

    def set_input_resolution(self, width: int, height: int):
        """设置输入分辨率"""
        if width <= 0 or height <= 0:
            raise ValueError("图像尺寸必须大于0")
        self.properties.width = width
        self.properties.height = height

    def set_median_filter(self, median: Union[MedianFilter, str, int]):
        self.properties.median = parse_enum(MedianFilter, median)

    def set_depth_align(self, align: Union[DepthAlign, CameraBoardSocket, str]):
        """
        设置深度对齐

        Args:
            align: DepthAlign按校正图对齐；CameraBoardSocket按指定相机对齐
        """
        if isinstance(align, CameraBoardSocket):
            self.properties.depth_align_camera = align
            return

        if isinstance(align, str) and align.upper() in CameraBoardSocket.__members__:
            self.properties.depth_align_camera = CameraBoardSocket[align.upper()]
            return

        self.properties.depth_align = parse_enum(DepthAlign, align)
        # depthAlignCamera优先级更高，需要复位
        self.properties.depth_align_camera = CameraBoardSocket.AUTO

    def set_confidence_threshold(self, threshold: int):
        """设置置信度阈值（0..255）"""
        if not 0 <= threshold <= 255:
            raise ValueError(f"置信度阈值超出范围[0, 255]: {threshold}")
        self.properties.confidence_threshold = threshold

    def set_left_right_check(self, enable: bool):
        self.properties.enable_left_right_check = bool(enable)

    def set_subpixel(self, enable: bool):
        self.properties.enable_subpixel = bool(enable)

    def set_extended_disparity(self, enable: bool):
        self.properties.enable_extended_disparity = bool(enable)

    def set_rectify_edge_fill_color(self, color: int):
        """设置校正边缘填充灰度，-1表示复制边缘像素"""
        if not -1 <= color <= 255:
            raise ValueError(f"填充颜色超出范围[-1, 255]: {color}")
        self.properties.rectify_edge_fill_color = color

    def set_rectify_mirror_frame(self, enable: bool):
        self.properties.rectify_mirror_frame = bool(enable)

    def set_output_rectified(self, enable: bool):
        logger.warning("set_output_rectified is deprecated. The output is auto-enabled if used")

    def set_output_depth(self, enable: bool):
        logger.warning("set_output_depth is deprecated. The output is auto-enabled if used")

    def get_max_disparity(self) -> int:
        """
        输出视差的最大值，用于主机端归一化

        Returns:
            普通模式95，扩展视差翻倍，亚像素模式再乘32
        """
        max_disparity = BASE_MAX_DISPARITY
        if self.properties.enable_extended_disparity:
            max_disparity *= 2
        if self.properties.enable_subpixel:
            max_disparity *= 32
        return max_disparity

    def validate(self) -> List[str]:
        errors = []
        pipeline = self.get_parent_pipeline()
        for port in self.get_inputs():
            if not pipeline.is_linked(port):
                errors.append(f"输入端口{port.name}未连接")

        mesh = self.properties.mesh
        if bool(mesh.mesh_left_uri) != bool(mesh.mesh_right_uri):
            errors.append("左右校正网格必须同时设置")
        return errors

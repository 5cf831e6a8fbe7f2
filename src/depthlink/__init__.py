"""
depthlink：深度相机加速器的主机端SDK
在主机上构建、检查并序列化节点Pipeline，下发到设备执行，通过队列接收结果
"""

__version__ = "0.1.0"

from .core import (
    Pipeline,
    Device,
    Connection,
    LoopbackConnection,
    DataOutputQueue,
    DataInputQueue,
    Buffer,
    ImgFrame,
    CameraControl,
    DatatypeEnum,
    Asset,
    AssetManager,
    ProcessorType,
    CameraBoardSocket,
    MedianFilter,
    DepthAlign,
    SensorResolution,
    load_config,
    create_pipeline_from_config,
    create_pipeline_from_file,
)
from .nodes import MonoCamera, XLinkIn, StereoDepth, Script, XLinkOut

__all__ = [
    "Pipeline",
    "Device",
    "Connection",
    "LoopbackConnection",
    "DataOutputQueue",
    "DataInputQueue",
    "Buffer",
    "ImgFrame",
    "CameraControl",
    "DatatypeEnum",
    "Asset",
    "AssetManager",
    "ProcessorType",
    "CameraBoardSocket",
    "MedianFilter",
    "DepthAlign",
    "SensorResolution",
    "load_config",
    "create_pipeline_from_config",
    "create_pipeline_from_file",
    "MonoCamera",
    "XLinkIn",
    "StereoDepth",
    "Script",
    "XLinkOut",
]

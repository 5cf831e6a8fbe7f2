"""
核心模块
包含Pipeline、节点基类、消息类型、资源管理、主机队列与设备会话
"""

from .types import ProcessorType, CameraBoardSocket, MedianFilter, DepthAlign, SensorResolution, parse_enum
from .datatypes import DatatypeEnum, DatatypeHierarchy, Buffer, ImgFrame, CameraControl, is_datatype_subclass_of
from .asset import Asset, AssetManager
from .node import Node, Input, Output, InputType, OutputType, PortMap, NodeConnection
from .pipeline import Pipeline, GlobalProperties
from .queue import DataOutputQueue, DataInputQueue
from .connection import Connection, LoopbackConnection
from .device import Device
from .config import load_config, create_pipeline_from_config, create_pipeline_from_file

__all__ = [
    'ProcessorType', 'CameraBoardSocket', 'MedianFilter', 'DepthAlign', 'SensorResolution', 'parse_enum',
    'DatatypeEnum', 'DatatypeHierarchy', 'Buffer', 'ImgFrame', 'CameraControl', 'is_datatype_subclass_of',
    'Asset', 'AssetManager',
    'Node', 'Input', 'Output', 'InputType', 'OutputType', 'PortMap', 'NodeConnection',
    'Pipeline', 'GlobalProperties',
    'DataOutputQueue', 'DataInputQueue',
    'Connection', 'LoopbackConnection',
    'Device',
    'load_config', 'create_pipeline_from_config', 'create_pipeline_from_file'
]

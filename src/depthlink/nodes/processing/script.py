"""
Script节点：在设备处理器上运行用户脚本
输入/输出端口按名称动态创建，脚本本身作为资源随Pipeline下发
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

from ...core.datatypes import DatatypeEnum
from ...core.node import Node, Input, Output, InputType, OutputType, PortMap
from ...core.types import ProcessorType, parse_enum


DEFAULT_SCRIPT_NAME = "<script>"
SCRIPT_ASSET_KEY = "__script"
PORT_GROUP = "io"


@dataclass
class ScriptProperties:
    """Script属性"""
    script_uri: str = ""
    script_name: str = DEFAULT_SCRIPT_NAME
    processor: ProcessorType = ProcessorType.LEON_MSS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scriptUri": self.script_uri,
            "scriptName": self.script_name,
            "processor": int(self.processor),
        }


def _script_input(parent: Node, name: str, group: str) -> Input:
    return Input(parent, name, InputType.SReceiver, True, 8,
                 [(DatatypeEnum.Buffer, True)], group)


def _script_output(parent: Node, name: str, group: str) -> Output:
    return Output(parent, name, OutputType.MSender,
                  [(DatatypeEnum.Buffer, True)], group)


class Script(Node):
    """脚本节点"""

    def __init__(self, pipeline, node_id: int):
        super().__init__(pipeline, node_id)
        self.inputs = PortMap(self, _script_input, group=PORT_GROUP)
        self.outputs = PortMap(self, _script_output, group=PORT_GROUP)
        self._script_path = ""

    def _default_properties(self) -> ScriptProperties:
        return ScriptProperties()

    def get_name(self) -> str:
        return "Script"

    def get_inputs(self) -> List[Input]:
        return self.inputs.values()

    def get_outputs(self) -> List[Output]:
        return self.outputs.values()

    def get_input(self, name: str, group: str = "io") -> Optional[Input]:
        """按名称获取输入端口，不存在时创建；动态端口只在io组中"""
        if group != PORT_GROUP:
            return None
        return self.inputs[name]

    def get_output(self, name: str, group: str = "io") -> Optional[Output]:
        """按名称获取输出端口，不存在时创建"""
        if group != PORT_GROUP:
            return None
        return self.outputs[name]

    def set_script_path(self, path: Union[str, Path]):
        """
        从文件加载脚本

        Args:
            path: 脚本文件路径
        """
        asset = self.asset_manager.set(SCRIPT_ASSET_KEY, Path(path))
        self.properties.script_uri = asset.get_relative_uri()
        self._script_path = str(path)
        self.properties.script_name = str(path)

    def set_script_data(self, script: Union[str, bytes, bytearray], name: str = ""):
        """
        直接设置脚本内容

        Args:
            script: 脚本源码（str）或字节
            name: 脚本名，用于设备端日志，默认"<script>"
        """
        data = script.encode("utf-8") if isinstance(script, str) else bytes(script)
        asset = self.asset_manager.set(SCRIPT_ASSET_KEY, data)
        self.properties.script_uri = asset.get_relative_uri()
        self._script_path = ""
        self.properties.script_name = name if name else DEFAULT_SCRIPT_NAME

    def set_processor(self, processor: Union[ProcessorType, str, int]):
        """设置运行脚本的处理器"""
        self.properties.processor = parse_enum(ProcessorType, processor)

    def get_script_path(self) -> str:
        return self._script_path

    def get_script_name(self) -> str:
        return self.properties.script_name

    def get_processor(self) -> ProcessorType:
        return self.properties.processor

    def get_script_data(self) -> bytes:
        """当前脚本内容"""
        asset = self.asset_manager.get(SCRIPT_ASSET_KEY)
        return asset.data if asset else b""

    def validate(self) -> List[str]:
        if not self.properties.script_uri:
            return ["未设置脚本"]
        return []

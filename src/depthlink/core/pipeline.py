"""
Pipeline：节点有向图的构建、检查与序列化
序列化结果（schema + 资源表 + 资源存储）由Device发送到设备执行
"""

import json
import logging
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Any, Optional, Tuple, Type, TypeVar, Union

from .asset import AssetManager
from .node import Node, Input, Output, NodeConnection


N = TypeVar("N", bound=Node)

ASSET_URI_PREFIX = "asset:"


@dataclass
class GlobalProperties:
    """Pipeline全局属性"""
    pipeline_name: str = "pipeline"
    pipeline_version: str = ""
    leon_css_frequency_hz: float = 700 * 1000 * 1000
    leon_mss_frequency_hz: float = 700 * 1000 * 1000
    xlink_chunk_size: int = -1  # -1 使用设备默认值
    camera_tuning_blob_uri: str = ""
    calib_data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pipelineName": self.pipeline_name,
            "pipelineVersion": self.pipeline_version,
            "leonCssFrequencyHz": self.leon_css_frequency_hz,
            "leonMssFrequencyHz": self.leon_mss_frequency_hz,
            "xlinkChunkSize": self.xlink_chunk_size,
            "cameraTuningBlobUri": self.camera_tuning_blob_uri,
            "calibData": self.calib_data,
        }


class Pipeline:
    """设备Pipeline"""

    def __init__(self, name: str = "pipeline"):
        """
        初始化Pipeline

        Args:
            name: Pipeline名称
        """
        self.name = name

        # 节点管理
        self.nodes: Dict[int, Node] = {}
        self._next_id = 0

        # 连接管理
        self.connections: List[NodeConnection] = []
        self.node_connections: Dict[int, List[NodeConnection]] = defaultdict(list)

        # 全局属性与资源
        self.global_properties = GlobalProperties(pipeline_name=name)
        self.asset_manager = AssetManager()

        # 日志
        self.logger = logging.getLogger(f"Pipeline_{name}")

        # 验证状态
        self._is_validated = False

    def create(self, node_class: Type[N]) -> N:
        """
        创建并添加节点

        Args:
            node_class: 节点类型

        Returns:
            新节点
        """
        node = node_class(self, self._next_id)
        self._next_id += 1
        self.nodes[node.id] = node
        self._is_validated = False

        self.logger.info(f"创建节点: {node.get_name()}[{node.id}]")
        return node

    def remove(self, node: Node) -> bool:
        """
        移除节点及其所有连接

        Args:
            node: 要移除的节点

        Returns:
            是否移除成功
        """
        if self.nodes.get(node.id) is not node:
            self.logger.warning(f"节点{node.id}不属于此Pipeline")
            return False

        for connection in list(self.node_connections.get(node.id, [])):
            self._remove_connection(connection)
        self.node_connections.pop(node.id, None)

        del self.nodes[node.id]
        self._is_validated = False

        self.logger.info(f"移除节点: {node.get_name()}[{node.id}]")
        return True

    def link(self, output: Output, input: Input):
        """
        连接输出端口与输入端口

        Args:
            output: 源节点输出端口
            input: 目标节点输入端口
        """
        if output.parent.get_parent_pipeline() is not self or input.parent.get_parent_pipeline() is not self:
            raise ValueError(f"端口不属于同一个Pipeline: {output} -> {input}")

        for node in (output.parent, input.parent):
            if not self.contains(node):
                raise ValueError(f"节点{node.get_name()}[{node.id}]已从Pipeline移除")

        if not output.can_connect(input):
            raise ValueError(f"端口数据类型不兼容，无法连接: {output} -> {input}")

        connection = NodeConnection(output, input)
        if connection in self.connections:
            raise ValueError(f"连接已存在: {output} -> {input}")

        self.connections.append(connection)
        self.node_connections[connection.output_id].append(connection)
        if connection.input_id != connection.output_id:
            self.node_connections[connection.input_id].append(connection)
        self._is_validated = False

        self.logger.info(f"连接节点: {output.parent.id}:{output.name} -> {input.parent.id}:{input.name}")

    def unlink(self, output: Output, input: Input):
        """断开两个端口的连接"""
        connection = NodeConnection(output, input)
        if connection not in self.connections:
            raise ValueError(f"连接不存在: {output} -> {input}")

        self._remove_connection(connection)
        self._is_validated = False
        self.logger.info(f"断开连接: {output.parent.id}:{output.name} -> {input.parent.id}:{input.name}")

    def _remove_connection(self, connection: NodeConnection):
        self.connections.remove(connection)
        for node_id in (connection.output_id, connection.input_id):
            if connection in self.node_connections.get(node_id, []):
                self.node_connections[node_id].remove(connection)

    def is_linked(self, input: Input) -> bool:
        """检查输入端口是否已有连接"""
        return any(c.input_id == input.parent.id
                   and c.input_name == input.name
                   and c.input_group == input.group
                   for c in self.connections)

    def contains(self, node: Node) -> bool:
        """节点是否属于此Pipeline（未被移除）"""
        return self.nodes.get(node.id) is node

    def get_node(self, node_id: int) -> Optional[Node]:
        """获取指定节点"""
        return self.nodes.get(node_id)

    def get_all_nodes(self) -> List[Node]:
        """获取所有节点"""
        return list(self.nodes.values())

    def get_nodes_by_type(self, node_class: Type[N]) -> List[N]:
        """获取指定类型的节点"""
        return [node for node in self.nodes.values() if isinstance(node, node_class)]

    def get_connections(self) -> List[NodeConnection]:
        """获取所有连接"""
        return list(self.connections)

    def set_xlink_chunk_size(self, size_bytes: int):
        """设置XLink分块大小，0表示不分块"""
        if size_bytes < 0:
            raise ValueError(f"XLink分块大小不能为负: {size_bytes}")
        self.global_properties.xlink_chunk_size = size_bytes

    def set_camera_tuning_blob_path(self, path: Union[str, Path]):
        """设置相机调优文件"""
        asset = self.asset_manager.set("camTuning", Path(path))
        self.global_properties.camera_tuning_blob_uri = asset.get_relative_uri()

    def set_calibration_data(self, calib_data: Dict[str, Any]):
        """设置整机标定数据"""
        self.global_properties.calib_data = dict(calib_data)

    def get_calibration_data(self) -> Optional[Dict[str, Any]]:
        return self.global_properties.calib_data

    def set_pipeline_version(self, version: str):
        self.global_properties.pipeline_version = version

    def validate(self) -> bool:
        """
        验证Pipeline的有效性

        Returns:
            是否有效
        """
        valid = True
        self._is_validated = False

        if not self.nodes:
            self.logger.error("Pipeline中没有节点")
            return False

        # XLink流名必须唯一
        stream_owners: Dict[str, int] = {}
        for node in self.nodes.values():
            get_stream_name = getattr(node, "get_stream_name", None)
            if get_stream_name is None:
                continue
            stream_name = get_stream_name()
            if stream_name in stream_owners:
                self.logger.error(f"XLink流名重复: '{stream_name}' "
                                  f"(节点{stream_owners[stream_name]}和{node.id})")
                valid = False
            else:
                stream_owners[stream_name] = node.id

        for connection in self.connections:
            for node_id in (connection.output_id, connection.input_id):
                if node_id not in self.nodes:
                    self.logger.error(f"连接{connection}引用了不存在的节点{node_id}")
                    valid = False

        for node in self.nodes.values():
            for error in node.validate():
                self.logger.error(f"{node.get_name()}[{node.id}]: {error}")
                valid = False

        if valid:
            self._is_validated = True
            self.logger.info("Pipeline验证通过")
        return valid

    def get_all_assets(self) -> AssetManager:
        """汇总Pipeline及所有节点的资源"""
        assets = AssetManager()
        assets.add_existing(self.asset_manager)
        for node in self.nodes.values():
            assets.add_existing(node.get_assets(), prefix=f"/node/{node.id}/")
        return assets

    def _resolve_asset_uris(self, node: Node, value: Any) -> Any:
        """将节点内相对资源URI改写为Pipeline级URI"""
        if isinstance(value, dict):
            return {k: self._resolve_asset_uris(node, v) for k, v in value.items()}
        if isinstance(value, list):
            return [self._resolve_asset_uris(node, v) for v in value]
        if isinstance(value, str) and value.startswith(ASSET_URI_PREFIX):
            key = value[len(ASSET_URI_PREFIX):]
            if key in node.get_assets():
                return f"{ASSET_URI_PREFIX}/node/{node.id}/{key}"
        return value

    def get_schema(self) -> Dict[str, Any]:
        """生成Pipeline schema"""
        return {
            "globalProperties": self.global_properties.to_dict(),
            "nodes": {
                node_id: {
                    "id": node_id,
                    "name": node.get_name(),
                    "properties": self._resolve_asset_uris(node, node.get_properties()),
                    "ioInfo": node.get_io_info(),
                }
                for node_id, node in self.nodes.items()
            },
            "connections": [c.to_dict() for c in self.connections],
        }

    def serialize(self) -> Tuple[Dict[str, Any], Dict[str, Dict[str, Any]], bytes]:
        """
        序列化Pipeline

        Returns:
            (schema, 资源表, 资源存储)
        """
        schema = self.get_schema()
        storage, asset_map = self.get_all_assets().serialize()
        self.logger.info(f"Pipeline序列化完成: {len(self.nodes)}个节点, "
                         f"{len(self.connections)}个连接, 资源{len(storage)}字节")
        return schema, asset_map, storage

    def to_json(self, indent: Optional[int] = None) -> str:
        """schema的JSON字符串"""
        return json.dumps(self.get_schema(), indent=indent)

    def export(self, directory: Union[str, Path]) -> Path:
        """
        导出Pipeline到目录

        Args:
            directory: 输出目录

        Returns:
            输出目录路径
        """
        out_dir = Path(directory)
        out_dir.mkdir(parents=True, exist_ok=True)

        schema, asset_map, storage = self.serialize()
        (out_dir / "pipeline.json").write_text(json.dumps(schema, indent=2), encoding="utf-8")
        (out_dir / "assets.json").write_text(json.dumps(asset_map, indent=2), encoding="utf-8")
        (out_dir / "assets.bin").write_bytes(storage)

        self.logger.info(f"Pipeline已导出: {out_dir}")
        return out_dir

    def __repr__(self) -> str:
        return (f"Pipeline(name={self.name}, nodes={len(self.nodes)}, "
                f"connections={len(self.connections)}, validated={self._is_validated})")

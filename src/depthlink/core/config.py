"""
Pipeline配置：从YAML描述创建Pipeline

配置格式:
    pipeline:
      name: depth_preview
      xlink_chunk_size: 0
      nodes:
        mono_left:
          type: MonoCamera
          properties:
            resolution: THE_400_P
            board_socket: LEFT
      connections:
        - from: mono_left.out
          to: stereo.left

properties中的每一项 key: value 调用节点的 set_<key> (或 load_<key>) 方法，
列表展开为位置参数，字典展开为关键字参数，null调用无参方法。
"""

import logging
from pathlib import Path
from typing import Dict, Any, Union

import yaml

from .node import Node
from .pipeline import Pipeline


logger = logging.getLogger(__name__)


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """加载配置文件"""
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"加载配置文件失败: {e}")
        raise RuntimeError(f"无法加载配置文件{config_path}: {e}")

    if not isinstance(config, dict):
        raise RuntimeError(f"配置文件格式错误: {config_path}")
    return config


def _apply_property(node: Node, key: str, value: Any):
    """调用节点的set_<key>/load_<key>方法"""
    method = getattr(node, f"set_{key}", None) or getattr(node, f"load_{key}", None)
    if method is None:
        raise ValueError(f"节点{node.get_name()}不支持属性: {key}")

    try:
        if value is None:
            method()
        elif isinstance(value, list):
            method(*value)
        elif isinstance(value, dict):
            method(**value)
        else:
            method(value)
    except TypeError as e:
        raise ValueError(f"节点{node.get_name()}属性{key}参数错误: {e}")


def _split_endpoint(endpoint: str):
    parts = str(endpoint).split(".", 1)
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"连接端点格式应为 节点.端口: {endpoint}")
    return parts


def create_pipeline_from_config(config: Dict[str, Any]) -> Pipeline:
    """
    根据配置创建Pipeline

    Args:
        config: 配置字典（顶层含pipeline键）

    Returns:
        构建好的Pipeline
    """
    from ..nodes import NODE_TYPES

    pipeline_config = config.get("pipeline", {})
    pipeline_name = pipeline_config.get("name", "pipeline")

    pipeline = Pipeline(pipeline_name)

    if "xlink_chunk_size" in pipeline_config:
        pipeline.set_xlink_chunk_size(pipeline_config["xlink_chunk_size"])
    if "camera_tuning_blob_path" in pipeline_config:
        pipeline.set_camera_tuning_blob_path(pipeline_config["camera_tuning_blob_path"])
    if "version" in pipeline_config:
        pipeline.set_pipeline_version(str(pipeline_config["version"]))
    if "calibration_data" in pipeline_config:
        pipeline.set_calibration_data(pipeline_config["calibration_data"])

    # 创建节点
    nodes: Dict[str, Node] = {}
    for node_key, node_config in (pipeline_config.get("nodes") or {}).items():
        node_type = node_config.get("type")
        if node_type not in NODE_TYPES:
            raise ValueError(f"未知的节点类型: {node_type} (节点{node_key})")

        node = pipeline.create(NODE_TYPES[node_type])
        for key, value in (node_config.get("properties") or {}).items():
            _apply_property(node, key, value)
        nodes[node_key] = node

    # 连接节点
    for connection in pipeline_config.get("connections") or []:
        from_node_key, from_port = _split_endpoint(connection.get("from"))
        to_node_key, to_port = _split_endpoint(connection.get("to"))

        if from_node_key not in nodes or to_node_key not in nodes:
            raise ValueError(f"连接的节点不存在: {from_node_key} -> {to_node_key}")

        output = nodes[from_node_key].get_output(from_port)
        input = nodes[to_node_key].get_input(to_port)
        if output is None:
            raise ValueError(f"节点{from_node_key}没有输出端口{from_port}")
        if input is None:
            raise ValueError(f"节点{to_node_key}没有输入端口{to_port}")

        output.link(input)

    return pipeline


def create_pipeline_from_file(config_path: Union[str, Path]) -> Pipeline:
    """加载配置文件并创建Pipeline"""
    return create_pipeline_from_config(load_config(config_path))

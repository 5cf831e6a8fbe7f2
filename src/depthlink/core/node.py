"""
节点基类：定义所有Pipeline节点的通用接口
包含输入/输出端口、端口连接检查、属性与资源管理
"""

import copy
import weakref
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Any, Optional, List, Iterable, Iterator, TYPE_CHECKING

from .asset import AssetManager
from .datatypes import DatatypeEnum, DatatypeHierarchy

if TYPE_CHECKING:
    from .pipeline import Pipeline


class OutputType(Enum):
    """输出端口类型"""
    MSender = "MSender"
    SSender = "SSender"


class InputType(Enum):
    """输入端口类型"""
    SReceiver = "SReceiver"
    MReceiver = "MReceiver"


def _hierarchies(datatypes: Optional[Iterable]) -> List[DatatypeHierarchy]:
    if datatypes is None:
        return [DatatypeHierarchy(DatatypeEnum.Buffer, True)]
    result = []
    for item in datatypes:
        if isinstance(item, DatatypeHierarchy):
            result.append(item)
        elif isinstance(item, DatatypeEnum):
            result.append(DatatypeHierarchy(item, True))
        else:
            result.append(DatatypeHierarchy(*item))
    return result


class Output:
    """节点输出端口"""

    def __init__(
        self,
        parent: "Node",
        name: str,
        output_type: OutputType = OutputType.MSender,
        possible_datatypes: Optional[Iterable] = None,
        group: str = ""
    ):
        """
        初始化输出端口

        Args:
            parent: 所属节点
            name: 端口名
            output_type: 端口类型
            possible_datatypes: 可能输出的数据类型，(DatatypeEnum, 是否包含子类型)
            group: 端口组（动态端口使用）
        """
        self.parent = parent
        self.name = name
        self.type = output_type
        self.possible_datatypes = _hierarchies(possible_datatypes)
        self.group = group

    def can_connect(self, input: "Input") -> bool:
        """检查是否可以连接到指定输入端口"""
        pipeline = self.parent.get_parent_pipeline()
        if pipeline is not input.parent.get_parent_pipeline():
            return False
        # 已移除的节点仍持有Pipeline引用
        if not (pipeline.contains(self.parent) and pipeline.contains(input.parent)):
            return False

        if self.type == OutputType.MSender and input.type == InputType.MReceiver:
            return False
        if self.type == OutputType.SSender and input.type == InputType.SReceiver:
            return False

        for out_h in self.possible_datatypes:
            for in_h in input.possible_datatypes:
                if out_h.datatype == in_h.datatype:
                    return True
                if in_h.accepts(out_h.datatype):
                    return True
                if out_h.accepts(in_h.datatype):
                    return True
        return False

    def link(self, input: "Input"):
        """连接到输入端口"""
        self.parent.get_parent_pipeline().link(self, input)

    def unlink(self, input: "Input"):
        """断开与输入端口的连接"""
        self.parent.get_parent_pipeline().unlink(self, input)

    def get_connections(self) -> List["NodeConnection"]:
        """获取从此端口出发的所有连接"""
        pipeline = self.parent.get_parent_pipeline()
        return [c for c in pipeline.get_connections()
                if c.output_id == self.parent.id
                and c.output_name == self.name
                and c.output_group == self.group]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "group": self.group,
            "type": self.type.value,
        }

    def __repr__(self) -> str:
        return f"Output({self.parent.get_name()}[{self.parent.id}].{self.name})"


class Input:
    """节点输入端口"""

    def __init__(
        self,
        parent: "Node",
        name: str,
        input_type: InputType = InputType.SReceiver,
        blocking: bool = True,
        queue_size: int = 8,
        possible_datatypes: Optional[Iterable] = None,
        group: str = ""
    ):
        self.parent = parent
        self.name = name
        self.type = input_type
        self.blocking = blocking
        self.queue_size = queue_size
        self.possible_datatypes = _hierarchies(possible_datatypes)
        self.group = group

    def set_blocking(self, blocking: bool):
        """设置队列满时是否阻塞发送方"""
        self.blocking = blocking

    def get_blocking(self) -> bool:
        return self.blocking

    def set_queue_size(self, size: int):
        """设置输入队列大小"""
        if size <= 0:
            raise ValueError(f"队列大小必须大于0: {size}")
        self.queue_size = size

    def get_queue_size(self) -> int:
        return self.queue_size

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "group": self.group,
            "type": self.type.value,
            "blocking": self.blocking,
            "queueSize": self.queue_size,
        }

    def __repr__(self) -> str:
        return f"Input({self.parent.get_name()}[{self.parent.id}].{self.name})"


class PortMap:
    """动态命名端口集合，首次访问时创建端口"""

    def __init__(self, parent: "Node", factory, group: str = ""):
        self._parent = parent
        self._factory = factory
        self._group = group
        self._ports: Dict[str, Any] = {}

    def __getitem__(self, name: str):
        if name not in self._ports:
            self._ports[name] = self._factory(self._parent, name, self._group)
        return self._ports[name]

    def __contains__(self, name: str) -> bool:
        return name in self._ports

    def __iter__(self) -> Iterator[str]:
        return iter(self._ports)

    def __len__(self) -> int:
        return len(self._ports)

    def values(self) -> List[Any]:
        return list(self._ports.values())


class NodeConnection:
    """两个端口之间的连接"""

    __slots__ = ("output_id", "output_name", "output_group",
                 "input_id", "input_name", "input_group")

    def __init__(self, output: Output, input: Input):
        self.output_id = output.parent.id
        self.output_name = output.name
        self.output_group = output.group
        self.input_id = input.parent.id
        self.input_name = input.name
        self.input_group = input.group

    def _key(self):
        return (self.output_id, self.output_group, self.output_name,
                self.input_id, self.input_group, self.input_name)

    def __eq__(self, other) -> bool:
        return isinstance(other, NodeConnection) and self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node1Id": self.output_id,
            "node1Output": self.output_name,
            "node1OutputGroup": self.output_group,
            "node2Id": self.input_id,
            "node2Input": self.input_name,
            "node2InputGroup": self.input_group,
        }

    def __repr__(self) -> str:
        return (f"NodeConnection({self.output_id}:{self.output_name} -> "
                f"{self.input_id}:{self.input_name})")


class Node(ABC):
    """Pipeline节点基类"""

    def __init__(self, pipeline: "Pipeline", node_id: int):
        """
        初始化节点，节点应通过Pipeline.create创建

        Args:
            pipeline: 所属Pipeline
            node_id: 节点ID
        """
        self._pipeline = weakref.ref(pipeline)
        self.id = node_id
        self.asset_manager = AssetManager()
        self.properties = self._default_properties()

    @abstractmethod
    def _default_properties(self):
        """创建默认属性结构"""
        pass

    @abstractmethod
    def get_name(self) -> str:
        """节点类型名"""
        pass

    @abstractmethod
    def get_inputs(self) -> List[Input]:
        """获取输入端口列表"""
        pass

    @abstractmethod
    def get_outputs(self) -> List[Output]:
        """获取输出端口列表"""
        pass

    def get_parent_pipeline(self) -> "Pipeline":
        pipeline = self._pipeline()
        if pipeline is None:
            raise RuntimeError(f"节点{self.id}所属的Pipeline已释放")
        return pipeline

    def get_properties(self) -> Dict[str, Any]:
        """获取可序列化的属性字典"""
        return self.properties.to_dict()

    def get_assets(self) -> AssetManager:
        """获取节点资源"""
        return self.asset_manager

    def get_input(self, name: str, group: str = "") -> Optional[Input]:
        for port in self.get_inputs():
            if port.name == name and port.group == group:
                return port
        return None

    def get_output(self, name: str, group: str = "") -> Optional[Output]:
        for port in self.get_outputs():
            if port.name == name and port.group == group:
                return port
        return None

    def get_io_info(self) -> Dict[str, Any]:
        """端口信息"""
        return {
            "inputs": [p.to_dict() for p in self.get_inputs()],
            "outputs": [p.to_dict() for p in self.get_outputs()],
        }

    def validate(self) -> List[str]:
        """
        检查节点配置

        Returns:
            错误信息列表，空列表表示有效
        """
        return []

    def clone(self) -> "Node":
        """复制节点（属性、资源、端口均为独立副本）"""
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id})"

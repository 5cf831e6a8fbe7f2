"""
设备连接：Pipeline下发与流数据收发的传输接口
LoopbackConnection在内存中模拟设备端，用于离线运行和测试
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict, deque
from typing import Any, Deque, Dict, List, Optional


class Connection(ABC):
    """设备传输接口"""

    @abstractmethod
    def boot(self, schema: Dict[str, Any], asset_map: Dict[str, Dict[str, Any]], storage: bytes):
        """
        下发序列化后的Pipeline并启动

        Args:
            schema: Pipeline schema
            asset_map: 资源表
            storage: 资源存储
        """
        pass

    @abstractmethod
    def read(self, stream_name: str, timeout: Optional[float] = None) -> Any:
        """从设备输出流读取一条消息，超时返回None"""
        pass

    @abstractmethod
    def write(self, stream_name: str, msg: Any):
        """向设备输入流写入一条消息"""
        pass

    @abstractmethod
    def close(self):
        """关闭连接"""
        pass

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        pass

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class LoopbackConnection(Connection):
    """
    内存回环连接

    每个流最多缓存max_pending条未读消息，超出时丢弃最旧消息
    """

    def __init__(self, max_pending: int = 64):
        if max_pending <= 0:
            raise ValueError(f"缓存消息数必须大于0: {max_pending}")
        self.schema: Optional[Dict[str, Any]] = None
        self.asset_map: Dict[str, Dict[str, Any]] = {}
        self.storage = b""
        self.booted = False

        self.max_pending = max_pending
        self._streams: Dict[str, Deque[Any]] = defaultdict(lambda: deque(maxlen=self.max_pending))
        self._cond = threading.Condition()
        self._closed = False
        self.logger = logging.getLogger("LoopbackConnection")

    def boot(self, schema: Dict[str, Any], asset_map: Dict[str, Dict[str, Any]], storage: bytes):
        if self._closed:
            raise RuntimeError("连接已关闭")
        if self.booted:
            raise RuntimeError("设备已在运行Pipeline")
        self.schema = schema
        self.asset_map = dict(asset_map)
        self.storage = bytes(storage)
        self.booted = True
        self.logger.info(f"Pipeline已下发: {len(schema.get('nodes', {}))}个节点, "
                         f"{len(asset_map)}个资源")

    def get_asset(self, key: str) -> bytes:
        """按资源表从存储中取出资源"""
        entry = self.asset_map[key]
        return self.storage[entry["offset"]:entry["offset"] + entry["size"]]

    def inject(self, stream_name: str, msg: Any):
        """模拟设备在输出流上产生一条消息"""
        with self._cond:
            self._streams[stream_name].append(msg)
            self._cond.notify_all()

    def inject_many(self, stream_name: str, msgs: List[Any]):
        for msg in msgs:
            self.inject(stream_name, msg)

    def read(self, stream_name: str, timeout: Optional[float] = None) -> Any:
        with self._cond:
            self._cond.wait_for(lambda: self._closed or self._streams[stream_name], timeout=timeout)
            if self._closed:
                raise RuntimeError("连接已关闭")
            if self._streams[stream_name]:
                return self._streams[stream_name].popleft()
            return None

    def write(self, stream_name: str, msg: Any):
        # 回环：写入的消息可在同名流上读出
        self.inject(stream_name, msg)

    def pending(self, stream_name: str) -> int:
        """流上未读消息数"""
        with self._cond:
            return len(self._streams[stream_name])

    def close(self):
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    @property
    def is_closed(self) -> bool:
        return self._closed

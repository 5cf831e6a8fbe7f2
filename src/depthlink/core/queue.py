"""
主机端消息队列
DataOutputQueue接收设备输出流的消息，DataInputQueue缓存发往设备输入流的消息
"""

import logging
import threading
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional


logger = logging.getLogger(__name__)


class MessageQueue:
    """有界消息队列基类，满队列时阻塞生产者或丢弃最旧消息"""

    def __init__(self, name: str, max_size: int = 16, blocking: bool = True):
        if max_size <= 0:
            raise ValueError(f"队列大小必须大于0: {max_size}")
        self.name = name
        self._max_size = max_size
        self._blocking = blocking
        self._items: Deque[Any] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self.dropped = 0

    def get_name(self) -> str:
        return self.name

    def set_blocking(self, blocking: bool):
        """设置队列满时是否阻塞生产者（否则丢弃最旧消息）"""
        with self._cond:
            self._blocking = blocking
            self._cond.notify_all()

    def get_blocking(self) -> bool:
        return self._blocking

    def set_max_size(self, max_size: int):
        if max_size <= 0:
            raise ValueError(f"队列大小必须大于0: {max_size}")
        with self._cond:
            self._max_size = max_size
            while len(self._items) > max_size:
                self._items.popleft()
                self.dropped += 1
            self._cond.notify_all()

    def get_max_size(self) -> int:
        return self._max_size

    def is_closed(self) -> bool:
        return self._closed

    def close(self):
        """关闭队列，唤醒所有等待方"""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def _push(self, msg: Any, timeout: Optional[float] = None) -> bool:
        with self._cond:
            if self._closed:
                raise RuntimeError(f"队列{self.name}已关闭")

            if self._blocking:
                has_room = self._cond.wait_for(
                    lambda: self._closed or not self._blocking or len(self._items) < self._max_size,
                    timeout=timeout
                )
                if self._closed:
                    raise RuntimeError(f"队列{self.name}已关闭")
                if not has_room:
                    return False

            while len(self._items) >= self._max_size:
                self._items.popleft()
                self.dropped += 1
                logger.debug(f"队列{self.name}已满，丢弃最旧消息")

            self._items.append(msg)
            self._cond.notify_all()
            return True

    def _pop(self, timeout: Optional[float] = None) -> Any:
        with self._cond:
            self._cond.wait_for(lambda: self._closed or self._items, timeout=timeout)
            self._check_open()
            if self._items:
                msg = self._items.popleft()
                self._cond.notify_all()
                return msg
            return None

    def _check_open(self):
        # 关闭后不再交付缓存中的消息
        if self._closed:
            raise RuntimeError(f"队列{self.name}已关闭")

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(name={self.name}, size={len(self._items)}/"
                f"{self._max_size}, blocking={self._blocking})")


class DataOutputQueue(MessageQueue):
    """设备输出流在主机端的队列"""

    def __init__(self, name: str, max_size: int = 16, blocking: bool = True):
        super().__init__(name, max_size, blocking)
        self._callbacks: Dict[int, Callable[[str, Any], None]] = {}
        self._next_callback_id = 0

    def add_callback(self, callback: Callable[[str, Any], None]) -> int:
        """
        添加消息回调，每条新消息到达时以 (流名, 消息) 调用

        Returns:
            回调ID
        """
        callback_id = self._next_callback_id
        self._next_callback_id += 1
        self._callbacks[callback_id] = callback
        return callback_id

    def remove_callback(self, callback_id: int) -> bool:
        return self._callbacks.pop(callback_id, None) is not None

    def send(self, msg: Any, timeout: Optional[float] = None) -> bool:
        """
        推入一条设备消息（由Device读线程调用）

        Returns:
            是否入队（阻塞队列等待超时返回False）
        """
        if not self._push(msg, timeout):
            return False

        # 仅对已入队的消息调用回调
        for callback in list(self._callbacks.values()):
            try:
                callback(self.name, msg)
            except Exception as e:
                logger.error(f"队列{self.name}回调异常: {e}", exc_info=True)
        return True

    def get(self, timeout: Optional[float] = None) -> Any:
        """
        获取一条消息，无消息时等待

        Args:
            timeout: 超时时间（秒），None为一直等待

        Returns:
            消息，超时返回None
        """
        return self._pop(timeout)

    def try_get(self) -> Any:
        """获取一条消息，无消息时返回None"""
        with self._cond:
            self._check_open()
            if self._items:
                msg = self._items.popleft()
                self._cond.notify_all()
                return msg
            return None

    def front(self) -> Any:
        """查看队首消息但不取出"""
        with self._cond:
            return self._items[0] if self._items else None

    def has(self) -> bool:
        """是否有可取消息"""
        return len(self._items) > 0

    def try_get_all(self) -> List[Any]:
        """取出全部消息"""
        with self._cond:
            self._check_open()
            items = list(self._items)
            self._items.clear()
            self._cond.notify_all()
            return items

    def get_all(self, timeout: Optional[float] = None) -> List[Any]:
        """等待至少一条消息后取出全部消息"""
        with self._cond:
            self._cond.wait_for(lambda: self._closed or self._items, timeout=timeout)
        return self.try_get_all()


class DataInputQueue(MessageQueue):
    """发往设备输入流的主机端队列"""

    def send(self, msg: Any, timeout: Optional[float] = None) -> bool:
        """
        发送消息到设备

        Returns:
            是否入队（阻塞队列等待超时返回False）
        """
        return self._push(msg, timeout)

    def take(self, timeout: Optional[float] = None) -> Any:
        """取出待发送消息（由Device写线程调用）"""
        return self._pop(timeout)

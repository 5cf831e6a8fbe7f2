"""
Device：与设备的会话
下发Pipeline，并在后台线程中把XLink流与主机队列对接
"""

import logging
import threading
from typing import Dict, List, Optional

from .connection import Connection, LoopbackConnection
from .pipeline import Pipeline
from .queue import DataInputQueue, DataOutputQueue


class Device:
    """
    设备会话

    生命周期:
        1. 创建Device（可直接传入Pipeline启动）
        2. 通过get_output_queue/get_input_queue收发数据
        3. 调用close()或使用with语句结束会话
    """

    def __init__(self, pipeline: Optional[Pipeline] = None, connection: Optional[Connection] = None):
        """
        初始化Device

        Args:
            pipeline: 要启动的Pipeline，None表示稍后调用start_pipeline
            connection: 设备连接，默认使用内存回环连接
        """
        self.connection = connection if connection is not None else LoopbackConnection()
        self.logger = logging.getLogger("Device")

        self._output_queues: Dict[str, DataOutputQueue] = {}
        self._input_queues: Dict[str, DataInputQueue] = {}
        self._threads: List[threading.Thread] = []
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._pipeline_running = False
        self._closed = False

        if pipeline is not None:
            self.start_pipeline(pipeline)

    def start_pipeline(self, pipeline: Pipeline):
        """
        验证、序列化并启动Pipeline

        Args:
            pipeline: 要启动的Pipeline
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Device已关闭")
            if self._pipeline_running:
                raise RuntimeError("Pipeline已在运行")

            if not pipeline.validate():
                raise RuntimeError("Pipeline验证失败，无法启动")

            schema, asset_map, storage = pipeline.serialize()
            self.connection.boot(schema, asset_map, storage)

            for node in pipeline.get_all_nodes():
                if node.get_name() == "XLinkOut":
                    name = node.get_stream_name()
                    self._output_queues[name] = DataOutputQueue(name)
                    self._start_thread(self._reader_loop, name)
                elif node.get_name() == "XLinkIn":
                    name = node.get_stream_name()
                    self._input_queues[name] = DataInputQueue(name)
                    self._start_thread(self._writer_loop, name)

            self._pipeline_running = True
            self.logger.info(f"Pipeline已启动: 输出流{sorted(self._output_queues)}, "
                             f"输入流{sorted(self._input_queues)}")

    def _start_thread(self, target, stream_name: str):
        thread = threading.Thread(target=target, args=(stream_name,),
                                  name=f"xlink-{stream_name}", daemon=True)
        self._threads.append(thread)
        thread.start()

    def _reader_loop(self, stream_name: str):
        """设备输出流 -> 主机队列"""
        queue = self._output_queues[stream_name]
        while not self._stop_event.is_set():
            try:
                msg = self.connection.read(stream_name, timeout=0.1)
            except RuntimeError as e:
                self.logger.debug(f"流{stream_name}读取结束: {e}")
                break
            if msg is None:
                continue
            try:
                queue.send(msg)
            except RuntimeError:
                break

    def _writer_loop(self, stream_name: str):
        """主机队列 -> 设备输入流"""
        queue = self._input_queues[stream_name]
        while not self._stop_event.is_set():
            try:
                msg = queue.take(timeout=0.1)
            except RuntimeError:
                break
            if msg is None:
                continue
            self.connection.write(stream_name, msg)

    def get_output_queue(self, name: str, max_size: int = 16, blocking: bool = True) -> DataOutputQueue:
        """
        获取设备输出流对应的队列

        Args:
            name: XLinkOut流名
            max_size: 队列大小
            blocking: 队列满时是否阻塞（否则丢弃最旧消息）

        Returns:
            输出队列
        """
        if name not in self._output_queues:
            raise RuntimeError(f"Queue for stream name '{name}' doesn't exist")
        queue = self._output_queues[name]
        queue.set_max_size(max_size)
        queue.set_blocking(blocking)
        return queue

    def get_input_queue(self, name: str, max_size: int = 16, blocking: bool = True) -> DataInputQueue:
        """获取设备输入流对应的队列"""
        if name not in self._input_queues:
            raise RuntimeError(f"Queue for stream name '{name}' doesn't exist")
        queue = self._input_queues[name]
        queue.set_max_size(max_size)
        queue.set_blocking(blocking)
        return queue

    def get_output_queue_names(self) -> List[str]:
        return sorted(self._output_queues)

    def get_input_queue_names(self) -> List[str]:
        return sorted(self._input_queues)

    def is_pipeline_running(self) -> bool:
        return self._pipeline_running and not self._closed

    def is_closed(self) -> bool:
        return self._closed

    def close(self):
        """停止后台线程，关闭队列与连接"""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        self._stop_event.set()
        for queue in list(self._output_queues.values()) + list(self._input_queues.values()):
            queue.close()
        self.connection.close()

        for thread in self._threads:
            thread.join(timeout=2.0)
        self._threads.clear()
        self._pipeline_running = False
        self.logger.info("Device已关闭")

    def __enter__(self) -> "Device":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        status = "closed" if self._closed else ("running" if self._pipeline_running else "idle")
        return f"Device({status}, connection={self.connection.__class__.__name__})"

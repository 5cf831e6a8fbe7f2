"""
资源管理：节点与Pipeline携带的二进制资源（标定数据、网格、脚本等）
序列化时所有资源按对齐要求打包进同一块存储
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union, List, Tuple


logger = logging.getLogger(__name__)

AssetData = Union[bytes, bytearray, memoryview]


class Asset:
    """单个二进制资源"""

    def __init__(self, key: str, data: AssetData = b"", alignment: int = 64):
        if alignment <= 0:
            raise ValueError(f"对齐值必须大于0: {alignment}")
        self.key = key
        self.data = bytes(data)
        self.alignment = alignment

    def get_relative_uri(self) -> str:
        """资源的相对URI"""
        return f"asset:{self.key}"

    @property
    def size(self) -> int:
        return len(self.data)

    def copy(self) -> "Asset":
        return Asset(self.key, self.data, self.alignment)

    def __repr__(self) -> str:
        return f"Asset(key={self.key}, size={self.size}, alignment={self.alignment})"


class AssetManager:
    """资源管理器"""

    def __init__(self):
        self._assets: Dict[str, Asset] = {}

    @staticmethod
    def _load(path: Union[str, Path]) -> bytes:
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError:
            raise RuntimeError(f"Cannot load asset, file at path {path} doesn't exist.")

    def add(self, key: str, source: Union[AssetData, str, Path], alignment: int = 64) -> Asset:
        """
        添加资源

        Args:
            key: 资源键
            source: 资源数据，或资源文件路径（str/Path）
            alignment: 存储对齐

        Returns:
            新添加的资源
        """
        if key in self._assets:
            raise ValueError(f"资源{key}已存在")

        if isinstance(source, (str, Path)):
            data = self._load(source)
        else:
            data = bytes(source)

        asset = Asset(key, data, alignment)
        self._assets[key] = asset
        logger.debug(f"添加资源: {asset}")
        return asset

    def set(self, key: str, source: Union[Asset, AssetData, str, Path]) -> Asset:
        """添加或替换资源"""
        if isinstance(source, Asset):
            asset = Asset(key, source.data, source.alignment)
            self._assets[key] = asset
            return asset

        if isinstance(source, (str, Path)):
            source = self._load(source)
        self._assets.pop(key, None)
        return self.add(key, source)

    def get(self, key: str) -> Optional[Asset]:
        """获取指定资源"""
        return self._assets.get(key)

    def get_all(self) -> List[Asset]:
        """获取所有资源"""
        return list(self._assets.values())

    def remove(self, key: str) -> bool:
        """移除资源"""
        if key not in self._assets:
            return False
        del self._assets[key]
        return True

    def add_existing(self, other: "AssetManager", prefix: str = ""):
        """合并另一个资源管理器的资源，键加上前缀"""
        for asset in other.get_all():
            self.set(prefix + asset.key, asset)

    def copy(self) -> "AssetManager":
        manager = AssetManager()
        for key, asset in self._assets.items():
            manager._assets[key] = asset.copy()
        return manager

    def size(self) -> int:
        return len(self._assets)

    def __contains__(self, key: str) -> bool:
        return key in self._assets

    def __len__(self) -> int:
        return len(self._assets)

    def serialize(self) -> Tuple[bytes, Dict[str, Dict[str, Any]]]:
        """
        将所有资源打包到一块存储中

        Returns:
            (存储字节, 资源表)，资源表为 {key: {offset, size, alignment}}
        """
        storage = bytearray()
        asset_map: Dict[str, Dict[str, Any]] = {}

        for key, asset in self._assets.items():
            # 起始偏移向上取整到对齐边界
            offset = -(-len(storage) // asset.alignment) * asset.alignment
            storage.extend(b"\x00" * (offset - len(storage)))
            storage.extend(asset.data)
            asset_map[key] = {
                "offset": offset,
                "size": asset.size,
                "alignment": asset.alignment
            }

        return bytes(storage), asset_map

    def __repr__(self) -> str:
        return f"AssetManager(assets={list(self._assets.keys())})"

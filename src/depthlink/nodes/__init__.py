"""
Pipeline节点模块
包含相机、双目深度、脚本与XLink流节点
"""

# 输入节点
from .input.mono_camera import MonoCamera
from .input.xlink_in import XLinkIn

# 处理节点
from .processing.stereo_depth import StereoDepth
from .processing.script import Script

# 输出节点
from .output.xlink_out import XLinkOut

# 节点类型名 -> 节点类，用于按配置创建节点
NODE_TYPES = {
    cls.__name__: cls
    for cls in (MonoCamera, XLinkIn, StereoDepth, Script, XLinkOut)
}

__all__ = [
    'MonoCamera',
    'XLinkIn',
    'StereoDepth',
    'Script',
    'XLinkOut',
    'NODE_TYPES'
]

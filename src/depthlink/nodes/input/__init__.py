"""
输入节点：相机与主机输入流
"""

from .mono_camera import MonoCamera, MonoCameraProperties
from .xlink_in import XLinkIn, XLinkInProperties

__all__ = [
    "MonoCamera",
    "MonoCameraProperties",
    "XLinkIn",
    "XLinkInProperties"
]

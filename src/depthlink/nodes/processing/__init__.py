"""
Processing Nodes Module

This module contains nodes executed on the device:
- Stereo depth
- Script
"""

from .stereo_depth import StereoDepth, StereoDepthProperties, MeshProperties
from .script import Script, ScriptProperties

__all__ = [
    "StereoDepth",
    "StereoDepthProperties",
    "MeshProperties",
    "Script",
    "ScriptProperties"
]

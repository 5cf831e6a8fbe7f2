#!/usr/bin/env python3
"""
深度预览示例
构建左右黑白相机 -> StereoDepth -> XLinkOut的pipeline，接收视差帧并着色保存
未连接真实设备时使用回环连接和仿真视差帧
"""

import logging
from pathlib import Path

import cv2

from depthlink import Device, LoopbackConnection, StereoDepth
from depthlink.main import create_depth_preview_pipeline
from depthlink.preview import colorize_disparity, generate_disparity_frame

# 扩展视差：近处最小深度更小，视差范围从95加倍到190
EXTENDED_DISPARITY = False
# 亚像素：远距离精度更高，32级小数视差
SUBPIXEL = False
# 左右一致性检查：更好地处理遮挡
LR_CHECK = False


def setup_logging():
    """设置日志"""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def main():
    setup_logging()

    pipeline = create_depth_preview_pipeline(EXTENDED_DISPARITY, SUBPIXEL, LR_CHECK)
    stereo = pipeline.get_nodes_by_type(StereoDepth)[0]
    max_disparity = stereo.get_max_disparity()

    out_dir = Path("disparity_preview")
    out_dir.mkdir(exist_ok=True)

    connection = LoopbackConnection()
    with Device(pipeline, connection) as device:
        queue = device.get_output_queue("disparity", max_size=4, blocking=False)

        for i in range(5):
            connection.inject("disparity", generate_disparity_frame(max_disparity=max_disparity, sequence_num=i))
            frame = queue.get(timeout=1.0)
            if frame is None:
                break

            colored = colorize_disparity(frame.get_frame(), max_disparity)
            path = out_dir / f"disparity_color_{frame.sequence_num:02d}.png"
            cv2.imwrite(str(path), colored)
            print(f"✅ 帧 {frame.sequence_num} -> {path}")


if __name__ == "__main__":
    main()

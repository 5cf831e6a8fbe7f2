#!/usr/bin/env python3
"""
depthlink命令行工具
支持查看、检查、导出Pipeline，以及基于回环连接的离线预览
"""

import sys
import argparse
import logging
from pathlib import Path
from typing import Optional

import cv2

from .core.config import create_pipeline_from_file
from .core.connection import LoopbackConnection
from .core.device import Device
from .core.pipeline import Pipeline
from .core.types import CameraBoardSocket, MedianFilter, SensorResolution
from .nodes import MonoCamera, StereoDepth, XLinkOut
from .preview import colorize_disparity, generate_disparity_frame


def setup_logging(level: str = "INFO"):
    """设置日志"""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def create_depth_preview_pipeline(
    extended_disparity: bool = False,
    subpixel: bool = False,
    lr_check: bool = False
) -> Pipeline:
    """
    创建默认的深度预览pipeline：左右黑白相机 -> StereoDepth -> XLinkOut("disparity")

    Args:
        extended_disparity: 扩展视差，近处最小深度更小，视差范围加倍
        subpixel: 亚像素，远距离精度更高，5位小数
        lr_check: 左右一致性检查，更好地处理遮挡
    """
    pipeline = Pipeline("depth_preview")

    mono_left = pipeline.create(MonoCamera)
    mono_right = pipeline.create(MonoCamera)
    depth = pipeline.create(StereoDepth)
    xout = pipeline.create(XLinkOut)

    xout.set_stream_name("disparity")

    mono_left.set_resolution(SensorResolution.THE_400_P)
    mono_left.set_board_socket(CameraBoardSocket.LEFT)
    mono_right.set_resolution(SensorResolution.THE_400_P)
    mono_right.set_board_socket(CameraBoardSocket.RIGHT)

    depth.set_confidence_threshold(200)
    depth.set_median_filter(MedianFilter.KERNEL_7x7)
    depth.set_left_right_check(lr_check)
    depth.set_extended_disparity(extended_disparity)
    depth.set_subpixel(subpixel)

    mono_left.out.link(depth.left)
    mono_right.out.link(depth.right)
    depth.disparity.link(xout.input)

    return pipeline


def load_pipeline(args) -> Pipeline:
    """按命令行参数加载pipeline"""
    if args.config:
        print(f"📁 使用配置文件: {args.config}")
        return create_pipeline_from_file(args.config)
    return create_depth_preview_pipeline(
        extended_disparity=args.extended_disparity,
        subpixel=args.subpixel,
        lr_check=args.lr_check
    )


def cmd_describe(args) -> int:
    """打印pipeline schema"""
    pipeline = load_pipeline(args)
    print(pipeline.to_json(indent=2))
    return 0


def cmd_validate(args) -> int:
    """检查pipeline"""
    pipeline = load_pipeline(args)
    if not pipeline.validate():
        print("❌ Pipeline验证失败")
        return 1
    print(f"✅ Pipeline验证通过: {len(pipeline.get_all_nodes())}个节点, "
          f"{len(pipeline.get_connections())}个连接")
    return 0


def cmd_export(args) -> int:
    """导出pipeline schema与资源"""
    pipeline = load_pipeline(args)
    if not pipeline.validate():
        print("❌ Pipeline验证失败")
        return 1
    out_dir = pipeline.export(args.output)
    print(f"📦 已导出到: {out_dir}")
    return 0


def _find_stereo(pipeline: Pipeline) -> Optional[StereoDepth]:
    nodes = pipeline.get_nodes_by_type(StereoDepth)
    return nodes[0] if nodes else None


def cmd_preview(args) -> int:
    """在回环连接上运行pipeline，接收并着色仿真视差帧"""
    pipeline = load_pipeline(args)
    stereo = _find_stereo(pipeline)
    max_disparity = stereo.get_max_disparity() if stereo else 95

    save_dir = Path(args.save_dir) if args.save_dir else None
    if save_dir:
        save_dir.mkdir(parents=True, exist_ok=True)

    connection = LoopbackConnection()
    with Device(pipeline, connection) as device:
        if args.stream not in device.get_output_queue_names():
            print(f"❌ Pipeline中没有输出流: {args.stream}")
            return 1
        queue = device.get_output_queue(args.stream, max_size=4, blocking=True)

        for i in range(args.frames):
            connection.inject(args.stream, generate_disparity_frame(max_disparity=max_disparity, sequence_num=i))
            frame = queue.get(timeout=1.0)
            if frame is None:
                print("  ⏱️ 等待帧超时")
                break
            colored = colorize_disparity(frame.get_frame(), max_disparity)
            print(f"  帧 {frame.sequence_num}: {frame.width}x{frame.height}, "
                  f"格式={frame.type.value}, 着色={colored.shape}")
            if save_dir:
                cv2.imwrite(str(save_dir / f"disparity_{frame.sequence_num:04d}.png"), colored)

        if queue.dropped:
            print(f"  丢弃帧数: {queue.dropped}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="深度相机加速器主机端工具")
    parser.add_argument(
        "command",
        choices=["describe", "validate", "export", "preview"],
        help="运行命令"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="pipeline配置文件路径，缺省使用内置深度预览pipeline"
    )
    parser.add_argument("--output", type=str, default="pipeline_export", help="export输出目录")
    parser.add_argument("--stream", type=str, default="disparity", help="preview读取的输出流")
    parser.add_argument("--frames", type=int, default=10, help="preview处理的帧数")
    parser.add_argument("--save-dir", type=str, help="preview着色结果保存目录")
    parser.add_argument("--extended-disparity", action="store_true", help="内置pipeline启用扩展视差")
    parser.add_argument("--subpixel", action="store_true", help="内置pipeline启用亚像素")
    parser.add_argument("--lr-check", action="store_true", help="内置pipeline启用左右一致性检查")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="日志级别"
    )
    return parser


def main(argv=None) -> int:
    """主函数"""
    args = build_parser().parse_args(argv)

    # 设置日志
    setup_logging(args.log_level)

    commands = {
        "describe": cmd_describe,
        "validate": cmd_validate,
        "export": cmd_export,
        "preview": cmd_preview,
    }

    try:
        return commands[args.command](args)
    except KeyboardInterrupt:
        print("\n⏹️ 用户中断")
        return 130
    except (RuntimeError, ValueError) as e:
        print(f"\n💥 运行失败: {e}")
        logging.error(f"运行失败: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())

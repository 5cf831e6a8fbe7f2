#!/usr/bin/env python3
"""
节点测试
测试StereoDepth、Script、MonoCamera与XLink节点的属性配置
"""

import os
import tempfile
import unittest

from depthlink.core.pipeline import Pipeline
from depthlink.core.types import (
    CameraBoardSocket, DepthAlign, MedianFilter, ProcessorType, SensorResolution
)
from depthlink.nodes import MonoCamera, StereoDepth, Script, XLinkIn, XLinkOut, NODE_TYPES


class TestStereoDepth(unittest.TestCase):
    """测试StereoDepth节点"""

    def setUp(self):
        """测试前准备"""
        self.pipeline = Pipeline()
        self.stereo = self.pipeline.create(StereoDepth)

    def test_defaults(self):
        """测试默认属性"""
        props = self.stereo.get_properties()
        self.assertEqual(props["calibration"], [])
        self.assertEqual(props["median"], int(MedianFilter.KERNEL_5x5))
        self.assertEqual(props["depthAlign"], int(DepthAlign.RECTIFIED_RIGHT))
        self.assertEqual(props["depthAlignCamera"], -1)
        self.assertEqual(props["confidenceThreshold"], 200)
        self.assertFalse(props["enableLeftRightCheck"])
        self.assertFalse(props["enableSubpixel"])
        self.assertFalse(props["enableExtendedDisparity"])
        self.assertTrue(props["rectifyMirrorFrame"])
        self.assertEqual(props["rectifyEdgeFillColor"], -1)
        self.assertIsNone(props["width"])
        self.assertEqual(props["mesh"]["stepWidth"], 16)

    def test_ports(self):
        """测试端口"""
        self.assertEqual([p.name for p in self.stereo.get_inputs()], ["left", "right"])
        self.assertFalse(self.stereo.left.get_blocking())
        self.assertEqual(self.stereo.left.get_queue_size(), 8)
        self.assertIs(self.stereo.get_output("syncedLeft"), self.stereo.synced_left)
        self.assertIs(self.stereo.get_output("rectifiedRight"), self.stereo.rectified_right)
        self.assertIsNone(self.stereo.get_output("nonexistent"))

    def test_max_disparity(self):
        """测试最大视差"""
        self.assertEqual(self.stereo.get_max_disparity(), 95)
        self.stereo.set_extended_disparity(True)
        self.assertEqual(self.stereo.get_max_disparity(), 190)
        self.stereo.set_subpixel(True)
        self.assertEqual(self.stereo.get_max_disparity(), 190 * 32)
        self.stereo.set_extended_disparity(False)
        self.assertEqual(self.stereo.get_max_disparity(), 95 * 32)

    def test_confidence_threshold(self):
        """测试置信度阈值"""
        self.stereo.set_confidence_threshold(0)
        self.stereo.set_confidence_threshold(255)
        self.assertEqual(self.stereo.properties.confidence_threshold, 255)
        with self.assertRaises(ValueError):
            self.stereo.set_confidence_threshold(256)
        with self.assertRaises(ValueError):
            self.stereo.set_confidence_threshold(-1)

    def test_median_filter(self):
        """测试中值滤波"""
        self.stereo.set_median_filter("MEDIAN_OFF")
        self.assertEqual(self.stereo.properties.median, MedianFilter.MEDIAN_OFF)
        self.stereo.set_median_filter(3)
        self.assertEqual(self.stereo.properties.median, MedianFilter.KERNEL_3x3)

    def test_depth_align(self):
        """测试深度对齐"""
        self.stereo.set_depth_align(CameraBoardSocket.RGB)
        self.assertEqual(self.stereo.properties.depth_align_camera, CameraBoardSocket.RGB)
        self.assertEqual(self.stereo.properties.depth_align, DepthAlign.RECTIFIED_RIGHT)

        # 按校正图对齐时复位对齐相机
        self.stereo.set_depth_align(DepthAlign.CENTER)
        self.assertEqual(self.stereo.properties.depth_align, DepthAlign.CENTER)
        self.assertEqual(self.stereo.properties.depth_align_camera, CameraBoardSocket.AUTO)

        self.stereo.set_depth_align("left")
        self.assertEqual(self.stereo.properties.depth_align_camera, CameraBoardSocket.LEFT)
        self.stereo.set_depth_align("RECTIFIED_LEFT")
        self.assertEqual(self.stereo.properties.depth_align, DepthAlign.RECTIFIED_LEFT)

    def test_rectify_settings(self):
        """测试校正设置"""
        self.stereo.set_rectify_edge_fill_color(0)
        self.stereo.set_rectify_mirror_frame(False)
        self.assertEqual(self.stereo.properties.rectify_edge_fill_color, 0)
        self.assertFalse(self.stereo.properties.rectify_mirror_frame)
        with self.assertRaises(ValueError):
            self.stereo.set_rectify_edge_fill_color(256)

    def test_input_resolution(self):
        """测试输入分辨率"""
        self.stereo.set_input_resolution(640, 400)
        self.assertEqual((self.stereo.properties.width, self.stereo.properties.height), (640, 400))
        with self.assertRaises(ValueError):
            self.stereo.set_input_resolution(0, 400)

    def test_calibration_data(self):
        """测试标定数据"""
        self.stereo.load_calibration_data(b"\x01\x02\x03")
        self.assertEqual(self.stereo.properties.calibration, [1, 2, 3])

        self.stereo.load_calibration_data(b"")
        self.assertEqual(self.stereo.properties.calibration, [])

        self.stereo.set_empty_calibration()
        self.assertEqual(self.stereo.properties.calibration, [0])

    def test_calibration_file(self):
        """测试标定文件"""
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "calib.json")
            with open(path, "wb") as f:
                f.write(b"{}")
            self.stereo.load_calibration_file(path)
        self.assertEqual(self.stereo.properties.calibration, [ord("{"), ord("}")])

        self.stereo.load_calibration_file("")
        self.assertEqual(self.stereo.properties.calibration, [])

        with self.assertRaises(RuntimeError) as ctx:
            self.stereo.load_calibration_file("/nonexistent/calib.json")
        self.assertIn("Unable to open calibration file", str(ctx.exception))

    def test_mesh_data(self):
        """测试校正网格"""
        self.stereo.load_mesh_data(b"L" * 32, b"R" * 32)
        mesh = self.stereo.properties.mesh
        self.assertEqual(mesh.mesh_left_uri, "asset:meshLeft")
        self.assertEqual(mesh.mesh_right_uri, "asset:meshRight")
        self.assertEqual(mesh.mesh_size, 32)
        self.assertEqual(self.stereo.get_assets().get("meshRight").data, b"R" * 32)

        # 重新加载替换原资源
        self.stereo.load_mesh_data(b"l" * 8, b"r" * 8)
        self.assertEqual(self.stereo.get_assets().size(), 2)
        self.assertEqual(mesh.mesh_size, 8)

        with self.assertRaises(RuntimeError):
            self.stereo.load_mesh_data(b"L" * 4, b"R" * 8)

    def test_mesh_files(self):
        """测试从文件加载校正网格"""
        with tempfile.TemporaryDirectory() as tmp:
            left = os.path.join(tmp, "left.mesh")
            right = os.path.join(tmp, "right.mesh")
            for path in (left, right):
                with open(path, "wb") as f:
                    f.write(b"\x00" * 16)
            self.stereo.load_mesh_files(left, right)

            with self.assertRaises(RuntimeError) as ctx:
                self.stereo.load_mesh_files(left, os.path.join(tmp, "missing.mesh"))
            self.assertIn("Cannot open mesh at path", str(ctx.exception))

        self.assertEqual(self.stereo.properties.mesh.mesh_size, 16)

    def test_mesh_step(self):
        """测试网格步长"""
        self.stereo.set_mesh_step(32, 8)
        self.assertEqual(self.stereo.get_properties()["mesh"]["stepWidth"], 32)
        self.assertEqual(self.stereo.get_properties()["mesh"]["stepHeight"], 8)
        with self.assertRaises(ValueError):
            self.stereo.set_mesh_step(0, 8)

    def test_deprecated_setters(self):
        """测试废弃接口"""
        with self.assertLogs("depthlink.nodes.processing.stereo_depth", level="WARNING") as logs:
            self.stereo.set_output_depth(True)
            self.stereo.set_output_rectified(True)
        self.assertEqual(len(logs.output), 2)
        self.assertIn("deprecated", logs.output[0])


class TestScript(unittest.TestCase):
    """测试Script节点"""

    def setUp(self):
        """测试前准备"""
        self.pipeline = Pipeline()
        self.script = self.pipeline.create(Script)

    def test_defaults(self):
        """测试默认属性"""
        self.assertEqual(self.script.get_script_name(), "<script>")
        self.assertEqual(self.script.get_processor(), ProcessorType.LEON_MSS)
        self.assertEqual(self.script.get_script_path(), "")
        self.assertEqual(self.script.get_script_data(), b"")
        self.assertEqual(self.script.validate(), ["未设置脚本"])

    def test_script_data(self):
        """测试脚本内容"""
        self.script.set_script_data("print('hi')", name="hello")
        self.assertEqual(self.script.get_script_data(), b"print('hi')")
        self.assertEqual(self.script.get_script_name(), "hello")
        self.assertEqual(self.script.get_properties()["scriptUri"], "asset:__script")
        self.assertEqual(self.script.validate(), [])

        self.script.set_script_data(b"pass")
        self.assertEqual(self.script.get_script_name(), "<script>")
        self.assertEqual(self.script.get_assets().size(), 1)

    def test_script_path(self):
        """测试从文件加载脚本"""
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "script.py")
            with open(path, "w", encoding="utf-8") as f:
                f.write("node.warn('x')")
            self.script.set_script_path(path)

            self.assertEqual(self.script.get_script_path(), path)
            self.assertEqual(self.script.get_script_name(), path)
            self.assertEqual(self.script.get_script_data(), b"node.warn('x')")

            with self.assertRaises(RuntimeError):
                self.script.set_script_path(os.path.join(tmp, "missing.py"))

        # 加载失败不影响原脚本
        self.assertEqual(self.script.get_script_data(), b"node.warn('x')")

    def test_processor(self):
        """测试处理器设置"""
        self.script.set_processor(ProcessorType.LEON_CSS)
        self.assertEqual(self.script.get_properties()["processor"], 0)
        self.script.set_processor("leon_mss")
        self.assertEqual(self.script.get_processor(), ProcessorType.LEON_MSS)

    def test_dynamic_ports(self):
        """测试动态端口"""
        self.assertEqual(self.script.get_inputs(), [])
        port_in = self.script.inputs["in"]
        port_out = self.script.outputs["out"]

        self.assertIs(self.script.get_input("in"), port_in)
        self.assertIs(self.script.get_output("out"), port_out)
        self.assertEqual(port_in.group, "io")
        self.assertIn("in", self.script.inputs)
        self.assertEqual(len(self.script.outputs), 1)

        # 动态端口只属于io组
        self.assertIsNone(self.script.get_input("in", group=""))
        self.assertIsNone(self.script.get_output("extra", group="other"))
        self.assertNotIn("extra", self.script.outputs)

        io_info = self.script.get_io_info()
        self.assertEqual(io_info["inputs"][0]["group"], "io")

    def test_script_links(self):
        """测试脚本端口连接"""
        xin = self.pipeline.create(XLinkIn)
        mono = self.pipeline.create(MonoCamera)
        xin.out.link(self.script.inputs["ctrl"])
        self.script.outputs["ctrl"].link(mono.input_control)

        connections = [c.to_dict() for c in self.pipeline.get_connections()]
        self.assertEqual(connections[0]["node2InputGroup"], "io")
        self.assertEqual(connections[1]["node1OutputGroup"], "io")


class TestMonoCamera(unittest.TestCase):
    """测试MonoCamera节点"""

    def setUp(self):
        """测试前准备"""
        self.pipeline = Pipeline()
        self.camera = self.pipeline.create(MonoCamera)

    def test_settings(self):
        """测试属性设置"""
        self.camera.set_board_socket("RIGHT")
        self.camera.set_resolution(SensorResolution.THE_400_P)
        self.camera.set_fps(60)

        self.assertEqual(self.camera.get_board_socket(), CameraBoardSocket.RIGHT)
        self.assertEqual(self.camera.get_resolution_size(), (640, 400))
        self.assertEqual(self.camera.get_resolution_width(), 640)
        self.assertEqual(self.camera.get_resolution_height(), 400)
        self.assertEqual(self.camera.get_fps(), 60.0)
        self.assertEqual(self.camera.get_properties()["boardSocket"], 2)

        with self.assertRaises(ValueError):
            self.camera.set_fps(0)

    def test_control_input(self):
        """测试控制输入端口"""
        self.assertEqual(self.camera.get_input("inputControl"), self.camera.input_control)
        self.assertFalse(self.camera.input_control.get_blocking())


class TestXLink(unittest.TestCase):
    """测试XLink节点"""

    def test_xlink_in(self):
        """测试XLinkIn"""
        pipeline = Pipeline()
        xin = pipeline.create(XLinkIn)
        xin.set_stream_name("control")
        xin.set_max_data_size(1024)
        xin.set_num_frames(4)

        self.assertEqual(xin.get_properties(),
                         {"streamName": "control", "maxDataSize": 1024, "numFrames": 4})
        with self.assertRaises(ValueError):
            xin.set_num_frames(0)

    def test_xlink_out(self):
        """测试XLinkOut"""
        pipeline = Pipeline()
        xout = pipeline.create(XLinkOut)
        self.assertEqual(xout.validate(), ["未设置流名"])
        self.assertEqual(xout.input.name, "in")
        self.assertTrue(xout.input.get_blocking())

        xout.set_stream_name("video")
        xout.set_fps_limit(10)
        xout.set_metadata_only(True)
        self.assertEqual(xout.get_fps_limit(), 10)
        self.assertTrue(xout.get_metadata_only())
        self.assertEqual(xout.validate(), [])

        xout.set_fps_limit(-1)
        with self.assertRaises(ValueError):
            xout.set_fps_limit(0)

    def test_node_registry(self):
        """测试节点类型注册表"""
        self.assertEqual(set(NODE_TYPES),
                         {"MonoCamera", "StereoDepth", "Script", "XLinkIn", "XLinkOut"})


if __name__ == "__main__":
    unittest.main()

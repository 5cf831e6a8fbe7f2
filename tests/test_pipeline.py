#!/usr/bin/env python3
"""
Pipeline测试
测试节点创建、端口连接、检查与序列化
"""

import gc
import json
import os
import tempfile
import unittest

from depthlink.core.node import NodeConnection
from depthlink.core.pipeline import Pipeline
from depthlink.core.types import CameraBoardSocket, MedianFilter
from depthlink.nodes import MonoCamera, StereoDepth, Script, XLinkIn, XLinkOut


def build_depth_pipeline():
    """左右相机 -> StereoDepth -> XLinkOut"""
    pipeline = Pipeline("test_depth")
    mono_left = pipeline.create(MonoCamera)
    mono_right = pipeline.create(MonoCamera)
    stereo = pipeline.create(StereoDepth)
    xout = pipeline.create(XLinkOut)

    mono_left.set_board_socket(CameraBoardSocket.LEFT)
    mono_right.set_board_socket(CameraBoardSocket.RIGHT)
    xout.set_stream_name("disparity")

    mono_left.out.link(stereo.left)
    mono_right.out.link(stereo.right)
    stereo.disparity.link(xout.input)
    return pipeline, mono_left, mono_right, stereo, xout


class TestPipelineGraph(unittest.TestCase):
    """测试Pipeline图结构"""

    def test_create_assigns_ids(self):
        """测试节点ID分配"""
        pipeline = Pipeline()
        a = pipeline.create(MonoCamera)
        b = pipeline.create(StereoDepth)
        self.assertEqual((a.id, b.id), (0, 1))
        self.assertIs(pipeline.get_node(1), b)
        self.assertIs(a.get_parent_pipeline(), pipeline)

        # 移除后ID不复用
        pipeline.remove(a)
        c = pipeline.create(XLinkOut)
        self.assertEqual(c.id, 2)

    def test_link(self):
        """测试连接"""
        pipeline, mono_left, _, stereo, xout = build_depth_pipeline()

        self.assertEqual(len(pipeline.get_connections()), 3)
        self.assertTrue(pipeline.is_linked(stereo.left))
        self.assertEqual(mono_left.out.get_connections(),
                         [NodeConnection(mono_left.out, stereo.left)])
        self.assertEqual(len(pipeline.node_connections[stereo.id]), 3)

    def test_link_output_fanout(self):
        """测试一个输出连接多个输入"""
        pipeline = Pipeline()
        mono = pipeline.create(MonoCamera)
        xout_a = pipeline.create(XLinkOut)
        xout_b = pipeline.create(XLinkOut)

        mono.out.link(xout_a.input)
        mono.out.link(xout_b.input)
        self.assertEqual(len(mono.out.get_connections()), 2)

    def test_link_incompatible(self):
        """测试数据类型不兼容"""
        pipeline = Pipeline()
        mono = pipeline.create(MonoCamera)
        other = pipeline.create(MonoCamera)

        self.assertFalse(mono.out.can_connect(other.input_control))
        with self.assertRaises(ValueError):
            mono.out.link(other.input_control)
        self.assertEqual(pipeline.get_connections(), [])

    def test_link_descendant_types(self):
        """测试父类型端口与子类型端口互连"""
        pipeline = Pipeline()
        xin = pipeline.create(XLinkIn)
        mono = pipeline.create(MonoCamera)
        stereo = pipeline.create(StereoDepth)

        # Buffer(含子类型) -> CameraControl / ImgFrame
        self.assertTrue(xin.out.can_connect(mono.input_control))
        self.assertTrue(xin.out.can_connect(stereo.left))

    def test_link_duplicate(self):
        """测试重复连接"""
        pipeline, mono_left, _, stereo, _ = build_depth_pipeline()
        with self.assertRaises(ValueError):
            mono_left.out.link(stereo.left)

    def test_link_cross_pipeline(self):
        """测试跨Pipeline连接"""
        p1 = Pipeline("p1")
        p2 = Pipeline("p2")
        mono = p1.create(MonoCamera)
        xout = p2.create(XLinkOut)

        self.assertFalse(mono.out.can_connect(xout.input))
        with self.assertRaises(ValueError):
            p1.link(mono.out, xout.input)

    def test_unlink(self):
        """测试断开连接"""
        pipeline, mono_left, _, stereo, _ = build_depth_pipeline()
        mono_left.out.unlink(stereo.left)

        self.assertFalse(pipeline.is_linked(stereo.left))
        self.assertEqual(len(pipeline.get_connections()), 2)
        with self.assertRaises(ValueError):
            mono_left.out.unlink(stereo.left)

    def test_remove_node(self):
        """测试移除节点及其连接"""
        pipeline, _, _, stereo, _ = build_depth_pipeline()
        self.assertTrue(pipeline.remove(stereo))

        self.assertIsNone(pipeline.get_node(stereo.id))
        self.assertEqual(pipeline.get_connections(), [])
        self.assertFalse(pipeline.remove(stereo))

    def test_link_removed_node(self):
        """测试已移除节点不能重新连接"""
        pipeline = Pipeline()
        mono = pipeline.create(MonoCamera)
        xout = pipeline.create(XLinkOut)
        xout.set_stream_name("mono")
        pipeline.remove(mono)

        self.assertFalse(pipeline.contains(mono))
        self.assertTrue(pipeline.contains(xout))
        self.assertFalse(mono.out.can_connect(xout.input))
        with self.assertRaises(ValueError):
            mono.out.link(xout.input)
        self.assertEqual(pipeline.get_connections(), [])

    def test_link_unregistered_clone(self):
        """测试未加入Pipeline的节点副本不能连接"""
        pipeline = Pipeline()
        mono = pipeline.create(MonoCamera)
        xout = pipeline.create(XLinkOut)
        cloned = mono.clone()

        self.assertFalse(pipeline.contains(cloned))
        with self.assertRaises(ValueError):
            cloned.out.link(xout.input)

    def test_get_nodes_by_type(self):
        """测试按类型查找节点"""
        pipeline, mono_left, mono_right, stereo, _ = build_depth_pipeline()
        self.assertEqual(pipeline.get_nodes_by_type(MonoCamera), [mono_left, mono_right])
        self.assertEqual(pipeline.get_nodes_by_type(StereoDepth), [stereo])

    def test_parent_pipeline_released(self):
        """测试Pipeline释放后节点访问"""
        pipeline = Pipeline()
        mono = pipeline.create(MonoCamera)
        del pipeline
        gc.collect()
        with self.assertRaises(RuntimeError):
            mono.get_parent_pipeline()

    def test_clone_node(self):
        """测试节点复制"""
        pipeline = Pipeline()
        stereo = pipeline.create(StereoDepth)
        stereo.load_mesh_data(b"12", b"34")

        cloned = stereo.clone()
        cloned.set_confidence_threshold(10)
        cloned.asset_manager.remove("meshLeft")

        self.assertEqual(stereo.properties.confidence_threshold, 200)
        self.assertIn("meshLeft", stereo.get_assets())
        self.assertIs(cloned.left.parent, cloned)
        self.assertIs(cloned.get_parent_pipeline(), pipeline)


class TestPipelineValidate(unittest.TestCase):
    """测试Pipeline检查"""

    def test_valid_pipeline(self):
        """测试有效Pipeline"""
        pipeline = build_depth_pipeline()[0]
        self.assertTrue(pipeline.validate())
        self.assertIn("validated=True", repr(pipeline))

    def test_empty_pipeline(self):
        """测试空Pipeline"""
        self.assertFalse(Pipeline().validate())

    def test_unlinked_stereo_inputs(self):
        """测试StereoDepth输入未连接"""
        pipeline = Pipeline()
        pipeline.create(StereoDepth)
        with self.assertLogs("Pipeline_pipeline", level="ERROR") as logs:
            self.assertFalse(pipeline.validate())
        self.assertTrue(any("left" in line for line in logs.output))

    def test_duplicate_stream_names(self):
        """测试XLink流名重复"""
        pipeline = Pipeline()
        mono = pipeline.create(MonoCamera)
        for _ in range(2):
            xout = pipeline.create(XLinkOut)
            xout.set_stream_name("frames")
            mono.out.link(xout.input)
        self.assertFalse(pipeline.validate())

    def test_missing_stream_name(self):
        """测试未设置流名"""
        pipeline = Pipeline()
        pipeline.create(XLinkIn)
        self.assertFalse(pipeline.validate())

    def test_connection_to_missing_node(self):
        """测试连接引用不存在的节点"""
        pipeline = Pipeline()
        mono = pipeline.create(MonoCamera)
        xout = pipeline.create(XLinkOut)
        xout.set_stream_name("mono")
        mono.out.link(xout.input)
        self.assertTrue(pipeline.validate())

        # 绕过remove直接删除节点，连接残留
        del pipeline.nodes[mono.id]
        with self.assertLogs("Pipeline_pipeline", level="ERROR") as logs:
            self.assertFalse(pipeline.validate())
        self.assertTrue(any("不存在的节点" in line for line in logs.output))

    def test_revalidate_after_change(self):
        """测试修改后重新检查"""
        pipeline, mono_left, _, stereo, _ = build_depth_pipeline()
        self.assertTrue(pipeline.validate())
        mono_left.out.unlink(stereo.left)
        self.assertFalse(pipeline.validate())


class TestPipelineSerialize(unittest.TestCase):
    """测试Pipeline序列化"""

    def test_schema(self):
        """测试schema结构"""
        pipeline, _, _, stereo, xout = build_depth_pipeline()
        stereo.set_median_filter(MedianFilter.KERNEL_7x7)
        pipeline.set_xlink_chunk_size(0)

        schema = pipeline.get_schema()

        self.assertEqual(schema["globalProperties"]["pipelineName"], "test_depth")
        self.assertEqual(schema["globalProperties"]["xlinkChunkSize"], 0)
        self.assertEqual(set(schema["nodes"]), {0, 1, 2, 3})

        stereo_schema = schema["nodes"][stereo.id]
        self.assertEqual(stereo_schema["name"], "StereoDepth")
        self.assertEqual(stereo_schema["properties"]["median"], 7)
        self.assertEqual([p["name"] for p in stereo_schema["ioInfo"]["inputs"]], ["left", "right"])

        self.assertIn({
            "node1Id": stereo.id,
            "node1Output": "disparity",
            "node1OutputGroup": "",
            "node2Id": xout.id,
            "node2Input": "in",
            "node2InputGroup": "",
        }, schema["connections"])

        # 可序列化为JSON
        self.assertEqual(json.loads(pipeline.to_json())["globalProperties"]["pipelineName"], "test_depth")

    def test_invalid_chunk_size(self):
        """测试无效分块大小"""
        with self.assertRaises(ValueError):
            Pipeline().set_xlink_chunk_size(-5)

    def test_asset_uris(self):
        """测试节点资源URI改写与资源存储"""
        pipeline = Pipeline()
        script = pipeline.create(Script)
        stereo = pipeline.create(StereoDepth)
        script.set_script_data("print(1)")
        stereo.load_mesh_data(b"a" * 10, b"b" * 10)

        schema, asset_map, storage = pipeline.serialize()

        self.assertEqual(schema["nodes"][script.id]["properties"]["scriptUri"], "asset:/node/0/__script")
        mesh = schema["nodes"][stereo.id]["properties"]["mesh"]
        self.assertEqual(mesh["meshLeftUri"], "asset:/node/1/meshLeft")
        self.assertEqual(mesh["meshRightUri"], "asset:/node/1/meshRight")
        self.assertEqual(mesh["meshSize"], 10)

        self.assertEqual(asset_map["/node/0/__script"], {"offset": 0, "size": 8, "alignment": 64})
        self.assertEqual(asset_map["/node/1/meshLeft"]["offset"], 64)
        self.assertEqual(asset_map["/node/1/meshRight"]["offset"], 128)
        self.assertEqual(storage[0:8], b"print(1)")
        self.assertEqual(storage[128:138], b"b" * 10)

        # 节点内URI保持相对
        self.assertEqual(script.properties.script_uri, "asset:__script")

    def test_camera_tuning_and_calibration(self):
        """测试全局资源与标定数据"""
        pipeline = Pipeline()
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "tuning.bin")
            with open(path, "wb") as f:
                f.write(b"tuning")
            pipeline.set_camera_tuning_blob_path(path)

        pipeline.set_calibration_data({"boardName": "test"})
        _, asset_map, storage = pipeline.serialize()

        self.assertEqual(pipeline.global_properties.camera_tuning_blob_uri, "asset:camTuning")
        self.assertEqual(asset_map["camTuning"]["size"], 6)
        self.assertEqual(storage[:6], b"tuning")
        self.assertEqual(pipeline.get_calibration_data(), {"boardName": "test"})

    def test_export(self):
        """测试导出"""
        pipeline = Pipeline()
        script = pipeline.create(Script)
        script.set_script_data(b"\x01\x02")

        with tempfile.TemporaryDirectory() as tmp:
            out_dir = pipeline.export(os.path.join(tmp, "out"))

            schema = json.loads((out_dir / "pipeline.json").read_text(encoding="utf-8"))
            asset_map = json.loads((out_dir / "assets.json").read_text(encoding="utf-8"))
            storage = (out_dir / "assets.bin").read_bytes()

        # JSON对象键为字符串
        self.assertEqual(schema["nodes"]["0"]["name"], "Script")
        self.assertEqual(asset_map["/node/0/__script"]["size"], 2)
        self.assertEqual(storage, b"\x01\x02")


if __name__ == "__main__":
    unittest.main()

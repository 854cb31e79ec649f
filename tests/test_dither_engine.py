"""
Unit tests for the dither engine.

Tests image loading, algorithm selection, Lua scripts and export.
"""

import unittest
import tempfile
from pathlib import Path

import pytest
from PIL import Image

from OD_Libs.constants import ALGORITHM_FLOYD_STEINBERG, TITLE_NONE, TITLE_SCRIPT
from OD_Libs.EngineLib.algorithm_registry import create_default_registry
from OD_Libs.EngineLib.dither_engine import DitherEngine, DitherEngineConfig
from OD_Libs.EngineLib.image_io import DecodeError


class TestDitherEngineConfig(unittest.TestCase):
    """Tests for DitherEngineConfig."""

    def test_defaults(self):
        config = DitherEngineConfig()
        self.assertEqual(config.export_name, "out")
        self.assertEqual(config.save_format, "PNG")
        self.assertTrue(config.overwrite)

    def test_from_dict_ignores_unknown_keys(self):
        config = DitherEngineConfig.from_dict({"export_name": "result", "unknown": 1})
        self.assertEqual(config.export_name, "result")
        self.assertEqual(config.to_dict()["save_format"], "PNG")


class TestDitherEngine(unittest.TestCase):
    """Tests for DitherEngine."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self._tmp.name)
        self.image_path = self.tmp_path / "photo.png"
        Image.new("RGB", (8, 8), (100, 150, 200)).save(self.image_path)
        self.engine = DitherEngine()

    def tearDown(self):
        self.engine.close()
        self._tmp.cleanup()

    def test_no_image_initially(self):
        self.assertFalse(self.engine.has_image)
        self.assertIsNone(self.engine.displayed)
        self.assertEqual(self.engine.title, TITLE_NONE)

    def test_load_image(self):
        self.engine.load_image(self.image_path)

        self.assertTrue(self.engine.has_image)
        self.assertEqual(self.engine.base.size, (8, 8))
        self.assertEqual(self.engine.displayed, self.engine.base)
        self.assertIsNot(self.engine.displayed, self.engine.base)

    def test_failed_load_keeps_previous_image(self):
        self.engine.load_image(self.image_path)

        with self.assertRaises(DecodeError):
            self.engine.load_image(self.tmp_path / "missing.png")

        self.assertEqual(self.engine.base.size, (8, 8))

    def test_select_applies_registry_index_minus_one(self):
        self.engine.load_image(self.image_path)
        names = self.engine.registry.list_algorithm_names()

        for selection in range(1, len(names) + 1):
            self.assertTrue(self.engine.select(selection, colored=False))
            self.assertEqual(self.engine.title, names[selection - 1])

    def test_select_zero_restores_original(self):
        self.engine.load_image(self.image_path)
        self.engine.select(6)
        self.assertNotEqual(self.engine.displayed, self.engine.base)

        self.assertTrue(self.engine.select(0))
        self.assertEqual(self.engine.displayed, self.engine.base)
        self.assertEqual(self.engine.title, TITLE_NONE)
        self.assertEqual(self.engine.execution_time, 0.0)

    def test_select_out_of_range_does_nothing(self):
        self.engine.load_image(self.image_path)

        self.assertFalse(self.engine.select(7))
        self.assertFalse(self.engine.select(-1))
        self.assertEqual(self.engine.title, TITLE_NONE)

    def test_select_without_image_does_nothing(self):
        self.assertFalse(self.engine.select(1))

    def test_apply_never_touches_base(self):
        self.engine.load_image(self.image_path)
        original = self.engine.base.copy()

        self.engine.apply_algorithm(ALGORITHM_FLOYD_STEINBERG, colored=True)

        self.assertEqual(self.engine.base, original)
        self.assertEqual(self.engine.title, ALGORITHM_FLOYD_STEINBERG)
        self.assertGreaterEqual(self.engine.execution_time, 0.0)

    def test_apply_grayscale_output_is_gray(self):
        self.engine.load_image(self.image_path)
        self.engine.apply_algorithm(2, colored=False)

        pixels = self.engine.displayed.pixels
        self.assertTrue((pixels[:, :, 0] == pixels[:, :, 1]).all())
        self.assertTrue((pixels[:, :, 1] == pixels[:, :, 2]).all())

    def test_apply_unknown_key_raises(self):
        self.engine.load_image(self.image_path)

        with self.assertRaises(KeyError):
            self.engine.apply_algorithm("Atkinson")

    def test_apply_without_image_raises(self):
        with self.assertRaises(RuntimeError):
            self.engine.apply_algorithm(0)

    def test_custom_registry(self):
        registry = create_default_registry()
        registry.unregister("Random")
        engine = DitherEngine(registry=registry)
        engine.load_image(self.image_path)

        self.assertTrue(engine.select(5))
        self.assertEqual(engine.title, ALGORITHM_FLOYD_STEINBERG)
        self.assertFalse(engine.select(6))

    def test_run_script(self):
        script = self.tmp_path / "invert.lua"
        script.write_text(
            "function Execute()\n"
            "  local c = GetColor(0, 0)\n"
            "  SetColor(0, 0, {r = 255 - c.r, g = 255 - c.g, b = 255 - c.b})\n"
            "end\n"
        )
        self.engine.load_image(self.image_path)

        self.assertIsNone(self.engine.run_script(script, colored=True))
        self.assertEqual(self.engine.displayed.get_pixel(0, 0), (155, 105, 55))
        self.assertEqual(self.engine.title, TITLE_SCRIPT)
        self.assertEqual(self.engine.base.get_pixel(0, 0), (100, 150, 200))

    def test_run_script_grayscale_pre_step(self):
        script = self.tmp_path / "noop.lua"
        script.write_text("function Execute() end")
        self.engine.load_image(self.image_path)

        self.assertIsNone(self.engine.run_script(script, colored=False))
        r, g, b = self.engine.displayed.get_pixel(3, 3)
        self.assertEqual(r, g)
        self.assertEqual(g, b)

    def test_run_script_failure_keeps_partial_result(self):
        script = self.tmp_path / "partial.lua"
        script.write_text(
            "function Execute()\n"
            "  SetColor(0, 0, {r = 1, g = 2, b = 3})\n"
            "  error('stopped')\n"
            "end\n"
        )
        self.engine.load_image(self.image_path)

        error = self.engine.run_script(script)

        self.assertIsNotNone(error)
        self.assertIn("stopped", error)
        self.assertEqual(self.engine.displayed.get_pixel(0, 0), (1, 2, 3))
        self.assertEqual(self.engine.displayed.get_pixel(1, 0), (100, 150, 200))

    def test_export_writes_next_to_source(self):
        self.engine.load_image(self.image_path)
        self.engine.select(6)

        saved = self.engine.export()

        self.assertEqual(saved, self.tmp_path.resolve() / "out.png")
        with Image.open(saved) as img:
            self.assertEqual(img.size, (8, 8))

    def test_export_to_directory(self):
        self.engine.load_image(self.image_path)
        out_dir = self.tmp_path / "exports"
        out_dir.mkdir()

        saved = self.engine.export("result_1", directory=out_dir)

        self.assertEqual(saved, out_dir / "result_1.png")
        self.assertTrue(saved.exists())

    def test_export_rejects_invalid_names(self):
        self.engine.load_image(self.image_path)

        for name in ("", "bad name", "../escape", "dot.png", "out\n", "out\r\n"):
            with self.assertRaises(ValueError):
                self.engine.export(name)

    def test_export_rejects_trailing_newline_without_writing(self):
        self.engine.load_image(self.image_path)

        with self.assertRaises(ValueError):
            self.engine.export("out\n")

        self.assertEqual(sorted(p.name for p in self.tmp_path.iterdir()), ["photo.png"])

    def test_export_extension_follows_save_format(self):
        engine = DitherEngine(DitherEngineConfig(save_format="JPEG"))
        engine.load_image(self.image_path)

        saved = engine.export("result")

        self.assertEqual(saved.name, "result.jpg")
        with Image.open(saved) as img:
            self.assertEqual(img.format, "JPEG")

    def test_export_without_image_raises(self):
        with self.assertRaises(RuntimeError):
            self.engine.export()

    def test_process_batch_uses_configured_suffix(self):
        config_path = self.tmp_path / "batch.txt"
        config_path.write_text("5 0")
        engine = DitherEngine(DitherEngineConfig(output_suffix="_fs"))

        written = engine.process_batch([self.image_path, config_path])

        self.assertEqual(written, [self.tmp_path / "photo_fs.png"])
        self.assertTrue(written[0].exists())
        self.assertFalse(engine.has_image)

    def test_context_manager_closes(self):
        with DitherEngine() as engine:
            engine.load_image(self.image_path)

        self.assertFalse(engine.has_image)


@pytest.mark.parametrize("selection", [1, 2, 3, 4, 5, 6])
def test_every_selection_produces_binary_channels(sample_png, selection):
    with DitherEngine() as engine:
        engine.load_image(sample_png)
        engine.select(selection, colored=True)

        values = set(engine.displayed.pixels.flatten().tolist())
        assert values <= {0, 255}


if __name__ == "__main__":
    unittest.main()

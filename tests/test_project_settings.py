import pathlib
import tempfile
import unittest

from depthscan.config import project_settings as keys
from depthscan.config.project_settings import ProjectSettings, coerce_bool


class ProjectSettingsTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = pathlib.Path(self._tmp.name) / "bust"
        self.root.mkdir()
        self.path = self.root / "project.ini"
        self.path.write_text(
            "[PROJECT_SETTINGS]\nNAME=\nDEBUG_INTERFACE=true\n"
            "[READING_SETTING]\nFROM=3\nTO=oops\n",
            encoding="utf-8",
        )

    def tearDown(self):
        self._tmp.cleanup()

    def test_flag_write_is_visible_to_a_fresh_reader(self):
        settings = ProjectSettings(self.path)
        self.assertTrue(settings.set_flag(keys.ENABLE_STREAM_RECORDING, True))

        reopened = ProjectSettings(self.path)
        self.assertTrue(reopened.bool_value(keys.ENABLE_STREAM_RECORDING))
        self.assertIn("STREAM_SETTINGS", self.path.read_text(encoding="utf-8"))

    def test_reads_ini_text_as_typed_values(self):
        settings = ProjectSettings(self.path)
        self.assertTrue(settings.bool_value(keys.DEBUG_INTERFACE))
        self.assertEqual(settings.int_value(keys.READ_FROM), 3)
        self.assertEqual(settings.int_value(keys.READ_TO, 7), 7)
        self.assertFalse(settings.bool_value(keys.ENABLE_RECONSTRUCTION))

    def test_project_name_falls_back_to_directory(self):
        settings = ProjectSettings(self.path)
        self.assertEqual(settings.project_name, "bust")
        settings.set_value(keys.PROJECT_NAME, "Statue")
        self.assertEqual(settings.project_name, "Statue")

    def test_reload_picks_up_external_edits(self):
        settings = ProjectSettings(self.path)
        other = ProjectSettings(self.path)
        other.set_value(keys.READ_FROM, 11)
        settings.reload()
        self.assertEqual(settings.int_value(keys.READ_FROM), 11)


def test_coerce_bool_handles_ini_strings() -> None:
    assert coerce_bool("true") is True
    assert coerce_bool("On") is True
    assert coerce_bool("0") is False
    assert coerce_bool("") is False
    assert coerce_bool("maybe", default=True) is True
    assert coerce_bool(None) is False
    assert coerce_bool(2) is True

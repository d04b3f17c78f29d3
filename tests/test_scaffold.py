from depthscan.project.layout import ProjectLayout
from depthscan.project.scaffold import make_project


def test_make_project_creates_full_layout(tmp_path, template_dir) -> None:
    report = make_project(tmp_path / "new", template_dir)
    layout = ProjectLayout(tmp_path / "new")

    assert report.ok
    assert layout.settings_file.is_file()
    assert (layout.calibration_dir / "intrinsics.yaml").is_file()
    assert layout.stream_dir.is_dir()
    assert layout.pcd_dir.is_dir()


def test_make_project_keeps_existing_settings(tmp_path, template_dir) -> None:
    root = tmp_path / "existing"
    root.mkdir()
    (root / "project.ini").write_text("[PROJECT_SETTINGS]\nNAME=Mine\n", encoding="utf-8")

    report = make_project(root, template_dir)

    assert report.ok
    assert "NAME=Mine" in (root / "project.ini").read_text(encoding="utf-8")


def test_missing_template_is_reported_but_folders_are_created(tmp_path) -> None:
    root = tmp_path / "orphan"
    report = make_project(root, tmp_path / "no_template")

    assert not report.ok
    assert any("Default project does not exist" in msg for msg in report.failures)
    assert (root / "stream").is_dir()
    assert (root / "pcd").is_dir()
    assert not (root / "project.ini").exists()

"""
Tests for the CLI

Tests for producer/cli.py
"""

import pytest
from typer.testing import CliRunner

from conftest import FakeBriaClient
from producer import __version__, cli
from producer.director import Director
from producer.models import SceneStatus, Storyboard
from producer.services import FailurePolicy
from producer.store import SceneStore

runner = CliRunner()


@pytest.fixture
def storyboard_file(tmp_path, sample_script):
    """Storyboard created by the segment command."""
    script = tmp_path / "pilot.txt"
    script.write_text(sample_script)
    path = tmp_path / "storyboard.yaml"
    result = runner.invoke(cli.app, ["segment", str(script), "--storyboard", str(path)])
    assert result.exit_code == 0, result.output
    return path


@pytest.fixture
def offline_director(monkeypatch, make_router):
    """Make generate/analyze use a fake client instead of the network."""
    client = FakeBriaClient(
        statuses=[{"status": "COMPLETED", "result": {"urls": ["https://cdn.test/cli.png"], "seed": 1}}],
        analysis={"result": {"structured_prompt": {"short_description": "Analyzed"}}},
    )

    def build(storyboard, policy):
        return Director(
            store=SceneStore(storyboard.scenes),
            router=make_router(client, policy=policy or FailurePolicy.MOCK),
            script=storyboard.script,
        )

    monkeypatch.setattr(cli, "_build_director", build)
    return client


class TestBasics:
    """Tests for the root command and stateless commands."""

    def test_version(self):
        result = runner.invoke(cli.app, ["--version"])

        assert result.exit_code == 0
        assert f"producer version {__version__}" in result.output

    def test_infer(self):
        result = runner.invoke(cli.app, ["infer", "EXT. STREET - NIGHT", "--seed", "4"])

        assert result.exit_code == 0
        assert "noir" in result.output
        assert "seed: 4" in result.output

    def test_status_without_storyboard(self, tmp_path):
        result = runner.invoke(cli.app, ["status", "--storyboard", str(tmp_path / "none.yaml")])

        assert result.exit_code == 1
        assert "No storyboard found" in result.output


class TestSegment:
    """Tests for the segment command."""

    def test_creates_storyboard(self, storyboard_file):
        storyboard = Storyboard.from_yaml(storyboard_file)

        assert storyboard.project_name == "pilot"
        assert [s.script_text for s in storyboard.scenes] == ["INT. ROOM - DAY", "EXT. STREET - NIGHT"]

    def test_resegment_keeps_images(self, tmp_path, storyboard_file, sample_script):
        storyboard = Storyboard.from_yaml(storyboard_file)
        storyboard.scenes[0] = storyboard.scenes[0].model_copy(update={
            "status": SceneStatus.COMPLETED,
            "image_url": "https://cdn.test/kept.png",
        })
        storyboard.to_yaml(storyboard_file)

        script = tmp_path / "pilot.txt"
        script.write_text(sample_script.replace("A quiet desk.", "A busy desk."))
        result = runner.invoke(cli.app, ["segment", str(script), "--storyboard", str(storyboard_file)])

        assert result.exit_code == 0
        scene = Storyboard.from_yaml(storyboard_file).scenes[0]
        assert scene.body == "A busy desk."
        assert scene.image_url == "https://cdn.test/kept.png"

    def test_script_without_headings(self, tmp_path):
        script = tmp_path / "notes.txt"
        script.write_text("just some notes")

        result = runner.invoke(cli.app, ["segment", str(script), "--storyboard", str(tmp_path / "s.yaml")])

        assert result.exit_code == 1


class TestSceneCommands:
    """Tests for commands that edit a storyboard."""

    def test_status(self, storyboard_file):
        result = runner.invoke(cli.app, ["status", "--storyboard", str(storyboard_file)])

        assert result.exit_code == 0
        assert "Scenes: 2 (0 generated)" in result.output
        assert "scene-2" in result.output

    def test_lock(self, storyboard_file):
        result = runner.invoke(cli.app, ["lock", "scene-1", "--storyboard", str(storyboard_file)])

        assert result.exit_code == 0
        scene = Storyboard.from_yaml(storyboard_file).scenes[0]
        assert scene.lock_composition is True
        assert scene.structure_seed == scene.parameters.seed

    def test_lock_unknown_scene(self, storyboard_file):
        result = runner.invoke(cli.app, ["lock", "scene-9", "--storyboard", str(storyboard_file)])

        assert result.exit_code == 1

    def test_preset(self, storyboard_file):
        result = runner.invoke(
            cli.app,
            ["preset", "Studio Setup", "--scene", "scene-2", "--storyboard", str(storyboard_file)],
        )

        assert result.exit_code == 0
        assert Storyboard.from_yaml(storyboard_file).scenes[1].parameters.lighting.type == "studio"

    def test_unknown_preset(self, storyboard_file):
        result = runner.invoke(
            cli.app,
            ["preset", "Vaporwave", "--scene", "scene-2", "--storyboard", str(storyboard_file)],
        )

        assert result.exit_code == 1


class TestGenerate:
    """Tests for the generate and analyze commands."""

    def test_requires_one_target(self, storyboard_file):
        result = runner.invoke(cli.app, ["generate", "--storyboard", str(storyboard_file)])

        assert result.exit_code == 1
        assert "exactly one" in result.output

    def test_unknown_scene(self, storyboard_file, offline_director):
        result = runner.invoke(cli.app, ["generate", "--scene", "scene-7", "--storyboard", str(storyboard_file)])

        assert result.exit_code == 1

    def test_generate_scene(self, storyboard_file, offline_director):
        result = runner.invoke(cli.app, ["generate", "--scene", "scene-1", "--storyboard", str(storyboard_file)])

        assert result.exit_code == 0, result.output
        scenes = Storyboard.from_yaml(storyboard_file).scenes
        assert scenes[0].status == SceneStatus.COMPLETED
        assert scenes[0].image_url == "https://cdn.test/cli.png"
        assert scenes[1].status == SceneStatus.PENDING
        assert offline_director.closed

    def test_generate_all(self, storyboard_file, offline_director):
        result = runner.invoke(cli.app, ["generate", "--all", "--storyboard", str(storyboard_file)])

        assert result.exit_code == 0, result.output
        assert all(s.status == SceneStatus.COMPLETED for s in Storyboard.from_yaml(storyboard_file).scenes)

    def test_generate_failure_exit_code(self, storyboard_file, offline_director):
        offline_director.statuses = [{"status": "FAILED", "error": "blocked"}]

        result = runner.invoke(
            cli.app,
            ["generate", "--scene", "scene-1", "--policy", "mark-failed", "--storyboard", str(storyboard_file)],
        )

        assert result.exit_code == 1
        assert Storyboard.from_yaml(storyboard_file).scenes[0].status == SceneStatus.FAILED

    def test_analyze(self, storyboard_file, offline_director):
        result = runner.invoke(cli.app, ["analyze", "--storyboard", str(storyboard_file)])

        assert result.exit_code == 0, result.output
        scene = Storyboard.from_yaml(storyboard_file).scenes[0]
        assert scene.visual_prompt == "Analyzed"
        assert scene.structured_prompt == {"short_description": "Analyzed"}

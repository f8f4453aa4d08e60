"""
Tests for Storyboard Persistence

Tests for producer/models/storyboard.py
"""

from producer.models import SceneStatus, Storyboard


class TestStoryboard:
    """Tests for YAML load and save."""

    def test_save_and_load(self, tmp_path, make_scene):
        scene = make_scene(
            status=SceneStatus.COMPLETED,
            image_url="https://cdn.test/a.png",
            structured_prompt={"short_description": "x"},
            lock_composition=True,
            structure_seed=9,
        )
        storyboard = Storyboard(project_name="Pilot", script="INT. ROOM - DAY", scenes=[scene])
        path = tmp_path / "nested" / "storyboard.yaml"

        storyboard.to_yaml(path)
        loaded = Storyboard.from_yaml(path)

        assert loaded.project_name == "Pilot"
        assert loaded.scenes[0] == scene

    def test_accepts_wire_names(self, tmp_path):
        path = tmp_path / "storyboard.yaml"
        path.write_text(
            "project_name: Pilot\n"
            "scenes:\n"
            "  - id: scene-1\n"
            "    scriptText: INT. ROOM - DAY\n"
            "    visualPrompt: A desk\n"
            "    lockComposition: true\n"
            "    parameters:\n"
            "      camera:\n"
            "        shotType: close_up\n"
        )

        loaded = Storyboard.from_yaml(path)

        scene = loaded.scenes[0]
        assert scene.script_text == "INT. ROOM - DAY"
        assert scene.lock_composition is True
        assert scene.parameters.camera.shot_type == "close_up"
        assert scene.status == SceneStatus.PENDING

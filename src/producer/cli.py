"""CLI entry point for the storyboard producer."""

import asyncio
import logging
import typer
import yaml
from pathlib import Path
from typing import Optional

from . import __version__
from .config import config
from .director import PRESETS, Director
from .exceptions import ConfigurationError
from .models import Scene, SceneStatus, Storyboard
from .script import ScriptSegmenter, infer_parameters
from .services import FailurePolicy, GenerationRouter
from .store import SceneStore

app = typer.Typer(
    name="producer",
    help="Screenplay to storyboard producer",
    no_args_is_help=True
)

STATUS_ICONS = {
    SceneStatus.PENDING: "⏳",
    SceneStatus.GENERATING: "🔄",
    SceneStatus.COMPLETED: "✅",
    SceneStatus.FAILED: "❌",
}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"producer version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    )
) -> None:
    """Producer - Turn a screenplay into a storyboard of generated shots."""
    pass


def _load_storyboard(path: Path) -> Storyboard:
    if not path.exists():
        typer.echo(f"❌ No storyboard found at {path}")
        typer.echo("   Run 'producer segment' to create one")
        raise typer.Exit(1)
    try:
        return Storyboard.from_yaml(path)
    except Exception as e:
        typer.echo(f"❌ Error loading storyboard: {e}")
        raise typer.Exit(1)


def _save_storyboard(storyboard: Storyboard, path: Path) -> None:
    try:
        storyboard.to_yaml(path)
    except Exception as e:
        typer.echo(f"❌ Error saving storyboard: {e}")
        raise typer.Exit(1)


def _preview(text: str, limit: int = 60) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def _echo_scene(scene: Scene) -> None:
    lock = " 🔒" if scene.lock_composition else ""
    typer.echo(f"   {STATUS_ICONS[scene.status]} {scene.id}: {scene.script_text}{lock}")
    if scene.visual_prompt:
        typer.echo(f"      → {_preview(scene.visual_prompt)}")
    if scene.image_url:
        typer.echo(f"      🖼️  {scene.image_url}")
    if scene.error:
        typer.echo(f"      ⚠️  {scene.error}")


def _build_director(storyboard: Storyboard, policy: Optional[FailurePolicy]) -> Director:
    """Director over the storyboard's scenes, talking to the configured API."""
    try:
        config.validate_required()
    except ConfigurationError as e:
        typer.echo(f"❌ Configuration error: {e}")
        raise typer.Exit(1)

    if config.uses_demo_key:
        typer.echo("⚠️  BRIA_API_KEY not set, using the demo token")

    return Director(
        store=SceneStore(storyboard.scenes),
        router=GenerationRouter(failure_policy=policy),
        script=storyboard.script,
    )


def _close(director: Director) -> None:
    client = director.router.client
    if hasattr(client, "close"):
        client.close()


@app.command()
def segment(
    script_file: Path = typer.Argument(
        ...,
        help="Screenplay text file",
        exists=True,
        file_okay=True,
        dir_okay=False
    ),
    storyboard_path: Path = typer.Option(
        Path("storyboard.yaml"),
        "--storyboard",
        "-s",
        help="Storyboard YAML file to create or update"
    ),
    name: Optional[str] = typer.Option(
        None,
        "--name",
        "-n",
        help="Project name (defaults to the script file name)"
    ),
) -> None:
    """Split a screenplay into scenes and save them as a storyboard.

    Re-running on an edited script keeps the generated images and settings
    of scenes that already exist.
    """
    text = script_file.read_text()
    previous = Storyboard.from_yaml(storyboard_path) if storyboard_path.exists() else None

    scenes = ScriptSegmenter().segment(text, previous.scenes if previous else [])
    if not scenes:
        typer.echo("❌ No scene headings found (INT. / EXT. / INT/EXT. / I/E.)")
        raise typer.Exit(1)

    project_name = name or (previous.project_name if previous else script_file.stem)
    storyboard = Storyboard(project_name=project_name, script=text, scenes=scenes)
    _save_storyboard(storyboard, storyboard_path)

    typer.echo(f"✅ Storyboard saved: {storyboard_path}")
    typer.echo(f"\n📽️  Scenes ({len(scenes)}):")
    for scene in scenes:
        _echo_scene(scene)


@app.command()
def infer(
    text: str = typer.Argument(
        ...,
        help="Scene text to infer parameters from"
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Fixed seed (random if omitted)"
    ),
) -> None:
    """Show the generation parameters inferred from a piece of scene text."""
    parameters = infer_parameters(text, seed=seed)
    typer.echo(yaml.safe_dump(parameters.to_payload(), default_flow_style=False, sort_keys=False))


@app.command()
def status(
    storyboard_path: Path = typer.Option(
        Path("storyboard.yaml"),
        "--storyboard",
        "-s",
        help="Path to storyboard YAML file"
    )
) -> None:
    """Show storyboard status."""
    storyboard = _load_storyboard(storyboard_path)

    done = sum(1 for scene in storyboard.scenes if scene.status == SceneStatus.COMPLETED)
    typer.echo(f"📁 Project: {storyboard.project_name}")
    typer.echo(f"   Scenes: {len(storyboard.scenes)} ({done} generated)")

    typer.echo("\n📽️  Scenes:")
    for scene in storyboard.scenes:
        _echo_scene(scene)


@app.command()
def generate(
    storyboard_path: Path = typer.Option(
        Path("storyboard.yaml"),
        "--storyboard",
        "-s",
        help="Path to storyboard YAML file"
    ),
    scene_id: Optional[str] = typer.Option(
        None,
        "--scene",
        help="Generate only this scene"
    ),
    all_scenes: bool = typer.Option(
        False,
        "--all",
        help="Generate every scene in order"
    ),
    policy: Optional[FailurePolicy] = typer.Option(
        None,
        "--policy",
        "-p",
        help="Failure policy (defaults to PRODUCER_FAILURE_POLICY)"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    ),
) -> None:
    """Generate shot images for one scene or the whole storyboard."""
    setup_logging(verbose)

    if bool(scene_id) == all_scenes:
        typer.echo("❌ Pass exactly one of --scene or --all")
        raise typer.Exit(1)

    storyboard = _load_storyboard(storyboard_path)
    if scene_id and not any(scene.id == scene_id for scene in storyboard.scenes):
        typer.echo(f"❌ Scene not found: {scene_id}")
        raise typer.Exit(1)

    director = _build_director(storyboard, policy)
    typer.echo(f"🎬 Generating {'all scenes' if all_scenes else scene_id}")
    typer.echo(f"   Failure policy: {director.router.failure_policy.value}")

    try:
        if all_scenes:
            asyncio.run(director.generate_all())
        else:
            asyncio.run(director.generate_shot(scene_id))
    finally:
        _close(director)

    storyboard.scenes = list(director.store.snapshot())
    _save_storyboard(storyboard, storyboard_path)

    targets = storyboard.scenes if all_scenes else [s for s in storyboard.scenes if s.id == scene_id]
    typer.echo("\n📽️  Results:")
    for scene in targets:
        _echo_scene(scene)

    failed = [scene.id for scene in targets if scene.status == SceneStatus.FAILED]
    if failed:
        typer.echo(f"\n❌ {len(failed)} scene(s) failed: {', '.join(failed)}")
        raise typer.Exit(1)
    typer.echo(f"\n✅ Storyboard saved: {storyboard_path}")


@app.command()
def analyze(
    storyboard_path: Path = typer.Option(
        Path("storyboard.yaml"),
        "--storyboard",
        "-s",
        help="Path to storyboard YAML file"
    ),
    policy: Optional[FailurePolicy] = typer.Option(
        None,
        "--policy",
        "-p",
        help="Failure policy (defaults to PRODUCER_FAILURE_POLICY)"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    ),
) -> None:
    """Fetch a structured prompt for every scene."""
    setup_logging(verbose)
    storyboard = _load_storyboard(storyboard_path)
    director = _build_director(storyboard, policy)

    typer.echo(f"🧠 Analyzing {len(storyboard.scenes)} scene(s)")
    try:
        asyncio.run(director.analyze_script())
    finally:
        _close(director)

    storyboard.scenes = list(director.store.snapshot())
    _save_storyboard(storyboard, storyboard_path)

    for scene in storyboard.scenes:
        _echo_scene(scene)
    typer.echo(f"\n✅ Storyboard saved: {storyboard_path}")


@app.command()
def lock(
    scene_id: str = typer.Argument(
        ...,
        help="Scene to lock or unlock"
    ),
    storyboard_path: Path = typer.Option(
        Path("storyboard.yaml"),
        "--storyboard",
        "-s",
        help="Path to storyboard YAML file"
    ),
) -> None:
    """Toggle the composition lock of a scene."""
    storyboard = _load_storyboard(storyboard_path)
    store = SceneStore(storyboard.scenes)

    scene = store.toggle_composition_lock(scene_id)
    if scene is None:
        typer.echo(f"❌ Scene not found: {scene_id}")
        raise typer.Exit(1)

    storyboard.scenes = list(store.snapshot())
    _save_storyboard(storyboard, storyboard_path)

    if scene.lock_composition:
        typer.echo(f"🔒 {scene_id} composition locked (seed {scene.structure_seed})")
    else:
        typer.echo(f"🔓 {scene_id} composition unlocked")


@app.command()
def preset(
    name: str = typer.Argument(
        ...,
        help=f"Preset name ({', '.join(PRESETS)})"
    ),
    scene_id: str = typer.Option(
        ...,
        "--scene",
        help="Scene to apply the preset to"
    ),
    storyboard_path: Path = typer.Option(
        Path("storyboard.yaml"),
        "--storyboard",
        "-s",
        help="Path to storyboard YAML file"
    ),
) -> None:
    """Apply a lighting and camera preset to a scene."""
    if name not in PRESETS:
        typer.echo(f"❌ Unknown preset: {name}")
        typer.echo(f"   Available: {', '.join(PRESETS)}")
        raise typer.Exit(1)

    storyboard = _load_storyboard(storyboard_path)
    store = SceneStore(storyboard.scenes)

    scene = store.update_parameters(scene_id, PRESETS[name])
    if scene is None:
        typer.echo(f"❌ Scene not found: {scene_id}")
        raise typer.Exit(1)

    storyboard.scenes = list(store.snapshot())
    _save_storyboard(storyboard, storyboard_path)
    typer.echo(f"🎨 Applied {name} to {scene_id}")
    if scene.lock_composition:
        typer.echo("   Composition is locked, only lighting was changed")

import subprocess
import sys
from pathlib import Path

from PIL import Image

import render
from engine import SimulationEngine

ROOT = Path(__file__).resolve().parents[1]


def test_render_topdown_writes_png(tmp_path):
    eng = SimulationEngine(width=40, height=30, seed=2)
    out = tmp_path / "sub" / "top.png"
    img = render.render_topdown(eng, str(out), scale=3)
    assert out.exists()
    assert img.size == (120, 90)
    with Image.open(out) as saved:
        assert saved.size == (120, 90)


def test_cli_new_step_export(tmp_path):
    world_path = tmp_path / "world.json"
    top_path = tmp_path / "top.png"

    subprocess.run([sys.executable, "cli.py", "new", "--width", "40", "--height", "30",
                    "--seed", "5", "--out", str(world_path)], check=True, cwd=ROOT)
    subprocess.run([sys.executable, "cli.py", "step", str(world_path), "--ticks", "10",
                    "--save", str(world_path)], check=True, cwd=ROOT)
    subprocess.run([sys.executable, "cli.py", "export", "--world", str(world_path),
                    "--topdown", str(top_path), "--scale", "2"], check=True, cwd=ROOT)

    assert world_path.exists()
    assert top_path.exists()
    assert SimulationEngine.load_json(str(world_path)).tick_count == 10

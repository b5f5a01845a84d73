"""Tests for the pindou command line."""

import json

import numpy as np
import pytest
from PIL import Image

from pindou.cli import main

from conftest import SMALL_PALETTE_CSV


@pytest.fixture
def image_path(tmp_path, framed_image):
    path = tmp_path / "framed.png"
    framed_image.save(path)
    return path


def test_writes_grid_json(image_path, tmp_path, capsys):
    out = tmp_path / "grid.json"
    rc = main([str(image_path), "-o", str(out), "-W", "10", "-H", "10",
               "-a", "average", "--remove-background"])
    assert rc == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["width"] == 10 and data["height"] == 10
    assert data["palette"] == "mard"
    assert data["cells"][0][0]["external"] is True
    printed = capsys.readouterr().out
    assert "Saved:" in printed
    assert "Color usage" in printed


def test_default_output_path(image_path):
    assert main([str(image_path), "-W", "4", "-H", "4"]) == 0
    assert (image_path.parent / "framed_pindou.json").exists()


def test_sizes_are_clamped(image_path, tmp_path):
    out = tmp_path / "grid.json"
    assert main([str(image_path), "-o", str(out), "-W", "999", "-H", "0",
                 "-a", "nearest"]) == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["width"] == 120 and data["height"] == 1


def test_merge_threshold(tmp_path, capsys):
    arr = np.zeros((8, 8, 3), dtype=np.uint8)
    arr[:, :4] = [255, 0, 0]
    arr[:, 4:] = [250, 10, 10]
    img_path = tmp_path / "reds.png"
    Image.fromarray(arr).save(img_path)
    palette_path = tmp_path / "small.csv"
    palette_path.write_text(SMALL_PALETTE_CSV, encoding="utf-8")
    out = tmp_path / "grid.json"

    rc = main([str(img_path), "-o", str(out), "-W", "2", "-H", "2",
               "-a", "nearest", "-p", "alpha", "--palette-file", str(palette_path),
               "--merge-threshold", "20"])
    assert rc == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert {cell["code"] for row in data["cells"] for cell in row} == {"R"}
    assert "2 -> 1 colors" in capsys.readouterr().out


def test_unknown_palette(image_path, capsys):
    assert main([str(image_path), "-p", "nope"]) == 1
    assert "unknown palette" in capsys.readouterr().out


def test_missing_image(tmp_path, capsys):
    assert main([str(tmp_path / "missing.png")]) == 1
    assert "Error" in capsys.readouterr().out


def test_bad_palette_file(image_path, tmp_path, capsys):
    bad = tmp_path / "bad.csv"
    bad.write_text("", encoding="utf-8")
    assert main([str(image_path), "--palette-file", str(bad)]) == 1
    assert "Error" in capsys.readouterr().out

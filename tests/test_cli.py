"""Test the mask_to_polygon command-line entrypoint.

Tests for scripts/mask_to_polygon.py:
    - .npy mask → JSON annotation file (exit 0)
    - --append adds to an existing file; YAML output by suffix
    - stdout output when --output is omitted
    - Empty mask → exit 1, nothing written
    - Missing file / bad config / bad override → exit 2
    - Malformed YAML config or existing YAML output → exit 2
    - Uncaught exceptions are routed to the log

Run:
    pytest tests/test_cli.py -v
"""

import importlib.util
import json
import sys
from pathlib import Path

import numpy as np
import pytest

from src.utils import fs, logging_config, validators


SCRIPT = Path(__file__).parent.parent / "scripts" / "mask_to_polygon.py"


@pytest.fixture(scope="module")
def cli():
    spec = importlib.util.spec_from_file_location("mask_to_polygon_cli", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture(autouse=True)
def reset_logging(monkeypatch):
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    yield
    logging_config.setup_logging(log_level="WARNING", to_stderr=False, capture_warnings=False)
    logging_config.pop_context()


@pytest.fixture
def block_mask(tmp_path):
    """10x10 logits with a 4x4 foreground block at (3,3)-(6,6)."""
    logits = np.full((10, 10), -5.0, dtype=np.float32)
    logits[3:7, 3:7] = 5.0
    path = tmp_path / "cat_mask.npy"
    np.save(path, logits)
    return path


def test_writes_json_annotation(cli, block_mask, tmp_path):
    out = tmp_path / "ann" / "cat.json"

    code = cli.main([str(block_mask), "--epsilon", "0.5", "--label", "cat", "--output", str(out)])

    assert code == 0
    doc = validators.load_image_annotation(out)
    assert doc.image_file == "cat_mask"
    assert (doc.width, doc.height) == (10, 10)
    assert len(doc.annotations) == 1
    polygon = doc.annotations[0]
    assert polygon.type == "polygon"
    assert polygon.label == "cat"
    assert polygon.vertex_count == 5


def test_append_and_yaml_output(cli, block_mask, tmp_path):
    out = tmp_path / "cat.yaml"
    args = [str(block_mask), "--epsilon", "0.5", "--image-file", "cat.jpg", "--output", str(out)]

    assert cli.main(args) == 0
    assert cli.main(args + ["--append", "--label", "tail"]) == 0

    data = fs.load_yaml(out)
    assert data["imageFile"] == "cat.jpg"
    assert [a["label"] for a in data["annotations"]] == ["object", "tail"]
    ids = {a["id"] for a in data["annotations"]}
    assert len(ids) == 2


def test_overwrites_without_append(cli, block_mask, tmp_path):
    out = tmp_path / "cat.json"
    args = [str(block_mask), "--epsilon", "0.5", "--output", str(out)]

    assert cli.main(args) == 0
    assert cli.main(args) == 0
    assert len(validators.load_image_annotation(out).annotations) == 1


def test_prints_to_stdout(cli, block_mask, capsys):
    assert cli.main([str(block_mask), "--epsilon", "0.5"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["imageFile"] == "cat_mask"
    assert len(payload["annotations"][0]["points"]) == 10


def test_config_file_supplies_epsilon(cli, block_mask, tmp_path, capsys):
    cfg_path = tmp_path / "pipeline.yaml"
    fs.atomic_yaml_dump({"schema": "pipeline.v1", "mask_to_polygon": {"epsilon": 3.0}}, cfg_path)

    assert cli.main([str(block_mask), "--config", str(cfg_path)]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert len(payload["annotations"][0]["points"]) == 6


def test_empty_mask_exit_code(cli, tmp_path):
    path = tmp_path / "empty.npy"
    np.save(path, np.full((8, 8), -1.0))
    out = tmp_path / "empty.json"

    assert cli.main([str(path), "--output", str(out)]) == 1
    assert not out.exists()


def test_invalid_inputs_exit_code(cli, block_mask, tmp_path):
    assert cli.main([str(tmp_path / "missing.npy")]) == 2

    bad_cfg = tmp_path / "bad.yaml"
    fs.atomic_yaml_dump({"schema": "pipeline.v0"}, bad_cfg)
    assert cli.main([str(block_mask), "--config", str(bad_cfg)]) == 2

    assert cli.main([str(block_mask), "--epsilon", "-1"]) == 2
    assert cli.main([str(block_mask), "--label", ""]) == 2


def test_malformed_yaml_exit_code(cli, block_mask, tmp_path):
    bad_cfg = tmp_path / "broken.yaml"
    bad_cfg.write_text("mask_to_polygon: [unclosed\n")
    assert cli.main([str(block_mask), "--config", str(bad_cfg)]) == 2

    existing = tmp_path / "a.yaml"
    existing.write_text("imageFile: [unclosed\n")
    assert cli.main([str(block_mask), "--epsilon", "0.5", "-o", str(existing), "--append"]) == 2
    assert existing.read_text() == "imageFile: [unclosed\n"


def test_main_installs_excepthook(cli, block_mask):
    original = sys.excepthook

    assert cli.main([str(block_mask), "--epsilon", "0.5"]) == 0
    assert sys.excepthook is not original
    assert sys.excepthook.__module__ == logging_config.__name__

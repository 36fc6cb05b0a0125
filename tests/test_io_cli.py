import json

import pytest

from roadweave import generate_world
from roadweave.cli import main
from roadweave.contracts.layout import GeneratedWorld, RoadClass
from roadweave.data.io import load_world, save_world, world_to_dict
from roadweave.pipeline import GenerationRequest


def test_save_and_load_world(tmp_path, cfg, small_request):
    world = generate_world(small_request, cfg)
    path = save_world(world, tmp_path / "nested" / "world.json")
    assert path.exists()
    back = load_world(path)
    assert isinstance(back, GeneratedWorld)
    assert back.save_id == world.save_id
    assert back.road_network == world.road_network
    assert back.layout.intersections == world.layout.intersections
    assert len(back.lots) == len(world.lots)


def test_world_dict_is_plain_json(cfg):
    world = generate_world(GenerationRequest((500.0, 500.0), (60.0, 40.0)), cfg)
    d = world_to_dict(world)
    json.dumps(d)
    assert {r["road_class"] for r in d["road_network"]} <= {c.value for c in RoadClass}
    assert set(d["layout"]) >= {"world_bounds", "park_bounds", "park_corners", "lots", "intersections"}


def test_io_rejects_bad_input(tmp_path, cfg):
    world = generate_world(GenerationRequest((400.0, 400.0), (40.0, 40.0)), cfg)
    with pytest.raises(ValueError):
        save_world(world, tmp_path / "w.yaml", fmt="yaml")
    with pytest.raises(ValueError):
        load_world(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text('{"roads": []}', encoding="utf-8")
    with pytest.raises(ValueError):
        load_world(bad)


def test_cli_generate_writes_and_prints(tmp_path, capsys):
    out = tmp_path / "out" / "world.json"
    rc = main([
        "generate",
        "--config", str(tmp_path / "none.yaml"),
        "--seed", "3",
        "--world", "1000", "1000",
        "--park", "80", "60",
        "--mains", "2",
        "--out", str(out),
        "--print",
    ])
    assert rc == 0
    summary = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert summary["roads"] > 0
    world = load_world(out)
    assert summary["save_id"] == world.save_id
    assert summary["lots"] == len(world.lots)


def test_cli_rejects_bad_config(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("generation: {patches: {patches_x: 0}}\n")
    with pytest.raises(SystemExit):
        main(["generate", "--config", str(bad), "--out", str(tmp_path / "w.json")])

# -*- coding: utf-8 -*-
from __future__ import annotations
import argparse, json, sys

import numpy as np
from pydantic import ValidationError

from .config.loader import DEFAULT_CONFIG_PATH, load_generation_config
from .data.io import save_world, world_to_dict
from .logging import init_logging, init_logging_from_cfg
from .logging_util import get_logger
from .pipeline import GenerationRequest, generate_world


def _summary(world) -> dict:
    return {
        "save_id": world.save_id,
        "roads": len(world.road_network),
        "intersections": len(world.layout.intersections),
        "lots": len(world.layout.lots),
        "park_rotation_deg": world.layout.park_rotation_deg,
    }


def cmd_generate(args):
    overrides = {}
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.log_level:
        overrides["log_level"] = args.log_level
    try:
        cfg = load_generation_config(args.config, overrides=overrides)
    except (ValidationError, TypeError, ValueError) as e:
        raise SystemExit(f"invalid config {args.config}: {e}")
    init_logging_from_cfg(cfg)
    log = get_logger("roadweave.cli", {"logging": {"level": "INFO" if args.verbose else "WARNING"}})

    request = GenerationRequest(
        world_size=(args.world[0], args.world[1]),
        park_size=(args.park[0], args.park[1]),
        main_count=args.mains,
        side_count=args.sides,
        extra_count=args.extras,
    )
    rng = np.random.default_rng(cfg.seed)
    world = generate_world(request, cfg, rng, on_status=lambda s: log.info("%s", s))

    out = save_world(world, args.out)
    log.info("wrote %s", out)
    if args.print:
        print(json.dumps({"summary": _summary(world), "world": world_to_dict(world)} if args.full else _summary(world),
                         ensure_ascii=False))
    return 0


def make_parser():
    p = argparse.ArgumentParser(prog="roadweave")
    p.add_argument("--log-level", dest="log_level", choices=["none", "info", "debug"], default=None)
    sub = p.add_subparsers(dest="cmd", required=True)

    pg = sub.add_parser("generate", help="Generate a road network and save it as JSON")
    pg.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="generation YAML (missing file = defaults)")
    pg.add_argument("--seed", type=int, default=None)
    pg.add_argument("--world", type=float, nargs=2, default=(2000.0, 2000.0), metavar=("W", "H"))
    pg.add_argument("--park", type=float, nargs=2, default=(200.0, 150.0), metavar=("W", "H"))
    pg.add_argument("--mains", type=int, default=0)
    pg.add_argument("--sides", type=int, default=0)
    pg.add_argument("--extras", type=int, default=0)
    pg.add_argument("--out", default="out/world.json")
    pg.add_argument("--print", action="store_true", help="print a JSON summary to stdout")
    pg.add_argument("--full", action="store_true", help="with --print, include the whole world")
    pg.add_argument("-v", "--verbose", action="store_true", help="log stage status lines")
    pg.set_defaults(func=cmd_generate)

    return p


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    parser = make_parser()
    ns = parser.parse_args(argv)
    if ns.log_level:
        init_logging(ns.log_level)
    return ns.func(ns)


if __name__ == "__main__":
    raise SystemExit(main())

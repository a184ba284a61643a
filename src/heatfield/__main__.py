from __future__ import annotations

import argparse
import logging
from typing import cast

from .core.config import HeatmapConfig
from .core.presets import preset
from .io.points import load_points, load_temporal_dataset
from .runtime.server import HeatfieldServer, run


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(prog="heatfield", description="heatfield: heatmap rendering server")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.add_argument("--width", type=int, default=800)
    p.add_argument("--height", type=int, default=600)
    p.add_argument("--radius", type=float, default=25.0)
    p.add_argument("--gradient", default="default", help="gradient preset name")
    p.add_argument("--points", help="JSON file with static points to load on start")
    p.add_argument("--temporal", help="JSON file with a temporal dataset to load on start")
    p.add_argument("--log-level", default="info", choices=["critical", "error", "warning", "info", "debug"])
    args = p.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(name)s %(levelname)s %(message)s")

    config = HeatmapConfig(width=args.width, height=args.height, radius=args.radius, gradient=preset(args.gradient))
    # new_server=True always starts a local server.
    srv = cast(HeatfieldServer, run(config, host=args.host, port=args.port, log_level=args.log_level, new_server=True))

    if args.points:
        points = load_points(args.points)
        srv.service.call(lambda hm: hm.set_data(points))
    if args.temporal:
        dataset = load_temporal_dataset(args.temporal)
        srv.service.call(lambda hm: hm.animation.set_temporal_data(dataset))
    print(srv.url)

    # Block forever (so it behaves like a normal CLI server)
    import time

    try:
        while True:
            time.sleep(3600)
    except KeyboardInterrupt:
        srv.shutdown()


if __name__ == "__main__":
    main()

from __future__ import annotations

import argparse
import logging

from .config import load_settings
from .runtime.server import run


def main(argv: list[str] | None = None) -> None:
    settings = load_settings()

    p = argparse.ArgumentParser(prog="drugtrace", description="drugtrace: pharmaceutical custody registry server")
    p.add_argument("--host", default=settings.host)
    p.add_argument("--port", type=int, default=settings.port)
    p.add_argument("--admin", default=settings.admin, help="admin principal (pre-registered as regulator)")
    p.add_argument("--log-level", default=settings.log_level)
    p.add_argument("--access-log", action="store_true")
    args = p.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    srv = run(
        host=args.host,
        port=args.port,
        admin=args.admin,
        log_level=args.log_level,
        access_log=args.access_log,
        new_server=True,
    )
    print(srv.url)

    # Block forever (so it behaves like a normal CLI server)
    import time

    while True:
        time.sleep(3600)


if __name__ == "__main__":
    main()

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

import uvicorn

from pawnstorm.protocol.uci.loop import run_uci


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="pawnstorm", description="pawnstorm chess engine")
    parser.add_argument("--host", default="0.0.0.0", help="HTTP bind address")
    parser.add_argument("--port", type=int, default=8000, help="HTTP port")
    parser.add_argument("--uci", action="store_true", help="speak UCI on stdin/stdout instead of serving HTTP")
    args = parser.parse_args(argv)

    if args.uci:
        # stdout belongs to the protocol; keep logs on stderr and quiet
        logging.basicConfig(level=logging.WARNING)
        run_uci()
        return
    uvicorn.run("pawnstorm.protocol.http.app:create_app", factory=True, host=args.host, port=args.port)


if __name__ == "__main__":
    main()

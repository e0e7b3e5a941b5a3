"""Entry point for `python -m kubedeck`.

Usage:
    python -m kubedeck
"""

from __future__ import annotations

import asyncio

from kubedeck.app import main


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()

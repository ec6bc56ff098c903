"""Entry point for `python -m kubetopo`.

Usage:
    python -m kubetopo
"""

from __future__ import annotations

import asyncio

from kubetopo.app import main

asyncio.run(main())

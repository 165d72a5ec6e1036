"""Module execution entrypoint for `python -m craftmind.cli`."""

from __future__ import annotations

import sys

from craftmind.cli import main

if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))

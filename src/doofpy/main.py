#!/usr/bin/env python3

from __future__ import annotations

from signal import SIGINT, signal

from dotenv import load_dotenv

from doofpy.ui.cli import main, sigint_handler

__all__ = ["main"]


if __name__ == "__main__":
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()

#!/usr/bin/env python3
"""Entry point: serve the DayZ server control panel."""

from dzweb.main import run_server

if __name__ == "__main__":
    run_server()

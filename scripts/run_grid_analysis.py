#!/usr/bin/env python
"""
Run a grid-approximation analysis from a YAML config.

Example:
    python scripts/run_grid_analysis.py --config configs/globe_toss.yaml --out results/globe
"""

from __future__ import annotations

from bayesgrid.cli import main

if __name__ == "__main__":
    main()

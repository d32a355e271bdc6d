#!/usr/bin/env python3
"""
CLI Commands Package for pkgforge
"""

from .build import build
from .devkit import devkit
from .dependencies import dependencies

__all__ = ["build", "devkit", "dependencies"]

"""
CLI Module for BEAM module signing.

Usage:
    python -m beamsign.cli.beamsignctl sign ebin/my_module.beam -k signing.key -o out.beam
    python -m beamsign.cli.beamsignctl verify out.beam -p signing.pub
"""

from .beamsignctl import build_parser, main

__all__ = [
    'build_parser',
    'main',
]

"""
Relative Positioning Core Package.

Converts noisy GPS fixes reported by several devices, each against its own
origin, into per-player relative positions in the local device's
heading-rotated east/up/north frame.

Package structure:
- proto: Snapshot schema, boundary parsing, output events, wire messages
- localization: Geodetic projection, origin calibration, player registry,
  relative position resolver
- metrics: Diagnostics, counters, histograms
"""

__version__ = "0.1.0"
__author__ = "IRL Game Team"

"""Core animation primitives for isoflow.

Modules:
- noise: 3D gradient noise over a permutation table
- field: three-octave scalar field sampled on a pixel grid
- contours: marching squares contour extraction
- animation: per-frame driver, config and frame loop
"""

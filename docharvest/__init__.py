"""
Configuration-driven documentation crawler.

This package walks a documentation website breadth-first from its index
page and turns every API entry it finds into a structured record, driven
entirely by a declarative per-site configuration (see docharvest.config).
"""

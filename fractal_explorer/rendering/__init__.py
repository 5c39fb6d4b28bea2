"""Coloring, image scaling and image export."""

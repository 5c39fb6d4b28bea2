"""Complex plane, iteration and fractal generators."""

"""waterwatch - turbidity snapshot engine for a public water-quality dashboard."""

__version__ = "0.1.0"

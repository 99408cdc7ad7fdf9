"""Vision provider cascade for hair photo analysis."""

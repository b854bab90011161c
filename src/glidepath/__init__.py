"""glidepath - Monte Carlo projection of rebalanced portfolio strategies."""

__version__ = "0.1.0"
